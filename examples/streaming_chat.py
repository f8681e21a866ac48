# examples/streaming_chat.py
"""
Example demonstrating a streamed conversation using Supernova.

This script shows how to:
1. Route library logs to a per-run file with `configure_logging`.
2. Initialize Supernova with default configuration (file storage under
   ~/.local/share/supernova/store).
3. Watch the assistant reply grow through a session listener.
4. Attach an image given on the command line and send a turn.
5. Close resources cleanly.

To run this example:
- Install supernova (`pip install .` from the project root).
- Set the `GEMINI_API_KEY` environment variable.
- Optionally pass an image path: `python examples/streaming_chat.py photo.png`
"""

import asyncio
import logging
import sys

from supernova import (ConfigError, ProviderError, SessionEvent, SessionEventType,
                       Supernova, SupernovaError)
from supernova.logging_config import configure_logging, log_display

logger = logging.getLogger(__name__)


def print_fragment(event: SessionEvent) -> None:
    """Prints the reply as it grows."""
    if event.type == SessionEventType.MESSAGE_UPDATED and event.message is not None:
        print(f"\r{event.message.content}", end="", flush=True)


async def main(image_paths):
    log_file = configure_logging(app_name="supernova-example", config={"file_enabled": True})
    log_display(logger, logging.INFO, f"Logging to {log_file}")

    nova = None
    try:
        nova = await Supernova.create()
        nova.add_listener(print_fragment)
        log_display(logger, logging.INFO, f"Active profile: {nova.active_profile.label}")

        if image_paths:
            attached = await nova.attach_files(image_paths)
            log_display(logger, logging.INFO, f"Attached {len(attached)} image(s).")

        nova.set_input("Explique o que é uma supernova em três frases.")
        reply = await nova.send()
        print()
        if reply is not None and reply.is_error:
            logger.warning("The reply failed; see the log file for details.")

        # The title is generated in the background after the first turn.
        await nova.engine.wait_for_background_tasks()
        log_display(logger, logging.INFO, f"Session title: {nova.current_session.title}")

    except ConfigError as e:
        logger.error(f"Configuration error during initialization: {e}")
    except ProviderError as e:
        logger.error(f"Provider error: {e}")
    except SupernovaError as e:
        logger.error(f"A Supernova error occurred: {e}")
    finally:
        if nova:
            await nova.close()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
