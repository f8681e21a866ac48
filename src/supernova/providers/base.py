# src/supernova/providers/base.py
"""
Abstract Base Class for completion service providers.

This module defines the interface the conversation engine and the title
synthesizer use to talk to a generative-language completion service. The
wire-level client stays behind this seam so the engine can be exercised
with scripted providers.
"""

import abc
from typing import Any, AsyncIterator, Dict, List, Optional

from ..models import Content, GenerationParams, Part


class BaseCompletionProvider(abc.ABC):
    """
    Abstract Base Class for completion service integrations.

    Ensures all providers offer a consistent set of core functionalities:
    - Opening a streamed reply for a conversation turn.
    - A one-shot, non-streamed completion for short prompts.
    - Releasing network resources on shutdown.
    """
    log_raw_payloads_enabled: bool

    def __init__(self, config: Optional[Dict[str, Any]] = None, log_raw_payloads: bool = False):
        """
        Initialize the provider with its specific configuration.

        Args:
            config: Provider-specific settings from the ``[providers.<name>]``
                    configuration table.
            log_raw_payloads: Whether raw request/response payloads are logged at DEBUG.
        """
        self.log_raw_payloads_enabled = log_raw_payloads

    @abc.abstractmethod
    def get_name(self) -> str:
        """
        Return the unique identifier name for this provider, e.g. "gemini".
        """
        pass

    @abc.abstractmethod
    async def open_stream(
        self,
        model: str,
        history: List[Content],
        parts: List[Part],
        system_instruction: str,
        params: GenerationParams,
    ) -> AsyncIterator[str]:
        """
        Start a streamed completion for a new user turn.

        Args:
            model: Backend model identifier.
            history: Prior turns of the conversation, oldest first.
            parts: The new user turn (text first, then images).
            system_instruction: Persona prompt of the active profile (may be empty).
            params: Sampling parameters.

        Returns:
            An async iterator of text fragments, in arrival order. Fragments
            may be empty strings; consumers skip them.

        Raises:
            ProviderError: If the request cannot be opened. Iteration may also
                           raise ProviderError for mid-stream failures.
        """
        pass

    @abc.abstractmethod
    async def complete(self, model: str, prompt: str) -> str:
        """
        Perform a single non-streamed completion.

        Returns:
            The response text, possibly empty.

        Raises:
            ProviderError: On any transport or API failure.
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the provider."""
        pass
