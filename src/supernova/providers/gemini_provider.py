# src/supernova/providers/gemini_provider.py
"""
Google Gemini completion provider built on the google-genai SDK.

Streamed replies go through an async chat session seeded with the prior
turns, matching how the browser client opened one chat per send.
"""

import base64
import binascii
import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

logger = logging.getLogger(__name__)

google_genai_available = False
try:
    from google import genai
    from google.genai import types
    from google.genai.errors import APIError
    google_genai_available = True
except ImportError:
    genai = None  # type: ignore
    types = None  # type: ignore
    APIError = Exception  # type: ignore

from ..exceptions import ConfigError, ProviderError
from ..models import Content, GenerationParams, Part, Role
from .base import BaseCompletionProvider

SUPERNOVA_TO_GEMINI_ROLE_MAP = {
    Role.USER: "user",
    Role.ASSISTANT: "model",
}

DEFAULT_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")


def convert_part(part: Part) -> "types.Part":
    """Converts a transport Part into a google-genai Part."""
    if part.text is not None:
        return types.Part.from_text(text=part.text)
    try:
        raw = base64.b64decode(part.inline_data.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ProviderError("gemini", f"Attachment payload is not valid base64: {e}")
    return types.Part.from_bytes(data=raw, mime_type=part.inline_data.mime_type)


def convert_contents(history: List[Content]) -> List["types.Content"]:
    """
    Converts transport Contents into google-genai Contents.

    Contents without parts are dropped; the API rejects them.
    """
    genai_history = []
    for content in history:
        if not content.parts:
            continue
        genai_history.append(types.Content(
            role=SUPERNOVA_TO_GEMINI_ROLE_MAP[content.role],
            parts=[convert_part(p) for p in content.parts],
        ))
    return genai_history


class GeminiProvider(BaseCompletionProvider):
    """
    Supernova provider for the Google Gemini API using google-genai.
    """
    _client: Optional[Any] = None  # genai.Client

    def __init__(self, config: Optional[Dict[str, Any]] = None, log_raw_payloads: bool = False):
        """
        Initializes the GeminiProvider.

        Args:
            config: Configuration dictionary from ``[providers.gemini]`` containing:
                    'api_key' (optional): Google AI API key.
                    'api_key_env_var' (optional): Environment variable to read the key from.
            log_raw_payloads: Whether to log raw request payloads.

        Raises:
            ConfigError: If google-genai is missing or the client cannot be created.
        """
        super().__init__(config, log_raw_payloads)
        if not google_genai_available:
            raise ConfigError("Google Gen AI library (`google-genai`) not installed. Install with 'pip install google-genai'.")

        config = config or {}
        api_key = config.get("api_key")
        api_key_env_var = config.get("api_key_env_var")
        if not api_key and api_key_env_var:
            api_key = os.environ.get(api_key_env_var)
        if not api_key:
            for env_var in DEFAULT_API_KEY_ENV_VARS:
                api_key = os.environ.get(env_var)
                if api_key:
                    break
        if not api_key:
            logger.warning("Google API key not found. Set 'providers.gemini.api_key' or GEMINI_API_KEY.")

        try:
            self._client = genai.Client(api_key=api_key)
            logger.info("Google Gen AI client initialized successfully.")
        except Exception as e:
            logger.error(f"Failed to initialize Google Gen AI client: {e}", exc_info=True)
            raise ConfigError(f"Google Gen AI configuration failed: {e}")

    def get_name(self) -> str:
        return "gemini"

    def _require_client(self) -> Any:
        if not self._client:
            raise ProviderError(self.get_name(), "Gemini client not initialized.")
        return self._client

    async def open_stream(
        self,
        model: str,
        history: List[Content],
        parts: List[Part],
        system_instruction: str,
        params: GenerationParams,
    ) -> AsyncIterator[str]:
        client = self._require_client()
        genai_history = convert_contents(history)
        message = [convert_part(p) for p in parts]
        generation_config = types.GenerateContentConfig(
            temperature=params.temperature,
            top_k=params.top_k,
            top_p=params.top_p,
            system_instruction=system_instruction or None,
        )

        if self.log_raw_payloads_enabled and logger.isEnabledFor(logging.DEBUG):
            log_data = {
                "model": model,
                "history_turns": len(genai_history),
                "parts": [p.model_dump(exclude={"inline_data"}) for p in parts],
                "config": params.model_dump(),
            }
            logger.debug(f"RAW LLM REQUEST ({self.get_name()}): {json.dumps(log_data, indent=2, default=str)}")

        try:
            chat = client.aio.chats.create(model=model, config=generation_config, history=genai_history)
            response = await chat.send_message_stream(message=message)
        except APIError as e:
            logger.error(f"Google AI API error opening stream: {e}", exc_info=True)
            raise ProviderError(self.get_name(), f"Google AI API Error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error opening Gemini stream: {e}", exc_info=True)
            raise ProviderError(self.get_name(), f"An unexpected error occurred: {e}")

        async def stream_wrapper() -> AsyncIterator[str]:
            try:
                async for chunk in response:
                    if self.log_raw_payloads_enabled:
                        logger.debug(f"RAW LLM STREAM CHUNK ({self.get_name()}): {chunk}")
                    text = chunk.text
                    if text:
                        yield text
            except APIError as e:
                logger.error(f"Google AI API error during stream: {e}", exc_info=True)
                raise ProviderError(self.get_name(), f"Google AI API Error: {e}")
            except Exception as e:
                logger.error(f"Unexpected error during Gemini stream: {e}", exc_info=True)
                raise ProviderError(self.get_name(), f"Stream interrupted: {e}")

        return stream_wrapper()

    async def complete(self, model: str, prompt: str) -> str:
        client = self._require_client()
        try:
            response = await client.aio.models.generate_content(model=model, contents=prompt)
        except APIError as e:
            logger.error(f"Google AI API error: {e}", exc_info=True)
            raise ProviderError(self.get_name(), f"Google AI API Error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during Gemini completion: {e}", exc_info=True)
            raise ProviderError(self.get_name(), f"An unexpected error occurred: {e}")
        return response.text or ""

    async def close(self) -> None:
        """The google-genai client needs no explicit cleanup."""
        logger.debug("GeminiProvider closed.")
        self._client = None
