# tests/providers/test_gemini_provider.py
"""
Tests for the GeminiProvider and the transport-to-SDK conversions.

The google-genai client is replaced with mocks; no network calls are made.
"""

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("google.genai")

from supernova.exceptions import ConfigError, ProviderError
from supernova.models import Attachment, Content, GenerationParams, Part, Role
from supernova.providers.gemini_provider import (GeminiProvider, convert_contents,
                                                 convert_part)
from supernova.providers.manager import ProviderManager


async def _chunks(*texts):
    for text in texts:
        yield SimpleNamespace(text=text)


async def _broken_chunks():
    yield SimpleNamespace(text="meio")
    raise RuntimeError("connection reset")


@pytest.fixture
def mock_client():
    with patch("supernova.providers.gemini_provider.genai.Client") as client_cls:
        client = MagicMock()
        client_cls.return_value = client
        yield client_cls, client


class TestConversions:
    """Transport Part/Content to google-genai types."""

    def test_text_part(self):
        assert convert_part(Part(text="olá")).text == "olá"

    def test_image_part_is_decoded(self, png_attachment):
        part = convert_part(Part(inline_data=png_attachment))
        assert part.inline_data.mime_type == "image/png"
        assert part.inline_data.data == base64.b64decode(png_attachment.data)

    def test_invalid_base64_raises(self):
        with pytest.raises(ProviderError):
            convert_part(Part(inline_data=Attachment(mime_type="image/png", data="@@@")))

    def test_roles_and_empty_contents(self):
        history = [
            Content(role=Role.USER, parts=[Part(text="oi")]),
            Content(role=Role.ASSISTANT, parts=[]),
            Content(role=Role.ASSISTANT, parts=[Part(text="olá")]),
        ]
        converted = convert_contents(history)
        assert [c.role for c in converted] == ["user", "model"]
        assert converted[1].parts[0].text == "olá"


class TestInitialization:

    def test_explicit_api_key(self, mock_client):
        client_cls, _ = mock_client
        GeminiProvider({"api_key": "k-123"})
        client_cls.assert_called_once_with(api_key="k-123")

    def test_api_key_from_configured_env_var(self, mock_client, monkeypatch):
        client_cls, _ = mock_client
        monkeypatch.setenv("MY_GEMINI_KEY", "from-env")
        GeminiProvider({"api_key_env_var": "MY_GEMINI_KEY"})
        client_cls.assert_called_once_with(api_key="from-env")

    def test_api_key_default_env_var(self, mock_client, monkeypatch):
        client_cls, _ = mock_client
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("GOOGLE_API_KEY", "google-key")
        GeminiProvider({})
        client_cls.assert_called_once_with(api_key="google-key")

    def test_client_failure_is_config_error(self, mock_client):
        client_cls, _ = mock_client
        client_cls.side_effect = ValueError("missing key")
        with pytest.raises(ConfigError):
            GeminiProvider({"api_key": "x"})

    def test_name(self, mock_client):
        assert GeminiProvider({"api_key": "x"}).get_name() == "gemini"


class TestOpenStream:

    @pytest.mark.asyncio
    async def test_streams_non_empty_text(self, mock_client, png_attachment):
        _, client = mock_client
        chat = MagicMock()
        chat.send_message_stream = AsyncMock(return_value=_chunks("Hel", None, "", "lo"))
        client.aio.chats.create.return_value = chat
        provider = GeminiProvider({"api_key": "x"})

        history = [Content(role=Role.USER, parts=[Part(text="antes")])]
        stream = await provider.open_stream(
            "gemini-2.5-flash", history, [Part(text="oi"), Part(inline_data=png_attachment)],
            "Seja breve.", GenerationParams())
        fragments = [f async for f in stream]

        assert fragments == ["Hel", "lo"]
        kwargs = client.aio.chats.create.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["history"][0].parts[0].text == "antes"
        config = kwargs["config"]
        assert (config.temperature, config.top_k, config.top_p) == (0.7, 64, 0.95)
        assert config.system_instruction == "Seja breve."
        message = chat.send_message_stream.await_args.kwargs["message"]
        assert message[0].text == "oi"
        assert message[1].inline_data.mime_type == "image/png"

    @pytest.mark.asyncio
    async def test_empty_system_instruction_omitted(self, mock_client):
        _, client = mock_client
        chat = MagicMock()
        chat.send_message_stream = AsyncMock(return_value=_chunks())
        client.aio.chats.create.return_value = chat
        provider = GeminiProvider({"api_key": "x"})
        stream = await provider.open_stream("m", [], [Part(text="oi")], "", GenerationParams())
        assert [f async for f in stream] == []
        assert client.aio.chats.create.call_args.kwargs["config"].system_instruction is None

    @pytest.mark.asyncio
    async def test_open_failure_wrapped(self, mock_client):
        _, client = mock_client
        chat = MagicMock()
        chat.send_message_stream = AsyncMock(side_effect=RuntimeError("dns"))
        client.aio.chats.create.return_value = chat
        provider = GeminiProvider({"api_key": "x"})
        with pytest.raises(ProviderError):
            await provider.open_stream("m", [], [Part(text="oi")], "", GenerationParams())

    @pytest.mark.asyncio
    async def test_mid_stream_failure_wrapped(self, mock_client):
        _, client = mock_client
        chat = MagicMock()
        chat.send_message_stream = AsyncMock(return_value=_broken_chunks())
        client.aio.chats.create.return_value = chat
        provider = GeminiProvider({"api_key": "x"})
        stream = await provider.open_stream("m", [], [Part(text="oi")], "", GenerationParams())
        received = []
        with pytest.raises(ProviderError):
            async for fragment in stream:
                received.append(fragment)
        assert received == ["meio"]

    @pytest.mark.asyncio
    async def test_closed_provider(self, mock_client):
        provider = GeminiProvider({"api_key": "x"})
        await provider.close()
        with pytest.raises(ProviderError):
            await provider.open_stream("m", [], [Part(text="oi")], "", GenerationParams())


class TestComplete:

    @pytest.mark.asyncio
    async def test_returns_text(self, mock_client):
        _, client = mock_client
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text="Título"))
        provider = GeminiProvider({"api_key": "x"})
        assert await provider.complete("gemini-2.5-flash", "prompt") == "Título"
        client.aio.models.generate_content.assert_awaited_once_with(model="gemini-2.5-flash", contents="prompt")

    @pytest.mark.asyncio
    async def test_none_text_is_empty(self, mock_client):
        _, client = mock_client
        client.aio.models.generate_content = AsyncMock(return_value=SimpleNamespace(text=None))
        assert await GeminiProvider({"api_key": "x"}).complete("m", "p") == ""

    @pytest.mark.asyncio
    async def test_failure_wrapped(self, mock_client):
        _, client = mock_client
        client.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("503"))
        with pytest.raises(ProviderError):
            await GeminiProvider({"api_key": "x"}).complete("m", "p")


class TestProviderManager:

    def test_loads_default_gemini(self, mock_client):
        manager = ProviderManager({"providers": {"default": "gemini", "gemini": {"api_key": "x"}}})
        assert isinstance(manager.get_default_provider(), GeminiProvider)
        assert manager.get_available_providers() == ["gemini"]

    def test_named_instance_with_type(self, mock_client):
        manager = ProviderManager({"providers": {"default": "work", "work": {"type": "gemini", "api_key": "x"}}})
        assert manager.get_provider("work").get_name() == "gemini"

    def test_unconfigured_default(self, mock_client):
        with pytest.raises(ConfigError):
            ProviderManager({"providers": {"default": "openai"}})

    def test_failed_default(self, mock_client):
        client_cls, _ = mock_client
        client_cls.side_effect = ValueError("bad key")
        with pytest.raises(ProviderError):
            ProviderManager({"providers": {"default": "gemini", "gemini": {}}})

    def test_unknown_instance(self, mock_client):
        manager = ProviderManager({"providers": {"gemini": {"api_key": "x"}}})
        with pytest.raises(ConfigError):
            manager.get_provider("other")

    @pytest.mark.asyncio
    async def test_close_providers(self, mock_client):
        manager = ProviderManager({"providers": {"gemini": {"api_key": "x"}}})
        await manager.close_providers()
