# tests/conftest.py
"""
Shared fixtures for the Supernova test suite.

Provides an in-memory key-value store, a session manager bound to it and a
scripted completion provider whose replies are fixed per test.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from supernova.exceptions import ProviderError
from supernova.models import Attachment, Content, GenerationParams, Part
from supernova.providers.base import BaseCompletionProvider
from supernova.sessions.manager import SessionManager
from supernova.storage.memory_kv import MemoryKeyValueStore

# 1x1 transparent PNG
PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="


class ScriptedProvider(BaseCompletionProvider):
    """
    Completion provider that replays fixed fragments.

    Args:
        fragments: Text fragments yielded by every stream, in order.
        open_error: Raised by open_stream instead of returning a stream.
        fail_at: Index of the fragment at which the stream raises ProviderError
                 (len(fragments) fails after the last fragment).
        title: Reply returned by complete().
        title_error: Raised by complete() instead of replying.
        gate: If set, each fragment waits for this event first.
    """

    def __init__(self,
                 fragments: Optional[List[str]] = None,
                 open_error: Optional[Exception] = None,
                 fail_at: Optional[int] = None,
                 title: str = "Título Gerado",
                 title_error: Optional[Exception] = None,
                 gate: Optional[asyncio.Event] = None):
        super().__init__({})
        self.fragments = list(fragments if fragments is not None else ["Olá", "!"])
        self.open_error = open_error
        self.fail_at = fail_at
        self.title = title
        self.title_error = title_error
        self.gate = gate
        self.stream_calls: List[Dict[str, Any]] = []
        self.complete_calls: List[Dict[str, str]] = []
        self.closed = False

    def get_name(self) -> str:
        return "scripted"

    async def open_stream(self, model: str, history: List[Content], parts: List[Part],
                          system_instruction: str, params: GenerationParams):
        self.stream_calls.append({
            "model": model,
            "history": list(history),
            "parts": list(parts),
            "system_instruction": system_instruction,
            "params": params,
        })
        if self.open_error is not None:
            raise self.open_error
        return self._replay()

    async def _replay(self):
        for index, fragment in enumerate(self.fragments):
            if index == self.fail_at:
                raise ProviderError(self.get_name(), "connection dropped")
            if self.gate is not None:
                await self.gate.wait()
            yield fragment
        if self.fail_at is not None and self.fail_at >= len(self.fragments):
            raise ProviderError(self.get_name(), "connection dropped")

    async def complete(self, model: str, prompt: str) -> str:
        self.complete_calls.append({"model": model, "prompt": prompt})
        if self.title_error is not None:
            raise self.title_error
        return self.title

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def png_attachment() -> Attachment:
    return Attachment(mime_type="image/png", data=PNG_B64)


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def session_manager(memory_store) -> SessionManager:
    """A SessionManager over an empty in-memory store (call ``await load()`` first)."""
    return SessionManager(memory_store)


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()
