# src/supernova/providers/__init__.py
"""
Completion service providers for the Supernova library.

Defines the provider interface used by the conversation engine and the
Google Gemini implementation.
"""

from .base import BaseCompletionProvider
from .gemini_provider import GeminiProvider
from .manager import PROVIDER_MAP, ProviderManager

__all__ = ["BaseCompletionProvider", "GeminiProvider", "ProviderManager", "PROVIDER_MAP"]
