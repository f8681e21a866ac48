# src/supernova/providers/manager.py
"""
Provider Manager for Supernova.

Handles the loading and management of completion provider instances based
on the ``[providers]`` configuration section.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type

# Assume ConfyConfig type for hinting
try:
    from confy.loader import Config as ConfyConfig
except ImportError:
    ConfyConfig = Dict[str, Any]  # type: ignore

from ..exceptions import ConfigError, ProviderError
from .base import BaseCompletionProvider
from .gemini_provider import GeminiProvider

logger = logging.getLogger(__name__)

# --- Mapping from config provider name string to class ---
PROVIDER_MAP: Dict[str, Type[BaseCompletionProvider]] = {
    "gemini": GeminiProvider,
}
# --- End Mapping ---


class ProviderManager:
    """
    Manages the initialization and access to completion providers.

    Each table under ``[providers]`` becomes one provider instance, named by
    its section. The provider class comes from the table's ``type`` key,
    falling back to the section name. The scalar ``providers.default`` names
    the instance the engine uses.
    """
    _providers: Dict[str, BaseCompletionProvider]
    _config: ConfyConfig
    _default_provider_name: str

    def __init__(self, config: ConfyConfig):
        """
        Initializes the ProviderManager and loads configured providers.

        Raises:
            ConfigError: If the default provider is not configured or supported.
            ProviderError: If the default provider was configured but failed to initialize.
        """
        self._config = config
        self._providers = {}
        providers_config = self._providers_section()
        self._default_provider_name = str(providers_config.get("default", "gemini")).lower()
        logger.info(f"ProviderManager initialized. Default provider set to '{self._default_provider_name}'.")

        self._load_configured_providers(providers_config)

        if self._default_provider_name not in self._providers:
            if self._default_provider_name in providers_config:
                raise ProviderError(self._default_provider_name, "Default provider was configured but failed to initialize (check logs/dependencies).")
            raise ConfigError(f"Default provider '{self._default_provider_name}' is not configured in the '[providers]' section. "
                              f"Available types: {list(PROVIDER_MAP.keys())}")

    def _providers_section(self) -> Dict[str, Any]:
        providers_config = self._config.get("providers", {}) or {}
        if not hasattr(providers_config, "items"):
            logger.warning("'[providers]' section in config is not a valid table. No providers will be loaded.")
            return {}
        return {str(k).lower(): v for k, v in providers_config.items()}

    def _load_configured_providers(self, providers_config: Dict[str, Any]) -> None:
        log_raw_payloads = bool(self._config.get("supernova", {}).get("log_raw_payloads", False))

        for section_name, provider_specific_config in providers_config.items():
            if not hasattr(provider_specific_config, "items"):
                continue  # scalar keys such as 'default'
            provider_specific_config = dict(provider_specific_config.items())
            provider_type_key = str(provider_specific_config.get("type", section_name)).lower()
            provider_cls = PROVIDER_MAP.get(provider_type_key)
            if not provider_cls:
                logger.warning(f"Provider type '{provider_type_key}' (section '{section_name}') is not supported. Skipping.")
                continue
            try:
                self._providers[section_name] = provider_cls(provider_specific_config, log_raw_payloads=log_raw_payloads)
                logger.info(f"Provider instance '{section_name}' (type: '{provider_type_key}') initialized.")
            except Exception as e:
                logger.error(f"Failed to initialize provider instance '{section_name}' (type: '{provider_type_key}'): {e}", exc_info=True)

        if not self._providers:
            logger.warning("No provider instances were successfully loaded after processing configuration.")

    def get_provider(self, name: Optional[str] = None) -> BaseCompletionProvider:
        """
        Gets a provider instance by section name, or the default provider if name is None.

        Raises:
            ConfigError: If no instance with that name is loaded.
        """
        target_name = name.lower() if name else self._default_provider_name
        provider = self._providers.get(target_name)
        if provider is None:
            raise ConfigError(f"Provider '{target_name}' not configured. Loaded instances: {list(self._providers.keys())}")
        return provider

    def get_default_provider(self) -> BaseCompletionProvider:
        return self.get_provider(self._default_provider_name)

    def get_available_providers(self) -> List[str]:
        return list(self._providers.keys())

    async def close_providers(self) -> None:
        """Closes all loaded providers, logging individual failures."""
        results = await asyncio.gather(*(p.close() for p in self._providers.values()), return_exceptions=True)
        for name, result in zip(self._providers.keys(), results):
            if isinstance(result, Exception):
                logger.error(f"Error closing provider instance '{name}': {result}", exc_info=result)
        logger.info("Provider connections closure attempt complete.")
