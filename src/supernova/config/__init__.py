# src/supernova/config/__init__.py
"""
Configuration module for the Supernova library.

Settings are layered with the `confy` library on top of the packaged
``default_config.toml``:

    - default_config.toml: Packaged defaults
    - Custom config: Specified via Supernova.create(config_file_path=...)
    - Environment variables: Prefix SUPERNOVA_, nested keys use double
      underscores (SUPERNOVA_STORAGE__TYPE=sqlite)
    - config_overrides: dict passed to Supernova.create()
"""

import importlib.resources
import logging
import tomllib
from typing import Any, Dict, Optional

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_RESOURCE = "default_config.toml"


def load_default_config() -> Dict[str, Any]:
    """Reads the packaged defaults into a plain dict."""
    resource = importlib.resources.files(__name__).joinpath(DEFAULT_CONFIG_RESOURCE)
    with resource.open("rb") as f:
        return tomllib.load(f)


def load_config(config_overrides: Optional[Dict[str, Any]] = None,
                config_file_path: Optional[str] = None,
                env_prefix: Optional[str] = "SUPERNOVA"):
    """
    Builds the layered configuration object.

    Returns:
        A ``confy.loader.Config`` instance.

    Raises:
        ConfigError: If confy is unavailable or any layer fails to load.
    """
    try:
        from confy.loader import Config as ConfyConfig
        config = ConfyConfig(
            defaults=load_default_config(),
            file_path=config_file_path,
            prefix=env_prefix,
            overrides_dict=config_overrides,
        )
    except Exception as e:
        raise ConfigError(f"Supernova configuration loading failed: {e}")
    logger.debug(f"Configuration loaded (file: {config_file_path or 'none'}, env prefix: {env_prefix}).")
    return config


__all__ = ["load_config", "load_default_config"]
