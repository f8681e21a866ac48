# src/supernova/entitlement.py
"""
Premium entitlement flag.

The flag is process-wide, persisted in the key-value store, and only ever
goes from false to true. It is granted either explicitly (an upgrade) or at
startup when the payment checkout redirected back with a success marker.
"""

import logging
import os
from typing import Mapping, Optional
from urllib.parse import parse_qs

from .exceptions import StorageError
from .storage.base_kv import BaseKeyValueStore

logger = logging.getLogger(__name__)

ENTITLEMENT_KEY = "supernova-premium"
ENTITLEMENT_VALUE = b"true"
PAYMENT_QUERY_PARAM = "payment_success"
PAYMENT_ENV_VAR = "SUPERNOVA_PAYMENT_SUCCESS"

_TRUTHY = {"1", "true", "yes", "on"}


def payment_redirect_present(query_string: Optional[str] = None,
                             environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Whether the checkout flow reported a successful payment.

    Args:
        query_string: Raw query string of the return URL (a leading '?' is allowed).
        environ: Environment mapping; defaults to ``os.environ``.
    """
    if query_string:
        params = parse_qs(query_string.lstrip("?"))
        if "true" in params.get(PAYMENT_QUERY_PARAM, []):
            return True
    env = os.environ if environ is None else environ
    return env.get(PAYMENT_ENV_VAR, "").strip().lower() in _TRUTHY


class EntitlementManager:
    """Reads and grants the premium flag."""

    def __init__(self, storage: BaseKeyValueStore, storage_key: str = ENTITLEMENT_KEY):
        self._storage = storage
        self._storage_key = storage_key
        self._is_premium = False

    @property
    def is_premium(self) -> bool:
        return self._is_premium

    async def load(self) -> bool:
        """Reads the persisted flag. Unreadable storage leaves the user non-premium."""
        try:
            value = await self._storage.get(self._storage_key)
        except StorageError as e:
            logger.error(f"Failed to read entitlement flag: {e}")
            value = None
        self._is_premium = value == ENTITLEMENT_VALUE
        logger.debug(f"Entitlement loaded: premium={self._is_premium}")
        return self._is_premium

    async def grant(self) -> None:
        """Marks the user premium and persists the flag. Persistence failures are logged."""
        self._is_premium = True
        try:
            await self._storage.set(self._storage_key, ENTITLEMENT_VALUE)
            logger.info("Premium entitlement granted.")
        except StorageError as e:
            logger.error(f"Premium entitlement granted but could not be persisted: {e}")
