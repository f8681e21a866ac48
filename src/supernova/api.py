# src/supernova/api.py
"""
Core API Facade for the Supernova library.
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from . import profiles
from .attachments import PathLike, ingest_files
from .config import load_config
from .engine import DEFAULT_ERROR_MESSAGE, ConversationEngine
from .entitlement import EntitlementManager, payment_redirect_present
from .exceptions import EntitlementRequiredError
from .models import DEFAULT_SESSION_TITLE, Attachment, ChatSession, Message
from .profiles import ModelId, ModelProfile
from .providers.base import BaseCompletionProvider
from .providers.manager import ProviderManager
from .sessions.manager import SessionListener, SessionManager
from .storage.base_kv import BaseKeyValueStore
from .storage.manager import StorageManager
from .titles import DEFAULT_TITLE_MODEL, TitleSynthesizer

try:
    from confy.loader import Config as ConfyConfig
except ImportError:
    ConfyConfig = Dict[str, Any]  # type: ignore [no-redef]

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = ModelId.GEMINI_2_5_PRO
UPGRADE_MODEL_ID = ModelId.GEMINI_3_PRO


class Supernova:
    """
    Main class of the Supernova chat client library.

    Wires configuration, storage, entitlement, sessions, the completion
    provider and the streaming engine together. It is initialized
    asynchronously using the `Supernova.create()` classmethod.
    """
    config: ConfyConfig
    _storage_manager: Optional[StorageManager]
    _provider_manager: Optional[ProviderManager]
    _store: BaseKeyValueStore
    _entitlement: EntitlementManager
    _session_manager: SessionManager
    _provider: BaseCompletionProvider
    _engine: ConversationEngine

    def __init__(self):
        """
        Private constructor. Use `Supernova.create()` for initialization.
        """
        self._storage_manager = None
        self._provider_manager = None

    @classmethod
    async def create(
        cls,
        config_overrides: Optional[Dict[str, Any]] = None,
        config_file_path: Optional[str] = None,
        env_prefix: Optional[str] = "SUPERNOVA",
        provider: Optional[BaseCompletionProvider] = None,
        kv_store: Optional[BaseKeyValueStore] = None,
        payment_query: Optional[str] = None,
    ) -> "Supernova":
        """
        Asynchronously creates and initializes a Supernova instance.

        Args:
            config_overrides: Dotted-key overrides with the highest precedence.
            config_file_path: Optional user TOML file.
            env_prefix: Environment variable prefix read by confy.
            provider: Completion provider to use instead of the configured one.
            kv_store: Initialized key-value store to use instead of the configured one.
            payment_query: Query string of the checkout return URL, if any.

        Raises:
            ConfigError: If configuration or a configured component is invalid.
            StorageError: If the configured storage backend cannot be initialized.
        """
        instance = cls()
        await instance._initialize(config_overrides, config_file_path, env_prefix, provider, kv_store, payment_query)
        return instance

    async def _initialize(self, config_overrides, config_file_path, env_prefix, provider, kv_store, payment_query) -> None:
        logger.info("Initializing Supernova components from configuration...")
        self.config = load_config(config_overrides, config_file_path, env_prefix)
        app_config = self.config.get("supernova", {}) or {}

        log_level_str = str(app_config.get("log_level", "INFO")).upper()
        level = logging.getLevelName(log_level_str)
        if isinstance(level, int):
            logging.getLogger("supernova").setLevel(level)

        if kv_store is None:
            self._storage_manager = StorageManager(self.config)
            kv_store = await self._storage_manager.initialize_storage()
        self._store = kv_store

        # The payment redirect is honoured before any session logic runs.
        self._entitlement = EntitlementManager(self._store)
        await self._entitlement.load()
        upgraded_by_redirect = False
        if not self._entitlement.is_premium and payment_redirect_present(payment_query):
            logger.info("Payment success marker detected; granting premium entitlement.")
            await self._entitlement.grant()
            upgraded_by_redirect = True

        self._session_manager = SessionManager(self._store)
        await self._session_manager.load()

        if provider is None:
            self._provider_manager = ProviderManager(self.config)
            provider = self._provider_manager.get_default_provider()
        self._provider = provider

        titles = TitleSynthesizer(
            provider,
            model=app_config.get("title_model", DEFAULT_TITLE_MODEL),
            default_title=app_config.get("default_title", DEFAULT_SESSION_TITLE),
        )
        self._engine = ConversationEngine(
            self._session_manager,
            provider,
            titles=titles,
            model_id=self._initial_model_id(app_config.get("default_model", DEFAULT_MODEL_ID.value)),
            error_message=app_config.get("error_message", DEFAULT_ERROR_MESSAGE),
        )
        if upgraded_by_redirect:
            self._engine.model_id = UPGRADE_MODEL_ID
        logger.info("Supernova components initialization complete.")

    def _initial_model_id(self, configured: str) -> Union[ModelId, str]:
        if profiles.is_available(configured, self._entitlement.is_premium):
            return configured
        logger.warning(f"Configured default model '{configured}' requires premium entitlement; using '{DEFAULT_MODEL_ID.value}'.")
        return DEFAULT_MODEL_ID

    # --- Accessors ---

    @property
    def sessions(self) -> SessionManager:
        return self._session_manager

    @property
    def engine(self) -> ConversationEngine:
        return self._engine

    @property
    def current_session(self) -> Optional[ChatSession]:
        return self._session_manager.current_session

    @property
    def is_premium(self) -> bool:
        return self._entitlement.is_premium

    @property
    def is_streaming(self) -> bool:
        return self._engine.is_streaming

    @property
    def model_id(self) -> Union[ModelId, str]:
        return self._engine.model_id

    @property
    def active_profile(self) -> ModelProfile:
        return profiles.resolve(self._engine.model_id)

    def add_listener(self, listener: SessionListener) -> None:
        self._session_manager.add_listener(listener)

    # --- Sessions ---

    async def new_chat(self) -> ChatSession:
        return await self._session_manager.create_session()

    def select_chat(self, session_id: str) -> bool:
        return self._session_manager.select_session(session_id)

    async def delete_chat(self, session_id: str) -> bool:
        return await self._session_manager.delete_session(session_id)

    async def rename_chat(self, session_id: str, title: str) -> ChatSession:
        return await self._session_manager.rename_session(session_id, title)

    def list_chats(self) -> List[Dict[str, Any]]:
        return self._session_manager.list_sessions()

    # --- Composer ---

    def set_input(self, text: str) -> None:
        self._session_manager.set_draft_text(text)

    async def attach_files(self, paths: Iterable[PathLike]) -> List[Attachment]:
        """
        Reads the selected files and adds the images among them to the draft.

        Returns:
            The attachments that were added (non-images are skipped).
        """
        attachments = await ingest_files(paths)
        self._session_manager.add_draft_attachments(attachments)
        return attachments

    def remove_attachment(self, index: int) -> Optional[Attachment]:
        return self._session_manager.remove_draft_attachment(index)

    # --- Models & entitlement ---

    def available_models(self) -> List[ModelProfile]:
        """Profiles the current user may select."""
        return [p for p in profiles.list_profiles() if profiles.is_available(p.model_id, self.is_premium)]

    def select_model(self, model_id: Union[ModelId, str]) -> ModelProfile:
        """
        Switches the active model profile.

        Raises:
            EntitlementRequiredError: If the profile is premium and the user is not.
        """
        value = model_id.value if isinstance(model_id, ModelId) else model_id
        if not profiles.is_available(value, self.is_premium):
            raise EntitlementRequiredError(value)
        self._engine.model_id = model_id
        logger.info(f"Active model set to '{value}'.")
        return profiles.resolve(model_id)

    async def upgrade(self) -> None:
        """Grants premium entitlement and switches to the top-tier model."""
        await self._entitlement.grant()
        self._engine.model_id = UPGRADE_MODEL_ID

    # --- Exchange ---

    async def send(self, text: Optional[str] = None) -> Optional[Message]:
        """Sends the draft (or ``text``) to the current session; see ConversationEngine.send."""
        return await self._engine.send(text)

    async def close(self) -> None:
        """Waits for background work and closes provider and storage connections."""
        logger.info("Closing Supernova resources...")
        await self._engine.close()
        closers = []
        if self._provider_manager is not None:
            closers.append(self._provider_manager.close_providers())
        if self._storage_manager is not None:
            closers.append(self._storage_manager.close_storage())
        results = await asyncio.gather(*closers, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Error during Supernova shutdown: {result}", exc_info=result)
        logger.info("Supernova resources cleanup complete.")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
