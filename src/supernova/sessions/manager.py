# src/supernova/sessions/manager.py
"""
Session Management for Supernova.

This module defines the SessionManager class, which owns the collection of
ChatSession objects, the current-session pointer and the composer draft.
Every successful mutation re-serializes the whole collection and writes it
to the key-value store under a single fixed key.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..exceptions import (MessageNotFoundError, MessageStateError,
                          SessionNotFoundError, SessionStorageError)
from ..models import (Attachment, ChatSession, Draft, Message, MessageStatus,
                      Role, dump_sessions, load_sessions)
from ..storage.base_kv import BaseKeyValueStore

logger = logging.getLogger(__name__)

SESSIONS_KEY = "gemini-chat-sessions"

# Fields of a pending assistant message that the engine may patch.
_MUTABLE_MESSAGE_FIELDS = frozenset({"content", "status", "is_error"})


class SessionEventType(str, Enum):
    CREATED = "created"
    SELECTED = "selected"
    DELETED = "deleted"
    MESSAGE_APPENDED = "message_appended"
    MESSAGE_UPDATED = "message_updated"
    RENAMED = "renamed"


@dataclass(frozen=True)
class SessionEvent:
    """Notification delivered to listeners after a mutation has been applied."""
    type: SessionEventType
    session_id: str
    message: Optional[Message] = None


SessionListener = Callable[[SessionEvent], None]


class SessionManager:
    """
    Manages ChatSession objects, interacting with a key-value storage backend.

    The collection is kept in display order: index 0 is the most recently
    created session. Within a session, messages are only ever appended.
    """

    def __init__(self, storage: BaseKeyValueStore, storage_key: str = SESSIONS_KEY):
        """
        Initializes the SessionManager.

        Args:
            storage: An initialized key-value store.
            storage_key: Key under which the serialized collection is stored.
        """
        if storage is None:
            raise ValueError("SessionManager requires a valid storage backend instance.")
        self._storage = storage
        self._storage_key = storage_key
        self._sessions: List[ChatSession] = []
        self._current_session_id: Optional[str] = None
        self._draft = Draft()
        self._listeners: List[SessionListener] = []
        self._persist_lock = asyncio.Lock()
        logger.debug("SessionManager initialized with storage backend: %s", type(storage).__name__)

    # --- Accessors ---

    @property
    def sessions(self) -> List[ChatSession]:
        """The session collection in display order (a shallow copy)."""
        return list(self._sessions)

    @property
    def current_session_id(self) -> Optional[str]:
        return self._current_session_id

    @property
    def current_session(self) -> Optional[ChatSession]:
        if self._current_session_id is None:
            return None
        return self.get_session(self._current_session_id)

    @property
    def draft(self) -> Draft:
        return self._draft

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    def _require_session(self, session_id: str) -> ChatSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self) -> List[Dict[str, Any]]:
        """
        Session metadata in display order, without message bodies.

        Returns:
            A list of dicts with 'id', 'title', 'updated_at' and 'message_count'.
        """
        return [
            {
                "id": s.id,
                "title": s.title,
                "updated_at": s.updated_at,
                "message_count": len(s.messages),
            }
            for s in self._sessions
        ]

    # --- Listeners ---

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self, event_type: SessionEventType, session_id: str, message: Optional[Message] = None) -> None:
        event = SessionEvent(type=event_type, session_id=session_id, message=message)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Session listener {listener!r} failed on '{event_type.value}': {e}", exc_info=True)

    # --- Persistence ---

    async def _read_collection(self) -> Optional[bytes]:
        """
        Reads the raw serialized collection.

        Raises:
            SessionStorageError: If the backend fails for any reason.
        """
        try:
            return await self._storage.get(self._storage_key)
        except SessionStorageError:
            raise
        except Exception as e:
            raise SessionStorageError(f"Failed to read sessions from key '{self._storage_key}': {e}")

    async def _write_collection(self, payload: bytes) -> None:
        """
        Writes the raw serialized collection.

        Raises:
            SessionStorageError: If the backend fails for any reason.
        """
        try:
            await self._storage.set(self._storage_key, payload)
        except SessionStorageError:
            raise
        except Exception as e:
            raise SessionStorageError(f"Failed to write sessions to key '{self._storage_key}': {e}")

    async def load(self) -> None:
        """
        Rehydrates the collection from storage.

        A missing value, unreadable storage, or corrupt data is logged and
        treated as an empty collection. If no sessions exist afterwards, one
        empty session is created so the collection is never empty.
        """
        loaded: List[ChatSession] = []
        try:
            raw = await self._read_collection()
            if raw:
                loaded = load_sessions(raw)
                logger.info(f"Loaded {len(loaded)} sessions from storage key '{self._storage_key}'.")
            else:
                logger.info(f"No stored sessions found under key '{self._storage_key}'.")
        except ValidationError as e:
            logger.error(f"Failed to load sessions: stored data is corrupt: {e}")
        except SessionStorageError as e:
            logger.error(f"Failed to load sessions from storage: {e}")

        for session in loaded:
            # A reply interrupted by process exit can never settle.
            for stale in [m for m in session.messages if m.is_pending]:
                logger.warning(f"Marking interrupted reply '{stale.id}' in session '{session.id}' as failed.")
                stale.status = MessageStatus.ERROR
                stale.is_error = True

        self._sessions = loaded
        if self._sessions:
            self._current_session_id = self._sessions[0].id
        else:
            await self.create_session()

    async def _persist(self) -> None:
        """
        Writes the whole collection to storage.

        The snapshot is taken inside the lock so overlapping writers always
        leave the newest state on disk. Storage failures are logged; the
        in-memory collection remains authoritative and the next mutation
        rewrites everything.
        """
        async with self._persist_lock:
            payload = dump_sessions(self._sessions)
            try:
                await self._write_collection(payload)
                logger.debug(f"Persisted {len(self._sessions)} sessions ({len(payload)} bytes).")
            except SessionStorageError as e:
                logger.error(f"Failed to persist sessions: {e}")

    # --- Session lifecycle ---

    async def create_session(self) -> ChatSession:
        """
        Creates an empty session at the front of the collection and makes it current.
        Also clears the pending draft.
        """
        session = ChatSession()
        self._sessions.insert(0, session)
        self._current_session_id = session.id
        self._draft = Draft()
        logger.info(f"Created new session '{session.id}'.")
        self._notify(SessionEventType.CREATED, session.id)
        await self._persist()
        return session

    def select_session(self, session_id: str) -> bool:
        """
        Makes ``session_id`` the current session.

        Returns:
            False (and leaves the pointer unchanged) if the id is unknown.
        """
        if self.get_session(session_id) is None:
            logger.debug(f"select_session ignored: unknown session '{session_id}'.")
            return False
        self._current_session_id = session_id
        self._notify(SessionEventType.SELECTED, session_id)
        return True

    async def delete_session(self, session_id: str) -> bool:
        """
        Removes a session.

        If it was current, the most recent remaining session becomes current,
        or a new empty session is created when none remain.

        Returns:
            True if the session existed and was removed.
        """
        session = self.get_session(session_id)
        if session is None:
            logger.debug(f"delete_session ignored: unknown session '{session_id}'.")
            return False
        self._sessions = [s for s in self._sessions if s.id != session_id]
        logger.info(f"Deleted session '{session_id}'.")
        self._notify(SessionEventType.DELETED, session_id)

        if self._current_session_id == session_id:
            if self._sessions:
                self._current_session_id = self._sessions[0].id
                self._notify(SessionEventType.SELECTED, self._current_session_id)
            else:
                # create_session persists the collection
                await self.create_session()
                return True
        await self._persist()
        return True

    async def rename_session(self, session_id: str, title: str) -> ChatSession:
        """
        Sets a session's title.

        Raises:
            ValueError: If the title is blank.
            SessionNotFoundError: If the session does not exist.
        """
        if not title or not title.strip():
            raise ValueError("Session title cannot be empty.")
        session = self._require_session(session_id)
        session.title = title.strip()
        self._notify(SessionEventType.RENAMED, session_id)
        await self._persist()
        return session

    # --- Messages ---

    async def append_message(self, session_id: str, message: Message) -> Message:
        """
        Appends a message to the end of a session.

        Raises:
            SessionNotFoundError: If the session does not exist.
            MessageStateError: If the session already has a pending assistant message
                               and another pending one is appended.
        """
        session = self._require_session(session_id)
        if message.is_pending and session.pending_message is not None:
            raise MessageStateError(f"Session '{session_id}' already has a pending assistant message.")
        session.messages.append(message)
        session.touch()
        self._notify(SessionEventType.MESSAGE_APPENDED, session_id, message)
        await self._persist()
        return message

    async def update_message(self, session_id: str, message_id: str, **patch: Any) -> Message:
        """
        Applies ``patch`` to a pending assistant message in place.

        Only ``content``, ``status`` and ``is_error`` may be changed. User
        messages and messages that already reached a terminal state are
        immutable.

        Raises:
            SessionNotFoundError, MessageNotFoundError, MessageStateError, ValueError
        """
        unknown = set(patch) - _MUTABLE_MESSAGE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update message fields: {sorted(unknown)}")
        session = self._require_session(session_id)
        message = session.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(session_id, message_id)
        if message.role != Role.ASSISTANT or not message.is_pending:
            raise MessageStateError(f"Message '{message_id}' is {message.status.value} ({message.role.value}) and cannot be modified.")

        if "content" in patch:
            if not isinstance(patch["content"], str):
                raise ValueError("Message content must be a string.")
            message.content = patch["content"]
        if "status" in patch:
            message.status = MessageStatus(patch["status"])
        if "is_error" in patch:
            message.is_error = bool(patch["is_error"])
        session.touch()
        self._notify(SessionEventType.MESSAGE_UPDATED, session_id, message)
        await self._persist()
        return message

    # --- Draft ---

    def set_draft_text(self, text: str) -> None:
        self._draft.text = text

    def add_draft_attachments(self, attachments: List[Attachment]) -> None:
        self._draft.attachments.extend(attachments)

    def remove_draft_attachment(self, index: int) -> Optional[Attachment]:
        """Removes the draft attachment at ``index``; out-of-range indexes are ignored."""
        if 0 <= index < len(self._draft.attachments):
            return self._draft.attachments.pop(index)
        return None

    def take_draft(self) -> Draft:
        """Returns the current draft and replaces it with an empty one."""
        draft = self._draft
        self._draft = Draft()
        return draft
