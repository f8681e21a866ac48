# src/supernova/engine.py
"""
Streaming Conversation Engine.

Drives one user turn at a time: it snapshots the draft, appends the user
message and an empty pending assistant message, opens a streamed
completion and grows the assistant message fragment by fragment until the
stream ends (settled) or fails (error). The first exchange of a session also
kicks off background title synthesis.
"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, List, Optional, Set, Union

from . import profiles
from .exceptions import MessageStateError, SessionNotFoundError
from .models import (Attachment, Content, GenerationParams, Message,
                     MessageStatus, Part, Role)
from .profiles import ModelId
from .providers.base import BaseCompletionProvider
from .sessions.manager import SessionManager
from .titles import TitleSynthesizer

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = (
    "Ocorreu um erro ao processar sua solicitação. "
    "Por favor, verifique sua conexão ou tente novamente."
)


class EngineState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    SETTLED = "settled"
    FAILED = "failed"


def build_request_history(messages: List[Message]) -> List[Content]:
    """
    Maps stored messages to transport Contents.

    Each message contributes its text (when non-empty) and, for user turns,
    one inline part per attachment. Messages that end up with no parts are
    omitted.
    """
    history: List[Content] = []
    for message in messages:
        parts: List[Part] = []
        if message.content:
            parts.append(Part(text=message.content))
        if message.role == Role.USER:
            parts.extend(Part(inline_data=a) for a in message.attachments)
        if parts:
            history.append(Content(role=message.role, parts=parts))
    return history


def build_turn_parts(text: str, attachments: List[Attachment]) -> List[Part]:
    """Parts of the new user turn: the text first (if any), then each image."""
    parts: List[Part] = []
    if text:
        parts.append(Part(text=text))
    parts.extend(Part(inline_data=a) for a in attachments)
    return parts


class ConversationEngine:
    """
    Mediates exactly one in-flight completion request at a time.

    State machine: IDLE -> SENDING -> STREAMING -> (SETTLED | FAILED) -> IDLE.
    ``state`` returns to IDLE once a send has finished; ``last_outcome``
    keeps the terminal state of the most recent exchange.
    """

    def __init__(self,
                 sessions: SessionManager,
                 provider: BaseCompletionProvider,
                 titles: Optional[TitleSynthesizer] = None,
                 model_id: Union[ModelId, str] = ModelId.GEMINI_2_5_PRO,
                 error_message: str = DEFAULT_ERROR_MESSAGE,
                 params: Optional[GenerationParams] = None):
        self._sessions = sessions
        self._provider = provider
        self._titles = titles or TitleSynthesizer(provider)
        self._model_id = model_id
        self._error_message = error_message
        self._params = params or GenerationParams()
        self._streaming = False
        self._state = EngineState.IDLE
        self._last_outcome: Optional[EngineState] = None
        self._background_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_streaming(self) -> bool:
        return self._streaming

    @property
    def last_outcome(self) -> Optional[EngineState]:
        return self._last_outcome

    @property
    def model_id(self) -> Union[ModelId, str]:
        return self._model_id

    @model_id.setter
    def model_id(self, value: Union[ModelId, str]) -> None:
        self._model_id = value

    async def send(self, text: Optional[str] = None) -> Optional[Message]:
        """
        Sends one user turn and streams the reply into the current session.

        Args:
            text: Explicit text to send (e.g. a suggestion). Defaults to the draft text.
                  Draft attachments are sent either way.

        Returns:
            The assistant message in its terminal state, or None when the
            send was rejected or its session was deleted mid-stream.
        """
        if self._streaming:
            logger.debug("send ignored: a reply is already streaming.")
            return None
        draft = self._sessions.draft
        text_to_send = draft.text if text is None else text
        if not text_to_send.strip() and not draft.attachments:
            logger.debug("send ignored: nothing to send.")
            return None
        session = self._sessions.current_session
        if session is None:
            logger.debug("send ignored: no current session.")
            return None

        # Claimed before the first await so re-entrant sends are rejected.
        self._streaming = True
        self._state = EngineState.SENDING
        try:
            return await self._exchange(session.id, text_to_send)
        finally:
            self._streaming = False
            self._state = EngineState.IDLE

    async def _exchange(self, session_id: str, text: str) -> Optional[Message]:
        await self._fail_orphaned_replies(session_id)
        draft = self._sessions.take_draft()
        session = self._sessions.get_session(session_id)
        history = list(session.messages) if session else []

        user_message = Message(role=Role.USER, content=text, attachments=list(draft.attachments))
        placeholder = Message(role=Role.ASSISTANT, status=MessageStatus.PENDING)
        try:
            await self._sessions.append_message(session_id, user_message)
            await self._sessions.append_message(session_id, placeholder)
        except (SessionNotFoundError, MessageStateError) as e:
            logger.error(f"Could not start a reply in session '{session_id}': {e}")
            self._last_outcome = EngineState.FAILED
            return None

        if not history:
            self._spawn_title_task(session_id, text)

        buffer = ""
        stream: Optional[AsyncIterator[str]] = None
        try:
            profile = profiles.resolve(self._model_id)
            request_history = build_request_history(history)
            parts = build_turn_parts(text, user_message.attachments)
            logger.debug(f"Sending turn to '{profile.backend_model}' with {len(request_history)} history turns.")
            stream = await self._provider.open_stream(
                profile.backend_model, request_history, parts, profile.system_instruction, self._params)
            self._state = EngineState.STREAMING
            async for fragment in stream:
                if not fragment:
                    continue
                buffer += fragment
                await self._sessions.update_message(session_id, placeholder.id, content=buffer)
            final = await self._sessions.update_message(
                session_id, placeholder.id, content=buffer, status=MessageStatus.SETTLED)
            self._state = self._last_outcome = EngineState.SETTLED
            logger.info(f"Reply settled in session '{session_id}' ({len(buffer)} chars).")
            return final
        except SessionNotFoundError:
            logger.info(f"Session '{session_id}' was deleted while streaming; discarding reply.")
            await self._close_stream(stream)
            self._last_outcome = EngineState.FAILED
            return None
        except Exception as e:
            logger.error(f"Streaming reply failed in session '{session_id}': {e}", exc_info=True)
            await self._close_stream(stream)
            self._state = self._last_outcome = EngineState.FAILED
            try:
                return await self._sessions.update_message(
                    session_id, placeholder.id,
                    content=self._error_message, is_error=True, status=MessageStatus.ERROR)
            except SessionNotFoundError:
                logger.info(f"Session '{session_id}' was deleted before the failure could be recorded.")
                return None

    async def _fail_orphaned_replies(self, session_id: str) -> None:
        """Settles as errors any pending replies no stream is feeding."""
        session = self._sessions.get_session(session_id)
        if session is None:
            return
        for orphan in [m for m in session.messages if m.is_pending]:
            logger.warning(f"Reply '{orphan.id}' in session '{session_id}' has no active stream; marking it failed.")
            await self._sessions.update_message(
                session_id, orphan.id,
                content=orphan.content or self._error_message, is_error=True, status=MessageStatus.ERROR)

    @staticmethod
    async def _close_stream(stream: Optional[AsyncIterator[str]]) -> None:
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"Error closing abandoned stream: {e}")

    # --- Title side effect ---

    def _spawn_title_task(self, session_id: str, first_message: str) -> None:
        task = asyncio.create_task(self._apply_title(session_id, first_message))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _apply_title(self, session_id: str, first_message: str) -> None:
        try:
            title = await self._titles.synthesize(first_message)
            await self._sessions.rename_session(session_id, title)
            logger.debug(f"Session '{session_id}' titled '{title}'.")
        except Exception as e:
            logger.warning(f"Could not apply generated title to session '{session_id}': {e}")

    async def wait_for_background_tasks(self) -> None:
        """Waits for pending title tasks to finish."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    async def close(self) -> None:
        await self.wait_for_background_tasks()
