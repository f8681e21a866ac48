# src/supernova/models.py
"""
Core data models for the Supernova library.

This module defines the Pydantic models used to represent chat sessions,
messages, image attachments, the composer draft and the provider-neutral
transport payload (Content/Part). These models ensure data consistency,
validation, and ease of serialization/deserialization throughout the library.

Serialized collections use camelCase aliases (``mimeType``, ``isError``,
``updatedAt``) so that data written by the browser client can be loaded
unchanged.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

DEFAULT_SESSION_TITLE = "Nova Conversa"


def _coerce_utc(v: Any) -> datetime:
    """Coerce ISO strings, epoch milliseconds and naive datetimes to aware UTC datetimes."""
    if v is None:
        return datetime.now(timezone.utc)
    if isinstance(v, bool):
        raise ValueError(f"Invalid datetime value: {v}")
    if isinstance(v, (int, float)):
        # The browser client stored Date.now(), i.e. milliseconds since the epoch.
        return datetime.fromtimestamp(v / 1000.0, tz=timezone.utc)
    if isinstance(v, str):
        try:
            if v.endswith('Z'):
                v_parsed = datetime.fromisoformat(v[:-1] + '+00:00')
            else:
                v_parsed = datetime.fromisoformat(v)
        except ValueError:
            for fmt in ("%Y-%m-%d %H:%M:%S.%f%z", "%Y-%m-%d %H:%M:%S%z", "%Y-%m-%d %H:%M:%S"):
                try:
                    v_parsed = datetime.strptime(v, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise ValueError(f"Invalid datetime format: {v}")
        v = v_parsed
    if isinstance(v, datetime):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
    return v


class Role(str, Enum):
    """
    Enumeration of possible roles in a conversation.
    """
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def _missing_(cls, value: object):  # type: ignore[misc]
        """
        Handles case-insensitive matching and provider aliases for roles.
        Gemini calls the assistant "model"; "agent" is accepted as well.
        """
        if isinstance(value, str):
            lower_value = value.lower()
            if lower_value in ("model", "agent"):
                return cls.ASSISTANT
            for member in cls:
                if member.value == lower_value:
                    return member
        return None


class MessageStatus(str, Enum):
    """Lifecycle of a message: assistant replies start pending and settle exactly once."""
    PENDING = "pending"
    SETTLED = "settled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not MessageStatus.PENDING


class Attachment(BaseModel):
    """
    An image attached to a user turn.

    Attributes:
        mime_type: The image MIME type, e.g. ``image/png``.
        data: The raw bytes, base64-encoded.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mime_type: str = Field(alias="mimeType", description="MIME type of the image (must be image/*).")
    data: str = Field(description="Base64-encoded image bytes.")

    @field_validator('mime_type')
    @classmethod
    def ensure_image_mime_type(cls, v: str) -> str:
        """Only image attachments are accepted."""
        normalized = v.strip().lower()
        if not normalized.startswith("image/"):
            raise ValueError(f"Attachment MIME type must be an image type, got '{v}'.")
        return normalized


class Message(BaseModel):
    """
    Represents a single message within a chat session.

    Attributes:
        id: A unique identifier for the message.
        role: The role of the entity that produced the message.
        content: The textual content of the message.
        timestamp: The date and time when the message was created (UTC).
        attachments: Images sent along with a user turn.
        is_error: True when the assistant reply failed and content holds the error text.
        status: Lifecycle state; only pending assistant messages may change.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier for the message.")
    role: Role = Field(description="The role of the message sender (user or assistant).")
    content: str = Field(default="", description="The textual content of the message.")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp of when the message was created (UTC).")
    attachments: List[Attachment] = Field(default_factory=list, description="Image attachments of a user turn, in selection order.")
    is_error: bool = Field(default=False, alias="isError", description="Whether this assistant message represents a failed reply.")
    status: MessageStatus = Field(default=MessageStatus.SETTLED, description="Lifecycle state of the message.")

    @model_validator(mode='before')
    @classmethod
    def derive_status_from_error_flag(cls, data: Any) -> Any:
        """Stored error messages without an explicit status load as terminal errors."""
        if isinstance(data, dict) and "status" not in data:
            if data.get("is_error") or data.get("isError"):
                data = {**data, "status": MessageStatus.ERROR}
        return data

    @field_validator('timestamp', mode='before')
    @classmethod
    def ensure_utc_timestamp(cls, v: Any) -> datetime:
        """Ensure the timestamp is timezone-aware and in UTC."""
        return _coerce_utc(v)

    @field_validator('attachments', mode='before')
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_pending(self) -> bool:
        return self.status is MessageStatus.PENDING


class ChatSession(BaseModel):
    """
    Represents one persisted conversation thread.

    ``messages`` is strictly append-ordered; messages are never reordered or
    removed individually.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique identifier for the chat session.")
    title: str = Field(default=DEFAULT_SESSION_TITLE, description="Human-readable session title.")
    messages: List[Message] = Field(default_factory=list, description="Messages in the conversation, in append order.")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="updatedAt", description="Timestamp of the last message mutation (UTC).")

    @field_validator('updated_at', mode='before')
    @classmethod
    def ensure_utc_timestamp(cls, v: Any) -> datetime:
        return _coerce_utc(v)

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def get_message(self, message_id: str) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id:
                return message
        return None

    @property
    def pending_message(self) -> Optional[Message]:
        """The assistant message currently being streamed into, if any."""
        for message in reversed(self.messages):
            if message.is_pending:
                return message
        return None


class Draft(BaseModel):
    """Pending composer input: text typed so far and images selected for the next turn."""
    text: str = ""
    attachments: List[Attachment] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip() and not self.attachments


class GenerationParams(BaseModel):
    """Sampling parameters sent with every streamed completion."""
    model_config = ConfigDict(frozen=True)

    temperature: float = 0.7
    top_k: int = 64
    top_p: float = 0.95


class Part(BaseModel):
    """One part of a transport turn: either text or an inline image."""
    model_config = ConfigDict(frozen=True)

    text: Optional[str] = None
    inline_data: Optional[Attachment] = None

    @model_validator(mode='after')
    def exactly_one_payload(self) -> "Part":
        if (self.text is None) == (self.inline_data is None):
            raise ValueError("A Part must carry exactly one of 'text' or 'inline_data'.")
        return self


class Content(BaseModel):
    """A provider-neutral conversation turn sent to the completion service."""
    model_config = ConfigDict(frozen=True)

    role: Role
    parts: List[Part]


SESSION_COLLECTION_ADAPTER = TypeAdapter(List[ChatSession])


def dump_sessions(sessions: List[ChatSession]) -> bytes:
    """Serialize a whole session collection to UTF-8 JSON bytes."""
    return SESSION_COLLECTION_ADAPTER.dump_json(sessions, by_alias=True)


def load_sessions(raw: bytes) -> List[ChatSession]:
    """Parse a serialized session collection; raises pydantic.ValidationError on bad data."""
    return SESSION_COLLECTION_ADAPTER.validate_json(raw)
