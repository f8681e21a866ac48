# src/supernova/__init__.py
"""
Supernova - a conversational client library for Google Gemini.

Maintains a set of persisted chat sessions, sends user turns (text and
images) to the completion service and grows the assistant reply in place
as streamed fragments arrive.
"""

from importlib.metadata import PackageNotFoundError, version

from .api import Supernova
from .engine import ConversationEngine, EngineState
from .entitlement import EntitlementManager, payment_redirect_present
from .exceptions import (
    AttachmentError,
    ConfigError,
    EntitlementRequiredError,
    MessageNotFoundError,
    MessageStateError,
    ProviderError,
    SessionNotFoundError,
    SessionStorageError,
    StorageError,
    SupernovaError,
)
from .models import (
    Attachment,
    ChatSession,
    Content,
    Draft,
    GenerationParams,
    Message,
    MessageStatus,
    Part,
    Role,
)
from .profiles import ModelId, ModelProfile
from .sessions import SessionEvent, SessionEventType, SessionManager
from .storage import StorageManager
from .titles import TitleSynthesizer

try:
    __version__ = version("supernova")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # Core API
    "Supernova",
    "ConversationEngine",
    "EngineState",
    "SessionManager",
    "SessionEvent",
    "SessionEventType",
    "StorageManager",
    "EntitlementManager",
    "TitleSynthesizer",
    "payment_redirect_present",

    # Data Models
    "Attachment",
    "ChatSession",
    "Content",
    "Draft",
    "GenerationParams",
    "Message",
    "MessageStatus",
    "ModelId",
    "ModelProfile",
    "Part",
    "Role",

    # Exceptions
    "SupernovaError",
    "ConfigError",
    "ProviderError",
    "StorageError",
    "SessionStorageError",
    "SessionNotFoundError",
    "MessageNotFoundError",
    "MessageStateError",
    "AttachmentError",
    "EntitlementRequiredError",

    "__version__",
]
