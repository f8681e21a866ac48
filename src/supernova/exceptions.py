# src/supernova/exceptions.py
"""
Custom exceptions for the Supernova library.

This module defines a hierarchy of custom exception classes to provide
more specific error information and allow for targeted error handling
by applications embedding the session engine.
"""


class SupernovaError(Exception):
    """Base class for all Supernova specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in Supernova."):
        super().__init__(message)


class ConfigError(SupernovaError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)


class ProviderError(SupernovaError):
    """Raised for errors originating from the completion service (API errors, connection issues, malformed responses)."""
    def __init__(self, provider_name: str = "Unknown", message: str = "Provider error."):
        self.provider_name = provider_name
        super().__init__(f"Error with provider '{provider_name}': {message}")


class StorageError(SupernovaError):
    """Base class for errors related to the durable key-value store."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)


class SessionStorageError(StorageError):
    """Raised when the session collection cannot be read from or written to storage."""
    def __init__(self, message: str = "Session storage error."):
        super().__init__(message)


class SessionNotFoundError(StorageError):
    """
    Raised when a specified session ID is not part of the session collection.
    Inherits from StorageError as it's a lookup failure on stored state.
    """
    def __init__(self, session_id: str, message: str = "Session not found."):
        self.session_id = session_id
        super().__init__(f"{message} Session ID: '{session_id}'")


class MessageNotFoundError(StorageError):
    """Raised when a message ID does not exist within the given session."""
    def __init__(self, session_id: str, message_id: str, message: str = "Message not found."):
        self.session_id = session_id
        self.message_id = message_id
        super().__init__(f"{message} Session ID: '{session_id}', Message ID: '{message_id}'")


class MessageStateError(SupernovaError):
    """Raised when a message is mutated outside of its allowed lifecycle (user or terminal messages)."""
    def __init__(self, message: str = "Message can no longer be modified."):
        super().__init__(message)


class AttachmentError(SupernovaError):
    """Raised when a selected file cannot be read or encoded."""
    def __init__(self, message: str = "Attachment error."):
        super().__init__(message)


class EntitlementRequiredError(SupernovaError):
    """Raised when a premium model profile is selected without entitlement."""
    def __init__(self, model_id: str = "Unknown", message: str = "Premium entitlement required."):
        self.model_id = model_id
        super().__init__(f"{message} Model: '{model_id}'")
