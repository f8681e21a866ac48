# src/supernova/sessions/__init__.py
"""
Session management for Supernova: the in-memory session collection, its
persistence, the composer draft and change notifications.
"""

from .manager import (SESSIONS_KEY, SessionEvent, SessionEventType,
                      SessionListener, SessionManager)

__all__ = ["SessionManager", "SessionEvent", "SessionEventType", "SessionListener", "SESSIONS_KEY"]
