"""Storage abstractions for tazz session records."""

from .models import SessionData, SessionRecord, SessionStatus
from .sessions import SessionStore

__all__ = [
    "SessionData",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
]
