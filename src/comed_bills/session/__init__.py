"""Session model and on-disk session cache."""

from .models import AuthState, Authenticated, Cookie, Session, Unauthenticated
from .storage import SessionStore, TemporaryStorage

__all__ = [
    "AuthState",
    "Authenticated",
    "Cookie",
    "Session",
    "SessionStore",
    "TemporaryStorage",
    "Unauthenticated",
]
