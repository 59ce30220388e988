"""Authentication for the ComEd portal.

Usage:
    from comed_bills.auth import AuthManager

    manager = AuthManager(client, store, validator, login)
    await manager.authenticate("user@example.com", "password")
"""

from .base import LoginCollaborator
from .manager import AuthManager
from .token import derive_token
from .validator import SessionValidator, has_unexpired_cookies

__all__ = [
    "AuthManager",
    "LoginCollaborator",
    "SessionValidator",
    "derive_token",
    "has_unexpired_cookies",
]
