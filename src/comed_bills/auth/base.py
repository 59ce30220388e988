"""Interactive login protocol"""

from __future__ import annotations

from typing import Protocol

from ..session.models import Session


class LoginCollaborator(Protocol):
    """Produces a fresh session through a human-assisted login flow."""

    async def login(self, username: str, password: str) -> Session:
        """
        Log in and return the resulting cookie set. Raises LoginFailed on error.
        """
        ...
