"""Auth manager for the ComEd portal session.

Decides between reusing a cached session and running an interactive login,
derives the bearer token from whichever session is adopted, and gates every
authenticated operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..errors import AuthenticationRequired, LoginFailed
from ..session.models import Authenticated, AuthState, Session, Unauthenticated
from ..session.storage import SessionStore
from .token import derive_token
from .validator import SessionValidator

if TYPE_CHECKING:
    from ..api.client import ComEdClient
    from .base import LoginCollaborator

logger = logging.getLogger(__name__)


class AuthManager:
    """Owns the authentication state for one run.

    Handles:
    - Reusing a cached session when it still validates
    - Falling back to interactive login otherwise
    - Bearer token derivation for the adopted session
    - Best-effort persistence of freshly minted sessions

    Usage:
        manager = AuthManager(client, store, validator, login)
        await manager.authenticate("user@example.com", "password")
        state = manager.require_authenticated()
        print(state.token)

    Not safe for concurrent `authenticate()` calls.
    """

    def __init__(
        self,
        client: "ComEdClient",
        store: SessionStore,
        validator: SessionValidator,
        login: "LoginCollaborator",
    ):
        self.client = client
        self.store = store
        self.validator = validator
        self.login = login
        self._state: AuthState = Unauthenticated()
        self.cache_available: bool | None = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    def require_authenticated(self) -> Authenticated:
        """Return the current state, or raise if not authenticated."""
        state = self._state
        if not isinstance(state, Authenticated):
            raise AuthenticationRequired()
        return state

    async def authenticate(self, username: str, password: str) -> Authenticated:
        """Authenticate, reusing a cached session when possible.

        Returns:
            The adopted Authenticated state

        Raises:
            LoginFailed: If the interactive login fails
            TokenDerivationFailed: If a freshly minted session yields no token
        """
        cached = self.store.load(username)
        if cached is not None:
            token = await self.validator.validate(cached)
            if token is not None:
                logger.info("Reusing cached session for %s", username)
                return self._adopt(cached, token)
        else:
            logger.info("No cached session for %s", username)

        try:
            session = await self.login.login(username, password)
        except LoginFailed:
            raise
        except Exception as e:
            raise LoginFailed(f"Interactive login failed: {e}") from e

        token = await derive_token(self.client, session)
        state = self._adopt(session, token)
        self.cache_available = self.store.save(username, session)
        return state

    def _adopt(self, session: Session, token: str) -> Authenticated:
        state = Authenticated(session=session, token=token)
        self._state = state
        return state

    def bind_account(self, account_number: str) -> Authenticated:
        """Record `account_number` as the session's active account."""
        state = self.require_authenticated().with_account(account_number)
        self._state = state
        return state

    def invalidate(self, username: str | None = None) -> None:
        """Drop the current session, and its cache entry if a username is given."""
        self._state = Unauthenticated()
        if username:
            self.store.clear(username)
        logger.info("Session invalidated")
