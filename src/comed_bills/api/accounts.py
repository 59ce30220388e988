"""Active account context for the portal session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..auth.manager import AuthManager
    from .client import ComEdClient

logger = logging.getLogger(__name__)


class AccountContext:
    """Keeps the server-side active account in step with what callers need.

    Billing endpoints act on whichever account the session last viewed, so
    the account must be switched before requesting data for another one.
    """

    def __init__(self, client: "ComEdClient", auth: "AuthManager"):
        self._client = client
        self._auth = auth

    @property
    def active_account(self) -> str | None:
        state = self._auth.state
        return getattr(state, "account", None)

    async def ensure_account(self, account_number: str) -> None:
        """Activate `account_number` unless it is already active.

        Raises:
            AuthenticationRequired: If not authenticated
            AccountActivationFailed: If the provider refuses the switch
        """
        state = self._auth.require_authenticated()
        if state.account == account_number:
            return

        logger.info("Activating account %s", account_number)
        await self._client.view_account(state.session, account_number)
        self._auth.bind_account(account_number)
