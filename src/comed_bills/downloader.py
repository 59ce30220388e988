"""ComEd bill downloader - wires the session, auth and billing pieces together.

Unlike the web portal, this downloads every bill in a window in one go. A
previous session is reused across runs when it still validates, so the
browser only opens when a fresh login is needed.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Callable

from .api.accounts import AccountContext
from .api.bills import BillRecord, BillsAPI, months_before
from .api.client import ComEdClient
from .auth.base import LoginCollaborator
from .auth.manager import AuthManager
from .auth.validator import SessionValidator
from .browser.login import BrowserLogin
from .config import ComEdSettings
from .errors import SessionExpired
from .session.models import Authenticated
from .session.storage import SessionStore

logger = logging.getLogger(__name__)


class BillDownloader:
    """Bulk bill downloader for one ComEd login.

    Usage:
        async with BillDownloader() as downloader:
            await downloader.authenticate("user@example.com", "password")
            bills = await downloader.list_bills("1234567890", start, end)
            await downloader.bulk_download("1234567890", "bills/")

    If a call fails because the provider no longer accepts the session, the
    session is invalidated (and its cache entry removed) before the
    SessionExpired error is re-raised; authenticate again to continue.
    """

    def __init__(
        self,
        settings: ComEdSettings | None = None,
        client: ComEdClient | None = None,
        store: SessionStore | None = None,
        login: LoginCollaborator | None = None,
        today: Callable[[], dt.date] | None = None,
    ):
        self.settings = settings or ComEdSettings()
        self.client = client or ComEdClient(self.settings)
        self.store = store or SessionStore(self.settings.cache_root)
        self.validator = SessionValidator(
            self.client,
            self.settings.provider_domains,
            self.settings.validation_strategy,
        )
        self.auth = AuthManager(
            self.client,
            self.store,
            self.validator,
            login or BrowserLogin(self.settings),
        )
        self.accounts = AccountContext(self.client, self.auth)
        self._today = today or dt.date.today
        self.bills = BillsAPI(
            self.client,
            self.auth,
            self.accounts,
            retention_months=self.settings.retention_months,
            today=self._today,
        )
        self._username: str | None = None

    async def __aenter__(self) -> "BillDownloader":
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self.client.close()

    @property
    def is_authenticated(self) -> bool:
        return self.auth.is_authenticated

    async def authenticate(self, username: str, password: str) -> Authenticated:
        """Authenticate, opening a browser only if the cached session is unusable."""
        state = await self.auth.authenticate(username, password)
        self._username = username
        return state

    def _expired(self, error: SessionExpired) -> None:
        logger.warning("Provider rejected the session: %s", error)
        self.auth.invalidate(self._username)

    async def list_bills(
        self,
        account_number: str,
        start: dt.date | dt.datetime,
        end: dt.date | dt.datetime,
    ) -> list[BillRecord]:
        """List bills issued between `start` and `end`, inclusive."""
        try:
            return await self.bills.list_bills(account_number, start, end)
        except SessionExpired as e:
            self._expired(e)
            raise

    async def bulk_download(
        self,
        account_number: str,
        directory: str | Path,
        months: int | None = None,
        on_start: Callable[[BillRecord], None] | None = None,
        on_done: Callable[[BillRecord, Path], None] | None = None,
    ) -> list[Path]:
        """Download every bill from the last `months` months (default from settings)."""
        months = self.settings.history_months if months is None else months
        end = self._today()
        start = months_before(end, months)
        try:
            return await self.bills.download_bills(
                account_number,
                start,
                end,
                directory,
                on_start=on_start,
                on_done=on_done,
            )
        except SessionExpired as e:
            self._expired(e)
            raise
