"""ComEd API client - thin httpx wrapper around the customer portal endpoints.

Endpoints were taken from the portal's own browser traffic. Every call
carries the session cookies; data endpoints additionally need the bearer
token derived from the session (see `comed_bills.auth.token`).

The client is stateless with respect to authentication: callers pass the
session (or authenticated state) they want each request made with.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx

from ..config import ComEdSettings
from ..errors import AccountActivationFailed, AccountSessionExpired, RequestFailed, SessionExpired
from ..session.models import Authenticated, Session

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

STATEMENT_TYPE = "01"
BILLER_ID = "ComEdRegistered"


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class ComEdClient:
    """HTTP client for the ComEd customer portal.

    Usage:
        async with ComEdClient(settings) as api:
            info = await api.get_session_info(session)
            await api.view_account(session, "1234567890")
    """

    DEFAULT_HEADERS = {
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "en-US,en;q=0.5",
    }

    def __init__(self, settings: ComEdSettings, http_client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client: httpx.AsyncClient | None = http_client
        self._owns_client = http_client is None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout,
                headers=self.DEFAULT_HEADERS,
            )
        return self._client

    async def __aenter__(self) -> "ComEdClient":
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _raise_for_status(response: httpx.Response, message: str) -> None:
        if _is_success(response):
            return
        error_cls = SessionExpired if response.status_code in (401, 403) else RequestFailed
        raise error_cls(
            f"{message} (HTTP {response.status_code})",
            response.status_code,
            response,
        )

    @staticmethod
    def _auth_headers(state: Authenticated) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {state.token}",
            "Accept": "application/json",
            "cookie": state.session.cookie_header,
        }

    # Session

    async def get_session_info(self, session: Session) -> dict[str, Any]:
        """Fetch the session-info payload (carries the bearer token)."""
        resp = await self.http.get(
            self.settings.session_info_url,
            headers={"cookie": session.cookie_header},
        )
        self._raise_for_status(resp, "Failed to get bearer token")
        data = _json_or_none(resp)
        if not isinstance(data, dict):
            raise RequestFailed("Session info response was not a JSON object", resp.status_code, resp)
        return data

    # Accounts

    async def view_account(self, session: Session, account_number: str) -> None:
        """Make `account_number` the active account for this session."""
        resp = await self.http.post(
            self.settings.activate_account_url,
            json={"accountNumber": account_number},
            headers={
                "Content-Type": "application/json;charset=utf-8",
                "Referer": self.settings.change_account_referrer,
                "Sec-GPC": "1",
                "Sec-Fetch-Dest": "empty",
                "Sec-Fetch-Mode": "cors",
                "Sec-Fetch-Site": "same-origin",
                "cookie": session.cookie_header,
            },
        )
        if not _is_success(resp):
            error_cls = AccountSessionExpired if resp.status_code in (401, 403) else AccountActivationFailed
            raise error_cls(
                f"Failed to activate account {account_number} (HTTP {resp.status_code})",
                resp.status_code,
                resp,
            )

    # Billing

    async def get_billing_history(
        self,
        state: Authenticated,
        account_number: str,
        start: date,
        end: date,
    ) -> dict[str, Any]:
        """Fetch billing and payment history.

        The provider ignores the requested window and always returns its
        full retained history.
        """
        resp = await self.http.post(
            f"{self.settings.api_url}{account_number}/billing/history",
            json={
                "start_date": start.strftime(DATE_FORMAT),
                "end_date": end.strftime(DATE_FORMAT),
                "statement_type": STATEMENT_TYPE,
                "biller_id": BILLER_ID,
            },
            headers={**self._auth_headers(state), "Content-Type": "application/json"},
        )
        self._raise_for_status(resp, "Unable to gather bills for the specified dates")
        data = _json_or_none(resp)
        if not isinstance(data, dict):
            raise RequestFailed("Billing history response was not a JSON object", resp.status_code, resp)
        return data

    async def get_bill_document(
        self,
        state: Authenticated,
        account_number: str,
        bill_date: date,
    ) -> dict[str, Any]:
        """Fetch the bill document payload for one bill date."""
        resp = await self.http.get(
            f"{self.settings.api_url}{account_number}/billing/{bill_date.strftime(DATE_FORMAT)}/pdf",
            headers=self._auth_headers(state),
        )
        self._raise_for_status(resp, "Failed to download bill")
        data = _json_or_none(resp)
        if not isinstance(data, dict):
            raise RequestFailed("Bill document response was not a JSON object", resp.status_code, resp)
        return data
