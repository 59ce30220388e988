"""Bills API - list and download bills within the provider's retention window."""

from __future__ import annotations

import base64
import binascii
import calendar
import datetime as dt
import logging
from pathlib import Path
from typing import Any, Callable, TYPE_CHECKING

from pydantic import BaseModel, ValidationError, field_validator

from ..errors import InvalidDateRange, RequestFailed

if TYPE_CHECKING:
    from ..auth.manager import AuthManager
    from .accounts import AccountContext
    from .client import ComEdClient

logger = logging.getLogger(__name__)

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%Y-%m-%dT%H:%M:%S")


def parse_bill_date(value: str) -> dt.date:
    """Parse the date formats the billing endpoints have been seen to return."""
    text = value.strip()
    try:
        return dt.datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized bill date: {value!r}")


def months_before(day: dt.date, months: int) -> dt.date:
    """Same calendar day `months` earlier, clamped to the month's length."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, min(day.day, last_day))


def _as_date(value: dt.date | dt.datetime) -> dt.date:
    return value.date() if isinstance(value, dt.datetime) else value


class BillRecord(BaseModel):
    """One entry of the billing and payment history."""

    type: str | None = None
    date: str
    payment_id: str | None = None
    charge_amount: float | None = None
    total_amount_due: float | None = None

    model_config = {"extra": "allow"}

    @field_validator("date")
    @classmethod
    def date_must_parse(cls, value: str) -> str:
        parse_bill_date(value)
        return value

    @property
    def bill_date(self) -> dt.date:
        return parse_bill_date(self.date)


class BillsAPI:
    """Bill listing and download for a single authenticated session.

    Usage:
        bills = BillsAPI(client, auth, accounts, retention_months=24)
        records = await bills.list_bills("1234567890", start, end)
        for record in records:
            await bills.download_bill("1234567890", record, "bills/")

    Downloads run one at a time in listing order.
    """

    def __init__(
        self,
        client: "ComEdClient",
        auth: "AuthManager",
        accounts: "AccountContext",
        retention_months: int = 24,
        today: Callable[[], dt.date] | None = None,
        now: Callable[[], dt.datetime] | None = None,
    ):
        self._client = client
        self._auth = auth
        self._accounts = accounts
        self.retention_months = retention_months
        self._today = today or dt.date.today
        self._now = now or dt.datetime.now

    def retention_horizon(self) -> dt.date:
        """Earliest date the provider still holds bills for."""
        return months_before(self._today(), self.retention_months)

    def validate_range(self, start: dt.date | dt.datetime, end: dt.date | dt.datetime) -> None:
        """Raise InvalidDateRange if the window cannot be served.

        A datetime `end` is checked against the current time, a date against
        today.
        """
        today = self._today()
        if _as_date(start) > _as_date(end):
            raise InvalidDateRange(f"Start date {start} is after end date {end}")
        if isinstance(end, dt.datetime):
            now = self._now()
            if end.tzinfo is not None:
                now = now.astimezone(end.tzinfo)
            elif now.tzinfo is not None:
                end = end.replace(tzinfo=now.tzinfo)
            if end > now:
                raise InvalidDateRange(f"End time {end} is in the future")
        elif end > today:
            raise InvalidDateRange(f"End date {end} is in the future")
        horizon = months_before(today, self.retention_months)
        if _as_date(start) < horizon:
            raise InvalidDateRange(
                f"Start date {start} is before the {self.retention_months}-month "
                f"retention horizon ({horizon})"
            )

    async def list_bills(
        self,
        account_number: str,
        start: dt.date | dt.datetime,
        end: dt.date | dt.datetime,
    ) -> list[BillRecord]:
        """List bills issued between `start` and `end`, inclusive.

        Raises:
            AuthenticationRequired: If not authenticated
            InvalidDateRange: If the window is invalid (no request is made)
            RequestFailed: If the provider returns an error
        """
        self._auth.require_authenticated()
        self.validate_range(start, end)
        start, end = _as_date(start), _as_date(end)

        await self._accounts.ensure_account(account_number)
        state = self._auth.require_authenticated()
        result = await self._client.get_billing_history(state, account_number, start, end)

        records = self._parse_history(result)
        return [r for r in records if start <= r.bill_date <= end]

    @staticmethod
    def _parse_history(result: dict[str, Any]) -> list[BillRecord]:
        if result.get("success") is False:
            raise RequestFailed("Billing history request was not successful", response=result)

        data = result.get("data") or {}
        history = data.get("billing_and_payment_history") if isinstance(data, dict) else None
        if not isinstance(history, list):
            raise RequestFailed("Billing history response is missing billing_and_payment_history", response=result)

        try:
            return [BillRecord.model_validate(item) for item in history]
        except ValidationError as e:
            raise RequestFailed(f"Malformed billing history record: {e}", response=result) from e

    async def download_bill(
        self,
        account_number: str,
        bill: BillRecord,
        directory: str | Path,
    ) -> Path:
        """Download one bill as `<account>-<yyyy-mm-dd>.pdf` into `directory`."""
        self._auth.require_authenticated()
        await self._accounts.ensure_account(account_number)
        state = self._auth.require_authenticated()

        bill_date = bill.bill_date
        result = await self._client.get_bill_document(state, account_number, bill_date)

        data = result.get("data") or {}
        encoded = data.get("billImageData") if isinstance(data, dict) else None
        if not isinstance(encoded, str) or not encoded:
            raise RequestFailed(f"No document returned for bill dated {bill_date}", response=result)
        try:
            content = base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise RequestFailed(f"Bill document for {bill_date} is not valid base64", response=result) from e

        out_dir = Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{account_number}-{bill_date.isoformat()}.pdf"
        path.write_bytes(content)
        logger.info("Saved %s", path)
        return path

    async def download_bills(
        self,
        account_number: str,
        start: dt.date | dt.datetime,
        end: dt.date | dt.datetime,
        directory: str | Path,
        on_start: Callable[[BillRecord], None] | None = None,
        on_done: Callable[[BillRecord, Path], None] | None = None,
    ) -> list[Path]:
        """List bills in the window and download each in order.

        The first failed download aborts the rest; files already written
        are kept.
        """
        bills = await self.list_bills(account_number, start, end)
        saved: list[Path] = []
        for bill in bills:
            if on_start:
                on_start(bill)
            path = await self.download_bill(account_number, bill, directory)
            saved.append(path)
            if on_done:
                on_done(bill, path)
        return saved
