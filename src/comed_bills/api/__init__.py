"""ComEd portal API module.

Usage:
    from comed_bills.api import ComEdClient, BillsAPI

    async with ComEdClient(settings) as api:
        info = await api.get_session_info(session)
"""

from .accounts import AccountContext
from .bills import BillRecord, BillsAPI, months_before, parse_bill_date
from .client import ComEdClient

__all__ = [
    "AccountContext",
    "BillRecord",
    "BillsAPI",
    "ComEdClient",
    "months_before",
    "parse_bill_date",
]
