"""ComEd bill downloader.

Bulk-downloads historical utility bills from the ComEd customer portal,
reusing a cached browser session between runs.

Usage:
    from comed_bills import BillDownloader

    async with BillDownloader() as downloader:
        await downloader.authenticate("user@example.com", "password")
        await downloader.bulk_download("1234567890", "bills/")
"""

from .downloader import BillDownloader

__version__ = "0.1.0"

__all__ = ["BillDownloader", "__version__"]
