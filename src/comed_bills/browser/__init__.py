"""Browser-driven interactive login."""

from .login import BrowserLogin, cookie_from_cdp, origin_of

__all__ = ["BrowserLogin", "cookie_from_cdp", "origin_of"]
