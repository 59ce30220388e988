"""Interactive ComEd login in a real Chrome window (nodriver).

The portal signs in through an Azure B2C page and may add MFA or captcha
steps, so the window is headed and the user finishes whatever the page asks
for. The login is considered complete once the tab is back on the portal's
origin; the browser's cookies at that point become the session.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

from ..config import ComEdSettings
from ..errors import LoginCancelled, LoginFailed
from ..session.models import Cookie, Session

logger = logging.getLogger(__name__)

USERNAME_SELECTOR = "#signInName"
PASSWORD_SELECTOR = "#password"
SUBMIT_SELECTOR = "#next"


def origin_of(url: str) -> str:
    parts = urlsplit(url or "")
    return f"{parts.scheme}://{parts.netloc}"


def cookie_from_cdp(cookie: Any) -> Cookie:
    """Convert a CDP `Network.Cookie` into a `Cookie`."""
    expires = getattr(cookie, "expires", None)
    session = bool(getattr(cookie, "session", False))
    return Cookie(
        name=cookie.name,
        value=cookie.value,
        domain=getattr(cookie, "domain", "") or "",
        path=getattr(cookie, "path", "/") or "/",
        expires=-1 if expires is None or session else float(expires),
        secure=bool(getattr(cookie, "secure", False)),
        http_only=bool(getattr(cookie, "http_only", False)),
        session=session,
    )


async def _start_browser(settings: ComEdSettings):
    import nodriver as uc

    config = uc.Config()
    config.sandbox = False  # Adds --no-sandbox when False.
    config.headless = settings.headless
    if settings.browser_profile_dir:
        profile_dir = Path(settings.browser_profile_dir).expanduser()
        profile_dir.mkdir(parents=True, exist_ok=True)
        config.user_data_dir = str(profile_dir)
    return await uc.start(config=config)


class BrowserLogin:
    """Login collaborator that drives a headed Chrome session.

    Usage:
        login = BrowserLogin(settings)
        session = await login.login("user@example.com", "password")

    By default there is no time limit on the login; pass `cancel_event`
    (set it to abort) or configure `login_timeout_seconds` to bound it.
    """

    def __init__(
        self,
        settings: ComEdSettings,
        cancel_event: asyncio.Event | None = None,
        browser_factory: Callable[[ComEdSettings], Awaitable[Any]] | None = None,
    ):
        self.settings = settings
        self.cancel_event = cancel_event
        self._browser_factory = browser_factory or _start_browser

    async def login(self, username: str, password: str) -> Session:
        """Run the login flow and return the resulting session cookies."""
        try:
            browser = await self._browser_factory(self.settings)
        except Exception as e:
            raise LoginFailed(f"Failed to start browser: {e}") from e

        try:
            tab = await browser.get(self.settings.login_url)
            await self._fill_credentials(tab, username, password)

            wait = self._wait_for_portal(tab)
            timeout = self.settings.login_timeout_seconds
            if timeout is None:
                await wait
            else:
                try:
                    await asyncio.wait_for(wait, timeout=timeout)
                except asyncio.TimeoutError as e:
                    raise LoginCancelled(f"Login not completed within {timeout:g} seconds") from e

            cookies = await browser.cookies.get_all()
            session = Session.from_cookies(cookie_from_cdp(c) for c in cookies)
            logger.info("Login complete, captured %d cookies", len(session))
            return session
        except LoginFailed:
            raise
        except Exception as e:
            raise LoginFailed(f"Login flow failed: {e}") from e
        finally:
            try:
                browser.stop()
            except Exception as e:
                logger.debug("Browser stop failed: %s", e)

    async def _fill_credentials(self, tab: Any, username: str, password: str) -> None:
        """Fill the B2C sign-in form and submit it."""
        timeout = self.settings.login_form_timeout
        username_input = await tab.select(USERNAME_SELECTOR, timeout=timeout)
        await username_input.send_keys(username)
        password_input = await tab.select(PASSWORD_SELECTOR, timeout=timeout)
        await password_input.send_keys(password)
        submit = await tab.select(SUBMIT_SELECTOR, timeout=timeout)
        await submit.click()

    async def _wait_for_portal(self, tab: Any) -> None:
        """Poll until the tab is back on the portal origin (MFA may intervene)."""
        expected = self.settings.origin
        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise LoginCancelled("Login cancelled")

            try:
                url = await tab.evaluate("window.location.href")
            except Exception:
                # Evaluation can fail mid-navigation; try again next tick.
                url = None

            if isinstance(url, str) and origin_of(url) == expected:
                return
            await asyncio.sleep(self.settings.login_poll_interval)
