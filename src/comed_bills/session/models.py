"""Session and authentication-state values.

A `Session` is the cookie set a browser login leaves behind. It is never
patched; a new login replaces it wholesale. `AuthState` is swapped as a
whole by the `AuthManager`, so any operation working from a snapshot sees a
consistent session/token/account triple.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Union


@dataclass(frozen=True)
class Cookie:
    """A single browser cookie."""

    name: str
    value: str
    domain: str = ""
    path: str = "/"
    expires: float = -1  # Unix timestamp (seconds); -1 for session cookies
    secure: bool = False
    http_only: bool = False
    session: bool = False

    @property
    def is_transient(self) -> bool:
        """Session-scoped cookies carry no fixed expiry."""
        return self.session or self.expires is None or self.expires < 0

    def is_expired(self, now: float | None = None) -> bool:
        if self.is_transient:
            return False
        now = time.time() if now is None else now
        return self.expires <= now

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase shape browsers export."""
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires,
            "secure": self.secure,
            "httpOnly": self.http_only,
            "session": self.session,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cookie":
        expires = data.get("expires")
        return cls(
            name=data["name"],
            value=data["value"],
            domain=data.get("domain", ""),
            path=data.get("path", "/"),
            expires=-1 if expires is None else float(expires),
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("httpOnly", data.get("http_only", False))),
            session=bool(data.get("session", False)),
        )


@dataclass(frozen=True)
class Session:
    """Ordered cookie set proving an authenticated identity."""

    cookies: tuple[Cookie, ...] = field(default_factory=tuple)

    @classmethod
    def from_cookies(cls, cookies: Iterable[Cookie]) -> "Session":
        return cls(cookies=tuple(cookies))

    @property
    def cookie_header(self) -> str:
        """Cookies as an HTTP `cookie` header value."""
        return "; ".join(f"{c.name}={c.value}" for c in self.cookies)

    def for_domains(self, domains: Iterable[str]) -> list[Cookie]:
        wanted = set(domains)
        return [c for c in self.cookies if c.domain in wanted]

    def to_list(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.cookies]

    @classmethod
    def from_list(cls, data: list[dict[str, Any]]) -> "Session":
        return cls(cookies=tuple(Cookie.from_dict(item) for item in data))

    def __len__(self) -> int:
        return len(self.cookies)


@dataclass(frozen=True)
class Unauthenticated:
    """No session has been adopted in this run."""

    @property
    def is_authenticated(self) -> bool:
        return False


@dataclass(frozen=True)
class Authenticated:
    """An adopted session with its derived bearer token."""

    session: Session
    token: str
    account: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return True

    def with_account(self, account: str) -> "Authenticated":
        return replace(self, account=account)


AuthState = Union[Unauthenticated, Authenticated]
