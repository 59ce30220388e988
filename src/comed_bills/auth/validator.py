"""Checks whether a cached session can still be used."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Iterable

from ..config import ValidationStrategy
from ..errors import TokenDerivationFailed
from ..session.models import Session
from .token import derive_token

if TYPE_CHECKING:
    from ..api.client import ComEdClient

logger = logging.getLogger(__name__)


def has_unexpired_cookies(
    session: Session,
    domains: Iterable[str],
    now: float | None = None,
) -> bool:
    """Return True if every persistent provider cookie expires after `now`.

    Session-scoped cookies have no fixed expiry and are ignored. This cannot
    see server-side revocation, so a True result is only a hint.
    """
    now = time.time() if now is None else now
    return all(
        cookie.expires > now
        for cookie in session.for_domains(domains)
        if not cookie.is_transient
    )


class SessionValidator:
    """Decides whether a cached session is still usable.

    The live probe (deriving a bearer token) is authoritative. With
    `EXPIRY_THEN_PROBE` the cookie expiry check runs first so an obviously
    stale session never costs a request.
    """

    def __init__(
        self,
        client: "ComEdClient",
        domains: Iterable[str],
        strategy: ValidationStrategy = ValidationStrategy.EXPIRY_THEN_PROBE,
    ):
        self.client = client
        self.domains = list(domains)
        self.strategy = strategy

    def has_unexpired_cookies(self, session: Session, now: float | None = None) -> bool:
        return has_unexpired_cookies(session, self.domains, now)

    async def probe(self, session: Session) -> str | None:
        """Derive a bearer token, or None if the session was rejected."""
        try:
            return await derive_token(self.client, session)
        except TokenDerivationFailed as e:
            logger.info("Cached session rejected by session-info probe: %s", e)
            return None

    async def validate(self, session: Session) -> str | None:
        """Apply the configured strategy; returns the probe's token when usable."""
        if self.strategy == ValidationStrategy.EXPIRY_THEN_PROBE:
            if not self.has_unexpired_cookies(session):
                logger.info("Cached session has expired cookies")
                return None
        return await self.probe(session)

    async def is_usable(self, session: Session) -> bool:
        return await self.validate(session) is not None
