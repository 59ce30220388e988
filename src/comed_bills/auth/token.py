"""Bearer token derivation from session cookies."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from ..errors import RequestFailed, TokenDerivationFailed
from ..session.models import Session

if TYPE_CHECKING:
    from ..api.client import ComEdClient


async def derive_token(client: "ComEdClient", session: Session) -> str:
    """Exchange a session's cookies for a short-lived bearer token.

    Raises:
        TokenDerivationFailed: If the request fails (including transport
            errors) or the payload has no token
    """
    try:
        data = await client.get_session_info(session)
    except RequestFailed as e:
        raise TokenDerivationFailed(e.message, e.status_code, e.response) from e
    except httpx.HTTPError as e:
        raise TokenDerivationFailed(f"Session info request failed: {e}") from e

    token = data.get("token")
    if not isinstance(token, str) or not token:
        raise TokenDerivationFailed("Session info response did not include a token", response=data)
    return token
