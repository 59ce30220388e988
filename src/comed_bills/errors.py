"""Exceptions raised by the ComEd bill downloader."""

from __future__ import annotations

from typing import Any


class ComEdError(Exception):
    """Base exception for ComEd errors."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class AuthenticationRequired(ComEdError):
    """An authenticated operation was invoked before authenticating."""

    def __init__(self, message: str | None = None):
        super().__init__(message or "Operation can only be performed after authentication.")


class LoginFailed(ComEdError):
    """The interactive browser login did not complete."""

    pass


class LoginCancelled(LoginFailed):
    """The interactive login was cancelled or timed out."""

    pass


class TokenDerivationFailed(ComEdError):
    """The session-info endpoint did not yield a bearer token."""

    pass


class AccountActivationFailed(ComEdError):
    """The provider refused to switch the active account."""

    pass


class RequestFailed(ComEdError):
    """A provider endpoint returned a non-success response."""

    pass


class SessionExpired(RequestFailed):
    """A provider endpoint rejected the session credentials."""

    pass


class AccountSessionExpired(AccountActivationFailed, SessionExpired):
    """The account switch was refused because the session is no longer accepted."""

    pass


class InvalidDateRange(ComEdError, ValueError):
    """Requested bill window violates a client-side precondition."""

    pass
