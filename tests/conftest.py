"""Shared test fixtures for the comed-bills test suite."""

import time
import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Any

from comed_bills.api.client import ComEdClient
from comed_bills.config import ComEdSettings
from comed_bills.session.models import Authenticated, Cookie, Session
from comed_bills.session.storage import SessionStore

SAMPLE_USERNAME = "alice"
SAMPLE_PASSWORD = "hunter2"
SAMPLE_ACCOUNT = "1234567890"
SAMPLE_TOKEN = "tok1"


def make_cookie(name: str = "ASP.NET_SessionId", value: str = "abc", **kwargs) -> Cookie:
    kwargs.setdefault("domain", "secure.comed.com")
    kwargs.setdefault("expires", time.time() + 3600)
    return Cookie(name=name, value=value, **kwargs)


def make_session(*cookies: Cookie) -> Session:
    return Session.from_cookies(cookies or (make_cookie(),))


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from the environment and the real temp directory."""
    return ComEdSettings(
        _env_file=None,
        username=None,
        password=None,
        cache_dir=str(tmp_path / "cache"),
        login_poll_interval=0,
    )


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "cache")


@pytest.fixture
def session():
    return make_session()


@pytest.fixture
def authenticated(session):
    return Authenticated(session=session, token=SAMPLE_TOKEN)


@pytest.fixture
def mock_response():
    """Factory fixture to create mock HTTP responses."""
    def _create_response(data: Any = None, status_code: int = 200):
        response = MagicMock()
        response.status_code = status_code
        if isinstance(data, Exception):
            response.json.side_effect = data
        else:
            response.json.return_value = data if data is not None else {}
        return response
    return _create_response


@pytest.fixture
def mock_http_client(mock_response):
    """Mock httpx.AsyncClient answering every call with an empty 200."""
    client = MagicMock()
    client.get = AsyncMock(return_value=mock_response())
    client.post = AsyncMock(return_value=mock_response())
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def client(settings, mock_http_client):
    """ComEdClient wired to the mock HTTP client."""
    return ComEdClient(settings, http_client=mock_http_client)


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()
