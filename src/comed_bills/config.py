"""Downloader configuration via pydantic-settings."""

from __future__ import annotations

import tempfile
from enum import Enum
from pathlib import Path
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings


class ValidationStrategy(str, Enum):
    """How a cached session is checked before it is reused."""

    PROBE = "probe"
    EXPIRY_THEN_PROBE = "expiry_then_probe"


class ComEdSettings(BaseSettings):
    username: str | None = None
    password: str | None = None

    base_url: str = "https://secure.comed.com/"
    api_url: str = "https://secure.comed.com/.euapi/mobile/custom/auth/accounts/"
    provider_domains: list[str] = ["secure.comed.com", ".secure.comed.com"]

    # Seconds; applies to every provider API call.
    request_timeout: float = 30.0

    # Session cache root; defaults to the system temp directory.
    cache_dir: str | None = None
    validation_strategy: ValidationStrategy = ValidationStrategy.EXPIRY_THEN_PROBE

    # The portal only retains 24 months of history.
    retention_months: int = 24
    history_months: int = 12

    # Interactive login
    headless: bool = False
    browser_profile_dir: str | None = None
    login_poll_interval: float = 1.0
    login_form_timeout: float = 60.0
    login_timeout_seconds: float | None = None

    model_config = {"env_prefix": "COMED_", "env_file": ".env", "extra": "ignore"}

    @property
    def origin(self) -> str:
        parts = urlsplit(self.base_url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def login_url(self) -> str:
        return f"{self.base_url}accounts/login"

    @property
    def session_info_url(self) -> str:
        return f"{self.base_url}api/services/myaccountservice.svc/getsession"

    @property
    def activate_account_url(self) -> str:
        return f"{self.base_url}api/Services/AccountList.svc/ViewAccount"

    @property
    def change_account_referrer(self) -> str:
        return f"{self.base_url}Pages/ChangeAccount.aspx"

    @property
    def cache_root(self) -> Path:
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return Path(tempfile.gettempdir())


def get_settings(**overrides) -> ComEdSettings:
    """Build settings from the environment, applying explicit overrides."""
    return ComEdSettings(**overrides)
