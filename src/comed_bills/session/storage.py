"""Session cache stored in the system temporary directory.

Each username gets its own bucket directory named by an MD5 hash of the
username, so arbitrary usernames map to a stable, filesystem-safe location.

Note: Cookies are stored in plaintext and protected by file permissions
(0o700 directory, 0o600 files) only.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import Session

logger = logging.getLogger(__name__)

COOKIES_KEY = "cookies"

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]')


def sanitize_key(key: str) -> str:
    """Replace characters that are invalid in file names with underscores."""
    return _UNSAFE_CHARS.sub("_", key)


def bucket_name(identity: str) -> str:
    digest = hashlib.md5(identity.encode("utf-8")).hexdigest()
    return f"bucket-{sanitize_key(digest)}"


class TemporaryStorage:
    """Key/value text storage in a per-bucket temporary directory.

    Usage:
        storage = TemporaryStorage("user@example.com")
        storage.set("cookies", "[...]")
        value = storage.get("cookies")  # None when absent
    """

    def __init__(self, bucket: str, root: Path | str | None = None):
        root_dir = Path(root) if root else Path(tempfile.gettempdir())
        self.directory = root_dir / bucket_name(bucket)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{sanitize_key(key)}.tmp"

    def set(self, key: str, value: str) -> None:
        """Save a key/value pair."""
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        path = self.path_for(key)
        with open(path, "w", encoding="utf-8") as f:
            f.write(value)

        # Set restrictive permissions
        os.chmod(path, 0o600)

    def get(self, key: str) -> str | None:
        """Get the value for a key, or None if nothing is stored."""
        try:
            with open(self.path_for(key), encoding="utf-8") as f:
                return f.read()
        except (FileNotFoundError, NotADirectoryError):
            return None

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
            return True
        except (FileNotFoundError, NotADirectoryError):
            return False


class SessionStore:
    """Persists session cookie sets between runs, one bucket per username.

    Writes are best-effort: a failed write only costs a future re-login, so
    `save()` logs the failure and reports it through its return value
    instead of raising.
    """

    def __init__(self, root: Path | str | None = None):
        self.root = Path(root) if root else Path(tempfile.gettempdir())

    def _storage(self, identity: str) -> TemporaryStorage:
        return TemporaryStorage(identity, root=self.root)

    def path_for(self, identity: str) -> Path:
        return self._storage(identity).path_for(COOKIES_KEY)

    def load(self, identity: str) -> Session | None:
        """Load the cached session for a username, or None."""
        raw = self._storage(identity).get(COOKIES_KEY)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
            if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
                raise TypeError("cookie snapshot is not a list of cookie objects")
            return Session.from_list(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring unreadable session cache %s: %s", self.path_for(identity), e)
            return None

    def save(self, identity: str, session: Session) -> bool:
        """Persist a session. Returns False if the cache is unavailable."""
        try:
            self._storage(identity).set(COOKIES_KEY, json.dumps(session.to_list()))
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Session cache unavailable, next run will require login: %s", e)
            return False

    def clear(self, identity: str) -> bool:
        """Remove the cached session. Returns True if one existed."""
        try:
            return self._storage(identity).delete(COOKIES_KEY)
        except OSError as e:
            logger.warning("Could not clear session cache: %s", e)
            return False

    def get_status(self, identity: str, domains: list[str] | None = None) -> dict[str, Any]:
        """Get a summary of the cached session."""
        path = self.path_for(identity)
        session = self.load(identity)
        status: dict[str, Any] = {
            "cache_file": str(path),
            "cached": session is not None,
            "cookies": 0,
            "earliest_expiry": None,
            "expired_cookies": 0,
        }
        if session is None:
            return status

        cookies = session.for_domains(domains) if domains else list(session.cookies)
        persistent = [c for c in cookies if not c.is_transient]
        status["cookies"] = len(session)
        status["expired_cookies"] = sum(1 for c in persistent if c.is_expired())
        if persistent:
            earliest = min(c.expires for c in persistent)
            status["earliest_expiry"] = datetime.fromtimestamp(earliest).isoformat()
        return status
