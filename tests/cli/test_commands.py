"""Tests for the comed-bills CLI."""

import json
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from comed_bills.api.bills import BillRecord
from comed_bills.cli import app
from comed_bills.errors import InvalidDateRange, LoginFailed, SessionExpired

from conftest import SAMPLE_ACCOUNT, make_session

BILLS = [
    BillRecord(type="bill", date="2024-04-15", charge_amount=91.5, total_amount_due=91.5),
    BillRecord(type="bill", date="2024-05-15", charge_amount=77.0, total_amount_due=77.0),
]


@pytest.fixture(autouse=True)
def cli_settings(settings):
    with patch("comed_bills.cli._settings", return_value=settings):
        yield settings


@pytest.fixture
def downloader():
    downloader = MagicMock()
    downloader.__aenter__ = AsyncMock(return_value=downloader)
    downloader.__aexit__ = AsyncMock(return_value=False)
    downloader.authenticate = AsyncMock()
    downloader.auth.cache_available = True
    downloader.list_bills = AsyncMock(return_value=BILLS)
    return downloader


@pytest.fixture
def mock_downloader(downloader):
    with patch("comed_bills.downloader.BillDownloader", return_value=downloader):
        yield downloader


class TestVersion:

    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "comed-bills v" in result.output


class TestAuthCommands:

    def test_login_with_options(self, cli_runner, mock_downloader):
        result = cli_runner.invoke(app, ["auth", "login", "-u", "alice", "-p", "pw"])

        assert result.exit_code == 0
        assert "Signed in as alice" in result.output
        mock_downloader.authenticate.assert_awaited_once_with("alice", "pw")

    def test_login_prompts_for_credentials(self, cli_runner, mock_downloader):
        result = cli_runner.invoke(app, ["auth", "login"], input="alice\npw\n")

        assert result.exit_code == 0
        mock_downloader.authenticate.assert_awaited_once_with("alice", "pw")

    def test_login_uses_configured_credentials(self, cli_runner, mock_downloader, cli_settings):
        cli_settings.username = "bob"
        cli_settings.password = "secret"

        result = cli_runner.invoke(app, ["auth", "login"])

        assert result.exit_code == 0
        mock_downloader.authenticate.assert_awaited_once_with("bob", "secret")

    def test_login_warns_when_cache_unavailable(self, cli_runner, mock_downloader):
        mock_downloader.auth.cache_available = False

        result = cli_runner.invoke(app, ["auth", "login", "-u", "alice", "-p", "pw"])

        assert result.exit_code == 0
        assert "could not be cached" in result.output

    def test_login_failure(self, cli_runner, mock_downloader):
        mock_downloader.authenticate.side_effect = LoginFailed("window closed")

        result = cli_runner.invoke(app, ["auth", "login", "-u", "alice", "-p", "pw"])

        assert result.exit_code == 1
        assert "window closed" in result.output

    def test_status_without_cache(self, cli_runner):
        result = cli_runner.invoke(app, ["auth", "status", "-u", "alice"])

        assert result.exit_code == 0
        assert "No cached session" in result.output

    def test_status_with_cache(self, cli_runner, cli_settings):
        from comed_bills.session.storage import SessionStore

        SessionStore(cli_settings.cache_root).save("alice", make_session())

        result = cli_runner.invoke(app, ["auth", "status", "-u", "alice"])

        assert result.exit_code == 0
        assert "Cached" in result.output

    def test_clear(self, cli_runner, cli_settings):
        from comed_bills.session.storage import SessionStore

        store = SessionStore(cli_settings.cache_root)
        store.save("alice", make_session())

        result = cli_runner.invoke(app, ["auth", "clear", "-u", "alice", "--force"])

        assert result.exit_code == 0
        assert "cleared" in result.output
        assert store.load("alice") is None

    def test_clear_declined(self, cli_runner, cli_settings):
        from comed_bills.session.storage import SessionStore

        store = SessionStore(cli_settings.cache_root)
        store.save("alice", make_session())

        result = cli_runner.invoke(app, ["auth", "clear", "-u", "alice"], input="n\n")

        assert result.exit_code == 0
        assert store.load("alice") is not None


class TestBillCommands:

    def test_list_table(self, cli_runner, mock_downloader):
        result = cli_runner.invoke(
            app,
            ["bills", "list", SAMPLE_ACCOUNT, "--from", "2024-01-01", "--to", "2024-06-01", "-u", "alice", "-p", "pw"],
        )

        assert result.exit_code == 0
        assert "2024-05-15" in result.output
        assert "2 bills" in result.output
        args = mock_downloader.list_bills.call_args.args
        assert args[1].isoformat() == "2024-01-01"
        assert args[2].isoformat() == "2024-06-01"

    def test_list_json(self, cli_runner, mock_downloader):
        result = cli_runner.invoke(
            app, ["bills", "list", SAMPLE_ACCOUNT, "--to", "2024-06-01", "--json", "-u", "alice", "-p", "pw"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [b["date"] for b in data] == ["2024-04-15", "2024-05-15"]
        # Default start is history_months before the end date
        assert mock_downloader.list_bills.call_args.args[1].isoformat() == "2023-06-01"

    def test_list_invalid_range(self, cli_runner, mock_downloader):
        mock_downloader.list_bills.side_effect = InvalidDateRange("Start date is after end date")

        result = cli_runner.invoke(app, ["bills", "list", SAMPLE_ACCOUNT, "-u", "alice", "-p", "pw"])

        assert result.exit_code == 1
        assert "after end date" in result.output

    def test_download_progress(self, cli_runner, mock_downloader, tmp_path):
        async def _bulk(account, directory, months=None, on_start=None, on_done=None):
            paths = []
            for bill in BILLS:
                on_start(bill)
                path = Path(directory) / f"{account}-{bill.bill_date.isoformat()}.pdf"
                on_done(bill, path)
                paths.append(path)
            return paths

        mock_downloader.bulk_download = AsyncMock(side_effect=_bulk)

        result = cli_runner.invoke(
            app, ["bills", "download", SAMPLE_ACCOUNT, "--dir", str(tmp_path), "-m", "6", "-u", "alice", "-p", "pw"]
        )

        assert result.exit_code == 0
        assert "Downloading bill for 04/2024" in result.output
        assert "Downloading bill for 05/2024" in result.output
        assert result.output.count("Success!") == 2
        assert "Downloaded 2 bills" in result.output
        assert mock_downloader.bulk_download.call_args.kwargs["months"] == 6

    def test_download_reauthenticates_once_on_expiry(self, cli_runner, mock_downloader, tmp_path):
        mock_downloader.bulk_download = AsyncMock(side_effect=[SessionExpired("expired", 401), []])

        result = cli_runner.invoke(
            app, ["bills", "download", SAMPLE_ACCOUNT, "--dir", str(tmp_path), "-u", "alice", "-p", "pw"]
        )

        assert result.exit_code == 0
        assert mock_downloader.authenticate.await_count == 2
        assert mock_downloader.bulk_download.await_count == 2

    def test_download_gives_up_after_second_expiry(self, cli_runner, mock_downloader, tmp_path):
        mock_downloader.bulk_download = AsyncMock(side_effect=SessionExpired("expired", 401))

        result = cli_runner.invoke(
            app, ["bills", "download", SAMPLE_ACCOUNT, "--dir", str(tmp_path), "-u", "alice", "-p", "pw"]
        )

        assert result.exit_code == 1
        assert mock_downloader.authenticate.await_count == 2
