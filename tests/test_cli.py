"""Tests for main.py -- the sweep-resets and revoke-sessions maintenance commands."""

from datetime import datetime, timedelta, timezone

import pytest

from auth.models import Account, PasswordResetEntry
from auth.store import AuthStore, to_iso
from auth.tokens import TokenIssuer
from core.config import get_settings
from main import main


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def _seed_account(db_url: str, email: str = "a@x.com", tokens: int = 2) -> None:
    store = AuthStore(db_url)
    account_id = store.create_account(Account(display_name="A", email=email, password_hash="$2b$04$x"))
    issuer = TokenIssuer(store, get_settings().secret_key)
    for _ in range(tokens):
        issuer.issue(account_id)
    store.close()


def test_no_command_prints_help(capsys) -> None:
    """Running with no subcommand prints help and exits 2."""
    assert main([]) == 2
    assert "sweep-resets" in capsys.readouterr().out


def test_sweep_resets_removes_only_stale_entries(db_url: str, capsys) -> None:
    """sweep-resets deletes expired entries and keeps fresh ones."""
    now = datetime.now(timezone.utc)
    store = AuthStore(db_url)
    store.upsert_reset_entry(PasswordResetEntry("old@x.com", "h1", to_iso(now - timedelta(hours=2))))
    store.upsert_reset_entry(PasswordResetEntry("new@x.com", "h2", to_iso(now)))
    store.close()

    assert main(["--database-url", db_url, "sweep-resets"]) == 0
    assert "Removed 1 expired password reset entry." in capsys.readouterr().out

    store = AuthStore(db_url)
    assert store.get_reset_entry("old@x.com") is None
    assert store.get_reset_entry("new@x.com") is not None
    store.close()


def test_revoke_sessions(db_url: str, capsys) -> None:
    """revoke-sessions deletes every token of the account."""
    _seed_account(db_url)

    assert main(["--database-url", db_url, "revoke-sessions", "a@x.com"]) == 0
    assert "Revoked 2 token(s) for a@x.com." in capsys.readouterr().out

    store = AuthStore(db_url)
    account = store.get_account_by_email("a@x.com")
    assert store.list_tokens(account.id) == []
    store.close()


def test_revoke_sessions_unknown_email(db_url: str, capsys) -> None:
    """revoke-sessions on an unknown email exits 1 with an error on stderr."""
    _seed_account(db_url)
    assert main(["--database-url", db_url, "revoke-sessions", "ghost@x.com"]) == 1
    assert "No account registered" in capsys.readouterr().err
