#!/usr/bin/env python3
"""
CredGate -- operations CLI for the credential store.

Usage:
  python main.py sweep-resets
  python main.py revoke-sessions alice@example.com
  python main.py --database-url sqlite:///other.db sweep-resets

The API server sweeps expired reset codes on its own schedule; sweep-resets
is for cron jobs and for deployments that run the API with sweeping
disabled. revoke-sessions signs an account out everywhere (e.g. after a
suspected token leak) without touching its password.

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the credential database (see core/config.py).
  SECRET_KEY     Required unless DEBUG=true.
"""

from __future__ import annotations

import argparse
import sys

from auth.otp import OtpManager
from auth.store import AuthStore
from auth.tokens import TokenIssuer
from core.config import get_settings


def _sweep_resets(store: AuthStore, args: argparse.Namespace) -> int:
    settings = get_settings()
    removed = OtpManager(store, expire_minutes=settings.password_reset_expire_minutes).sweep_expired()
    print(f"  Removed {removed} expired password reset entr{'y' if removed == 1 else 'ies'}.")
    return 0


def _revoke_sessions(store: AuthStore, args: argparse.Namespace) -> int:
    settings = get_settings()
    account = store.get_account_by_email(args.email)
    if account is None:
        print(f"  [!] No account registered for '{args.email}'.", file=sys.stderr)
        return 1
    removed = TokenIssuer(store, settings.secret_key, prefix=settings.token_prefix).revoke_all(account.id)
    print(f"  Revoked {removed} token(s) for {account.email}.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="credgate",
        description="Maintenance commands for the CredGate credential store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py sweep-resets
  python main.py revoke-sessions alice@example.com
        """,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL from the environment)",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    sweep = commands.add_parser("sweep-resets", help="Delete expired password reset codes")
    sweep.set_defaults(handler=_sweep_resets)

    revoke = commands.add_parser("revoke-sessions", help="Revoke every bearer token of one account")
    revoke.add_argument("email", help="Email address of the account (case-sensitive)")
    revoke.set_defaults(handler=_revoke_sessions)

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 2

    store = AuthStore(args.database_url or get_settings().database_url)
    try:
        return args.handler(store, args)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
