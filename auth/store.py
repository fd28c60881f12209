"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper. AuthStore is the repository;
_row_to_account / _row_to_token / _row_to_reset_entry are the mappers.
Components above this module never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Uniqueness is enforced by the database, never by check-then-insert:
    accounts.email            UNIQUE  -- create_account raises IntegrityError
    access_tokens.token_hash  UNIQUE  -- create_token raises IntegrityError
    password_reset_entries.email PRIMARY KEY -- upsert_reset_entry replaces

  Plaintext secrets never reach this module. Only hashes are stored.

DB path: credgate.db at the repository root unless DATABASE_URL is set.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine

from auth.models import Account, BearerToken, PasswordResetEntry

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("display_name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive (BINARY collation)
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_tokens = Table(
    "access_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", Integer, nullable=False, index=True),
    Column("name", String(100), nullable=False, server_default="auth-token"),
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("created_at", String(32), nullable=False),
    Column("last_used_at", String(32)),
)

_reset_entries = Table(
    "password_reset_entries",
    _metadata,
    Column("email", String(255), primary_key=True),
    Column("otp_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False, index=True),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_iso(moment: datetime) -> str:
    """Serialize a UTC datetime with a fixed width.

    timespec="microseconds" keeps every stored timestamp the same length, so
    string comparison in SQL (sweeps) orders them chronologically.
    """
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for Account, BearerToken and PasswordResetEntry records.

    Usage:
        store = AuthStore("sqlite:///credgate.db")
        account_id = store.create_account(Account(display_name="A", email="a@x.com", password_hash=h))
        account = store.get_account_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> int:
        """Insert a new account and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        The UNIQUE constraint is the single source of truth: two concurrent
        registrations for one email cannot both succeed.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.insert().values(
                    display_name=account.display_name,
                    email=account.email,
                    password_hash=account.password_hash,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_account_by_email(self, email: str) -> Account | None:
        """Look up an account by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_account_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def count_accounts(self, email: str | None = None) -> int:
        """Return the number of accounts, optionally restricted to one email."""
        query = select(func.count()).select_from(_accounts)
        if email is not None:
            query = query.where(_accounts.c.email == email)
        with self.engine.connect() as conn:
            return conn.execute(query).scalar() or 0

    def update_password_hash(self, account_id: int, password_hash: str) -> bool:
        """Overwrite an account's password hash in a single UPDATE.

        Returns True if a row was updated, False if account_id was not found.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.id == account_id).values(password_hash=password_hash)
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Bearer tokens
    # ------------------------------------------------------------------

    def create_token(self, token: BearerToken) -> int:
        """Insert a token record and return its ID.

        Raises sqlalchemy.exc.IntegrityError if token_hash collides with an
        existing token. TokenIssuer retries with a fresh secret.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _tokens.insert().values(
                    account_id=token.account_id,
                    name=token.name,
                    token_hash=token.token_hash,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_token(self, token_id: int) -> BearerToken | None:
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.id == token_id)).fetchone()
        return _row_to_token(row) if row is not None else None

    def get_token_by_hash(self, token_hash: str) -> BearerToken | None:
        """Look up a token by its HMAC digest. O(1) via the UNIQUE index."""
        with self.engine.connect() as conn:
            row = conn.execute(_tokens.select().where(_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_token(row) if row is not None else None

    def list_tokens(self, account_id: int) -> list[BearerToken]:
        """Return every token owned by an account (oldest first)."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _tokens.select().where(_tokens.c.account_id == account_id).order_by(_tokens.c.id)
            ).fetchall()
        return [_row_to_token(r) for r in rows]

    def touch_token(self, token_id: int) -> None:
        """Stamp last_used_at on a token after a successful authentication."""
        with self.engine.connect() as conn:
            conn.execute(_tokens.update().where(_tokens.c.id == token_id).values(last_used_at=_now_iso()))
            conn.commit()

    def delete_token(self, token_id: int) -> bool:
        """Delete one token. Returns True if it existed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.id == token_id))
            conn.commit()
        return result.rowcount > 0

    def delete_tokens_for_account(self, account_id: int) -> int:
        """Delete every token owned by an account. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_tokens.delete().where(_tokens.c.account_id == account_id))
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Password reset entries
    # ------------------------------------------------------------------

    def upsert_reset_entry(self, entry: PasswordResetEntry) -> None:
        """Insert or replace the pending reset entry for entry.email.

        SQLite and PostgreSQL get a native INSERT ... ON CONFLICT DO UPDATE,
        so concurrent requests for one email can never leave two rows. Other
        backends fall back to delete + insert inside one transaction; the
        primary key still rejects a duplicate if two of those interleave.
        """
        values = {"email": entry.email, "otp_hash": entry.otp_hash, "created_at": entry.created_at}
        dialect = self.engine.dialect.name
        with self.engine.begin() as conn:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(_reset_entries).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[_reset_entries.c.email],
                    set_={"otp_hash": stmt.excluded.otp_hash, "created_at": stmt.excluded.created_at},
                )
                conn.execute(stmt)
            else:
                conn.execute(_reset_entries.delete().where(_reset_entries.c.email == entry.email))
                conn.execute(_reset_entries.insert().values(**values))

    def get_reset_entry(self, email: str) -> PasswordResetEntry | None:
        with self.engine.connect() as conn:
            row = conn.execute(_reset_entries.select().where(_reset_entries.c.email == email)).fetchone()
        return _row_to_reset_entry(row) if row is not None else None

    def delete_reset_entry(self, email: str, expected: PasswordResetEntry | None = None) -> bool:
        """Delete the reset entry for an email. Returns True if a row was removed.

        When expected is given this is a compare-and-delete: the row is only
        removed if it still carries the same otp_hash and created_at. A newer
        entry that replaced it in the meantime is left alone, and of two
        concurrent callers holding the same entry exactly one sees True.
        """
        condition = _reset_entries.c.email == email
        if expected is not None:
            condition = (
                condition
                & (_reset_entries.c.otp_hash == expected.otp_hash)
                & (_reset_entries.c.created_at == expected.created_at)
            )
        with self.engine.connect() as conn:
            result = conn.execute(_reset_entries.delete().where(condition))
            conn.commit()
        return result.rowcount > 0

    def delete_reset_entries_before(self, cutoff_iso: str) -> int:
        """Delete every reset entry created strictly before cutoff_iso. Returns the count."""
        with self.engine.connect() as conn:
            result = conn.execute(_reset_entries.delete().where(_reset_entries.c.created_at < cutoff_iso))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        display_name=row.display_name,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_token(row) -> BearerToken:
    return BearerToken(
        id=row.id,
        account_id=row.account_id,
        name=row.name,
        token_hash=row.token_hash,
        created_at=row.created_at,
        last_used_at=row.last_used_at,
    )


def _row_to_reset_entry(row) -> PasswordResetEntry:
    return PasswordResetEntry(
        email=row.email,
        otp_hash=row.otp_hash,
        created_at=row.created_at,
    )
