"""
auth/otp.py -- One-time reset codes: issue, verify, consume, sweep.

Codes are 6 ASCII digits drawn uniformly from [000000, 999999] with
secrets.randbelow and left-padded with zeros. Only a bcrypt hash of the code
is stored; the plaintext is returned to the caller (the flow hands it to the
notifier) and then forgotten.

One pending entry per email. request() upserts, so a new code always
replaces the previous one and only the newest code can ever verify.

Validity is derived, not stored: an entry is live while
now - created_at <= expire window. verify() and consume() re-check this on
every call, so sweeping expired rows is garbage collection and never needed
for correctness.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.hashing import hash_secret, verify_secret
from auth.models import OtpStatus, PasswordResetEntry
from auth.store import AuthStore, to_iso

logger = logging.getLogger("credgate.auth")

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a uniformly random, zero-padded 6-digit code."""
    return str(secrets.randbelow(10**OTP_LENGTH)).zfill(OTP_LENGTH)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpManager:
    """Pending password-reset challenges keyed by email.

    clock is injectable so tests can move time past the expiry window
    without sleeping.
    """

    def __init__(
        self,
        store: AuthStore,
        expire_minutes: int = 15,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self.window = timedelta(minutes=expire_minutes)
        self._clock = clock

    def request(self, email: str) -> str:
        """Issue a new code for email, replacing any pending one. Returns the plaintext code."""
        otp = generate_otp()
        entry = PasswordResetEntry(email=email, otp_hash=hash_secret(otp), created_at=to_iso(self._clock()))
        self._store.upsert_reset_entry(entry)
        return otp

    def verify(self, email: str, otp: str) -> OtpStatus:
        """Check a code without consuming it.

        A wrong code leaves the entry in place so the user can retry until
        expiry. A correct but expired code deletes the entry, so every later
        call reports NO_PENDING_REQUEST.
        """
        status, _entry = self._check(email, otp)
        return status

    def consume(self, email: str, otp: str) -> OtpStatus:
        """Verify a code and, if valid, delete its entry in the same step.

        The delete is a compare-and-delete on the exact entry that was
        verified. If two callers race with the same valid code, only the one
        whose delete removes the row gets VALID; the other sees
        NO_PENDING_REQUEST. A code superseded mid-flight is likewise rejected.
        """
        status, entry = self._check(email, otp)
        if status is not OtpStatus.VALID:
            return status
        if not self._store.delete_reset_entry(email, expected=entry):
            return OtpStatus.NO_PENDING_REQUEST
        return OtpStatus.VALID

    def sweep_expired(self, before: datetime | None = None) -> int:
        """Delete entries created before the cutoff (default: now - window). Returns the count."""
        cutoff = before if before is not None else self._clock() - self.window
        removed = self._store.delete_reset_entries_before(to_iso(cutoff))
        if removed:
            logger.info("Swept %d expired reset entr%s", removed, "y" if removed == 1 else "ies")
        return removed

    def _check(self, email: str, otp: str) -> tuple[OtpStatus, PasswordResetEntry | None]:
        entry = self._store.get_reset_entry(email)
        if entry is None:
            return OtpStatus.NO_PENDING_REQUEST, None
        if not verify_secret(otp, entry.otp_hash):
            return OtpStatus.INVALID_CODE, entry
        if self._is_expired(entry):
            self._store.delete_reset_entry(email, expected=entry)
            return OtpStatus.EXPIRED, entry
        return OtpStatus.VALID, entry

    def _is_expired(self, entry: PasswordResetEntry) -> bool:
        created = datetime.fromisoformat(entry.created_at)
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return self._clock() - created > self.window
