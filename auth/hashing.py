"""
auth/hashing.py -- One-way hashing for low-entropy secrets (passwords, OTPs).

Security design decisions:
  bcrypt, used directly rather than through passlib. passlib's wrap-bug
  detection builds a password longer than 72 bytes, which bcrypt 4.x rejects
  with an explicit error. Direct bcrypt usage has no compatibility shim.

  The hash blob is self-describing: "$2b$<cost>$<salt+digest>". The algorithm
  tag and the cost travel with every stored hash, so needs_rehash() can detect
  blobs written under an older policy and the login flow can upgrade them
  transparently.

  verify_secret() never raises. A malformed blob, an unknown tag, or an
  over-long secret all read as "does not match".

  _DUMMY_HASH enables timing equalization: code paths that have no real hash
  to check (unknown email on login) still pay for one bcrypt verification.

Layer rule: no imports from api/ or notify/. Import from core/ is allowed.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings

# Read once at module load via the lru_cache singleton.
_ROUNDS: int = get_settings().bcrypt_rounds

_CURRENT_TAG = b"$2b$"

# bcrypt only reads the first 72 bytes. The validation layer rejects longer
# passwords before they reach this module.
MAX_SECRET_BYTES = 72


def hash_secret(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext secret."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_ROUNDS)).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the bcrypt hash (constant time)."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def needs_rehash(hashed: str) -> bool:
    """Return True if the hash was produced under a different tag or cost.

    Unparseable blobs also report True: whatever wrote them is not the
    current policy.
    """
    raw = hashed.encode("utf-8")
    if not raw.startswith(_CURRENT_TAG):
        return True
    try:
        cost = int(raw[4:6])
    except ValueError:
        return True
    return cost != _ROUNDS


# Computed once at module load so the first unknown-email login is not
# measurably faster than later ones.
_DUMMY_HASH: str = hash_secret("credgate_timing_dummy")


def equalize_timing(plain: str) -> None:
    """Burn one bcrypt verification against a dummy hash.

    Call this wherever a branch would otherwise return before hashing (e.g.
    the email is not registered) so response time does not reveal which
    branch was taken.
    """
    verify_secret(plain, _DUMMY_HASH)
