"""
auth/models.py -- Domain dataclasses for credential lifecycle entities.

Pattern: Data class (pure data container, zero logic). Stores and flows do
the work; these dataclasses only own the domain shape.

Layer rule: no imports from api/, core/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class Account:
    """An identity that can log in with an email and password.

    email is the uniqueness key and is compared case-sensitively.
    password_hash is an opaque bcrypt blob; it never leaves the auth layer
    (api/ maps Account to a response model that omits it).
    """

    display_name: str
    email: str
    password_hash: str = field(repr=False)
    id: int | None = None
    created_at: str | None = None


@dataclass
class BearerToken:
    """An issued session credential for API clients.

    Security design:
    - token_hash is HMAC-SHA256(SECRET_KEY, plain_text). The deterministic
      digest gives an O(1) lookup by hash; 256-bit random secrets make the
      slow-hash protection bcrypt gives to passwords unnecessary here.
    - plain_text is populated only on the object returned by
      TokenIssuer.issue(). It is never persisted and never reloaded.
    """

    account_id: int
    token_hash: str = field(repr=False)
    name: str = "auth-token"
    id: int | None = None
    created_at: str | None = None
    last_used_at: str | None = None
    plain_text: str | None = field(default=None, repr=False)


@dataclass
class PasswordResetEntry:
    """The single pending reset challenge for an email address.

    otp_hash is a bcrypt hash of the 6-digit code. created_at is the ISO 8601
    UTC timestamp the code was issued; validity is derived from it at
    verification time rather than stored as an expiry.
    """

    email: str
    otp_hash: str = field(repr=False)
    created_at: str = ""


@dataclass
class AuthContext:
    """The resolved identity behind one authenticated request.

    Carries the token that was presented so logout can revoke exactly that
    session and leave the account's other sessions alone.
    """

    account: Account
    token: BearerToken


class OtpStatus(str, Enum):
    VALID = "valid"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    NO_PENDING_REQUEST = "no_pending_request"
