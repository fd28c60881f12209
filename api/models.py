"""
API request and response models for CredGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models check shape only (every field a string, defaulting to ""), so
missing fields reach the validators in auth/validation.py and come back as
the same field -> messages map as every other input error. Content rules
(email format, password length, OTP digits) live there, not here.

Every response uses one envelope: {message, data, status}. Errors use
{message, errors, status}.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import Account, BearerToken

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    name: str = ""
    email: str = ""
    password: str = Field(default="", repr=False)
    password_confirmation: str = Field(default="", repr=False)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = ""
    password: str = Field(default="", repr=False)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/forgot-password."""

    email: str = ""


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password."""

    email: str = ""
    otp: str = Field(default="", repr=False)
    password: str = Field(default="", repr=False)
    password_confirmation: str = Field(default="", repr=False)


# ---------------------------------------------------------------------------
# Response payloads
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an Account. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.display_name,
            email=account.email,
            created_at=account.created_at or "",
        )


class TokenData(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"

    @classmethod
    def from_token(cls, token: BearerToken) -> "TokenData":
        return cls(access_token=token.plain_text or "")


class RegisterData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: AccountResponse
    access_token: str
    token_type: str = "bearer"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Envelope for responses that carry no data."""

    model_config = ConfigDict(frozen=True)

    message: str
    status: int


class RegisterResponse(MessageResponse):
    data: RegisterData


class LoginResponse(MessageResponse):
    data: TokenData


class AccountEnvelope(MessageResponse):
    data: AccountResponse


class ErrorResponse(BaseModel):
    """Envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    message: str
    status: int
    errors: Optional[dict[str, list[str]]] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
