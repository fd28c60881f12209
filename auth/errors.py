"""
auth/errors.py -- Error taxonomy for the auth flows.

Every error carries the HTTP-equivalent status and the message that is safe
to show a client. api/main.py renders AuthError subclasses generically, so
adding a new error here needs no route changes.

Anti-enumeration: InvalidCredentials and InvalidOrExpiredCode are raised for
several distinct internal causes. Their external message and status never
vary with the cause; only the server log (never the response) may say which
cause fired.

Layer rule: no imports from api/, core/, or notify/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for expected, client-visible auth failures."""

    status_code: int = 422
    message: str = "The request could not be processed."

    def __init__(self, message: str | None = None, errors: dict[str, list[str]] | None = None) -> None:
        self.message = message or self.message
        self.errors = errors or {}
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input. errors maps field name -> messages."""

    message = "The given data was invalid."


class AlreadyExists(AuthError):
    """Registration hit the unique email constraint."""

    message = "The email has already been taken."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message, {"email": [message or self.message]})


class InvalidCredentials(AuthError):
    """Login failed. Unknown email and wrong password are indistinguishable."""

    message = "The provided credentials are incorrect."

    def __init__(self) -> None:
        super().__init__(None, {"email": [self.message]})


class InvalidOrExpiredCode(AuthError):
    """Reset failed: wrong code, expired code, no pending request, or a vanished account."""

    message = "This password reset code is invalid or has expired."


class NotFound(AuthError):
    """An account disappeared between two steps of a flow."""

    message = "The requested account does not exist."


class TokenGenerationError(Exception):
    """Token issuance could not find a unique secret within its retry budget.

    Not an AuthError: this is a server-side fault and is rendered as a
    generic 500 by the catch-all handler.
    """
