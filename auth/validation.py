"""
auth/validation.py -- Typed flow inputs and their validators.

Each flow takes one frozen input dataclass. The matching validate_* function
returns a dict of field name -> list of messages; an empty dict means the
input is acceptable. Flows raise ValidationError with that dict, and the API
layer renders it unchanged as the 422 "errors" object.

The rules mirror what the HTTP contract documents: required fields, a
plausible email shape, passwords of at least 8 characters confirmed by a
second copy, and 6-digit reset codes. Passwords are also capped at 72 UTF-8
bytes because bcrypt ignores (and bcrypt 4.1+ rejects) anything longer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from auth.hashing import MAX_SECRET_BYTES
from auth.otp import OTP_LENGTH

# Deliberately loose: one "@", no whitespace, a dot in the domain. Deliverability
# is proven by the reset flow itself, not by a regex.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_OTP_RE = re.compile(rf"^\d{{{OTP_LENGTH}}}$")

MAX_FIELD_LENGTH = 255
MIN_PASSWORD_LENGTH = 8

Errors = dict[str, list[str]]


@dataclass(frozen=True)
class RegisterInput:
    name: str
    email: str
    password: str
    password_confirmation: str


@dataclass(frozen=True)
class LoginInput:
    email: str
    password: str


@dataclass(frozen=True)
class ForgotPasswordInput:
    email: str


@dataclass(frozen=True)
class ResetPasswordInput:
    email: str
    otp: str
    password: str
    password_confirmation: str


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


def _add(errors: Errors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _check_email(errors: Errors, email: str) -> None:
    if not email:
        _add(errors, "email", "The email field is required.")
        return
    if len(email) > MAX_FIELD_LENGTH:
        _add(errors, "email", f"The email must not be greater than {MAX_FIELD_LENGTH} characters.")
    if not _EMAIL_RE.match(email):
        _add(errors, "email", "The email must be a valid email address.")


def _check_new_password(errors: Errors, password: str, confirmation: str) -> None:
    if not password:
        _add(errors, "password", "The password field is required.")
        return
    if len(password) < MIN_PASSWORD_LENGTH:
        _add(errors, "password", f"The password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_SECRET_BYTES:
        _add(errors, "password", f"The password must not be greater than {MAX_SECRET_BYTES} bytes.")
    if password != confirmation:
        _add(errors, "password", "The password confirmation does not match.")


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_register(data: RegisterInput) -> Errors:
    errors: Errors = {}
    if not data.name or not data.name.strip():
        _add(errors, "name", "The name field is required.")
    elif len(data.name) > MAX_FIELD_LENGTH:
        _add(errors, "name", f"The name must not be greater than {MAX_FIELD_LENGTH} characters.")
    _check_email(errors, data.email)
    _check_new_password(errors, data.password, data.password_confirmation)
    return errors


def validate_login(data: LoginInput) -> Errors:
    errors: Errors = {}
    _check_email(errors, data.email)
    if not data.password:
        _add(errors, "password", "The password field is required.")
    return errors


def validate_forgot_password(data: ForgotPasswordInput) -> Errors:
    errors: Errors = {}
    _check_email(errors, data.email)
    return errors


def validate_reset_password(data: ResetPasswordInput) -> Errors:
    errors: Errors = {}
    if not data.otp:
        _add(errors, "otp", "The otp field is required.")
    elif not _OTP_RE.match(data.otp):
        _add(errors, "otp", f"The otp must be {OTP_LENGTH} digits.")
    _check_email(errors, data.email)
    _check_new_password(errors, data.password, data.password_confirmation)
    return errors
