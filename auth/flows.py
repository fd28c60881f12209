"""
auth/flows.py -- The four account use cases: register, login, logout, reset.

AuthFlows is the only component that talks to all the others. It is
stateless; every piece of state lives in the AuthStore behind the
CredentialStore, TokenIssuer and OtpManager it composes.

Policies enforced here:
  Anti-enumeration. Login answers InvalidCredentials for both unknown email
      and wrong password, and runs bcrypt on both paths so timing matches.
      Reset answers InvalidOrExpiredCode for every failure cause. Forgot-password
      returns normally whether or not the email is registered.

  Single use. Reset codes are consumed (verified and deleted in one
      compare-and-delete) before the password changes, so one code can never
      complete two resets.

  Revocation cascade. A completed reset deletes every bearer token of the
      account. The password is replaced first: if the process dies in between,
      the account is consistent and the old tokens are merely stale.

  Fire-and-forget notification. Notifier calls only enqueue. Any error they
      raise is logged and does not change the flow's result.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from auth.credentials import CredentialStore
from auth.errors import InvalidCredentials, InvalidOrExpiredCode, NotFound, ValidationError
from auth.hashing import equalize_timing, needs_rehash, verify_secret
from auth.models import Account, AuthContext, BearerToken, OtpStatus
from auth.otp import OtpManager
from auth.store import AuthStore
from auth.tokens import TokenIssuer
from auth.validation import (
    Errors,
    ForgotPasswordInput,
    LoginInput,
    RegisterInput,
    ResetPasswordInput,
    validate_forgot_password,
    validate_login,
    validate_register,
    validate_reset_password,
)
from core.config import Settings
from notify.notifier import Notifier

logger = logging.getLogger("credgate.auth")


def _raise_if_invalid(errors: Errors) -> None:
    if errors:
        raise ValidationError(errors=errors)


class AuthFlows:
    def __init__(
        self,
        credentials: CredentialStore,
        tokens: TokenIssuer,
        otps: OtpManager,
        notifier: Notifier,
    ) -> None:
        self.credentials = credentials
        self.tokens = tokens
        self.otps = otps
        self.notifier = notifier

    @classmethod
    def from_settings(cls, store: AuthStore, notifier: Notifier, settings: Settings) -> "AuthFlows":
        """Wire the components over one store using the configured policy."""
        return cls(
            credentials=CredentialStore(store),
            tokens=TokenIssuer(store, settings.secret_key, prefix=settings.token_prefix),
            otps=OtpManager(store, expire_minutes=settings.password_reset_expire_minutes),
            notifier=notifier,
        )

    def register(self, data: RegisterInput) -> tuple[Account, BearerToken]:
        """Create an account, sign it in, and queue a welcome mail.

        Raises ValidationError for bad input and AlreadyExists (a 422 on the
        email field) when the email is taken. No token is issued on failure.
        """
        _raise_if_invalid(validate_register(data))
        account = self.credentials.create(data.name, data.email, data.password)
        token = self.tokens.issue(account.id)
        self._notify(self.notifier.send_welcome, account)
        return account, token

    def login(self, data: LoginInput) -> BearerToken:
        """Exchange an email and password for a new bearer token."""
        _raise_if_invalid(validate_login(data))
        account = self.credentials.find_by_email(data.email)
        if account is None:
            # Equalize timing -- do NOT return before running bcrypt.
            equalize_timing(data.password)
            logger.info("Login rejected: unknown email")
            raise InvalidCredentials()
        if not verify_secret(data.password, account.password_hash):
            logger.info("Login rejected: bad password for account id=%s", account.id)
            raise InvalidCredentials()
        if needs_rehash(account.password_hash):
            self.credentials.replace_password(account.id, data.password)
            logger.info("Upgraded password hash for account id=%s", account.id)
        return self.tokens.issue(account.id)

    def logout(self, context: AuthContext) -> None:
        """Revoke the token presented on this request. Other sessions survive."""
        self.tokens.revoke(context.token.id)

    def forgot_password(self, data: ForgotPasswordInput) -> None:
        """Issue and queue a reset code if the email belongs to an account.

        Returns normally either way so the response cannot be used to probe
        which emails are registered.
        """
        _raise_if_invalid(validate_forgot_password(data))
        self.otps.sweep_expired()
        account = self.credentials.find_by_email(data.email)
        if account is None:
            # Match the cost of hashing a new code on the other branch.
            equalize_timing(data.email)
            logger.info("Reset requested for unregistered email")
            return
        otp = self.otps.request(account.email)
        self._notify(self.notifier.send_otp, account, otp)
        logger.info("Reset code issued for account id=%s", account.id)

    def reset_password(self, data: ResetPasswordInput) -> None:
        """Set a new password with a reset code and end every session of the account."""
        _raise_if_invalid(validate_reset_password(data))
        status = self.otps.consume(data.email, data.otp)
        if status is not OtpStatus.VALID:
            logger.info("Reset rejected: %s", status.value)
            raise InvalidOrExpiredCode()

        account = self.credentials.find_by_email(data.email)
        if account is None:
            logger.warning("Reset rejected: account vanished after code was consumed")
            raise InvalidOrExpiredCode()
        try:
            self.credentials.replace_password(account.id, data.password)
        except NotFound as exc:
            raise InvalidOrExpiredCode() from exc
        self.tokens.revoke_all(account.id)
        logger.info("Password reset completed for account id=%s", account.id)

    def _notify(self, send: Callable[..., None], *args) -> None:
        try:
            send(*args)
        except Exception:
            logger.exception("Failed to enqueue notification via %s", getattr(send, "__name__", send))
