"""
notify/messages.py -- Plain-text mail bodies for account notifications.

Builders are pure functions: they take the account (and the OTP where
relevant) and return a Notification. Nothing here sends anything.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.models import Account


@dataclass(frozen=True)
class Notification:
    """One outbound message, ready for a mailer."""

    recipient: str
    subject: str
    body: str
    kind: str = "generic"  # "welcome" | "reset_otp"


def _greeting(account: Account) -> str:
    return f"Hi {account.display_name or 'there'},"


def welcome_message(account: Account, app_name: str) -> Notification:
    body = "\n\n".join(
        [
            _greeting(account),
            f"Welcome to {app_name}! Your account has been created and you are signed in.",
            "If you did not create this account, please contact support.",
            f"Best regards, The {app_name} Team",
        ]
    )
    return Notification(
        recipient=account.email,
        subject=f"Welcome to {app_name}",
        body=body,
        kind="welcome",
    )


def reset_otp_message(account: Account, otp: str, app_name: str, expire_minutes: int) -> Notification:
    body = "\n\n".join(
        [
            _greeting(account),
            f"You recently requested to reset your password for your {app_name} account.",
            "Please use the following 6-digit One-Time Password (OTP) to complete the process:",
            f"    {otp}",
            f"This OTP will expire in {expire_minutes} minutes.",
            "If you didn't request this, you can safely ignore this email.",
            f"Best regards, The {app_name} Team",
        ]
    )
    return Notification(
        recipient=account.email,
        subject=f"Your Password Reset OTP - {app_name}",
        body=body,
        kind="reset_otp",
    )
