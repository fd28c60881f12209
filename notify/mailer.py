"""
notify/mailer.py -- Mail transports used by the notification worker.

LogMailer is the development default: it records that a message would have
been sent (recipient, subject) without writing the body, which may contain a
reset code. SmtpMailer delivers through any SMTP relay with stdlib smtplib.

Both expose send(notification) and raise on failure. Retrying and logging
failures is the worker's job (notify/notifier.py), not the transport's.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from core.config import Settings
from notify.messages import Notification

logger = logging.getLogger("credgate.notify")


class LogMailer:
    def send(self, notification: Notification) -> None:
        logger.info("Mail (%s) to %s: %s", notification.kind, notification.recipient, notification.subject)


class SmtpMailer:
    """Deliver notifications over SMTP, one connection per message."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, notification: Notification) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.recipient
        message["Subject"] = notification.subject
        message.set_content(notification.body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Sent %s mail to %s", notification.kind, notification.recipient)


def mailer_from_settings(settings: Settings) -> LogMailer | SmtpMailer:
    """Build the transport selected by MAIL_DRIVER."""
    if settings.mail_driver == "smtp":
        return SmtpMailer(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.mail_from_address,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LogMailer()
