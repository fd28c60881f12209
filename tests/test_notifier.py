"""Tests for notify/ -- message builders, the queued worker, and mail transports.

Covers:
- reset mail carries the code, the expiry and the app name
- QueuedNotifier delivers in the background and retries failures
- a permanently failing mailer is logged and never raises to the caller
- stop() honours its timeout even while the queue is full
- mailer_from_settings() picks the transport from MAIL_DRIVER
- SmtpMailer builds the message and only negotiates TLS / logs in when configured
"""

import logging
import threading
import time
from unittest.mock import patch

from auth.models import Account
from core.config import Settings
from notify.mailer import LogMailer, SmtpMailer, mailer_from_settings
from notify.messages import Notification, reset_otp_message, welcome_message
from notify.notifier import QueuedNotifier

ACCOUNT = Account(id=1, display_name="Alice", email="a@x.com", password_hash="$2b$04$x")


class FakeMailer:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.delivered: list[Notification] = []
        self.calls = 0

    def send(self, notification: Notification) -> None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("smtp down")
        self.delivered.append(notification)


class BlockingMailer:
    """Mailer whose send() parks until release is set."""

    def __init__(self) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()

    def send(self, notification: Notification) -> None:
        self.entered.set()
        self.release.wait(5)


class TestMessages:
    def test_reset_message(self) -> None:
        """Reset mail names the app, carries the code and states the expiry."""
        msg = reset_otp_message(ACCOUNT, "004217", "CredGate", 15)
        assert msg.recipient == "a@x.com"
        assert msg.subject == "Your Password Reset OTP - CredGate"
        assert "004217" in msg.body
        assert "expire in 15 minutes" in msg.body
        assert msg.body.startswith("Hi Alice,")
        assert msg.kind == "reset_otp"

    def test_welcome_message(self) -> None:
        """Welcome mail is tagged 'welcome' and greets with the app name."""
        msg = welcome_message(ACCOUNT, "CredGate")
        assert msg.kind == "welcome"
        assert "Welcome to CredGate" in msg.subject


class TestQueuedNotifier:
    def test_delivers_in_background(self) -> None:
        """Enqueued mails are delivered by the worker in FIFO order."""
        mailer = FakeMailer()
        notifier = QueuedNotifier(mailer, retry_delay=0)
        notifier.start()
        notifier.send_welcome(ACCOUNT)
        notifier.send_otp(ACCOUNT, "123456")
        notifier.join()
        notifier.stop()
        assert [n.kind for n in mailer.delivered] == ["welcome", "reset_otp"]

    def test_retries_transient_failures(self) -> None:
        """A mailer that fails twice succeeds on the third attempt."""
        mailer = FakeMailer(failures=2)
        notifier = QueuedNotifier(mailer, max_attempts=3, retry_delay=0)
        notifier.start()
        notifier.send_otp(ACCOUNT, "123456")
        notifier.join()
        notifier.stop()
        assert mailer.calls == 3
        assert len(mailer.delivered) == 1

    def test_gives_up_without_raising(self, caplog) -> None:
        """After max_attempts the mail is dropped and an error is logged."""
        mailer = FakeMailer(failures=100)
        notifier = QueuedNotifier(mailer, max_attempts=2, retry_delay=0)
        notifier.start()
        with caplog.at_level(logging.ERROR, logger="credgate.notify"):
            notifier.send_welcome(ACCOUNT)
            notifier.join()
        notifier.stop()
        assert mailer.delivered == []
        assert "Giving up" in caplog.text

    def test_full_queue_drops_instead_of_blocking(self) -> None:
        """enqueue() on a full queue drops the mail rather than waiting."""
        mailer = FakeMailer()
        notifier = QueuedNotifier(mailer, maxsize=1)  # worker not started
        notifier.send_welcome(ACCOUNT)
        notifier.send_welcome(ACCOUNT)
        notifier.start()
        notifier.join()
        notifier.stop()
        assert len(mailer.delivered) == 1

    def test_stop_respects_timeout_when_queue_is_full(self, caplog) -> None:
        """stop() returns within its timeout while the worker is stuck on a send."""
        mailer = BlockingMailer()
        notifier = QueuedNotifier(mailer, maxsize=1)
        notifier.start()
        notifier.send_welcome(ACCOUNT)
        assert mailer.entered.wait(5)
        notifier.send_otp(ACCOUNT, "123456")  # fills the only slot

        try:
            with caplog.at_level(logging.WARNING, logger="credgate.notify"):
                started = time.monotonic()
                notifier.stop(timeout=0.1)
                elapsed = time.monotonic() - started
        finally:
            mailer.release.set()

        assert elapsed < 1.0
        assert "stop timed out" in caplog.text

    def test_stop_without_start_is_noop(self) -> None:
        """stop() on a notifier that never started returns immediately."""
        QueuedNotifier(FakeMailer()).stop(timeout=0.1)


class TestMailerSelection:
    def test_log_driver(self) -> None:
        """MAIL_DRIVER=log selects the LogMailer."""
        assert isinstance(mailer_from_settings(Settings(debug=True)), LogMailer)

    def test_smtp_driver(self) -> None:
        """MAIL_DRIVER=smtp selects SmtpMailer with the configured host."""
        mailer = mailer_from_settings(Settings(debug=True, mail_driver="smtp", smtp_host="mail.example.com"))
        assert isinstance(mailer, SmtpMailer)
        assert mailer.host == "mail.example.com"

    def test_log_mailer_never_logs_body(self, caplog) -> None:
        """LogMailer records recipient and subject, never the code in the body."""
        with caplog.at_level(logging.INFO, logger="credgate.notify"):
            LogMailer().send(reset_otp_message(ACCOUNT, "987654", "CredGate", 15))
        assert "a@x.com" in caplog.text
        assert "987654" not in caplog.text


class TestSmtpMailer:
    def test_tls_and_login_when_configured(self) -> None:
        """With use_tls and a username, starttls and login run before sending."""
        mailer = SmtpMailer("mail.example.com", 587, "noreply@example.com", username="user", password="secret")
        with patch("notify.mailer.smtplib.SMTP") as smtp_cls:
            mailer.send(reset_otp_message(ACCOUNT, "004217", "CredGate", 15))

        smtp_cls.assert_called_once_with("mail.example.com", 587, timeout=10.0)
        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once_with()
        smtp.login.assert_called_once_with("user", "secret")
        smtp.send_message.assert_called_once()

        message = smtp.send_message.call_args.args[0]
        assert message["From"] == "noreply@example.com"
        assert message["To"] == "a@x.com"
        assert message["Subject"] == "Your Password Reset OTP - CredGate"
        assert "004217" in message.get_content()

    def test_plain_relay_skips_tls_and_login(self) -> None:
        """Without use_tls or a username the mailer only sends."""
        mailer = SmtpMailer("relay.local", 25, "noreply@example.com", use_tls=False)
        with patch("notify.mailer.smtplib.SMTP") as smtp_cls:
            mailer.send(welcome_message(ACCOUNT, "CredGate"))

        smtp = smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()
