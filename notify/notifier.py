"""
notify/notifier.py -- Fire-and-forget notification queue.

The auth flows talk to a Notifier: send_welcome() and send_otp() build a
Notification and enqueue() it, then return immediately. Whether the mail is
ever delivered has no effect on the flow's outcome.

QueuedNotifier is the production implementation: a bounded queue.Queue
drained by one daemon worker thread. Each message gets a few delivery
attempts; a message that still fails is logged and dropped. The worker is
started and stopped by the API lifespan (api/main.py).
"""

from __future__ import annotations

import logging
import queue
import threading
import time

from auth.models import Account
from notify.messages import Notification, reset_otp_message, welcome_message

logger = logging.getLogger("credgate.notify")

_STOP = object()


class Notifier:
    """Builds account notifications and hands them to enqueue().

    Subclasses decide what enqueueing means; enqueue() must not block on
    delivery.
    """

    def __init__(self, app_name: str = "CredGate", reset_expire_minutes: int = 15) -> None:
        self.app_name = app_name
        self.reset_expire_minutes = reset_expire_minutes

    def send_welcome(self, account: Account) -> None:
        self.enqueue(welcome_message(account, self.app_name))

    def send_otp(self, account: Account, otp: str) -> None:
        self.enqueue(reset_otp_message(account, otp, self.app_name, self.reset_expire_minutes))

    def enqueue(self, notification: Notification) -> None:
        raise NotImplementedError


class QueuedNotifier(Notifier):
    """Deliver notifications from a background thread through a mailer.

    Usage:
        notifier = QueuedNotifier(LogMailer(), app_name="CredGate")
        notifier.start()
        notifier.send_welcome(account)   # returns immediately
        notifier.stop()                  # drains the queue, joins the worker
    """

    def __init__(
        self,
        mailer,
        app_name: str = "CredGate",
        reset_expire_minutes: int = 15,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        maxsize: int = 1000,
    ) -> None:
        super().__init__(app_name, reset_expire_minutes)
        self.mailer = mailer
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._worker: threading.Thread | None = None

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run, name="credgate-notifier", daemon=True)
        self._worker.start()

    def stop(self, timeout: float = 10.0) -> None:
        """Signal the worker to finish the queued messages and exit.

        Waits at most `timeout` seconds in total. If the queue is still full
        when the time runs out, the remaining messages are abandoned to the
        daemon worker and logged as such.
        """
        if self._worker is None:
            return
        deadline = time.monotonic() + timeout
        worker, self._worker = self._worker, None
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            logger.warning(
                "Notifier stop timed out after %.1fs; %d queued mail(s) not delivered",
                timeout,
                self._queue.qsize(),
            )
            return
        worker.join(max(0.0, deadline - time.monotonic()))

    def enqueue(self, notification: Notification) -> None:
        try:
            self._queue.put_nowait(notification)
        except queue.Full:
            logger.error("Notification queue full; dropping %s mail to %s", notification.kind, notification.recipient)

    def join(self) -> None:
        """Block until every queued notification has been processed."""
        self._queue.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, notification: Notification) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                self.mailer.send(notification)
                return
            except Exception:
                logger.exception(
                    "Delivery of %s mail to %s failed (attempt %d/%d)",
                    notification.kind,
                    notification.recipient,
                    attempt,
                    self.max_attempts,
                )
                if attempt < self.max_attempts:
                    time.sleep(self.retry_delay)
        logger.error("Giving up on %s mail to %s", notification.kind, notification.recipient)
