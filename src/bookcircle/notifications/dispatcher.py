"""Best-effort outbound notification queue.

The lending workflow publishes :class:`NotificationEvent` values once its
transaction has committed. A background worker stores each event as an
in-app notification and, when the event carries an email and a mailer is
configured, sends the email. Failures are logged and dropped: they never
reach the operation that produced the event.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from ..db.models import Notification
from ..db.schemas import NotificationType
from ..db.sqlite import Database
from .mailer import Mailer, OutboundEmail

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass(frozen=True)
class NotificationEvent:
    """Something a member should hear about."""

    user_id: str
    message: str
    type: NotificationType
    email: Optional[OutboundEmail] = None


class NotificationDispatcher:
    """Processes notification events off the request path."""

    def __init__(
        self,
        db: Database,
        mailer: Optional[Mailer] = None,
        synchronous: bool = False,
    ):
        """Initialize the dispatcher.

        Args:
            db: Database used to store in-app notifications
            mailer: Email transport (emails are skipped when None)
            synchronous: Process events inline instead of on a worker thread
        """
        self.db = db
        self.mailer = mailer
        self.synchronous = synchronous
        self.delivered = 0
        self.failed = 0
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the worker thread (no-op in synchronous mode)."""
        if self.synchronous:
            return
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._run, name="notification-dispatcher", daemon=True
            )
            self._worker.start()

    def publish(self, event: NotificationEvent) -> None:
        """Queue an event for delivery."""
        if self.synchronous:
            self._deliver(event)
            return
        self.start()
        self._queue.put(event)

    def publish_all(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            self.publish(event)

    def flush(self) -> None:
        """Block until every queued event has been processed."""
        if not self.synchronous:
            self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        """Drain the queue and stop the worker."""
        with self._lock:
            worker = self._worker
            self._worker = None
        if worker is None:
            return
        self._queue.put(_STOP)
        worker.join(timeout)
        if worker.is_alive():
            logger.warning("Notification worker did not stop within %.1fs", timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, event: NotificationEvent) -> None:
        ok = True
        try:
            with self.db.get_session() as session:
                session.add(
                    Notification(
                        user_id=event.user_id,
                        message=event.message,
                        type=event.type.value,
                    )
                )
            logger.info("Stored %s notification for user %s", event.type.value, event.user_id)
        except Exception:
            ok = False
            logger.exception(
                "Failed to store %s notification for user %s", event.type.value, event.user_id
            )

        if event.email is not None:
            if self.mailer is None:
                logger.debug("No mailer configured, skipping email to %s", event.email.to)
            elif not event.email.to:
                logger.debug("User %s has no email address, skipping email", event.user_id)
            else:
                try:
                    self.mailer.send(event.email)
                except Exception:
                    ok = False
                    logger.exception("Failed to send email to %s", event.email.to)

        if ok:
            self.delivered += 1
        else:
            self.failed += 1
