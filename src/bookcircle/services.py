"""Construction and lifecycle of the service handles.

Everything the API and CLI need is built once by :func:`build_services`
and handed around explicitly.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .access import AccessGate, StaticTokenVerifier, TokenVerifier
from .catalog import CatalogManager
from .config import Config
from .db.sqlite import Database
from .lending import LendingManager
from .notifications import Mailer, NotificationDispatcher, NotificationManager, SmtpMailer
from .users import UserManager

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """All service handles of a running instance."""

    config: Config
    db: Database
    dispatcher: NotificationDispatcher
    gate: AccessGate
    catalog: CatalogManager
    lending: LendingManager
    users: UserManager
    notifications: NotificationManager

    def close(self) -> None:
        """Drain pending notifications and release the database."""
        self.dispatcher.close()
        self.db.dispose()


def build_services(
    config: Config,
    mailer: Optional[Mailer] = None,
    synchronous: bool = False,
    verifier: Optional[TokenVerifier] = None,
) -> Services:
    """Wire up the database, dispatcher, gate and managers.

    Args:
        config: Loaded configuration
        mailer: Email transport (defaults to SMTP when configured)
        synchronous: Deliver notifications inline instead of on a worker thread
        verifier: Token verifier (defaults to the configured static tokens)

    Returns:
        Ready-to-use services; call ``close()`` when done
    """
    db = Database(config.db_path)
    db.create_tables()

    if mailer is None:
        mailer = SmtpMailer.from_config(config)
    if mailer is None:
        logger.info("SMTP not configured, emails are disabled")

    dispatcher = NotificationDispatcher(db, mailer=mailer, synchronous=synchronous)
    dispatcher.start()

    if verifier is None:
        verifier = StaticTokenVerifier.from_config(config)

    return Services(
        config=config,
        db=db,
        dispatcher=dispatcher,
        gate=AccessGate(db, verifier),
        catalog=CatalogManager(db, dispatcher),
        lending=LendingManager(db, dispatcher, app_url=config.app_url),
        users=UserManager(db, config.admin_emails),
        notifications=NotificationManager(db),
    )
