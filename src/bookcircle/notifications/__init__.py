"""In-app notifications and outbound email.

Provides:
- NotificationManager for listing and marking notifications read
- NotificationDispatcher, the best-effort outbound event queue
- SmtpMailer and the email templates for lending events
"""

from .dispatcher import NotificationDispatcher, NotificationEvent
from .mailer import Mailer, OutboundEmail, SmtpMailer
from .manager import NotificationManager

__all__ = [
    "NotificationDispatcher",
    "NotificationEvent",
    "Mailer",
    "OutboundEmail",
    "SmtpMailer",
    "NotificationManager",
]
