"""Outgoing email for lending events.

Emails are built here as plain :class:`OutboundEmail` values and handed
to a mailer by the notification dispatcher. ``SmtpMailer`` delivers them
over SMTP with STARTTLS.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape
from typing import Optional, Protocol

from ..config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundEmail:
    """A rendered email waiting to be sent."""

    to: str
    subject: str
    html: str


class Mailer(Protocol):
    """Anything able to deliver an :class:`OutboundEmail`."""

    def send(self, email: OutboundEmail) -> None: ...


class SmtpMailer:
    """Deliver emails through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "Book Circle <noreply@bookcircle.local>",
        timeout: float = 20.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> Optional["SmtpMailer"]:
        """Build a mailer, or None when SMTP is not configured."""
        if not config.has_smtp_config():
            return None
        return cls(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            sender=config.smtp_from,
            timeout=config.smtp_timeout,
        )

    def send(self, email: OutboundEmail) -> None:
        """Send one email. Raises on transport errors."""
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email.to
        message["Subject"] = email.subject
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(email.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Email '%s' sent to %s", email.subject, email.to)


# ============================================================================
# Templates
# ============================================================================


_LAYOUT = """\
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #eee; border-radius: 10px;">
    <h1 style="color: #333;">{heading}</h1>
    <p style="font-size: 16px; color: #555;">{body}</p>
    <p style="font-size: 16px; color: #555;">{footer}</p>
    <div style="margin-top: 30px; text-align: center;">
        <a href="{link}" style="background-color: #000; color: #fff; padding: 12px 24px; text-decoration: none; border-radius: 5px; font-weight: bold;">{link_label}</a>
    </div>
</div>
"""


def book_request_email(
    owner_email: str, owner_name: str, requester_name: str, book_title: str, app_url: str
) -> OutboundEmail:
    """Tell an owner that someone asked for their book."""
    html = _LAYOUT.format(
        heading=f"Hi {escape(owner_name)}!",
        body=f"<strong>{escape(requester_name)}</strong> would like to borrow "
        f"<strong>\"{escape(book_title)}\"</strong>.",
        footer="Open the app to approve or reject the request.",
        link=f"{app_url.rstrip('/')}/profile",
        link_label="See my requests",
    )
    return OutboundEmail(
        to=owner_email, subject=f"Someone wants your book - {book_title}", html=html
    )


def request_approved_email(
    requester_email: str, requester_name: str, owner_name: str, book_title: str, app_url: str
) -> OutboundEmail:
    """Tell a requester that the owner accepted."""
    html = _LAYOUT.format(
        heading=f"Good news {escape(requester_name)}!",
        body=f"<strong>{escape(owner_name)}</strong> accepted your request for "
        f"<strong>\"{escape(book_title)}\"</strong>.",
        footer="You can now arrange the hand-over.",
        link=f"{app_url.rstrip('/')}/profile",
        link_label="Open my library",
    )
    return OutboundEmail(
        to=requester_email, subject=f"Your request was accepted - {book_title}", html=html
    )


def request_rejected_email(
    requester_email: str, requester_name: str, owner_name: str, book_title: str, app_url: str
) -> OutboundEmail:
    """Tell a requester that the owner declined."""
    html = _LAYOUT.format(
        heading=f"Hi {escape(requester_name)}",
        body=f"Unfortunately <strong>{escape(owner_name)}</strong> declined your request for "
        f"<strong>\"{escape(book_title)}\"</strong>.",
        footer="There are plenty of other books in the circle.",
        link=f"{app_url.rstrip('/')}/",
        link_label="Browse books",
    )
    return OutboundEmail(
        to=requester_email, subject=f"Request declined - {book_title}", html=html
    )
