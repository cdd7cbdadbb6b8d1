"""Manager for reading in-app notifications."""

from sqlalchemy import func, select, update

from ..db.models import Notification
from ..db.schemas import NotificationResponse
from ..db.sqlite import Database
from ..errors import NotFound


class NotificationManager:
    """Lists notifications and tracks their read state."""

    def __init__(self, db: Database):
        self.db = db

    def list_for_user(self, user_id: str) -> list[NotificationResponse]:
        """List a member's notifications, newest first."""
        with self.db.get_session() as session:
            stmt = (
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
            )
            rows = session.execute(stmt).scalars().all()
            return [NotificationResponse.model_validate(n) for n in rows]

    def unread_count(self, user_id: str) -> int:
        with self.db.get_session() as session:
            stmt = select(func.count()).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            return session.execute(stmt).scalar() or 0

    def mark_read(self, notification_id: str, user_id: str) -> NotificationResponse:
        """Mark one notification as read.

        Raises:
            NotFound: If the notification does not exist or belongs to someone else
        """
        with self.db.get_session() as session:
            notification = session.get(Notification, notification_id)
            if notification is None or notification.user_id != user_id:
                raise NotFound("Notification not found")

            notification.is_read = True
            session.flush()
            return NotificationResponse.model_validate(notification)

    def mark_all_read(self, user_id: str) -> int:
        """Mark all of a member's notifications as read.

        Returns:
            Number of notifications updated
        """
        with self.db.get_session() as session:
            result = session.execute(
                update(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
                .values(is_read=True)
            )
            return result.rowcount or 0
