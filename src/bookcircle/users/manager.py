"""User manager: login sync, profiles and admission."""

import logging
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..access.gate import Principal
from ..db.convert import to_user_profile, to_user_response
from ..db.models import Book, User
from ..db.schemas import UserProfile, UserResponse, UserRole, UserStatus, UserSync
from ..db.sqlite import Database
from ..errors import Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


class UserManager:
    """Manages members and their admission status."""

    def __init__(self, db: Database, admin_emails: Iterable[str] = ()):
        """Initialize user manager.

        Args:
            db: Database instance
            admin_emails: Addresses that are admitted as admins on first sync
        """
        self.db = db
        self.admin_emails = {e.strip().lower() for e in admin_emails if e.strip()}

    def sync(self, principal: Principal, data: UserSync) -> UserResponse:
        """Create or refresh a member from identity provider data.

        New members start as USER/PENDING unless their email is a
        configured admin address. Existing members only have non-empty
        fields overwritten.

        Args:
            principal: Authenticated caller
            data: Profile fields sent on login

        Returns:
            The stored member
        """
        user_id = principal.id
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                email = (data.email or principal.email or "").strip()
                is_admin = email.lower() in self.admin_emails
                user = User(
                    id=user_id,
                    name=(data.name or "").strip(),
                    email=email,
                    image=data.image or None,
                    role=UserRole.ADMIN.value if is_admin else UserRole.USER.value,
                    status=UserStatus.ACTIVE.value if is_admin else UserStatus.PENDING.value,
                )
                session.add(user)
                logger.info("New member %s registered (%s)", user_id, user.role)
            else:
                if data.name and data.name.strip():
                    user.name = data.name.strip()
                if data.email and data.email.strip():
                    user.email = data.email.strip()
                if data.image:
                    user.image = data.image

            session.flush()
            return to_user_response(user)

    def get_user(self, user_id: str) -> Optional[UserResponse]:
        """Get a member by ID, or None."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            return to_user_response(user) if user else None

    def get_profile(self, user_id: str) -> UserProfile:
        """Get a member with the books they own and hold.

        Raises:
            NotFound: If the member does not exist
        """
        with self.db.get_session() as session:
            stmt = (
                select(User)
                .where(User.id == user_id)
                .options(
                    selectinload(User.owned_books).selectinload(Book.current_holder),
                    selectinload(User.held_books).selectinload(Book.owner),
                )
            )
            user = session.execute(stmt).scalar_one_or_none()
            if user is None:
                raise NotFound("User not found")
            return to_user_profile(user)

    def request_access(self, user_id: str) -> UserResponse:
        """Put a member back in the admission queue."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            user.status = UserStatus.PENDING.value
            session.flush()
            logger.info("Member %s requested access", user_id)
            return to_user_response(user)

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    def list_users(self, actor_id: str) -> list[UserResponse]:
        """List all members, newest first. Admin only."""
        with self.db.get_session() as session:
            self._require_admin(session, actor_id)
            return self._list_all(session)

    def list_all(self) -> list[UserResponse]:
        """List all members without an acting admin (used from the CLI)."""
        with self.db.get_session() as session:
            return self._list_all(session)

    def set_status(self, user_id: str, status: str, actor_id: str) -> UserResponse:
        """Change a member's admission status. Admin only.

        Raises:
            Forbidden: If the actor is not an admin
            ValidationError: If the status is not PENDING or ACTIVE
            NotFound: If the member does not exist
        """
        try:
            new_status = UserStatus(status)
        except ValueError:
            raise ValidationError(
                f"Invalid status: {status}",
                details={"allowed": [s.value for s in UserStatus]},
            )

        with self.db.get_session() as session:
            self._require_admin(session, actor_id)
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            user.status = new_status.value
            session.flush()
            logger.info("Member %s set to %s by %s", user_id, new_status.value, actor_id)
            return to_user_response(user)

    def admit(self, user_id: str, make_admin: bool = False) -> UserResponse:
        """Activate a member without an acting admin (used from the CLI).

        Args:
            user_id: Member to activate
            make_admin: Also grant the ADMIN role
        """
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("User not found")
            user.status = UserStatus.ACTIVE.value
            if make_admin:
                user.role = UserRole.ADMIN.value
            session.flush()
            logger.info("Member %s admitted (role %s)", user_id, user.role)
            return to_user_response(user)

    @staticmethod
    def _list_all(session: Session) -> list[UserResponse]:
        users = session.execute(select(User).order_by(User.created_at.desc())).scalars().all()
        return [to_user_response(u) for u in users]

    @staticmethod
    def _require_admin(session: Session, actor_id: str) -> User:
        actor = session.get(User, actor_id)
        if actor is None or not actor.is_admin:
            raise Forbidden("Admin access required")
        return actor
