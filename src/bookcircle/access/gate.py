"""Access gate: authentication and admission checks.

Token verification belongs to the external identity provider and is
injected as a :class:`TokenVerifier`. The gate itself only knows how to
read a ``Bearer`` credential and how to check a member's stored status
and role.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..config import Config
from ..db.models import User
from ..db.sqlite import Database
from ..errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to a call."""

    id: str
    email: Optional[str] = None


class TokenVerifier(Protocol):
    """Resolves a bearer token to a principal, or None if invalid."""

    def verify(self, token: str) -> Optional[Principal]: ...


class StaticTokenVerifier:
    """Verifier backed by a fixed token table, for development and tests."""

    def __init__(self, tokens: dict[str, Principal]):
        self.tokens = dict(tokens)

    @classmethod
    def from_entries(cls, entries: list[str]) -> "StaticTokenVerifier":
        """Parse ``token=user_id[:email]`` entries. Malformed entries are skipped."""
        tokens: dict[str, Principal] = {}
        for entry in entries:
            token, sep, subject = entry.partition("=")
            user_id, _, email = subject.partition(":")
            token, user_id = token.strip(), user_id.strip()
            if not sep or not token or not user_id:
                logger.warning("Ignoring malformed token entry")
                continue
            tokens[token] = Principal(id=user_id, email=email.strip() or None)
        return cls(tokens)

    @classmethod
    def from_config(cls, config: Config) -> "StaticTokenVerifier":
        return cls.from_entries(config.api_tokens)

    def verify(self, token: str) -> Optional[Principal]:
        for known, principal in self.tokens.items():
            if hmac.compare_digest(known.encode(), token.encode()):
                return principal
        return None


class AccessGate:
    """Checks who is calling and whether they may use the library."""

    def __init__(self, db: Database, verifier: TokenVerifier):
        self.db = db
        self.verifier = verifier

    def authenticate(self, credential: Optional[str]) -> Principal:
        """Resolve an ``Authorization`` header value to a principal.

        Raises:
            Unauthenticated: If the header is missing, malformed or the token is unknown
        """
        if not credential:
            raise Unauthenticated("Not authenticated")

        scheme, _, token = credential.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise Unauthenticated("Invalid authorization header")

        principal = self.verifier.verify(token)
        if principal is None:
            raise Unauthenticated("Invalid or expired token")
        return principal

    def require_active(self, principal: Principal) -> User:
        """Return the stored member if their access was approved.

        Raises:
            Forbidden: If the member is unknown or not ACTIVE
        """
        user = self._load(principal)
        if user is None:
            raise Forbidden("Unknown user; sign in again to register")
        if not user.is_active:
            raise Forbidden(
                "Your access is pending approval",
                details={"status": user.status},
            )
        return user

    def require_admin(self, principal: Principal) -> User:
        """Return the stored member if they are an admin.

        Raises:
            Forbidden: If the member is not ACTIVE or not an admin
        """
        user = self.require_active(principal)
        if not user.is_admin:
            raise Forbidden("Admin access required")
        return user

    def _load(self, principal: Principal) -> Optional[User]:
        with self.db.get_session() as session:
            return session.get(User, principal.id)
