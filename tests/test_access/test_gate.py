"""Tests for the access gate."""

import pytest

from bookcircle.access import AccessGate, Principal, StaticTokenVerifier
from bookcircle.config import Config
from bookcircle.db.schemas import UserRole, UserStatus
from bookcircle.errors import Forbidden, Unauthenticated


@pytest.fixture
def verifier():
    return StaticTokenVerifier.from_entries(
        ["tok-owner=user-owner:olivia@example.com", "tok-new=newcomer", "broken"]
    )


@pytest.fixture
def gate(db, verifier):
    return AccessGate(db, verifier)


class TestStaticTokenVerifier:
    """Tests for the configuration-backed verifier."""

    def test_parse_entries(self, verifier):
        assert verifier.verify("tok-owner") == Principal("user-owner", "olivia@example.com")
        assert verifier.verify("tok-new") == Principal("newcomer", None)
        assert verifier.verify("broken") is None
        assert verifier.verify("unknown") is None

    def test_from_config(self, tmp_path):
        config = Config(db_path=tmp_path / "x.db", api_tokens=["abc=u1"])
        assert StaticTokenVerifier.from_config(config).verify("abc").id == "u1"


class TestAuthenticate:
    """Tests for reading the Authorization header."""

    def test_bearer_token(self, gate):
        assert gate.authenticate("Bearer tok-owner").id == "user-owner"

    def test_scheme_is_case_insensitive(self, gate):
        assert gate.authenticate("bearer tok-new").id == "newcomer"

    @pytest.mark.parametrize(
        "credential",
        [None, "", "tok-owner", "Basic dXNlcjpwYXNz", "Bearer ", "Bearer nope"],
    )
    def test_rejected_credentials(self, gate, credential):
        with pytest.raises(Unauthenticated):
            gate.authenticate(credential)


class TestAdmission:
    """Tests for status and role checks."""

    def test_require_active(self, gate, owner):
        user = gate.require_active(Principal(owner))
        assert user.id == owner

    def test_require_active_pending(self, gate, make_user):
        make_user("newcomer", status=UserStatus.PENDING)

        with pytest.raises(Forbidden) as exc_info:
            gate.require_active(Principal("newcomer"))
        assert exc_info.value.details == {"status": "PENDING"}

    def test_require_active_unknown(self, gate):
        with pytest.raises(Forbidden):
            gate.require_active(Principal("ghost"))

    def test_require_admin(self, gate, make_user, owner):
        make_user("boss", role=UserRole.ADMIN)

        assert gate.require_admin(Principal("boss")).is_admin
        with pytest.raises(Forbidden):
            gate.require_admin(Principal(owner))

    def test_require_admin_pending(self, gate, make_user):
        make_user("boss", role=UserRole.ADMIN, status=UserStatus.PENDING)

        with pytest.raises(Forbidden):
            gate.require_admin(Principal("boss"))
