"""
Unit tests for the admin session manager.

Tests cover:
- Admin creation and duplicate usernames
- Login with valid and invalid credentials
- Token validation through the session lifecycle
- Expiry detected at validation time, before the row is purged
- Idempotent logout
- Purging expired sessions
"""

from datetime import timedelta

import pytest
from sqlalchemy import select, func

from app.auth.sessions import SessionManager, SessionState, INVALID_CREDENTIALS_MESSAGE
from app.errors import AuthenticationError, ValidationFailed
from database_orm.connection import get_session
from database_orm.models import AdminSession, AdminUser

TEST_SECRET = "test-session-secret"

USERNAME = "ops"
PASSWORD = "correct-horse-battery"


def session_rows() -> int:
    with get_session() as session:
        return session.scalar(select(func.count(AdminSession.id)))


@pytest.fixture
def admin(session_manager):
    return session_manager.create_admin(USERNAME, PASSWORD)


class TestConstruction:

    def test_empty_secret_rejected(self, database):
        with pytest.raises(ValueError):
            SessionManager(secret="")

    def test_non_positive_ttl_rejected(self, database):
        with pytest.raises(ValueError):
            SessionManager(secret=TEST_SECRET, ttl=timedelta(0))


class TestCreateAdmin:

    def test_password_is_stored_hashed(self, session_manager, admin):
        with get_session() as session:
            stored = session.scalar(select(AdminUser).filter_by(username=USERNAME))
            assert stored.password_hash != PASSWORD
            assert PASSWORD not in stored.password_hash

    def test_duplicate_username_rejected(self, session_manager, admin):
        with pytest.raises(ValidationFailed):
            session_manager.create_admin(USERNAME, "another-password")

    def test_empty_credentials_rejected(self, session_manager):
        with pytest.raises(ValidationFailed):
            session_manager.create_admin("", PASSWORD)
        with pytest.raises(ValidationFailed):
            session_manager.create_admin(USERNAME, "")

    def test_bootstrap_only_when_no_admins(self, session_manager):
        first = session_manager.ensure_bootstrap_admin("root", "bootstrap-pass")
        second = session_manager.ensure_bootstrap_admin("other", "bootstrap-pass")

        assert first is not None
        assert first.username == "root"
        assert second is None
        assert session_manager.count_admins() == 1


class TestLogin:

    def test_login_issues_active_session(self, session_manager, admin, clock):
        issued = session_manager.login(USERNAME, PASSWORD)

        assert issued.token
        assert issued.state is SessionState.ACTIVE
        assert issued.admin == admin
        assert issued.expires_at == clock.now + timedelta(hours=1)

    def test_tokens_are_unique_per_login(self, session_manager, admin):
        first = session_manager.login(USERNAME, PASSWORD)
        second = session_manager.login(USERNAME, PASSWORD)

        assert first.token != second.token
        assert session_rows() == 2

    def test_token_is_not_stored_in_plaintext(self, session_manager, admin):
        issued = session_manager.login(USERNAME, PASSWORD)

        with get_session() as session:
            stored = session.scalar(select(AdminSession.token_hash))
        assert stored != issued.token
        assert issued.token not in stored

    def test_wrong_password_and_unknown_user_fail_identically(self, session_manager, admin):
        with pytest.raises(AuthenticationError) as wrong_password:
            session_manager.login(USERNAME, "wrong-password")
        with pytest.raises(AuthenticationError) as unknown_user:
            session_manager.login("nobody", PASSWORD)

        assert wrong_password.value.message == INVALID_CREDENTIALS_MESSAGE
        assert unknown_user.value.message == wrong_password.value.message
        assert unknown_user.value.status_code == wrong_password.value.status_code == 401

    def test_failed_login_creates_no_session(self, session_manager, admin):
        with pytest.raises(AuthenticationError):
            session_manager.login(USERNAME, "wrong-password")
        assert session_rows() == 0

    def test_login_records_last_login(self, session_manager, admin, clock):
        session_manager.login(USERNAME, PASSWORD)

        with get_session() as session:
            stored = session.scalar(select(AdminUser).filter_by(username=USERNAME))
            assert stored.last_login_at is not None


class TestValidate:

    def test_fresh_token_is_active(self, session_manager, admin):
        issued = session_manager.login(USERNAME, PASSWORD)

        result = session_manager.validate(issued.token)

        assert result.state is SessionState.ACTIVE
        assert result.is_valid
        assert result.admin == admin

    def test_unknown_token_is_rejected(self, session_manager, admin):
        result = session_manager.validate("not-a-real-token")
        assert result.state is SessionState.REVOKED
        assert not result.is_valid
        assert result.admin is None

    def test_empty_token_is_rejected(self, session_manager):
        assert not session_manager.validate("").is_valid
        assert not session_manager.validate(None).is_valid

    def test_still_active_just_before_expiry(self, session_manager, admin, clock):
        issued = session_manager.login(USERNAME, PASSWORD)
        clock.advance(minutes=59, seconds=59)

        assert session_manager.validate(issued.token).is_valid

    def test_expired_even_though_row_remains(self, session_manager, admin, clock):
        issued = session_manager.login(USERNAME, PASSWORD)
        clock.advance(hours=1)

        result = session_manager.validate(issued.token)

        assert result.state is SessionState.EXPIRED
        assert not result.is_valid
        assert result.admin is None
        assert session_rows() == 1

    def test_secret_is_part_of_token_lookup(self, session_manager, admin, clock):
        issued = session_manager.login(USERNAME, PASSWORD)
        other = SessionManager(secret="different-secret", ttl=timedelta(hours=1), clock=clock)

        assert not other.validate(issued.token).is_valid


class TestLogout:

    def test_logout_revokes_token(self, session_manager, admin):
        issued = session_manager.login(USERNAME, PASSWORD)

        assert session_manager.logout(issued.token) is True
        result = session_manager.validate(issued.token)
        assert result.state is SessionState.REVOKED
        assert not result.is_valid

    def test_logout_is_idempotent(self, session_manager, admin):
        issued = session_manager.login(USERNAME, PASSWORD)

        assert session_manager.logout(issued.token) is True
        assert session_manager.logout(issued.token) is False
        assert session_manager.logout("never-issued") is False
        assert session_manager.logout(None) is False

    def test_logout_only_affects_its_own_session(self, session_manager, admin):
        first = session_manager.login(USERNAME, PASSWORD)
        second = session_manager.login(USERNAME, PASSWORD)

        session_manager.logout(first.token)

        assert not session_manager.validate(first.token).is_valid
        assert session_manager.validate(second.token).is_valid


class TestPurgeExpired:

    def test_removes_only_expired_rows(self, session_manager, admin, clock):
        old = session_manager.login(USERNAME, PASSWORD)
        clock.advance(minutes=30)
        recent = session_manager.login(USERNAME, PASSWORD)
        clock.advance(minutes=45)

        purged = session_manager.purge_expired()

        assert purged == 1
        assert session_rows() == 1
        assert session_manager.validate(old.token).state is SessionState.REVOKED
        assert session_manager.validate(recent.token).is_valid

    def test_nothing_to_purge(self, session_manager, admin):
        session_manager.login(USERNAME, PASSWORD)
        assert session_manager.purge_expired() == 0
