"""Tests for the server-side session lifecycle."""

import json
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from classifieds.database import utcnow
from classifieds.errors import InvalidCredentials
from classifieds.models import UserSession
from classifieds.services import sessions


class TestRefresh:
    """Every authenticated request rewrites the cached snapshot."""

    def test_role_change_visible_on_next_refresh(self, db, user, roles):
        token, identity = sessions.login(db, "alice", "password123")
        assert identity.role == "user"

        user.role = roles["admin"]
        db.commit()

        refreshed = sessions.refresh(db, token)
        assert refreshed.role == "admin"
        row = db.query(UserSession).filter(UserSession.sid == token).first()
        assert json.loads(row.data)["role"] == "admin"

    def test_verification_change_visible_on_next_refresh(self, db, user):
        token, _ = sessions.login(db, "alice", "password123")
        user.is_company = True
        user.is_verified_company = True
        db.commit()

        refreshed = sessions.refresh(db, token)
        assert refreshed.is_company is True
        assert refreshed.is_verified_company is True

    def test_refresh_slides_expiry(self, db, user):
        token, _ = sessions.login(db, "alice", "password123")
        row = db.query(UserSession).filter(UserSession.sid == token).first()
        row.expires_at = utcnow() + timedelta(minutes=5)
        db.commit()

        sessions.refresh(db, token)
        db.refresh(row)
        assert row.expires_at > utcnow() + timedelta(days=6)

    def test_deleted_user_destroys_session(self, db, user):
        token, _ = sessions.login(db, "alice", "password123")
        db.delete(user)
        db.commit()

        assert sessions.refresh(db, token) is None
        assert db.query(UserSession).filter(UserSession.sid == token).first() is None

    def test_expired_session_is_removed(self, db, user):
        token, _ = sessions.login(db, "alice", "password123")
        row = db.query(UserSession).filter(UserSession.sid == token).first()
        row.expires_at = utcnow() - timedelta(seconds=1)
        db.commit()

        assert sessions.refresh(db, token) is None
        assert db.query(UserSession).count() == 0

    def test_failed_user_read_serves_cached_snapshot(self, db, user, monkeypatch):
        """A failing user re-read keeps the request authenticated with stale data."""
        token, identity = sessions.login(db, "alice", "password123")

        def broken_fetch(db, user_id):
            raise OperationalError("SELECT users", {}, Exception("lost connection"))

        monkeypatch.setattr(sessions, "_fetch_user", broken_fetch)
        refreshed = sessions.refresh(db, token)
        assert refreshed == identity

    def test_missing_token(self, db):
        assert sessions.refresh(db, None) is None
        assert sessions.refresh(db, "") is None


class TestLoginService:
    """Tests for the login and logout service functions."""

    def test_login_bad_password_raises(self, db, user):
        with pytest.raises(InvalidCredentials):
            sessions.login(db, "alice", "nope-nope")

    def test_each_login_opens_a_new_session(self, db, user):
        first, _ = sessions.login(db, "alice", "password123")
        second, _ = sessions.login(db, "alice", "password123")
        assert first != second
        assert db.query(UserSession).count() == 2

    def test_logout_is_idempotent(self, db, user):
        token, _ = sessions.login(db, "alice", "password123")
        sessions.logout(db, token)
        sessions.logout(db, token)
        assert db.query(UserSession).count() == 0


class TestPurge:
    def test_purge_expired_keeps_live_sessions(self, db, user):
        live, _ = sessions.login(db, "alice", "password123")
        dead, _ = sessions.login(db, "alice", "password123")
        row = db.query(UserSession).filter(UserSession.sid == dead).first()
        row.expires_at = utcnow() - timedelta(hours=1)
        db.commit()

        assert sessions.purge_expired(db) == 1
        remaining = [row.sid for row in db.query(UserSession).all()]
        assert remaining == [live]
