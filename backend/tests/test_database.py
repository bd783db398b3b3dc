"""Tests for the retry wrapper and transaction helper."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from classifieds import database
from classifieds.database import backoff_delay, is_transient_error, transaction, with_db_retry
from classifieds.errors import Unavailable
from classifieds.models import Role
from classifieds.services import files, listings


class MySQLError(Exception):
    """Stand-in for a driver exception carrying a MySQL error code."""


def connection_lost():
    return OperationalError("SELECT 1", {}, MySQLError(2013, "Lost connection to MySQL server during query"))


def syntax_error():
    return OperationalError("SELEC 1", {}, MySQLError(1064, "You have an error in your SQL syntax"))


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff sleeps instead of waiting."""
    recorded = []
    monkeypatch.setattr(database.time, "sleep", recorded.append)
    return recorded


class TestTransientClassification:
    def test_lost_connection_is_transient(self):
        assert is_transient_error(connection_lost())

    def test_syntax_error_is_not_transient(self):
        assert not is_transient_error(syntax_error())

    def test_invalidated_connection_is_transient(self):
        error = OperationalError("SELECT 1", {}, Exception("boom"), connection_invalidated=True)
        assert is_transient_error(error)

    def test_postgres_codes(self):
        orig = Exception("terminating connection due to administrator command")
        orig.pgcode = "57P01"
        assert is_transient_error(OperationalError("SELECT 1", {}, orig))

    def test_non_database_error(self):
        assert not is_transient_error(ValueError("nope"))


class TestRetry:
    def test_retries_then_succeeds(self, db, sleeps):
        calls = []

        @with_db_retry
        def flaky(db):
            calls.append(1)
            if len(calls) < 3:
                raise connection_lost()
            return "ok"

        assert flaky(db) == "ok"
        assert len(calls) == 3
        assert sleeps == [backoff_delay(1), backoff_delay(2)]

    def test_gives_up_with_unavailable(self, db, sleeps):
        calls = []

        @with_db_retry
        def down(db):
            calls.append(1)
            raise connection_lost()

        with pytest.raises(Unavailable):
            down(db)
        assert len(calls) == database.settings.db_retry_attempts + 1
        assert len(sleeps) == database.settings.db_retry_attempts

    def test_non_transient_error_not_retried(self, db, sleeps):
        calls = []

        @with_db_retry
        def broken(db):
            calls.append(1)
            raise syntax_error()

        with pytest.raises(OperationalError):
            broken(db)
        assert len(calls) == 1
        assert sleeps == []

    def test_backoff_grows_and_is_capped(self, monkeypatch):
        monkeypatch.setattr(database.settings, "db_retry_base_delay", 1.0)
        monkeypatch.setattr(database.settings, "db_retry_max_delay", 5.0)
        assert backoff_delay(1) < backoff_delay(2)
        assert backoff_delay(10) == 5.0

    def test_first_retry_waits_base_delay(self, monkeypatch):
        monkeypatch.setattr(database.settings, "db_retry_base_delay", 0.5)
        monkeypatch.setattr(database.settings, "db_retry_max_delay", 5.0)
        assert [backoff_delay(n) for n in (1, 2, 3)] == [0.5, 1.0, 2.0]

    def test_nested_reads_share_one_retry_budget(self, db, sleeps, monkeypatch):
        calls = []

        def down(*args, **kwargs):
            calls.append(1)
            raise connection_lost()

        monkeypatch.setattr(files, "visible_listing", down)
        with pytest.raises(Unavailable):
            files.list_images(db, "house", 1)
        assert len(calls) == database.settings.db_retry_attempts + 1

    def test_unavailable_maps_to_503(self, client, monkeypatch):
        def down(db, category, search=None, limit=50, offset=0):
            raise Unavailable()

        monkeypatch.setattr(listings, "list_published", down)
        response = client.get("/api/houses")
        assert response.status_code == 503
        assert response.json()["code"] == "unavailable"


class TestEngineConfig:
    def test_mysql_sessions_pinned_to_utc(self):
        kwargs = database._engine_kwargs("mysql+pymysql://app:secret@db:3306/classifieds")
        assert kwargs["connect_args"]["init_command"] == "SET time_zone = '+00:00'"
        assert kwargs["pool_pre_ping"] is True

    def test_sqlite_has_no_pool_settings(self):
        kwargs = database._engine_kwargs("sqlite://")
        assert kwargs == {"connect_args": {"check_same_thread": False}}


class TestTransaction:
    def test_commits_on_success(self, db):
        with transaction(db):
            db.add(Role(name="moderator"))
        db.expire_all()
        assert db.query(Role).filter(Role.name == "moderator").count() == 1

    def test_rolls_back_on_error(self, db, roles):
        with pytest.raises(IntegrityError):
            with transaction(db):
                db.add(Role(name="user"))
        assert db.query(Role).count() == 2
