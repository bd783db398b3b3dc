import functools
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import DBAPIError, DisconnectionError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from classifieds.config import get_settings
from classifieds.errors import Unavailable

logger = logging.getLogger(__name__)
settings = get_settings()

# MySQL client/server error codes for dropped or refused connections
TRANSIENT_MYSQL_CODES = {1053, 1927, 2002, 2003, 2006, 2013}
# Postgres SQLSTATEs: admin shutdown, unable to connect, connection failure
TRANSIENT_PG_CODES = {"57P01", "08001", "08006"}


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    kwargs = {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": settings.db_pool_timeout,
    }
    if url.startswith("mysql"):
        # NOW() defaults and utcnow() writes must agree on one clock
        kwargs["connect_args"] = {"init_command": "SET time_zone = '+00:00'"}
    return kwargs


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for providing a database session to routes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def is_transient_error(exc: BaseException) -> bool:
    """Return True for connection-level failures worth retrying."""
    if isinstance(exc, (DisconnectionError, PoolTimeoutError)):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True

    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in TRANSIENT_PG_CODES:
        return True
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int) and args[0] in TRANSIENT_MYSQL_CODES:
        return True
    return False


def backoff_delay(attempt: int) -> float:
    """Exponential backoff for the given 1-based retry attempt, capped.

    The first retry waits ``db_retry_base_delay``.
    """
    return min(settings.db_retry_base_delay * (2 ** (attempt - 1)), settings.db_retry_max_delay)


def with_db_retry(func):
    """Retry a unit of work whose first argument is a Session.

    Transient connection failures roll the session back and re-run the whole
    function, up to ``db_retry_attempts`` times, then raise Unavailable.
    Anything else is rolled back and re-raised untouched.
    """
    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        attempt = 0
        while True:
            try:
                return func(db, *args, **kwargs)
            except (DBAPIError, DisconnectionError, PoolTimeoutError) as exc:
                db.rollback()
                if not is_transient_error(exc):
                    raise
                attempt += 1
                if attempt > settings.db_retry_attempts:
                    logger.error(
                        "Database unavailable after %d retries in %s",
                        settings.db_retry_attempts,
                        func.__name__,
                    )
                    raise Unavailable() from exc
                delay = backoff_delay(attempt)
                logger.warning(
                    "Database connection error in %s, retrying in %.1fs (attempt %d/%d)",
                    func.__name__,
                    delay,
                    attempt,
                    settings.db_retry_attempts,
                )
                time.sleep(delay)

    return wrapper


@contextmanager
def transaction(db: Session):
    """Commit on success, roll back on any exception."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
