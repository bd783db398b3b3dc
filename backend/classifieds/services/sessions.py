"""Server-side session lifecycle: login, registration, refresh and logout.

Sessions live in the ``sessions`` table keyed by an opaque token. Each row
caches a snapshot of the user that is rewritten on every authenticated
request, so out-of-band role or verification changes show up on the next
call. Expiry slides forward on each refresh.
"""

import json
import logging
from datetime import timedelta

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import utcnow, with_db_retry
from classifieds.errors import Conflict, InvalidCredentials, ValidationError
from classifieds.models import User, UserSession, ROLE_USER
from classifieds.schemas.auth import RegisterRequest
from classifieds.services.auth import (
    generate_session_token,
    get_or_create_role,
    hash_password,
    verify_password,
)
from classifieds.services.permissions import Identity

logger = logging.getLogger(__name__)
settings = get_settings()


def identity_for(user: User) -> Identity:
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role_name,
        is_company=bool(user.is_company),
        is_verified_company=bool(user.is_verified_company),
    )


def _expiry():
    return utcnow() + timedelta(days=settings.session_ttl_days)


def _create_session(db: Session, user: User) -> tuple[str, Identity]:
    identity = identity_for(user)
    token = generate_session_token()
    db.add(
        UserSession(
            sid=token,
            user_id=user.id,
            data=json.dumps(identity.to_snapshot()),
            expires_at=_expiry(),
        )
    )
    db.commit()
    return token, identity


@with_db_retry
def login(db: Session, username: str, password: str) -> tuple[str, Identity]:
    """Authenticate and open a new session. Returns (token, identity)."""
    username = (username or "").strip()
    user = db.query(User).filter(User.username == username).first()
    # SQLite and MySQL collations may compare case-insensitively
    if not user or user.username != username or not verify_password(password, user.password_hash):
        raise InvalidCredentials()

    token, identity = _create_session(db, user)
    logger.info("User %s logged in", user.username)
    return token, identity


@with_db_retry
def register(db: Session, attrs: dict) -> tuple[str, Identity]:
    """Create a user account with the default role and log it in."""
    try:
        data = RegisterRequest(**attrs)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    if db.query(User).filter(User.username == data.username).first():
        raise Conflict("Username already taken")
    if db.query(User).filter(User.email == data.email).first():
        raise Conflict("Email already registered")

    user = User(
        username=data.username,
        email=data.email,
        password_hash=hash_password(data.password),
        role=get_or_create_role(db, ROLE_USER),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise Conflict("Username or email already registered")

    token, identity = _create_session(db, user)
    logger.info("Registered user %s", user.username)
    return token, identity


def _fetch_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


@with_db_retry
def refresh(db: Session, token: str | None) -> Identity | None:
    """Resolve a session token to a fresh identity, or None for anonymous.

    The session row is locked for the duration so concurrent requests on the
    same token serialize their writes. If re-reading the user fails, the
    cached snapshot is served as-is.
    """
    if not token:
        return None

    session_row = (
        db.query(UserSession)
        .filter(UserSession.sid == token)
        .with_for_update()
        .first()
    )
    if session_row is None:
        db.rollback()
        return None

    if session_row.expires_at <= utcnow():
        db.delete(session_row)
        db.commit()
        return None

    cached = Identity.from_snapshot(json.loads(session_row.data))
    try:
        user = _fetch_user(db, session_row.user_id)
    except SQLAlchemyError:
        logger.exception("Failed to refresh session for user %d, serving cached snapshot", cached.id)
        db.rollback()
        return cached

    if user is None:
        logger.info("Destroying session for deleted user %d", cached.id)
        db.delete(session_row)
        db.commit()
        return None

    identity = identity_for(user)
    session_row.data = json.dumps(identity.to_snapshot())
    session_row.expires_at = _expiry()
    db.commit()
    return identity


@with_db_retry
def logout(db: Session, token: str | None) -> None:
    """Destroy the session. Unknown or missing tokens are not an error."""
    if not token:
        return
    db.query(UserSession).filter(UserSession.sid == token).delete()
    db.commit()


def purge_expired(db: Session) -> int:
    """Delete every expired session row. Returns the number removed."""
    count = db.query(UserSession).filter(UserSession.expires_at <= utcnow()).delete()
    db.commit()
    return count
