import logging

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import transaction, utcnow, with_db_retry
from classifieds.errors import Conflict, NotFound, ValidationError
from classifieds.models import (
    CompanyVerificationRequest,
    File,
    Role,
    User,
    UserSession,
    ROLE_ADMIN,
    ROLE_USER,
)
from classifieds.models.company_verification import STATUS_APPROVED, STATUS_PENDING, STATUS_REJECTED
from classifieds.schemas.user import AdminUserUpdate
from classifieds.services import listings
from classifieds.services.auth import get_or_create_role, hash_password
from classifieds.services.files import remove_blob
from classifieds.services.permissions import Identity, is_admin, require

logger = logging.getLogger(__name__)
settings = get_settings()


def ensure_admin_user(db: Session) -> User:
    """Seed the roles table and make sure the configured admin account exists.

    An existing account with the admin username keeps its password; only its
    role is corrected.
    """
    get_or_create_role(db, ROLE_USER)
    admin_role = get_or_create_role(db, ROLE_ADMIN)

    user = db.query(User).filter(User.username == settings.admin_username).first()
    if user is None:
        user = User(
            username=settings.admin_username,
            email=settings.admin_email,
            password_hash=hash_password(settings.admin_password),
            role=admin_role,
        )
        db.add(user)
        logger.info("Created admin user %s", settings.admin_username)
    elif user.role_id != admin_role.id:
        user.role = admin_role
        logger.info("Promoted existing user %s to admin", user.username)
    db.commit()
    return user


def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound("User not found")
    return user


@with_db_retry
def stats(db: Session, identity: Identity) -> dict:
    require(is_admin(identity), "Admin access required")
    verification_counts = dict(
        db.query(CompanyVerificationRequest.status, func.count(CompanyVerificationRequest.id))
        .group_by(CompanyVerificationRequest.status)
        .all()
    )
    return {
        "users": db.query(func.count(User.id)).scalar(),
        "companies": db.query(func.count(User.id)).filter(User.is_company == True).scalar(),
        "verified_companies": db.query(func.count(User.id)).filter(User.is_verified_company == True).scalar(),
        "verification_requests": {
            status: verification_counts.get(status, 0)
            for status in (STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED)
        },
        "listings": {
            listings.DASHBOARD_KEYS[category]: db.query(func.count(model.id)).scalar()
            for category, model in listings.LISTING_MODELS.items()
        },
    }


@with_db_retry
def list_users(db: Session, identity: Identity, search: str | None = None) -> list[User]:
    require(is_admin(identity), "Admin access required")
    query = db.query(User)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter((User.username.ilike(pattern)) | (User.email.ilike(pattern)))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


@with_db_retry
def update_user(db: Session, identity: Identity, user_id: int, attrs: dict) -> User:
    require(is_admin(identity), "Admin access required")
    try:
        data = AdminUserUpdate(**attrs).model_dump(exclude_unset=True)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)

    user = _get_user(db, user_id)
    for field in ("username", "email", "is_company"):
        if field in data and data[field] is None:
            raise ValidationError(field, f"{field} cannot be null")

    try:
        with transaction(db):
            for field, value in data.items():
                setattr(user, field, value)
            user.updated_at = utcnow()
    except IntegrityError:
        raise Conflict("Username or email already in use")
    db.refresh(user)
    return user


@with_db_retry
def set_role(db: Session, identity: Identity, user_id: int, role_name: str) -> User:
    require(is_admin(identity), "Admin access required")
    role_name = (role_name or "").strip().lower()
    if role_name not in (ROLE_USER, ROLE_ADMIN):
        raise ValidationError("role", f"Role must be '{ROLE_USER}' or '{ROLE_ADMIN}'")
    user = _get_user(db, user_id)
    if user.id == identity.id and role_name != ROLE_ADMIN:
        raise Conflict("You cannot remove your own admin role")

    with transaction(db):
        role = db.query(Role).filter(Role.name == role_name).first()
        if role is None:
            role = Role(name=role_name)
            db.add(role)
        user.role = role
    db.refresh(user)
    logger.info("Admin %d set role of user %d to %s", identity.id, user.id, role_name)
    return user


@with_db_retry
def set_company_verification(db: Session, identity: Identity, user_id: int, verified: bool) -> User:
    require(is_admin(identity), "Admin access required")
    user = _get_user(db, user_id)
    with transaction(db):
        user.is_verified_company = verified
        if verified:
            user.is_company = True
    db.refresh(user)
    return user


@with_db_retry
def online_users(db: Session, identity: Identity) -> list[dict]:
    """Users holding an unexpired session, most recently active first."""
    require(is_admin(identity), "Admin access required")
    rows = (
        db.query(User, UserSession.expires_at)
        .join(UserSession, UserSession.user_id == User.id)
        .filter(UserSession.expires_at > utcnow())
        .order_by(UserSession.expires_at.desc())
        .all()
    )
    seen = set()
    result = []
    for user, expires_at in rows:
        if user.id in seen:
            continue
        seen.add(user.id)
        result.append({
            "id": user.id,
            "username": user.username,
            "email": user.email,
            "is_company": user.is_company,
            "is_verified_company": user.is_verified_company,
            "role": user.role_name,
            "session_expires": expires_at,
        })
    return result


@with_db_retry
def delete_user(db: Session, identity: Identity, user_id: int) -> None:
    """Delete a user and, through ON DELETE CASCADE, everything they own."""
    require(is_admin(identity), "Admin access required")
    if user_id == identity.id:
        raise Conflict("You cannot delete your own account")
    user = _get_user(db, user_id)

    blobs = [path for (path,) in db.query(File.storage_path).filter(File.user_id == user.id).all()]
    with transaction(db):
        # Files from other users attached to this user's listings lose their link
        for category, model in listings.LISTING_MODELS.items():
            owned_ids = select(model.id).where(model.user_id == user.id)
            db.query(File).filter(
                File.entity_type == category, File.entity_id.in_(owned_ids)
            ).update({File.entity_type: None, File.entity_id: None}, synchronize_session=False)
        # and so do files attached to the user's profile
        db.query(File).filter(File.entity_type == "user", File.entity_id == user.id).update(
            {File.entity_type: None, File.entity_id: None}, synchronize_session=False
        )
        db.query(UserSession).filter(UserSession.user_id == user.id).delete(synchronize_session=False)
        db.delete(user)
    for path in blobs:
        remove_blob(path)
    logger.info("Admin %d deleted user %d", identity.id, user_id)


@with_db_retry
def list_all_listings(db: Session, identity: Identity, category: str | None = None) -> list[dict]:
    """Every listing regardless of publish state, with its owner's username."""
    require(is_admin(identity), "Admin access required")
    categories = [listings.resolve(category)[0]] if category else list(listings.LISTING_MODELS)

    result = []
    for key in categories:
        model = listings.LISTING_MODELS[key]
        rows = (
            db.query(model, User.username)
            .join(User, User.id == model.user_id)
            .order_by(model.created_at.desc(), model.id.desc())
            .all()
        )
        for listing, username in rows:
            result.append({
                "id": listing.id,
                "listing_type": key,
                "title": listing.display_title,
                "user_id": listing.user_id,
                "username": username,
                "is_published": listing.is_published,
                "created_at": listing.created_at,
            })
    return result


def delete_any_listing(db: Session, identity: Identity, category: str, listing_id: int) -> None:
    require(is_admin(identity), "Admin access required")
    listings.delete_listing(db, identity, category, listing_id)
