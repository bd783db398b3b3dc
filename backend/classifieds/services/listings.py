"""Create, read, update and delete for every listing category.

Houses, cars, items and jobs share one contract. The category string a caller
sends is only ever used as a key into LISTING_MODELS; it never reaches SQL.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import transaction, utcnow, with_db_retry
from classifieds.errors import Conflict, NotFound, ValidationError
from classifieds.models import Car, File, House, Item, Job, User
from classifieds.models.job import APPLICATION_TYPE_EXTERNAL
from classifieds.schemas.listing import (
    CarCreate,
    CarUpdate,
    HouseCreate,
    HouseUpdate,
    ItemCreate,
    ItemUpdate,
    JobCreate,
    JobUpdate,
)
from classifieds.services.permissions import (
    Identity,
    can_mutate_listing,
    can_post_listing,
    require,
)

logger = logging.getLogger(__name__)
settings = get_settings()

LISTING_MODELS = {
    "house": House,
    "car": Car,
    "item": Item,
    "job": Job,
}

CREATE_SCHEMAS: dict[str, type[BaseModel]] = {
    "house": HouseCreate,
    "car": CarCreate,
    "item": ItemCreate,
    "job": JobCreate,
}

UPDATE_SCHEMAS: dict[str, type[BaseModel]] = {
    "house": HouseUpdate,
    "car": CarUpdate,
    "item": ItemUpdate,
    "job": JobUpdate,
}

# Column searched by the ?q= filter on public listing pages
SEARCH_COLUMNS = {
    "house": House.title,
    "car": Car.make,
    "item": Item.name,
    "job": Job.title,
}

# Plural keys used by the dashboard response
DASHBOARD_KEYS = {
    "job": "jobs",
    "house": "houses",
    "car": "cars",
    "item": "items",
}


def resolve(category: str) -> tuple[str, type]:
    """Map a caller-supplied category name onto (key, model class)."""
    key = (category or "").strip().lower()
    if key not in LISTING_MODELS:
        raise ValidationError("listing_type", f"Unknown listing type: {category}")
    return key, LISTING_MODELS[key]


def resolve_model(category: str):
    return resolve(category)[1]


def _validate(schema: type[BaseModel], attrs: dict) -> dict:
    try:
        return schema(**attrs).model_dump(exclude_unset=True)
    except PydanticValidationError as exc:
        raise ValidationError.from_pydantic(exc)


def _require_external_url(application_type: str | None, url: str | None) -> None:
    if application_type == APPLICATION_TYPE_EXTERNAL and not (url or "").strip():
        raise ValidationError("external_application_url", "external_application_url required")


def _can_see_unpublished(identity: Identity | None, listing) -> bool:
    return bool(can_mutate_listing(identity, listing))


def _fetch(db: Session, model, listing_id: int):
    listing = db.query(model).filter(model.id == listing_id).first()
    if listing is None:
        raise NotFound(f"{model.__name__} not found")
    return listing


@with_db_retry
def create_listing(db: Session, identity: Identity, category: str, attrs: dict):
    """Validate ``attrs`` and persist a new listing owned by ``identity``."""
    category, model = resolve(category)
    if model is Job:
        require(can_post_listing(identity), "Only verified companies can post jobs")

    data = _validate(CREATE_SCHEMAS[category], attrs)

    if model is Job:
        data.setdefault("application_type", "native")
        _require_external_url(data["application_type"], data.get("external_application_url"))
        if not data.get("company"):
            owner = db.query(User).filter(User.id == identity.id).first()
            data["company"] = owner.company_name if owner else None
        if not data.get("company"):
            raise ValidationError("company", "company is required")

    listing = model(user_id=identity.id, **data)
    try:
        with transaction(db):
            db.add(listing)
    except IntegrityError:
        raise Conflict(f"You already have a {category} listing with these details")
    db.refresh(listing)
    logger.info("User %d created %s %d", identity.id, category, listing.id)
    return listing


def visible_listing(db: Session, category: str, listing_id: int, identity: Identity | None = None,
                     count_view: bool = False):
    """Return a listing visible to ``identity``.

    Unpublished listings are reported as missing to everyone except the owner
    and admins. With ``count_view`` a published job's view counter is bumped.
    Not retried itself; call it from inside a retried unit of work.
    """
    category, model = resolve(category)
    listing = _fetch(db, model, listing_id)
    if not listing.is_published and not _can_see_unpublished(identity, listing):
        raise NotFound(f"{model.__name__} not found")

    if count_view and model is Job and listing.is_published:
        if identity is None or identity.id != listing.user_id:
            with transaction(db):
                db.query(Job).filter(Job.id == listing.id).update({Job.views: Job.views + 1})
            db.refresh(listing)
    return listing


@with_db_retry
def get_listing(db: Session, category: str, listing_id: int, identity: Identity | None = None,
                count_view: bool = False):
    return visible_listing(db, category, listing_id, identity, count_view)


@with_db_retry
def list_published(db: Session, category: str, search: str | None = None,
                   limit: int = 50, offset: int = 0) -> list:
    category, model = resolve(category)
    query = db.query(model).filter(model.is_published == True)
    if search:
        query = query.filter(SEARCH_COLUMNS[category].ilike(f"%{search.strip()}%"))
    return (
        query.order_by(model.created_at.desc(), model.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@with_db_retry
def list_owned(db: Session, identity: Identity, category: str) -> list:
    """The caller's own listings in one category, published or not."""
    category, model = resolve(category)
    return (
        db.query(model)
        .filter(model.user_id == identity.id)
        .order_by(model.created_at.desc(), model.id.desc())
        .all()
    )


@with_db_retry
def update_listing(db: Session, identity: Identity, category: str, listing_id: int, attrs: dict):
    """Apply a partial update.

    Only keys present in ``attrs`` are written. An explicit None clears a
    nullable column and is rejected for a required one.
    """
    category, model = resolve(category)
    listing = _fetch(db, model, listing_id)
    require(can_mutate_listing(identity, listing), "You do not have permission to modify this listing")

    data = _validate(UPDATE_SCHEMAS[category], attrs)
    columns = model.__table__.columns
    for field, value in data.items():
        if value is None and not columns[field].nullable:
            raise ValidationError(field, f"{field} cannot be null")

    if model is Job:
        _require_external_url(
            data.get("application_type", listing.application_type),
            data.get("external_application_url", listing.external_application_url),
        )

    try:
        with transaction(db):
            for field, value in data.items():
                setattr(listing, field, value)
            listing.updated_at = utcnow()
    except IntegrityError:
        raise Conflict(f"You already have a {category} listing with these details")
    db.refresh(listing)
    return listing


@with_db_retry
def delete_listing(db: Session, identity: Identity, category: str, listing_id: int) -> None:
    """Delete a listing and everything hanging off it.

    Gallery rows, applications and questions go through ON DELETE CASCADE.
    Files linked to the listing are detached and left for orphan cleanup.
    """
    category, model = resolve(category)
    listing = _fetch(db, model, listing_id)
    require(can_mutate_listing(identity, listing), "You do not have permission to delete this listing")

    with transaction(db):
        db.query(File).filter(
            File.entity_type == category, File.entity_id == listing.id
        ).update({File.entity_type: None, File.entity_id: None}, synchronize_session=False)
        db.delete(listing)
    logger.info("User %d deleted %s %d", identity.id, category, listing_id)


def _owned_in_own_session(bind, identity: Identity, category: str) -> list:
    worker_db = Session(bind=bind, expire_on_commit=False)
    try:
        return list_owned(worker_db, identity, category)
    finally:
        worker_db.close()


def dashboard(db: Session, identity: Identity) -> dict[str, list]:
    """Every listing the caller owns, keyed by plural category name.

    The four reads are independent, so with ``parallel_reads`` on they run
    concurrently, each on its own session.
    """
    categories = list(DASHBOARD_KEYS)
    if settings.parallel_reads:
        bind = db.get_bind()
        with ThreadPoolExecutor(max_workers=len(categories)) as pool:
            futures = {
                category: pool.submit(_owned_in_own_session, bind, identity, category)
                for category in categories
            }
            results = {category: future.result() for category, future in futures.items()}
    else:
        results = {category: list_owned(db, identity, category) for category in categories}

    return {DASHBOARD_KEYS[category]: results[category] for category in categories}
