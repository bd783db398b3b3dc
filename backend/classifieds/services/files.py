"""Uploaded file metadata, entity linkage and access control.

Blobs are written under ``settings.upload_dir``; ``File.storage_path`` is
relative to it. Gallery order for houses, cars and items comes from the
``*_images`` join tables; the primary image is always listed first.
"""

import logging
import os
import uuid
from datetime import timedelta
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import transaction, utcnow, with_db_retry
from classifieds.errors import NotFound, ValidationError
from classifieds.models import CarImage, File, HouseImage, ItemImage, User
from classifieds.services.listings import resolve, visible_listing
from classifieds.services.permissions import (
    Identity,
    can_access_file,
    can_mutate_listing,
    is_admin,
    is_owner,
    require,
)

logger = logging.getLogger(__name__)
settings = get_settings()

# Join table and its listing foreign key column, per gallery-capable category
GALLERY_TABLES = {
    "house": (HouseImage, HouseImage.house_id),
    "car": (CarImage, CarImage.car_id),
    "item": (ItemImage, ItemImage.item_id),
}


def storage_root() -> Path:
    return Path(settings.upload_dir)


def blob_path(file: File) -> Path:
    return storage_root() / file.storage_path


def save_upload(data: bytes, original_name: str) -> str:
    """Write an upload to disk under a collision-free name.

    Returns the storage path relative to the upload directory.
    """
    ext = os.path.splitext(original_name)[1].lower()
    relative = Path("images") / f"{uuid.uuid4().hex}{ext}"
    target = storage_root() / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return relative.as_posix()


def remove_blob(storage_path: str) -> None:
    """Delete a blob from disk. A missing blob is logged, not raised."""
    try:
        (storage_root() / storage_path).unlink()
    except FileNotFoundError:
        logger.warning("Storage drift: blob %s was already missing", storage_path)


@with_db_retry
def register_file(db: Session, owner_id: int, original_name: str, storage_path: str,
                  mime_type: str | None = None, size: int | None = None,
                  entity_type: str | None = None, entity_id: int | None = None,
                  is_public: bool = False) -> File:
    """Persist metadata for a blob that is already on disk.

    No quota or type checks happen here; the upload route filters first.
    """
    file = File(
        original_name=original_name,
        storage_path=storage_path,
        mime_type=mime_type,
        size=size,
        user_id=owner_id,
        entity_type=entity_type,
        entity_id=entity_id,
        is_public=is_public,
    )
    with transaction(db):
        db.add(file)
    db.refresh(file)
    return file


def _get_file(db: Session, file_id: int) -> File:
    file = db.query(File).filter(File.id == file_id).first()
    if file is None:
        raise NotFound("File not found")
    return file


@with_db_retry
def get_file(db: Session, file_id: int) -> File:
    return _get_file(db, file_id)


def _load_entity(db: Session, entity_type: str, entity_id: int):
    """Fresh read of the entity a file points at, or None if it is gone."""
    if entity_type == "user":
        return db.query(User).filter(User.id == entity_id).first()
    _, model = resolve(entity_type)
    return db.query(model).filter(model.id == entity_id).first()


def _entity_published(db: Session, file: File) -> bool:
    if file.entity_type is None or file.entity_id is None or file.entity_type == "user":
        return False
    entity = _load_entity(db, file.entity_type, file.entity_id)
    return bool(entity is not None and entity.is_published)


@with_db_retry
def check_access(db: Session, file_id: int, identity: Identity | None) -> File:
    """Return the file if ``identity`` may read it.

    A denied read is reported as NotFound so private files do not leak
    their existence.
    """
    file = _get_file(db, file_id)
    if not can_access_file(file, identity, entity_published=_entity_published(db, file)):
        raise NotFound("File not found")
    return file


def _require_entity_access(identity: Identity, entity_type: str, entity) -> None:
    if entity_type == "user":
        if entity.id != identity.id:
            require(is_admin(identity), "You can only attach files to your own profile")
        return
    require(can_mutate_listing(identity, entity), "You do not have permission to modify this listing")


def _clear_previous_link(db: Session, file: File) -> None:
    """Undo whatever the file pointed at before it is relinked."""
    if file.entity_type is None or file.entity_id is None:
        return
    if file.entity_type == "user":
        db.query(User).filter(User.id == file.entity_id, User.logo_file_id == file.id).update(
            {User.logo_file_id: None}, synchronize_session=False
        )
        return
    _, model = resolve(file.entity_type)
    db.query(model).filter(model.id == file.entity_id, model.primary_image_id == file.id).update(
        {model.primary_image_id: None}, synchronize_session=False
    )
    if file.entity_type in GALLERY_TABLES:
        join_model, _ = GALLERY_TABLES[file.entity_type]
        db.query(join_model).filter(join_model.file_id == file.id).delete(synchronize_session=False)


def _append_to_gallery(db: Session, category: str, listing_id: int, file_id: int) -> None:
    join_model, listing_column = GALLERY_TABLES[category]
    exists = db.query(join_model).filter(listing_column == listing_id, join_model.file_id == file_id).first()
    if exists:
        return
    last = db.query(func.max(join_model.display_order)).filter(listing_column == listing_id).scalar()
    row = join_model(file_id=file_id, display_order=(last + 1) if last is not None else 0)
    setattr(row, listing_column.key, listing_id)
    db.add(row)


def _resolve_target(db: Session, identity: Identity, entity_type: str, entity_id: int) -> tuple[str, object]:
    """Load the entity a file is about to be attached to and check the caller may do so."""
    entity_type = (entity_type or "").strip().lower()
    if entity_type != "user":
        entity_type, _ = resolve(entity_type)
    entity = _load_entity(db, entity_type, entity_id)
    if entity is None:
        raise NotFound(f"{entity_type.capitalize()} not found")
    _require_entity_access(identity, entity_type, entity)
    return entity_type, entity


def _attach(db: Session, file: File, entity_type: str, entity, is_primary: bool) -> None:
    """Point ``file`` at ``entity``. Runs inside the caller's transaction."""
    if (file.entity_type, file.entity_id) != (entity_type, entity.id):
        _clear_previous_link(db, file)
    file.entity_type = entity_type
    file.entity_id = entity.id
    if entity_type in GALLERY_TABLES:
        _append_to_gallery(db, entity_type, entity.id, file.id)
    if is_primary:
        if entity_type == "user":
            entity.logo_file_id = file.id
        else:
            entity.primary_image_id = file.id


@with_db_retry
def link_to_entity(db: Session, identity: Identity, file_id: int, entity_type: str,
                   entity_id: int, is_primary: bool = False) -> File:
    """Attach a file to a listing or user profile.

    The file row, the gallery row and (with ``is_primary``) the entity's
    primary image pointer are written in one transaction.
    """
    file = _get_file(db, file_id)
    if not is_admin(identity):
        require(is_owner(file, identity.id), "You can only link your own files")
    entity_type, entity = _resolve_target(db, identity, entity_type, entity_id)

    with transaction(db):
        _attach(db, file, entity_type, entity, is_primary)
    db.refresh(file)
    logger.info("File %d linked to %s %d (primary=%s)", file.id, entity_type, entity_id, is_primary)
    return file


@with_db_retry
def _register_uploads(db: Session, identity: Identity, uploads: list[tuple[bytes, str, str | None]],
                      paths: list[str], entity_type: str | None, entity_id: int | None,
                      is_primary: bool, is_public: bool) -> list[File]:
    target = None
    if entity_type is not None:
        target = _resolve_target(db, identity, entity_type, entity_id)

    records: list[File] = []
    with transaction(db):
        for (data, original_name, mime_type), path in zip(uploads, paths):
            file = File(
                original_name=original_name,
                storage_path=path,
                mime_type=mime_type,
                size=len(data),
                user_id=identity.id,
                is_public=is_public,
            )
            db.add(file)
            db.flush()
            if target is not None:
                # Only the first file of a call can become the primary image
                _attach(db, file, target[0], target[1], is_primary and not records)
            records.append(file)
    for file in records:
        db.refresh(file)
    return records


def store_uploads(db: Session, identity: Identity, uploads: list[tuple[bytes, str, str | None]],
                  entity_type: str | None = None, entity_id: int | None = None,
                  is_primary: bool = False, is_public: bool = False) -> list[File]:
    """Write blobs and their metadata, optionally linked to one entity.

    ``uploads`` holds ``(data, original_name, mime_type)`` tuples. The target
    is checked before anything touches disk, and the rows and links are
    written in a single transaction. If any step fails, every blob written
    by this call is removed again.
    """
    if entity_type is not None:
        _resolve_target(db, identity, entity_type, entity_id)

    paths: list[str] = []
    try:
        for data, original_name, _ in uploads:
            paths.append(save_upload(data, original_name))
        records = _register_uploads(
            db, identity, uploads, paths, entity_type, entity_id, is_primary, is_public
        )
    except Exception:
        logger.warning("Discarding %d uploaded blob(s) for user %d", len(paths), identity.id)
        for path in paths:
            remove_blob(path)
        raise

    logger.info("User %d uploaded %d file(s)", identity.id, len(records))
    return records


def _gallery(db: Session, category: str, listing_id: int, identity: Identity | None) -> list[File]:
    listing = visible_listing(db, category, listing_id, identity)
    category, _ = resolve(category)

    files: list[File] = []
    if category in GALLERY_TABLES:
        join_model, listing_column = GALLERY_TABLES[category]
        rows = (
            db.query(join_model)
            .filter(listing_column == listing.id)
            .order_by(join_model.display_order, join_model.id)
            .all()
        )
        files = [row.file for row in rows]
    else:
        files = (
            db.query(File)
            .filter(File.entity_type == category, File.entity_id == listing.id)
            .order_by(File.id)
            .all()
        )

    if listing.primary_image_id is not None:
        primary = [f for f in files if f.id == listing.primary_image_id]
        if not primary:
            primary_file = db.query(File).filter(File.id == listing.primary_image_id).first()
            primary = [primary_file] if primary_file else []
        files = primary + [f for f in files if f.id != listing.primary_image_id]
    return files


@with_db_retry
def list_images(db: Session, category: str, listing_id: int, identity: Identity | None = None) -> list[File]:
    """Gallery for a listing: primary image first, then by display order."""
    return _gallery(db, category, listing_id, identity)


@with_db_retry
def reorder_gallery(db: Session, identity: Identity, category: str, listing_id: int,
                    file_ids: list[int]) -> list[File]:
    """Rewrite display_order so the gallery follows ``file_ids``."""
    category, model = resolve(category)
    if category not in GALLERY_TABLES:
        raise ValidationError("listing_type", f"{category} listings have no image gallery")
    listing = db.query(model).filter(model.id == listing_id).first()
    if listing is None:
        raise NotFound(f"{model.__name__} not found")
    require(can_mutate_listing(identity, listing), "You do not have permission to modify this listing")

    join_model, listing_column = GALLERY_TABLES[category]
    rows = {row.file_id: row for row in db.query(join_model).filter(listing_column == listing_id).all()}
    unknown = [file_id for file_id in file_ids if file_id not in rows]
    if unknown:
        raise ValidationError("file_ids", f"Files not in this gallery: {unknown}")

    with transaction(db):
        for position, file_id in enumerate(file_ids):
            rows[file_id].display_order = position
    return _gallery(db, category, listing_id, identity)


@with_db_retry
def delete_file(db: Session, identity: Identity, file_id: int) -> None:
    """Remove the metadata row, then the blob. Owner or admin only."""
    file = _get_file(db, file_id)
    if not is_admin(identity):
        require(is_owner(file, identity.id), "You can only delete your own files")

    storage_path = file.storage_path
    with transaction(db):
        # Listing primary_image_id is cleared by ON DELETE SET NULL
        db.query(User).filter(User.logo_file_id == file.id).update(
            {User.logo_file_id: None}, synchronize_session=False
        )
        db.delete(file)
    remove_blob(storage_path)
    logger.info("User %d deleted file %d", identity.id, file_id)


def cleanup_orphans(db: Session, max_age_hours: int | None = None) -> int:
    """Delete uploads that were never linked to anything.

    Returns the number of files removed.
    """
    if max_age_hours is None:
        max_age_hours = settings.orphan_file_max_age_hours
    threshold = utcnow() - timedelta(hours=max_age_hours)
    orphans = (
        db.query(File)
        .filter(File.entity_type.is_(None), File.created_at < threshold)
        .all()
    )
    paths = [orphan.storage_path for orphan in orphans]
    with transaction(db):
        for orphan in orphans:
            db.delete(orphan)
    for path in paths:
        remove_blob(path)
    return len(paths)
