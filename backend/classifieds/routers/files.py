import logging
import os

from fastapi import APIRouter, Depends, File as FormFile, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from classifieds.config import get_settings
from classifieds.database import get_db
from classifieds.dependencies import get_current_identity, get_optional_identity
from classifieds.errors import NotFound, ValidationError
from classifieds.schemas import MessageResponse
from classifieds.schemas.file import FileMetadata, LinkRequest
from classifieds.services import files
from classifieds.services.permissions import Identity

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()

MAX_BATCH_UPLOADS = 5


def _read_image_upload(upload: UploadFile) -> bytes:
    """Enforce the image type and size limits before anything touches disk."""
    ext = os.path.splitext(upload.filename or "")[1].lower()
    if ext not in settings.allowed_image_extensions:
        raise ValidationError("file", "Only image files are allowed")
    if upload.content_type and not upload.content_type.startswith("image/"):
        raise ValidationError("file", "Only image files are allowed")

    data = upload.file.read(settings.max_upload_size + 1)
    if len(data) > settings.max_upload_size:
        max_mb = settings.max_upload_size // (1024 * 1024)
        raise ValidationError("file", f"File is larger than {max_mb} MB")
    if not data:
        raise ValidationError("file", "File is empty")
    return data


def _check_target(entity_type: str | None, entity_id: int | None) -> None:
    if (entity_type is None) != (entity_id is None):
        raise ValidationError("entity_type,entity_id", "entity_type and entity_id must be given together")


@router.post("/upload", response_model=FileMetadata, status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = FormFile(...),
    entity_type: str | None = Form(None),
    entity_id: int | None = Form(None),
    is_primary: bool = Form(False),
    is_public: bool = Form(False),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Upload an image, optionally attaching it to a listing or the caller's profile."""
    _check_target(entity_type, entity_id)
    data = _read_image_upload(file)
    records = files.store_uploads(
        db,
        identity,
        [(data, file.filename, file.content_type)],
        entity_type=entity_type,
        entity_id=entity_id,
        is_primary=is_primary,
        is_public=is_public,
    )
    return records[0]


@router.post("/upload/multiple", response_model=list[FileMetadata], status_code=status.HTTP_201_CREATED)
def upload_files(
    uploads: list[UploadFile] = FormFile(..., alias="files"),
    entity_type: str | None = Form(None),
    entity_id: int | None = Form(None),
    is_public: bool = Form(False),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Upload up to five images at once; linked ones join the gallery as non-primary images."""
    _check_target(entity_type, entity_id)
    if len(uploads) > MAX_BATCH_UPLOADS:
        raise ValidationError("files", f"At most {MAX_BATCH_UPLOADS} files can be uploaded at once")
    batch = [(_read_image_upload(upload), upload.filename, upload.content_type) for upload in uploads]
    return files.store_uploads(
        db,
        identity,
        batch,
        entity_type=entity_type,
        entity_id=entity_id,
        is_public=is_public,
    )


@router.get("/{file_id}")
def serve_file(
    file_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    """Stream the blob if the caller may see it."""
    record = files.check_access(db, file_id, identity)
    path = files.blob_path(record)
    if not path.exists():
        logger.warning("Storage drift: file %d has no blob at %s", record.id, record.storage_path)
        raise NotFound("File not found")
    return FileResponse(
        path,
        media_type=record.mime_type,
        filename=record.original_name,
        content_disposition_type="inline",
    )


@router.get("/{file_id}/info", response_model=FileMetadata)
def file_info(
    file_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    return files.check_access(db, file_id, identity)


@router.post("/{file_id}/link", response_model=FileMetadata)
def link_file(
    file_id: int,
    data: LinkRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    return files.link_to_entity(db, identity, file_id, data.entity_type, data.entity_id, data.is_primary)


@router.delete("/{file_id}", response_model=MessageResponse)
def delete_file(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    files.delete_file(db, identity, file_id)
    return MessageResponse(message="File deleted")
