from datetime import datetime

from pydantic import BaseModel, field_validator

from classifieds.models.file import ENTITY_TYPES


class FileMetadata(BaseModel):
    id: int
    original_name: str
    mime_type: str | None = None
    size: int | None = None
    user_id: int
    entity_type: str | None = None
    entity_id: int | None = None
    is_public: bool
    url: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class LinkRequest(BaseModel):
    entity_type: str
    entity_id: int
    is_primary: bool = False

    @field_validator("entity_type")
    @classmethod
    def validate_entity_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ENTITY_TYPES:
            raise ValueError(f"Entity type must be one of: {', '.join(ENTITY_TYPES)}")
        return v


class GalleryOrderRequest(BaseModel):
    """File ids in the order they should be displayed."""
    file_ids: list[int]

    @field_validator("file_ids")
    @classmethod
    def validate_unique(cls, v: list[int]) -> list[int]:
        if len(set(v)) != len(v):
            raise ValueError("File ids must be unique")
        return v
