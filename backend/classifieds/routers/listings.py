from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from classifieds.database import get_db
from classifieds.dependencies import get_current_identity, get_optional_identity
from classifieds.schemas import (
    CarCreate,
    CarResponse,
    CarUpdate,
    HouseCreate,
    HouseResponse,
    HouseUpdate,
    ItemCreate,
    ItemResponse,
    ItemUpdate,
    JobCreate,
    JobResponse,
    JobUpdate,
    MessageResponse,
)
from classifieds.schemas.file import FileMetadata, GalleryOrderRequest
from classifieds.services import files, listings
from classifieds.services.permissions import Identity


def build_listing_router(category: str, create_schema, update_schema, response_schema) -> APIRouter:
    """CRUD routes for one listing category.

    Every category exposes the same surface; only the schemas differ.
    """
    router = APIRouter()

    @router.get("", response_model=list[response_schema])
    def list_listings(
        q: str | None = None,
        limit: int = Query(50, ge=1, le=100),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
    ):
        """Published listings, newest first."""
        return listings.list_published(db, category, search=q, limit=limit, offset=offset)

    @router.get("/mine", response_model=list[response_schema])
    def list_my_listings(
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ):
        """The caller's own listings, including unpublished ones."""
        return listings.list_owned(db, identity, category)

    @router.get("/{listing_id}", response_model=response_schema)
    def get_listing(
        listing_id: int,
        identity: Identity | None = Depends(get_optional_identity),
        db: Session = Depends(get_db),
    ):
        return listings.get_listing(db, category, listing_id, identity, count_view=True)

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    def create_listing(
        data: create_schema,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ):
        return listings.create_listing(db, identity, category, data.model_dump(exclude_unset=True))

    @router.patch("/{listing_id}", response_model=response_schema)
    @router.put("/{listing_id}", response_model=response_schema)
    def update_listing(
        listing_id: int,
        data: update_schema,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ):
        """Partial update: only the fields present in the body are changed."""
        return listings.update_listing(db, identity, category, listing_id, data.model_dump(exclude_unset=True))

    @router.delete("/{listing_id}", response_model=MessageResponse)
    def delete_listing(
        listing_id: int,
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ):
        listings.delete_listing(db, identity, category, listing_id)
        return MessageResponse(message=f"{category.capitalize()} deleted")

    @router.get("/{listing_id}/images", response_model=list[FileMetadata])
    def list_images(
        listing_id: int,
        identity: Identity | None = Depends(get_optional_identity),
        db: Session = Depends(get_db),
    ):
        """Gallery images, primary image first."""
        return files.list_images(db, category, listing_id, identity)

    if category in files.GALLERY_TABLES:
        @router.put("/{listing_id}/images/order", response_model=list[FileMetadata])
        def reorder_images(
            listing_id: int,
            data: GalleryOrderRequest,
            identity: Identity = Depends(get_current_identity),
            db: Session = Depends(get_db),
        ):
            return files.reorder_gallery(db, identity, category, listing_id, data.file_ids)

    return router


houses = build_listing_router("house", HouseCreate, HouseUpdate, HouseResponse)
cars = build_listing_router("car", CarCreate, CarUpdate, CarResponse)
items = build_listing_router("item", ItemCreate, ItemUpdate, ItemResponse)
jobs = build_listing_router("job", JobCreate, JobUpdate, JobResponse)
