from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from classifieds.database import Base

ENTITY_TYPES = ("house", "car", "item", "job", "user")


class File(Base):
    """Metadata for an uploaded blob. The blob itself lives under the upload dir."""
    __tablename__ = "files"

    id = Column(Integer, primary_key=True, index=True)
    original_name = Column(String(255), nullable=False)
    storage_path = Column(String(500), unique=True, nullable=False)
    mime_type = Column(String(100), nullable=True)
    size = Column(Integer, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Null while an upload has not been attached to anything yet
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(Integer, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="files")

    @property
    def url(self) -> str:
        return f"/api/files/{self.id}"

    __table_args__ = (
        Index("ix_files_entity", "entity_type", "entity_id"),
    )


class HouseImage(Base):
    __tablename__ = "house_images"

    id = Column(Integer, primary_key=True, index=True)
    house_id = Column(Integer, ForeignKey("houses.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    file = relationship("File")

    __table_args__ = (
        UniqueConstraint("house_id", "file_id", name="uq_house_image"),
    )


class CarImage(Base):
    __tablename__ = "car_images"

    id = Column(Integer, primary_key=True, index=True)
    car_id = Column(Integer, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    file = relationship("File")

    __table_args__ = (
        UniqueConstraint("car_id", "file_id", name="uq_car_image"),
    )


class ItemImage(Base):
    __tablename__ = "item_images"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Integer, ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    display_order = Column(Integer, default=0, nullable=False)

    file = relationship("File")

    __table_args__ = (
        UniqueConstraint("item_id", "file_id", name="uq_item_image"),
    )
