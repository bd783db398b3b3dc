from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func

from classifieds.database import Base


class ListingMixin:
    """Columns shared by every user-owned, publishable listing table."""

    id = Column(Integer, primary_key=True, index=True)
    is_published = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def primary_image_id(cls):
        return Column(Integer, ForeignKey("files.id", ondelete="SET NULL"), nullable=True)

    @declared_attr
    def owner(cls):
        return relationship("User", back_populates=cls.__tablename__)

    @property
    def primary_image_url(self) -> str | None:
        if self.primary_image_id is None:
            return None
        return f"/api/files/{self.primary_image_id}"


class House(ListingMixin, Base):
    __tablename__ = "houses"

    title = Column(String(255), nullable=False)
    address = Column(String(255), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    description = Column(Text, nullable=True)
    number_of_bedrooms = Column(Integer, nullable=True)
    number_of_bathrooms = Column(Integer, nullable=True)
    square_footage = Column(Integer, nullable=True)

    images = relationship(
        "HouseImage", cascade="all, delete-orphan", passive_deletes=True, order_by="HouseImage.display_order"
    )

    @property
    def display_title(self) -> str:
        return self.address or self.title


class Car(ListingMixin, Base):
    __tablename__ = "cars"

    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    color = Column(String(50), nullable=True)
    mileage = Column(Integer, nullable=True)
    fuel_type = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)

    images = relationship(
        "CarImage", cascade="all, delete-orphan", passive_deletes=True, order_by="CarImage.display_order"
    )

    @property
    def display_title(self) -> str:
        return f"{self.make} {self.model}"


class Item(ListingMixin, Base):
    __tablename__ = "items"

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)

    images = relationship(
        "ItemImage", cascade="all, delete-orphan", passive_deletes=True, order_by="ItemImage.display_order"
    )

    __table_args__ = (
        UniqueConstraint("name", "user_id", name="items_name_user_id_key"),
    )

    @property
    def display_title(self) -> str:
        return self.name
