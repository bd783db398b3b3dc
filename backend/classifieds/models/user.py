from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from classifieds.database import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class Role(Base):
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)

    users = relationship("User", back_populates="role")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=True)
    is_company = Column(Boolean, default=False, nullable=False)
    is_verified_company = Column(Boolean, default=False, nullable=False)
    company_name = Column(String(100), nullable=True)
    company_description = Column(Text, nullable=True)
    phone_number = Column(String(50), nullable=True)
    # Plain reference; files.user_id already points back at users
    logo_file_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    role = relationship("Role", back_populates="users")

    houses = relationship("House", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    cars = relationship("Car", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    items = relationship("Item", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    jobs = relationship("Job", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    files = relationship("File", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)
    applications = relationship(
        "JobApplication", back_populates="applicant", cascade="all, delete-orphan", passive_deletes=True
    )
    verification_requests = relationship(
        "CompanyVerificationRequest", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def role_name(self) -> str:
        return self.role.name if self.role else ROLE_USER
