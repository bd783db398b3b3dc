from datetime import datetime, date
from decimal import Decimal

from pydantic import BaseModel, field_validator

JOB_TYPES = ("full-time", "part-time", "contract", "freelance", "internship", "temporary")


def _required_text(v: str, label: str, max_length: int) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{label} is required")
    if len(v) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return v


def _optional_text(v: str | None, label: str, max_length: int | None = None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if max_length and len(v) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return v


def _non_negative(v, label: str):
    if v is not None and v < 0:
        raise ValueError(f"{label} cannot be negative")
    return v


def _http_url(v: str | None) -> str | None:
    v = _optional_text(v, "URL", 1000)
    if v is not None and not v.startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    return v


# Houses

class HouseCreate(BaseModel):
    title: str
    address: str | None = None
    price: Decimal | None = None
    description: str | None = None
    number_of_bedrooms: int | None = None
    number_of_bathrooms: int | None = None
    square_footage: int | None = None
    is_published: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _required_text(v, "Title", 255)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str | None) -> str | None:
        return _optional_text(v, "Address", 255)

    @field_validator("price", "number_of_bedrooms", "number_of_bathrooms", "square_footage")
    @classmethod
    def validate_non_negative(cls, v, info):
        return _non_negative(v, info.field_name)


class HouseUpdate(BaseModel):
    title: str | None = None
    address: str | None = None
    price: Decimal | None = None
    description: str | None = None
    number_of_bedrooms: int | None = None
    number_of_bathrooms: int | None = None
    square_footage: int | None = None
    is_published: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v, "Title", 255)

    @field_validator("price", "number_of_bedrooms", "number_of_bathrooms", "square_footage")
    @classmethod
    def validate_non_negative(cls, v, info):
        return _non_negative(v, info.field_name)


# Cars

def _validate_year(v: int | None) -> int | None:
    if v is None:
        return None
    if v < 1886 or v > date.today().year + 1:
        raise ValueError("Year is out of range")
    return v


class CarCreate(BaseModel):
    make: str
    model: str
    year: int | None = None
    price: Decimal | None = None
    color: str | None = None
    mileage: int | None = None
    fuel_type: str | None = None
    description: str | None = None
    is_published: bool = False

    @field_validator("make", "model")
    @classmethod
    def validate_make_model(cls, v: str, info) -> str:
        return _required_text(v, info.field_name.capitalize(), 50)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int | None) -> int | None:
        return _validate_year(v)

    @field_validator("price", "mileage")
    @classmethod
    def validate_non_negative(cls, v, info):
        return _non_negative(v, info.field_name)


class CarUpdate(BaseModel):
    make: str | None = None
    model: str | None = None
    year: int | None = None
    price: Decimal | None = None
    color: str | None = None
    mileage: int | None = None
    fuel_type: str | None = None
    description: str | None = None
    is_published: bool | None = None

    @field_validator("make", "model")
    @classmethod
    def validate_make_model(cls, v: str | None, info) -> str | None:
        return None if v is None else _required_text(v, info.field_name.capitalize(), 50)

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: int | None) -> int | None:
        return _validate_year(v)

    @field_validator("price", "mileage")
    @classmethod
    def validate_non_negative(cls, v, info):
        return _non_negative(v, info.field_name)


# Items

class ItemCreate(BaseModel):
    name: str
    description: str | None = None
    price: Decimal | None = None
    is_published: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _required_text(v, "Name", 100)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        return _non_negative(v, "price")


class ItemUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = None
    is_published: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return None if v is None else _required_text(v, "Name", 100)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        return _non_negative(v, "price")


# Jobs

def _validate_job_type(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip().lower()
    if v not in JOB_TYPES:
        raise ValueError(f"Job type must be one of: {', '.join(JOB_TYPES)}")
    return v


def _validate_application_type(v: str | None) -> str | None:
    if v is None:
        return None
    if v not in ("native", "external"):
        raise ValueError("Application type must be 'native' or 'external'")
    return v


class JobCreate(BaseModel):
    title: str
    location: str
    company: str | None = None
    job_type: str = "full-time"
    description: str | None = None
    salary: str | None = None
    experience_required: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    is_remote: bool = False
    application_type: str = "native"
    external_application_url: str | None = None
    is_published: bool = True

    @field_validator("title", "location")
    @classmethod
    def validate_required(cls, v: str, info) -> str:
        return _required_text(v, info.field_name.capitalize(), 255)

    @field_validator("company")
    @classmethod
    def validate_company(cls, v: str | None) -> str | None:
        return _optional_text(v, "Company", 255)

    @field_validator("job_type")
    @classmethod
    def validate_job_type(cls, v: str) -> str:
        return _validate_job_type(v)

    @field_validator("application_type")
    @classmethod
    def validate_application_type(cls, v: str) -> str:
        return _validate_application_type(v)

    @field_validator("external_application_url")
    @classmethod
    def validate_external_url(cls, v: str | None) -> str | None:
        return _http_url(v)


class JobUpdate(BaseModel):
    title: str | None = None
    location: str | None = None
    company: str | None = None
    job_type: str | None = None
    description: str | None = None
    salary: str | None = None
    experience_required: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    is_remote: bool | None = None
    application_type: str | None = None
    external_application_url: str | None = None
    is_published: bool | None = None

    @field_validator("title", "location", "company")
    @classmethod
    def validate_text(cls, v: str | None, info) -> str | None:
        return None if v is None else _required_text(v, info.field_name.capitalize(), 255)

    @field_validator("job_type")
    @classmethod
    def validate_job_type(cls, v: str | None) -> str | None:
        return _validate_job_type(v)

    @field_validator("application_type")
    @classmethod
    def validate_application_type(cls, v: str | None) -> str | None:
        return _validate_application_type(v)

    @field_validator("external_application_url")
    @classmethod
    def validate_external_url(cls, v: str | None) -> str | None:
        return _http_url(v)


# Responses

class ListingResponse(BaseModel):
    id: int
    user_id: int
    is_published: bool
    primary_image_id: int | None = None
    primary_image_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class HouseResponse(ListingResponse):
    title: str
    address: str | None = None
    price: float | None = None
    description: str | None = None
    number_of_bedrooms: int | None = None
    number_of_bathrooms: int | None = None
    square_footage: int | None = None


class CarResponse(ListingResponse):
    make: str
    model: str
    year: int | None = None
    price: float | None = None
    color: str | None = None
    mileage: int | None = None
    fuel_type: str | None = None
    description: str | None = None


class ItemResponse(ListingResponse):
    name: str
    description: str | None = None
    price: float | None = None


class JobResponse(ListingResponse):
    title: str
    company: str
    location: str
    job_type: str
    description: str | None = None
    salary: str | None = None
    experience_required: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    is_remote: bool
    views: int
    application_type: str
    external_application_url: str | None = None


class DashboardResponse(BaseModel):
    jobs: list[JobResponse]
    houses: list[HouseResponse]
    cars: list[CarResponse]
    items: list[ItemResponse]
