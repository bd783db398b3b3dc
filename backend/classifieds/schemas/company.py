from datetime import datetime

from pydantic import BaseModel, field_validator


def _strip_or_none(v: str | None, label: str, max_length: int) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if len(v) > max_length:
        raise ValueError(f"{label} must be at most {max_length} characters")
    return v


class CompanyRegistration(BaseModel):
    company_name: str
    company_description: str | None = None
    business_license_number: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Company name must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Company name must be at most 100 characters")
        return v

    @field_validator("business_license_number", "contact_email")
    @classmethod
    def validate_short_text(cls, v: str | None, info) -> str | None:
        return _strip_or_none(v, info.field_name, 100)

    @field_validator("contact_phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _strip_or_none(v, "Contact phone", 50)


class CompanyProfileUpdate(BaseModel):
    company_name: str | None = None
    company_description: str | None = None
    phone_number: str | None = None

    @field_validator("company_name")
    @classmethod
    def validate_company_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Company name must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Company name must be at most 100 characters")
        return v

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _strip_or_none(v, "Phone number", 50)


class CompanyProfileResponse(BaseModel):
    id: int
    username: str
    email: str
    is_company: bool
    is_verified_company: bool
    company_name: str | None = None
    company_description: str | None = None
    phone_number: str | None = None
    logo_file_id: int | None = None

    class Config:
        from_attributes = True


class VerificationRequestResponse(BaseModel):
    id: int
    user_id: int
    company_name: str
    company_description: str | None = None
    business_license_number: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    status: str
    rejection_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class RejectRequest(BaseModel):
    reason: str | None = None
