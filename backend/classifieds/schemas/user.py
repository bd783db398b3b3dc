from datetime import datetime

from pydantic import BaseModel, EmailStr, field_validator


class PublicProfileResponse(BaseModel):
    id: int
    username: str
    is_company: bool
    is_verified_company: bool
    company_name: str | None = None
    company_description: str | None = None
    logo_file_id: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminUserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    is_company: bool
    is_verified_company: bool
    company_name: str | None = None
    phone_number: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user) -> "AdminUserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role_name,
            is_company=user.is_company,
            is_verified_company=user.is_verified_company,
            company_name=user.company_name,
            phone_number=user.phone_number,
            created_at=user.created_at,
        )


class AdminUserUpdate(BaseModel):
    username: str | None = None
    email: EmailStr | None = None
    is_company: bool | None = None
    company_name: str | None = None
    company_description: str | None = None
    phone_number: str | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) < 3 or len(v) > 50:
            raise ValueError("Username must be between 3 and 50 characters")
        return v


class RoleUpdate(BaseModel):
    role: str


class VerificationFlagUpdate(BaseModel):
    is_verified_company: bool
