import re

from pydantic import BaseModel, EmailStr, field_validator

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class RegisterRequest(BaseModel):
    username: str
    email: EmailStr
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters long")
        if len(v) > 50:
            raise ValueError("Username must be at most 50 characters long")
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if len(v) > 128:
            raise ValueError("Password must be at most 128 characters long")
        return v


class LoginRequest(BaseModel):
    username: str
    password: str


class IdentityResponse(BaseModel):
    """The session snapshot, in the shape the frontend expects."""
    id: int
    username: str
    email: str | None = None
    role: str
    isCompany: bool
    isVerifiedCompany: bool


class MessageResponse(BaseModel):
    message: str
