from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from app.utils.auth import MAX_PASSWORD_BYTES

MIN_PASSWORD_LENGTH = 7

# fields a caller may change through PATCH /users/me
UPDATABLE_FIELDS = {"name", "email", "password", "age"}


def _check_password(v: str) -> str:
    """Password policy shared by registration and profile update.

    The 72-byte ceiling is bcrypt's; raising here gives the client a clear
    message instead of a hashing failure.
    """
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password too long: must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    if v.strip().lower() == "password":
        raise ValueError('password cannot be "password"')
    return v


def _check_name(v: str) -> str:
    if not v.strip():
        raise ValueError("name cannot be empty")
    return v.strip()


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    age: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v):
        return _check_name(v)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v)


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v):
        return _check_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v):
        return v.lower() if v is not None else v

    @field_validator("password")
    @classmethod
    def password_policy(cls, v):
        return _check_password(v) if v is not None else v


class UserLogin(BaseModel):
    email: str
    password: str


class UserOut(BaseModel):
    """Public view of a user: no password hash, no session tokens."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    age: int
    avatar: Optional[str] = None
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class UserWithToken(BaseModel):
    user: UserOut
    token: str
