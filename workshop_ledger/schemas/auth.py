from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
# bcrypt only looks at the first 72 bytes.
PASSWORD_MAX_BYTES = 72
NAME_MAX_LENGTH = 100


def clean_optional_url(value: Optional[str]) -> Optional[str]:
    """Empty strings mean "no URL"; anything else must be an absolute http(s) URL."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if not cleaned.lower().startswith(("http://", "https://")) or " " in cleaned:
        raise ValueError("must be a valid http(s) URL or empty")
    return cleaned


def _clean_username(value: str) -> str:
    cleaned = value.strip()
    if not USERNAME_MIN_LENGTH <= len(cleaned) <= USERNAME_MAX_LENGTH:
        raise ValueError(
            f"username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    return cleaned


def _check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("name cannot be empty")
    if len(cleaned) > NAME_MAX_LENGTH:
        raise ValueError(f"name must be at most {NAME_MAX_LENGTH} characters")
    return cleaned


class RegisterIn(BaseModel):
    username: str
    email: EmailStr
    password: str
    name: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _clean_username(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

    @field_validator("profile_picture")
    @classmethod
    def validate_profile_picture(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_url(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "workshop_owner",
                "email": "owner@example.com",
                "password": "secret123",
                "name": "Ada Carpenter",
                "profile_picture": "",
            }
        }
    )


class LoginIn(BaseModel):
    username: str = Field(description="Username or email address")
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("username is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "workshop_owner",
                "password": "secret123",
            }
        }
    )


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    name: Optional[str] = None
    profile_picture: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuthOut(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LogoutOut(BaseModel):
    ok: bool = True


class UserUpdateIn(BaseModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    name: Optional[str] = None
    profile_picture: Optional[str] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _clean_username(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _check_password(value)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

    @field_validator("profile_picture")
    @classmethod
    def validate_profile_picture(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_url(value)

    @model_validator(mode="after")
    def validate_has_update(self) -> "UserUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Ada Woodworks",
                "profile_picture": "https://example.com/avatar.png",
            }
        }
    )
