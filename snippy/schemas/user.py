"""User API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class UserSync(BaseModel):
    """Profile claims sent by the client right after an Auth0 login."""

    name: str | None = Field(default=None, max_length=255)
    picture_url: str | None = Field(default=None, max_length=2000)


class UserUpdate(BaseModel):
    """Schema for patching the caller's profile."""

    user_name: str | None = Field(default=None, min_length=3, max_length=64)
    display_name: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=2000)

    @field_validator("user_name")
    @classmethod
    def strip_user_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class UserPublicResponse(BaseModel):
    """Public profile."""

    user_name: str
    display_name: str | None
    bio: str | None
    picture_url: str | None
    created_at: datetime


class UserResponse(UserPublicResponse):
    """The caller's own profile."""

    auth0_id: str
    is_admin: bool
    updated_at: datetime


class UserSyncResponse(BaseModel):
    user: UserResponse
    created: bool


class UsernameAvailabilityResponse(BaseModel):
    user_name: str
    available: bool
