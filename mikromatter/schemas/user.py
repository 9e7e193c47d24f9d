"""Pydantic schemas for User."""
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


def validate_media_url(value: str | None) -> str | None:
    """Empty means no media. Otherwise an http(s) URL or a finalized object path."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if value.startswith(("http://", "https://", "/objects/")):
        return value
    raise ValueError("Must be a valid URL")


class UserBase(BaseModel):
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    profile_image_url: str | None = None
    bio: str | None = None
    location: str | None = Field(None, max_length=255)


class OAuthProfile(UserBase):
    """Identity handed over by an OAuth provider. ``id`` is provider-prefixed, e.g. ``github:1234``."""
    id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None


class UserUpdate(BaseModel):
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    bio: str | None = Field(None, max_length=500)
    location: str | None = Field(None, max_length=255)


class AvatarUpdate(BaseModel):
    avatar_url: str = Field(..., min_length=1)

    @field_validator("avatar_url")
    @classmethod
    def check_avatar_url(cls, v: str) -> str:
        url = validate_media_url(v)
        if url is None:
            raise ValueError("Avatar URL cannot be empty")
        return url


class UserPublic(UserBase):
    id: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserResponse(UserPublic):
    email: str | None = None  # Only in own profile
    updated_at: datetime | None = None


class UserStatsResponse(UserPublic):
    posts_count: int = 0
    following_count: int = 0
    followers_count: int = 0
    is_following: bool = False  # False for anonymous viewers and for the user themselves


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenRefresh(BaseModel):
    refresh_token: str
