"""Pydantic schemas for Post."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from mikromatter.schemas.user import UserPublic, validate_media_url

MAX_POST_CHARS = 6000
MAX_POST_WORDS = 1000


class PostCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_POST_CHARS)
    image_url: str | None = None

    @field_validator("content")
    @classmethod
    def check_word_limit(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Post cannot be empty")
        if len(v.split()) > MAX_POST_WORDS:
            raise ValueError(f"Post exceeds {MAX_POST_WORDS} word limit")
        return v

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, v: str | None) -> str | None:
        return validate_media_url(v)


class PostResponse(BaseModel):
    id: str
    user_id: str
    content: str
    image_url: str | None = None
    word_count: int
    created_at: datetime | None = None
    author: UserPublic | None = None
    likes_count: int = 0
    reposts_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    is_reposted: bool = False

    model_config = {"from_attributes": True}


class ImageFinalize(BaseModel):
    image_url: str = Field(..., min_length=1)
