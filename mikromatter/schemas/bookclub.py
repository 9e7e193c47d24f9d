"""Pydantic schemas for Bookclub."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from mikromatter.schemas.user import UserPublic


def _optional_url(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    value = value.strip()
    if not value.startswith(("http://", "https://")):
        raise ValueError("Must be a valid URL")
    return value


class BookclubCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    current_book: str = Field(..., min_length=1, max_length=200)
    current_author: str = Field(..., min_length=1, max_length=100)
    author_website: str | None = None
    book_cover_url: str | None = None

    @field_validator("author_website", "book_cover_url")
    @classmethod
    def check_urls(cls, v: str | None) -> str | None:
        return _optional_url(v)


class BookclubResponse(BaseModel):
    id: str
    name: str
    description: str
    creator_id: str
    current_book: str
    current_author: str
    author_website: str | None = None
    book_cover_url: str | None = None
    created_at: datetime | None = None
    creator: UserPublic | None = None
    members_count: int = 0
    is_member: bool = False
    is_creator: bool = False

    model_config = {"from_attributes": True}
