"""Pydantic schemas for Comment."""
from datetime import datetime

from pydantic import BaseModel, Field

from mikromatter.schemas.user import UserPublic


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: str
    user_id: str
    post_id: str
    content: str
    created_at: datetime | None = None
    author: UserPublic | None = None

    model_config = {"from_attributes": True}
