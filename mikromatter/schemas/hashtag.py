"""Pydantic schemas for hashtags."""
from pydantic import BaseModel


class TrendingHashtag(BaseModel):
    name: str
    count: int
