"""Schemas for object uploads."""
from pydantic import BaseModel


class UploadURLResponse(BaseModel):
    upload_url: str


class ObjectPathResponse(BaseModel):
    object_path: str
