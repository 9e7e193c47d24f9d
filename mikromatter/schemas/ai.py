"""Schemas for the text-generation passthrough."""
from pydantic import BaseModel


class IdeasRequest(BaseModel):
    topic: str | None = None


class IdeasResponse(BaseModel):
    ideas: list[str]


class ProofreadRequest(BaseModel):
    content: str = ""


class Suggestion(BaseModel):
    original: str
    suggestion: str
    reason: str = ""


class ProofreadResponse(BaseModel):
    corrected_text: str
    suggestions: list[Suggestion] = []
