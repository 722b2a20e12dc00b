"""Pydantic schemas for ingested sources."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SourceKind(str, Enum):
    """Channel a source was collected from."""

    EMAIL = "EMAIL"
    MEETING_TRANSCRIPT = "MEETING_TRANSCRIPT"
    CHAT_THREAD = "CHAT_THREAD"
    DOCUMENT = "DOCUMENT"
    NOTE = "NOTE"


class Source(BaseModel):
    """A single ingested source. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Session-unique source id")
    kind: SourceKind = Field(..., description="Source channel")
    title: str = Field(..., description="Human-readable title")
    body: str = Field(..., description="Decoded text body")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Ingestion time"
    )
    author: str | None = Field(default=None, description="Author, if known")

    @field_validator("id")
    @classmethod
    def _citable_id(cls, value: str) -> str:
        if value != value.strip() or any(ch in value for ch in "[]\n"):
            raise ValueError(f"cannot be embedded in a citation marker: {value!r}")
        return value

    @field_validator("title", "body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class SourceCreate(BaseModel):
    """Request body for adding a source to a session."""

    kind: SourceKind = Field(..., description="Source channel")
    title: str = Field(..., min_length=1, description="Human-readable title")
    body: str = Field(..., min_length=1, description="Decoded text body")
    author: str | None = Field(default=None, description="Author, if known")


class SourceCreated(BaseModel):
    """Response body for an added source."""

    id: str
    total_sources: int
