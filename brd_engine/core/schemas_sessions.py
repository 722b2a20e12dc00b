"""Pydantic schemas for the session API."""

from typing import Literal

from pydantic import BaseModel, Field

from brd_engine.core.conversation_log import ConversationTurn


class SessionCreate(BaseModel):
    """Request body for creating a session."""

    project_title: str | None = Field(default=None, description="Project name for the BRD")


class SessionSummary(BaseModel):
    """Session overview."""

    session_id: str
    project_title: str
    status: Literal["draft", "generated"]
    source_count: int
    document_version: int | None = None
    turn_count: int = 0
    dangling_citations: list[str] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    """Response body for document generation."""

    version: int
    title: str
    section_count: int
    conflict_count: int


class InstructionRequest(BaseModel):
    """Request body for an edit or query instruction."""

    instruction: str = Field(..., min_length=1, description="Free-text instruction")


class InstructionResponse(BaseModel):
    """Reply to an instruction plus the resulting document version."""

    reply: ConversationTurn
    document_version: int | None = None


class ConversationResponse(BaseModel):
    turns: list[ConversationTurn]
