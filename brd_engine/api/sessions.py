"""API endpoints for BRD sessions: sources, generation, and instructions."""

from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse

from brd_engine.core.errors import EmptyInput, ProviderError, SchemaViolation, SessionNotFound
from brd_engine.core.logging import get_logger
from brd_engine.core.providers import get_provider
from brd_engine.core.schemas_document import Document, render_markdown
from brd_engine.core.schemas_sessions import (
    ConversationResponse,
    GenerateResponse,
    InstructionRequest,
    InstructionResponse,
    SessionCreate,
    SessionSummary,
)
from brd_engine.core.schemas_sources import Source, SourceCreate, SourceCreated
from brd_engine.core.session import BRDSession
from brd_engine.db.sessions import get_session_store

logger = get_logger(__name__)

router = APIRouter()


def _load_session(session_id: str) -> BRDSession:
    try:
        return get_session_store().get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from None


def _summary(session: BRDSession) -> SessionSummary:
    document = session.document
    return SessionSummary(
        session_id=session.id,
        project_title=session.project_title,
        status=session.status,
        source_count=len(session.registry),
        document_version=document.version if document else None,
        turn_count=len(session.conversation),
        dangling_citations=session.dangling_citations(),
    )


@router.post("", response_model=SessionSummary, status_code=201)
async def create_session(request: SessionCreate) -> SessionSummary:
    """Create a new empty session."""
    try:
        provider = get_provider()
    except ValueError as e:
        logger.error(f"Provider not configured: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e

    session = get_session_store().add(BRDSession(provider, project_title=request.project_title))
    return _summary(session)


@router.get("/{session_id}", response_model=SessionSummary)
async def get_session(session_id: str) -> SessionSummary:
    return _summary(_load_session(session_id))


@router.post("/{session_id}/sources", response_model=SourceCreated, status_code=201)
async def add_source(session_id: str, request: SourceCreate) -> SourceCreated:
    """Register a decoded text source."""
    session = _load_session(session_id)
    try:
        source_id = session.add_source(request.kind, request.title, request.body, author=request.author)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return SourceCreated(id=source_id, total_sources=len(session.registry))


@router.get("/{session_id}/sources", response_model=list[Source])
async def list_sources(session_id: str) -> list[Source]:
    return _load_session(session_id).sources


@router.post("/{session_id}/generate", response_model=GenerateResponse)
async def generate(session_id: str) -> GenerateResponse:
    """
    Synthesize the BRD from every registered source.

    Raises:
        HTTPException 400: No sources registered
        HTTPException 422: Provider output failed the document schema
        HTTPException 502: Provider call failed or timed out
    """
    session = _load_session(session_id)

    try:
        document = await session.generate()
    except EmptyInput as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except SchemaViolation as e:
        logger.error(f"Generation for session {session_id} produced invalid output")
        raise HTTPException(
            status_code=422, detail="The model returned an invalid document. Please retry."
        ) from e
    except ProviderError as e:
        logger.error(f"Generation for session {session_id} failed: {e}")
        raise HTTPException(status_code=502, detail="Document generation failed. Please retry.") from e

    return GenerateResponse(
        version=document.version,
        title=document.title,
        section_count=len(document.sections),
        conflict_count=len(document.conflicts),
    )


@router.get("/{session_id}/document", response_model=Document)
async def get_document(
    session_id: str,
    output_format: Literal["json", "markdown"] = Query(default="json", alias="format"),
):
    """Current document as JSON (default) or rendered markdown."""
    session = _load_session(session_id)
    if session.document is None:
        raise HTTPException(status_code=404, detail="No document generated yet")

    if output_format == "markdown":
        return PlainTextResponse(render_markdown(session.document), media_type="text/markdown")
    return session.document


@router.post("/{session_id}/instructions", response_model=InstructionResponse)
async def submit_instruction(session_id: str, request: InstructionRequest) -> InstructionResponse:
    """Apply an edit or answer a query. Failures come back as the reply text."""
    session = _load_session(session_id)
    reply = await session.submit(request.instruction)
    document = session.document
    return InstructionResponse(reply=reply, document_version=document.version if document else None)


@router.get("/{session_id}/conversation", response_model=ConversationResponse)
async def get_conversation(session_id: str) -> ConversationResponse:
    return ConversationResponse(turns=_load_session(session_id).conversation.all())
