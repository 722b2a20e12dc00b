"""LLM chain for first-pass BRD synthesis from sources."""

from collections.abc import Sequence

from brd_engine.chains._document_request import request_document
from brd_engine.context.assembler import build_synthesis_prompt
from brd_engine.core.config import Settings, get_settings
from brd_engine.core.errors import EmptyInput
from brd_engine.core.logging import get_logger
from brd_engine.core.providers import SynthesisProvider
from brd_engine.core.schemas_document import Document
from brd_engine.core.schemas_sources import Source

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are an expert Business Analyst.
You turn raw project communication (meeting transcripts, emails, chat threads, documents, notes) into a structured Business Requirements Document.

Rules:
- Every requirement attributable to a specific source MUST carry an inline citation of the exact form [Source ID: <id>], using only the source ids provided.
- Never invent source ids.
- Each section needs a short, stable, unique id (e.g. "executive-summary").
- Section content is Markdown.
- List conflicting requirements in "conflicts"; return an empty list if there are none.
"""


async def generate_document(
    sources: Sequence[Source],
    project_title: str,
    *,
    provider: SynthesisProvider,
    settings: Settings | None = None,
    model_override: str | None = None,
) -> Document:
    """
    Generate a BRD from sources.

    Args:
        sources: Sources in registry order
        project_title: Project name used in the document
        provider: Synthesis provider
        settings: Application settings
        model_override: Optional model name override

    Returns:
        Document at version 1

    Raises:
        EmptyInput: If no sources were given (no provider call is made)
        ProviderError: If the provider call fails or times out
        SchemaViolation: If the output does not match the document contract
    """
    if not sources:
        raise EmptyInput("No sources provided")

    settings = settings or get_settings()
    model = model_override or settings.model_for(settings.SYNTHESIS_MODEL)
    prompt = build_synthesis_prompt(sources, project_title)

    logger.info(
        f"Calling {model} for BRD synthesis",
        extra={"extra_data": {"source_count": len(sources), "prompt_chars": len(prompt)}},
    )

    payload = await request_document(
        provider=provider,
        prompt=prompt,
        system=SYSTEM_PROMPT,
        model=model,
        settings=settings,
        known_source_ids=[source.id for source in sources],
    )

    document = Document.from_payload(payload, version=1)
    logger.info(f"Generated BRD with {len(document.sections)} sections")
    return document
