"""Revision of a live BRD from free-text instructions.

Edits re-synthesize the document against its current version; queries answer
from it read-only. No failure escapes ``handle``: it becomes an apologetic
reply and the document passed in is returned untouched.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from brd_engine.chains._document_request import request_document
from brd_engine.context.assembler import build_query_prompt, build_revision_prompt
from brd_engine.context.intent_classifier import Intent, classify
from brd_engine.core.config import Settings, get_settings
from brd_engine.core.conversation_log import ConversationTurn, TurnRole
from brd_engine.core.errors import BRDEngineError, InvalidState, ProviderError
from brd_engine.core.logging import get_logger
from brd_engine.core.providers import SynthesisProvider, call_with_timeout
from brd_engine.core.schemas_document import Document
from brd_engine.core.schemas_sources import Source

logger = get_logger(__name__)


EDIT_SYSTEM_PROMPT = """You are an expert Business Analyst maintaining a Business Requirements Document.
Apply the user's instruction to the current document and return the complete updated document.
Preserve sections and citations the instruction does not touch. Citations use the exact form [Source ID: <id>]."""

QUERY_SYSTEM_PROMPT = """You are an expert Business Analyst answering questions about a Business Requirements Document.
Answer only from the provided context. Be concise and helpful."""

NO_DOCUMENT_MESSAGE = (
    "Please generate a requirements document first by adding sources and running generation."
)
EDIT_SUCCESS_MESSAGE = "I've updated the document as requested."
EDIT_FAILURE_MESSAGE = (
    "Sorry, I couldn't apply that change. The document has been left as it was; please try again."
)
QUERY_FAILURE_MESSAGE = "Sorry, I encountered an error answering your question. Please try again."


@dataclass
class RevisionOutcome:
    """Result of handling one instruction."""

    intent: Intent
    document: Document | None
    reply: str
    reply_role: TurnRole = TurnRole.ASSISTANT
    succeeded: bool = True
    error: str | None = None


async def run_edit_chain(
    *,
    document: Document,
    sources: Sequence[Source],
    instruction: str,
    provider: SynthesisProvider,
    settings: Settings,
) -> Document:
    """
    Apply an edit instruction.

    Returns:
        New Document at ``document.version + 1``

    Raises:
        ProviderError: Provider failure or timeout
        SchemaViolation: Output failed the document contract
    """
    model = settings.model_for(settings.REVISION_MODEL)
    prompt = build_revision_prompt(
        document, sources, instruction, char_budget=settings.REVISION_SOURCE_CHAR_BUDGET
    )
    logger.info(
        f"Calling {model} for BRD edit",
        extra={"extra_data": {"version": document.version, "prompt_chars": len(prompt)}},
    )

    payload = await request_document(
        provider=provider,
        prompt=prompt,
        system=EDIT_SYSTEM_PROMPT,
        model=model,
        settings=settings,
        known_source_ids=[source.id for source in sources],
    )
    return document.revised(payload)


async def run_query_chain(
    *,
    document: Document,
    question: str,
    history: Sequence[ConversationTurn],
    provider: SynthesisProvider,
    settings: Settings,
) -> str:
    """Answer a question from the current document. Never changes it."""
    prompt = build_query_prompt(document, question, history)
    model = settings.model_for(settings.QUERY_MODEL)
    answer = await call_with_timeout(
        provider.text_generate(prompt, system=QUERY_SYSTEM_PROMPT, model=model),
        settings.PROVIDER_TIMEOUT_SECONDS,
    )
    if not answer or not answer.strip():
        raise ProviderError("Provider returned no answer")
    return answer.strip()


def _describe_edit(before: Document, after: Document) -> str:
    delta = len(after.sections) - len(before.sections)
    if delta > 0:
        change = f"added {delta} section{'s' if delta != 1 else ''}"
    elif delta < 0:
        change = f"removed {-delta} section{'s' if delta != -1 else ''}"
    else:
        change = f"{len(after.sections)} sections"
    return f"{EDIT_SUCCESS_MESSAGE} (version {after.version}, {change})"


class RevisionEngine:
    """Routes instructions to the edit or query protocol."""

    def __init__(self, provider: SynthesisProvider, settings: Settings | None = None):
        self.provider = provider
        self.settings = settings or get_settings()

    async def handle(
        self,
        instruction: str,
        *,
        document: Document | None,
        sources: Sequence[Source],
        history: Sequence[ConversationTurn] = (),
    ) -> RevisionOutcome:
        intent = classify(instruction)

        if document is None:
            logger.info(f"Instruction classified {intent.value} but no document exists yet")
            return RevisionOutcome(
                intent=intent,
                document=None,
                reply=NO_DOCUMENT_MESSAGE,
                reply_role=TurnRole.SYSTEM,
                succeeded=False,
                error=InvalidState.__name__,
            )

        if intent is Intent.EDIT:
            return await self._edit(instruction, document, sources)
        return await self._query(instruction, document, history)

    async def _edit(
        self, instruction: str, document: Document, sources: Sequence[Source]
    ) -> RevisionOutcome:
        try:
            revised = await run_edit_chain(
                document=document,
                sources=sources,
                instruction=instruction,
                provider=self.provider,
                settings=self.settings,
            )
        except BRDEngineError as e:
            logger.warning(f"Edit failed, keeping version {document.version}: {e}")
            return RevisionOutcome(
                intent=Intent.EDIT,
                document=document,
                reply=EDIT_FAILURE_MESSAGE,
                succeeded=False,
                error=type(e).__name__,
            )
        except Exception as e:
            logger.exception(f"Unexpected edit failure, keeping version {document.version}")
            return RevisionOutcome(
                intent=Intent.EDIT,
                document=document,
                reply=EDIT_FAILURE_MESSAGE,
                succeeded=False,
                error=type(e).__name__,
            )

        logger.info(f"Document revised to version {revised.version}")
        return RevisionOutcome(
            intent=Intent.EDIT, document=revised, reply=_describe_edit(document, revised)
        )

    async def _query(
        self, question: str, document: Document, history: Sequence[ConversationTurn]
    ) -> RevisionOutcome:
        try:
            answer = await run_query_chain(
                document=document,
                question=question,
                history=history,
                provider=self.provider,
                settings=self.settings,
            )
        except ProviderError as e:
            logger.warning(f"Query failed: {e}")
            return RevisionOutcome(
                intent=Intent.QUERY,
                document=document,
                reply=QUERY_FAILURE_MESSAGE,
                succeeded=False,
                error=type(e).__name__,
            )
        except Exception as e:
            logger.exception("Unexpected query failure")
            return RevisionOutcome(
                intent=Intent.QUERY,
                document=document,
                reply=QUERY_FAILURE_MESSAGE,
                succeeded=False,
                error=type(e).__name__,
            )

        return RevisionOutcome(intent=Intent.QUERY, document=document, reply=answer)
