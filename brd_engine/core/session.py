"""A single BRD working session.

The session owns the source registry, the one live ``Document`` reference and
the conversation log. All mutation happens here, after a provider call has
fully succeeded; an ``asyncio.Lock`` queues overlapping generate/submit calls so
an edit is never computed against a stale version.
"""

import asyncio
import logging
from enum import Enum
from uuid import uuid4

from brd_engine.chains.revise_document import RevisionEngine
from brd_engine.chains.synthesize_document import generate_document
from brd_engine.core.config import Settings, get_settings
from brd_engine.core.conversation_log import ConversationLog, ConversationTurn, TurnRole
from brd_engine.core.logging import get_logger, log_with_context
from brd_engine.core.providers import SynthesisProvider
from brd_engine.core.schemas_document import Document
from brd_engine.core.schemas_sources import Source, SourceKind
from brd_engine.core.source_registry import SourceRegistry

logger = get_logger(__name__)


class SessionState(str, Enum):
    NO_DOCUMENT = "no_document"
    READY = "ready"


class BRDSession:
    """Explicit session object replacing ambient "current document" state."""

    def __init__(
        self,
        provider: SynthesisProvider,
        project_title: str | None = None,
        settings: Settings | None = None,
        session_id: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.id = session_id or str(uuid4())
        self.project_title = project_title or self.settings.DEFAULT_PROJECT_TITLE
        self.provider = provider
        self.registry = SourceRegistry()
        self.conversation = ConversationLog()
        self.revision_engine = RevisionEngine(provider, self.settings)
        self._document: Document | None = None
        self._lock = asyncio.Lock()

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def state(self) -> SessionState:
        return SessionState.READY if self._document is not None else SessionState.NO_DOCUMENT

    @property
    def status(self) -> str:
        """Project status: 'draft' until a document has been generated."""
        return "generated" if self._document is not None else "draft"

    @property
    def sources(self) -> list[Source]:
        return self.registry.list()

    def add_source(
        self,
        kind: SourceKind | str,
        title: str,
        body: str,
        author: str | None = None,
    ) -> str:
        source_id = self.registry.add_source(kind, title, body, author=author)
        log_with_context(
            logger, logging.INFO, "Source added", session_id=self.id, source_id=source_id
        )
        return source_id

    async def generate(self) -> Document:
        """
        Synthesize the document from all registered sources.

        Replaces any existing document only on success; failures propagate and
        leave the session untouched.
        """
        async with self._lock:
            document = await generate_document(
                self.registry.list(),
                self.project_title,
                provider=self.provider,
                settings=self.settings,
            )
            self._document = document
            log_with_context(
                logger,
                logging.INFO,
                "Document generated",
                session_id=self.id,
                version=document.version,
                sections=len(document.sections),
            )
            return document

    async def submit(self, instruction: str) -> ConversationTurn:
        """
        Handle one user instruction.

        Appends exactly one user turn and one reply turn, whatever the outcome,
        and returns the reply turn.
        """
        async with self._lock:
            history = self.conversation.recent(self.settings.QUERY_HISTORY_TURNS)
            outcome = await self.revision_engine.handle(
                instruction,
                document=self._document,
                sources=self.registry.list(),
                history=history,
            )

            if outcome.succeeded and outcome.document is not None:
                self._document = outcome.document

            self.conversation.record(TurnRole.USER, instruction)
            reply = self.conversation.record(outcome.reply_role, outcome.reply)

            log_with_context(
                logger,
                logging.INFO,
                "Instruction handled",
                session_id=self.id,
                intent=outcome.intent.value,
                succeeded=outcome.succeeded,
                error=outcome.error,
                version=self._document.version if self._document else None,
            )
            return reply

    def dangling_citations(self) -> list[str]:
        """Ids cited by the live document that the registry does not hold."""
        if self._document is None:
            return []
        return self._document.dangling_citations(self.registry.ids())
