"""In-session registry of ingested sources."""

from uuid import uuid4

from brd_engine.core.errors import SourceNotFound
from brd_engine.core.logging import get_logger
from brd_engine.core.schemas_sources import Source, SourceKind

logger = get_logger(__name__)


def generate_source_id() -> str:
    """Short id, unique enough within one session."""
    return f"src-{uuid4().hex[:8]}"


class SourceRegistry:
    """
    Owns the sources of one session.

    Insertion order is significant: it is the order sources appear in prompts
    and therefore the order citations tend to be emitted in. There is no update
    or delete.
    """

    def __init__(self) -> None:
        self._sources: dict[str, Source] = {}

    def add(self, source: Source) -> str:
        """Register a source and return its id."""
        if source.id in self._sources:
            raise ValueError(f"Source id already registered: {source.id}")
        self._sources[source.id] = source
        logger.debug(f"Registered source {source.id} ({source.kind.value})")
        return source.id

    def add_source(
        self,
        kind: SourceKind | str,
        title: str,
        body: str,
        author: str | None = None,
    ) -> str:
        """Build a source from decoded text and register it."""
        source_id = generate_source_id()
        while source_id in self._sources:
            source_id = generate_source_id()

        return self.add(
            Source(id=source_id, kind=SourceKind(kind), title=title, body=body, author=author)
        )

    def get(self, source_id: str) -> Source:
        try:
            return self._sources[source_id]
        except KeyError:
            raise SourceNotFound(source_id) from None

    def list(self) -> list[Source]:
        return list(self._sources.values())

    def ids(self) -> set[str]:
        return set(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources
