"""Document model and the structured-output contract for synthesis and revision.

Provider output is untrusted: it only becomes a ``Document`` after a full
parse-and-validate through ``parse_document_payload``.
"""

import json
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, model_validator

from brd_engine.core.citations import (
    extract_citation_ids,
    find_malformed_citations,
    split_citations,
)
from brd_engine.core.errors import SchemaViolation
from brd_engine.core.llm import parse_llm_json_dict


class Section(BaseModel):
    """One titled section of the BRD. Content may embed citation markers."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: StrictStr = Field(..., min_length=1, description="Section identifier, unique in a document")
    title: StrictStr = Field(..., description="Section heading")
    content: StrictStr = Field(..., description="Markdown content including citations")


class DocumentPayload(BaseModel):
    """The only shape a synthesis or revision response may take."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    title: StrictStr = Field(..., min_length=1, description="Document title")
    sections: list[Section] = Field(..., min_length=1, description="Sections in display order")
    conflicts: list[StrictStr] = Field(..., description="Conflicting requirements found")

    @model_validator(mode="after")
    def _check_sections(self) -> "DocumentPayload":
        seen: set[str] = set()
        for section in self.sections:
            if section.id in seen:
                raise ValueError(f"duplicate section id: {section.id}")
            seen.add(section.id)
            if find_malformed_citations(section.content):
                raise ValueError(f"malformed citation marker in section {section.id}")
        return self

    def citation_ids(self) -> list[str]:
        """Cited source ids across all sections, in order of first appearance."""
        ids: dict[str, None] = {}
        for section in self.sections:
            for source_id in extract_citation_ids(section.content):
                ids.setdefault(source_id, None)
        return list(ids)

    def dangling_citations(self, known_ids: Iterable[str]) -> list[str]:
        """Cited ids that are not among ``known_ids``."""
        known = set(known_ids)
        return [source_id for source_id in self.citation_ids() if source_id not in known]

    def to_export(self) -> dict[str, Any]:
        """Plain structured form consumed by presentation and prompts."""
        return {
            "title": self.title,
            "sections": [section.model_dump() for section in self.sections],
            "conflicts": list(self.conflicts),
        }


class Document(DocumentPayload):
    """A versioned BRD. Replaced, never mutated, on each successful edit."""

    version: int = Field(..., ge=1, description="Strictly increasing per successful edit")

    @classmethod
    def from_payload(cls, payload: DocumentPayload, version: int = 1) -> "Document":
        return cls(
            title=payload.title,
            sections=list(payload.sections),
            conflicts=list(payload.conflicts),
            version=version,
        )

    def revised(self, payload: DocumentPayload) -> "Document":
        """The next version built from a validated revision payload."""
        return Document.from_payload(payload, version=self.version + 1)

    def to_json(self) -> str:
        return json.dumps(self.to_export(), indent=2)


# JSON Schema handed to the provider. Mirrors DocumentPayload.
DOCUMENT_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "title": {"type": "string"},
                    "content": {
                        "type": "string",
                        "description": "Markdown content of the section, including citations.",
                    },
                },
                "required": ["id", "title", "content"],
                "additionalProperties": False,
            },
        },
        "conflicts": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of conflicting requirements found, if any.",
        },
    },
    "required": ["title", "sections", "conflicts"],
    "additionalProperties": False,
}


def parse_document_payload(raw: dict[str, Any] | str) -> DocumentPayload:
    """
    Validate provider output against the document contract.

    Args:
        raw: Structured output (dict) or raw JSON text, optionally fenced

    Returns:
        Validated DocumentPayload

    Raises:
        SchemaViolation: On any decode or validation failure
    """
    raw_text = raw if isinstance(raw, str) else json.dumps(raw, default=str)

    try:
        data = parse_llm_json_dict(raw) if isinstance(raw, str) else raw
        return DocumentPayload.model_validate(data)
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        raise SchemaViolation(f"Output does not match document schema: {e}", raw_output=raw_text) from e


def _render_content(content: str) -> str:
    return "".join(
        f"[^{source_id}]" if source_id else segment
        for segment, source_id in split_citations(content.strip())
    )


def render_markdown(document: DocumentPayload) -> str:
    """Plain markdown rendering: title, sections, conflicts, then cited sources as footnotes."""
    lines = [f"# {document.title}", ""]
    for section in document.sections:
        lines.extend([f"## {section.title}", "", _render_content(section.content), ""])
    if document.conflicts:
        lines.extend(["## Conflicts", ""])
        lines.extend(f"- {conflict}" for conflict in document.conflicts)
        lines.append("")
    lines.extend(f"[^{source_id}]: Source ID {source_id}" for source_id in document.citation_ids())
    return "\n".join(lines)
