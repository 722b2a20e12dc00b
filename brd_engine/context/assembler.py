"""Prompt payload assembly for synthesis, revision and query calls."""

import json
from collections.abc import Sequence

from brd_engine.core.citations import format_citation, truncate_preserving_citations
from brd_engine.core.conversation_log import ConversationTurn
from brd_engine.core.schemas_document import Document
from brd_engine.core.schemas_sources import Source

SOURCE_DELIMITER = "---"
TRUNCATION_SUFFIX = "..."

# Standard BRD outline requested on first-pass synthesis
BRD_SECTIONS = [
    "Executive Summary",
    "Business Objectives",
    "Stakeholder Analysis",
    "Functional Requirements",
    "Non-Functional Requirements",
    "Assumptions & Constraints",
    "Risks",
    "Success Metrics",
    "Timeline",
]


def _source_header(source: Source) -> str:
    return f"{format_citation(source.id)} ({source.kind.value} - {source.title})"


def format_source(source: Source, char_budget: int | None = None) -> str:
    """
    Frame one source for a prompt.

    Args:
        source: Source to render
        char_budget: Max body characters; None renders the full body

    Returns:
        Header line, optional author/date line, body and delimiter
    """
    lines = [_source_header(source)]
    meta = [f"date: {source.created_at.date().isoformat()}"]
    if source.author:
        meta.insert(0, f"author: {source.author}")
    lines.append(f"({', '.join(meta)})")

    body = source.body
    if char_budget is not None and len(body) > char_budget:
        body = truncate_preserving_citations(body, char_budget) + TRUNCATION_SUFFIX
    lines.append(body)
    lines.append(SOURCE_DELIMITER)
    return "\n".join(lines)


def build_synthesis_prompt(sources: Sequence[Source], project_title: str) -> str:
    """Full-synthesis payload: every source, untruncated, in registry order."""
    source_context = "\n".join(format_source(source) for source in sources)
    outline = "\n".join(f"- {name}" for name in BRD_SECTIONS)

    return f"""Generate a comprehensive Business Requirements Document (BRD) for a project named "{project_title}".

Here is the raw data collected from various communication channels:
{source_context}

Instructions:
1. Analyze the data to extract project objectives, stakeholders, functional and non-functional requirements, assumptions, and timeline.
2. Filter out irrelevant chit-chat or noise.
3. Identify any conflicting requirements and list them separately in "conflicts".
4. Cite where specific requirements came from inline, using exactly the form [Source ID: <id>] with the ids given above.
5. Return the result in strict JSON matching the schema provided.

Structure the BRD with these standard sections:
{outline}
"""


def build_revision_prompt(
    document: Document,
    sources: Sequence[Source],
    instruction: str,
    char_budget: int = 500,
) -> str:
    """
    Edit payload: the current document in full plus truncated sources.

    Revisions favor document continuity over source recall, so each source body
    is capped at ``char_budget`` characters.
    """
    source_context = "\n".join(format_source(source, char_budget) for source in sources)

    return f"""Current BRD (JSON):
{document.to_json()}

Available Source Context (Truncated):
{source_context}

User Instruction: "{instruction}"

Task:
Update the BRD based strictly on the User Instruction.
- If the user asks to add a requirement, add it to the appropriate section.
- If the user asks to change the tone, rewrite the sections.
- Maintain the JSON structure and keep section ids stable unless a section is added or removed.
- Keep existing citations if valid, or add new ones in the form [Source ID: <id>] if information comes from the source context.
"""


def format_history(turns: Sequence[ConversationTurn]) -> str:
    return "\n".join(f"{turn.role.value}: {turn.content}" for turn in turns)


def build_query_prompt(
    document: Document,
    question: str,
    history: Sequence[ConversationTurn] = (),
) -> str:
    """Read-only payload: the entire serialized document, recent turns and the question."""
    document_json = json.dumps(document.to_export())
    parts = [f"Context:\n{document_json}"]
    if history:
        parts.append(f"Recent conversation:\n{format_history(history)}")
    parts.append(f"User Question:\n{question}")
    parts.append("Answer the user's question based on the provided context. Be concise and helpful.")
    return "\n\n".join(parts)
