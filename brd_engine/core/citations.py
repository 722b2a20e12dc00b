"""Inline citation markers linking document content to sources.

Markers have the fixed textual form ``[Source ID: <id>]`` so they survive a
round trip through the provider and stay greppable for presentation.
"""

import re

CITATION_PREFIX = "[Source ID: "
CITATION_PATTERN = re.compile(r"\[Source ID: ([^\]\[\n]+)\]")
_SPLIT_PATTERN = re.compile(r"(\[Source ID: [^\]\[\n]+\])")


def format_citation(source_id: str) -> str:
    """Render the marker for a source id."""
    return f"{CITATION_PREFIX}{source_id}]"


def extract_citation_ids(text: str) -> list[str]:
    """Return cited source ids in order of first appearance, without duplicates."""
    seen: dict[str, None] = {}
    for match in CITATION_PATTERN.finditer(text):
        seen.setdefault(match.group(1).strip(), None)
    return list(seen)


def split_citations(text: str) -> list[tuple[str, str | None]]:
    """
    Split content into text and citation segments.

    Returns:
        List of (segment, source_id) pairs; source_id is None for plain text.
        Empty text segments are dropped.
    """
    segments: list[tuple[str, str | None]] = []
    for part in _SPLIT_PATTERN.split(text):
        if not part:
            continue
        match = CITATION_PATTERN.fullmatch(part)
        segments.append((part, match.group(1).strip() if match else None))
    return segments


def find_malformed_citations(text: str) -> list[int]:
    """Offsets of marker openers that do not close into a well-formed marker."""
    well_formed = {m.start() for m in CITATION_PATTERN.finditer(text)}
    offsets = []
    start = text.find(CITATION_PREFIX)
    while start != -1:
        if start not in well_formed:
            offsets.append(start)
        start = text.find(CITATION_PREFIX, start + 1)
    return offsets


def truncate_preserving_citations(text: str, limit: int) -> str:
    """
    Cut text to at most ``limit`` characters without splitting a marker.

    If the cut lands inside a marker the text is cut just before the marker's
    opening bracket instead.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")
    if len(text) <= limit:
        return text

    cut = limit
    for match in CITATION_PATTERN.finditer(text):
        if match.start() >= cut:
            break
        if match.start() < cut < match.end():
            cut = match.start()
            break

    # A dangling opener that never closes is cut away as well
    opener = text.rfind("[", 0, cut)
    if opener != -1 and "]" not in text[opener:cut] and text.startswith("[Source", opener):
        cut = opener

    return text[:cut]
