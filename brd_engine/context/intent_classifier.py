"""Keyword-based edit/query intent classification.

Deliberately simple and deterministic: any edit keyword appearing anywhere in
the lower-cased instruction (substring match) makes it an edit. Questions that
happen to contain a keyword ("What changes would you recommend?") are
classified as edits.
"""

from enum import Enum


class Intent(str, Enum):
    """Routing verdict for a user instruction."""

    EDIT = "edit"
    QUERY = "query"


EDIT_KEYWORDS: tuple[str, ...] = ("change", "update", "add", "remove", "rewrite")


def classify(instruction: str) -> Intent:
    """Classify an instruction as an edit or a query."""
    lowered = instruction.lower()
    if any(keyword in lowered for keyword in EDIT_KEYWORDS):
        return Intent.EDIT
    return Intent.QUERY
