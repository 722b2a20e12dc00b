"""Prompt context for the BRD engine.

This module provides:
- Edit/query intent classification
- Prompt assembly for synthesis, revision and query calls
"""

from brd_engine.context.assembler import (
    build_query_prompt,
    build_revision_prompt,
    build_synthesis_prompt,
    format_source,
)
from brd_engine.context.intent_classifier import EDIT_KEYWORDS, Intent, classify

__all__ = [
    "EDIT_KEYWORDS",
    "Intent",
    "build_query_prompt",
    "build_revision_prompt",
    "build_synthesis_prompt",
    "classify",
    "format_source",
]
