"""Shared structured request used by synthesis and edit chains."""

from collections.abc import Iterable

from brd_engine.core.config import Settings
from brd_engine.core.errors import SchemaViolation
from brd_engine.core.logging import get_logger
from brd_engine.core.providers import SynthesisProvider, call_with_timeout
from brd_engine.core.schemas_document import (
    DOCUMENT_JSON_SCHEMA,
    DocumentPayload,
    parse_document_payload,
)

logger = get_logger(__name__)


FIX_SCHEMA_PROMPT = """The previous output failed schema validation.
Error details:
{error}

Original invalid output:
{previous_output}

Please fix the output to match the required JSON schema exactly. Output ONLY valid JSON."""


async def request_document(
    *,
    provider: SynthesisProvider,
    prompt: str,
    system: str,
    model: str,
    settings: Settings,
    known_source_ids: Iterable[str],
) -> DocumentPayload:
    """
    Issue one structured request and validate the result.

    With SCHEMA_REPAIR_RETRY enabled a single fix-to-schema retry follows a
    contract failure.

    Raises:
        ProviderError: Provider failure or timeout
        SchemaViolation: Output failed the contract (or cited unknown sources
            with STRICT_CITATIONS enabled)
    """
    raw = await call_with_timeout(
        provider.structured_generate(prompt, DOCUMENT_JSON_SCHEMA, system=system, model=model),
        settings.PROVIDER_TIMEOUT_SECONDS,
    )

    try:
        payload = parse_document_payload(raw)
    except SchemaViolation as e:
        logger.warning(f"Document output failed validation: {e}; raw={e.raw_output[:500]!r}")
        if not settings.SCHEMA_REPAIR_RETRY:
            raise

        logger.info("Attempting retry with fix-to-schema prompt")
        fix_prompt = FIX_SCHEMA_PROMPT.format(error=str(e), previous_output=e.raw_output[:4000])
        retry_raw = await call_with_timeout(
            provider.structured_generate(
                f"{prompt}\n\n{fix_prompt}", DOCUMENT_JSON_SCHEMA, system=system, model=model
            ),
            settings.PROVIDER_TIMEOUT_SECONDS,
        )
        payload = parse_document_payload(retry_raw)
        logger.info("Fix-to-schema retry succeeded")

    dangling = payload.dangling_citations(known_source_ids)
    if dangling:
        if settings.STRICT_CITATIONS:
            raise SchemaViolation(
                f"Output cites unknown sources: {', '.join(dangling)}",
                raw_output=str(raw),
            )
        logger.warning(f"Output cites unknown sources (kept, flagged): {dangling}")

    return payload
