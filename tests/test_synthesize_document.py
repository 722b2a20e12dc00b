"""Tests for the first-pass synthesis chain with a fake provider."""

import json

import pytest

from brd_engine.chains.synthesize_document import SYSTEM_PROMPT, generate_document
from brd_engine.core.errors import EmptyInput, ProviderError, SchemaViolation
from brd_engine.core.schemas_document import DOCUMENT_JSON_SCHEMA, Document
from tests.fakes.fake_provider import FakeProvider, make_payload


class TestGenerateDocument:
    @pytest.mark.asyncio
    async def test_returns_version_one(self, settings, kickoff_source, email_source):
        provider = FakeProvider(structured=[make_payload()])

        document = await generate_document(
            [kickoff_source, email_source], "Portal", provider=provider, settings=settings
        )

        assert isinstance(document, Document)
        assert document.version == 1
        assert len(document.sections) >= 1
        assert set(document.citation_ids()) <= {"src-kickoff", "src-email"}

    @pytest.mark.asyncio
    async def test_single_structured_call_with_contract(self, settings, kickoff_source):
        provider = FakeProvider(structured=[make_payload()])

        await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)

        assert provider.call_count == 1
        call = provider.structured_calls[0]
        assert call["contract"] == DOCUMENT_JSON_SCHEMA
        assert call["system"] == SYSTEM_PROMPT
        assert call["model"] == settings.SYNTHESIS_MODEL
        assert kickoff_source.body in call["prompt"]

    @pytest.mark.asyncio
    async def test_model_override(self, settings, kickoff_source):
        provider = FakeProvider(structured=[make_payload()])
        await generate_document(
            [kickoff_source], "Portal", provider=provider, settings=settings, model_override="m-x"
        )
        assert provider.structured_calls[0]["model"] == "m-x"

    @pytest.mark.asyncio
    async def test_openai_backend_uses_openai_model(self, settings, kickoff_source):
        openai_settings = settings.model_copy(update={"LLM_PROVIDER": "openai"})
        provider = FakeProvider(structured=[make_payload(), make_payload()])

        await generate_document([kickoff_source], "Portal", provider=provider, settings=openai_settings)
        await generate_document(
            [kickoff_source], "Portal", provider=provider, settings=openai_settings, model_override="gpt-4o-mini"
        )

        assert [call["model"] for call in provider.structured_calls] == [
            openai_settings.OPENAI_MODEL,
            "gpt-4o-mini",
        ]

    @pytest.mark.asyncio
    async def test_accepts_text_output(self, settings, kickoff_source):
        provider = FakeProvider(structured=[json.dumps(make_payload())])
        document = await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)
        assert document.title == "Customer Portal BRD"

    @pytest.mark.asyncio
    async def test_empty_sources_fail_without_provider_call(self, settings):
        provider = FakeProvider(structured=[make_payload()])

        with pytest.raises(EmptyInput):
            await generate_document([], "Portal", provider=provider, settings=settings)

        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, settings, kickoff_source):
        provider = FakeProvider(structured=[ProviderError("boom")])
        with pytest.raises(ProviderError):
            await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)

    @pytest.mark.asyncio
    async def test_schema_violation_keeps_raw_output(self, settings, kickoff_source):
        provider = FakeProvider(structured=['{"title": "only a title"}'])

        with pytest.raises(SchemaViolation) as exc_info:
            await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)

        assert exc_info.value.raw_output == '{"title": "only a title"}'
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_timeout_is_provider_error(self, kickoff_source):
        from brd_engine.core.config import Settings

        settings = Settings(ANTHROPIC_API_KEY="k", PROVIDER_TIMEOUT_SECONDS=0.01)
        provider = FakeProvider(structured=[make_payload()], delay=0.5)

        with pytest.raises(ProviderError):
            await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)


class TestSchemaRepairRetry:
    @pytest.mark.asyncio
    async def test_retry_recovers(self, settings, kickoff_source):
        settings = settings.model_copy(update={"SCHEMA_REPAIR_RETRY": True})
        provider = FakeProvider(structured=["garbage", make_payload()])

        document = await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)

        assert document.version == 1
        assert provider.call_count == 2
        assert "failed schema validation" in provider.structured_calls[1]["prompt"]
        assert "garbage" in provider.structured_calls[1]["prompt"]

    @pytest.mark.asyncio
    async def test_retry_failure_is_violation(self, settings, kickoff_source):
        settings = settings.model_copy(update={"SCHEMA_REPAIR_RETRY": True})
        provider = FakeProvider(structured=["garbage", "still garbage"])

        with pytest.raises(SchemaViolation):
            await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)
        assert provider.call_count == 2


class TestCitationChecks:
    @pytest.mark.asyncio
    async def test_unknown_citation_flagged_not_dropped(self, settings, kickoff_source):
        # Only kickoff is passed; payload also cites src-email
        provider = FakeProvider(structured=[make_payload()])

        document = await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)

        assert document.dangling_citations({"src-kickoff"}) == ["src-email"]
        assert "[Source ID: src-email]" in document.sections[0].content

    @pytest.mark.asyncio
    async def test_strict_mode_rejects_unknown_citation(self, settings, kickoff_source):
        settings = settings.model_copy(update={"STRICT_CITATIONS": True})
        provider = FakeProvider(structured=[make_payload()])

        with pytest.raises(SchemaViolation):
            await generate_document([kickoff_source], "Portal", provider=provider, settings=settings)
