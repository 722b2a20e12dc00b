"""Tests for the revision engine's edit and query protocols."""

import pytest

from brd_engine.chains.revise_document import (
    EDIT_FAILURE_MESSAGE,
    EDIT_SUCCESS_MESSAGE,
    NO_DOCUMENT_MESSAGE,
    QUERY_FAILURE_MESSAGE,
    RevisionEngine,
)
from brd_engine.context.intent_classifier import Intent
from brd_engine.core.conversation_log import TurnRole
from brd_engine.core.errors import ProviderError
from brd_engine.core.schemas_document import Document, parse_document_payload
from tests.fakes.fake_provider import FakeProvider, make_payload


def _document(version=1):
    return Document.from_payload(parse_document_payload(make_payload()), version=version)


def _payload_with_2fa():
    return make_payload(
        sections=[
            ("executive-summary", "Executive Summary", "Launch a customer portal [Source ID: src-kickoff]."),
            ("security", "Security Requirements", "Users must sign in with two-factor authentication (2FA)."),
        ]
    )


class TestNoDocument:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("instruction", ["Add a 2FA requirement", "What are the risks?"])
    async def test_canned_reply_without_provider_call(self, settings, instruction):
        provider = FakeProvider()
        engine = RevisionEngine(provider, settings)

        outcome = await engine.handle(instruction, document=None, sources=[])

        assert outcome.reply == NO_DOCUMENT_MESSAGE
        assert outcome.reply_role is TurnRole.SYSTEM
        assert outcome.document is None
        assert outcome.succeeded is False
        assert provider.call_count == 0


class TestEditProtocol:
    @pytest.mark.asyncio
    async def test_successful_edit_bumps_version(self, settings, kickoff_source, email_source):
        provider = FakeProvider(structured=[_payload_with_2fa()])
        engine = RevisionEngine(provider, settings)
        before = _document(version=4)

        outcome = await engine.handle(
            "Add a requirement for two-factor authentication",
            document=before,
            sources=[kickoff_source, email_source],
        )

        assert outcome.intent is Intent.EDIT
        assert outcome.succeeded
        assert outcome.document.version == before.version + 1
        assert any("2FA" in s.content for s in outcome.document.sections)
        assert outcome.reply.startswith(EDIT_SUCCESS_MESSAGE)
        assert before.version == 4

    @pytest.mark.asyncio
    async def test_edit_prompt_uses_current_document_and_truncated_sources(self, settings):
        from brd_engine.core.schemas_sources import Source, SourceKind

        long_source = Source(id="src-long", kind=SourceKind.DOCUMENT, title="Vendor Notes", body="z" * 3000)
        provider = FakeProvider(structured=[_payload_with_2fa()])
        before = _document()

        await RevisionEngine(provider, settings).handle(
            "update the security section", document=before, sources=[long_source]
        )

        call = provider.structured_calls[0]
        assert before.to_json() in call["prompt"]
        assert "z" * settings.REVISION_SOURCE_CHAR_BUDGET in call["prompt"]
        assert "z" * (settings.REVISION_SOURCE_CHAR_BUDGET + 1) not in call["prompt"]
        assert call["model"] == settings.REVISION_MODEL

    @pytest.mark.asyncio
    async def test_edit_ignores_conversation_history(self, settings, kickoff_source):
        from brd_engine.core.conversation_log import ConversationLog

        log = ConversationLog()
        log.record(TurnRole.USER, "a very distinctive earlier message")
        provider = FakeProvider(structured=[_payload_with_2fa()])

        await RevisionEngine(provider, settings).handle(
            "add 2FA", document=_document(), sources=[kickoff_source], history=log.all()
        )

        assert "distinctive earlier message" not in provider.structured_calls[0]["prompt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response", [ProviderError("down"), "not json", {"title": "x"}, RuntimeError("socket reset")]
    )
    async def test_failed_edit_keeps_document(self, settings, kickoff_source, response):
        provider = FakeProvider(structured=[response])
        before = _document(version=2)

        outcome = await RevisionEngine(provider, settings).handle(
            "Change the launch date", document=before, sources=[kickoff_source]
        )

        assert outcome.succeeded is False
        assert outcome.document is before
        assert outcome.reply == EDIT_FAILURE_MESSAGE
        assert outcome.error in {"ProviderError", "SchemaViolation", "RuntimeError"}


class TestQueryProtocol:
    @pytest.mark.asyncio
    async def test_query_returns_text_and_never_mutates(self, settings, kickoff_source):
        provider = FakeProvider(text=["The main risk is the Q3/Q4 timeline conflict."])
        before = _document(version=2)

        outcome = await RevisionEngine(provider, settings).handle(
            "What are the main risks?", document=before, sources=[kickoff_source]
        )

        assert outcome.intent is Intent.QUERY
        assert outcome.document is before
        assert outcome.reply == "The main risk is the Q3/Q4 timeline conflict."
        assert provider.structured_calls == []
        assert before.to_json() not in provider.text_calls[0]["prompt"]  # compact JSON form
        assert '"title": "Customer Portal BRD"' in provider.text_calls[0]["prompt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [ProviderError("down"), "", "   ", RuntimeError("socket reset")])
    async def test_failed_query_is_soft_error(self, settings, response):
        provider = FakeProvider(text=[response])
        before = _document(version=3)

        outcome = await RevisionEngine(provider, settings).handle(
            "Who signs off?", document=before, sources=[]
        )

        assert outcome.succeeded is False
        assert outcome.reply == QUERY_FAILURE_MESSAGE
        assert outcome.document is before
        assert before.version == 3
