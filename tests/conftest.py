"""Pytest configuration and fixtures."""

import os

import pytest

# Settings are cached on first use, which can happen at import time
os.environ.setdefault("BRD_ENGINE_ENV", "test")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")

from brd_engine.core.config import Settings  # noqa: E402
from brd_engine.core.schemas_sources import Source, SourceKind  # noqa: E402
from tests.fakes.fake_provider import FakeProvider  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["BRD_ENGINE_ENV"] = "test"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["LLM_PROVIDER"] = "anthropic"


@pytest.fixture
def settings():
    return Settings(
        BRD_ENGINE_ENV="test",
        ANTHROPIC_API_KEY="test-anthropic-key",
        PROVIDER_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def kickoff_source():
    return Source(
        id="src-kickoff",
        kind=SourceKind.MEETING_TRANSCRIPT,
        title="Kickoff notes",
        body="Sarah: We need a customer portal live by Q3. Budget is capped at $200k.",
        author="Sarah Chen",
    )


@pytest.fixture
def email_source():
    return Source(
        id="src-email",
        kind=SourceKind.EMAIL,
        title="Email thread",
        body="From Raj: The portal must support SSO with our Okta tenant. Q4 is more realistic.",
    )
