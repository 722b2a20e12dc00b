"""Synthesis provider boundary.

The engine only needs two capabilities from a model vendor: a structured call
that must answer in the document contract, and a plain text call. Concrete
adapters translate vendor SDK failures into ``ProviderError`` so nothing
vendor-specific leaks past this module.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Any, TypeVar

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from brd_engine.core.config import Settings, get_settings
from brd_engine.core.errors import ProviderError
from brd_engine.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SUBMIT_DOCUMENT_TOOL_NAME = "submit_document"


class SynthesisProvider(ABC):
    """Abstract text-synthesis capability."""

    @abstractmethod
    async def structured_generate(
        self,
        prompt: str,
        contract: dict[str, Any],
        *,
        system: str | None = None,
        model: str | None = None,
    ) -> dict[str, Any] | str:
        """Return output that should satisfy ``contract`` (a JSON Schema).

        The result is untrusted and is validated by the caller.
        """

    @abstractmethod
    async def text_generate(
        self,
        prompt: str,
        *,
        system: str | None = None,
        model: str | None = None,
    ) -> str:
        """Return free text for the prompt."""


async def call_with_timeout(awaitable: Awaitable[T], timeout_seconds: float) -> T:
    """Await a provider call, converting expiry into ProviderError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise ProviderError(f"Provider call timed out after {timeout_seconds}s") from e


class AnthropicProvider(SynthesisProvider):
    """Claude adapter. Structured output is forced through a single tool call."""

    def __init__(self, settings: Settings, client: AsyncAnthropic | None = None):
        self.settings = settings
        self.client = client or AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)

    async def structured_generate(self, prompt, contract, *, system=None, model=None):
        model = model or self.settings.SYNTHESIS_MODEL
        tool = {
            "name": SUBMIT_DOCUMENT_TOOL_NAME,
            "description": "Submit the complete business requirements document.",
            "input_schema": contract,
        }
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.settings.SYNTHESIS_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.LLM_TEMPERATURE,
            "tools": [tool],
            "tool_choice": {"type": "tool", "name": SUBMIT_DOCUMENT_TOOL_NAME},
        }
        if system:
            kwargs["system"] = system

        response = await self._create(model, **kwargs)

        for block in response.content:
            if getattr(block, "type", None) == "tool_use" and block.name == SUBMIT_DOCUMENT_TOOL_NAME:
                data = block.input
                if isinstance(data, str):
                    return data
                return dict(data)

        raise ProviderError(f"{model} returned no structured content")

    async def text_generate(self, prompt, *, system=None, model=None):
        model = model or self.settings.QUERY_MODEL
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.settings.QUERY_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.LLM_TEMPERATURE,
        }
        if system:
            kwargs["system"] = system

        response = await self._create(model, **kwargs)
        text = "".join(
            getattr(block, "text", "") or ""
            for block in response.content
            if getattr(block, "type", "text") == "text"
        ).strip()
        if not text:
            raise ProviderError(f"{model} returned an empty response")
        return text

    async def _create(self, model: str, /, **kwargs: Any) -> Any:
        t0 = time.time()
        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Anthropic call failed for {model}: {e}")
            raise ProviderError(f"Anthropic request failed: {e}") from e

        usage = getattr(response, "usage", None)
        logger.info(
            f"{model} responded in {int((time.time() - t0) * 1000)}ms",
            extra={
                "extra_data": {
                    "tokens_input": getattr(usage, "input_tokens", None),
                    "tokens_output": getattr(usage, "output_tokens", None),
                }
            },
        )
        return response


class OpenAIProvider(SynthesisProvider):
    """OpenAI adapter. Structured output uses JSON mode with the schema in the system prompt."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None):
        self.settings = settings
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    async def structured_generate(self, prompt, contract, *, system=None, model=None):
        schema_instruction = (
            "Respond ONLY with a JSON object matching this JSON Schema:\n"
            f"{json.dumps(contract, indent=2)}"
        )
        system_prompt = f"{system}\n\n{schema_instruction}" if system else schema_instruction
        return await self._complete(
            prompt,
            system=system_prompt,
            model=model,
            max_tokens=self.settings.SYNTHESIS_MAX_TOKENS,
            response_format={"type": "json_object"},
        )

    async def text_generate(self, prompt, *, system=None, model=None):
        return await self._complete(
            prompt, system=system, model=model, max_tokens=self.settings.QUERY_MAX_TOKENS
        )

    async def _complete(
        self, prompt: str, *, system: str | None, model: str | None, max_tokens: int, **extra: Any
    ) -> str:
        model = model or self.settings.OPENAI_MODEL
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.settings.LLM_TEMPERATURE,
                max_tokens=max_tokens,
                **extra,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI call failed for {model}: {e}")
            raise ProviderError(f"OpenAI request failed: {e}") from e

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise ProviderError(f"{model} returned an empty response")
        return content


def get_provider(settings: Settings | None = None) -> SynthesisProvider:
    """
    Build the configured provider.

    Raises:
        ValueError: If the selected provider has no API key configured
    """
    settings = settings or get_settings()

    if settings.LLM_PROVIDER == "openai":
        if not settings.OPENAI_API_KEY:
            raise ValueError("OPENAI_API_KEY is required when LLM_PROVIDER=openai")
        return OpenAIProvider(settings)

    if not settings.ANTHROPIC_API_KEY:
        raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=anthropic")
    return AnthropicProvider(settings)
