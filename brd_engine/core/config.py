"""Configuration management for the BRD engine."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    BRD_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, test, prod")

    # Provider selection and credentials
    LLM_PROVIDER: Literal["anthropic", "openai"] = Field(
        default="anthropic", description="Synthesis provider backend"
    )
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")

    # Models
    SYNTHESIS_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for first-pass BRD synthesis"
    )
    REVISION_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model for edit instructions"
    )
    QUERY_MODEL: str = Field(
        default="claude-haiku-4-5-20251001", description="Model for question answering"
    )
    OPENAI_MODEL: str = Field(default="gpt-4o", description="Model used when LLM_PROVIDER=openai")

    # Generation parameters
    SYNTHESIS_MAX_TOKENS: int = Field(default=8192, description="Max output tokens for BRD JSON")
    QUERY_MAX_TOKENS: int = Field(default=1024, description="Max output tokens for answers")
    LLM_TEMPERATURE: float = Field(default=0.2, description="Sampling temperature")
    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=120.0, gt=0, description="Per-call timeout; expiry counts as a provider error"
    )

    # Context assembly
    REVISION_SOURCE_CHAR_BUDGET: int = Field(
        default=500, gt=0, description="Max chars of each source body in edit prompts"
    )
    QUERY_HISTORY_TURNS: int = Field(
        default=10, ge=0, description="Recent conversation turns included in query prompts"
    )

    # Output contract
    SCHEMA_REPAIR_RETRY: bool = Field(
        default=False, description="Retry once with a fix-to-schema prompt on invalid output"
    )
    STRICT_CITATIONS: bool = Field(
        default=False, description="Reject output citing ids that are not registered sources"
    )

    DEFAULT_PROJECT_TITLE: str = Field(default="New Project", description="Fallback project title")

    def model_for(self, model: str) -> str:
        """Resolve a per-protocol model name; OpenAI runs every protocol on OPENAI_MODEL."""
        return self.OPENAI_MODEL if self.LLM_PROVIDER == "openai" else model


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    return Settings()
