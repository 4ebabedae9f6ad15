"""Configuration management for the contestación engine."""

from functools import lru_cache

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

    # Generative backends (a missing key surfaces as a backend failure)
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    LLM_TIMEOUT_SECONDS: float = Field(default=90.0, description="Per-call backend timeout")

    # Session store (only required by the Supabase-backed store)
    SUPABASE_URL: str = Field(default="", description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(default="", description="Supabase service role key")

    # Environment
    CONTESTACION_ENV: str = Field(default="dev", description="Environment: dev, staging, prod, test")

    # Models per component, in provider/model form
    PARSE_MODEL: str = Field(
        default="anthropic/claude-sonnet-4-20250514", description="Model for demand parsing"
    )
    ANALYZE_MODEL: str = Field(
        default="anthropic/claude-sonnet-4-20250514", description="Model for block analysis"
    )
    QUESTIONS_MODEL: str = Field(
        default="anthropic/claude-sonnet-4-20250514", description="Model for block questions"
    )
    CONSOLIDATE_MODEL: str = Field(
        default="openai/gpt-4o-mini", description="Model for response consolidation"
    )
    SELECT_MODEL: str = Field(default="openai/gpt-4o-mini", description="Model for variant selection")
    AGENT_MODEL: str = Field(default="openai/gpt-4o-mini", description="Model for the decision agent")
    DRAFT_MODEL: str = Field(
        default="anthropic/claude-sonnet-4-20250514", description="Model for draft generation"
    )

    # Prompt size limits
    DEMAND_MAX_CHARS: int = Field(default=100_000, description="Max demand chars sent to the parser")
    BLOCK_ANALYSIS_MAX_CHARS: int = Field(
        default=3_000, description="Max chars per block sent for analysis"
    )
    BLOCK_QUESTIONS_MAX_CHARS: int = Field(
        default=2_000, description="Max chars per block sent for question generation"
    )
    DEMAND_CONTEXT_MAX_CHARS: int = Field(
        default=5_000, description="Max chars of the full demand sent as analysis context"
    )

    # Orchestration
    DECISION_POLICY: str = Field(default="staged", description="Decision policy: rules, agent, staged")
    ORCHESTRATE_REQUESTS_PER_MINUTE: int = Field(
        default=60, description="Orchestrate calls allowed per user per minute"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If an environment variable has an invalid value
    """
    return Settings()
