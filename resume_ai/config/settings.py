"""Configuration settings for resume-ai."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Ordered model ids per task and plan. First entry is tried first.
DEFAULT_CANDIDATE_MODELS: dict[str, dict[str, list[str]]] = {
    "format_job": {
        "free": [
            "deepseek/deepseek-v3.2:nitro",
            "openai/gpt-oss-120b",
            "gpt-5-mini-2025-08-07",
        ],
        "pro": [
            "gpt-5.1-chat",
            "deepseek/deepseek-v3.2:nitro",
            "claude-haiku-4-5-20251001",
        ],
    },
    "tailor_resume": {
        "free": [
            "deepseek/deepseek-v3.2:nitro",
            "openai/gpt-oss-120b",
            "google/gemini-3-pro-preview",
        ],
        "pro": [
            "claude-sonnet-4-20250514",
            "gpt-5",
            "google/gemini-3-pro-preview",
        ],
    },
    "cover_letter": {
        "free": [
            "deepseek/deepseek-v3.2:nitro",
            "openai/gpt-oss-120b",
        ],
        "pro": [
            "claude-sonnet-4-20250514",
            "gpt-5",
        ],
    },
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables prefixed with ``RESUME_AI_`` or a .env file.
    Platform API keys also honour the conventional provider variable names
    (``OPENAI_API_KEY``, ``ANTHROPIC_API_KEY``, ``OPENROUTER_API_KEY``).
    """

    model_config = SettingsConfigDict(
        env_prefix="RESUME_AI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # LLM call settings
    llm_timeout: Annotated[float, Field(gt=0)] = Field(
        default=120.0,
        description="Timeout in seconds for a single LLM call",
    )
    llm_max_internal_retries: Annotated[int, Field(ge=0)] = Field(
        default=2,
        description="Retries of the same model on transient provider failures",
    )
    llm_temperature: Annotated[float, Field(ge=0.0, le=2.0)] = Field(
        default=0.5,
        description="Sampling temperature used by the call sites",
    )
    llm_retry_base_wait: Annotated[float, Field(ge=0.0)] = Field(
        default=2.0,
        description="Base wait in seconds between transient retries (linear backoff)",
    )
    llm_rate_limit_base_wait: Annotated[float, Field(ge=0.0)] = Field(
        default=8.0,
        description="Base wait in seconds when the provider itself rate limits",
    )

    # Platform keys (used for pro accounts and free-tier models)
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RESUME_AI_OPENAI_API_KEY", "OPENAI_API_KEY"),
        description="Platform OpenAI API key",
    )
    anthropic_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RESUME_AI_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
        description="Platform Anthropic API key",
    )
    openrouter_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RESUME_AI_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"),
        description="Platform OpenRouter API key",
    )

    # Rate limiting
    rate_limit_db_path: Path = Field(
        default=Path("./data/rate_limit.db"),
        description="Path to the SQLite database holding per-account request counters",
    )
    rate_limit_window_seconds: Annotated[int, Field(gt=0)] = Field(
        default=60,
        description="Length of the rate-limit window in seconds",
    )
    rate_limit_max_requests: Annotated[int, Field(gt=0)] = Field(
        default=10,
        description="Maximum AI requests per account per window",
    )

    # Candidate ordering per task and plan
    candidate_models: dict[str, dict[str, list[str]]] = Field(
        default_factory=lambda: copy.deepcopy(DEFAULT_CANDIDATE_MODELS),
        description="Ordered model ids keyed by task then plan (JSON in env)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("rate_limit_db_path", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("candidate_models", mode="before")
    @classmethod
    def parse_candidate_models(cls, v: object) -> object:
        """Accept a JSON string and normalize task/plan keys to lowercase."""
        if isinstance(v, str):
            v = json.loads(v)
        if not isinstance(v, dict):
            return v
        normalized: dict[str, dict[str, list[str]]] = {}
        for task, plans in v.items():
            if not isinstance(plans, dict):
                raise ValueError(f"Candidate models for {task!r} must map plan to model ids")
            normalized[str(task).strip().lower()] = {
                str(plan).strip().lower(): [str(m).strip() for m in models if str(m).strip()]
                for plan, models in plans.items()
            }
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Uppercase the log level name."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def platform_api_key(self, service: str) -> str | None:
        """Return the platform key configured for a provider, if any."""
        return {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "openrouter": self.openrouter_api_key,
        }.get(service)

    def models_for(self, task: str, plan: str) -> list[str]:
        """Return the configured model ids for a task and plan."""
        return list(self.candidate_models.get(task, {}).get(plan, []))


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
