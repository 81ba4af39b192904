"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from resume_ai.config.settings import Settings, reset_settings
from resume_ai.generation.models import (
    GenerationRequest,
    ModelCandidate,
    Plan,
    SubscriptionContext,
)
from resume_ai.generation.orchestrator import GenerationOrchestrator
from resume_ai.generation.sink import InMemoryEventSink
from resume_ai.subscription.service import StaticPlanProvider
from resume_ai.utils.logging import reset_logging


class SampleOutput(BaseModel):
    """Sample Pydantic model for structured output."""

    name: str
    value: int


class ScriptedClient:
    """Generation client whose answers are scripted per model id.

    Each script entry is either an exception instance (raised) or an object
    (returned). Entries are consumed in order; the last one repeats.
    """

    def __init__(self, scripts: dict[str, list[object]] | None = None):
        self.scripts = {model: list(steps) for model, steps in (scripts or {}).items()}
        self.calls: list[tuple[str, SubscriptionContext, int | None]] = []

    async def generate_structured(
        self,
        candidate: ModelCandidate,
        request: GenerationRequest,
        context: SubscriptionContext,
        max_internal_retries: int | None = None,
    ) -> BaseModel:
        self.calls.append((candidate.model_id, context, max_internal_retries))
        steps = self.scripts.get(candidate.model_id)
        if not steps:
            raise AssertionError(f"No script for model {candidate.model_id}")
        step = steps.pop(0) if len(steps) > 1 else steps[0]
        if isinstance(step, BaseException):
            raise step
        return step

    @property
    def called_models(self) -> list[str]:
        return [model_id for model_id, _, _ in self.calls]


class FakeRateLimiter:
    """Rate-limit gate that counts checks and optionally raises."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.checked: list[str] = []

    async def check(self, account_id: str) -> None:
        self.checked.append(account_id)
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        return None


class CountingPlanProvider(StaticPlanProvider):
    """Static plan provider that counts lookups."""

    def __init__(self, plan: Plan = Plan.FREE):
        super().__init__(plan)
        self.lookups: list[str] = []

    async def get_plan(self, account_id: str) -> SubscriptionContext:
        self.lookups.append(account_id)
        return await super().get_plan(account_id)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Keep settings and logging configuration from leaking between tests."""
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with no waits, no platform keys and a temp rate-limit DB."""
    return Settings(
        _env_file=None,
        llm_retry_base_wait=0.0,
        llm_rate_limit_base_wait=0.0,
        rate_limit_db_path=tmp_path / "rate_limit.db",
        openai_api_key=None,
        anthropic_api_key=None,
        openrouter_api_key=None,
    )


@pytest.fixture
def sample_output_model() -> type[SampleOutput]:
    return SampleOutput


@pytest.fixture
def sample_request() -> GenerationRequest:
    return GenerationRequest(
        system_prompt="You are a helpful assistant",
        user_prompt="Generate a sample",
        output_schema=SampleOutput,
        temperature=0.2,
    )


@pytest.fixture
def event_sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture
def rate_limiter() -> FakeRateLimiter:
    return FakeRateLimiter()


@pytest.fixture
def plan_provider() -> CountingPlanProvider:
    return CountingPlanProvider(Plan.FREE)


@pytest.fixture
def make_client():
    """Factory for ScriptedClient instances."""
    return ScriptedClient


@pytest.fixture
def make_orchestrator(rate_limiter, plan_provider, event_sink, settings):
    """Factory building an orchestrator around a scripted client."""

    def _make(client: ScriptedClient) -> GenerationOrchestrator:
        return GenerationOrchestrator(
            client=client,
            rate_limiter=rate_limiter,
            plan_provider=plan_provider,
            sink=event_sink,
            settings=settings,
        )

    return _make


@pytest.fixture
def candidates():
    """Factory for candidate lists from model ids."""

    def _make(*model_ids: str) -> list[ModelCandidate]:
        return [ModelCandidate(model_id=model_id) for model_id in model_ids]

    return _make
