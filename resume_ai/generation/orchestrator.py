"""Resilient structured generation orchestrator.

Runs one structured generation request against an ordered list of model
candidates, stopping at the first success:

1. Resolve the account's subscription plan (once per call)
2. Check the account's rate limit (fail fast, before any model is called)
3. Try each candidate in order; the client retries transient failures
   within a candidate, any other failure moves on to the next one
4. Raise a single AggregateFailure if every candidate failed
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Protocol

from pydantic import BaseModel

from resume_ai.config.settings import Settings, get_settings
from resume_ai.generation.client import GenerationClient
from resume_ai.generation.errors import (
    AggregateFailure,
    GenerationError,
    ProviderError,
    RateLimitExceeded,
)
from resume_ai.generation.models import (
    AttemptOutcome,
    EventType,
    GenerationEvent,
    GenerationRequest,
    ModelCandidate,
    SubscriptionContext,
)
from resume_ai.generation.sink import EventSink, LoggingEventSink

logger = logging.getLogger(__name__)


class RateLimitGate(Protocol):
    """Per-account request quota."""

    async def check(self, account_id: str) -> None:
        """Count one request, raising RateLimitExceeded when over quota."""
        ...


class PlanProvider(Protocol):
    """Subscription plan lookup."""

    async def get_plan(self, account_id: str) -> SubscriptionContext: ...


class GenerationOrchestrator:
    """Try model candidates in order until one produces a valid object.

    Holds no state between calls: every call starts from the first candidate
    again, whatever happened in earlier calls.
    """

    def __init__(
        self,
        client: GenerationClient,
        rate_limiter: RateLimitGate,
        plan_provider: PlanProvider,
        sink: EventSink | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            client: Structured generation client used for every attempt.
            rate_limiter: Gate consulted once per call before any attempt.
            plan_provider: Resolves the account's subscription plan.
            sink: Receives one record per attempt. Defaults to logging.
            settings: Optional Settings. Uses global settings if not provided.
        """
        self.client = client
        self.rate_limiter = rate_limiter
        self.plan_provider = plan_provider
        self.sink = sink or LoggingEventSink()
        self.settings = settings or get_settings()

    async def orchestrate(
        self,
        request: GenerationRequest,
        candidates: Sequence[ModelCandidate],
        account_id: str,
        context: SubscriptionContext | None = None,
    ) -> BaseModel:
        """Run ``request`` against ``candidates`` in order.

        Args:
            request: Prompts, output schema and temperature; replayed unchanged
                for each candidate.
            candidates: Models in priority order.
            account_id: Account the call is made for.
            context: Plan already resolved by the caller for this call. Looked
                up through the plan provider when omitted.

        Returns:
            The first successfully validated object.

        Raises:
            ValueError: If ``candidates`` is empty.
            RateLimitExceeded: If the account is over quota. No model is called.
            AggregateFailure: If every candidate failed.
        """
        if not candidates:
            raise ValueError("At least one model candidate is required")

        call_started = time.perf_counter()

        if context is None:
            context = await self.plan_provider.get_plan(account_id)

        try:
            await self.rate_limiter.check(account_id)
        except RateLimitExceeded as e:
            self.sink.emit(
                GenerationEvent(
                    event=EventType.RATE_LIMITED,
                    account_id=account_id,
                    reason=str(e),
                    extra={"retry_after": e.retry_after},
                )
            )
            raise

        logger.debug(
            "Generating %s for account %s (%s plan) with %d candidate(s)",
            request.output_schema.__name__,
            account_id,
            context.plan.value,
            len(candidates),
        )

        attempts: list[AttemptOutcome] = []
        for candidate in candidates:
            outcome = await self._attempt(candidate, request, context)
            attempts.append(outcome)

            if outcome.succeeded:
                self.sink.emit(
                    GenerationEvent(
                        event=EventType.ATTEMPT_SUCCESS,
                        account_id=account_id,
                        model_id=candidate.model_id,
                        duration_ms=outcome.duration_ms,
                    )
                )
                return outcome.result

            self.sink.emit(
                GenerationEvent(
                    event=EventType.ATTEMPT_FAILURE,
                    account_id=account_id,
                    model_id=candidate.model_id,
                    duration_ms=outcome.duration_ms,
                    reason=outcome.reason,
                )
            )

        elapsed_ms = (time.perf_counter() - call_started) * 1000
        failure = AggregateFailure(attempts, elapsed_ms)
        self.sink.emit(
            GenerationEvent(
                event=EventType.ALL_FAILED,
                account_id=account_id,
                duration_ms=elapsed_ms,
                reason=str(failure.last_error),
                extra={
                    "candidates": failure.candidate_ids,
                    "classification": failure.classification.value,
                },
            )
        )
        raise failure

    async def _attempt(
        self,
        candidate: ModelCandidate,
        request: GenerationRequest,
        context: SubscriptionContext,
    ) -> AttemptOutcome:
        started_at = datetime.now(UTC)
        started = time.perf_counter()
        try:
            result = await self.client.generate_structured(
                candidate,
                request,
                context,
                max_internal_retries=self.settings.llm_max_internal_retries,
            )
        except GenerationError as e:
            error: Exception = e
        except Exception as e:
            # A broken backend must not stop the fallback chain
            logger.exception("Unexpected error from model %s", candidate.model_id)
            error = ProviderError(f"Unexpected error: {e}", e)
        else:
            return AttemptOutcome(
                candidate=candidate,
                started_at=started_at,
                duration_ms=(time.perf_counter() - started) * 1000,
                result=result,
            )

        return AttemptOutcome(
            candidate=candidate,
            started_at=started_at,
            duration_ms=(time.perf_counter() - started) * 1000,
            error=error,
        )
