"""Unit tests for the generation orchestrator.

Covers ordered fallback, rate-limit fail fast, failure aggregation and the
records emitted to the event sink.
"""

import asyncio

import pytest

from resume_ai.generation.errors import (
    AggregateFailure,
    CredentialError,
    ErrorKind,
    ProviderError,
    RateLimitExceeded,
    SchemaValidationError,
    TransientProviderError,
)
from resume_ai.generation.models import EventType, Plan, SubscriptionContext
from resume_ai.tailoring.models import SimplifiedResume, TailoredResumeOutput


class TestOrderedFallback:
    """Tests for trying candidates in order."""

    @pytest.mark.asyncio
    async def test_first_candidate_success_stops_the_chain(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, event_sink
    ):
        """Test that B and C are never called when A succeeds."""
        client = make_client(
            {
                "model-a": [sample_output_model(name="a", value=1)],
                "model-b": [sample_output_model(name="b", value=2)],
                "model-c": [sample_output_model(name="c", value=3)],
            }
        )
        orchestrator = make_orchestrator(client)

        result = await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b", "model-c"), "acct-1"
        )

        assert result.name == "a"
        assert client.called_models == ["model-a"]
        assert [e.event for e in event_sink.events] == [EventType.ATTEMPT_SUCCESS]

    @pytest.mark.asyncio
    async def test_falls_back_through_failures_to_success(
        self, make_client, make_orchestrator, candidates, sample_request, event_sink
    ):
        """Test transient then credential failure, then success on the third model."""
        tailored = TailoredResumeOutput(content=SimplifiedResume(target_role="Engineer"))
        client = make_client(
            {
                "model-a": [TransientProviderError("model-a failed after 3 attempt(s)")],
                "model-b": [CredentialError("OpenAI API key not found for model model-b")],
                "model-c": [tailored],
            }
        )
        orchestrator = make_orchestrator(client)

        result = await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b", "model-c"), "acct-1"
        )

        assert result is tailored
        assert result.content.target_role == "Engineer"
        assert client.called_models == ["model-a", "model-b", "model-c"]
        assert [e.event for e in event_sink.attempts] == [
            EventType.ATTEMPT_FAILURE,
            EventType.ATTEMPT_FAILURE,
            EventType.ATTEMPT_SUCCESS,
        ]
        assert event_sink.of_type(EventType.ALL_FAILED) == []

    @pytest.mark.asyncio
    async def test_schema_failure_moves_to_next_candidate(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request
    ):
        """Test that a schema validation failure is not fatal."""
        client = make_client(
            {
                "model-a": [SchemaValidationError("Failed to parse LLM response as JSON")],
                "model-b": [sample_output_model(name="b", value=2)],
            }
        )
        orchestrator = make_orchestrator(client)

        result = await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b"), "acct-1"
        )

        assert result.name == "b"

    @pytest.mark.asyncio
    async def test_each_call_starts_from_first_candidate(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request
    ):
        """Test that no state is carried between calls."""
        client = make_client(
            {
                "model-a": [
                    TransientProviderError("down"),
                    sample_output_model(name="a", value=1),
                ],
                "model-b": [sample_output_model(name="b", value=2)],
            }
        )
        orchestrator = make_orchestrator(client)
        chain = candidates("model-a", "model-b")

        first = await orchestrator.orchestrate(sample_request, chain, "acct-1")
        second = await orchestrator.orchestrate(sample_request, chain, "acct-1")

        assert first.name == "b"
        assert second.name == "a"
        assert client.called_models == ["model-a", "model-b", "model-a"]

    @pytest.mark.asyncio
    async def test_passes_retry_budget_to_client(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request
    ):
        """Test that the configured in-candidate retry budget reaches the client."""
        client = make_client({"model-a": [sample_output_model(name="a", value=1)]})
        orchestrator = make_orchestrator(client)

        await orchestrator.orchestrate(sample_request, candidates("model-a"), "acct-1")

        _, _, retries = client.calls[0]
        assert retries == 2

    @pytest.mark.asyncio
    async def test_unexpected_exception_counts_as_candidate_failure(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, event_sink
    ):
        """Test that a non-generation exception does not stop the chain."""
        client = make_client(
            {
                "model-a": [RuntimeError("boom")],
                "model-b": [sample_output_model(name="b", value=2)],
            }
        )
        orchestrator = make_orchestrator(client)

        result = await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b"), "acct-1"
        )

        assert result.name == "b"
        failure = event_sink.of_type(EventType.ATTEMPT_FAILURE)[0]
        assert failure.model_id == "model-a"
        assert "boom" in failure.reason


class TestAggregateFailure:
    """Tests for the all-candidates-failed path."""

    @pytest.mark.asyncio
    async def test_all_fail_raises_aggregate_with_last_classification(
        self, make_client, make_orchestrator, candidates, sample_request, event_sink
    ):
        """Test that the aggregate carries every attempt and the last error kind."""
        client = make_client(
            {
                "model-a": [TransientProviderError("timed out")],
                "model-b": [CredentialError("invalid key")],
            }
        )
        orchestrator = make_orchestrator(client)

        with pytest.raises(AggregateFailure) as exc_info:
            await orchestrator.orchestrate(
                sample_request, candidates("model-a", "model-b"), "acct-1"
            )

        failure = exc_info.value
        assert failure.candidate_ids == ["model-a", "model-b"]
        assert failure.classification == ErrorKind.CREDENTIAL
        assert failure.is_credential_error
        assert "AI Key Error" in failure.user_message
        assert isinstance(failure.last_error, CredentialError)
        assert failure.reasons == [("model-a", "timed out"), ("model-b", "invalid key")]

        all_failed = event_sink.of_type(EventType.ALL_FAILED)
        assert len(all_failed) == 1
        assert all_failed[0].extra["candidates"] == ["model-a", "model-b"]
        assert all_failed[0].extra["classification"] == "credential"
        assert len(event_sink.of_type(EventType.ATTEMPT_FAILURE)) == 2

    @pytest.mark.asyncio
    async def test_single_candidate_failure_is_aggregated(
        self, make_client, make_orchestrator, candidates, sample_request
    ):
        """Test that a one-element list still raises AggregateFailure."""
        client = make_client({"model-a": [ProviderError("bad request")]})
        orchestrator = make_orchestrator(client)

        with pytest.raises(AggregateFailure) as exc_info:
            await orchestrator.orchestrate(sample_request, candidates("model-a"), "acct-1")

        assert len(exc_info.value.attempts) == 1
        assert exc_info.value.classification == ErrorKind.PROVIDER
        assert not exc_info.value.is_credential_error

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "last_error, expected_kind",
        [
            (CredentialError("invalid key"), ErrorKind.CREDENTIAL),
            (ProviderError("bad request"), ErrorKind.PROVIDER),
        ],
    )
    async def test_same_failures_classify_the_same_on_every_call(
        self, make_client, make_orchestrator, candidates, sample_request, last_error, expected_kind
    ):
        """Test that repeating a failing call yields an identical aggregate."""
        client = make_client(
            {
                "model-a": [TransientProviderError("timed out")],
                "model-b": [last_error],
            }
        )
        orchestrator = make_orchestrator(client)
        chain = candidates("model-a", "model-b")

        failures = []
        for _ in range(2):
            with pytest.raises(AggregateFailure) as exc_info:
                await orchestrator.orchestrate(sample_request, chain, "acct-1")
            failures.append(exc_info.value)

        first, second = failures
        assert first.classification == second.classification == expected_kind
        assert first.candidate_ids == second.candidate_ids == ["model-a", "model-b"]
        assert first.reasons == second.reasons
        assert client.called_models == ["model-a", "model-b", "model-a", "model-b"]

    @pytest.mark.asyncio
    async def test_empty_candidate_list_is_rejected(
        self, make_client, make_orchestrator, sample_request, rate_limiter
    ):
        """Test that an empty list raises before the rate limiter is touched."""
        orchestrator = make_orchestrator(make_client())

        with pytest.raises(ValueError):
            await orchestrator.orchestrate(sample_request, [], "acct-1")

        assert rate_limiter.checked == []


class TestRateLimitFailFast:
    """Tests for the per-account rate limit gate."""

    @pytest.mark.asyncio
    async def test_rate_limited_call_never_reaches_a_model(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, rate_limiter, event_sink
    ):
        """Test that RateLimitExceeded propagates unwrapped and no model is called."""
        rate_limiter.error = RateLimitExceeded(
            "Rate limit exceeded. Try again in 30 seconds.", retry_after=30
        )
        client = make_client({"model-a": [sample_output_model(name="a", value=1)]})
        orchestrator = make_orchestrator(client)

        with pytest.raises(RateLimitExceeded) as exc_info:
            await orchestrator.orchestrate(
                sample_request, candidates("model-a", "model-b"), "acct-1"
            )

        assert exc_info.value.retry_after == 30
        assert client.calls == []
        assert rate_limiter.checked == ["acct-1"]
        assert [e.event for e in event_sink.events] == [EventType.RATE_LIMITED]
        assert event_sink.events[0].extra == {"retry_after": 30}

    @pytest.mark.asyncio
    async def test_rate_limit_checked_once_per_call(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, rate_limiter
    ):
        """Test that fallback does not consume extra quota."""
        client = make_client(
            {
                "model-a": [TransientProviderError("down")],
                "model-b": [sample_output_model(name="b", value=2)],
            }
        )
        orchestrator = make_orchestrator(client)

        await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b"), "acct-1"
        )

        assert rate_limiter.checked == ["acct-1"]


class TestSubscriptionContext:
    """Tests for plan resolution."""

    @pytest.mark.asyncio
    async def test_plan_resolved_once_and_shared_by_attempts(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, plan_provider
    ):
        """Test that every attempt sees the same context."""
        client = make_client(
            {
                "model-a": [TransientProviderError("down")],
                "model-b": [sample_output_model(name="b", value=2)],
            }
        )
        orchestrator = make_orchestrator(client)

        await orchestrator.orchestrate(
            sample_request, candidates("model-a", "model-b"), "acct-1"
        )

        assert plan_provider.lookups == ["acct-1"]
        contexts = {context for _, context, _ in client.calls}
        assert contexts == {SubscriptionContext(plan=Plan.FREE, account_id="acct-1")}

    @pytest.mark.asyncio
    async def test_supplied_context_skips_lookup(
        self, sample_output_model, make_client, make_orchestrator, candidates, sample_request, plan_provider
    ):
        """Test that a caller-resolved context is used as is."""
        client = make_client({"model-a": [sample_output_model(name="a", value=1)]})
        orchestrator = make_orchestrator(client)
        context = SubscriptionContext(plan=Plan.PRO, account_id="acct-1")

        await orchestrator.orchestrate(
            sample_request, candidates("model-a"), "acct-1", context=context
        )

        assert plan_provider.lookups == []
        assert client.calls[0][1] is context


class TestCancellation:
    """Tests for caller cancellation."""

    @pytest.mark.asyncio
    async def test_cancellation_propagates_without_aggregate(
        self, make_orchestrator, candidates, sample_request, event_sink
    ):
        """Test that cancelling mid-attempt stops the chain immediately."""
        started = asyncio.Event()

        class HangingClient:
            def __init__(self):
                self.calls = []

            async def generate_structured(self, candidate, request, context, max_internal_retries=None):
                self.calls.append(candidate.model_id)
                started.set()
                await asyncio.sleep(3600)

        client = HangingClient()
        orchestrator = make_orchestrator(client)
        task = asyncio.create_task(
            orchestrator.orchestrate(sample_request, candidates("model-a", "model-b"), "acct-1")
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert client.calls == ["model-a"]
        assert event_sink.of_type(EventType.ALL_FAILED) == []
