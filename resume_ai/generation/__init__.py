"""Resilient structured generation.

Public API:
- GenerationOrchestrator: tries model candidates in order until one succeeds
- StructuredGenerationClient: LiteLLM-backed schema-constrained LLM call
- build_candidates: candidate list for a task, plan and set of credentials
- Data models: Credential, ModelCandidate, GenerationRequest, ...
- Errors: RateLimitExceeded, CredentialError, AggregateFailure, ...

Example:
    from resume_ai.generation import GenerationOrchestrator, GenerationRequest

    orchestrator = GenerationOrchestrator(client, rate_limiter, plan_provider)
    job = await orchestrator.orchestrate(request, candidates, account_id)
"""

from resume_ai.generation.candidates import build_candidates
from resume_ai.generation.client import GenerationClient, StructuredGenerationClient
from resume_ai.generation.errors import (
    AggregateFailure,
    CredentialError,
    ErrorKind,
    GenerationError,
    ProviderError,
    RateLimitExceeded,
    SchemaValidationError,
    TransientProviderError,
)
from resume_ai.generation.models import (
    AttemptOutcome,
    Credential,
    EventType,
    GenerationEvent,
    GenerationRequest,
    ModelCandidate,
    Plan,
    SubscriptionContext,
    TaskType,
)
from resume_ai.generation.orchestrator import (
    GenerationOrchestrator,
    PlanProvider,
    RateLimitGate,
)
from resume_ai.generation.sink import (
    EventSink,
    FanOutEventSink,
    InMemoryEventSink,
    LoggingEventSink,
)

__all__ = [
    # Orchestration
    "GenerationOrchestrator",
    "PlanProvider",
    "RateLimitGate",
    "build_candidates",
    # Client
    "GenerationClient",
    "StructuredGenerationClient",
    # Models
    "AttemptOutcome",
    "Credential",
    "EventType",
    "GenerationEvent",
    "GenerationRequest",
    "ModelCandidate",
    "Plan",
    "SubscriptionContext",
    "TaskType",
    # Sinks
    "EventSink",
    "FanOutEventSink",
    "InMemoryEventSink",
    "LoggingEventSink",
    # Errors
    "AggregateFailure",
    "CredentialError",
    "ErrorKind",
    "GenerationError",
    "ProviderError",
    "RateLimitExceeded",
    "SchemaValidationError",
    "TransientProviderError",
]
