"""Data models for structured generation.

Contains the request-scoped types passed through the orchestrator:
- Credential / ModelCandidate: a backend model plus the keys to call it with
- GenerationRequest: prompts, output schema and temperature for one task
- AttemptOutcome: what happened when one candidate was tried
- SubscriptionContext: the account's plan, resolved once per call
- GenerationEvent: structured record emitted to the event sink
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


class Plan(str, Enum):
    """Subscription plan of an account."""

    FREE = "free"
    PRO = "pro"


class TaskType(str, Enum):
    """Call sites that go through the orchestrator."""

    FORMAT_JOB = "format_job"
    TAILOR_RESUME = "tailor_resume"
    COVER_LETTER = "cover_letter"


class EventType(str, Enum):
    """Kinds of records emitted while orchestrating a call."""

    ATTEMPT_SUCCESS = "attempt_success"
    ATTEMPT_FAILURE = "attempt_failure"
    ALL_FAILED = "all_failed"
    RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Credential:
    """An API key supplied by the caller for one provider.

    Attributes:
        service: Provider the key belongs to (openai, anthropic, openrouter).
        key: The secret itself.
        added_at: When the user stored the key, if known.
    """

    service: str
    key: str
    added_at: str | None = None

    def __repr__(self) -> str:
        return f"Credential(service={self.service!r}, key='***')"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credential:
        """Build a credential from a ``{service, key, addedAt}`` mapping."""
        return cls(
            service=str(data["service"]).strip().lower(),
            key=str(data["key"]),
            added_at=data.get("added_at") or data.get("addedAt"),
        )


@dataclass(frozen=True)
class ModelCandidate:
    """One backend model eligible for a single generation attempt."""

    model_id: str
    credentials: tuple[Credential, ...] = ()

    def credential_for(self, service: str) -> Credential | None:
        """Return the first credential registered for a provider."""
        for credential in self.credentials:
            if credential.service == service and credential.key:
                return credential
        return None


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed to replay one structured generation against any model."""

    system_prompt: str
    user_prompt: str
    output_schema: type[BaseModel]
    temperature: float = 0.5


@dataclass
class AttemptOutcome:
    """Result of trying a single candidate.

    Exactly one of ``result`` or ``error`` is set.
    """

    candidate: ModelCandidate
    started_at: datetime
    duration_ms: float
    result: BaseModel | None = None
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> str | None:
        return str(self.error) if self.error is not None else None


@dataclass(frozen=True)
class SubscriptionContext:
    """Plan and account a call is made on behalf of."""

    plan: Plan
    account_id: str

    @property
    def is_pro(self) -> bool:
        return self.plan == Plan.PRO


_CORE_EVENT_FIELDS = frozenset({"event", "account_id", "model_id", "duration_ms", "reason"})


@dataclass(frozen=True)
class GenerationEvent:
    """Structured record describing one step of an orchestration call."""

    event: EventType
    account_id: str
    model_id: str | None = None
    duration_ms: float | None = None
    reason: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the event, omitting unset optional fields."""
        # extra cannot shadow the core fields, even unset ones
        data: dict[str, Any] = {
            key: value for key, value in self.extra.items() if key not in _CORE_EVENT_FIELDS
        }
        data["event"] = self.event.value
        data["account_id"] = self.account_id
        if self.model_id is not None:
            data["model_id"] = self.model_id
        if self.duration_ms is not None:
            data["duration_ms"] = round(self.duration_ms, 2)
        if self.reason is not None:
            data["reason"] = self.reason
        return data
