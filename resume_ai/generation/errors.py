"""Exceptions raised by structured generation.

Candidate-level failures (``ProviderError`` and subclasses) are caught by the
orchestrator and turned into "try the next model". Only ``RateLimitExceeded``
and ``AggregateFailure`` reach callers.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from resume_ai.generation.models import AttemptOutcome


class ErrorKind(str, Enum):
    """Classification of a generation failure."""

    CREDENTIAL = "credential"
    TRANSIENT = "transient"
    SCHEMA = "schema"
    PROVIDER = "provider"
    RATE_LIMITED = "rate_limited"


class GenerationError(Exception):
    """Base class for structured generation failures."""

    kind: ErrorKind = ErrorKind.PROVIDER

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class RateLimitExceeded(GenerationError):
    """The account has used up its request quota for the current window."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message, original_error)
        self.retry_after = retry_after


class ProviderError(GenerationError):
    """A single candidate attempt failed."""


class CredentialError(ProviderError):
    """Credentials for the candidate are missing, invalid or unauthorized."""

    kind = ErrorKind.CREDENTIAL


class TransientProviderError(ProviderError):
    """Timeout, 5xx, connection or provider-side rate limit."""

    kind = ErrorKind.TRANSIENT


class SchemaValidationError(ProviderError):
    """The model answered, but the answer did not fit the output schema."""

    kind = ErrorKind.SCHEMA


def classify(error: BaseException) -> ErrorKind:
    """Return the kind of an error, treating unknown exceptions as provider errors."""
    if isinstance(error, GenerationError):
        return error.kind
    return ErrorKind.PROVIDER


class AggregateFailure(GenerationError):
    """Every candidate failed.

    The classification follows the last attempt, since that is the error the
    user can most likely act on (for example an invalid API key).
    """

    def __init__(self, attempts: list[AttemptOutcome], elapsed_ms: float):
        self.attempts = list(attempts)
        self.elapsed_ms = elapsed_ms
        last_error = self.attempts[-1].error if self.attempts else None
        self.last_error = last_error
        self.classification = (
            classify(last_error) if last_error is not None else ErrorKind.PROVIDER
        )
        self.kind = self.classification

        tried = ", ".join(self.candidate_ids) or "none"
        message = (
            f"All {len(self.attempts)} model candidate(s) failed "
            f"after {elapsed_ms:.0f}ms (tried: {tried})"
        )
        if last_error is not None:
            message = f"{message}. Last error: {last_error}"
        super().__init__(message, last_error)

    @property
    def candidate_ids(self) -> list[str]:
        return [attempt.candidate.model_id for attempt in self.attempts]

    @property
    def reasons(self) -> list[tuple[str, str]]:
        """Ordered ``(model_id, reason)`` pairs for every failed attempt."""
        return [
            (attempt.candidate.model_id, attempt.reason or "")
            for attempt in self.attempts
        ]

    @property
    def is_credential_error(self) -> bool:
        return self.classification == ErrorKind.CREDENTIAL

    @property
    def user_message(self) -> str:
        """Short message suitable for showing to an end user."""
        if self.is_credential_error:
            return "AI Key Error: check the API key configured for the selected model."
        return "The AI service could not complete the request. Please try again."
