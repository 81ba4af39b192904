"""Tailoring call sites.

Formats job listings, tailors resumes and writes cover letters by handing a
task-specific request and candidate list to the generation orchestrator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from pydantic import BaseModel

from resume_ai.config.settings import Settings, get_settings
from resume_ai.generation.candidates import build_candidates
from resume_ai.generation.client import StructuredGenerationClient
from resume_ai.generation.errors import CredentialError
from resume_ai.generation.models import (
    Credential,
    GenerationRequest,
    TaskType,
)
from resume_ai.generation.orchestrator import GenerationOrchestrator, PlanProvider
from resume_ai.generation.sink import EventSink
from resume_ai.ratelimit.limiter import SqliteRateLimiter
from resume_ai.tailoring.models import (
    CoverLetter,
    JobListingOutput,
    Resume,
    SimplifiedJob,
    SimplifiedResume,
    TailoredResumeOutput,
)
from resume_ai.tailoring.prompts import (
    COVER_LETTER_SYSTEM_PROMPT,
    FORMAT_JOB_SYSTEM_PROMPT,
    TAILOR_RESUME_SYSTEM_PROMPT,
    build_cover_letter_prompt,
    build_format_job_prompt,
    build_tailor_resume_prompt,
)

logger = logging.getLogger(__name__)


class TailoringService:
    """Entry point for the AI-backed resume features.

    Each method resolves the account's plan once, builds the candidate list
    for its task and runs the request through the orchestrator.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        settings: Settings | None = None,
    ):
        """Initialize the service.

        Args:
            orchestrator: Orchestrator used for every generation.
            settings: Optional Settings. Uses global settings if not provided.
        """
        self.orchestrator = orchestrator
        self.settings = settings or get_settings()

    async def format_job_listing(
        self,
        listing_text: str,
        account_id: str,
        credentials: Iterable[Credential] = (),
        preferred_model: str | None = None,
    ) -> SimplifiedJob:
        """Extract a structured job from free-text listing.

        Raises:
            ValueError: If the listing is empty.
            RateLimitExceeded: If the account is over quota.
            AggregateFailure: If every model failed.
        """
        if not listing_text.strip():
            raise ValueError("Job listing text is empty")

        request = GenerationRequest(
            system_prompt=FORMAT_JOB_SYSTEM_PROMPT,
            user_prompt=build_format_job_prompt(listing_text),
            output_schema=JobListingOutput,
            temperature=self.settings.llm_temperature,
        )
        output = await self._generate(
            TaskType.FORMAT_JOB, request, account_id, credentials, preferred_model
        )
        return output.content

    async def tailor_resume_to_job(
        self,
        resume: Resume,
        job: SimplifiedJob,
        account_id: str,
        credentials: Iterable[Credential] = (),
        preferred_model: str | None = None,
    ) -> SimplifiedResume:
        """Rewrite the resume sections for a job.

        Raises:
            RateLimitExceeded: If the account is over quota.
            AggregateFailure: If every model failed.
        """
        request = GenerationRequest(
            system_prompt=TAILOR_RESUME_SYSTEM_PROMPT,
            user_prompt=build_tailor_resume_prompt(resume, job),
            output_schema=TailoredResumeOutput,
            temperature=self.settings.llm_temperature,
        )
        output = await self._generate(
            TaskType.TAILOR_RESUME, request, account_id, credentials, preferred_model
        )
        return output.content

    async def generate_cover_letter(
        self,
        resume: Resume,
        job: SimplifiedJob,
        account_id: str,
        credentials: Iterable[Credential] = (),
        preferred_model: str | None = None,
        instructions: str | None = None,
        letter_date: date | None = None,
    ) -> CoverLetter:
        """Write a cover letter for a job as an HTML fragment.

        Raises:
            RateLimitExceeded: If the account is over quota.
            AggregateFailure: If every model failed.
        """
        letter_date = letter_date or date.today()
        request = GenerationRequest(
            system_prompt=COVER_LETTER_SYSTEM_PROMPT,
            user_prompt=build_cover_letter_prompt(
                resume,
                job,
                date_line=f"{letter_date:%B} {letter_date.day}, {letter_date.year}",
                instructions=instructions,
            ),
            output_schema=CoverLetter,
            temperature=self.settings.llm_temperature,
        )
        return await self._generate(
            TaskType.COVER_LETTER, request, account_id, credentials, preferred_model
        )

    async def _generate(
        self,
        task: TaskType,
        request: GenerationRequest,
        account_id: str,
        credentials: Iterable[Credential],
        preferred_model: str | None,
    ) -> BaseModel:
        context = await self.orchestrator.plan_provider.get_plan(account_id)
        candidates = build_candidates(
            task,
            context.plan,
            credentials,
            preferred_model=preferred_model,
            settings=self.settings,
        )
        if not candidates:
            raise CredentialError(
                f"No model is available for {task.value} on the {context.plan.value} "
                "plan with the supplied API keys"
            )

        logger.info(
            "Running %s for account %s with models: %s",
            task.value,
            account_id,
            ", ".join(candidate.model_id for candidate in candidates),
        )
        return await self.orchestrator.orchestrate(
            request, candidates, account_id, context=context
        )


def create_tailoring_service(
    plan_provider: PlanProvider,
    settings: Settings | None = None,
    sink: EventSink | None = None,
) -> TailoringService:
    """Wire a TailoringService with the LiteLLM client and SQLite rate limiter."""
    settings = settings or get_settings()
    orchestrator = GenerationOrchestrator(
        client=StructuredGenerationClient(settings=settings),
        rate_limiter=SqliteRateLimiter(settings=settings),
        plan_provider=plan_provider,
        sink=sink,
        settings=settings,
    )
    return TailoringService(orchestrator, settings=settings)
