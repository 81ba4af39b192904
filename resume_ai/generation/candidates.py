"""Candidate list construction.

Which models a task tries, and in which order, is configuration
(``Settings.candidate_models``). This module only turns that data plus the
caller's preferences into ``ModelCandidate`` objects.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from resume_ai.config.settings import Settings, get_settings
from resume_ai.generation.catalog import is_model_available, resolve_model_id
from resume_ai.generation.models import Credential, ModelCandidate, Plan, TaskType

logger = logging.getLogger(__name__)


def build_candidates(
    task: TaskType | str,
    plan: Plan,
    credentials: Iterable[Credential] = (),
    preferred_model: str | None = None,
    settings: Settings | None = None,
) -> list[ModelCandidate]:
    """Build the ordered candidate list for a task.

    Args:
        task: Call site the candidates are for.
        plan: Plan of the account making the call.
        credentials: Caller-supplied API keys, attached to every candidate.
        preferred_model: Model the user picked; tried first when allowed.
        settings: Optional Settings. Uses global settings if not provided.

    Returns:
        Candidates in priority order, without duplicates or models the plan
        and credentials cannot use.
    """
    settings = settings or get_settings()
    task_key = task.value if isinstance(task, TaskType) else str(task)
    credentials = tuple(credentials)

    ordered: list[str] = []
    if preferred_model:
        ordered.append(resolve_model_id(preferred_model))
    ordered.extend(resolve_model_id(m) for m in settings.models_for(task_key, plan.value))

    candidates: list[ModelCandidate] = []
    seen: set[str] = set()
    for model_id in ordered:
        if model_id in seen:
            continue
        seen.add(model_id)
        if not is_model_available(model_id, plan, credentials):
            logger.debug(
                "Skipping model %s for %s: not available on %s plan",
                model_id,
                task_key,
                plan.value,
            )
            continue
        candidates.append(ModelCandidate(model_id=model_id, credentials=credentials))

    return candidates
