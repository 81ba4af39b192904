"""AI-backed resume features.

This module provides:
- Structured extraction of job listings
- Tailoring resume sections to a job
- Cover letter generation

Main Entry Point:
    TailoringService - runs each feature through the generation orchestrator

Example:
    from resume_ai.subscription import StaticPlanProvider
    from resume_ai.tailoring import create_tailoring_service

    service = create_tailoring_service(StaticPlanProvider())
    job = await service.format_job_listing(listing_text, account_id="user-1")
"""

from resume_ai.tailoring.models import (
    CoverLetter,
    Education,
    Project,
    Resume,
    SalaryRange,
    SimplifiedJob,
    SimplifiedResume,
    Skill,
    WorkExperience,
)
from resume_ai.tailoring.service import TailoringService, create_tailoring_service

__all__ = [
    # Service
    "TailoringService",
    "create_tailoring_service",
    # Models
    "CoverLetter",
    "Education",
    "Project",
    "Resume",
    "SalaryRange",
    "SimplifiedJob",
    "SimplifiedResume",
    "Skill",
    "WorkExperience",
]
