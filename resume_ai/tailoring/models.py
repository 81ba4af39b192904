"""Data models for the tailoring call sites.

Contains Pydantic models for:
- SimplifiedJob: structured job listing extracted from free text
- Resume / SimplifiedResume: resume sections sent to and returned by the LLM
- CoverLetter: generated cover letter body
- *Output wrappers: the ``{"content": ...}`` envelope the LLM is asked for
  (CoverLetter already has that shape)
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

WorkLocation = Literal["remote", "in_person", "hybrid"]
EmploymentType = Literal["full_time", "part_time", "co_op", "internship", "contract"]


class WorkExperience(BaseModel):
    """One position held."""

    company: str | None = None
    position: str | None = None
    location: str | None = None
    date: str | None = None
    description: list[str] | None = None
    technologies: list[str] | None = None


class Education(BaseModel):
    """One degree or program."""

    school: str | None = None
    degree: str | None = None
    field: str | None = None
    location: str | None = None
    date: str | None = None
    gpa: str | None = None
    achievements: list[str] | None = None


class Project(BaseModel):
    """A personal or professional project."""

    name: str | None = None
    description: list[str] | None = None
    date: str | None = None
    technologies: list[str] | None = None
    url: str | None = None
    github_url: str | None = None

    @field_validator("url", "github_url", mode="before")
    @classmethod
    def add_scheme(cls, v: object) -> object:
        """Prefix bare hosts with https://."""
        if not isinstance(v, str):
            return v
        value = v.strip()
        if not value or value.startswith("http"):
            return value
        return f"https://{value}"


class Skill(BaseModel):
    """A category of skills."""

    category: str | None = None
    items: list[str] | None = None


class SalaryRange(BaseModel):
    min: float
    max: float
    currency: str


class SimplifiedJob(BaseModel):
    """Job listing fields extracted by the LLM."""

    company_name: str | None = None
    position_title: str | None = None
    job_url: str | None = None
    description: str | None = None
    location: str | None = None
    salary_range: SalaryRange | None = None
    keywords: list[str] | None = Field(default_factory=list)
    work_location: WorkLocation | None = None
    employment_type: EmploymentType = "full_time"
    is_active: bool | None = True

    @field_validator("work_location", mode="before")
    @classmethod
    def default_work_location(cls, v: object) -> object:
        if v is None or v == "":
            return "in_person"
        return v

    @field_validator("employment_type", mode="before")
    @classmethod
    def default_employment_type(cls, v: object) -> object:
        if v is None or v == "":
            return "full_time"
        return v

    @field_validator("salary_range", mode="before")
    @classmethod
    def drop_empty_salary(cls, v: object) -> object:
        """Models often send "" or {} when the listing has no salary."""
        if v == "" or v == {}:
            return None
        return v


class SimplifiedResume(BaseModel):
    """Resume sections rewritten for a job."""

    work_experience: list[WorkExperience] | None = None
    education: list[Education] | None = None
    skills: list[Skill] | None = None
    projects: list[Project] | None = None
    target_role: str


class Resume(BaseModel):
    """Resume as stored for a user; input to tailoring and cover letters."""

    model_config = ConfigDict(extra="allow")

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    target_role: str = ""
    work_experience: list[WorkExperience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


class CoverLetter(BaseModel):
    """Generated cover letter, as an HTML fragment without <html> tags."""

    content: str = Field(..., min_length=1, description="Cover letter body as HTML")


class JobListingOutput(BaseModel):
    content: SimplifiedJob


class TailoredResumeOutput(BaseModel):
    content: SimplifiedResume
