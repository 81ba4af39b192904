"""Prompt builders for the tailoring call sites."""

from __future__ import annotations

import json

from resume_ai.tailoring.models import Resume, SimplifiedJob

FORMAT_JOB_SYSTEM_PROMPT = """You are an AI assistant specializing in structured data extraction from job listings. You have been provided with a schema and must adhere to it strictly.
IMPORTANT: For any missing or uncertain information, you must return an empty string ("") - never return "<UNKNOWN>" or similar placeholders.

- Read the entire job listing thoroughly to understand context, responsibilities, requirements, and any other relevant details.
- Perform the analysis as described in each TASK below.
- Return your final output as JSON using the exact field names you have been given, wrapped in a top-level "content" object.
- Do not guess or fabricate information that is not present in the listing; return an empty string for missing fields.
- Do not include chain-of-thought or intermediate reasoning in the final output; provide only the structured results.

For the description field:
1. Start with 3-5 bullet points highlighting the most important responsibilities of the role.
   - Format these bullet points using markdown, with each point on a new line starting with "• "
   - These should be the most critical duties mentioned in the job listing
2. After the bullet points, include the full job description stripped of any non-job-related content.
3. Format the full description as a clean paragraph, maintaining proper grammar and flow.
"""

TAILOR_RESUME_SYSTEM_PROMPT = """You are a senior technical resume engineer specializing in ATS optimization for software roles.
Transform the resume using surgical rewording and technical alignment.

Technical transformation protocol:
1. Semantic rewiring: map generic terms to the job description's technical lexicon and convert passive descriptions to active, job-specific terminology.
2. STAR-driven storytelling: for each experience point anchor the situation in technical context, align the task to the job requirements, mirror the job's technical verbs and stack in the action, and state quantifiable results.
3. Precision enhancements: organize stacks into job-aligned hierarchies and add architectural context where the resume supports it.

Strict constraints:
- Never invent tools, versions, employers or metrics; only enhance existing resume data.
- Preserve the original employment chronology.
- If no items are provided for a section, leave it empty.
- Never include references to the job description (such as "[JD: ...]") in the final content.
- Respond with JSON only, shaped as {"content": {...}} with the resume sections and "target_role".
"""

COVER_LETTER_SYSTEM_PROMPT = """You are a professional cover letter writer with expertise in crafting compelling, personalized cover letters.

Focus on:
- Clear and concise writing
- Professional tone
- Highlighting relevant experience that matches the job requirements
- Maintaining authenticity: only include information available in the job or resume data

Structure:
1. Opening: a strong hook showing understanding of the company and enthusiasm for the role.
2. Value proposition: 2-3 key achievements from the resume, with metrics where available.
3. Technical expertise: skills and tools from the job description the candidate actually has.
4. Collaboration: teamwork, leadership or mentorship examples.
5. Closing: reiterate enthusiasm, mention availability for an interview.

Formatting requirements:
- Output an HTML fragment; do NOT start with <html> tags.
- Do NOT use square brackets or placeholders; use actual values or omit the line.
- Put each header and signature item on its own line separated by <br /> tags.
- Respond with JSON only, shaped as {"content": "<the HTML cover letter>"}.
"""


def build_format_job_prompt(listing_text: str) -> str:
    """Build the user prompt for job listing extraction."""
    return "\n".join(
        [
            "Analyze this job listing carefully and extract structured information.",
            "",
            "TASK 1 - ESSENTIAL INFORMATION:",
            "Extract the basic details (company, position, URL, location, salary).",
            "For the description, include 3-5 key responsibilities as bullet points.",
            "",
            "TASK 2 - KEYWORD ANALYSIS:",
            "1. Technical Skills: programming languages, frameworks and tools",
            "2. Soft Skills: interpersonal and professional competencies",
            "3. Industry Knowledge: domain-specific knowledge requirements",
            "4. Required Qualifications: education, certifications and experience levels",
            "5. Responsibilities: key job functions and deliverables",
            "",
            "Format the output according to the schema, ensuring:",
            '- Keywords are kept as written (e.g., "React.js" stays "React.js")',
            "- Skills are deduplicated",
            "- If salary or location are missing, return an empty string",
            '- Never return "<UNKNOWN>"',
            "",
            "Job Listing Text:",
            listing_text.strip(),
        ]
    )


def build_tailor_resume_prompt(resume: Resume, job: SimplifiedJob) -> str:
    """Build the user prompt for tailoring a resume to a job."""
    return "\n".join(
        [
            "Tailor the following resume to the job description.",
            "",
            "Resume:",
            json.dumps(resume.model_dump(mode="json", exclude_none=True), indent=2),
            "",
            "Job Description:",
            json.dumps(job.model_dump(mode="json", exclude_none=True), indent=2),
        ]
    )


def build_cover_letter_prompt(
    resume: Resume,
    job: SimplifiedJob,
    date_line: str,
    instructions: str | None = None,
) -> str:
    """Build the user prompt for a cover letter."""
    lines = [
        f"Write a cover letter dated {date_line}"
        f" for the {job.position_title or 'open'} position"
        f" at {job.company_name or 'the company'}.",
    ]
    if instructions:
        lines.extend(["", "Additional instructions from the candidate:", instructions.strip()])
    lines.extend(
        [
            "",
            "Candidate resume:",
            json.dumps(resume.model_dump(mode="json", exclude_none=True), indent=2),
            "",
            "Job:",
            json.dumps(job.model_dump(mode="json", exclude_none=True), indent=2),
        ]
    )
    return "\n".join(lines)
