"""Command line entry point for resume-ai."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from resume_ai import __version__
from resume_ai.config.settings import Settings
from resume_ai.generation.catalog import default_model, group_models_by_provider, selectable_models
from resume_ai.generation.errors import AggregateFailure, GenerationError, RateLimitExceeded
from resume_ai.generation.models import Credential, Plan
from resume_ai.generation.sink import FanOutEventSink, InMemoryEventSink, LoggingEventSink
from resume_ai.subscription.service import StaticPlanProvider
from resume_ai.utils.logging import configure_logging


def _credential(value: str) -> Credential:
    service, sep, key = value.partition("=")
    if not sep or not service.strip() or not key.strip():
        raise argparse.ArgumentTypeError("--api-key must look like SERVICE=KEY")
    return Credential(service=service.strip().lower(), key=key.strip())


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _load_json(path: str) -> dict:
    return json.loads(_read_text(path))


def _write_json(payload: object, out: Path | None) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if out is None:
        print(text)
    else:
        out.write_text(text + "\n", encoding="utf-8")
        print(f"Wrote: {out}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="resume-ai",
        description="resume-ai: AI job formatting, resume tailoring and cover letters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m resume_ai format-job listing.txt
  python -m resume_ai tailor resume.json job.json --plan pro
  python -m resume_ai cover-letter resume.json job.json --api-key openai=sk-...
  python -m resume_ai models --api-key anthropic=sk-ant-...
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--plan",
        choices=[plan.value for plan in Plan],
        default=Plan.FREE.value,
        help="Subscription plan to run as (default: free)",
    )
    common.add_argument(
        "--api-key",
        dest="api_keys",
        action="append",
        type=_credential,
        default=[],
        metavar="SERVICE=KEY",
        help="Provider API key to use (repeatable): openai, anthropic or openrouter",
    )

    generation = argparse.ArgumentParser(add_help=False, parents=[common])
    generation.add_argument(
        "--account-id",
        default="local",
        help="Account id used for rate limiting (default: local)",
    )
    generation.add_argument(
        "--model",
        default=None,
        help="Preferred model id, tried before the configured fallbacks",
    )
    generation.add_argument(
        "--events",
        action="store_true",
        help="Print the attempt records as JSON lines to stderr",
    )
    generation.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the JSON result to this file instead of stdout",
    )

    subparsers = parser.add_subparsers(dest="command", title="commands")

    format_parser = subparsers.add_parser(
        "format-job",
        parents=[generation],
        help="Extract a structured job from a listing text file",
    )
    format_parser.add_argument("listing", help="Listing text file ('-' for stdin)")

    tailor_parser = subparsers.add_parser(
        "tailor",
        parents=[generation],
        help="Tailor a resume (JSON) to a job (JSON)",
    )
    tailor_parser.add_argument("resume", help="Resume JSON file")
    tailor_parser.add_argument("job", help="Job JSON file")

    cover_parser = subparsers.add_parser(
        "cover-letter",
        parents=[generation],
        help="Write a cover letter for a resume (JSON) and job (JSON)",
    )
    cover_parser.add_argument("resume", help="Resume JSON file")
    cover_parser.add_argument("job", help="Job JSON file")
    cover_parser.add_argument(
        "--instructions",
        default=None,
        help="Extra instructions for the letter",
    )

    subparsers.add_parser(
        "models",
        parents=[common],
        help="List models available for a plan and set of API keys",
    )

    return parser


async def _run_generation(parsed: argparse.Namespace, settings: Settings) -> object:
    from resume_ai.tailoring.models import Resume, SimplifiedJob
    from resume_ai.tailoring.service import create_tailoring_service

    memory = InMemoryEventSink()
    service = create_tailoring_service(
        StaticPlanProvider(Plan(parsed.plan)),
        settings=settings,
        sink=FanOutEventSink(LoggingEventSink(), memory),
    )
    common = {
        "account_id": parsed.account_id,
        "credentials": parsed.api_keys,
        "preferred_model": parsed.model,
    }
    try:
        if parsed.command == "format-job":
            return await service.format_job_listing(_read_text(parsed.listing), **common)

        resume = Resume.model_validate(_load_json(parsed.resume))
        job = SimplifiedJob.model_validate(_load_json(parsed.job))
        if parsed.command == "tailor":
            return await service.tailor_resume_to_job(resume, job, **common)
        return await service.generate_cover_letter(
            resume, job, instructions=parsed.instructions, **common
        )
    finally:
        await service.orchestrator.rate_limiter.close()
        if parsed.events:
            for event in memory.events:
                print(json.dumps(event.to_dict()), file=sys.stderr)


def _print_models(plan: Plan, credentials: list[Credential]) -> None:
    """Print the models usable on ``plan``, grouped under their provider."""
    available = {model.id for model in selectable_models(plan, credentials)}
    default = default_model(plan)
    for provider, models in group_models_by_provider():
        shown = [model for model in models if model.id in available]
        if not shown:
            continue
        print(f"{provider.name} (platform key: {provider.env_key}, get a key: {provider.api_link})")
        for model in shown:
            tags = [
                tag
                for tag, on in (
                    ("default", model.id == default),
                    ("free", model.is_free),
                    ("recommended", model.is_recommended),
                )
                if on
            ]
            suffix = f" ({', '.join(tags)})" if tags else ""
            print(f"  {model.id}\t{model.name}{suffix}")


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    logger = configure_logging(level=parsed.log_level or settings.log_level)

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "models":
        _print_models(Plan(parsed.plan), parsed.api_keys)
        return 0

    logger.info(f"resume-ai v{__version__} running {parsed.command}")

    try:
        result = asyncio.run(_run_generation(parsed, settings))
    except (OSError, json.JSONDecodeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except RateLimitExceeded as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except AggregateFailure as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        for model_id, reason in e.reasons:
            print(f"  {model_id}: {reason}", file=sys.stderr)
        return 1
    except GenerationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _write_json(result.model_dump(mode="json", exclude_none=True), parsed.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
