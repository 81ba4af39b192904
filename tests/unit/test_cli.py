from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from resume_ai.generation.errors import CredentialError
from resume_ai.tailoring.models import JobListingOutput, SimplifiedJob

CLIENT_METHOD = "resume_ai.generation.client.StructuredGenerationClient.generate_structured"


@pytest.fixture(autouse=True)
def isolated_db(monkeypatch, tmp_path):
    monkeypatch.setenv("RESUME_AI_RATE_LIMIT_DB_PATH", str(tmp_path / "rate_limit.db"))
    monkeypatch.setenv("RESUME_AI_LLM_RETRY_BASE_WAIT", "0")
    monkeypatch.setenv("RESUME_AI_LLM_RATE_LIMIT_BASE_WAIT", "0")


@pytest.fixture
def listing_file(tmp_path):
    path = tmp_path / "listing.txt"
    path.write_text("Acme is hiring a backend engineer.\n", encoding="utf-8")
    return path


def test_cli_without_command_prints_help(capsys) -> None:
    from resume_ai.__main__ import main

    assert main([]) == 0
    assert "resume-ai" in capsys.readouterr().out


def test_cli_format_job_writes_json(monkeypatch, tmp_path, listing_file) -> None:
    from resume_ai.__main__ import main

    mock = AsyncMock(return_value=JobListingOutput(content=SimplifiedJob(company_name="Acme")))
    monkeypatch.setattr(CLIENT_METHOD, mock)
    out = tmp_path / "job.json"

    exit_code = main(["format-job", str(listing_file), "--out", str(out)])

    assert exit_code == 0
    mock.assert_awaited_once()
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["company_name"] == "Acme"


def test_cli_format_job_prints_events(monkeypatch, capsys, listing_file) -> None:
    from resume_ai.__main__ import main

    mock = AsyncMock(return_value=JobListingOutput(content=SimplifiedJob(company_name="Acme")))
    monkeypatch.setattr(CLIENT_METHOD, mock)

    exit_code = main(["format-job", str(listing_file), "--events", "--account-id", "acct-9"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert json.loads(captured.out)["company_name"] == "Acme"
    events = [
        json.loads(line) for line in captured.err.splitlines() if line.startswith("{")
    ]
    assert events[0]["event"] == "attempt_success"
    assert events[0]["account_id"] == "acct-9"


def test_cli_reports_key_error_when_all_models_fail(monkeypatch, capsys, listing_file) -> None:
    from resume_ai.__main__ import main

    mock = AsyncMock(side_effect=CredentialError("OpenRouter API key not found"))
    monkeypatch.setattr(CLIENT_METHOD, mock)

    exit_code = main(["format-job", str(listing_file)])

    err = capsys.readouterr().err
    assert exit_code == 1
    assert "AI Key Error" in err
    assert "deepseek/deepseek-v3.2:nitro: OpenRouter API key not found" in err
    assert mock.await_count == 2


def test_cli_missing_input_file_errors_cleanly(tmp_path) -> None:
    from resume_ai.__main__ import main

    assert main(["format-job", str(tmp_path / "missing.txt")]) == 1


def test_cli_rejects_malformed_api_key() -> None:
    from resume_ai.__main__ import main

    with pytest.raises(SystemExit):
        main(["models", "--api-key", "openai"])


def test_cli_models_lists_free_models(capsys) -> None:
    from resume_ai.__main__ import main

    assert main(["models"]) == 0

    out = capsys.readouterr().out
    assert "deepseek/deepseek-v3.2:nitro" in out
    assert "gpt-5\t" not in out


def test_cli_models_with_key_lists_provider_models(capsys) -> None:
    from resume_ai.__main__ import main

    assert main(["models", "--api-key", "openai=sk-test"]) == 0

    assert "gpt-5\tGPT-5" in capsys.readouterr().out


def test_cli_models_groups_by_provider_and_marks_default(capsys) -> None:
    from resume_ai.__main__ import main

    assert main(["models", "--plan", "pro"]) == 0

    lines = capsys.readouterr().out.splitlines()
    headers = [line for line in lines if not line.startswith("  ")]
    assert headers[0].startswith("Anthropic (platform key: ANTHROPIC_API_KEY")
    assert "https://console.anthropic.com/" in headers[0]
    assert [header.split(" (")[0] for header in headers] == ["Anthropic", "OpenAI", "OpenRouter"]
    assert "  claude-sonnet-4-20250514\tClaude Sonnet 4 (default)" in lines


def test_cli_models_skips_providers_without_usable_models(capsys) -> None:
    from resume_ai.__main__ import main

    assert main(["models"]) == 0

    out = capsys.readouterr().out
    assert "OpenRouter (platform key: OPENROUTER_API_KEY" in out
    assert "Anthropic (" not in out
    assert "deepseek/deepseek-v3.2:nitro\tDeepSeek V3.2 (default, free, recommended)" in out
