"""Tests for the command-line interface."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from commit_analyzer.cli import app
from commit_analyzer.core import BatchResult, BatchStatus
from commit_analyzer.logging_config import LOGGER_NAME

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run each command in an empty directory and reset logging afterwards."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LLM_MAX_RETRIES", raising=False)
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True


def test_report_command(tmp_path: Path) -> None:
    """Report command writes markdown from a CSV file."""
    csv_path = tmp_path / "commits.csv"
    csv_path.write_text(
        "year,category,summary,description\n2024,feature,Add login,Adds a login form.\n",
        encoding="utf-8",
    )
    output = tmp_path / "report.md"

    result = runner.invoke(app, ["report", str(csv_path), "--output", str(output), "--name", "Demo"])

    assert result.exit_code == 0
    assert "1 commits" in result.output
    assert output.read_text(encoding="utf-8").startswith("# Demo development report")


def test_report_missing_file_exits_with_error(tmp_path: Path) -> None:
    result = runner.invoke(app, ["report", str(tmp_path / "absent.csv"), "--name", "Demo"])

    assert result.exit_code == 1


def test_clear_progress_without_checkpoint() -> None:
    result = runner.invoke(app, ["clear-progress"])

    assert result.exit_code == 0
    assert "No progress checkpoint to clear." in result.output


def test_clear_progress_removes_checkpoint(tmp_path: Path) -> None:
    progress_file = tmp_path / ".commit-analyzer" / "progress.json"
    progress_file.parent.mkdir()
    progress_file.write_text("{}", encoding="utf-8")

    result = runner.invoke(app, ["clear-progress"])

    assert result.exit_code == 0
    assert not progress_file.exists()


def test_analyze_halt_prints_resume_hint() -> None:
    """A halted run exits with status 1 and explains how to resume."""
    halted = BatchResult(
        status=BatchStatus.HALTED,
        halted_at=7,
        halt_reason="Failed to analyze commit after 3 attempt(s): boom",
    )

    with patch("commit_analyzer.cli.async_analyze", AsyncMock(return_value=halted)):
        result = runner.invoke(app, ["analyze", "abc1234"])

    assert result.exit_code == 1
    assert "0 succeeded, halted at item 7" in result.output
    assert "commit-analyzer resume" in result.output


def test_analyze_rejects_bad_settings() -> None:
    """Invalid option values are reported as configuration errors."""
    result = runner.invoke(app, ["analyze", "abc1234", "--save-interval", "0"])

    assert result.exit_code == 1


def test_providers_command() -> None:
    available = {"claude": ["claude --model sonnet"], "gemini": [], "openai": [], "anthropic-api": []}

    with patch("commit_analyzer.cli.detect_available_providers", AsyncMock(return_value=available)):
        result = runner.invoke(app, ["providers"])

    assert result.exit_code == 0
    assert "✓ claude (default)" in result.output
    assert "✗ gemini: not available" in result.output


def test_clear_progress_with_cache(tmp_path: Path) -> None:
    cache_dir = tmp_path / ".commit-analyzer" / "cache"
    cache_dir.mkdir(parents=True)
    (cache_dir / "commit-abcd1234.yaml").write_text("hash: abcd1234\n", encoding="utf-8")

    result = runner.invoke(app, ["clear-progress", "--cache"])

    assert result.exit_code == 0
    assert "Removed 1 cached analyses." in result.output
    assert not list(cache_dir.iterdir())


def test_analyze_writes_log_file(tmp_path: Path) -> None:
    """--log-file adds a DEBUG file handler alongside the console."""
    log_path = tmp_path / "logs" / "run.log"
    done = BatchResult(status=BatchStatus.COMPLETED)

    with patch("commit_analyzer.cli.async_analyze", AsyncMock(return_value=done)):
        result = runner.invoke(app, ["analyze", "abc1234", "--log-file", str(log_path)])

    assert result.exit_code == 0
    assert log_path.exists()
    handlers = logging.getLogger(LOGGER_NAME).handlers
    assert any(isinstance(h, logging.FileHandler) for h in handlers)
