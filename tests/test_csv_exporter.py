"""Tests for CSV export and import."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from commit_analyzer.adapters.storage import CSVExporter, read_commit_list
from commit_analyzer.core import Analysis, AnalyzedCommit, Category, CommitHash
from commit_analyzer.errors import ValidationError


def make_commit(summary: str, description: str, year: int = 2024) -> AnalyzedCommit:
    return AnalyzedCommit(
        hash=CommitHash("abcdef12"),
        message=summary,
        date=datetime(year, 3, 1, tzinfo=timezone.utc),
        analysis=Analysis(category="tweak", summary=summary, description=description),
    )


def test_export_quotes_commas_and_quotes(tmp_path: Path) -> None:
    """Fields with commas and quotes are quoted so they read back intact."""
    output = tmp_path / "nested" / "commits.csv"
    commit = make_commit('Fix "login", again', "Handles commas, quotes and\nnewlines.")

    CSVExporter().export([commit], str(output))
    rows = CSVExporter().import_rows(str(output))

    assert output.read_text(encoding="utf-8").startswith("year,category,summary,description\n")
    assert len(rows) == 1
    assert rows[0].year == 2024
    assert rows[0].category is Category.TWEAK
    assert rows[0].summary == 'Fix "login", again'
    assert rows[0].description == "Handles commas, quotes and\nnewlines."


def test_parse_skips_bad_rows() -> None:
    """Rows with bad years or categories are skipped."""
    content = (
        "year,category,summary,description\n"
        "2023,feature,Add search,Adds full-text search.\n"
        "1800,feature,Too old,Year out of range.\n"
        "2023,chore,Bad category,Unknown category value.\n"
        "2022,process,Bump CI,Updates the CI image.\n"
    )

    rows = CSVExporter().parse_csv(content)

    assert [row.summary for row in rows] == ["Add search", "Bump CI"]


def test_parse_rejects_wrong_header() -> None:
    with pytest.raises(ValidationError, match="Expected header"):
        CSVExporter().parse_csv("date,type,title,text\n2023,feature,a,b\n")


def test_parse_rejects_empty() -> None:
    with pytest.raises(ValidationError, match="no data rows"):
        CSVExporter().parse_csv("year,category,summary,description\n")


def test_read_commit_list(tmp_path: Path) -> None:
    """Blank lines and comments are ignored."""
    path = tmp_path / "commits.txt"
    path.write_text("# release commits\nabc1234\n\n  def5678  \n# done\n", encoding="utf-8")

    assert read_commit_list(path) == ["abc1234", "def5678"]
