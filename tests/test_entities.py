"""Tests for core entities."""

from datetime import datetime, timezone

import pytest

from commit_analyzer.core import (
    Analysis,
    AnalyzedCommit,
    BatchResult,
    BatchStatus,
    Category,
    Commit,
    CommitHash,
    ProgressState,
)
from commit_analyzer.errors import ValidationError

FULL_HASH = "a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"

DIFF = """diff --git a/src/app.py b/src/app.py
--- a/src/app.py
+++ b/src/app.py
@@ -1,3 +1,4 @@
 import os
+import sys
-import re
+import json
diff --git a/README.md b/README.md
--- a/README.md
+++ b/README.md
@@ -1 +1 @@
-Old title
+New title
"""


def make_analysis(category: str = "feature") -> Analysis:
    return Analysis(
        category=category,
        summary="Add export command",
        description="Adds a command that exports results to CSV files.",
    )


def test_commit_hash_accepts_short_and_full() -> None:
    """Hashes of 4 to 40 hex characters are valid."""
    assert CommitHash("abcd").value == "abcd"
    assert CommitHash(FULL_HASH).value == FULL_HASH
    assert CommitHash("ABCDEF12").value == "ABCDEF12"


def test_commit_hash_strips_whitespace() -> None:
    """Surrounding whitespace is removed."""
    assert CommitHash.create("  abc123  \n").value == "abc123"


@pytest.mark.parametrize("raw", ["", "   ", "abc", "a" * 41, "xyz123", "abc-123", None, 1234])
def test_commit_hash_rejects_invalid(raw) -> None:
    """Empty, too short, too long, non-hex and non-string values are rejected."""
    with pytest.raises(ValidationError):
        CommitHash.create(raw)


def test_commit_hash_short() -> None:
    """Short form is the first 8 characters."""
    assert CommitHash(FULL_HASH).short() == "a1b2c3d4"
    assert str(CommitHash("abcd")) == "abcd"


def test_category_parse_is_case_insensitive() -> None:
    """Category names are parsed regardless of case and padding."""
    assert Category.parse("Feature") is Category.FEATURE
    assert Category.parse(" TWEAK ") is Category.TWEAK
    assert Category.values() == ["tweak", "feature", "process"]


def test_category_parse_rejects_unknown() -> None:
    """Unknown category names raise ValidationError."""
    with pytest.raises(ValidationError, match="Invalid category"):
        Category.parse("bugfix")


def test_analysis_validation() -> None:
    """Summary and description limits are enforced."""
    analysis = make_analysis("process")
    assert analysis.category is Category.PROCESS

    with pytest.raises(ValidationError):
        Analysis(category="tweak", summary="", description="Long enough description")
    with pytest.raises(ValidationError):
        Analysis(category="tweak", summary="x" * 81, description="Long enough description")
    with pytest.raises(ValidationError):
        Analysis(category="tweak", summary="Fix", description="too short")


def test_commit_diff_stats() -> None:
    """Diff stats count changed lines and files, ignoring file headers."""
    commit = Commit(
        hash=CommitHash(FULL_HASH),
        message="Switch to json",
        date=datetime(2024, 3, 1, tzinfo=timezone.utc),
        diff=DIFF,
    )

    stats = commit.diff_stats()

    assert stats.additions == 3
    assert stats.deletions == 2
    assert stats.files_changed == 2
    assert stats.changed_lines == 5
    assert not commit.is_large_change()
    assert commit.year == 2024


def test_commit_requires_message_and_diff() -> None:
    """Empty message or diff is rejected."""
    date = datetime(2024, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(ValidationError):
        Commit(hash=CommitHash("abcd"), message=" ", date=date, diff=DIFF)
    with pytest.raises(ValidationError):
        Commit(hash=CommitHash("abcd"), message="Fix", date=date, diff="")


def test_analyzed_commit_csv_row() -> None:
    """CSV row carries year and analysis fields."""
    commit = Commit(
        hash=CommitHash(FULL_HASH),
        message="Add export",
        date=datetime(2023, 6, 15, tzinfo=timezone.utc),
        diff=DIFF,
    )
    analyzed = AnalyzedCommit.from_commit(commit, make_analysis())

    assert analyzed.to_csv_row() == {
        "year": 2023,
        "category": "feature",
        "summary": "Add export command",
        "description": "Adds a command that exports results to CSV files.",
    }
    assert analyzed.short_hash() == "a1b2c3d4"


def test_progress_state_remaining_preserves_order() -> None:
    """Remaining commits keep the original order."""
    hashes = [CommitHash(h) for h in ("aaaa", "bbbb", "cccc", "dddd")]
    state = ProgressState(
        total_commits=hashes,
        processed_commits=[hashes[2], hashes[0]],
        analyzed_commits=[],
        last_processed_index=1,
        start_time=datetime.now(timezone.utc),
        output_file="out.csv",
    )

    assert [h.value for h in state.remaining_commits()] == ["bbbb", "dddd"]
    state.validate()


def test_progress_state_rejects_unknown_processed() -> None:
    """Processed commits must be a subset of the batch."""
    state = ProgressState(
        total_commits=[CommitHash("aaaa")],
        processed_commits=[CommitHash("ffff")],
        analyzed_commits=[],
        last_processed_index=0,
        start_time=datetime.now(timezone.utc),
        output_file="out.csv",
    )

    with pytest.raises(ValidationError):
        state.validate()


def test_batch_result_summary_line() -> None:
    """Summary line reports halt position or failure counts."""
    halted = BatchResult(status=BatchStatus.HALTED, halted_at=7)
    assert halted.summary_line() == "0 succeeded, halted at item 7"

    completed = BatchResult(status=BatchStatus.COMPLETED, failed_commits=2, total_processed=5)
    assert completed.summary_line() == "0 succeeded, 2 failed (5 processed)"
    assert completed.category_breakdown() == {"tweak": 0, "feature": 0, "process": 0}
