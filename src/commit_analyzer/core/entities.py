"""Core domain entities."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from commit_analyzer.errors import ValidationError

MIN_HASH_LENGTH = 4
MAX_HASH_LENGTH = 40
MAX_SUMMARY_LENGTH = 80
MIN_DESCRIPTION_LENGTH = 10

LARGE_CHANGE_LINES = 100
LARGE_CHANGE_FILES = 10

_HEX_RE = re.compile(r"^[0-9a-f]+$", re.IGNORECASE)
_DIFF_HEADER_RE = re.compile(r"^diff --git a/(.+) b/(.+)$")


@dataclass(frozen=True)
class CommitHash:
    """Validated git commit hash (short or full)."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError("Commit hash cannot be empty")
        normalized = self.value.strip()
        if len(normalized) < MIN_HASH_LENGTH or len(normalized) > MAX_HASH_LENGTH:
            raise ValidationError(
                f"Invalid commit hash length: {normalized!r}",
                details=f"Expected {MIN_HASH_LENGTH}-{MAX_HASH_LENGTH} characters",
            )
        if not _HEX_RE.match(normalized):
            raise ValidationError(
                f"Commit hash must contain only hexadecimal characters: {normalized!r}"
            )
        object.__setattr__(self, "value", normalized)

    @classmethod
    def create(cls, raw: Any) -> "CommitHash":
        return cls(raw)

    def short(self, length: int = 8) -> str:
        return self.value[:length]

    def __str__(self) -> str:
        return self.value


class Category(str, Enum):
    """Commit category."""

    TWEAK = "tweak"
    FEATURE = "feature"
    PROCESS = "process"

    @classmethod
    def parse(cls, raw: Any) -> "Category":
        """Parse a category name, case-insensitively."""
        if not raw or not isinstance(raw, str):
            raise ValidationError("Category cannot be empty")
        try:
            return cls(raw.strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ValidationError(f"Invalid category: {raw}. Must be one of: {valid}") from None

    @classmethod
    def values(cls) -> list[str]:
        return [c.value for c in cls]


@dataclass(frozen=True)
class Analysis:
    """Categorization produced for one commit."""

    category: Category
    summary: str
    description: str

    def __post_init__(self) -> None:
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category.parse(self.category))
        if not self.summary or not self.summary.strip():
            raise ValidationError("Summary cannot be empty")
        if len(self.summary) > MAX_SUMMARY_LENGTH:
            raise ValidationError(
                f"Summary exceeds {MAX_SUMMARY_LENGTH} characters ({len(self.summary)})"
            )
        if not self.description or len(self.description.strip()) < MIN_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description must be at least {MIN_DESCRIPTION_LENGTH} characters"
            )


@dataclass(frozen=True)
class DiffStats:
    """Line and file counts derived from a unified diff."""

    additions: int
    deletions: int
    files_changed: int

    @property
    def changed_lines(self) -> int:
        return self.additions + self.deletions


@dataclass(frozen=True)
class Commit:
    """A commit fetched from version control, ready for analysis."""

    hash: CommitHash
    message: str
    date: datetime
    diff: str

    def __post_init__(self) -> None:
        if not self.message or not self.message.strip():
            raise ValidationError("Commit message cannot be empty")
        if self.date is None:
            raise ValidationError("Commit date is required")
        if not self.diff:
            raise ValidationError("Commit diff is required")

    @property
    def year(self) -> int:
        return self.date.year

    def short_hash(self, length: int = 8) -> str:
        return self.hash.short(length)

    def diff_stats(self) -> DiffStats:
        additions = 0
        deletions = 0
        files: set[str] = set()

        for line in self.diff.split("\n"):
            if line.startswith("+") and not line.startswith("+++"):
                additions += 1
            elif line.startswith("-") and not line.startswith("---"):
                deletions += 1
            elif line.startswith("diff --git"):
                match = _DIFF_HEADER_RE.match(line)
                if match:
                    files.add(match.group(1))

        return DiffStats(additions=additions, deletions=deletions, files_changed=len(files))

    def is_large_change(self) -> bool:
        stats = self.diff_stats()
        return stats.changed_lines > LARGE_CHANGE_LINES or stats.files_changed > LARGE_CHANGE_FILES


@dataclass(frozen=True)
class AnalyzedCommit:
    """A commit paired with its analysis."""

    hash: CommitHash
    message: str
    date: datetime
    analysis: Analysis

    @classmethod
    def from_commit(cls, commit: Commit, analysis: Analysis) -> "AnalyzedCommit":
        return cls(hash=commit.hash, message=commit.message, date=commit.date, analysis=analysis)

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def category(self) -> Category:
        return self.analysis.category

    def short_hash(self, length: int = 8) -> str:
        return self.hash.short(length)

    def to_csv_row(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "category": self.analysis.category.value,
            "summary": self.analysis.summary,
            "description": self.analysis.description,
        }


@dataclass
class ProgressState:
    """Resumable snapshot of a batch run."""

    total_commits: list[CommitHash]
    processed_commits: list[CommitHash]
    analyzed_commits: list[AnalyzedCommit]
    last_processed_index: int
    start_time: datetime
    output_file: str

    def validate(self) -> None:
        total = {h.value for h in self.total_commits}
        unknown = [h.value for h in self.processed_commits if h.value not in total]
        if unknown:
            raise ValidationError(
                "Processed commits must be part of the batch",
                details=", ".join(unknown[:5]),
            )

    def remaining_commits(self) -> list[CommitHash]:
        processed = {h.value for h in self.processed_commits}
        return [h for h in self.total_commits if h.value not in processed]


class BatchStatus(str, Enum):
    """Lifecycle state of a batch run."""

    IDLE = "idle"
    VALIDATING = "validating"
    PROCESSING = "processing"
    CHECKPOINTING = "checkpointing"
    COMPLETED = "completed"
    HALTED = "halted_on_failure"


@dataclass
class BatchResult:
    """Outcome of one analysis run."""

    status: BatchStatus
    analyzed_commits: list[AnalyzedCommit] = field(default_factory=list)
    failed_commits: int = 0
    total_processed: int = 0
    halted_at: Optional[int] = None
    halt_reason: Optional[str] = None
    invalid_hashes: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.analyzed_commits)

    @property
    def halted(self) -> bool:
        return self.status is BatchStatus.HALTED

    def category_breakdown(self) -> dict[str, int]:
        breakdown = {category.value: 0 for category in Category}
        for commit in self.analyzed_commits:
            breakdown[commit.category.value] += 1
        return breakdown

    def summary_line(self) -> str:
        if self.halted:
            return f"{self.succeeded} succeeded, halted at item {self.halted_at}"
        line = f"{self.succeeded} succeeded, {self.failed_commits} failed"
        return f"{line} ({self.total_processed} processed)"
