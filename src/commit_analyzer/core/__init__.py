"""Core domain layer."""

from commit_analyzer.core.concurrency import ConcurrencyLimiter, run_limited
from commit_analyzer.core.entities import (
    Analysis,
    AnalyzedCommit,
    BatchResult,
    BatchStatus,
    Category,
    Commit,
    CommitHash,
    DiffStats,
    ProgressState,
)
from commit_analyzer.core.interfaces import (
    CommitRepository,
    ModelProvider,
    ProgressRepository,
    ResultExporter,
)
from commit_analyzer.core.progress_tracker import JSONProgressTracker
from commit_analyzer.core.statistics import CommitStatistics, generate_statistics

__all__ = [
    "Analysis",
    "AnalyzedCommit",
    "BatchResult",
    "BatchStatus",
    "Category",
    "Commit",
    "CommitHash",
    "DiffStats",
    "ProgressState",
    "CommitRepository",
    "ModelProvider",
    "ProgressRepository",
    "ResultExporter",
    "ConcurrencyLimiter",
    "run_limited",
    "JSONProgressTracker",
    "CommitStatistics",
    "generate_statistics",
]
