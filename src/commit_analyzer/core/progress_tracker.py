"""Checkpoint store for resumable batch runs."""

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from commit_analyzer.core.entities import (
    Analysis,
    AnalyzedCommit,
    Category,
    CommitHash,
    ProgressState,
)
from commit_analyzer.core.interfaces import ProgressRepository
from commit_analyzer.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

PROGRESS_FILE_NAME = "progress.json"
JSON_INDENT = 2

_ANALYZED_FIELDS = ("hash", "message", "date", "year", "category", "summary", "description")


class JSONProgressTracker(ProgressRepository):
    """Persist batch progress as a single JSON file under the app data dir."""

    def __init__(self, storage_dir: Path) -> None:
        self.storage_dir = storage_dir

    @property
    def progress_file(self) -> Path:
        return self.storage_dir / PROGRESS_FILE_NAME

    def has_progress(self) -> bool:
        return self.progress_file.exists()

    def load_progress(self) -> Optional[ProgressState]:
        """Load the checkpoint, or None if it is missing or unreadable."""
        if not self.has_progress():
            return None

        try:
            data = json.loads(self.progress_file.read_text(encoding="utf-8"))
            return deserialize_progress(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, PersistenceError) as e:
            logger.error(f"Failed to load progress file {self.progress_file}: {e}")
            return None

    def save_progress(self, state: ProgressState) -> None:
        """Overwrite the checkpoint atomically."""
        content = json.dumps(serialize_progress(state), indent=JSON_INDENT, ensure_ascii=False)

        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.storage_dir, prefix=".progress-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.progress_file)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(
                f"Could not save progress to {self.progress_file}",
                details=str(e),
            ) from e

    def clear_progress(self) -> None:
        self.progress_file.unlink(missing_ok=True)

    def get_remaining_commits(self, state: ProgressState) -> list[CommitHash]:
        return state.remaining_commits()

    def format_progress_summary(self, state: ProgressState) -> str:
        processed = len(state.processed_commits)
        total = len(state.total_commits)
        remaining = total - processed
        percent = round(processed / total * 100) if total else 0

        return "\n".join([
            "Previous session:",
            f"  - Started: {state.start_time.strftime('%Y-%m-%d %H:%M:%S')}",
            f"  - Progress: {processed}/{total} commits ({percent}%)",
            f"  - Remaining: {remaining} commits",
            f"  - Output file: {state.output_file}",
        ])


def serialize_progress(state: ProgressState) -> dict[str, Any]:
    """Convert state to the checkpoint record."""
    return {
        "totalCommits": [h.value for h in state.total_commits],
        "processedCommits": [h.value for h in state.processed_commits],
        "analyzedCommits": [
            {
                "hash": commit.hash.value,
                "message": commit.message,
                "date": commit.date.isoformat(),
                "year": commit.year,
                "category": commit.analysis.category.value,
                "summary": commit.analysis.summary,
                "description": commit.analysis.description,
            }
            for commit in state.analyzed_commits
        ],
        "lastProcessedIndex": state.last_processed_index,
        "startTime": state.start_time.isoformat(),
        "outputFile": state.output_file,
    }


def deserialize_progress(data: Any) -> ProgressState:
    """Rebuild state from a checkpoint record, rejecting anything malformed."""
    if not isinstance(data, dict):
        raise PersistenceError("Invalid progress data: expected an object")

    total = _require_list(data, "totalCommits")
    processed = _require_list(data, "processedCommits")
    analyzed = _require_list(data, "analyzedCommits")

    last_index = data.get("lastProcessedIndex")
    if isinstance(last_index, bool) or not isinstance(last_index, int):
        raise PersistenceError("Invalid progress data: lastProcessedIndex must be a number")

    start_time = _parse_date(data.get("startTime"), "startTime")

    output_file = data.get("outputFile")
    if not isinstance(output_file, str):
        raise PersistenceError("Invalid progress data: outputFile must be a string")

    try:
        state = ProgressState(
            total_commits=[_parse_hash(h, "totalCommits") for h in total],
            processed_commits=[_parse_hash(h, "processedCommits") for h in processed],
            analyzed_commits=[_parse_analyzed(item, i) for i, item in enumerate(analyzed)],
            last_processed_index=last_index,
            start_time=start_time,
            output_file=output_file,
        )
        state.validate()
    except ValidationError as e:
        raise PersistenceError(f"Invalid progress data: {e.message}", details=e.details) from e

    return state


def _require_list(data: dict, key: str) -> list:
    value = data.get(key)
    if not isinstance(value, list):
        raise PersistenceError(f"Invalid progress data: {key} must be an array")
    return value


def _parse_hash(value: Any, key: str) -> CommitHash:
    if not isinstance(value, str):
        raise PersistenceError(f"Invalid progress data: {key} must contain strings")
    return CommitHash.create(value)


def _parse_date(value: Any, key: str) -> datetime:
    if not isinstance(value, str):
        raise PersistenceError(f"Invalid progress data: {key} must be a string")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise PersistenceError(f"Invalid progress data: {key} is not an ISO-8601 date") from None


def _parse_analyzed(item: Any, index: int) -> AnalyzedCommit:
    if not isinstance(item, dict):
        raise PersistenceError(f"Invalid progress data: analyzedCommits[{index}] must be an object")

    missing = [key for key in _ANALYZED_FIELDS if key not in item]
    if missing:
        raise PersistenceError(
            f"Invalid progress data: analyzedCommits[{index}] missing {', '.join(missing)}"
        )
    for key in ("hash", "message", "category", "summary", "description"):
        if not isinstance(item[key], str):
            raise PersistenceError(
                f"Invalid progress data: analyzedCommits[{index}].{key} must be a string"
            )

    date = _parse_date(item["date"], f"analyzedCommits[{index}].date")
    year = item["year"]
    if isinstance(year, bool) or not isinstance(year, int) or year != date.year:
        raise PersistenceError(
            f"Invalid progress data: analyzedCommits[{index}].year does not match date"
        )

    return AnalyzedCommit(
        hash=CommitHash.create(item["hash"]),
        message=item["message"],
        date=date,
        analysis=Analysis(
            category=Category.parse(item["category"]),
            summary=item["summary"],
            description=item["description"],
        ),
    )
