"""Cache of finished analyses, one YAML artifact per commit."""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from commit_analyzer.core.entities import Analysis, Category, CommitHash
from commit_analyzer.errors import ValidationError

logger = logging.getLogger(__name__)

CACHE_FILE_PREFIX = "commit-"
DEFAULT_TTL_DAYS = 30


class AnalysisCache:
    """Store analyses so re-runs do not query the model again."""

    def __init__(self, cache_dir: Path, ttl_days: int = DEFAULT_TTL_DAYS, enabled: bool = True) -> None:
        self.cache_dir = cache_dir
        self.ttl_seconds = ttl_days * 24 * 60 * 60
        self.enabled = enabled

    def get(self, commit_hash: CommitHash) -> Optional[Analysis]:
        """Return the cached analysis, or None on miss, expiry or corruption."""
        if not self.enabled:
            return None

        path = self._get_artifact_path(commit_hash)
        if not path.exists():
            return None

        if self._is_expired(path):
            path.unlink(missing_ok=True)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            if not isinstance(data, dict) or data.get("hash") != commit_hash.value:
                raise ValidationError("Cache entry does not match commit hash")
            entry = data["analysis"]
            return Analysis(
                category=Category.parse(entry["category"]),
                summary=entry["summary"],
                description=entry["description"],
            )
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValidationError) as e:
            logger.debug(f"Dropping unreadable cache entry {path.name}: {e}")
            path.unlink(missing_ok=True)
            return None

    def set(self, commit_hash: CommitHash, analysis: Analysis) -> None:
        if not self.enabled:
            return

        artifact = {
            "hash": commit_hash.value,
            "cached_at": datetime.now().isoformat(),
            "analysis": {
                "category": analysis.category.value,
                "summary": analysis.summary,
                "description": analysis.description,
            },
        }

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self._get_artifact_path(commit_hash), "w", encoding="utf-8") as f:
                yaml.safe_dump(artifact, f, allow_unicode=True, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.warning(f"⚠️  Could not cache analysis for {commit_hash.short()}: {e}")

    def clear(self) -> int:
        """Remove every cache entry.

        Returns:
            Number of entries removed
        """
        removed = 0
        for path in self._artifacts():
            path.unlink(missing_ok=True)
            removed += 1
        return removed

    def prune_expired(self) -> int:
        """Remove entries older than the TTL.

        Returns:
            Number of entries removed
        """
        removed = 0
        for path in self._artifacts():
            if self._is_expired(path):
                path.unlink(missing_ok=True)
                removed += 1
        return removed

    def _artifacts(self) -> list[Path]:
        if not self.cache_dir.exists():
            return []
        return sorted(self.cache_dir.glob(f"{CACHE_FILE_PREFIX}*.yaml"))

    def _is_expired(self, path: Path) -> bool:
        return time.time() - path.stat().st_mtime > self.ttl_seconds

    def _get_artifact_path(self, commit_hash: CommitHash) -> Path:
        return self.cache_dir / f"{CACHE_FILE_PREFIX}{commit_hash.value.lower()}.yaml"
