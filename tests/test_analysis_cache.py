"""Tests for the analysis cache."""

import os
import time
from pathlib import Path

from commit_analyzer.adapters.cache import AnalysisCache
from commit_analyzer.core import Analysis, Category, CommitHash

HASH = CommitHash("ABCDEF1234")


def make_analysis() -> Analysis:
    return Analysis(
        category="process",
        summary="Add lint job",
        description="Adds a lint job to the CI pipeline.",
    )


def test_set_and_get(tmp_path: Path) -> None:
    """Stored analyses are returned for the same hash."""
    cache = AnalysisCache(tmp_path)

    cache.set(HASH, make_analysis())

    cached = cache.get(HASH)
    assert cached == make_analysis()
    assert cached.category is Category.PROCESS
    assert (tmp_path / "commit-abcdef1234.yaml").exists()


def test_miss_and_disabled(tmp_path: Path) -> None:
    """Missing entries and a disabled cache both return None."""
    cache = AnalysisCache(tmp_path, enabled=False)
    cache.set(HASH, make_analysis())

    assert cache.get(HASH) is None
    assert not list(tmp_path.iterdir())


def test_expired_entry_is_removed(tmp_path: Path) -> None:
    """Entries older than the TTL are dropped on read."""
    cache = AnalysisCache(tmp_path, ttl_days=1)
    cache.set(HASH, make_analysis())
    path = tmp_path / "commit-abcdef1234.yaml"
    old = time.time() - 2 * 24 * 60 * 60
    os.utime(path, (old, old))

    assert cache.get(HASH) is None
    assert not path.exists()


def test_corrupt_entry_is_a_miss(tmp_path: Path) -> None:
    """Unreadable entries are treated as misses and deleted."""
    cache = AnalysisCache(tmp_path)
    path = tmp_path / "commit-abcdef1234.yaml"
    path.write_text("hash: ABCDEF1234\nanalysis: [broken\n", encoding="utf-8")

    assert cache.get(HASH) is None
    assert not path.exists()


def test_clear_and_prune(tmp_path: Path) -> None:
    cache = AnalysisCache(tmp_path, ttl_days=1)
    cache.set(HASH, make_analysis())
    cache.set(CommitHash("1234abcd"), make_analysis())
    old = time.time() - 2 * 24 * 60 * 60
    os.utime(tmp_path / "commit-1234abcd.yaml", (old, old))

    assert cache.prune_expired() == 1
    assert not (tmp_path / "commit-1234abcd.yaml").exists()
    assert cache.clear() == 1
    assert not list(tmp_path.glob("commit-*.yaml"))
