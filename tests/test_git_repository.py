"""Tests for the git commit repository."""

from pathlib import Path

import git
import pytest

from commit_analyzer.adapters.git import GitCommitRepository
from commit_analyzer.core import CommitHash
from commit_analyzer.errors import GitError


@pytest.fixture
def repo_path(tmp_path: Path) -> Path:
    """Create a repository with two commits."""
    repo = git.Repo.init(tmp_path)
    with repo.config_writer() as config:
        config.set_value("user", "email", "dev@example.com")
        config.set_value("user", "name", "Dev")

    actor = git.Actor("Dev", "dev@example.com")
    app_file = tmp_path / "app.py"

    app_file.write_text("print('hi')\n", encoding="utf-8")
    repo.index.add(["app.py"])
    repo.index.commit("Add app", author=actor, committer=actor)

    app_file.write_text("print('hello')\n", encoding="utf-8")
    repo.index.add(["app.py"])
    repo.index.commit("Update greeting", author=actor, committer=actor)

    return tmp_path


@pytest.mark.asyncio
async def test_authored_commits_and_details(repo_path: Path) -> None:
    """Authored commits are listed newest first with message and diff."""
    repository = GitCommitRepository(repo_path)

    hashes = await repository.get_user_authored_commits("dev@example.com")
    assert len(hashes) == 2

    commit = await repository.get_commit(CommitHash(hashes[0][:10]))

    assert commit.message == "Update greeting"
    assert commit.hash.value == hashes[0]
    assert "+print('hello')" in commit.diff
    assert commit.diff_stats().files_changed == 1


@pytest.mark.asyncio
async def test_exists(repo_path: Path) -> None:
    repository = GitCommitRepository(repo_path)
    hashes = await repository.get_user_authored_commits("dev@example.com", limit=1)

    assert len(hashes) == 1
    assert await repository.exists(CommitHash(hashes[0]))
    assert not await repository.exists(CommitHash("deadbeef"))


@pytest.mark.asyncio
async def test_current_user_and_name(repo_path: Path) -> None:
    repository = GitCommitRepository(repo_path)

    assert await repository.get_current_user_email() == "dev@example.com"
    assert repository.get_repository_name() == repo_path.name


@pytest.mark.asyncio
async def test_missing_commit_raises(repo_path: Path) -> None:
    repository = GitCommitRepository(repo_path)

    with pytest.raises(GitError):
        await repository.get_commit(CommitHash("deadbeef"))


def test_not_a_repository(tmp_path: Path) -> None:
    with pytest.raises(GitError, match="Not a git repository"):
        GitCommitRepository(tmp_path / "missing")
