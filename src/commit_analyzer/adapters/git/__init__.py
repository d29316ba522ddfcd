"""Version-control adapters."""

from commit_analyzer.adapters.git.git_repository import GitCommitRepository

__all__ = ["GitCommitRepository"]
