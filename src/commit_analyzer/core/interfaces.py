"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from typing import Optional

from commit_analyzer.core.entities import AnalyzedCommit, Commit, CommitHash, ProgressState


class ModelProvider(ABC):
    """Capability interface for an external language model."""

    name: str = "model"

    @abstractmethod
    async def detect_availability(self) -> list[str]:
        """Return the model commands usable on this machine (empty if none)."""
        pass

    @abstractmethod
    async def execute_raw(self, prompt: str, timeout: float) -> str:
        """Send prompt to the model and return its raw text output.

        Raises ProviderFailure on timeout, non-zero exit or transport errors.
        """
        pass


class CommitRepository(ABC):
    """Interface for reading commits from version control."""

    @abstractmethod
    async def get_commit(self, commit_hash: CommitHash) -> Commit:
        """Fetch message, date and diff for a commit."""
        pass

    @abstractmethod
    async def exists(self, commit_hash: CommitHash) -> bool:
        """Check whether the commit exists in the repository."""
        pass

    @abstractmethod
    async def get_current_user_email(self) -> str:
        """Return the configured git user email."""
        pass

    @abstractmethod
    async def get_user_authored_commits(
        self,
        author_email: str,
        limit: Optional[int] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
    ) -> list[str]:
        """List commit hashes authored by the given email, newest first."""
        pass


class ProgressRepository(ABC):
    """Interface for checkpoint persistence."""

    @abstractmethod
    def has_progress(self) -> bool:
        pass

    @abstractmethod
    def load_progress(self) -> Optional[ProgressState]:
        pass

    @abstractmethod
    def save_progress(self, state: ProgressState) -> None:
        pass

    @abstractmethod
    def clear_progress(self) -> None:
        pass

    @abstractmethod
    def get_remaining_commits(self, state: ProgressState) -> list[CommitHash]:
        pass

    @abstractmethod
    def format_progress_summary(self, state: ProgressState) -> str:
        pass


class ResultExporter(ABC):
    """Interface for persisting analyzed commits."""

    @abstractmethod
    def export(self, commits: list[AnalyzedCommit], output_file: str) -> None:
        """Write analyzed commits to output_file."""
        pass
