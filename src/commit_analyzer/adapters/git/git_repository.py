"""Git commit repository backed by GitPython."""

import asyncio
import re
from pathlib import Path
from typing import Optional

import git

from commit_analyzer.core.entities import Commit, CommitHash
from commit_analyzer.core.interfaces import CommitRepository
from commit_analyzer.errors import GitError

_REMOTE_NAME_RE = re.compile(r"/([^/]+?)(?:\.git)?$")


class GitCommitRepository(CommitRepository):
    """Read commits, diffs and author info from a local git repository."""

    def __init__(self, repo_path: Path | str = ".") -> None:
        try:
            self.repo = git.Repo(str(repo_path), search_parent_directories=True)
        except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
            raise GitError(
                f"Not a git repository: {repo_path}",
                remediation="Run commit-analyzer from inside a git working tree",
            ) from e

    async def get_commit(self, commit_hash: CommitHash) -> Commit:
        return await asyncio.to_thread(self._get_commit, commit_hash)

    async def exists(self, commit_hash: CommitHash) -> bool:
        return await asyncio.to_thread(self._exists, commit_hash)

    async def get_current_user_email(self) -> str:
        return await asyncio.to_thread(self._config_value, "user.email")

    async def get_user_authored_commits(
        self,
        author_email: str,
        limit: Optional[int] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
    ) -> list[str]:
        args = [f"--author={author_email}", "--format=%H", "--no-merges"]
        if limit:
            args.append(f"--max-count={limit}")
        if since:
            args.append(f"--since={since}")
        if until:
            args.append(f"--until={until}")

        try:
            output = await asyncio.to_thread(self.repo.git.log, *args)
        except git.GitCommandError as e:
            raise GitError("Failed to list authored commits", details=str(e)) from e

        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_repository_name(self) -> str:
        """Repository name from the origin URL, else the working tree folder."""
        origin = next((remote for remote in self.repo.remotes if remote.name == "origin"), None)
        if origin is not None:
            match = _REMOTE_NAME_RE.search(origin.url)
            if match:
                return match.group(1)

        if self.repo.working_tree_dir:
            return Path(self.repo.working_tree_dir).name
        return "Unknown Project"

    def _get_commit(self, commit_hash: CommitHash) -> Commit:
        try:
            commit = self.repo.commit(commit_hash.value)
            diff = self.repo.git.show(commit.hexsha)
        except (git.GitCommandError, git.BadName, git.BadObject, ValueError) as e:
            raise GitError(f"Failed to get commit info for {commit_hash.short()}", details=str(e)) from e

        return Commit(
            hash=CommitHash.create(commit.hexsha),
            message=commit.summary if isinstance(commit.summary, str) else commit.summary.decode(),
            date=commit.committed_datetime,
            diff=diff,
        )

    def _exists(self, commit_hash: CommitHash) -> bool:
        try:
            self.repo.git.rev_parse("--verify", "--quiet", f"{commit_hash.value}^{{commit}}")
            return True
        except git.GitCommandError:
            return False

    def _config_value(self, key: str) -> str:
        try:
            return self.repo.git.config(key).strip()
        except git.GitCommandError as e:
            raise GitError(f"Failed to read git config '{key}'", details=str(e)) from e
