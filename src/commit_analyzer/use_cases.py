"""Business logic use cases."""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from commit_analyzer.adapters.cache import AnalysisCache
from commit_analyzer.adapters.llm import AnalysisClient
from commit_analyzer.adapters.report import MarkdownReportGenerator
from commit_analyzer.adapters.storage import CSVExporter
from commit_analyzer.config import BatchConfig
from commit_analyzer.core import (
    AnalyzedCommit,
    BatchResult,
    BatchStatus,
    CommitHash,
    CommitRepository,
    CommitStatistics,
    ProgressRepository,
    ProgressState,
    ResultExporter,
    generate_statistics,
    run_limited,
)
from commit_analyzer.errors import (
    CommitAnalyzerError,
    FatalQuotaError,
    PersistenceError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class CommitAnalysisService:
    """Fetch a commit and analyze it, consulting the cache first."""

    def __init__(
        self,
        commit_repository: CommitRepository,
        analysis_client: AnalysisClient,
        cache: Optional[AnalysisCache] = None,
    ) -> None:
        self.commit_repository = commit_repository
        self.analysis_client = analysis_client
        self.cache = cache

    async def analyze_commit(self, commit_hash: CommitHash) -> AnalyzedCommit:
        commit = await self.commit_repository.get_commit(commit_hash)

        analysis = self.cache.get(commit.hash) if self.cache else None
        if analysis is not None:
            logger.debug(f"  - Using cached analysis for {commit.short_hash()}")
        else:
            if commit.is_large_change():
                stats = commit.diff_stats()
                logger.debug(
                    f"  - Large change: {stats.changed_lines} lines in {stats.files_changed} files"
                )
            analysis = await self.analysis_client.analyze(commit.message, commit.diff)
            if self.cache:
                self.cache.set(commit.hash, analysis)

        return AnalyzedCommit.from_commit(commit, analysis)

    async def validate_commits(
        self, hashes: list[CommitHash]
    ) -> tuple[list[CommitHash], list[CommitHash]]:
        """Split hashes into those present in the repository and those missing."""
        valid: list[CommitHash] = []
        invalid: list[CommitHash] = []

        for commit_hash in hashes:
            if await self.commit_repository.exists(commit_hash):
                valid.append(commit_hash)
            else:
                invalid.append(commit_hash)

        return valid, invalid


class AnalysisService:
    """Drive a batch of commits through analysis with checkpointing.

    Failure policy is fail-fast: the first commit that still fails after the
    client's own retries stops the run, the partial results are exported and
    the checkpoint is left for ``resume``. With ``halt_on_failure`` disabled
    the run continues past ordinary failures; a daily-quota error always stops
    it.
    """

    def __init__(
        self,
        commit_analysis: CommitAnalysisService,
        progress_repository: ProgressRepository,
        exporter: ResultExporter,
        batch: Optional[BatchConfig] = None,
    ) -> None:
        self.commit_analysis = commit_analysis
        self.progress_repository = progress_repository
        self.exporter = exporter
        self.batch = batch or BatchConfig()
        self.status = BatchStatus.IDLE

    async def run(
        self,
        commit_hashes: list[str],
        output_file: str,
        previous_state: Optional[ProgressState] = None,
    ) -> BatchResult:
        """Analyze commits and export the results to output_file.

        Raises:
            ValidationError: nothing valid to analyze.
            PersistenceError: checkpoint or export could not be written.
        """
        self.status = BatchStatus.VALIDATING
        work, invalid = await self._validate(commit_hashes, resuming=previous_state is not None)

        if previous_state is not None:
            state = replace(
                previous_state,
                processed_commits=list(previous_state.processed_commits),
                analyzed_commits=list(previous_state.analyzed_commits),
                output_file=output_file,
            )
            # Commits that vanished since the checkpoint count as done.
            known = {h.value for h in state.total_commits}
            state.processed_commits.extend(
                CommitHash.create(raw) for raw in invalid if raw in known
            )
        else:
            state = ProgressState(
                total_commits=list(work),
                processed_commits=[],
                analyzed_commits=[],
                last_processed_index=-1,
                start_time=datetime.now(timezone.utc),
                output_file=output_file,
            )

        result = BatchResult(status=BatchStatus.PROCESSING, invalid_hashes=invalid)
        self.status = BatchStatus.PROCESSING
        logger.info(f"Analyzing {len(work)} commits...")

        if self.batch.batch_size == 1:
            await self._process_sequential(work, state, result)
        else:
            await self._process_batches(work, state, result)

        result.analyzed_commits = list(state.analyzed_commits)
        result.total_processed = len(state.processed_commits)

        if result.halted:
            self.status = BatchStatus.HALTED
            self._export(state)
            return result

        self._export(state)
        self.progress_repository.clear_progress()
        result.status = BatchStatus.COMPLETED
        self.status = BatchStatus.COMPLETED
        logger.info(f"✓ Analysis complete: {result.summary_line()}")
        return result

    async def _validate(
        self, commit_hashes: list[str], resuming: bool = False
    ) -> tuple[list[CommitHash], list[str]]:
        if not commit_hashes:
            raise ValidationError("No commits provided for analysis")

        parsed: list[CommitHash] = []
        invalid: list[str] = []
        seen: set[str] = set()

        for raw in commit_hashes:
            try:
                commit_hash = CommitHash.create(raw)
            except ValidationError as e:
                invalid.append(str(raw))
                logger.warning(f"⚠️  Skipping malformed commit hash {raw!r}: {e.message}")
                continue
            if commit_hash.value in seen:
                continue
            seen.add(commit_hash.value)
            parsed.append(commit_hash)

        valid, missing = await self.commit_analysis.validate_commits(parsed)
        if missing:
            logger.warning(f"⚠️  Warning: {len(missing)} commit hashes not found in repository")
            for commit_hash in missing:
                logger.warning(f"  - {commit_hash.short()}")
            invalid.extend(h.value for h in missing)

        # A resumed run whose remaining commits all vanished still completes.
        if not valid and not resuming:
            raise ValidationError("No valid commits found for analysis")

        return valid, invalid

    async def _process_sequential(
        self, work: list[CommitHash], state: ProgressState, result: BatchResult
    ) -> None:
        total = len(state.total_commits)

        for index, commit_hash in enumerate(work, 1):
            position = len(state.processed_commits) + 1
            logger.debug(f"[{position}/{total}] Processing: {commit_hash.short()}")

            try:
                analyzed = await self.commit_analysis.analyze_commit(commit_hash)
            except CommitAnalyzerError as e:
                state.processed_commits.append(commit_hash)
                self._record_failure(result, commit_hash, position, total, e)
                self._checkpoint(state)
                logger.info("💾 Progress saved after failure")
                if self._should_halt(e):
                    self._halt(result, position, e)
                    return
                continue

            state.analyzed_commits.append(analyzed)
            state.processed_commits.append(commit_hash)
            self._log_success(analyzed, position, total)

            if len(state.processed_commits) % self.batch.save_interval == 0 or index == len(work):
                self._checkpoint(state)
                logger.debug(f"💾 Progress saved ({len(state.processed_commits)}/{total})")

    async def _process_batches(
        self, work: list[CommitHash], state: ProgressState, result: BatchResult
    ) -> None:
        total = len(state.total_commits)
        batch_size = self.batch.batch_size

        for start in range(0, len(work), batch_size):
            chunk = work[start:start + batch_size]
            first = len(state.processed_commits) + 1
            logger.debug(f"Processing batch {first}-{first + len(chunk) - 1}/{total} ({len(chunk)} commits)")

            outcomes = await run_limited(chunk, self._analyze_safely, self.batch.concurrency)

            processed_before = len(state.processed_commits)
            failures: list[tuple[int, CommitAnalyzerError]] = []

            for commit_hash, analyzed, error in outcomes:
                state.processed_commits.append(commit_hash)
                position = len(state.processed_commits)
                if error is not None:
                    self._record_failure(result, commit_hash, position, total, error)
                    failures.append((position, error))
                else:
                    state.analyzed_commits.append(analyzed)
                    self._log_success(analyzed, position, total)

            processed_after = len(state.processed_commits)
            interval = self.batch.save_interval
            crossed_interval = processed_after // interval > processed_before // interval
            is_last = start + batch_size >= len(work)

            if failures or crossed_interval or is_last:
                self._checkpoint(state)
                logger.debug(f"💾 Progress saved ({processed_after}/{total})")

            halting = [(pos, err) for pos, err in failures if self._should_halt(err)]
            if halting:
                position, error = halting[0]
                self._halt(result, position, error)
                return

    async def _analyze_safely(
        self, commit_hash: CommitHash
    ) -> tuple[CommitHash, Optional[AnalyzedCommit], Optional[CommitAnalyzerError]]:
        try:
            return commit_hash, await self.commit_analysis.analyze_commit(commit_hash), None
        except CommitAnalyzerError as e:
            return commit_hash, None, e

    def _should_halt(self, error: CommitAnalyzerError) -> bool:
        return self.batch.halt_on_failure or isinstance(error, FatalQuotaError)

    def _record_failure(
        self,
        result: BatchResult,
        commit_hash: CommitHash,
        position: int,
        total: int,
        error: CommitAnalyzerError,
    ) -> None:
        result.failed_commits += 1
        logger.error(f"❌ [{position}/{total}] {commit_hash.short()} failed: {error.message}")
        if error.details:
            logger.debug(f"    Detailed error: {error.details}")

    def _halt(self, result: BatchResult, position: int, error: CommitAnalyzerError) -> None:
        result.status = BatchStatus.HALTED
        result.halted_at = position
        result.halt_reason = error.message
        if isinstance(error, FatalQuotaError):
            logger.error("⛔ Stopping: daily quota exceeded")
        else:
            logger.error("⛔ Stopping due to failure after all retry attempts")

    def _log_success(self, analyzed: AnalyzedCommit, position: int, total: int) -> None:
        logger.info(
            f"✓ [{position}/{total}] {analyzed.short_hash()} analyzed as "
            f"\"{analyzed.category.value}\": {analyzed.analysis.summary}"
        )

    def _checkpoint(self, state: ProgressState) -> None:
        self.status = BatchStatus.CHECKPOINTING
        state.last_processed_index = len(state.processed_commits) - 1
        snapshot = replace(
            state,
            total_commits=list(state.total_commits),
            processed_commits=list(state.processed_commits),
            analyzed_commits=list(state.analyzed_commits),
        )
        self.progress_repository.save_progress(snapshot)
        self.status = BatchStatus.PROCESSING

    def _export(self, state: ProgressState) -> None:
        if not state.analyzed_commits:
            logger.warning("⚠️  No commits were successfully analyzed; nothing exported")
            return
        self.exporter.export(state.analyzed_commits, state.output_file)
        logger.info(f"📊 Results exported to {state.output_file}")


class ResumeService:
    """Continue an interrupted batch from its checkpoint."""

    def __init__(
        self,
        progress_repository: ProgressRepository,
        analysis_service: AnalysisService,
    ) -> None:
        self.progress_repository = progress_repository
        self.analysis_service = analysis_service

    async def resume(
        self,
        confirm: Optional[Callable[[ProgressState], bool]] = None,
    ) -> Optional[BatchResult]:
        """Resume from the checkpoint.

        Returns None when there is nothing to resume or the user declines
        (declining clears the checkpoint).
        """
        if not self.progress_repository.has_progress():
            logger.info("No previous checkpoint found.")
            return None

        state = self.progress_repository.load_progress()
        if state is None:
            logger.error("Failed to load progress state.")
            return None

        logger.info("Found previous session checkpoint")
        logger.info(self.progress_repository.format_progress_summary(state))

        if confirm is not None and not confirm(state):
            self.progress_repository.clear_progress()
            logger.info("Checkpoint cleared. Starting fresh.")
            return None

        remaining = self.progress_repository.get_remaining_commits(state)
        if not remaining:
            logger.info("✓ All commits have already been processed!")
            if state.analyzed_commits:
                self.analysis_service.exporter.export(state.analyzed_commits, state.output_file)
            self.progress_repository.clear_progress()
            return BatchResult(
                status=BatchStatus.COMPLETED,
                analyzed_commits=list(state.analyzed_commits),
                total_processed=len(state.processed_commits),
            )

        logger.info(
            f"Resuming with {len(remaining)} remaining commits "
            f"({len(state.processed_commits)}/{len(state.total_commits)} already processed)"
        )
        return await self.analysis_service.run(
            [h.value for h in remaining],
            state.output_file,
            previous_state=state,
        )


class ReportService:
    """Build a markdown report from an exported CSV file."""

    def __init__(
        self,
        exporter: Optional[CSVExporter] = None,
        generator: Optional[MarkdownReportGenerator] = None,
    ) -> None:
        self.exporter = exporter or CSVExporter()
        self.generator = generator or MarkdownReportGenerator()

    def generate(self, input_csv: str, output_path: Path, project_name: str = "Project") -> CommitStatistics:
        logger.info(f"Reading CSV data from {input_csv}...")
        rows = self.exporter.import_rows(input_csv)
        if not rows:
            raise ValidationError("No commits found for report generation")

        stats = generate_statistics(rows)
        logger.info(
            f"Found {stats.total_commits} commits spanning {stats.year_min}-{stats.year_max}"
        )

        report = self.generator.generate(rows, project_name)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Could not write report to {output_path}", details=str(e)) from e

        logger.info(f"✓ Report generated: {output_path}")
        return stats
