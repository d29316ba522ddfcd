"""CLI entry point for commit analyzer."""

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import typer

from commit_analyzer.adapters.cache import AnalysisCache
from commit_analyzer.adapters.git import GitCommitRepository
from commit_analyzer.adapters.llm import (
    AnalysisClient,
    create_provider,
    detect_available_providers,
)
from commit_analyzer.adapters.storage import CSVExporter, read_commit_list
from commit_analyzer.config import SUPPORTED_PROVIDERS, Settings, get_settings
from commit_analyzer.core import BatchResult, JSONProgressTracker, ProgressState
from commit_analyzer.errors import CommitAnalyzerError, GitError, ValidationError
from commit_analyzer.logging_config import setup_logging
from commit_analyzer.use_cases import (
    AnalysisService,
    CommitAnalysisService,
    ReportService,
    ResumeService,
)

app = typer.Typer(
    help="Categorize git commits with an LLM and export the results to CSV.",
    no_args_is_help=True,
)

CONFIG_OPTION = typer.Option(Path("config.yaml"), "--config", help="Path to YAML config")
LOG_FILE_OPTION = typer.Option(None, "--log-file", help="Also write a DEBUG log to this file")


def build_analysis_service(settings: Settings, repository: GitCommitRepository) -> AnalysisService:
    """Wire the orchestrator from settings."""
    provider = create_provider(settings)
    client = AnalysisClient(
        provider,
        retry=settings.retry,
        max_prompt_length=settings.llm.prompt_limit(),
        timeout=settings.llm.timeout,
    )
    cache = AnalysisCache(
        settings.paths.cache_dir,
        ttl_days=settings.cache.ttl_days,
        enabled=settings.cache.enabled,
    )
    if cache.enabled:
        pruned = cache.prune_expired()
        if pruned:
            typer.echo(f"🧹 Pruned {pruned} expired cache entries")
    return AnalysisService(
        commit_analysis=CommitAnalysisService(repository, client, cache),
        progress_repository=JSONProgressTracker(settings.paths.app_data_dir),
        exporter=CSVExporter(),
        batch=settings.batch,
    )


def print_result(result: BatchResult, output_file: str) -> None:
    typer.echo("\n" + "=" * 70)
    if result.halted:
        typer.echo(f"⛔ HALTED: {result.summary_line()}")
        typer.echo("=" * 70)
        if result.halt_reason:
            typer.echo(f"Reason: {result.halt_reason}")
        if result.succeeded:
            typer.echo(f"📊 Partial results ({result.succeeded} commits) saved to {output_file}")
        typer.echo("💾 Progress checkpoint kept.")
        typer.echo("Run `commit-analyzer resume` to continue from the first unprocessed commit.")
        return

    typer.echo(f"✅ DONE: {result.summary_line()}")
    typer.echo("=" * 70)
    for category, count in result.category_breakdown().items():
        typer.echo(f"  • {category}: {count}")
    if result.succeeded:
        typer.echo(f"📊 Results saved to {output_file}")


def repository_name() -> str:
    try:
        return GitCommitRepository().get_repository_name()
    except GitError:
        return "Project"


def fail(error: CommitAnalyzerError) -> NoReturn:
    typer.echo(f"\n❌ {error}", err=True)
    raise typer.Exit(code=1)


@app.command()
def analyze(
    hashes: Optional[list[str]] = typer.Argument(None, help="Commit hashes to analyze"),
    input_file: Optional[Path] = typer.Option(None, "--input-file", "-i", help="File with one commit hash per line"),
    author: Optional[str] = typer.Option(None, "--author", help="Analyze commits by this author email"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum number of commits to pick up"),
    since: Optional[str] = typer.Option(None, "--since", help="Only commits after this date"),
    until: Optional[str] = typer.Option(None, "--until", help="Only commits before this date"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output CSV file"),
    provider: Optional[str] = typer.Option(None, "--provider", help=f"One of: {', '.join(SUPPORTED_PROVIDERS)}"),
    model: Optional[str] = typer.Option(None, "--model", help="Override the model command line"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Commits per concurrent batch (1 = sequential)"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Max concurrent model calls"),
    save_interval: Optional[int] = typer.Option(None, "--save-interval", help="Checkpoint every N commits"),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Attempts per commit"),
    no_retry: bool = typer.Option(False, "--no-retry", help="Make a single attempt per commit"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Ignore cached analyses"),
    continue_on_failure: bool = typer.Option(False, "--continue-on-failure", help="Keep going after a commit fails"),
    resume: bool = typer.Option(False, "--resume", help="Resume the previous session if a checkpoint exists"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_file: Optional[Path] = LOG_FILE_OPTION,
    config: Path = CONFIG_OPTION,
) -> None:
    """Analyze commits and export a categorized CSV."""
    setup_logging(verbose=verbose, log_file=log_file)
    try:
        settings = get_settings(config)
        if provider:
            settings.llm.provider = provider
        if model:
            settings.llm.model_command = model
        if batch_size is not None:
            settings.batch.batch_size = batch_size
        if concurrency is not None:
            settings.batch.concurrency = concurrency
        if save_interval is not None:
            settings.batch.save_interval = save_interval
        if max_retries is not None:
            settings.retry.max_retries = max_retries
        if no_retry:
            settings.retry.enabled = False
        if no_cache:
            settings.cache.enabled = False
        if continue_on_failure:
            settings.batch.halt_on_failure = False
        if output:
            settings.paths.output_file = output
        settings.validate()

        result = asyncio.run(
            async_analyze(settings, hashes or [], input_file, author, limit, since, until, resume)
        )
    except CommitAnalyzerError as e:
        fail(e)

    if result is None:
        return
    print_result(result, str(settings.paths.output_file))
    if result.halted:
        raise typer.Exit(code=1)


async def async_analyze(
    settings: Settings,
    hashes: list[str],
    input_file: Optional[Path],
    author: Optional[str],
    limit: Optional[int],
    since: Optional[str],
    until: Optional[str],
    resume: bool,
) -> Optional[BatchResult]:
    """Async implementation of analyze command."""
    repository = GitCommitRepository()
    service = build_analysis_service(settings, repository)

    if resume and service.progress_repository.has_progress():
        return await ResumeService(service.progress_repository, service).resume()

    commit_hashes = list(hashes)
    if input_file:
        commit_hashes.extend(read_commit_list(input_file))
    if not commit_hashes:
        email = author or await repository.get_current_user_email()
        if not email:
            raise ValidationError(
                "No commits given and no author to select by",
                remediation="Pass commit hashes, --input-file or --author",
            )
        typer.echo(f"🔍 Collecting commits authored by {email}...")
        commit_hashes = await repository.get_user_authored_commits(email, limit, since, until)
    elif limit:
        commit_hashes = commit_hashes[:limit]

    typer.echo(f"🤖 Provider: {settings.llm.provider}")
    typer.echo(f"📋 Commits: {len(commit_hashes)}")
    return await service.run(commit_hashes, str(settings.paths.output_file))


@app.command("resume")
def resume_command(
    yes: bool = typer.Option(False, "--yes", "-y", help="Resume without asking"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    log_file: Optional[Path] = LOG_FILE_OPTION,
    config: Path = CONFIG_OPTION,
) -> None:
    """Continue the previous session from its checkpoint."""
    setup_logging(verbose=verbose, log_file=log_file)

    def confirm(state: ProgressState) -> bool:
        if yes:
            return True
        return typer.confirm("Resume previous session?", default=True)

    try:
        settings = get_settings(config)
        result = asyncio.run(async_resume(settings, confirm))
    except CommitAnalyzerError as e:
        fail(e)

    if result is None:
        return
    print_result(result, str(settings.paths.output_file))
    if result.halted:
        raise typer.Exit(code=1)


async def async_resume(settings: Settings, confirm) -> Optional[BatchResult]:
    service = build_analysis_service(settings, GitCommitRepository())
    return await ResumeService(service.progress_repository, service).resume(confirm=confirm)


@app.command()
def report(
    input_csv: Path = typer.Argument(..., help="CSV produced by analyze"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Markdown report path"),
    project_name: Optional[str] = typer.Option(None, "--name", help="Project name for the title"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Generate a markdown report from an analysis CSV."""
    setup_logging(verbose=verbose)
    try:
        settings = get_settings(config)
        output_path = output or settings.paths.report_file
        stats = ReportService().generate(str(input_csv), output_path, project_name or repository_name())
    except CommitAnalyzerError as e:
        fail(e)

    typer.echo(f"📄 Report with {stats.total_commits} commits saved to {output_path}")


@app.command("clear-progress")
def clear_progress(
    cache: bool = typer.Option(False, "--cache", help="Also delete cached analyses"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Delete the saved checkpoint."""
    setup_logging()
    try:
        settings = get_settings(config)
        tracker = JSONProgressTracker(settings.paths.app_data_dir)
        had_progress = tracker.has_progress()
        tracker.clear_progress()
    except CommitAnalyzerError as e:
        fail(e)

    if had_progress:
        typer.echo("🗑️  Progress checkpoint cleared.")
    else:
        typer.echo("No progress checkpoint to clear.")

    if cache:
        removed = AnalysisCache(settings.paths.cache_dir).clear()
        typer.echo(f"🗑️  Removed {removed} cached analyses.")


@app.command()
def providers(config: Path = CONFIG_OPTION) -> None:
    """List model providers and whether they are usable here."""
    setup_logging()
    try:
        settings = get_settings(config)
        available = asyncio.run(detect_available_providers(settings))
    except CommitAnalyzerError as e:
        fail(e)

    typer.echo("\n🤖 Providers:")
    for name, commands in available.items():
        marker = "✓" if commands else "✗"
        default = " (default)" if name == settings.llm.provider else ""
        detail = ", ".join(commands) if commands else "not available"
        typer.echo(f"  {marker} {name}{default}: {detail}")


if __name__ == "__main__":
    app()
