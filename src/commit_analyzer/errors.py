"""Exception types for commit analysis."""

from enum import Enum
from typing import Optional


class CommitAnalyzerError(Exception):
    """Base exception for all commit analyzer errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        remediation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.remediation = remediation

    def __str__(self) -> str:
        parts = [self.message]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.remediation:
            parts.append(f"To fix: {self.remediation}")
        return "\n".join(parts)


class ConfigError(CommitAnalyzerError):
    """Invalid configuration value."""

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        self.config_key = config_key
        remediation = None
        if config_key:
            remediation = f"Check '{config_key}' in config.yaml or the environment"
        super().__init__(message, remediation=remediation)


class ValidationError(CommitAnalyzerError, ValueError):
    """Malformed input: bad commit hash, empty batch, invalid analysis fields."""


class PersistenceError(CommitAnalyzerError):
    """Checkpoint or export I/O failure."""


class GitError(CommitAnalyzerError):
    """Version-control access failure."""


class AnalysisError(CommitAnalyzerError):
    """Base for failures of a single commit analysis."""


class TransientAnalysisError(AnalysisError):
    """Failure that may succeed on a later attempt."""


class FatalQuotaError(AnalysisError):
    """Daily quota exhausted. Retrying within this run cannot help."""

    def __init__(self, message: str, service: Optional[str] = None) -> None:
        self.service = service
        super().__init__(
            message,
            remediation=(
                "Wait for the quota to reset, switch provider with --provider, "
                "then run 'commit-analyzer resume'"
            ),
        )


class ParseError(AnalysisError):
    """Model responded but no valid analysis could be extracted."""

    def __init__(self, message: str, raw_response: str = "") -> None:
        self.raw_response = raw_response
        super().__init__(message)


class FailureKind(str, Enum):
    """What went wrong at the provider boundary."""

    TIMEOUT = "timeout"
    EXIT_STATUS = "exit_status"
    SPAWN = "spawn"
    HTTP = "http"
    RATE_LIMIT = "rate_limit"
    DAILY_QUOTA = "daily_quota"


class ProviderFailure(TransientAnalysisError):
    """Structured failure raised where a model process or API is invoked."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        raw_output: str = "",
        service: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.raw_output = raw_output
        self.service = service
        super().__init__(message)

    @property
    def is_fatal(self) -> bool:
        return self.kind is FailureKind.DAILY_QUOTA


def classify_failure(text: str) -> Optional[FailureKind]:
    """Detect quota and rate-limit signatures in model CLI or API output.

    Returns None when the text carries no rate-limit signature, so the caller
    keeps whatever kind it already assigned.
    """
    lowered = text.lower()

    quota_exceeded = (
        "quota exceeded" in lowered
        or "resource_exhausted" in lowered
        or "exceeded your current quota" in lowered
    )
    if quota_exceeded and ("per day" in lowered or "daily" in lowered):
        return FailureKind.DAILY_QUOTA
    if "daily limit" in lowered or "daily quota" in lowered:
        return FailureKind.DAILY_QUOTA

    if (
        quota_exceeded
        or "429" in lowered
        or "too many requests" in lowered
        or "rate limit" in lowered
        or "rate_limit" in lowered
    ):
        return FailureKind.RATE_LIMIT

    return None
