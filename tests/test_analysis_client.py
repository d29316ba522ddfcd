"""Tests for the analysis client."""

import pytest

from commit_analyzer.adapters.llm import AnalysisClient, build_prompt
from commit_analyzer.adapters.llm.analysis_client import PROMPT_TAIL
from commit_analyzer.config import RetryConfig
from commit_analyzer.core import Category, ModelProvider
from commit_analyzer.errors import (
    FailureKind,
    FatalQuotaError,
    ParseError,
    ProviderFailure,
    TransientAnalysisError,
)

VALID_RESPONSE = """```json
{"category": "tweak", "summary": "Fix null check", "description": "Guards against a missing user record."}
```"""


class ScriptedProvider(ModelProvider):
    """Provider that replays a list of outputs or failures."""

    name = "scripted"

    def __init__(self, script: list) -> None:
        self.script = list(script)
        self.prompts: list[str] = []

    async def detect_availability(self) -> list[str]:
        return ["scripted"]

    async def execute_raw(self, prompt: str, timeout: float) -> str:
        self.prompts.append(prompt)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def exit_failure() -> ProviderFailure:
    return ProviderFailure(FailureKind.EXIT_STATUS, "exited with status 1", service="Claude")


def test_backoff_delays() -> None:
    """Delays grow by the multiplier and are capped."""
    retry = RetryConfig(initial_delay_ms=5000, max_delay_ms=30000, multiplier=2.0)

    assert retry.delay_before(1) == 0
    assert retry.delay_before(2) == 5000
    assert retry.delay_before(3) == 10000
    assert retry.delay_before(4) == 20000
    assert retry.delay_before(5) == 30000


def test_build_prompt_truncates_only_diff() -> None:
    """Oversized diffs are cut with a single notice, keeping message and instructions."""
    message = "Rewrite storage layer"
    diff = "+" * 150_000

    prompt = build_prompt(message, diff, max_length=100_000)

    assert len(prompt) <= 100_000
    assert prompt.count("[DIFF TRUNCATED - Original length: 150000 characters]") == 1
    assert message in prompt
    assert prompt.endswith(PROMPT_TAIL)


def test_build_prompt_keeps_small_diff() -> None:
    """Diffs within the limit are left untouched."""
    prompt = build_prompt("Fix typo", "-teh\n+the", max_length=100_000)

    assert "DIFF TRUNCATED" not in prompt
    assert "-teh\n+the" in prompt


@pytest.mark.asyncio
async def test_analyze_success_first_attempt() -> None:
    """A valid response is parsed without retrying."""
    provider = ScriptedProvider([VALID_RESPONSE])
    sleep = SleepRecorder()
    client = AnalysisClient(provider, sleep=sleep)

    analysis = await client.analyze("Fix null check", "+if user is None: return")

    assert analysis.category is Category.TWEAK
    assert len(provider.prompts) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_analyze_retries_with_backoff() -> None:
    """Transient failures are retried with growing delays."""
    provider = ScriptedProvider([exit_failure(), exit_failure(), VALID_RESPONSE])
    sleep = SleepRecorder()
    client = AnalysisClient(provider, retry=RetryConfig(max_retries=3), sleep=sleep)

    analysis = await client.analyze("Fix null check", "+if user is None: return")

    assert analysis.summary == "Fix null check"
    assert len(provider.prompts) == 3
    assert sleep.delays == [5.0, 10.0]


@pytest.mark.asyncio
async def test_analyze_daily_quota_is_not_retried() -> None:
    """Daily quota errors stop immediately."""
    quota = ProviderFailure(
        FailureKind.DAILY_QUOTA, "Quota exceeded for requests per day", service="Gemini"
    )
    provider = ScriptedProvider([quota])
    sleep = SleepRecorder()
    client = AnalysisClient(provider, sleep=sleep)

    with pytest.raises(FatalQuotaError) as exc_info:
        await client.analyze("Add feature", "+feature")

    assert exc_info.value.service == "Gemini"
    assert len(provider.prompts) == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_analyze_rate_limit_is_retried() -> None:
    """Per-minute rate limits are retried like other transient failures."""
    rate_limited = ProviderFailure(FailureKind.RATE_LIMIT, "429 Too Many Requests")
    provider = ScriptedProvider([rate_limited, VALID_RESPONSE])
    client = AnalysisClient(provider, sleep=SleepRecorder())

    analysis = await client.analyze("Fix null check", "+x")

    assert analysis.category is Category.TWEAK
    assert len(provider.prompts) == 2


@pytest.mark.asyncio
async def test_analyze_exhausted_parse_failures() -> None:
    """Unparseable output on every attempt raises ParseError."""
    provider = ScriptedProvider(["I cannot tell what this does."])
    client = AnalysisClient(provider, retry=RetryConfig(max_retries=2), sleep=SleepRecorder())

    with pytest.raises(ParseError, match="after 2 attempt"):
        await client.analyze("Something", "+x")

    assert len(provider.prompts) == 2


@pytest.mark.asyncio
async def test_analyze_retry_disabled_single_attempt() -> None:
    """With retries disabled only one attempt is made."""
    provider = ScriptedProvider([exit_failure()])
    sleep = SleepRecorder()
    client = AnalysisClient(provider, retry=RetryConfig(enabled=False), sleep=sleep)

    with pytest.raises(TransientAnalysisError, match="after 1 attempt"):
        await client.analyze("Something", "+x")

    assert len(provider.prompts) == 1
    assert sleep.delays == []
