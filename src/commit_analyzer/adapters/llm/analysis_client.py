"""Commit analysis client with retry, backoff and response parsing."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from commit_analyzer.adapters.llm.response_parser import parse_response
from commit_analyzer.config import RetryConfig
from commit_analyzer.core.entities import Analysis
from commit_analyzer.core.interfaces import ModelProvider
from commit_analyzer.errors import (
    AnalysisError,
    FailureKind,
    FatalQuotaError,
    ParseError,
    ProviderFailure,
    TransientAnalysisError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_PROMPT_LENGTH = 100_000
RESPONSE_PREVIEW_LENGTH = 2000

DIFF_HEADER = "COMMIT DIFF:\n"
TRUNCATION_NOTICE = "\n\n[DIFF TRUNCATED - Original length: {length} characters]"

PROMPT_HEAD = """Analyze this git commit and provide a categorization.

COMMIT MESSAGE:
{message}

"""

PROMPT_TAIL = """

Based on the commit message and code changes, categorize this commit as one of:
- "tweak": Minor adjustments, bug fixes, small improvements
- "feature": New functionality, major additions
- "process": Build system, CI/CD, tooling, configuration changes

IMPORTANT: You must respond with ONLY a valid JSON object in this exact format:

```json
{
  "category": "tweak|feature|process",
  "summary": "One-line description (max 80 characters)",
  "description": "Detailed explanation in 2-3 sentences"
}
```

Do not include any other text outside the JSON code block."""


def build_prompt(message: str, diff: str, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """Build the categorization prompt, cutting the diff to fit max_length.

    Only the diff is ever shortened; the commit message and the trailing
    instructions are always kept whole.
    """
    head = PROMPT_HEAD.format(message=message) + DIFF_HEADER
    prompt = head + diff + PROMPT_TAIL
    if len(prompt) <= max_length:
        return prompt

    notice = TRUNCATION_NOTICE.format(length=len(diff))
    available = max(0, max_length - len(head) - len(PROMPT_TAIL) - len(notice))
    return head + diff[:available] + notice + PROMPT_TAIL


def rate_limit_message(failure: ProviderFailure) -> str:
    service = failure.service or "LLM service"
    if failure.kind is FailureKind.DAILY_QUOTA:
        return (
            f"⚠️  {service} daily quota exceeded. Retrying will not help until the quota "
            "resets. Consider switching provider or resuming later."
        )
    return f"⚠️  {service} rate limit exceeded. Waiting before retrying."


class AnalysisClient:
    """Turn a commit message and diff into an Analysis using a model provider."""

    def __init__(
        self,
        provider: ModelProvider,
        retry: Optional[RetryConfig] = None,
        max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.retry = retry or RetryConfig()
        self.max_prompt_length = max_prompt_length
        self.timeout = timeout
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retry.max_retries if self.retry.enabled else 1

    async def analyze(self, message: str, diff: str) -> Analysis:
        """Analyze one commit, retrying transient and parse failures.

        Raises:
            FatalQuotaError: daily quota hit; never retried.
            ParseError: last attempt got an unparseable response.
            TransientAnalysisError: attempts exhausted on process/network errors.
        """
        prompt = build_prompt(message, diff, self.max_prompt_length)
        logger.debug(f"  - Prompt length: {len(prompt)} characters")

        last_error: Optional[AnalysisError] = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay_ms = self.retry.delay_before(attempt)
                logger.debug(
                    f"  - Attempt {attempt - 1}/{self.max_attempts} failed. "
                    f"Retrying in {delay_ms / 1000:g}s..."
                )
                await self._sleep(delay_ms / 1000)

            try:
                output = await self.provider.execute_raw(prompt, self.timeout)
            except ProviderFailure as e:
                if e.is_fatal:
                    logger.warning(f"  - {rate_limit_message(e)}")
                    raise FatalQuotaError(e.message, service=e.service) from e
                if e.kind is FailureKind.RATE_LIMIT:
                    logger.warning(f"  - {rate_limit_message(e)}")
                else:
                    logger.debug(f"  - Attempt {attempt} error: {e.message}")
                last_error = e
                continue

            try:
                return parse_response(output)
            except ParseError as e:
                logger.debug(f"  - Failed to parse response: {e.message}")
                logger.debug(f"  - Raw LLM response (first {RESPONSE_PREVIEW_LENGTH} chars): "
                             f"{output[:RESPONSE_PREVIEW_LENGTH]}")
                if len(output) > RESPONSE_PREVIEW_LENGTH:
                    logger.debug(f"  - Response truncated (total length: {len(output)} chars)")
                last_error = e

        reason = last_error.message if last_error else "Unknown error"
        message_text = f"Failed to analyze commit after {self.max_attempts} attempt(s): {reason}"
        if isinstance(last_error, ParseError):
            raise ParseError(message_text, last_error.raw_response) from last_error
        raise TransientAnalysisError(message_text) from last_error

