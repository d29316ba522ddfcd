"""Anthropic Messages API provider."""

import httpx

from commit_analyzer.config import Settings
from commit_analyzer.core.interfaces import ModelProvider
from commit_analyzer.errors import FailureKind, ProviderFailure, classify_failure

SYSTEM_PROMPT = (
    "You are an expert software engineer who categorizes git commits. "
    "Answer with the requested JSON block only."
)


class AnthropicAPIProvider(ModelProvider):
    """Call Claude over HTTP instead of through the local CLI.

    One request per call; retries and backoff belong to the AnalysisClient.
    """

    name = "anthropic-api"

    def __init__(self, settings: Settings) -> None:
        self.api_key = settings.anthropic_api_key
        self.model = settings.llm.api_model
        self.max_tokens = settings.llm.api_max_tokens
        self.base_url = "https://api.anthropic.com/v1"

    async def detect_availability(self) -> list[str]:
        return [self.model] if self.api_key else []

    async def execute_raw(self, prompt: str, timeout: float) -> str:
        if not self.api_key:
            raise ProviderFailure(
                FailureKind.SPAWN, "ANTHROPIC_API_KEY is not set", service="Anthropic API"
            )

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.post(
                    f"{self.base_url}/messages",
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": "2023-06-01",
                        "content-type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": self.max_tokens,
                        "system": SYSTEM_PROMPT,
                        "messages": [
                            {"role": "user", "content": prompt}
                        ],
                    },
                )
        except httpx.TimeoutException as e:
            raise ProviderFailure(
                FailureKind.TIMEOUT, f"Anthropic API timed out after {timeout:.0f}s",
                service="Anthropic API",
            ) from e
        except httpx.RequestError as e:
            raise ProviderFailure(
                FailureKind.HTTP, f"Network error calling Anthropic API: {e}",
                service="Anthropic API",
            ) from e

        body = response.text
        if response.status_code == 200:
            try:
                text = response.json()["content"][0]["text"]
            except (ValueError, KeyError, IndexError, TypeError) as e:
                raise ProviderFailure(
                    FailureKind.HTTP,
                    f"Unexpected Anthropic API response: {e}",
                    raw_output=body,
                    service="Anthropic API",
                ) from e
            if not isinstance(text, str):
                raise ProviderFailure(
                    FailureKind.HTTP,
                    "Unexpected Anthropic API response: text is not a string",
                    raw_output=body,
                    service="Anthropic API",
                )
            return text

        if response.status_code == 429:
            kind = classify_failure(body) or FailureKind.RATE_LIMIT
        else:
            kind = classify_failure(body) or FailureKind.HTTP

        raise ProviderFailure(
            kind,
            f"Anthropic API returned {response.status_code}",
            raw_output=body,
            service="Anthropic API",
        )
