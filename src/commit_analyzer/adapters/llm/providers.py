"""Model providers backed by local command-line tools."""

import asyncio
import logging
import shlex
import shutil
from typing import Optional

from commit_analyzer.adapters.llm.anthropic_api import AnthropicAPIProvider
from commit_analyzer.config import SUPPORTED_PROVIDERS, Settings
from commit_analyzer.core.interfaces import ModelProvider
from commit_analyzer.errors import ConfigError, FailureKind, ProviderFailure, classify_failure

logger = logging.getLogger(__name__)

STDERR_PREVIEW = 1000


async def run_model_command(
    args: list[str],
    prompt: Optional[str],
    timeout: float,
    service: str,
) -> str:
    """Run a model CLI, feeding prompt on stdin, and return its stdout.

    Every failure is raised as ProviderFailure with the combined output attached
    so the caller can classify it.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE if prompt is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ProviderFailure(
            FailureKind.SPAWN, f"Could not start '{args[0]}': {e}", service=service
        ) from e

    stdin_data = prompt.encode("utf-8") if prompt is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(stdin_data), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ProviderFailure(
            FailureKind.TIMEOUT, f"{service} did not respond within {timeout:.0f}s", service=service
        ) from None

    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")

    if process.returncode != 0:
        raw_output = f"{err}\n{out}".strip()
        kind = classify_failure(raw_output) or FailureKind.EXIT_STATUS
        logger.debug(f"    Exit code: {process.returncode}")
        logger.debug(f"    Stderr: {err[:STDERR_PREVIEW]}{'...' if len(err) > STDERR_PREVIEW else ''}")
        raise ProviderFailure(
            kind,
            f"{service} exited with status {process.returncode}: {err.strip()[:200] or out.strip()[:200]}",
            raw_output=raw_output,
            service=service,
        )

    return out


class CLIProvider(ModelProvider):
    """Provider that pipes the prompt into a model CLI."""

    name = "cli"
    executable = ""
    default_command = ""
    commands: tuple[str, ...] = ()

    def __init__(self, model_command: Optional[str] = None) -> None:
        self.model_command = model_command or self.default_command

    async def detect_availability(self) -> list[str]:
        if shutil.which(self.executable) is None:
            return []
        return list(self.commands)

    def build_args(self, prompt: str) -> tuple[list[str], Optional[str]]:
        """Return command arguments and the text to send on stdin."""
        return shlex.split(self.model_command), prompt

    async def execute_raw(self, prompt: str, timeout: float) -> str:
        args, stdin_text = self.build_args(prompt)
        return await run_model_command(args, stdin_text, timeout, service=self.display_name)

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


class ClaudeCLIProvider(CLIProvider):
    name = "claude"
    executable = "claude"
    default_command = "claude --model sonnet"
    commands = ("claude", "claude --model sonnet", "claude --model haiku")


class GeminiCLIProvider(CLIProvider):
    name = "gemini"
    executable = "gemini"
    default_command = "gemini"
    commands = ("gemini",)


class CodexCLIProvider(CLIProvider):
    name = "openai"
    executable = "codex"
    default_command = "codex -q"
    commands = ("codex -q", "codex")

    @property
    def display_name(self) -> str:
        return "OpenAI"

    def build_args(self, prompt: str) -> tuple[list[str], Optional[str]]:
        args = shlex.split(self.model_command)
        # Quiet mode only accepts the prompt as an argument.
        if "-q" in args:
            return [*args, prompt], None
        return args, prompt


def create_provider(settings: Settings, name: Optional[str] = None) -> ModelProvider:
    """Build the provider named in settings (or explicitly)."""
    provider = (name or settings.llm.provider).lower()
    command = settings.llm.model_command

    if provider == "claude":
        return ClaudeCLIProvider(command)
    if provider == "gemini":
        return GeminiCLIProvider(command)
    if provider in ("openai", "gpt", "codex"):
        return CodexCLIProvider(command)
    if provider == "anthropic-api":
        return AnthropicAPIProvider(settings)

    raise ConfigError(
        f"Unknown provider '{provider}'. Supported: {', '.join(SUPPORTED_PROVIDERS)}",
        config_key="llm.provider",
    )


async def detect_available_providers(settings: Settings) -> dict[str, list[str]]:
    """Map each supported provider to the commands usable on this machine."""
    available = {}
    for name in SUPPORTED_PROVIDERS:
        provider = create_provider(settings, name)
        available[name] = await provider.detect_availability()
    return available
