"""Configuration management."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from dotenv import load_dotenv

from commit_analyzer.errors import ConfigError

SUPPORTED_PROVIDERS = ("claude", "gemini", "openai", "anthropic-api")


@dataclass
class LLMConfig:
    """Model provider settings."""
    provider: str = "claude"
    model_command: Optional[str] = None
    timeout: float = 60.0
    max_prompt_length: dict = field(default_factory=lambda: {
        "claude": 100_000,
        "gemini": 100_000,
        "openai": 100_000,
        "anthropic-api": 100_000,
    })
    api_model: str = "claude-sonnet-4-20250514"
    api_max_tokens: int = 1024

    def prompt_limit(self, provider: Optional[str] = None) -> int:
        return int(self.max_prompt_length.get(provider or self.provider, 100_000))


@dataclass
class RetryConfig:
    """Retry and backoff settings. Delays are in milliseconds."""
    max_retries: int = 3
    initial_delay_ms: int = 5000
    max_delay_ms: int = 30000
    multiplier: float = 2.0
    enabled: bool = True

    def delay_before(self, attempt: int) -> int:
        """Delay in ms to wait before the given 1-based attempt (0 for the first)."""
        if attempt <= 1:
            return 0
        delay = self.initial_delay_ms * self.multiplier ** (attempt - 2)
        return int(min(delay, self.max_delay_ms))


@dataclass
class BatchConfig:
    """Batch orchestration settings."""
    save_interval: int = 10
    batch_size: int = 1
    concurrency: int = 3
    halt_on_failure: bool = True


@dataclass
class PathsConfig:
    """Path settings."""
    app_data_dir: Path = Path(".commit-analyzer")
    output_file: Path = Path("commits.csv")
    report_file: Path = Path("report.md")

    @property
    def progress_file(self) -> Path:
        return self.app_data_dir / "progress.json"

    @property
    def cache_dir(self) -> Path:
        return self.app_data_dir / "cache"


@dataclass
class CacheConfig:
    """Analysis cache settings."""
    enabled: bool = True
    ttl_days: int = 30


@dataclass
class Settings:
    """Application settings."""

    # API key (from environment only)
    anthropic_api_key: str = ""

    llm: LLMConfig = field(default_factory=LLMConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def validate(self) -> None:
        """Reject values the pipeline cannot run with."""
        if self.llm.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"Unknown provider '{self.llm.provider}'. "
                f"Supported: {', '.join(SUPPORTED_PROVIDERS)}",
                config_key="llm.provider",
            )
        if self.llm.timeout <= 0:
            raise ConfigError("Timeout must be positive", config_key="llm.timeout")
        if self.retry.max_retries < 1:
            raise ConfigError("max_retries must be at least 1", config_key="retry.max_retries")
        if self.retry.initial_delay_ms < 0 or self.retry.max_delay_ms < 0:
            raise ConfigError("Retry delays cannot be negative", config_key="retry")
        if self.retry.multiplier < 1:
            raise ConfigError("Retry multiplier must be >= 1", config_key="retry.multiplier")
        if self.batch.save_interval < 1:
            raise ConfigError("save_interval must be at least 1", config_key="batch.save_interval")
        if self.batch.batch_size < 1:
            raise ConfigError("batch_size must be at least 1", config_key="batch.batch_size")
        if self.batch.concurrency < 1:
            raise ConfigError("concurrency must be at least 1", config_key="batch.concurrency")


# Environment variable -> (section, field, parser)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "LLM_MAX_RETRIES": ("retry", "max_retries", int),
    "LLM_INITIAL_RETRY_DELAY": ("retry", "initial_delay_ms", int),
    "LLM_MAX_RETRY_DELAY": ("retry", "max_delay_ms", int),
    "LLM_RETRY_MULTIPLIER": ("retry", "multiplier", float),
}

PROMPT_LENGTH_ENV = {
    "CLAUDE_MAX_PROMPT_LENGTH": "claude",
    "GEMINI_MAX_PROMPT_LENGTH": "gemini",
    "OPENAI_MAX_PROMPT_LENGTH": "openai",
}


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a mapping at top level")
    return data


def _apply_section(section: Any, name: str, values: dict) -> None:
    if not isinstance(values, dict):
        raise ConfigError(f"Section '{name}' must be a mapping", config_key=name)

    known = {f.name: f for f in fields(section)}
    for key, value in values.items():
        if key not in known:
            raise ConfigError(f"Unknown setting '{name}.{key}'", config_key=f"{name}.{key}")
        if isinstance(getattr(section, key), Path):
            value = Path(value)
        elif key == "max_prompt_length" and isinstance(value, dict):
            value = {**section.max_prompt_length, **value}
        setattr(section, key, value)


def _parse_env(name: str, raw: str, parser: Callable[[str], Any]) -> Any:
    try:
        return parser(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}", config_key=name) from None


def apply_env_overrides(settings: Settings, environ: Optional[dict] = None) -> None:
    """Apply retry and prompt-length overrides from environment variables."""
    env = os.environ if environ is None else environ

    for name, (section, key, parser) in ENV_OVERRIDES.items():
        if env.get(name):
            setattr(getattr(settings, section), key, _parse_env(name, env[name], parser))

    for name, provider in PROMPT_LENGTH_ENV.items():
        if env.get(name):
            settings.llm.max_prompt_length[provider] = _parse_env(name, env[name], int)


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    load_dotenv()
    config = load_config(config_path)

    settings = Settings(anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""))

    for name in ("llm", "retry", "batch", "paths", "cache"):
        if name in config:
            _apply_section(getattr(settings, name), name, config[name])

    apply_env_overrides(settings)
    settings.validate()

    return settings
