"""LLM adapters: providers and the shared analysis client."""

from commit_analyzer.adapters.llm.analysis_client import AnalysisClient, build_prompt
from commit_analyzer.adapters.llm.anthropic_api import AnthropicAPIProvider
from commit_analyzer.adapters.llm.providers import (
    ClaudeCLIProvider,
    CodexCLIProvider,
    GeminiCLIProvider,
    create_provider,
    detect_available_providers,
)
from commit_analyzer.adapters.llm.response_parser import parse_response

__all__ = [
    "AnalysisClient",
    "build_prompt",
    "parse_response",
    "AnthropicAPIProvider",
    "ClaudeCLIProvider",
    "CodexCLIProvider",
    "GeminiCLIProvider",
    "create_provider",
    "detect_available_providers",
]
