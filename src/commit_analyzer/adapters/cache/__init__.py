"""Analysis cache adapters."""

from commit_analyzer.adapters.cache.analysis_cache import AnalysisCache

__all__ = ["AnalysisCache"]
