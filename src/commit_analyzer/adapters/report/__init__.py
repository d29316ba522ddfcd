"""Report adapters."""

from commit_analyzer.adapters.report.markdown_report import MarkdownReportGenerator

__all__ = ["MarkdownReportGenerator"]
