"""Markdown report generator."""

from typing import Sequence

from commit_analyzer.adapters.storage.csv_exporter import CSVRow
from commit_analyzer.core.entities import Category
from commit_analyzer.core.statistics import generate_statistics, group_by_year

SECTION_TITLES = {
    Category.FEATURE: "✨ Features",
    Category.PROCESS: "🔧 Process & Tooling",
    Category.TWEAK: "🩹 Tweaks & Fixes",
}


class MarkdownReportGenerator:
    """Generate a yearly development report from analyzed commit rows."""

    def generate(self, rows: Sequence[CSVRow], project_name: str = "Project") -> str:
        if not rows:
            return f"# {project_name} development report\n\nNo analyzed commits found."

        stats = generate_statistics(rows)

        lines = [
            f"# {project_name} development report",
            "",
            "## Analysis summary",
            "",
            f"**Total commits analyzed:** {stats.total_commits}",
            f"**Time period:** {stats.year_min} - {stats.year_max}",
            "",
            f"- **Features:** {stats.category_breakdown['feature']} commits",
            f"- **Process/Infrastructure:** {stats.category_breakdown['process']} commits",
            f"- **Tweaks/Fixes:** {stats.category_breakdown['tweak']} commits",
            "",
        ]

        for year, year_rows in group_by_year(rows).items():
            lines.extend(self._format_year(year, year_rows))

        return "\n".join(lines)

    def _format_year(self, year: int, rows: list[CSVRow]) -> list[str]:
        features = sum(1 for r in rows if r.category is Category.FEATURE)
        lines = [
            f"## {year}",
            "",
            f"{len(rows)} commits total, including {features} new features.",
            "",
        ]

        for category in (Category.FEATURE, Category.PROCESS, Category.TWEAK):
            entries = [r for r in rows if r.category is category]
            if not entries:
                continue
            lines.extend([f"### {SECTION_TITLES[category]}", ""])
            for entry in entries:
                lines.append(f"- **{entry.summary}**: {entry.description}")
            lines.append("")

        lines.append("---")
        lines.append("")
        return lines
