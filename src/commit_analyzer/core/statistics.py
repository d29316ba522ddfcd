"""Statistics over analyzed commits."""

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Iterable, Protocol

from commit_analyzer.core.entities import Category
from commit_analyzer.errors import ValidationError


class CategorizedRow(Protocol):
    year: int
    category: Category


@dataclass
class CommitStatistics:
    """Aggregate counts for a set of analyzed commits."""

    total_commits: int
    year_min: int
    year_max: int
    category_breakdown: dict[str, int]
    yearly_breakdown: dict[int, int]


def generate_statistics(rows: Iterable[CategorizedRow]) -> CommitStatistics:
    rows = list(rows)
    if not rows:
        raise ValidationError("Cannot generate statistics from empty commit list")

    categories = Counter(row.category.value for row in rows)
    years = Counter(row.year for row in rows)

    return CommitStatistics(
        total_commits=len(rows),
        year_min=min(years),
        year_max=max(years),
        category_breakdown={c.value: categories.get(c.value, 0) for c in Category},
        yearly_breakdown=dict(sorted(years.items())),
    )


def group_by_year(rows: Iterable[CategorizedRow]) -> dict[int, list]:
    """Group rows by year, newest first."""
    grouped: dict[int, list] = defaultdict(list)
    for row in rows:
        grouped[row.year].append(row)
    return dict(sorted(grouped.items(), reverse=True))
