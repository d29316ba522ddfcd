"""CSV export and import of analyzed commits."""

import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path

from commit_analyzer.core.entities import MAX_SUMMARY_LENGTH, AnalyzedCommit, Category
from commit_analyzer.core.interfaces import ResultExporter
from commit_analyzer.errors import PersistenceError, ValidationError

logger = logging.getLogger(__name__)

CSV_HEADERS = ["year", "category", "summary", "description"]
MIN_YEAR = 1900
MAX_YEAR = 2100


@dataclass(frozen=True)
class CSVRow:
    """One analyzed commit as stored in the CSV file."""

    year: int
    category: Category
    summary: str
    description: str


class CSVExporter(ResultExporter):
    """Write analyzed commits as year,category,summary,description rows."""

    def export(self, commits: list[AnalyzedCommit], output_file: str) -> None:
        path = Path(output_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.to_csv(commits), encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Could not write results to {path}", details=str(e)) from e
        logger.debug(f"Exported {len(commits)} commits to {path}")

    def to_csv(self, commits: list[AnalyzedCommit]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer, fieldnames=CSV_HEADERS, quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
        )
        writer.writeheader()
        for commit in commits:
            writer.writerow(commit.to_csv_row())
        return buffer.getvalue()

    def import_rows(self, input_file: str) -> list[CSVRow]:
        """Read rows back, skipping malformed ones with a warning."""
        path = Path(input_file)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Could not read {path}", details=str(e)) from e
        return self.parse_csv(content)

    def parse_csv(self, content: str) -> list[CSVRow]:
        reader = csv.reader(io.StringIO(content))
        records = [record for record in reader if any(field.strip() for field in record)]

        if len(records) < 2:
            raise ValidationError("Invalid CSV format: no data rows found")

        header = [field.strip().lower() for field in records[0]]
        if header != CSV_HEADERS:
            raise ValidationError(
                f"Invalid CSV format. Expected header: {','.join(CSV_HEADERS)}, "
                f"got: {','.join(header)}"
            )

        rows = []
        for number, record in enumerate(records[1:], start=2):
            try:
                rows.append(self._parse_record(record))
            except ValidationError as e:
                logger.warning(f"Warning: Failed to parse CSV row {number}: {e.message}")

        return rows

    def _parse_record(self, record: list[str]) -> CSVRow:
        if len(record) != len(CSV_HEADERS):
            raise ValidationError(
                f"Expected {len(CSV_HEADERS)} fields (year,category,summary,description), "
                f"got {len(record)}"
            )

        year_text, category, summary, description = record
        try:
            year = int(year_text)
        except ValueError:
            raise ValidationError(f"Invalid year: {year_text}") from None
        if year < MIN_YEAR or year > MAX_YEAR:
            raise ValidationError(f"Invalid year: {year_text}")

        if not summary.strip():
            raise ValidationError("Summary cannot be empty")
        if not description.strip():
            raise ValidationError("Description cannot be empty")

        return CSVRow(
            year=year,
            category=Category.parse(category),
            summary=summary.strip()[:MAX_SUMMARY_LENGTH],
            description=description.strip(),
        )


def read_commit_list(path: Path) -> list[str]:
    """Read commit hashes from a file, one per line. Blank and # lines are skipped."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise PersistenceError(f"Could not read commit list {path}", details=str(e)) from e
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]
