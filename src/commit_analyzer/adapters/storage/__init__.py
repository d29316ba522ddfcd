"""Result storage adapters."""

from commit_analyzer.adapters.storage.csv_exporter import CSVExporter, CSVRow, read_commit_list

__all__ = ["CSVExporter", "CSVRow", "read_commit_list"]
