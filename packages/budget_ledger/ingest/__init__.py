"""CSV ingestion for budget exports."""

from .csv_importer import ParsedCsv, parse_csv

__all__ = ["ParsedCsv", "parse_csv"]
