"""
Normalizer: Orchestrates parsing and produces IngestedBatch objects.

This module ties the parsers together and provides a clean interface
for turning CSV text, row mappings or files into normalized records.
"""

import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Optional, Type

from .errors import EmptyDatasetError
from .schemas import IngestedBatch
from .parsers.base_parser import BaseParser
from .parsers.csv_parser import CSVParser
from .parsers.row_parser import RowParser

DEFAULT_PREVIEW_LIMIT = int(os.getenv("BREACH_PREVIEW_LIMIT", "20"))


class Normalizer:
    """
    Main entry point for the ingestion pipeline.

    Produces IngestedBatch objects that are guaranteed to hold at least one
    record; an empty dataset raises EmptyDatasetError so that nothing
    downstream ever aggregates over zero rows.

    Args:
        delimiter: Column delimiter for CSV input
    """

    # Map file extensions to parser classes
    PARSER_MAP: dict[str, Type[BaseParser]] = {
        '.csv': CSVParser,
        '.json': RowParser,
    }

    def __init__(self, delimiter: str = ","):
        self.delimiter = delimiter

    def get_parser(self, file_path: str | Path) -> BaseParser:
        """
        Get the appropriate parser for a file based on its extension.

        Raises:
            ValueError: If no parser is available for the file type
            FileNotFoundError: If the file does not exist
        """
        file_path = Path(file_path)
        extension = file_path.suffix.lower()

        if extension not in self.PARSER_MAP:
            supported = ', '.join(self.PARSER_MAP.keys())
            raise ValueError(
                f"No parser available for '{extension}' files. "
                f"Supported formats: {supported}"
            )

        if extension == '.csv':
            return CSVParser.from_file(file_path, delimiter=self.delimiter)
        return RowParser.from_file(file_path)

    def _run(self, parser: BaseParser) -> IngestedBatch:
        records, metadata = parser.run()

        if not records:
            raise EmptyDatasetError()

        return IngestedBatch(
            source_type=parser.SOURCE_TYPE,
            source_name=parser.source_name,
            source_hash=parser.get_source_hash(),
            records=tuple(records),
            metadata=metadata,
        )

    def ingest(self, file_path: str | Path) -> IngestedBatch:
        """
        Ingest a CSV or JSON file.

        Args:
            file_path: Path to the file to ingest

        Returns:
            IngestedBatch containing all normalized records
        """
        return self._run(self.get_parser(file_path))

    def ingest_text(self, text: str, source_name: str = "<memory>") -> IngestedBatch:
        """Ingest delimited text with a header row."""
        return self._run(CSVParser(text, source_name=source_name, delimiter=self.delimiter))

    def ingest_rows(self, rows: Iterable[Any], source_name: str = "<memory>") -> IngestedBatch:
        """Ingest a sequence of row mappings."""
        return self._run(RowParser(rows, source_name=source_name))


def ingest_file(file_path: str | Path) -> IngestedBatch:
    """
    Convenience function to ingest a single file.

    Example:
        >>> batch = ingest_file("faulty_logs_100.csv")
        >>> print(batch.record_count)
    """
    return Normalizer().ingest(file_path)


def ingest_csv_text(text: str, source_name: str = "<memory>") -> IngestedBatch:
    """Convenience function to ingest CSV text."""
    return Normalizer().ingest_text(text, source_name=source_name)


def ingest_rows(rows: Iterable[Any], source_name: str = "<memory>") -> IngestedBatch:
    """Convenience function to ingest row mappings."""
    return Normalizer().ingest_rows(rows, source_name=source_name)


def preview_rows(batch: IngestedBatch, limit: Optional[int] = DEFAULT_PREVIEW_LIMIT) -> dict:
    """
    Quick peek at a dataset: the total row count and the first rows.

    Args:
        batch: Normalized dataset
        limit: Number of rows to include (capped at the dataset size)
    """
    limit = batch.record_count if limit is None else min(max(limit, 0), batch.record_count)
    return {
        "source": batch.source_name,
        "total_rows": batch.record_count,
        "preview": batch.preview(limit),
    }
