"""
Parser for rows that arrive already split into key/value mappings,
e.g. the ``rows`` array of a JSON request body or a JSON export.
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from ..schemas import LogRecord, SourceType
from .base_parser import BaseParser


class RowParser(BaseParser):
    """
    Parser for pre-parsed, loosely-typed rows.

    Keys are trimmed, unrecognized keys are ignored and values of any type
    are stringified before normalization. Entries that are not mappings
    are reported as errors and skipped.
    """

    PARSER_NAME = "row_parser"
    PARSER_VERSION = "1.0.0"
    SOURCE_TYPE = SourceType.ROWS

    def __init__(self, rows: Iterable[Any], source_name: str = "<memory>"):
        super().__init__(source_name)
        self.rows = list(rows)
        self._raw_text: str | None = None

    @classmethod
    def from_file(cls, file_path: str | Path) -> "RowParser":
        """
        Load rows from a JSON file holding a list of rows or ``{"rows": [...]}``.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        text = file_path.read_text(encoding="utf-8")
        data = json.loads(text)
        if isinstance(data, Mapping):
            data = data.get("rows", [])
        if not isinstance(data, list):
            raise ValueError(f"{file_path.name}: expected a list of rows or an object with 'rows'")

        parser = cls(data, source_name=file_path.name)
        parser.SOURCE_TYPE = SourceType.JSON_ROWS
        parser._raw_text = text
        return parser

    def get_source_hash(self) -> str | None:
        if self._raw_text is None:
            return None
        return self.hash_text(self._raw_text)

    def parse(self) -> list[LogRecord]:
        records = []

        for idx, row in enumerate(self.rows, 1):
            self.rows_seen += 1
            if not isinstance(row, Mapping):
                self.add_error(f"Row {idx}: expected a mapping, got {type(row).__name__}")
                continue

            cleaned = {str(key).strip(): value for key, value in row.items()}
            records.append(self.build_record(cleaned, idx))

        return records
