"""
CSV Parser for security-event logs.

Handles comma-delimited exports with a header row first, such as the
simulated breach datasets (timestamp, server_id, firewall_id, user,
action_type, ..., ml_risk_score, log_source, blockchain_tx, notes).
"""

import io
from pathlib import Path
from typing import Optional

import pandas as pd

from ..errors import EmptyDatasetError, MalformedRowError
from ..schemas import LogRecord, SourceType
from .base_parser import BaseParser


class CSVParser(BaseParser):
    """
    Parser for delimited security-event text.

    Quoted fields and both ``\\r\\n`` and ``\\n`` line endings are accepted
    and blank lines are skipped. A row with fewer values than headers gets
    absent values for the missing trailing columns; a row with more values
    is truncated to the header width. Both cases are recorded as warnings.
    """

    PARSER_NAME = "csv_parser"
    PARSER_VERSION = "1.0.0"
    SOURCE_TYPE = SourceType.CSV_LOG

    def __init__(self, text: str, source_name: str = "<memory>", delimiter: str = ","):
        super().__init__(source_name)
        self.text = text
        self.delimiter = delimiter
        self.df: Optional[pd.DataFrame] = None

    @classmethod
    def from_file(cls, file_path: str | Path, delimiter: str = ",", encoding: str = "utf-8") -> "CSVParser":
        """Read a CSV file and build a parser for its contents."""
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        # Try different encodings if the default fails
        for enc in [encoding, "utf-8", "latin-1"]:
            try:
                text = file_path.read_text(encoding=enc)
                break
            except UnicodeDecodeError:
                continue
        else:
            raise ValueError(f"Could not decode {file_path.name} with any supported encoding")

        return cls(text, source_name=file_path.name, delimiter=delimiter)

    def get_source_hash(self) -> str:
        return self.hash_text(self.text)

    def _truncate_long_row(self, width: int):
        def handler(bad_line: list[str]) -> list[str]:
            self.add_warning(str(MalformedRowError(None, width, len(bad_line))))
            return bad_line[:width]
        return handler

    def _read_frame(self) -> pd.DataFrame:
        header = self.text.lstrip().split("\n", 1)[0]
        width = len(header.split(self.delimiter))

        # Read the header as an ordinary row: with a named header pandas
        # drops surplus values without calling on_bad_lines.
        try:
            raw = pd.read_csv(
                io.StringIO(self.text),
                sep=self.delimiter,
                engine="python",
                header=None,
                dtype=object,
                keep_default_na=False,
                skip_blank_lines=True,
                on_bad_lines=self._truncate_long_row(width),
            )
        except pd.errors.EmptyDataError as exc:
            raise EmptyDatasetError("Dataset is empty: no header row found.") from exc

        df = raw.iloc[1:].reset_index(drop=True)
        df.columns = [str(col).strip() for col in raw.iloc[0]]
        return df

    def parse(self) -> list[LogRecord]:
        """Parse the CSV text into records."""
        self.df = self._read_frame()

        if self.df.empty:
            raise EmptyDatasetError("Dataset has a header row but no data rows.")

        width = len(self.df.columns)
        records = []

        for idx, row in enumerate(self.df.to_dict(orient="records"), 1):
            self.rows_seen += 1

            present = width
            for value in reversed(list(row.values())):
                if value is not None and not pd.isna(value):
                    break
                present -= 1
            if present < width:
                self.add_warning(str(MalformedRowError(idx, width, present)))

            records.append(self.build_record(row, idx))

        return records
