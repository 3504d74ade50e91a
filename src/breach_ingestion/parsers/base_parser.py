"""
Base parser class that all input parsers inherit from.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional
import hashlib
import math
import time

import pandas as pd

from ..errors import UnparsableNumericError, UnparsableTimestampError
from ..schemas import LogRecord, ParserMetadata, SourceType, RECOGNIZED_COLUMNS


class BaseParser(ABC):
    """
    Abstract base class for all record parsers.

    Each parser must implement the `parse` method to turn its input into
    LogRecord objects. Per-row problems are recovered from and collected
    as warnings; they never abort the batch.
    """

    # Override in subclasses
    PARSER_NAME: str = "base"
    PARSER_VERSION: str = "1.0.0"
    SOURCE_TYPE: SourceType = SourceType.UNKNOWN

    # pandas resolves these against the wall clock
    CLOCK_RELATIVE_TIMESTAMPS = frozenset({"now", "today"})

    def __init__(self, source_name: str = "<memory>"):
        """
        Initialize parser.

        Args:
            source_name: File name or label used in metadata
        """
        self.source_name = source_name
        self.rows_seen = 0
        self.warnings: list[str] = []
        self.errors: list[str] = []

    def get_source_hash(self) -> Optional[str]:
        """SHA-256 of the raw input, for parsers that have raw text."""
        return None

    @staticmethod
    def hash_text(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def add_warning(self, message: str) -> None:
        """Add a warning message during parsing."""
        self.warnings.append(message)

    def add_error(self, message: str) -> None:
        """Add a non-fatal error message during parsing."""
        self.errors.append(message)

    @staticmethod
    def _clean_text(value: Any) -> Optional[str]:
        """Trim a cell; empty, whitespace-only and NA cells become None."""
        if value is None:
            return None
        if not isinstance(value, str):
            try:
                if pd.isna(value):
                    return None
            except (TypeError, ValueError):
                pass
        text = str(value).strip()
        return text or None

    def _parse_risk(self, value: Optional[str], row_number: Optional[int]) -> float:
        """Parse ml_risk_score, falling back to 0.0."""
        if value is None:
            return 0.0
        try:
            score = float(value)
        except (TypeError, ValueError):
            score = math.nan
        if not math.isfinite(score):
            self.add_warning(str(UnparsableNumericError(row_number, "ml_risk_score", value)))
            return 0.0
        return score

    def _parse_timestamp(self, value: Optional[str], row_number: Optional[int]) -> Optional[datetime]:
        """Parse timestamp text into a UTC datetime, or None."""
        if value is None:
            return None
        if value.strip().lower() in self.CLOCK_RELATIVE_TIMESTAMPS:
            parsed = pd.NaT
        else:
            try:
                parsed = pd.to_datetime(value, utc=True)
            except (ValueError, TypeError, OverflowError):
                parsed = pd.NaT
        if pd.isna(parsed):
            self.add_warning(str(UnparsableTimestampError(row_number, value)))
            return None
        return parsed.to_pydatetime()

    def build_record(self, row: Mapping, row_number: int) -> LogRecord:
        """
        Build a LogRecord from a row mapping.

        Unrecognized keys are ignored and missing recognized keys are
        treated as absent.
        """
        fields = {
            column: self._clean_text(row.get(column))
            for column in RECOGNIZED_COLUMNS
        }
        raw_risk = fields.pop("ml_risk_score")

        return LogRecord(
            **fields,
            observed_at=self._parse_timestamp(fields["timestamp"], row_number),
            ml_risk_score=self._parse_risk(raw_risk, row_number),
            row_number=row_number,
        )

    @abstractmethod
    def parse(self) -> list[LogRecord]:
        """
        Parse the input and build records.

        Returns:
            List of LogRecord objects, in input order
        """
        pass

    def run(self) -> tuple[list[LogRecord], ParserMetadata]:
        """
        Execute the parser and return records with metadata.

        Returns:
            Tuple of (records, metadata)
        """
        start_time = time.time()

        records = self.parse()

        processing_time_ms = int((time.time() - start_time) * 1000)

        metadata = ParserMetadata(
            parser_name=self.PARSER_NAME,
            parser_version=self.PARSER_VERSION,
            processing_time_ms=processing_time_ms,
            rows_seen=self.rows_seen,
            warnings=self.warnings,
            errors=self.errors,
        )

        return records, metadata
