"""
Error taxonomy for the ingestion pipeline.

Only EmptyDatasetError is meant to propagate to the caller. The other
errors describe per-row problems that the parsers recover from locally;
they are recorded as parser warnings rather than raised.
"""


class IngestionError(ValueError):
    """Base class for problems found while turning raw rows into records."""


def _row_label(row_number: int | None) -> str:
    return f"Row {row_number}" if row_number is not None else "Row"


class EmptyDatasetError(IngestionError):
    """No usable data rows were found after normalization."""

    def __init__(self, message: str = "No valid data rows found in the dataset."):
        super().__init__(message)


class MalformedRowError(IngestionError):
    """A row could not be split into the expected number of columns."""

    def __init__(self, row_number: int | None, expected: int, found: int):
        self.row_number = row_number
        self.expected = expected
        self.found = found
        super().__init__(
            f"{_row_label(row_number)}: expected {expected} fields, found {found}"
        )


class UnparsableNumericError(IngestionError):
    """A numeric field could not be parsed; the documented default is used."""

    def __init__(self, row_number: int | None, field: str, value: str, default: float = 0.0):
        self.row_number = row_number
        self.field = field
        self.value = value
        self.default = default
        super().__init__(
            f"{_row_label(row_number)}: {field} value {value!r} is not a number, using {default}"
        )


class UnparsableTimestampError(IngestionError):
    """A timestamp could not be parsed; the record is left out of temporal stats."""

    def __init__(self, row_number: int | None, value: str):
        self.row_number = row_number
        self.value = value
        super().__init__(
            f"{_row_label(row_number)}: timestamp {value!r} could not be parsed, "
            f"excluded from temporal analysis"
        )
