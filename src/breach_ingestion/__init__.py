"""
Breach ingestion pipeline

Turns raw security-event data (CSV text, CSV/JSON files or already
parsed row mappings) into immutable LogRecord batches for the analysis
package. Missing and malformed fields are tolerated; only an empty
dataset is an error.

Example:
    >>> from src.breach_ingestion import ingest_file, Normalizer
    >>>
    >>> batch = ingest_file("faulty_logs_100.csv")
    >>> batch = Normalizer().ingest_rows([{"timestamp": "...", "user": "root"}])
"""

from dotenv import load_dotenv

load_dotenv()

from .errors import (
    IngestionError,
    EmptyDatasetError,
    MalformedRowError,
    UnparsableNumericError,
    UnparsableTimestampError,
)
from .schemas import (
    LogRecord,
    IngestedBatch,
    ParserMetadata,
    SourceType,
    RECOGNIZED_COLUMNS,
    REQUIRED_FIELDS,
)
from .normalizer import (
    Normalizer,
    ingest_file,
    ingest_csv_text,
    ingest_rows,
    preview_rows,
)
from .simulation import simulate_attack_rows

__all__ = [
    # Errors
    "IngestionError",
    "EmptyDatasetError",
    "MalformedRowError",
    "UnparsableNumericError",
    "UnparsableTimestampError",
    # Schemas
    "LogRecord",
    "IngestedBatch",
    "ParserMetadata",
    "SourceType",
    "RECOGNIZED_COLUMNS",
    "REQUIRED_FIELDS",
    # Normalizer
    "Normalizer",
    "ingest_file",
    "ingest_csv_text",
    "ingest_rows",
    "preview_rows",
    "simulate_attack_rows",
]
