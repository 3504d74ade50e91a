"""
Pydantic schemas for the ingestion pipeline.

These models define the normalized security-event records that are
handed to the analysis package. Every model is frozen: once a record
has been built the pipeline never changes it.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# Columns understood by the parsers; anything else in the input is ignored.
RECOGNIZED_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "server_id",
    "firewall_id",
    "user",
    "action_type",
    "policy_name",
    "policy_rule",
    "status",
    "ml_risk_score",
    "log_source",
    "blockchain_tx",
    "notes",
)

# A record missing any of these is considered corrupted.
REQUIRED_FIELDS: tuple[str, ...] = (
    "server_id",
    "firewall_id",
    "user",
    "action_type",
    "timestamp",
)

UNKNOWN_ACTION = "UNKNOWN"
FAILED_STATUS = "FAILED"

# ml_risk_score at or above which an event is critical / high-risk
CRITICAL_RISK_SCORE = 0.9


class SourceType(str, Enum):
    """Where a batch of records came from."""
    CSV_LOG = "csv_log"
    JSON_ROWS = "json_rows"
    ROWS = "rows"
    UNKNOWN = "unknown"


class LogRecord(BaseModel):
    """
    One observed security event.

    Free-text identifiers are ``None`` when the input left them empty.
    ``timestamp`` keeps the raw text (timeline grouping is by exact text)
    while ``observed_at`` holds the parsed UTC instant, or ``None`` when
    the text could not be parsed.
    """
    model_config = ConfigDict(frozen=True)

    timestamp: Optional[str] = Field(None, description="Raw timestamp text as supplied")
    observed_at: Optional[datetime] = Field(None, description="Parsed timestamp (UTC)")

    server_id: Optional[str] = Field(None, description="Server identifier")
    firewall_id: Optional[str] = Field(None, description="Firewall identifier")
    user: Optional[str] = Field(None, description="Account involved in the event")
    action_type: Optional[str] = Field(None, description="Categorical action label")

    policy_name: Optional[str] = None
    policy_rule: Optional[str] = None
    status: Optional[str] = Field(None, description="FAILED / SUCCESS / ...")
    ml_risk_score: float = Field(0.0, description="Externally supplied risk in [0, 1]")

    log_source: Optional[str] = None
    blockchain_tx: Optional[str] = None
    notes: Optional[str] = None

    row_number: Optional[int] = Field(None, description="1-based data row index in the source")

    @property
    def action(self) -> str:
        """Action label with absent values folded into ``UNKNOWN``."""
        return self.action_type or UNKNOWN_ACTION

    @property
    def is_failed(self) -> bool:
        return self.status is not None and self.status.upper() == FAILED_STATUS

    @property
    def is_critical(self) -> bool:
        return self.ml_risk_score >= CRITICAL_RISK_SCORE

    @property
    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if getattr(self, name) is None]

    @property
    def is_corrupted(self) -> bool:
        return bool(self.missing_fields)

    def to_row(self) -> dict:
        """Return the record as a plain row keyed by the recognized column names."""
        row = {column: getattr(self, column) for column in RECOGNIZED_COLUMNS}
        row["ml_risk_score"] = self.ml_risk_score
        return row


class ParserMetadata(BaseModel):
    """Metadata about the parsing process."""
    parser_name: str = Field(..., description="Name of the parser used")
    parser_version: str = Field(default="1.0.0", description="Version of the parser")
    processed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When processing occurred",
    )
    processing_time_ms: Optional[int] = Field(None, description="Time taken to process in milliseconds")
    rows_seen: int = Field(default=0, description="Data rows read before normalization")
    warnings: list[str] = Field(default_factory=list, description="Recovered per-row problems")
    errors: list[str] = Field(default_factory=list, description="Any non-fatal errors during parsing")


class IngestedBatch(BaseModel):
    """
    The output of the ingestion pipeline: one dataset of normalized records.
    """
    model_config = ConfigDict(frozen=True)

    source_type: SourceType = Field(..., description="Kind of input the records came from")
    source_name: str = Field(default="<memory>", description="File name or label of the input")
    source_hash: Optional[str] = Field(None, description="SHA-256 of the raw input text")

    records: tuple[LogRecord, ...] = Field(default_factory=tuple)
    metadata: ParserMetadata = Field(..., description="Information about the parsing process")

    @property
    def record_count(self) -> int:
        return len(self.records)

    def preview(self, limit: int) -> list[dict]:
        """First ``limit`` records as plain rows."""
        return [record.to_row() for record in self.records[:max(limit, 0)]]
