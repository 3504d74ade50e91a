"""
System status and policy gate.

Whether the system is "under attack" is derived from recent records and
handed back to the caller as a value. Nothing is remembered between
calls; a caller that wants to gate policy changes passes the status it
obtained into ``evaluate_policy_change``.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.breach_ingestion.schemas import LogRecord

from .config import AnalysisConfig, StatusConfig
from .formatting import iso


class SystemStatus(BaseModel):
    """Outcome of an active-threat check."""
    model_config = ConfigDict(frozen=True)

    is_under_attack: bool
    recent_critical_count: int = Field(0, description="Critical events inside the window")
    window_start: datetime
    checked_at: datetime


class PolicyDecision(BaseModel):
    """Whether a requested policy change may be applied."""
    model_config = ConfigDict(frozen=True)

    accepted: bool
    rollback: bool = False
    message: str
    audit_record: Optional[LogRecord] = Field(
        None, description="Record the caller should persist when the change was rolled back"
    )


def assess_system_status(
    records: Iterable[LogRecord],
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
    threshold: float = AnalysisConfig.CRITICAL_RISK_THRESHOLD,
) -> SystemStatus:
    """
    Check recent records for active high-risk activity.

    Args:
        records: Candidate records, e.g. the latest rows from storage
        now: Time of the check (defaults to the current UTC time; naive values are taken as UTC)
        window: Look-back window (defaults to StatusConfig.ACTIVE_THREAT_WINDOW_MINUTES)
        threshold: Risk score at or above which an event counts

    Returns:
        SystemStatus; records without a parsable timestamp are not counted
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    if window is None:
        window = timedelta(minutes=StatusConfig.ACTIVE_THREAT_WINDOW_MINUTES)
    window_start = now - window

    recent = sum(
        1
        for record in records
        if record.observed_at is not None
        and record.observed_at >= window_start
        and record.ml_risk_score >= threshold
    )

    return SystemStatus(
        is_under_attack=recent > 0,
        recent_critical_count=recent,
        window_start=window_start,
        checked_at=now,
    )


def rollback_record(policy_name: str, requested_by: Optional[str], now: datetime) -> LogRecord:
    """Audit record describing an automatic policy rollback."""
    return LogRecord(
        timestamp=iso(now),
        observed_at=now,
        user=requested_by,
        action_type=StatusConfig.ROLLBACK_ACTION,
        policy_name=policy_name,
        ml_risk_score=StatusConfig.ROLLBACK_RISK,
        log_source=StatusConfig.ROLLBACK_SOURCE,
        notes=f"Internal Agent automatically rolled back policy: {policy_name}",
    )


def evaluate_policy_change(
    status: SystemStatus,
    policy_name: str,
    requested_by: Optional[str] = None,
) -> PolicyDecision:
    """
    Gate a policy change on the current system status.

    While the system is under attack the change is rejected and an audit
    record is returned for the caller to store.
    """
    if status.is_under_attack:
        return PolicyDecision(
            accepted=False,
            rollback=True,
            message=(
                "Internal Agent: Security breach detected. Policy addition has been "
                "automatically rolled back to maintain system integrity."
            ),
            audit_record=rollback_record(policy_name, requested_by, status.checked_at),
        )

    return PolicyDecision(accepted=True, message=f"Policy '{policy_name}' added successfully")
