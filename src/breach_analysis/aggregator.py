"""
Aggregator: derives every statistic the report needs from a record batch.

The work is a handful of linear passes over the records; nothing here is
more than linear in the number of records. Absent identifiers stay
``None`` in the concentration tables and are only turned into the
"ANONYMOUS" / "UNKNOWN" sentinels when rendered.
"""

import math
from collections import Counter
from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.breach_ingestion.errors import EmptyDatasetError
from src.breach_ingestion.schemas import LogRecord

from .config import AnalysisConfig
from .formatting import pct

ANONYMOUS_USER = "ANONYMOUS"
UNKNOWN_ENTITY = "UNKNOWN"


class RiskDistribution(BaseModel):
    """Min / mean / max of ml_risk_score over the batch."""
    model_config = ConfigDict(frozen=True)

    minimum: float
    mean: float
    maximum: float


class ActionCount(BaseModel):
    """One row of the action-type frequency table."""
    model_config = ConfigDict(frozen=True)

    action: str
    count: int
    pct: str = Field(..., description="Share of all records, one decimal")


class TemporalSpan(BaseModel):
    """Time range covered by the parsable timestamps."""
    model_config = ConfigDict(frozen=True)

    first_event: Optional[datetime] = None
    last_event: Optional[datetime] = None
    observed_count: int = Field(0, description="Records with a parsable timestamp")
    duration_seconds: float = 0.0
    events_per_second: float = Field(..., description="Burst density; total count when duration is zero")

    @property
    def mean_interval_seconds(self) -> Optional[float]:
        if self.observed_count < 2:
            return None
        return self.duration_seconds / (self.observed_count - 1)


class UserProfile(BaseModel):
    """Behavior of one account across the batch."""
    model_config = ConfigDict(frozen=True)

    user: Optional[str] = None
    total: int = 0
    high_risk: int = 0
    actions: dict[str, int] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.user or ANONYMOUS_USER


class EntityHits(BaseModel):
    """Event count for one server or firewall."""
    model_config = ConfigDict(frozen=True)

    entity_id: Optional[str] = None
    count: int

    @property
    def display_name(self) -> str:
        return self.entity_id or UNKNOWN_ENTITY


class AggregateStatistics(BaseModel):
    """Read-only summary of a non-empty record collection."""
    model_config = ConfigDict(frozen=True)

    total_count: int
    failed_count: int
    critical_count: int
    risk: RiskDistribution
    action_breakdown: tuple[ActionCount, ...]
    temporal: TemporalSpan

    servers: tuple[str, ...]
    firewalls: tuple[str, ...]
    users: tuple[str, ...]
    sources: tuple[str, ...]
    missing_servers: int
    missing_firewalls: int
    missing_users: int
    missing_sources: int

    user_profiles: tuple[UserProfile, ...]
    server_hits: tuple[EntityHits, ...]
    firewall_hits: tuple[EntityHits, ...]

    corrupted_records: tuple[LogRecord, ...]
    blockchain_attested: int
    blockchain_missing: int

    phantom_servers: tuple[str, ...] = ()
    phantom_firewalls: tuple[str, ...] = ()

    @property
    def corrupted_count(self) -> int:
        return len(self.corrupted_records)

    @property
    def failed_pct(self) -> str:
        return pct(self.failed_count, self.total_count)

    @property
    def critical_pct(self) -> str:
        return pct(self.critical_count, self.total_count)

    @property
    def corrupted_pct(self) -> str:
        return pct(self.corrupted_count, self.total_count)

    @property
    def critical_density(self) -> float:
        return self.critical_count / self.total_count

    @property
    def failure_rate(self) -> float:
        return self.failed_count / self.total_count

    @property
    def corruption_rate(self) -> float:
        return self.corrupted_count / self.total_count

    @property
    def action_counts(self) -> dict[str, int]:
        return {entry.action: entry.count for entry in self.action_breakdown}

    def count_for(self, action: str) -> int:
        return self.action_counts.get(action, 0)


def _distinct(values) -> tuple[tuple[str, ...], int]:
    """Distinct present values in first-seen order, plus the absent count."""
    seen: dict[str, None] = {}
    missing = 0
    for value in values:
        if value is None:
            missing += 1
        else:
            seen.setdefault(value, None)
    return tuple(seen), missing


def _top_hits(counter: Counter, limit: int) -> tuple[EntityHits, ...]:
    # Counter keeps first-seen order and sorted() is stable, so ties keep input order
    ranked = sorted(counter.items(), key=lambda item: -item[1])[:limit]
    return tuple(EntityHits(entity_id=key, count=count) for key, count in ranked)


def is_standard_asset_id(identifier: str, config=AnalysisConfig) -> bool:
    """True when an identifier follows the srv-NNN / fw-NNN convention."""
    match = config.STANDARD_ASSET_ID_PATTERN.match(identifier)
    if not match:
        return False
    low, high = config.STANDARD_ASSET_ID_RANGE
    return low <= int(match.group(1)) <= high


def _temporal_span(records: Sequence[LogRecord]) -> TemporalSpan:
    instants = [r.observed_at for r in records if r.observed_at is not None]
    total = len(records)

    if not instants:
        return TemporalSpan(events_per_second=float(total))

    first, last = min(instants), max(instants)
    duration = (last - first).total_seconds()
    throughput = total / duration if duration > 0 else float(total)

    return TemporalSpan(
        first_event=first,
        last_event=last,
        observed_count=len(instants),
        duration_seconds=duration,
        events_per_second=throughput,
    )


def _user_profiles(records: Sequence[LogRecord], threshold: float) -> tuple[UserProfile, ...]:
    totals: Counter = Counter()
    high_risk: Counter = Counter()
    actions: dict[Optional[str], Counter] = {}

    for record in records:
        totals[record.user] += 1
        if record.ml_risk_score >= threshold:
            high_risk[record.user] += 1
        actions.setdefault(record.user, Counter())[record.action] += 1

    return tuple(
        UserProfile(
            user=user,
            total=total,
            high_risk=high_risk[user],
            actions=dict(actions[user]),
        )
        for user, total in totals.items()
    )


def aggregate(records: Sequence[LogRecord], config=AnalysisConfig) -> AggregateStatistics:
    """
    Compute AggregateStatistics for a record sequence.

    Args:
        records: Normalized records, in input order
        config: Threshold source (AnalysisConfig or a subclass)

    Raises:
        EmptyDatasetError: If ``records`` is empty
    """
    records = tuple(records)
    total = len(records)
    if total == 0:
        raise EmptyDatasetError()

    threshold = config.CRITICAL_RISK_THRESHOLD
    scores = [r.ml_risk_score for r in records]

    action_counter = Counter(r.action for r in records)
    action_breakdown = tuple(
        ActionCount(action=action, count=count, pct=pct(count, total))
        for action, count in sorted(action_counter.items(), key=lambda item: -item[1])
    )

    servers, missing_servers = _distinct(r.server_id for r in records)
    firewalls, missing_firewalls = _distinct(r.firewall_id for r in records)
    users, missing_users = _distinct(r.user for r in records)
    sources, missing_sources = _distinct(r.log_source for r in records)

    attested = sum(1 for r in records if r.blockchain_tx is not None)

    return AggregateStatistics(
        total_count=total,
        failed_count=sum(1 for r in records if r.is_failed),
        critical_count=sum(1 for s in scores if s >= threshold),
        risk=RiskDistribution(
            minimum=min(scores),
            mean=math.fsum(scores) / total,
            maximum=max(scores),
        ),
        action_breakdown=action_breakdown,
        temporal=_temporal_span(records),
        servers=servers,
        firewalls=firewalls,
        users=users,
        sources=sources,
        missing_servers=missing_servers,
        missing_firewalls=missing_firewalls,
        missing_users=missing_users,
        missing_sources=missing_sources,
        user_profiles=_user_profiles(records, threshold),
        server_hits=_top_hits(Counter(r.server_id for r in records), config.TOP_ENTITY_LIMIT),
        firewall_hits=_top_hits(Counter(r.firewall_id for r in records), config.TOP_ENTITY_LIMIT),
        corrupted_records=tuple(r for r in records if r.is_corrupted),
        blockchain_attested=attested,
        blockchain_missing=total - attested,
        phantom_servers=tuple(s for s in servers if not is_standard_asset_id(s, config)),
        phantom_firewalls=tuple(f for f in firewalls if not is_standard_asset_id(f, config)),
    )
