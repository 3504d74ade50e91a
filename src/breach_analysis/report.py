"""
Report Assembler: packages every computed section into one BreachReport.

``analyze_breach_data`` is the pipeline entry point. It holds no state
between calls; the clock and the report id can be injected so that two
runs over the same records produce identical documents.
"""

import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.breach_ingestion.schemas import LogRecord

from .aggregator import AggregateStatistics, EntityHits, aggregate
from .config import AnalysisConfig
from .entities import EntityImpactRanker, ImpactedEntity
from .formatting import iso, round_fixed
from .narrative import Finding, NarrativeSynthesizer
from .risk_scorer import RiskScorer
from .timeline import TimelineEntry, TimelineReconstructor

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_breach_id(now: Optional[datetime] = None, prefix: str = AnalysisConfig.BREACH_ID_PREFIX) -> str:
    """
    Build a report id of the form ``BREACH-<base36 epoch ms>-<4 hex chars>``.

    Args:
        now: Generation time (defaults to the current UTC time)
        prefix: Leading id segment
    """
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = uuid.uuid4().hex[:4].upper()
    return f"{prefix}-{_base36(millis)}-{suffix}"


class BreachReport(BaseModel):
    """The complete, immutable result of one analysis run."""
    model_config = ConfigDict(frozen=True)

    breach_id: str = Field(..., description="Unique report identifier")
    generated_at: datetime = Field(..., description="When the report was generated (UTC)")

    breach_summary: str
    key_anomalies: tuple[Finding, ...]
    attack_timeline: tuple[TimelineEntry, ...]
    root_cause_hypothesis: str
    impacted_entities: tuple[ImpactedEntity, ...]
    vulnerabilities: tuple[Finding, ...]

    risk_score: float = Field(..., ge=0.0, le=10.0, description="Composite score, one decimal")
    risk_justification: str

    immediate_actions: tuple[str, ...]
    recovery_strategy: tuple[str, ...]
    long_term_prevention: tuple[str, ...]
    dataset_insights: tuple[str, ...]

    meta: AggregateStatistics

    def to_document(self) -> dict[str, Any]:
        """Render the report as a JSON-ready camelCase document."""
        return {
            "breachId": self.breach_id,
            "generatedAt": iso(self.generated_at),
            "breachSummary": self.breach_summary,
            "keyAnomalies": [_finding_document(f) for f in self.key_anomalies],
            "attackTimeline": [entry.model_dump() for entry in self.attack_timeline],
            "rootCauseHypothesis": self.root_cause_hypothesis,
            "impactedEntities": [
                {
                    "name": entity.name,
                    "type": entity.entity_type.value,
                    "severity": entity.severity.value,
                    "eventCount": entity.event_count,
                    "status": entity.status,
                }
                for entity in self.impacted_entities
            ],
            "vulnerabilities": [_finding_document(f) for f in self.vulnerabilities],
            "riskScore": self.risk_score,
            "riskJustification": self.risk_justification,
            "immediateActions": list(self.immediate_actions),
            "recoveryStrategy": list(self.recovery_strategy),
            "longTermPrevention": list(self.long_term_prevention),
            "datasetInsights": list(self.dataset_insights),
            "meta": meta_document(self.meta),
        }


def _finding_document(finding: Finding) -> dict[str, str]:
    document = {"id": finding.id, "title": finding.title, "description": finding.description}
    if finding.severity is not None:
        document["severity"] = finding.severity.value
    return document


def _hits_document(hits: tuple[EntityHits, ...]) -> list[dict]:
    return [{"id": entry.display_name, "count": entry.count} for entry in hits]


def meta_document(stats: AggregateStatistics) -> dict[str, Any]:
    """Serialize aggregates with sentinels filled in and fixed decimals applied."""
    return {
        "totalLogs": stats.total_count,
        "failedLogs": stats.failed_count,
        "failedPct": stats.failed_pct,
        "criticalPct": stats.critical_pct,
        "highRiskEvents": stats.critical_count,
        "corruptedEntries": [record.to_row() for record in stats.corrupted_records],
        "corruptedCount": stats.corrupted_count,
        "corruptedPct": stats.corrupted_pct,
        "attackTypes": [entry.action for entry in stats.action_breakdown],
        "actionBreakdown": [entry.model_dump() for entry in stats.action_breakdown],
        "uniqueServers": list(stats.servers),
        "uniqueFirewalls": list(stats.firewalls),
        "uniqueUsers": list(stats.users),
        "uniqueSources": list(stats.sources),
        "avgRiskScore": round_fixed(stats.risk.mean, 4),
        "maxRiskScore": round_fixed(stats.risk.maximum, 4),
        "minRiskScore": round_fixed(stats.risk.minimum, 4),
        "durationSeconds": round_fixed(stats.temporal.duration_seconds, 2),
        "eventsPerSecond": round_fixed(stats.temporal.events_per_second, 2),
        "firstEvent": iso(stats.temporal.first_event),
        "lastEvent": iso(stats.temporal.last_event),
        "blockchainAttested": stats.blockchain_attested,
        "blockchainMissing": stats.blockchain_missing,
        "phantomAssets": list(stats.phantom_servers + stats.phantom_firewalls),
        "userBehavior": {
            profile.display_name: {
                "total": profile.total,
                "highRisk": profile.high_risk,
                "actions": dict(profile.actions),
            }
            for profile in stats.user_profiles
        },
        "serverBreakdown": _hits_document(stats.server_hits),
        "firewallBreakdown": _hits_document(stats.firewall_hits),
    }


class ReportAssembler:
    """
    Runs aggregation, scoring, timeline, ranking and narrative in order.

    Each stage is a plain object, so alternative catalogues or weights can
    be swapped in per assembler without touching module state.
    """

    def __init__(
        self,
        config=AnalysisConfig,
        scorer: Optional[RiskScorer] = None,
        timeline: Optional[TimelineReconstructor] = None,
        ranker: Optional[EntityImpactRanker] = None,
        synthesizer: Optional[NarrativeSynthesizer] = None,
    ):
        self.config = config
        self.scorer = scorer or RiskScorer(config)
        self.timeline = timeline or TimelineReconstructor()
        self.ranker = ranker or EntityImpactRanker(config)
        self.synthesizer = synthesizer or NarrativeSynthesizer(config)

    def assemble(
        self,
        records: Sequence[LogRecord],
        now: Optional[datetime] = None,
        breach_id: Optional[str] = None,
    ) -> BreachReport:
        """
        Build a BreachReport.

        Args:
            records: Normalized, non-empty record sequence
            now: Generation time to stamp (defaults to the current UTC time)
            breach_id: Report id to use instead of a generated one

        Raises:
            EmptyDatasetError: If ``records`` is empty
        """
        records = tuple(records)
        stats = aggregate(records, self.config)

        now = now or datetime.now(timezone.utc)
        assessment = self.scorer.score(stats)
        narrative = self.synthesizer.synthesize(stats)

        return BreachReport(
            breach_id=breach_id or generate_breach_id(now, self.config.BREACH_ID_PREFIX),
            generated_at=now,
            breach_summary=narrative.summary,
            key_anomalies=narrative.anomalies,
            attack_timeline=self.timeline.reconstruct(records, stats),
            root_cause_hypothesis=narrative.root_cause_hypothesis,
            impacted_entities=self.ranker.rank(stats),
            vulnerabilities=narrative.vulnerabilities,
            risk_score=assessment.score,
            risk_justification=assessment.justification,
            immediate_actions=narrative.immediate_actions,
            recovery_strategy=narrative.recovery_strategy,
            long_term_prevention=narrative.long_term_prevention,
            dataset_insights=narrative.dataset_insights,
            meta=stats,
        )


def analyze_breach_data(
    records: Sequence[LogRecord],
    *,
    now: Optional[datetime] = None,
    breach_id: Optional[str] = None,
) -> BreachReport:
    """
    Convenience function to analyze a record sequence with default settings.

    Args:
        records: Normalized records (see ``src.breach_ingestion``)
        now: Optional fixed generation time
        breach_id: Optional fixed report id

    Returns:
        BreachReport
    """
    return ReportAssembler().assemble(records, now=now, breach_id=breach_id)
