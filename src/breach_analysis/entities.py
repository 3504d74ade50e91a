"""
Entity Impact Ranker: severity tiers for the most-hit servers and firewalls.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .aggregator import AggregateStatistics, EntityHits
from .config import AnalysisConfig


class ImpactSeverity(str, Enum):
    """Severity tier of an impacted entity."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"


class EntityType(str, Enum):
    SERVER = "Server"
    FIREWALL = "Firewall"


# Status label per entity type: (when Critical, otherwise)
STATUS_LABELS: dict[EntityType, tuple[str, str]] = {
    EntityType.SERVER: ("Requires Immediate Isolation", "Under Investigation"),
    EntityType.FIREWALL: ("Rules Compromised", "Monitoring"),
}


class ImpactedEntity(BaseModel):
    """A ranked server or firewall."""
    model_config = ConfigDict(frozen=True)

    name: str
    entity_type: EntityType
    severity: ImpactSeverity
    event_count: int
    status: str


def classify(count: int, total: int, thresholds: tuple[float, float]) -> ImpactSeverity:
    """Severity from an entity's share of all events."""
    critical, high = thresholds
    if count >= total * critical:
        return ImpactSeverity.CRITICAL
    if count >= total * high:
        return ImpactSeverity.HIGH
    return ImpactSeverity.MEDIUM


class EntityImpactRanker:
    """Ranks the top servers and firewalls, servers first."""

    def __init__(self, config=AnalysisConfig):
        self.config = config

    def _rank(self, hits: tuple[EntityHits, ...], total: int, entity_type: EntityType) -> list[ImpactedEntity]:
        thresholds = (
            self.config.SERVER_SEVERITY_THRESHOLDS
            if entity_type is EntityType.SERVER
            else self.config.FIREWALL_SEVERITY_THRESHOLDS
        )
        critical_label, default_label = STATUS_LABELS[entity_type]

        ranked = []
        for entry in hits:
            severity = classify(entry.count, total, thresholds)
            ranked.append(ImpactedEntity(
                name=entry.display_name,
                entity_type=entity_type,
                severity=severity,
                event_count=entry.count,
                status=critical_label if severity is ImpactSeverity.CRITICAL else default_label,
            ))
        return ranked

    def rank(self, stats: AggregateStatistics) -> tuple[ImpactedEntity, ...]:
        """
        Rank impacted entities.

        Returns:
            Server entries followed by firewall entries, each by descending count
        """
        total = stats.total_count
        return tuple(
            self._rank(stats.server_hits, total, EntityType.SERVER)
            + self._rank(stats.firewall_hits, total, EntityType.FIREWALL)
        )
