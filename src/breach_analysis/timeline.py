"""
Timeline Reconstructor: best-effort attack progression from raw records.

The timeline is built from a fixed kill-chain model, not from observed
ordering: an "Initial Access" entry for the earliest timestamp cluster,
one entry per recognized phase action in catalogue order, and a "Tail"
entry for the latest cluster. Action types outside the catalogue count
toward the aggregates but never get an entry of their own.
"""

import math
from collections import Counter
from collections.abc import Callable, Sequence
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict

from src.breach_ingestion.schemas import LogRecord

from .aggregator import ANONYMOUS_USER, AggregateStatistics
from .formatting import NOT_AVAILABLE, fixed, join_or


class TimelineEntry(BaseModel):
    """One step of the reconstructed attack."""
    model_config = ConfigDict(frozen=True)

    time: str
    phase: str
    narrative: str


class PhaseSummary(NamedTuple):
    """Figures for the records of one phase action."""
    count: int
    first_seen: Optional[str]
    mean_risk: float
    servers: tuple[str, ...]
    firewalls: tuple[str, ...]
    users: tuple[str, ...]
    anonymous: int


class PhaseSpec(NamedTuple):
    action: str
    phase: str
    describe: Callable[[PhaseSummary], str]


def _scope(summary: PhaseSummary) -> str:
    return f"{len(summary.servers)} server(s) and {len(summary.firewalls)} firewall(s)"


def _describe_brute_force(s: PhaseSummary) -> str:
    return (
        f"BRUTE_FORCE campaign: {s.count} attempts detected across {_scope(s)}. "
        f"Mean risk score: {fixed(s.mean_risk, 4)}. "
        f"Users targeted: {join_or(s.users)}."
    )


def _describe_unauthorized_login(s: PhaseSummary) -> str:
    return (
        f"UNAUTHORIZED_LOGIN wave: {s.count} session hijack attempts across {_scope(s)}. "
        f"{s.anonymous} anonymous entries detected. "
        f"Users involved: {join_or(s.users)}. Mean risk: {fixed(s.mean_risk, 4)}."
    )


def _describe_malicious_access(s: PhaseSummary) -> str:
    return (
        f"MALICIOUS_ACCESS escalation: {s.count} privilege escalation / data exfil attempts "
        f"across {len(s.servers)} server(s). "
        f"Firewalls involved: {join_or(s.firewalls, empty='NONE')}. "
        f"Users involved: {join_or(s.users)}. Mean risk: {fixed(s.mean_risk, 4)}."
    )


def _describe_config_wipe(s: PhaseSummary) -> str:
    return (
        f"CONFIG_WIPE destructive phase: {s.count} configuration erasure attempts "
        f"across {_scope(s)}. Users involved: {join_or(s.users)}. "
        f"Mean risk: {fixed(s.mean_risk, 4)}. This indicates active sabotage intent."
    )


PHASE_CATALOGUE: tuple[PhaseSpec, ...] = (
    PhaseSpec("BRUTE_FORCE", "Credential Attack", _describe_brute_force),
    PhaseSpec("UNAUTHORIZED_LOGIN", "Unauthorized Access", _describe_unauthorized_login),
    PhaseSpec("MALICIOUS_ACCESS", "Privilege Escalation", _describe_malicious_access),
    PhaseSpec("CONFIG_WIPE", "Destruction / Anti-Forensics", _describe_config_wipe),
)

PHASE_ACTIONS: tuple[str, ...] = tuple(spec.action for spec in PHASE_CATALOGUE)


class _Cluster:
    """Records sharing one raw timestamp text."""

    __slots__ = ("count", "actions", "peak_risk")

    def __init__(self):
        self.count = 0
        self.actions: Counter = Counter()
        self.peak_risk = -math.inf

    def add(self, record: LogRecord) -> None:
        self.count += 1
        self.actions[record.action] += 1
        self.peak_risk = max(self.peak_risk, record.ml_risk_score)


def _cluster_key(timestamp: Optional[str]) -> str:
    return timestamp if timestamp is not None else NOT_AVAILABLE


def summarize_phase(records: Sequence[LogRecord]) -> PhaseSummary:
    """Summarize the records of a single phase action."""
    present = [r.timestamp for r in records if r.timestamp is not None]
    servers = dict.fromkeys(r.server_id for r in records if r.server_id is not None)
    firewalls = dict.fromkeys(r.firewall_id for r in records if r.firewall_id is not None)
    users = dict.fromkeys(r.user or ANONYMOUS_USER for r in records)

    return PhaseSummary(
        count=len(records),
        first_seen=min(present) if present else None,
        mean_risk=math.fsum(r.ml_risk_score for r in records) / len(records),
        servers=tuple(servers),
        firewalls=tuple(firewalls),
        users=tuple(users),
        anonymous=sum(1 for r in records if r.user is None),
    )


class TimelineReconstructor:
    """
    Builds the ordered attack timeline.

    Clusters are keyed by exact timestamp text; ISO-8601 text sorts in
    time order, so the lexicographic minimum and maximum are the first and
    last clusters. Only min/max are taken, keeping the cost linear in the
    number of records however many distinct timestamps there are.
    """

    def __init__(self, phases: Sequence[PhaseSpec] = PHASE_CATALOGUE):
        self.phases = tuple(phases)

    def _clusters(self, records: Sequence[LogRecord]) -> dict[str, _Cluster]:
        clusters: dict[str, _Cluster] = {}
        for record in records:
            key = _cluster_key(record.timestamp)
            clusters.setdefault(key, _Cluster()).add(record)
        return clusters

    def reconstruct(self, records: Sequence[LogRecord], stats: AggregateStatistics) -> tuple[TimelineEntry, ...]:
        """
        Reconstruct the timeline.

        Args:
            records: Normalized records
            stats: Aggregates of the same records

        Returns:
            Entries in kill-chain order: Initial Access, recognized phases, Tail
        """
        clusters = self._clusters(records)
        if not clusters:
            return ()

        entries = []

        first_key = min(clusters)
        first = clusters[first_key]
        breakdown = ", ".join(f"{action}(×{count})" for action, count in first.actions.items())
        entries.append(TimelineEntry(
            time=first_key,
            phase="Initial Access",
            narrative=(
                f"Initial breach signal detected: {first.count} events within first timestamp cluster. "
                f"Actions: {breakdown}. Peak ML risk: {fixed(first.peak_risk, 4)}."
            ),
        ))

        by_action: dict[str, list[LogRecord]] = {spec.action: [] for spec in self.phases}
        for record in records:
            if record.action_type in by_action:
                by_action[record.action_type].append(record)

        for spec in self.phases:
            subset = by_action[spec.action]
            if not subset:
                continue
            summary = summarize_phase(subset)
            entries.append(TimelineEntry(
                time=_cluster_key(summary.first_seen),
                phase=spec.phase,
                narrative=spec.describe(summary),
            ))

        last_key = max(clusters)
        entries.append(TimelineEntry(
            time=last_key,
            phase="Tail",
            narrative=(
                f"Last observed malicious activity. "
                f"Total duration: {fixed(stats.temporal.duration_seconds, 2)}s "
                f"across {len(clusters)} unique timestamp clusters. "
                f"Burst density: {fixed(stats.temporal.events_per_second, 2)} events/sec."
            ),
        ))

        return tuple(entries)
