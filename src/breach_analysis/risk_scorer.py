"""
Risk Scorer: combines six aggregate sub-scores into one 0-10 score.

Sub-score                 Definition                                     Weight
critical density          min(critical / total, 1) * 10                  0.30
average ML risk           mean(ml_risk_score) * 10                       0.20
burst rate                min(events_per_sec / 100, 1) * 10, 10 if the   0.15
                          whole batch happened at a single instant
failure rate              failed / total * 10                            0.15
corruption rate           corrupted / total * 10                         0.10
asset spread              min((servers + firewalls) / 10, 1) * 10        0.10

The final score is round(weighted sum * 10) / 10, kept within [0, 10].
"""

import math

from pydantic import BaseModel, ConfigDict

from .aggregator import AggregateStatistics
from .config import AnalysisConfig
from .formatting import fixed


class SubScore(BaseModel):
    """One weighted component of the composite score."""
    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    score: float
    weight: float

    @property
    def weighted(self) -> float:
        return self.score * self.weight

    def describe(self) -> str:
        return f"{self.label} (score {fixed(self.score, 1)}, w={self.weight:g})"


class RiskAssessment(BaseModel):
    """Composite score plus the audit trail that produced it."""
    model_config = ConfigDict(frozen=True)

    score: float
    weighted_sum: float
    justification: str
    components: tuple[SubScore, ...]


class RiskScorer:
    """
    Weighted risk scoring over AggregateStatistics.

    The scorer only reads aggregates, so the result does not depend on
    the order of the input records.
    """

    MAX_SCORE: float = 10.0

    def __init__(self, config=AnalysisConfig):
        self.config = config
        self.weights = dict(config.RISK_WEIGHTS)

    def _burst_score(self, stats: AggregateStatistics) -> float:
        if stats.temporal.duration_seconds <= 0:
            return 10.0
        saturation = self.config.BURST_SATURATION_EVENTS_PER_SEC
        return min(stats.temporal.events_per_second / saturation, 1.0) * 10

    def _spread_score(self, stats: AggregateStatistics) -> float:
        assets = len(stats.servers) + len(stats.firewalls)
        return min(assets / self.config.ASSET_SPREAD_SATURATION, 1.0) * 10

    def components(self, stats: AggregateStatistics) -> tuple[SubScore, ...]:
        """Compute the six sub-scores in their fixed reporting order."""
        w = self.weights
        return (
            SubScore(
                name="critical_density",
                label=f"critical-event density {stats.critical_pct}%",
                score=min(stats.critical_density, 1.0) * 10,
                weight=w["critical_density"],
            ),
            SubScore(
                name="average_risk",
                label=f"average ML risk {fixed(stats.risk.mean, 4)}",
                score=stats.risk.mean * 10,
                weight=w["average_risk"],
            ),
            SubScore(
                name="burst_rate",
                label=f"burst rate {fixed(stats.temporal.events_per_second, 2)} events/sec",
                score=self._burst_score(stats),
                weight=w["burst_rate"],
            ),
            SubScore(
                name="failure_rate",
                label=f"failure rate {stats.failed_pct}%",
                score=stats.failure_rate * 10,
                weight=w["failure_rate"],
            ),
            SubScore(
                name="corruption_rate",
                label=f"data corruption {stats.corrupted_pct}%",
                score=stats.corruption_rate * 10,
                weight=w["corruption_rate"],
            ),
            SubScore(
                name="asset_spread",
                label=f"asset spread {len(stats.servers)} servers + {len(stats.firewalls)} firewalls",
                score=self._spread_score(stats),
                weight=w["asset_spread"],
            ),
        )

    def score(self, stats: AggregateStatistics) -> RiskAssessment:
        """
        Score a dataset.

        Args:
            stats: Aggregates of the dataset

        Returns:
            RiskAssessment with the final score and its justification text
        """
        components = self.components(stats)
        weighted_sum = math.fsum(c.weighted for c in components)

        final = math.floor(weighted_sum * 10 + 0.5) / 10
        final = min(max(final, 0.0), self.MAX_SCORE)

        justification = (
            "Calculated from: "
            + ", ".join(c.describe() for c in components)
            + ". "
            + f"Weighted sum = {fixed(final, 1)}/10."
        )

        return RiskAssessment(
            score=final,
            weighted_sum=weighted_sum,
            justification=justification,
            components=components,
        )
