"""
Breach analysis

Takes the normalized LogRecord batches from the ingestion package and
produces a BreachReport:
1. Aggregate statistics (failure, criticality, corruption, burst density)
2. A weighted 0-10 risk score with its justification
3. Attack timeline, impacted entities and template-driven findings
"""

__version__ = "1.0.0"

from .aggregator import AggregateStatistics, aggregate
from .config import AnalysisConfig, DatasetConfig, StatusConfig
from .entities import EntityImpactRanker, ImpactedEntity, ImpactSeverity
from .narrative import Finding, NarrativeSynthesizer
from .report import BreachReport, ReportAssembler, analyze_breach_data, generate_breach_id
from .risk_scorer import RiskAssessment, RiskScorer
from .status import PolicyDecision, SystemStatus, assess_system_status, evaluate_policy_change
from .timeline import TimelineEntry, TimelineReconstructor

__all__ = [
    "AggregateStatistics",
    "aggregate",
    "AnalysisConfig",
    "DatasetConfig",
    "StatusConfig",
    "EntityImpactRanker",
    "ImpactedEntity",
    "ImpactSeverity",
    "Finding",
    "NarrativeSynthesizer",
    "BreachReport",
    "ReportAssembler",
    "analyze_breach_data",
    "generate_breach_id",
    "RiskAssessment",
    "RiskScorer",
    "PolicyDecision",
    "SystemStatus",
    "assess_system_status",
    "evaluate_policy_change",
    "TimelineEntry",
    "TimelineReconstructor",
]
