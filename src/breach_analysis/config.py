"""
Configuration for the breach analysis pipeline.

Holds scoring weights, thresholds, dataset locations and the
active-threat window used by the system status check.
"""

import os
import re
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

load_dotenv()

from src.breach_ingestion.normalizer import DEFAULT_PREVIEW_LIMIT
from src.breach_ingestion.schemas import CRITICAL_RISK_SCORE


class AnalysisConfig:
    """Constants for aggregation, scoring and entity ranking."""

    # Records at or above this ml_risk_score are critical / high-risk events
    CRITICAL_RISK_THRESHOLD: float = CRITICAL_RISK_SCORE

    # Top-N cut for server and firewall concentration tables
    TOP_ENTITY_LIMIT: int = 10

    # Sub-score saturation points
    BURST_SATURATION_EVENTS_PER_SEC: float = 100.0
    ASSET_SPREAD_SATURATION: int = 10

    # Weights of the six sub-scores; must sum to 1.0
    RISK_WEIGHTS: dict[str, float] = {
        "critical_density": 0.30,
        "average_risk": 0.20,
        "burst_rate": 0.15,
        "failure_rate": 0.15,
        "corruption_rate": 0.10,
        "asset_spread": 0.10,
    }

    # Share of total events at which an entity becomes (Critical, High)
    SERVER_SEVERITY_THRESHOLDS: tuple[float, float] = (0.20, 0.10)
    FIREWALL_SEVERITY_THRESHOLDS: tuple[float, float] = (0.15, 0.08)

    # Infrastructure naming convention: srv-001..srv-100, fw-001..fw-100
    STANDARD_ASSET_ID_PATTERN = re.compile(r"^(?:srv|fw)-(\d{3})$")
    STANDARD_ASSET_ID_RANGE: tuple[int, int] = (1, 100)

    BREACH_ID_PREFIX: str = "BREACH"

    @classmethod
    def validate(cls) -> bool:
        """Validate that the risk weights add up to one."""
        return abs(sum(cls.RISK_WEIGHTS.values()) - 1.0) < 1e-9


class DatasetConfig:
    """Where datasets are read from and reports are written to."""

    DEFAULT_DATASET: Path = Path(os.getenv("FAULTY_LOGS_CSV", "faulty_logs_100.csv"))
    PREVIEW_LIMIT: int = DEFAULT_PREVIEW_LIMIT
    OUTPUT_DIR: Path = Path(os.getenv("BREACH_OUTPUT_DIR", "data/processed"))

    @classmethod
    def ensure_output_dir(cls) -> Path:
        """Create the output directory if it doesn't exist."""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        return cls.OUTPUT_DIR


class StatusConfig:
    """Settings for the system status check and the policy gate."""

    ACTIVE_THREAT_WINDOW_MINUTES: int = int(os.getenv("ACTIVE_THREAT_WINDOW_MINUTES", "10"))

    # Audit record written when a policy change is rolled back
    ROLLBACK_ACTION: str = "POLICY_ROLLBACK"
    ROLLBACK_SOURCE: str = "INTERNAL_AGENT"
    ROLLBACK_RISK: float = 1.0
