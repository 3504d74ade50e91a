"""
Shared fixtures: row builders for the breach datasets used across tests.
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from src.breach_ingestion import ingest_rows

PHASES = ["BRUTE_FORCE", "UNAUTHORIZED_LOGIN", "MALICIOUS_ACCESS", "CONFIG_WIPE"]

CSV_HEADER = (
    "timestamp,server_id,firewall_id,user,action_type,policy_name,policy_rule,"
    "status,ml_risk_score,log_source,blockchain_tx,notes"
)


def breach_rows(count: int = 100) -> list[dict]:
    """
    A kill-chain dataset: every event FAILED and critical, server_id missing
    on the first 10 rows, user missing on the next 5, one action type per
    quartile, timestamps 7 microseconds apart.
    """
    rows = []
    for i in range(count):
        rows.append({
            "timestamp": f"2024-03-01T10:00:00.{i * 7:06d}Z",
            "server_id": None if i < 10 else f"srv-{(i % 5) + 1:03d}",
            "firewall_id": f"fw-{(i % 3) + 1:03d}",
            "user": None if 10 <= i < 15 else ("root" if i % 2 else "admin_backup"),
            "action_type": PHASES[i * 4 // count],
            "policy_name": "perimeter",
            "status": "FAILED",
            "ml_risk_score": f"{0.9 + (i % 10) * 0.005:.3f}",
            "log_source": "SIEM_AGENT",
            "blockchain_tx": f"0x{i:04x}" if i % 4 else "",
            "notes": f"event {i}",
        })
    return rows


def pair_rows() -> list[dict]:
    """Two events ten seconds apart with hand-computable aggregates."""
    return [
        {
            "timestamp": "2024-01-01T00:00:00Z",
            "server_id": "srv-001",
            "firewall_id": "fw-001",
            "user": "root",
            "action_type": "BRUTE_FORCE",
            "status": "FAILED",
            "ml_risk_score": "0.95",
            "log_source": "SIEM_AGENT",
        },
        {
            "timestamp": "2024-01-01T00:00:10Z",
            "server_id": "srv-002",
            "firewall_id": "fw-001",
            "user": "alice",
            "action_type": "CONFIG_WIPE",
            "status": "SUCCESS",
            "ml_risk_score": "0.45",
            "log_source": "SIEM_AGENT",
        },
    ]


def to_csv(rows: list[dict]) -> str:
    """Render rows as CSV text with the standard header."""
    columns = CSV_HEADER.split(",")
    lines = [CSV_HEADER]
    for row in rows:
        lines.append(",".join("" if row.get(c) is None else str(row[c]) for c in columns))
    return "\n".join(lines) + "\n"


@pytest.fixture
def breach_records():
    return ingest_rows(breach_rows()).records


@pytest.fixture
def pair_records():
    return ingest_rows(pair_rows()).records
