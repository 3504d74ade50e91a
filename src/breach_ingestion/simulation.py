"""
Synthetic attack rows for demos and tests.

The rows mimic a burst of external high-risk activity: the server id is
stripped, every event hits the same phantom firewall and account, and
the risk score sits well above the critical threshold.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

SIMULATED_FIREWALL = "fw-999"
SIMULATED_USER = "hacker_root"
SIMULATED_ACTION = "UNAUTHORIZED_CONFIG_CHANGE"
SIMULATED_RISK = 0.99
SIMULATED_SOURCE = "EXTERNAL_ATTACK"


def simulate_attack_rows(count: int = 100, now: Optional[datetime] = None) -> list[dict]:
    """
    Build ``count`` attack rows stamped a few microseconds apart from ``now``.

    Args:
        count: Number of rows to generate
        now: Timestamp of the first row (defaults to the current UTC time)

    Returns:
        List of row dictionaries keyed by the recognized column names
    """
    start = now or datetime.now(timezone.utc)
    rows = []
    for i in range(count):
        rows.append({
            "timestamp": (start + timedelta(microseconds=7 * i)).isoformat(),
            "server_id": None,
            "firewall_id": SIMULATED_FIREWALL,
            "user": SIMULATED_USER,
            "action_type": SIMULATED_ACTION,
            "ml_risk_score": SIMULATED_RISK,
            "log_source": SIMULATED_SOURCE,
            "notes": f"Anomalous activity packet #{i}",
        })
    return rows
