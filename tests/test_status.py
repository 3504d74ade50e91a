"""
Tests for the system status check and policy gate
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import datetime, timedelta, timezone

from src.breach_ingestion import LogRecord, ingest_rows, simulate_attack_rows
from src.breach_analysis.status import assess_system_status, evaluate_policy_change

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _record(minutes_ago: float, risk: float) -> LogRecord:
    moment = NOW - timedelta(minutes=minutes_ago)
    return LogRecord(timestamp=moment.isoformat(), observed_at=moment, ml_risk_score=risk)


class TestAssessSystemStatus:
    """Test the active-threat check."""

    def test_recent_critical_event_means_under_attack(self):
        status = assess_system_status([_record(2, 0.95)], now=NOW)

        assert status.is_under_attack
        assert status.recent_critical_count == 1
        assert status.window_start == NOW - timedelta(minutes=10)
        assert status.checked_at == NOW

    def test_old_events_are_ignored(self):
        status = assess_system_status([_record(30, 0.99)], now=NOW)

        assert not status.is_under_attack
        assert status.recent_critical_count == 0

    def test_low_risk_events_are_ignored(self):
        status = assess_system_status([_record(1, 0.5), _record(1, 0.89)], now=NOW)
        assert not status.is_under_attack

    def test_custom_window(self):
        records = [_record(30, 0.99)]

        assert assess_system_status(records, now=NOW, window=timedelta(hours=1)).is_under_attack

    def test_records_without_timestamp_are_not_counted(self):
        status = assess_system_status([LogRecord(ml_risk_score=1.0)], now=NOW)
        assert not status.is_under_attack

    def test_simulated_attack_triggers_status(self):
        records = ingest_rows(simulate_attack_rows(100, now=NOW - timedelta(minutes=1))).records
        status = assess_system_status(records, now=NOW)

        assert status.is_under_attack
        assert status.recent_critical_count == 100

    def test_no_state_is_kept_between_calls(self):
        assess_system_status([_record(1, 0.99)], now=NOW)

        assert not assess_system_status([], now=NOW).is_under_attack

    def test_naive_now_is_taken_as_utc(self):
        status = assess_system_status([_record(2, 0.95)], now=NOW.replace(tzinfo=None))

        assert status.is_under_attack
        assert status.checked_at == NOW


class TestEvaluatePolicyChange:
    """Test the policy gate."""

    def test_change_is_accepted_when_quiet(self):
        status = assess_system_status([], now=NOW)
        decision = evaluate_policy_change(status, "allow-ssh", requested_by="admin")

        assert decision.accepted
        assert not decision.rollback
        assert decision.audit_record is None

    def test_change_is_rolled_back_under_attack(self):
        status = assess_system_status([_record(1, 0.99)], now=NOW)
        decision = evaluate_policy_change(status, "allow-ssh", requested_by="admin")

        assert not decision.accepted
        assert decision.rollback
        assert "rolled back" in decision.message

        audit = decision.audit_record
        assert audit.action_type == "POLICY_ROLLBACK"
        assert audit.log_source == "INTERNAL_AGENT"
        assert audit.ml_risk_score == 1.0
        assert audit.user == "admin"
        assert audit.policy_name == "allow-ssh"
        assert audit.notes == "Internal Agent automatically rolled back policy: allow-ssh"
        assert audit.observed_at == NOW
        assert audit.timestamp == "2024-06-01T12:00:00Z"
