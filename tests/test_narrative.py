"""
Tests for the Narrative Synthesizer
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import datetime, timezone

from src.breach_ingestion import ingest_rows, simulate_attack_rows
from src.breach_analysis.aggregator import aggregate
from src.breach_analysis.entities import ImpactSeverity
from src.breach_analysis.narrative import (
    ANOMALY_CATALOGUE,
    CatalogueEntry,
    NarrativeSynthesizer,
)

from conftest import pair_rows


def _ids(findings):
    return [f.id for f in findings]


def _simulated_stats():
    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return aggregate(ingest_rows(simulate_attack_rows(50, now=start)).records)


class TestAnomalies:
    """Test the anomaly catalogue conditions."""

    def test_scenario_anomalies(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))

        assert _ids(narrative.anomalies) == [
            "ANO-001", "ANO-002", "ANO-003", "ANO-004", "ANO-005", "ANO-006"
        ]

    def test_total_failure_wording(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))
        failure = next(f for f in narrative.anomalies if f.id == "ANO-006")

        assert failure.description.startswith("Every single event has FAILED status")

    def test_partial_failure_wording(self, pair_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(pair_records))
        failure = next(f for f in narrative.anomalies if f.id == "ANO-006")

        assert failure.description.startswith("50.0% failure rate across 2 events")

    def test_anomaly_density_quotes_values(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))
        density = narrative.anomalies[0]

        assert density.title == "Extreme Anomaly Density"
        assert density.description.startswith("100/100 events (100.0%) have ML risk scores ≥ 0.9.")

    def test_privileged_accounts_are_named(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))
        identity = next(f for f in narrative.anomalies if f.id == "ANO-004")

        assert '"root"' in identity.description
        assert "privileged account(s)" in identity.description

    def test_phantom_infrastructure(self):
        narrative = NarrativeSynthesizer().synthesize(_simulated_stats())
        ids = _ids(narrative.anomalies)

        assert "ANO-007" in ids
        assert "ANO-004" not in ids  # one account only
        assert "ANO-005" not in ids  # no phase actions
        phantom = next(f for f in narrative.anomalies if f.id == "ANO-007")
        assert '"fw-999"' in phantom.description

    def test_clean_dataset_has_few_findings(self):
        rows = [
            {
                "timestamp": f"2024-01-01T00:0{i}:00Z", "server_id": "srv-001",
                "firewall_id": "fw-001", "user": "alice", "action_type": "LOGIN",
                "status": "SUCCESS", "ml_risk_score": "0.1",
            }
            for i in range(3)
        ]
        narrative = NarrativeSynthesizer().synthesize(aggregate(ingest_rows(rows).records))

        assert narrative.anomalies == ()
        assert narrative.vulnerabilities == ()
        assert "no recognized attack pattern" in narrative.root_cause_hypothesis

    def test_custom_catalogue(self, pair_records):
        catalogue = ANOMALY_CATALOGUE + (
            CatalogueEntry("ANO-900", "Always", lambda f: True, lambda f: f"{f.total} events"),
        )
        narrative = NarrativeSynthesizer(anomalies=catalogue).synthesize(aggregate(pair_records))

        assert narrative.anomalies[-1].description == "2 events"


class TestVulnerabilities:
    """Test the vulnerability catalogue."""

    def test_scenario_vulnerabilities(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))

        assert _ids(narrative.vulnerabilities) == [
            "VULN-001", "VULN-002", "VULN-003", "VULN-004", "VULN-006"
        ]
        assert all(v.severity is not None for v in narrative.vulnerabilities)

    def test_severities(self):
        narrative = NarrativeSynthesizer().synthesize(_simulated_stats())
        severities = {v.id: v.severity for v in narrative.vulnerabilities}

        assert severities["VULN-002"] == ImpactSeverity.HIGH
        assert severities["VULN-005"] == ImpactSeverity.MEDIUM
        assert "VULN-001" not in severities


class TestSections:
    """Test the summary, hypotheses and remediation lists."""

    def test_summary_is_data_grounded(self, breach_records):
        summary = NarrativeSynthesizer().synthesize(aggregate(breach_records)).summary

        assert summary.startswith(
            "A coordinated external attack comprising 100 security events was detected "
            "across 5 unique server(s) and 3 unique firewall(s)."
        )
        assert "between 2024-03-01T10:00:00Z and 2024-03-01T10:00:00.000693Z" in summary
        assert "BRUTE_FORCE (25, 25.0%)" in summary
        assert summary.endswith("All events originated from log_source: SIEM_AGENT.")

    def test_summary_without_timestamps(self):
        stats = aggregate(ingest_rows([{"user": "root"}]).records)
        summary = NarrativeSynthesizer().synthesize(stats).summary

        assert "attack window could not be established" in summary
        assert summary.endswith("No log_source was recorded for any event.")

    def test_root_cause_is_numbered(self, breach_records):
        text = NarrativeSynthesizer().synthesize(aggregate(breach_records)).root_cause_hypothesis

        assert text.startswith("Based on observable data patterns:")
        assert "1. **Automated Credential Stuffing Tool**" in text
        assert "3. **Multi-Phase Kill Chain**" in text
        assert "Phantom Infrastructure Probing" not in text

    def test_remediation_lists(self, breach_records):
        narrative = NarrativeSynthesizer().synthesize(aggregate(breach_records))

        assert len(narrative.immediate_actions) == 6
        assert narrative.immediate_actions[0].startswith("ISOLATE servers srv-001")
        assert len(narrative.recovery_strategy) == 7
        assert len(narrative.long_term_prevention) == 8
        assert len(narrative.dataset_insights) == 6

    def test_phantom_steps_quote_detected_ids(self):
        narrative = NarrativeSynthesizer().synthesize(_simulated_stats())

        assert any(a.startswith("DEPLOY honeypot instances on fw-999") for a in narrative.immediate_actions)
        assert not any(a.startswith("ISOLATE") for a in narrative.immediate_actions)
        assert any("(fw-999 pattern)" in s for s in narrative.long_term_prevention)

    def test_rendering_is_deterministic(self):
        stats = aggregate(ingest_rows(pair_rows()).records)

        assert NarrativeSynthesizer().synthesize(stats) == NarrativeSynthesizer().synthesize(stats)
