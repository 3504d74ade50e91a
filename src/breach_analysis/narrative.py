"""
Narrative Synthesizer: report prose rendered from aggregate values.

Every section is a fixed catalogue of (condition, template) pairs
evaluated against the dataset's aggregates. There is no free-form
generation; identical aggregates always render identical text.
"""

import re
from collections.abc import Callable
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict

from .aggregator import AggregateStatistics
from .config import AnalysisConfig
from .entities import ImpactSeverity
from .formatting import fixed, iso, join_or, quoted
from .timeline import PHASE_ACTIONS

PRIVILEGED_ACCOUNTS = frozenset({"root", "admin", "administrator", "system", "sa", "superuser"})


class Finding(BaseModel):
    """An anomaly or vulnerability finding."""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    severity: Optional[ImpactSeverity] = None


class Narrative(BaseModel):
    """All rendered prose sections of a report."""
    model_config = ConfigDict(frozen=True)

    summary: str
    anomalies: tuple[Finding, ...]
    root_cause_hypothesis: str
    vulnerabilities: tuple[Finding, ...]
    immediate_actions: tuple[str, ...]
    recovery_strategy: tuple[str, ...]
    long_term_prevention: tuple[str, ...]
    dataset_insights: tuple[str, ...]


class NarrativeFacts:
    """Aggregates plus the preformatted values the templates quote."""

    def __init__(self, stats: AggregateStatistics, config=AnalysisConfig):
        self.stats = stats
        self.config = config

        self.total = stats.total_count
        self.threshold = f"{config.CRITICAL_RISK_THRESHOLD:g}"
        self.avg_risk = fixed(stats.risk.mean, 4)
        self.min_risk = fixed(stats.risk.minimum, 4)
        self.max_risk = fixed(stats.risk.maximum, 4)
        self.duration = fixed(stats.temporal.duration_seconds, 2)
        self.eps = fixed(stats.temporal.events_per_second, 2)
        self.first_event = iso(stats.temporal.first_event)
        self.last_event = iso(stats.temporal.last_event)

        self.brute_force = stats.count_for("BRUTE_FORCE")
        self.unauthorized = stats.count_for("UNAUTHORIZED_LOGIN")
        self.malicious = stats.count_for("MALICIOUS_ACCESS")
        self.config_wipe = stats.count_for("CONFIG_WIPE")
        self.phases_present = sum(1 for action in PHASE_ACTIONS if stats.count_for(action))

        self.phantoms = stats.phantom_servers + stats.phantom_firewalls
        self.privileged = tuple(u for u in stats.users if _is_privileged(u))

        low, high = config.STANDARD_ASSET_ID_RANGE
        self.naming_convention = (
            f"srv-{low:03d} to srv-{high:03d}, fw-{low:03d} to fw-{high:03d}"
        )

    @property
    def interval_us(self) -> str:
        interval = self.stats.temporal.mean_interval_seconds
        return fixed((interval or 0.0) * 1_000_000, 1)


def _is_privileged(user: str) -> bool:
    return any(part in PRIVILEGED_ACCOUNTS for part in re.split(r"[_\-.@\s]+", user.lower()))


class CatalogueEntry(NamedTuple):
    """A finding that is rendered when its condition holds."""
    id: str
    title: str
    condition: Callable[[NarrativeFacts], bool]
    template: Callable[[NarrativeFacts], str]
    severity: Optional[ImpactSeverity] = None


class Step(NamedTuple):
    """A remediation step or insight line."""
    condition: Callable[[NarrativeFacts], bool]
    template: Callable[[NarrativeFacts], str]


def _always(_: NarrativeFacts) -> bool:
    return True


def _failure_text(f: NarrativeFacts) -> str:
    if f.stats.failed_pct == "100.0":
        return (
            f"Every single event has FAILED status, yet the attacker generated {f.total} attempts. "
            f"This indicates either defensive controls are effective but the attacker has not relented, "
            f"or the failures are being logged while some parallel attack channel is succeeding undetected."
        )
    return (
        f"{f.stats.failed_pct}% failure rate across {f.total} events. The attacker persisted despite "
        f"repeated failures, suggesting automated retries and possible parallel attack vectors."
    )


def _identity_text(f: NarrativeFacts) -> str:
    text = (
        f"Users observed: {quoted(f.stats.users)}. "
        f"{len(f.stats.users)} distinct identities generated {f.total} events"
    )
    if f.privileged:
        return text + (
            f", including privileged account(s) {quoted(f.privileged)}. The presence of both privileged "
            f"and non-privileged accounts suggests credential theft followed by account creation for persistence."
        )
    return text + (
        ". Several identities acting within one attack window suggests stolen credentials "
        "or attacker-created accounts used for persistence."
    )


ANOMALY_CATALOGUE: tuple[CatalogueEntry, ...] = (
    CatalogueEntry(
        "ANO-001", "Extreme Anomaly Density",
        lambda f: f.stats.critical_count > 0,
        lambda f: (
            f"{f.stats.critical_count}/{f.total} events ({f.stats.critical_pct}%) have ML risk scores "
            f"≥ {f.threshold}. Average risk across all events: {f.avg_risk}. This density is abnormal for "
            f"any production environment and indicates a concerted attack rather than isolated probing."
        ),
    ),
    CatalogueEntry(
        "ANO-002", "Sub-Second Timestamp Clustering",
        lambda f: f.stats.temporal.observed_count >= 2 and f.stats.temporal.duration_seconds < 1.0,
        lambda f: (
            f"All {f.stats.temporal.observed_count} timestamped events fall within a {f.duration}s window. "
            f"The mean interval between entries is {f.interval_us}μs, which indicates automated tool "
            f"execution, not manual intrusion."
        ),
    ),
    CatalogueEntry(
        "ANO-003", "Systematic Field Nullification",
        lambda f: f.stats.corrupted_count > 0,
        lambda f: (
            f"{f.stats.missing_servers} events missing server_id, {f.stats.missing_firewalls} missing "
            f"firewall_id, {f.stats.missing_users} missing user field. Total corrupted entries: "
            f"{f.stats.corrupted_count} ({f.stats.corrupted_pct}%). This pattern suggests deliberate "
            f"header stripping to evade log correlation systems."
        ),
    ),
    CatalogueEntry(
        "ANO-004", "Dual-Identity Attack Pattern",
        lambda f: len(f.stats.users) >= 2,
        _identity_text,
    ),
    CatalogueEntry(
        "ANO-005", "Multi-Phase Attack Chain",
        lambda f: f.phases_present >= 2,
        lambda f: (
            f"The dataset exhibits a kill chain: BRUTE_FORCE ({f.brute_force}) → UNAUTHORIZED_LOGIN "
            f"({f.unauthorized}) → MALICIOUS_ACCESS ({f.malicious}) → CONFIG_WIPE ({f.config_wipe}). "
            f"{f.phases_present} of {len(PHASE_ACTIONS)} phases are present. This progression from "
            f"reconnaissance to destruction is a hallmark of an APT-style intrusion."
        ),
    ),
    CatalogueEntry(
        "ANO-006", "100% Failure Rate with Persistence",
        lambda f: f.stats.failed_count > 0,
        _failure_text,
    ),
    CatalogueEntry(
        "ANO-007", "Non-Standard Infrastructure Identifiers",
        lambda f: bool(f.phantoms),
        lambda f: (
            f"Servers include {quoted(f.stats.servers)}. Identifiers {quoted(f.phantoms)} are outside "
            f"typical naming conventions ({f.naming_convention}), suggesting the attacker is attempting "
            f"to spoof or inject from phantom infrastructure."
        ),
    ),
)


VULNERABILITY_CATALOGUE: tuple[CatalogueEntry, ...] = (
    CatalogueEntry(
        "VULN-001", "Insufficient Brute-Force Rate Limiting",
        lambda f: f.brute_force > 0,
        lambda f: (
            f"{f.brute_force} brute-force attempts were not throttled or blocked. The system allowed "
            f"{f.eps} events/sec without triggering automated lockout. Rate limiting or progressive "
            f"delay must be implemented at authentication endpoints."
        ),
        ImpactSeverity.CRITICAL,
    ),
    CatalogueEntry(
        "VULN-002", "Missing Log Field Validation",
        lambda f: f.stats.corrupted_count > 0,
        lambda f: (
            f"{f.stats.corrupted_count} log entries ({f.stats.corrupted_pct}%) have missing critical "
            f"fields. The logging pipeline does not enforce schema validation, allowing attackers to "
            f"inject malformed entries or strip identifying information."
        ),
        ImpactSeverity.HIGH,
    ),
    CatalogueEntry(
        "VULN-003", "No Multi-Factor Authentication Detected",
        lambda f: f.brute_force + f.unauthorized > 0,
        lambda f: (
            f"All {f.brute_force + f.unauthorized} credential-based attacks targeted single-factor "
            f"authentication. No MFA challenge or secondary verification step was triggered during "
            f"the attack window."
        ),
        ImpactSeverity.CRITICAL,
    ),
    CatalogueEntry(
        "VULN-004", "Configuration Management Unprotected",
        lambda f: f.config_wipe > 0,
        lambda f: (
            f"{f.config_wipe} CONFIG_WIPE attempts indicate configuration management endpoints are "
            f"accessible without additional authorization controls. Critical infrastructure configs "
            f"should require change-approval workflows."
        ),
        ImpactSeverity.CRITICAL,
    ),
    CatalogueEntry(
        "VULN-005", "Phantom Server Requests Not Blocked",
        lambda f: bool(f.phantoms),
        lambda f: (
            f"Requests targeting non-existent infrastructure ({join_or(f.phantoms)}) were processed and "
            f"logged rather than being rejected at the network perimeter. This allows attackers to "
            f"enumerate infrastructure."
        ),
        ImpactSeverity.MEDIUM,
    ),
    CatalogueEntry(
        "VULN-006", "No Real-Time Alert for Anomaly Burst",
        lambda f: f.stats.critical_count > 0,
        lambda f: (
            f"{f.total} events at {f.eps} events/sec did not trigger an automated circuit-breaker or "
            f"real-time SIEM alert. The detection was retroactive rather than proactive."
        ),
        ImpactSeverity.HIGH,
    ),
)


IMMEDIATE_ACTIONS: tuple[Step, ...] = (
    Step(
        lambda f: bool(f.stats.servers),
        lambda f: (
            f"ISOLATE servers {join_or(f.stats.servers)} from the network immediately: "
            f"{f.stats.critical_count} critical-risk events originated from or targeted these assets."
        ),
    ),
    Step(
        lambda f: bool(f.stats.users),
        lambda f: (
            f"REVOKE credentials for users: {join_or(f.stats.users)}. Force password reset and "
            f"invalidate all active sessions."
        ),
    ),
    Step(
        lambda f: bool(f.stats.sources),
        lambda f: (
            f"BLOCK source identifiers: {join_or(f.stats.sources)} at the WAF/perimeter firewall level "
            f"pending full investigation."
        ),
    ),
    Step(
        lambda f: bool(f.stats.firewalls),
        lambda f: (
            f"FREEZE configuration changes on firewalls {join_or(f.stats.firewalls)}: "
            f"{f.config_wipe} CONFIG_WIPE attempts indicate active sabotage."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "ENABLE enhanced logging with full packet capture on all identified assets for forensic "
            "evidence preservation."
        ),
    ),
    Step(
        lambda f: bool(f.phantoms),
        lambda f: (
            f"DEPLOY honeypot instances on {join_or(f.phantoms)} identifiers to detect continued "
            f"attacker reconnection attempts."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "NOTIFY the incident response team and begin evidence collection under chain-of-custody "
            "protocols."
        ),
    ),
)


RECOVERY_STRATEGY: tuple[Step, ...] = (
    Step(
        _always,
        lambda f: (
            f"Perform complete integrity audit of configurations on {len(f.stats.servers)} affected "
            f"servers. Compare against last-known-good configuration snapshots."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Restore any wiped configurations from verified backup (pre-{f.first_event} snapshot). "
            f"Validate backup integrity via checksum before deployment."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Re-image compromised servers if rootkit or persistent backdoor indicators are found "
            "during forensic analysis."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Rotate all API keys, service account tokens, and database credentials that may have been "
            f"exposed during the {f.duration}s attack window."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Conduct full blockchain transaction audit: {f.stats.blockchain_attested} events had "
            f"blockchain_tx hashes and {f.stats.blockchain_missing} did not. Verify ledger integrity."
        ),
    ),
    Step(
        lambda f: bool(f.stats.servers),
        lambda f: (
            f"Perform memory forensics on {join_or(f.stats.servers)} to detect fileless malware or "
            f"injected processes."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Re-establish network segmentation: verify that micro-segmentation rules were not altered "
            "during CONFIG_WIPE attempts."
        ),
    ),
)


LONG_TERM_PREVENTION: tuple[Step, ...] = (
    Step(
        _always,
        lambda f: (
            f"Implement adaptive rate-limiting with exponential backoff on all authentication endpoints. "
            f"Current gap: {f.brute_force} BRUTE_FORCE attempts were not throttled."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Deploy MFA across all privileged accounts. This single control would have prevented "
            f"{f.unauthorized} UNAUTHORIZED_LOGIN attempts."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Add schema validation to the log ingestion pipeline to reject entries with missing critical "
            f"fields (current corruption rate: {f.stats.corrupted_pct}%)."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Implement real-time anomaly detection with auto-response: trigger network isolation when "
            "ML risk score exceeds 0.95 on ≥3 events within 1 second."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Deploy SOAR (Security Orchestration, Automation, Response) playbooks for automated "
            "containment of brute-force campaigns."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Establish configuration change-control with mandatory dual-approval for CONFIG_WIPE "
            "operations on production infrastructure."
        ),
    ),
    Step(
        lambda f: bool(f.phantoms),
        lambda f: (
            f"Create network-level ACLs to reject traffic targeting non-existent infrastructure "
            f"identifiers ({join_or(f.phantoms)} pattern)."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Conduct quarterly red-team exercises simulating this exact attack chain: credential "
            "stuffing → lateral movement → config destruction."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Integrate behavioral analytics to detect impossible-travel and device-switching patterns "
            "in user authentication flows."
        ),
    ),
)


DATASET_INSIGHTS: tuple[Step, ...] = (
    Step(
        _always,
        lambda f: (
            f"The dataset is likely synthetic or simulated, as evidenced by: (1) timestamp clustering "
            f"within a {f.duration}s window, (2) ML risk scores confined to {f.min_risk}–{f.max_risk}, "
            f"and (3) log_source values: {join_or(f.stats.sources)}."
        ),
    ),
    Step(
        _always,
        lambda f: (
            "Despite synthetic characteristics, the attack patterns (kill chain progression, field "
            "nullification, phantom infrastructure probing) accurately model real-world APT behavior "
            "and are suitable for detection rule development."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"For future detection enhancement: train ML models on the relationship between "
            f"corrupted-field density and attack severity. This dataset shows {f.stats.corrupted_pct}% "
            f"corruption correlating with {f.stats.critical_pct}% critical-risk events."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Temporal clustering detection should be added as a primary anomaly signal: {f.total} "
            f"events in {f.duration}s ({f.eps}/sec) far exceeds any legitimate operational baseline."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Cross-reference blockchain_tx hashes against the immutable ledger to verify which "
            f"{f.stats.blockchain_attested} events had valid on-chain attestation vs. potentially "
            f"spoofed transactions."
        ),
    ),
    Step(
        _always,
        lambda f: (
            f"Implement entropy analysis on user and server_id fields: the low cardinality "
            f"({len(f.stats.users)} users, {len(f.stats.servers)} servers) despite {f.total} events is "
            f"itself an anomaly indicator."
        ),
    ),
)


class NarrativeSynthesizer:
    """
    Renders the prose sections of a breach report.

    Catalogues can be replaced per instance, which keeps each section
    testable on its own.
    """

    def __init__(
        self,
        config=AnalysisConfig,
        anomalies: tuple[CatalogueEntry, ...] = ANOMALY_CATALOGUE,
        vulnerabilities: tuple[CatalogueEntry, ...] = VULNERABILITY_CATALOGUE,
    ):
        self.config = config
        self.anomaly_catalogue = anomalies
        self.vulnerability_catalogue = vulnerabilities

    def facts(self, stats: AggregateStatistics) -> NarrativeFacts:
        return NarrativeFacts(stats, self.config)

    @staticmethod
    def _findings(catalogue: tuple[CatalogueEntry, ...], facts: NarrativeFacts) -> tuple[Finding, ...]:
        return tuple(
            Finding(
                id=entry.id,
                title=entry.title,
                description=entry.template(facts),
                severity=entry.severity,
            )
            for entry in catalogue
            if entry.condition(facts)
        )

    @staticmethod
    def _steps(steps: tuple[Step, ...], facts: NarrativeFacts) -> tuple[str, ...]:
        return tuple(step.template(facts) for step in steps if step.condition(facts))

    def summary(self, facts: NarrativeFacts) -> str:
        """Headline paragraph of the report."""
        stats = facts.stats
        parts = [
            f"A coordinated external attack comprising {facts.total} security events was detected "
            f"across {len(stats.servers)} unique server(s) and {len(stats.firewalls)} unique firewall(s)."
        ]

        if stats.temporal.first_event is not None:
            parts.append(
                f"The attack occurred between {facts.first_event} and {facts.last_event} "
                f"(duration: {facts.duration} seconds) at a burst density of {facts.eps} events/sec."
            )
        else:
            parts.append("No parsable timestamps were recorded, so the attack window could not be established.")

        parts.append(
            f"{stats.critical_count} events ({stats.critical_pct}%) exceeded the critical ML risk "
            f"threshold (≥{facts.threshold})."
        )
        parts.append(
            f"{stats.failed_count} ({stats.failed_pct}%) of all actions resulted in FAILED status, "
            f"indicating both automated defense engagement and persistent attacker retries."
        )
        parts.append(
            "Attack types observed: "
            + "; ".join(f"{a.action} ({a.count}, {a.pct}%)" for a in stats.action_breakdown)
            + "."
        )
        parts.append(
            f"{stats.corrupted_count} entries ({stats.corrupted_pct}%) contained missing or malformed "
            f"fields (server_id, firewall_id, user, action_type or timestamp), suggesting either evasion "
            f"techniques or log injection attempts."
        )

        if not stats.sources:
            parts.append("No log_source was recorded for any event.")
        elif stats.missing_sources == 0 and len(stats.sources) == 1:
            parts.append(f"All events originated from log_source: {stats.sources[0]}.")
        else:
            parts.append(
                f"Events originated from log_source(s): {join_or(stats.sources)}; "
                f"{stats.missing_sources} had no source recorded."
            )

        return " ".join(parts)

    def root_cause_hypothesis(self, facts: NarrativeFacts) -> str:
        """Numbered hypotheses, one per observed pattern."""
        stats = facts.stats
        hypotheses: list[tuple[str, str]] = []

        if facts.brute_force:
            hypotheses.append((
                "Automated Credential Stuffing Tool",
                f"The {facts.brute_force} BRUTE_FORCE events within a {facts.duration}s total window "
                f"indicate an automated attack tool rather than manual intrusion. The ML risk scores "
                f"(range {facts.min_risk}–{facts.max_risk}, mean {facts.avg_risk}) suggest a uniform "
                f"attack payload.",
            ))

        if len(stats.users) >= 2:
            if facts.privileged:
                detail = (
                    f"The privileged account(s) {quoted(facts.privileged)} were likely compromised via "
                    f"credential replay, while the remaining identities may be attacker-created "
                    f"persistence accounts."
                )
            else:
                detail = "No privileged account names appear, pointing to stolen or attacker-created accounts."
            hypotheses.append((
                "Identity-Based Attack Vector",
                f"{len(stats.users)} distinct user identities ({quoted(stats.users)}) were used across "
                f"attack types. {detail}",
            ))

        if facts.phases_present >= 2:
            hypotheses.append((
                "Multi-Phase Kill Chain",
                f"The progression BRUTE_FORCE → UNAUTHORIZED_LOGIN → MALICIOUS_ACCESS → CONFIG_WIPE "
                f"follows a textbook attack lifecycle: Initial access → Credential validation → "
                f"Privilege escalation → Data destruction. The CONFIG_WIPE phase ({facts.config_wipe} "
                f"events) indicates the attacker intended to cover tracks and disable defensive "
                f"infrastructure.",
            ))

        if stats.corrupted_count:
            hypotheses.append((
                "Log Evasion via Field Stripping",
                f"{stats.corrupted_count} entries ({stats.corrupted_pct}%) have deliberately nullified "
                f"fields. This anti-forensic technique aims to prevent log correlation across SIEM systems.",
            ))

        if facts.phantoms:
            hypotheses.append((
                "Phantom Infrastructure Probing",
                f"Non-standard identifiers ({join_or(facts.phantoms)}) suggest the attacker probed for "
                f"infrastructure that doesn't exist in the environment, possibly to test monitoring "
                f"blind spots or trigger false allocation of defensive resources.",
            ))

        if not hypotheses:
            return (
                f"Based on observable data patterns: the {facts.total} events show no recognized "
                f"attack pattern; further context is required to establish a root cause."
            )

        body = "\n\n".join(
            f"{i}. **{title}**: {text}" for i, (title, text) in enumerate(hypotheses, 1)
        )
        return f"Based on observable data patterns:\n\n{body}"

    def synthesize(self, stats: AggregateStatistics) -> Narrative:
        """Render every narrative section for ``stats``."""
        facts = self.facts(stats)
        return Narrative(
            summary=self.summary(facts),
            anomalies=self._findings(self.anomaly_catalogue, facts),
            root_cause_hypothesis=self.root_cause_hypothesis(facts),
            vulnerabilities=self._findings(self.vulnerability_catalogue, facts),
            immediate_actions=self._steps(IMMEDIATE_ACTIONS, facts),
            recovery_strategy=self._steps(RECOVERY_STRATEGY, facts),
            long_term_prevention=self._steps(LONG_TERM_PREVENTION, facts),
            dataset_insights=self._steps(DATASET_INSIGHTS, facts),
        )
