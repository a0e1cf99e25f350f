"""
Per-record assessment builder.

Turns the classified events of one record into the assessment persisted on
that record. The result depends only on the multiset of events, the facts
and the reference date: alerts, recommendations and flagged conditions are
sorted by a total key, so building twice from the same inputs gives equal
objects regardless of event order.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime

from core.domain.enums import HealthStatus, Priority, RiskLevel, Severity
from core.domain.facts import FactMap
from core.domain.models import Alert, Assessment, Event, FlaggedCondition, Recommendation
from core.services.classifier import classify, recommendation_category

DEFAULT_ACTION = "Monitor at the school clinic and re-examine at the next visit"

_MONITORED_KEYWORDS = ("Risk", "Delay")

_SEVERITY_RANK = {Severity.SEVERE: 0, Severity.MODERATE: 1, Severity.MILD: 2}
_PRIORITY_RANK = {Priority.URGENT: 0, Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}


def record_risk_level(declared: RiskLevel, alerts: Sequence[Alert]) -> RiskLevel:
    """Declared risk, with unclassified treated as MEDIUM and SEVERE alerts raising it to URGENT."""
    risk = RiskLevel.MEDIUM if declared is RiskLevel.UNKNOWN else declared
    if any(alert.severity is Severity.SEVERE for alert in alerts):
        return RiskLevel.URGENT
    return risk


def derive_health_status(risk: RiskLevel, alerts: Iterable[Alert]) -> HealthStatus:
    """Overall health status from the record risk level and its alerts."""
    severe = moderate = 0
    for alert in alerts:
        if alert.severity is Severity.SEVERE:
            severe += 1
        elif alert.severity is Severity.MODERATE:
            moderate += 1

    if risk is RiskLevel.URGENT or severe > 0:
        return HealthStatus.CRITICAL
    if risk is RiskLevel.HIGH or severe > 1:
        return HealthStatus.POOR
    if risk is RiskLevel.MEDIUM or moderate > 2:
        return HealthStatus.FAIR
    if moderate > 0:
        return HealthStatus.GOOD
    return HealthStatus.EXCELLENT


def build_assessment(
    events: Iterable[Event],
    facts: FactMap,
    as_of: date | datetime | None = None,
) -> Assessment:
    """Build a fresh assessment from the events of one rule-engine run.

    Counter-only events (no flag) are ignored here; they only feed population
    counters.
    """
    alerts: list[Alert] = []
    recommendations: list[Recommendation] = []
    flagged: list[FlaggedCondition] = []

    for event in events:
        if not event.flag:
            continue
        action = event.recommendation or DEFAULT_ACTION
        result = classify(event.flag, action, event.domain, as_of)

        alerts.append(
            Alert(
                type=event.alert_type,
                code=event.code,
                severity=result.severity,
                description=event.flag,
                recommended_action=action,
                requires_immediate_attention=result.requires_immediate_attention,
            )
        )
        recommendations.append(
            Recommendation(
                category=recommendation_category(action),
                description=action,
                priority=result.priority,
                target_date=result.target_date,
                assigned_to=result.assigned_to,
            )
        )
        if result.severity is Severity.SEVERE or any(
            keyword in event.flag for keyword in _MONITORED_KEYWORDS
        ):
            flagged.append(
                FlaggedCondition(
                    condition=event.condition or event.rule,
                    code=event.code,
                    description=event.flag,
                )
            )

    alerts.sort(key=lambda a: (_SEVERITY_RANK[a.severity], a.code, a.description))
    recommendations.sort(
        key=lambda r: (_PRIORITY_RANK[r.priority], r.target_date, r.description)
    )
    flagged.sort(key=lambda f: (f.code, f.description))

    risk = record_risk_level(facts.declared_risk, alerts)
    return Assessment(
        overall_health_status=derive_health_status(risk, alerts),
        risk_level=risk,
        alerts=alerts,
        recommendations=recommendations,
        flagged_conditions=flagged,
    )
