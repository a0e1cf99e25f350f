"""
Severity/priority classifier.

Maps the flag text of an event onto a fixed, ordered keyword ladder. The
first tier with a matching keyword wins, so a flag that mentions both
"Severely" and "Risk" is classified as severe. Keyword matching is
case-sensitive because flags come from the rule table, not from free text.
"""

from datetime import UTC, date, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from core.domain.enums import AssignedRole, Priority, RecommendationCategory, Severity

SEVERE_KEYWORDS = ("Severely", "Critical", "High Risk", "Cardiac", "Respiratory")
MODERATE_KEYWORDS = ("Risk", "Problem", "Disease", "Delay", "Failed")

# Urgent follow-up window per rule domain; physical-exam findings are tighter.
URGENT_DAYS_BY_DOMAIN = {"physical": 3}
DEFAULT_URGENT_DAYS = 7
MODERATE_DAYS = 14
MILD_DAYS = 30

_ROLE_KEYWORDS: tuple[tuple[tuple[str, ...], AssignedRole], ...] = (
    (("refer", "doctor"), AssignedRole.DOCTOR),
    (("nutrition", "feeding"), AssignedRole.NUTRITIONIST),
    (("parent", "family"), AssignedRole.PARENT),
)

_CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], RecommendationCategory], ...] = (
    (("refer",), RecommendationCategory.REFERRAL),
    (("immunization", "vaccin"), RecommendationCategory.IMMUNIZATION),
    (("deworming", "medication", "supplementation"), RecommendationCategory.MEDICATION),
    (("nutrition", "feeding"), RecommendationCategory.NUTRITION),
)


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    priority: Priority
    target_date: date
    assigned_to: AssignedRole
    requires_immediate_attention: bool


def _as_date(as_of: date | datetime | None) -> date:
    if as_of is None:
        return datetime.now(UTC).date()
    if isinstance(as_of, datetime):
        return as_of.date()
    return as_of


def _matches(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def assign_role(recommendation: str) -> AssignedRole:
    """Role responsible for a recommendation, from its wording."""
    text = recommendation.lower()
    for keywords, role in _ROLE_KEYWORDS:
        if _matches(text, keywords):
            return role
    return AssignedRole.NURSE


def recommendation_category(recommendation: str) -> RecommendationCategory:
    text = recommendation.lower()
    for keywords, category in _CATEGORY_KEYWORDS:
        if _matches(text, keywords):
            return category
    return RecommendationCategory.FOLLOW_UP


def severity_of(flag: str) -> Severity:
    if _matches(flag, SEVERE_KEYWORDS):
        return Severity.SEVERE
    if _matches(flag, MODERATE_KEYWORDS):
        return Severity.MODERATE
    return Severity.MILD


def classify(
    flag: str,
    recommendation: str = "",
    domain: str | None = None,
    as_of: date | datetime | None = None,
) -> Classification:
    """
    Classify one flag.

    Args:
        flag: Event flag text from the rule table.
        recommendation: Recommendation text, used to pick the responsible role.
        domain: Rule domain that emitted the flag; sets the urgent follow-up window.
        as_of: Reference point for the target date (defaults to today, UTC).
    """
    severity = severity_of(flag)
    if severity is Severity.SEVERE:
        priority = Priority.URGENT
        days = URGENT_DAYS_BY_DOMAIN.get(domain or "", DEFAULT_URGENT_DAYS)
    elif severity is Severity.MODERATE:
        priority = Priority.HIGH
        days = MODERATE_DAYS
    else:
        priority = Priority.MEDIUM
        days = MILD_DAYS

    return Classification(
        severity=severity,
        priority=priority,
        target_date=_as_date(as_of) + timedelta(days=days),
        assigned_to=assign_role(recommendation),
        requires_immediate_attention=severity is Severity.SEVERE,
    )
