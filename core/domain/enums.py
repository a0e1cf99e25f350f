"""
Enumerations shared by the decision-support models.

Values are the upper-case strings stored on persisted assessments, so the
enums compare equal to the raw strings found in exam records.
"""

from enum import Enum


class Severity(str, Enum):
    """Clinical severity of a single-record alert."""

    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"


class Priority(str, Enum):
    """Follow-up priority of a recommendation."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RiskLevel(str, Enum):
    """Record-level risk. UNKNOWN marks an unclassified record and is unordered."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"
    UNKNOWN = "UNKNOWN"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.UNKNOWN: -1,
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.URGENT: 3,
}


class HealthStatus(str, Enum):
    """Overall health status derived from risk level and alerts."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"


class AssignedRole(str, Enum):
    """Role responsible for acting on a recommendation."""

    NURSE = "NURSE"
    DOCTOR = "DOCTOR"
    NUTRITIONIST = "NUTRITIONIST"
    PARENT = "PARENT"
    TEACHER = "TEACHER"


class AlertType(str, Enum):
    NUTRITIONAL = "NUTRITIONAL"
    VISION = "VISION"
    HEARING = "HEARING"
    CARDIAC = "CARDIAC"
    RESPIRATORY = "RESPIRATORY"
    INFECTION = "INFECTION"
    GROWTH = "GROWTH"
    PREVENTIVE = "PREVENTIVE"
    OTHER = "OTHER"


class RecommendationCategory(str, Enum):
    """Category of a single-record clinical recommendation."""

    REFERRAL = "REFERRAL"
    IMMUNIZATION = "IMMUNIZATION"
    MEDICATION = "MEDICATION"
    NUTRITION = "NUTRITION"
    FOLLOW_UP = "FOLLOW_UP"


class ProgramCategory(str, Enum):
    """Category of a population-level program recommendation."""

    HEALTH_INTERVENTION = "HEALTH_INTERVENTION"
    NUTRITION_PROGRAM = "NUTRITION_PROGRAM"
    HEALTHY_LIFESTYLE_PROGRAM = "HEALTHY_LIFESTYLE_PROGRAM"
    VISION_PROGRAM = "VISION_PROGRAM"
    HEARING_PROGRAM = "HEARING_PROGRAM"
    HYGIENE_PROGRAM = "HYGIENE_PROGRAM"
    VACCINATION_PROGRAM = "VACCINATION_PROGRAM"
    DEWORMING_PROGRAM = "DEWORMING_PROGRAM"


class AreaSeverity(str, Enum):
    """Prevalence bucket of a priority area."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class FilterCategory(str, Enum):
    """Categories accepted by the assessed-record filter."""

    NOT_DEWORMED = "notDewormed"
    IMMUNIZATION_INCOMPLETE = "immunizationIncomplete"
    VISION_ISSUES = "visionIssues"
    HEARING_ISSUES = "hearingIssues"
    PENDING_APPROVAL = "pendingApproval"
    HIGH_RISK = "highRisk"
    MEDIUM_RISK = "mediumRisk"
    LOW_RISK = "lowRisk"
    UNCLASSIFIED = "unclassified"
