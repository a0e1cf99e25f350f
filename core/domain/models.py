"""
Domain models for school health decision support.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation; every model is frozen so a stage can never
patch the output of an earlier one.
"""

from collections.abc import Mapping
from datetime import UTC, date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.domain.enums import (
    AlertType,
    AreaSeverity,
    AssignedRole,
    HealthStatus,
    Priority,
    ProgramCategory,
    RecommendationCategory,
    RiskLevel,
    Severity,
)
from core.domain.facts import FactMap


class Event(BaseModel):
    """Emitted by a rule whose conditions hold for a fact map."""

    model_config = ConfigDict(frozen=True)

    domain: str
    rule: str
    code: str
    counter: str | None = Field(
        default=None, description="Dotted counter path, e.g. nutritionalIssues.underweight"
    )
    flag: str | None = Field(default=None, description="Human-readable finding descriptor")
    recommendation: str | None = None
    alert_type: AlertType = AlertType.OTHER
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def category(self) -> str | None:
        return self.counter.split(".", 1)[0] if self.counter else None

    @property
    def condition(self) -> str | None:
        if not self.counter or "." not in self.counter:
            return None
        return self.counter.split(".", 1)[1]

    def identity(self) -> tuple[str, str, str, str | None, str | None]:
        """Hashable identity used to compare event lists as sets."""
        return (self.domain, self.rule, self.code, self.counter, self.flag)


class Alert(BaseModel):
    """A classified single-record finding."""

    model_config = ConfigDict(frozen=True)

    type: AlertType
    code: str
    severity: Severity
    description: str
    recommended_action: str
    requires_immediate_attention: bool = False

    @model_validator(mode="after")
    def immediate_attention_requires_severe(self) -> "Alert":
        if self.requires_immediate_attention and self.severity is not Severity.SEVERE:
            raise ValueError("only SEVERE alerts may require immediate attention")
        return self


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: RecommendationCategory
    description: str
    priority: Priority
    target_date: date
    assigned_to: AssignedRole


class FlaggedCondition(BaseModel):
    """Longitudinal marker kept on a record until it is cleared."""

    model_config = ConfigDict(frozen=True)

    condition: str
    code: str
    description: str
    requires_monitoring: bool = True


class Assessment(BaseModel):
    """Record-level result, rebuilt from scratch on every engine run."""

    model_config = ConfigDict(frozen=True)

    overall_health_status: HealthStatus
    risk_level: RiskLevel
    alerts: list[Alert] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    flagged_conditions: list[FlaggedCondition] = Field(default_factory=list)

    @property
    def has_severe_alert(self) -> bool:
        return any(alert.severity is Severity.SEVERE for alert in self.alerts)


class AssessedRecord(BaseModel):
    """An assessment together with the record attributes used for filtering."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    group: str = Field(default="Unspecified", description="Grade level or position")
    is_approved: bool = False
    facts: FactMap
    assessment: Assessment


class FindingStat(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = Field(ge=0)
    percentage: int = Field(ge=0)


class PriorityArea(BaseModel):
    """A population-level condition whose prevalence crossed the reporting threshold."""

    model_config = ConfigDict(frozen=True)

    category: str
    condition: str
    count: int = Field(ge=0)
    percentage: int = Field(ge=0)
    severity: AreaSeverity


class GroupBreakdown(BaseModel):
    """Counters scoped to one grouping key (grade level or position)."""

    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0)
    findings: dict[str, dict[str, FindingStat]] = Field(default_factory=dict)
    risk_levels: dict[str, FindingStat] = Field(default_factory=dict)


class AggregationResult(BaseModel):
    """Population counters for one aggregation call."""

    model_config = ConfigDict(frozen=True)

    total_records: int = Field(ge=0, description="Records supplied after filtering")
    valid_records: int = Field(ge=0, description="Records that evaluated successfully")
    excluded_record_ids: list[str] = Field(default_factory=list)
    common_findings: dict[str, dict[str, FindingStat]] = Field(default_factory=dict)
    risk_analysis: dict[str, FindingStat] = Field(default_factory=dict)
    grade_breakdown: dict[str, GroupBreakdown] = Field(default_factory=dict)
    priority_areas: list[PriorityArea] = Field(default_factory=list)

    def percentage_of(self, category: str, condition: str) -> int:
        stat = self.common_findings.get(category, {}).get(condition)
        return stat.percentage if stat else 0


class ProgramRecommendation(BaseModel):
    """Structured, role-assignable program recommendation for a population."""

    model_config = ConfigDict(frozen=True)

    category: ProgramCategory
    priority: Priority
    title: str
    description: str
    actions: list[str] = Field(min_length=1)
    assigned_to: AssignedRole
    target_date: date


class PopulationReport(AggregationResult):
    """Aggregation plus program recommendations for a named scope."""

    scope: str = Field(default="custom", description="School id, personnel scope or custom")
    recommendations: list[ProgramRecommendation] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class AlertBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    normal: int = 0
    needs_monitoring: int = 0
    escalate: int = 0
    total: int = 0


class PreventiveCoverage(BaseModel):
    """Coverage of preventive programs across a population."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    dewormed: FindingStat = FindingStat(count=0, percentage=0)
    iron_supplemented: FindingStat = FindingStat(count=0, percentage=0)
    immunization_complete: FindingStat = FindingStat(count=0, percentage=0)


class PriorityActions(BaseModel):
    model_config = ConfigDict(frozen=True)

    immediate_actions: list[Alert] = Field(default_factory=list)
    priority_recommendations: list[Recommendation] = Field(default_factory=list)


def _exam_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None


class ReportFilters(BaseModel):
    """Scope of a population report: exam date range and grade level."""

    model_config = ConfigDict(frozen=True)

    start_date: date | None = None
    end_date: date | None = None
    grade: str | None = None

    @property
    def has_inverted_range(self) -> bool:
        return (
            self.start_date is not None
            and self.end_date is not None
            and self.start_date > self.end_date
        )

    def matches(self, record: Any) -> bool:
        """True when a raw record falls inside this scope.

        Records that are not mappings are let through so the aggregator can
        report them as malformed.
        """
        if not isinstance(record, Mapping):
            return True
        if self.grade is not None and record.get("grade") != self.grade:
            return False
        if self.start_date is None and self.end_date is None:
            return True

        findings = record.get("findings", record)
        if findings is None:
            findings = {}
        if not isinstance(findings, Mapping):
            return True
        examined_on = _exam_date(findings.get("dateOfExamination"))
        if examined_on is None:
            return False
        if self.start_date is not None and examined_on < self.start_date:
            return False
        if self.end_date is not None and examined_on > self.end_date:
            return False
        return True
