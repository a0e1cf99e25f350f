"""
Program recommendations for a population.

Turns priority areas, the high-risk share and preventive-care coverage gaps
into structured recommendations. Each program category carries a fixed
action list and a responsible role; conditions with no program mapping are
skipped.
"""

from datetime import UTC, date, datetime, timedelta
from typing import NamedTuple

from core.config import ThresholdConfig
from core.domain.enums import AssignedRole, Priority, ProgramCategory, RiskLevel
from core.domain.models import AggregationResult, PriorityArea, ProgramRecommendation

PREVENTIVE_CATEGORY = "preventiveCare"

TARGET_DAYS_BY_PRIORITY = {
    Priority.URGENT: 7,
    Priority.HIGH: 14,
    Priority.MEDIUM: 30,
    Priority.LOW: 60,
}


class ProgramTemplate(NamedTuple):
    actions: tuple[str, ...]
    assigned_to: AssignedRole


class ConditionProgram(NamedTuple):
    category: ProgramCategory
    priority: Priority
    title: str


PROGRAM_TEMPLATES: dict[ProgramCategory, ProgramTemplate] = {
    ProgramCategory.HEALTH_INTERVENTION: ProgramTemplate(
        (
            "Schedule immediate medical consultations",
            "Develop individual health management plans",
            "Notify parents/guardians",
            "Coordinate with healthcare providers",
        ),
        AssignedRole.DOCTOR,
    ),
    ProgramCategory.NUTRITION_PROGRAM: ProgramTemplate(
        (
            "Implement school feeding program",
            "Provide nutrition education to parents",
            "Monitor weight and height monthly",
            "Coordinate with local health units",
        ),
        AssignedRole.NUTRITIONIST,
    ),
    ProgramCategory.HEALTHY_LIFESTYLE_PROGRAM: ProgramTemplate(
        (
            "Promote daily physical activity sessions",
            "Review canteen food offerings",
            "Provide nutrition counseling to affected learners",
        ),
        AssignedRole.TEACHER,
    ),
    ProgramCategory.VISION_PROGRAM: ProgramTemplate(
        (
            "Refer affected learners for eye examination",
            "Coordinate provision of eyeglasses",
            "Adjust classroom seating arrangements",
        ),
        AssignedRole.NURSE,
    ),
    ProgramCategory.HEARING_PROGRAM: ProgramTemplate(
        (
            "Refer affected learners for audiometric evaluation",
            "Inform teachers of learners with hearing difficulty",
            "Re-screen at the next examination cycle",
        ),
        AssignedRole.NURSE,
    ),
    ProgramCategory.HYGIENE_PROGRAM: ProgramTemplate(
        (
            "Conduct hygiene education sessions",
            "Provide treatment to affected learners",
            "Inform parents on home care and prevention",
        ),
        AssignedRole.NURSE,
    ),
    ProgramCategory.VACCINATION_PROGRAM: ProgramTemplate(
        (
            "Coordinate with Department of Health",
            "Send immunization reminders",
            "Update records",
        ),
        AssignedRole.NURSE,
    ),
    ProgramCategory.DEWORMING_PROGRAM: ProgramTemplate(
        (
            "Schedule school-wide program",
            "Educate about parasitic infections",
            "Coordinate with health centers",
        ),
        AssignedRole.NURSE,
    ),
}

CONDITION_PROGRAMS: dict[str, ConditionProgram] = {
    "severelyUnderweight": ConditionProgram(
        ProgramCategory.NUTRITION_PROGRAM, Priority.URGENT, "Severe Malnutrition Intervention"
    ),
    "underweight": ConditionProgram(
        ProgramCategory.NUTRITION_PROGRAM, Priority.HIGH, "Malnutrition Intervention"
    ),
    "severelyStunted": ConditionProgram(
        ProgramCategory.NUTRITION_PROGRAM, Priority.HIGH, "Growth Recovery Program"
    ),
    "stunted": ConditionProgram(
        ProgramCategory.NUTRITION_PROGRAM, Priority.HIGH, "Growth Monitoring and Feeding"
    ),
    "overweight": ConditionProgram(
        ProgramCategory.HEALTHY_LIFESTYLE_PROGRAM, Priority.MEDIUM, "Healthy Lifestyle Program"
    ),
    "obese": ConditionProgram(
        ProgramCategory.HEALTHY_LIFESTYLE_PROGRAM, Priority.HIGH, "Obesity Prevention Program"
    ),
    "vision": ConditionProgram(ProgramCategory.VISION_PROGRAM, Priority.HIGH, "Vision Care Program"),
    "hearing": ConditionProgram(
        ProgramCategory.HEARING_PROGRAM, Priority.HIGH, "Hearing Care Program"
    ),
    "lice": ConditionProgram(
        ProgramCategory.HYGIENE_PROGRAM, Priority.MEDIUM, "Head Lice Management"
    ),
    "skinInfections": ConditionProgram(
        ProgramCategory.HYGIENE_PROGRAM, Priority.MEDIUM, "Skin Hygiene Program"
    ),
}


def _today(as_of: date | datetime | None) -> date:
    if as_of is None:
        return datetime.now(UTC).date()
    return as_of.date() if isinstance(as_of, datetime) else as_of


def _recommend(
    category: ProgramCategory,
    priority: Priority,
    title: str,
    description: str,
    today: date,
) -> ProgramRecommendation:
    template = PROGRAM_TEMPLATES[category]
    return ProgramRecommendation(
        category=category,
        priority=priority,
        title=title,
        description=description,
        actions=list(template.actions),
        assigned_to=template.assigned_to,
        target_date=today + timedelta(days=TARGET_DAYS_BY_PRIORITY[priority]),
    )


def _for_area(area: PriorityArea, today: date) -> ProgramRecommendation | None:
    program = CONDITION_PROGRAMS.get(area.condition)
    if program is None:
        return None
    return _recommend(
        program.category,
        program.priority,
        program.title,
        f"{area.percentage}% of examined records show {area.condition} ({area.count} records)",
        today,
    )


def generate_recommendations(
    aggregation: AggregationResult,
    thresholds: ThresholdConfig | None = None,
    as_of: date | datetime | None = None,
) -> list[ProgramRecommendation]:
    """Program recommendations for an aggregation, most urgent rules first."""
    thresholds = thresholds or ThresholdConfig()
    today = _today(as_of)
    recommendations: list[ProgramRecommendation] = []

    high_risk = aggregation.risk_analysis.get(RiskLevel.HIGH.value)
    if high_risk is not None and high_risk.percentage > thresholds.high_risk_alert_threshold:
        recommendations.append(
            _recommend(
                ProgramCategory.HEALTH_INTERVENTION,
                Priority.URGENT,
                "High-Risk Student Management",
                f"{high_risk.percentage}% of records ({high_risk.count}) are high risk "
                "and need immediate attention",
                today,
            )
        )

    for area in aggregation.priority_areas:
        if area.percentage < thresholds.program_threshold:
            continue
        recommendation = _for_area(area, today)
        if recommendation is not None:
            recommendations.append(recommendation)

    immunization_gap = aggregation.percentage_of(PREVENTIVE_CATEGORY, "incompleteImmunization")
    if immunization_gap > thresholds.immunization_gap_threshold:
        recommendations.append(
            _recommend(
                ProgramCategory.VACCINATION_PROGRAM,
                Priority.HIGH,
                "Immunization Campaign",
                f"{immunization_gap}% of records have incomplete immunization",
                today,
            )
        )

    deworming_gap = aggregation.percentage_of(PREVENTIVE_CATEGORY, "notDewormed")
    if deworming_gap > thresholds.deworming_gap_threshold:
        recommendations.append(
            _recommend(
                ProgramCategory.DEWORMING_PROGRAM,
                Priority.MEDIUM,
                "Mass Deworming Campaign",
                f"{deworming_gap}% of records have not been dewormed",
                today,
            )
        )

    return recommendations
