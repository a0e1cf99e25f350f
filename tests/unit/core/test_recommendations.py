"""
Tests for program recommendations.

Covers:
- High-risk share triggers an urgent intervention
- Condition mapping for priority areas at or above 15%
- Unmapped conditions are skipped
- Immunization and deworming coverage gaps
- Fixed action lists, roles and target dates
- Empty aggregations produce no recommendations
"""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from core.config import ThresholdConfig
from core.domain.enums import AreaSeverity, AssignedRole, Priority, ProgramCategory
from core.domain.models import AggregationResult, FindingStat, PriorityArea
from core.services.recommendations import PROGRAM_TEMPLATES, generate_recommendations


def _area(category: str, condition: str, percentage: int) -> PriorityArea:
    return PriorityArea(
        category=category,
        condition=condition,
        count=percentage,
        percentage=percentage,
        severity=AreaSeverity.HIGH if percentage >= 25 else AreaSeverity.MEDIUM,
    )


def _aggregation(
    areas: list[PriorityArea] | None = None,
    high_risk: int = 0,
    immunization_gap: int = 0,
    deworming_gap: int = 0,
) -> AggregationResult:
    return AggregationResult(
        total_records=100,
        valid_records=100,
        common_findings={
            "preventiveCare": {
                "incompleteImmunization": FindingStat(count=immunization_gap, percentage=immunization_gap),
                "notDewormed": FindingStat(count=deworming_gap, percentage=deworming_gap),
            }
        },
        risk_analysis={"HIGH": FindingStat(count=high_risk, percentage=high_risk)},
        priority_areas=areas or [],
    )


class TestHighRisk:
    def test_above_five_percent_is_urgent(self, as_of: date) -> None:
        [rec] = generate_recommendations(_aggregation(high_risk=6), as_of=as_of)

        assert rec.category is ProgramCategory.HEALTH_INTERVENTION
        assert rec.priority is Priority.URGENT
        assert rec.title == "High-Risk Student Management"
        assert rec.actions == [
            "Schedule immediate medical consultations",
            "Develop individual health management plans",
            "Notify parents/guardians",
            "Coordinate with healthcare providers",
        ]
        assert rec.target_date == as_of + timedelta(days=7)

    def test_exactly_five_percent_is_not_enough(self, as_of: date) -> None:
        assert generate_recommendations(_aggregation(high_risk=5), as_of=as_of) == []


class TestPriorityAreaPrograms:
    @pytest.mark.parametrize(
        ("category", "condition", "program"),
        [
            ("nutritionalIssues", "underweight", ProgramCategory.NUTRITION_PROGRAM),
            ("nutritionalIssues", "stunted", ProgramCategory.NUTRITION_PROGRAM),
            ("nutritionalIssues", "obese", ProgramCategory.HEALTHY_LIFESTYLE_PROGRAM),
            ("screeningFailures", "vision", ProgramCategory.VISION_PROGRAM),
            ("screeningFailures", "hearing", ProgramCategory.HEARING_PROGRAM),
            ("physicalConditions", "lice", ProgramCategory.HYGIENE_PROGRAM),
            ("physicalConditions", "skinInfections", ProgramCategory.HYGIENE_PROGRAM),
        ],
    )
    def test_mapped_conditions(
        self, category: str, condition: str, program: ProgramCategory, as_of: date
    ) -> None:
        recs = generate_recommendations(
            _aggregation([_area(category, condition, 20)]), as_of=as_of
        )

        assert [r.category for r in recs] == [program]
        assert recs[0].actions == list(PROGRAM_TEMPLATES[program].actions)
        assert recs[0].assigned_to is PROGRAM_TEMPLATES[program].assigned_to
        assert "20%" in recs[0].description

    def test_underweight_program(self, as_of: date) -> None:
        [rec] = generate_recommendations(
            _aggregation([_area("nutritionalIssues", "underweight", 18)]), as_of=as_of
        )

        assert rec.title == "Malnutrition Intervention"
        assert rec.priority is Priority.HIGH
        assert rec.assigned_to is AssignedRole.NUTRITIONIST

    def test_lice_program(self, as_of: date) -> None:
        [rec] = generate_recommendations(
            _aggregation([_area("physicalConditions", "lice", 30)]), as_of=as_of
        )

        assert rec.title == "Head Lice Management"
        assert rec.priority is Priority.MEDIUM
        assert rec.target_date == as_of + timedelta(days=30)

    def test_areas_below_program_threshold_are_skipped(self, as_of: date) -> None:
        recs = generate_recommendations(
            _aggregation([_area("screeningFailures", "vision", 14)]), as_of=as_of
        )
        assert recs == []

    def test_unmapped_conditions_are_skipped(self, as_of: date) -> None:
        recs = generate_recommendations(
            _aggregation([_area("physicalConditions", "abdominalIssues", 40)]), as_of=as_of
        )
        assert recs == []

    def test_custom_program_threshold(self, as_of: date) -> None:
        recs = generate_recommendations(
            _aggregation([_area("screeningFailures", "vision", 12)]),
            ThresholdConfig(program_threshold=10),
            as_of=as_of,
        )
        assert [r.category for r in recs] == [ProgramCategory.VISION_PROGRAM]


class TestCoverageGaps:
    def test_immunization_campaign(self, as_of: date) -> None:
        [rec] = generate_recommendations(_aggregation(immunization_gap=21), as_of=as_of)

        assert rec.category is ProgramCategory.VACCINATION_PROGRAM
        assert rec.title == "Immunization Campaign"
        assert rec.priority is Priority.HIGH
        assert rec.actions == [
            "Coordinate with Department of Health",
            "Send immunization reminders",
            "Update records",
        ]

    def test_deworming_campaign(self, as_of: date) -> None:
        [rec] = generate_recommendations(_aggregation(deworming_gap=16), as_of=as_of)

        assert rec.category is ProgramCategory.DEWORMING_PROGRAM
        assert rec.title == "Mass Deworming Campaign"
        assert rec.priority is Priority.MEDIUM

    def test_gaps_at_threshold_do_not_trigger(self, as_of: date) -> None:
        recs = generate_recommendations(
            _aggregation(immunization_gap=20, deworming_gap=15), as_of=as_of
        )
        assert recs == []


def test_order_of_recommendations(as_of: date) -> None:
    recs = generate_recommendations(
        _aggregation(
            [_area("screeningFailures", "vision", 40), _area("physicalConditions", "lice", 20)],
            high_risk=10,
            immunization_gap=50,
            deworming_gap=50,
        ),
        as_of=as_of,
    )

    assert [r.category for r in recs] == [
        ProgramCategory.HEALTH_INTERVENTION,
        ProgramCategory.VISION_PROGRAM,
        ProgramCategory.HYGIENE_PROGRAM,
        ProgramCategory.VACCINATION_PROGRAM,
        ProgramCategory.DEWORMING_PROGRAM,
    ]


def test_empty_aggregation_has_no_recommendations() -> None:
    assert generate_recommendations(AggregationResult(total_records=0, valid_records=0)) == []
