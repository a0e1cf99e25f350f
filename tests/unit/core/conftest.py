"""Shared fixtures for the decision-support unit tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from typing import Any

import pytest
from hypothesis import HealthCheck, settings

from core.services.rule_engine import RuleEngine

# Cold-start strategy generation can trip Hypothesis's timing health check.
settings.register_profile("default", suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("default")

AS_OF = date(2024, 6, 3)

HEALTHY_FINDINGS: dict[str, Any] = {
    "nutritionalStatusBMI": "Normal Weight",
    "nutritionalStatusHeightForAge": "Normal Height",
    "heightInCm": 132.5,
    "weightInKg": 29.0,
    "visionScreening": "Passed",
    "auditoryScreening": "Passed",
    "skinScalp": "Normal",
    "eyesEarsNose": "Normal",
    "mouthThroatNeck": "Normal",
    "lungsHeart": "Normal",
    "abdomen": "Normal",
    "deformities": "Normal",
    "immunization": "Complete",
    "deworming": {"firstRound": True, "secondRound": False},
    "ironSupplementation": True,
    "riskLevel": "Low",
    "dateOfExamination": "2024-05-20",
}

RecordFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def engine() -> RuleEngine:
    return RuleEngine.default()


@pytest.fixture
def make_record() -> RecordFactory:
    """Build a raw exam record: healthy findings overridden by keyword arguments."""

    def _make(
        record_id: str = "rec-1",
        grade: str = "Grade 3",
        is_approved: bool = True,
        **findings: Any,
    ) -> dict[str, Any]:
        return {
            "id": record_id,
            "grade": grade,
            "isApproved": is_approved,
            "findings": {**HEALTHY_FINDINGS, **findings},
        }

    return _make
