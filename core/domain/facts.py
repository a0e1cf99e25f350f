"""
Canonical fact map built from one examination record.

Every fact is a declared field with a neutral default, so rules and the
classifier never need to check for a missing value.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from core.domain.enums import RiskLevel

NORMAL = "Normal"
PASSED = "Passed"
FAILED = "Failed"
NOT_EXAMINED = "Not Examined"

FactValue = str | bool | float


class FactMap(BaseModel):
    """Total, immutable mapping of fact name to value."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Nutrition
    bmi_for_age: str = Field(default=NORMAL, description="BMI-for-age classification")
    height_for_age: str = Field(default=NORMAL, description="Height-for-age classification")
    height_in_cm: float = Field(default=0.0, ge=0.0)
    weight_in_kg: float = Field(default=0.0, ge=0.0)

    # Screening
    vision_screening: str = NORMAL
    auditory_screening: str = NORMAL

    # Physical examination
    skin_scalp: str = NORMAL
    lice: bool = False
    skin_infection: bool = False
    eyes_ears_nose: str = NORMAL
    mouth_throat_neck: str = NORMAL
    lungs_heart: str = NORMAL
    abdomen: str = NORMAL
    deformities: str = NORMAL

    # Preventive care
    immunization_complete: bool = False
    dewormed: bool = False
    iron_supplemented: bool = False

    declared_risk: RiskLevel = RiskLevel.LOW

    @classmethod
    def fact_names(cls) -> frozenset[str]:
        return frozenset(cls.model_fields)

    def get(self, name: str) -> FactValue:
        """Return the value of a fact by name; raises KeyError for unknown facts."""
        if name not in type(self).model_fields:
            raise KeyError(name)
        value: Any = getattr(self, name)
        return value
