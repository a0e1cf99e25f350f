"""
Tests for the fact normalizer in `core/services/normalizer.py`.

Covers:
- Defaults for absent, empty and garbage input
- Single-letter exam code decoding
- Screening canonicalization
- Measurements, booleans and nested preventive-care values
- Declared risk mapping
- Totality under arbitrary input (property-based)
"""

from __future__ import annotations

import math
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.domain.enums import RiskLevel
from core.domain.exam_codes import EXAM_CODE_TABLE, GRADE_LEVELS, decode_exam_code
from core.domain.facts import FactMap
from core.services.normalizer import normalize


class TestDefaults:
    @pytest.mark.parametrize("raw", [None, "garbage", 42, ["a", "b"], {}])
    def test_unreadable_input_yields_neutral_facts(self, raw: Any) -> None:
        assert normalize(raw) == FactMap()

    def test_neutral_facts(self) -> None:
        facts = FactMap()

        assert facts.bmi_for_age == "Normal"
        assert facts.lungs_heart == "Normal"
        assert facts.lice is False
        assert facts.dewormed is False
        assert facts.height_in_cm == 0.0
        assert facts.declared_risk is RiskLevel.LOW

    def test_existing_fact_map_passes_through(self) -> None:
        facts = FactMap(bmi_for_age="Obese")
        assert normalize(facts) is facts

    def test_fact_map_is_immutable(self) -> None:
        facts = FactMap()
        with pytest.raises(ValueError, match="frozen"):
            facts.lice = True  # type: ignore[misc]

    def test_unknown_fact_lookup_raises_key_error(self) -> None:
        with pytest.raises(KeyError):
            FactMap().get("blood_type")


class TestExamCodes:
    @pytest.mark.parametrize(
        ("field", "code", "expected_fact", "expected"),
        [
            ("nutritionalStatusBMI", "c", "bmi_for_age", "Severely Wasted/Underweight"),
            ("nutritionalStatusHeightForAge", "g", "height_for_age", "Stunted"),
            ("skinScalp", "b", "skin_scalp", "Presence of Lice"),
            ("eyesEarsNose", "f", "eyes_ears_nose", "Ear discharge"),
            ("mouthThroatNeck", "b", "mouth_throat_neck", "Enlarged tonsils"),
            ("lungsHeart", "h", "lungs_heart", "Irregular heart rate"),
            ("abdomen", "e", "abdomen", "Dysmenorrhea"),
            ("deformities", "a", "deformities", "Acquired"),
        ],
    )
    def test_codes_are_decoded(
        self, field: str, code: str, expected_fact: str, expected: str
    ) -> None:
        facts = normalize({field: code})
        assert facts.get(expected_fact) == expected

    def test_normal_codes_collapse_to_normal(self) -> None:
        facts = normalize({"nutritionalStatusBMI": "a", "nutritionalStatusHeightForAge": "f"})

        assert facts.bmi_for_age == "Normal"
        assert facts.height_for_age == "Normal"

    @pytest.mark.parametrize(
        ("field", "expected_fact"),
        [
            ("abdomen", "abdomen"),
            ("eyesEarsNose", "eyes_ears_nose"),
            ("mouthThroatNeck", "mouth_throat_neck"),
            ("lungsHeart", "lungs_heart"),
            ("deformities", "deformities"),
            ("skinScalp", "skin_scalp"),
        ],
    )
    def test_lower_case_not_examined_code(self, field: str, expected_fact: str) -> None:
        facts = normalize({field: "x"})

        assert facts.get(expected_fact) == "Not Examined"
        assert facts.skin_infection is False

    def test_codes_decode_in_either_case(self) -> None:
        assert decode_exam_code("abdomen", "x") == "Not Examined"
        assert decode_exam_code("skinScalp", "B") == "Presence of Lice"
        assert decode_exam_code("lungsHeart", "z") == "z"

    def test_labels_pass_through_unchanged(self) -> None:
        assert decode_exam_code("lungsHeart", "Wheeze") == "Wheeze"

    def test_unknown_code_group_raises(self) -> None:
        with pytest.raises(KeyError):
            decode_exam_code("dental", "a")

    def test_every_group_knows_not_examined(self) -> None:
        for group, codes in EXAM_CODE_TABLE.items():
            assert codes["X"] == "Not Examined", group

    def test_grade_levels(self) -> None:
        assert GRADE_LEVELS[0] == "Kinder"
        assert GRADE_LEVELS[-1] == "SPED"
        assert "Grade 12" in GRADE_LEVELS


class TestScreening:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Passed", "Passed"),
            ("a", "Passed"),
            ("FAILED", "Failed"),
            ("b", "Failed"),
            ("X", "Not Examined"),
            (False, "Failed"),
            ("blurry", "Normal"),
            (None, "Normal"),
        ],
    )
    def test_vision_values_are_canonicalized(self, raw: Any, expected: str) -> None:
        assert normalize({"visionScreening": raw}).vision_screening == expected

    def test_hearing_uses_auditory_field(self) -> None:
        assert normalize({"auditoryScreening": "Failed"}).auditory_screening == "Failed"


class TestPhysicalFindings:
    def test_lice_is_derived_from_skin_scalp(self) -> None:
        facts = normalize({"skinScalp": "Presence of Lice"})

        assert facts.lice is True
        assert facts.skin_infection is False

    def test_other_skin_findings_are_infections(self) -> None:
        facts = normalize({"skinScalp": "Impetigo/boil"})

        assert facts.lice is False
        assert facts.skin_infection is True

    def test_not_examined_skin_is_not_an_infection(self) -> None:
        assert normalize({"skinScalp": "X"}).skin_infection is False

    def test_blank_categorical_values_are_normal(self) -> None:
        facts = normalize({"abdomen": "   ", "deformities": 7})

        assert facts.abdomen == "Normal"
        assert facts.deformities == "Normal"


class TestMeasurementsAndFlags:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(128.4, 128.4), ("131", 131.0), (-4, 0.0), ("tall", 0.0), (math.nan, 0.0), (True, 0.0)],
    )
    def test_height_parsing(self, raw: Any, expected: float) -> None:
        assert normalize({"heightInCm": raw}).height_in_cm == expected

    def test_huge_integer_is_treated_as_absent(self) -> None:
        assert normalize({"weightInKg": 10**400}).weight_in_kg == 0.0

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"firstRound": True, "secondRound": False}, True),
            ({"firstRound": False, "secondRound": "yes"}, True),
            ({"firstRound": False}, False),
            (True, True),
            ("no", False),
            (None, False),
        ],
    )
    def test_deworming(self, raw: Any, expected: bool) -> None:
        assert normalize({"deworming": raw}).dewormed is expected

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Complete", True),
            ("completed (EPI)", True),
            ("Incomplete", False),
            ("not complete", False),
            (True, True),
            (None, False),
        ],
    )
    def test_immunization(self, raw: Any, expected: bool) -> None:
        assert normalize({"immunization": raw}).immunization_complete is expected

    def test_iron_supplementation(self) -> None:
        assert normalize({"ironSupplementation": "Yes"}).iron_supplemented is True
        assert normalize({"ironSupplementation": "maybe"}).iron_supplemented is False


class TestDeclaredRisk:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Low", RiskLevel.LOW),
            ("MEDIUM", RiskLevel.MEDIUM),
            ("High Risk", RiskLevel.HIGH),
            ("urgent", RiskLevel.URGENT),
            ("Unclassified", RiskLevel.UNKNOWN),
            ("UNKNOWN", RiskLevel.UNKNOWN),
            ("???", RiskLevel.LOW),
            (None, RiskLevel.LOW),
        ],
    )
    def test_risk_mapping(self, raw: Any, expected: RiskLevel) -> None:
        assert normalize({"riskLevel": raw}).declared_risk is expected


_raw_values = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.floats(allow_nan=True, allow_infinity=True),
    st.text(max_size=20),
    st.lists(st.integers(), max_size=3),
    st.dictionaries(st.text(max_size=10), st.booleans(), max_size=3),
)

_raw_keys = st.sampled_from(
    [
        "nutritionalStatusBMI",
        "nutritionalStatusHeightForAge",
        "heightInCm",
        "weightInKg",
        "visionScreening",
        "auditoryScreening",
        "skinScalp",
        "eyesEarsNose",
        "mouthThroatNeck",
        "lungsHeart",
        "abdomen",
        "deformities",
        "immunization",
        "deworming",
        "ironSupplementation",
        "riskLevel",
        "unrelated",
    ]
)


@given(raw=st.dictionaries(_raw_keys, _raw_values, max_size=17))
def test_normalize_is_total(raw: dict[str, Any]) -> None:
    """Property-based test: any mapping produces a complete, valid fact map."""
    facts = normalize(raw)

    assert set(facts.model_dump()) == FactMap.fact_names()
    assert facts.height_in_cm >= 0.0
    assert facts.weight_in_kg >= 0.0
    assert normalize(raw) == facts
