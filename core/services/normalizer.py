"""
Fact normalizer: one raw examination record in, one canonical FactMap out.

The record store hands over findings exactly as they were captured on the
exam card, so values may be single-letter codes, free text, numbers stored as
strings, nested preventive-care objects or missing altogether. Everything
below is total: unknown or garbage values are treated as absent and the
corresponding fact keeps its neutral default.
"""

import math
from collections.abc import Mapping
from typing import Any

from core.domain.enums import RiskLevel
from core.domain.exam_codes import NOT_EXAMINED_CODE, decode_exam_code
from core.domain.facts import FAILED, NORMAL, NOT_EXAMINED, PASSED, FactMap

LICE_FINDING = "Presence of Lice"

_NORMAL_FINDINGS = frozenset({"normal", "normal weight", "normal height", "none", "n/a", ""})

_TRUE_STRINGS = frozenset({"1", "true", "yes", "y", "given", "done", "complete", "completed"})

_RISK_ALIASES: dict[str, RiskLevel] = {
    "low": RiskLevel.LOW,
    "low risk": RiskLevel.LOW,
    "medium": RiskLevel.MEDIUM,
    "moderate": RiskLevel.MEDIUM,
    "medium risk": RiskLevel.MEDIUM,
    "high": RiskLevel.HIGH,
    "high risk": RiskLevel.HIGH,
    "urgent": RiskLevel.URGENT,
    "critical": RiskLevel.URGENT,
    "unclassified": RiskLevel.UNKNOWN,
    "unknown": RiskLevel.UNKNOWN,
}

# fact name -> (raw key(s), exam code group)
_CATEGORICAL_FIELDS: dict[str, tuple[tuple[str, ...], str]] = {
    "bmi_for_age": (("nutritionalStatusBMI", "bmiForAge"), "nutritionalStatus"),
    "height_for_age": (
        ("nutritionalStatusHeightForAge", "heightForAge"),
        "nutritionalStatus",
    ),
    "skin_scalp": (("skinScalp",), "skinScalp"),
    "eyes_ears_nose": (("eyesEarsNose", "eyeEarNose"), "eyeEarNose"),
    "mouth_throat_neck": (("mouthThroatNeck",), "mouthThroatNeck"),
    "lungs_heart": (("lungsHeart", "heartLungs"), "lungsHeart"),
    "abdomen": (("abdomen",), "abdomen"),
    "deformities": (("deformities",), "deformities"),
}

_SCREENING_FIELDS: dict[str, tuple[str, ...]] = {
    "vision_screening": ("visionScreening", "vision"),
    "auditory_screening": ("auditoryScreening", "hearing"),
}


def _first_present(raw: Mapping[Any, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _categorical(value: Any, group: str) -> str:
    if not isinstance(value, str):
        return NORMAL
    text = value.strip()
    if not text:
        return NORMAL
    decoded = decode_exam_code(group, text)
    if decoded.strip().lower() in _NORMAL_FINDINGS:
        return NORMAL
    return decoded


def _screening(value: Any) -> str:
    if isinstance(value, bool):
        return PASSED if value else FAILED
    if not isinstance(value, str):
        return NORMAL
    text = decode_exam_code("visionAuditory", value.strip()).lower()
    if text in {"passed", "pass"} or text.startswith("passed"):
        return PASSED
    if text in {"failed", "fail"} or text.startswith("failed"):
        return FAILED
    if text in {"not examined", NOT_EXAMINED_CODE.lower()}:
        return NOT_EXAMINED
    return NORMAL


def _measurement(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0.0
    if not isinstance(value, int | float):
        return 0.0
    try:
        number = float(value)
    except OverflowError:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def _dewormed(value: Any) -> bool:
    if isinstance(value, Mapping):
        return any(_flag(value.get(key)) for key in ("firstRound", "secondRound"))
    return _flag(value)


def _immunization_complete(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        return False
    text = value.strip().lower()
    if "incomplete" in text or "not complete" in text:
        return False
    return "complete" in text


def _declared_risk(value: Any) -> RiskLevel:
    if isinstance(value, RiskLevel):
        return value
    if not isinstance(value, str):
        return RiskLevel.LOW
    return _RISK_ALIASES.get(value.strip().lower(), RiskLevel.LOW)


def _extract(raw: Mapping[Any, Any]) -> dict[str, Any]:
    facts: dict[str, Any] = {}

    for name, (keys, group) in _CATEGORICAL_FIELDS.items():
        facts[name] = _categorical(_first_present(raw, keys), group)

    for name, keys in _SCREENING_FIELDS.items():
        facts[name] = _screening(_first_present(raw, keys))

    facts["height_in_cm"] = _measurement(raw.get("heightInCm"))
    facts["weight_in_kg"] = _measurement(raw.get("weightInKg"))

    skin = facts["skin_scalp"]
    facts["lice"] = skin == LICE_FINDING
    facts["skin_infection"] = skin not in {NORMAL, LICE_FINDING, NOT_EXAMINED}

    facts["immunization_complete"] = _immunization_complete(raw.get("immunization"))
    facts["dewormed"] = _dewormed(raw.get("deworming"))
    facts["iron_supplemented"] = _flag(raw.get("ironSupplementation"))
    facts["declared_risk"] = _declared_risk(raw.get("riskLevel"))
    return facts


def normalize(raw_findings: Any) -> FactMap:
    """Build a total FactMap from raw exam findings. Never raises."""
    if isinstance(raw_findings, FactMap):
        return raw_findings
    if not isinstance(raw_findings, Mapping):
        return FactMap()
    return FactMap(**_extract(raw_findings))

