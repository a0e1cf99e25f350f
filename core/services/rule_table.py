"""
Built-in rule table for school health examinations.

Flags are worded for the severity ladder in `classifier.py`: "Severely",
"Cardiac" and "Respiratory" mark urgent findings, "Risk", "Problem", "Delay"
and "Failed" mark findings that need follow-up within two weeks.
"""

from functools import lru_cache
from typing import Any

from core.domain.enums import RiskLevel
from core.services.rules import RuleTable

NUTRITION = "nutrition"
SCREENING = "screening"
PHYSICAL = "physical"
PREVENTIVE_CARE = "preventiveCare"
RISK_LEVEL = "riskLevel"

DOMAIN_ORDER = (NUTRITION, SCREENING, PHYSICAL, PREVENTIVE_CARE, RISK_LEVEL)

RISK_CATEGORY = "riskDistribution"

_NOT_FLAGGED = ["Normal", "Not Examined"]
_EAR_FINDINGS = ["Ear discharge", "Impacted cerumen"]
_NOSE_FINDINGS = ["Mucus discharge", "Nose Bleeding (Epistaxis)"]
_RESPIRATORY_FINDINGS = ["Rales", "Wheeze"]
_CARDIAC_FINDINGS = ["Murmur", "Irregular heart rate"]


def _when(fact: str, op: str, value: Any) -> dict[str, Any]:
    return {"all": [{"fact": fact, "operator": op, "value": value}]}


_NUTRITION_RULES = [
    {
        "name": "severely_underweight",
        "conditions": _when("bmi_for_age", "equal", "Severely Wasted/Underweight"),
        "event": {
            "code": "NUT-SUW",
            "counter": "nutritionalIssues.severelyUnderweight",
            "flag": "Severely Wasted/Underweight",
            "recommendation": "Refer to doctor for medical evaluation and therapeutic feeding",
            "alert_type": "NUTRITIONAL",
        },
    },
    {
        "name": "underweight",
        "conditions": _when("bmi_for_age", "in", ["Wasted/Underweight", "Wasted", "Underweight"]),
        "event": {
            "code": "NUT-UW",
            "counter": "nutritionalIssues.underweight",
            "flag": "Underweight - Nutritional Risk",
            "recommendation": "Enroll in school-based feeding program with nutrition counseling",
            "alert_type": "NUTRITIONAL",
        },
    },
    {
        "name": "overweight",
        "conditions": _when("bmi_for_age", "equal", "Overweight"),
        "event": {
            "code": "NUT-OW",
            "counter": "nutritionalIssues.overweight",
            "flag": "Overweight - Weight Management Problem",
            "recommendation": "Provide nutrition counseling and encourage daily physical activity",
            "alert_type": "NUTRITIONAL",
        },
    },
    {
        "name": "obese",
        "conditions": _when("bmi_for_age", "equal", "Obese"),
        "event": {
            "code": "NUT-OB",
            "counter": "nutritionalIssues.obese",
            "flag": "Obese - Cardiometabolic Risk",
            "recommendation": "Refer to doctor for weight management and metabolic screening",
            "alert_type": "NUTRITIONAL",
        },
    },
    {
        "name": "severely_stunted",
        "conditions": _when("height_for_age", "equal", "Severely Stunted"),
        "event": {
            "code": "NUT-SST",
            "counter": "nutritionalIssues.severelyStunted",
            "flag": "Severely Stunted Growth",
            "recommendation": "Refer to doctor for growth and developmental assessment",
            "alert_type": "GROWTH",
        },
    },
    {
        "name": "stunted",
        "conditions": _when("height_for_age", "equal", "Stunted"),
        "event": {
            "code": "NUT-ST",
            "counter": "nutritionalIssues.stunted",
            "flag": "Stunted Growth - Growth Delay",
            "recommendation": "Monitor growth monthly and provide nutrition support",
            "alert_type": "GROWTH",
        },
    },
]

_SCREENING_RULES = [
    {
        "name": "vision_failed",
        "conditions": _when("vision_screening", "equal", "Failed"),
        "event": {
            "code": "SCR-VIS",
            "counter": "screeningFailures.vision",
            "flag": "Vision Screening Failed",
            "recommendation": "Refer to eye specialist for comprehensive eye examination",
            "alert_type": "VISION",
        },
    },
    {
        "name": "hearing_failed",
        "conditions": _when("auditory_screening", "equal", "Failed"),
        "event": {
            "code": "SCR-AUD",
            "counter": "screeningFailures.hearing",
            "flag": "Hearing Screening Failed",
            "recommendation": "Refer to ENT specialist for audiometric evaluation",
            "alert_type": "HEARING",
        },
    },
]

_PHYSICAL_RULES = [
    {
        "name": "head_lice",
        "conditions": _when("lice", "equal", True),
        "event": {
            "code": "PHY-LICE",
            "counter": "physicalConditions.lice",
            "flag": "Head Lice Infestation",
            "recommendation": "Provide pediculicide treatment and advise parent on lice control",
            "alert_type": "INFECTION",
        },
    },
    {
        "name": "skin_infection",
        "conditions": _when("skin_infection", "equal", True),
        "event": {
            "code": "PHY-SKIN",
            "counter": "physicalConditions.skinInfections",
            "flag": "Skin Problem: {skin_scalp}",
            "recommendation": "Clean and dress affected area and monitor at the school clinic",
            "alert_type": "INFECTION",
        },
    },
    {
        "name": "eye_problem",
        "conditions": _when(
            "eyes_ears_nose", "notIn", [*_NOT_FLAGGED, *_EAR_FINDINGS, *_NOSE_FINDINGS]
        ),
        "event": {
            "code": "PHY-EYE",
            "counter": "physicalConditions.eyeProblems",
            "flag": "Eye Problem: {eyes_ears_nose}",
            "recommendation": "Apply eye hygiene care and inform parent for follow-up",
            "alert_type": "VISION",
        },
    },
    {
        "name": "ear_problem",
        "conditions": _when("eyes_ears_nose", "in", _EAR_FINDINGS),
        "event": {
            "code": "PHY-EAR",
            "counter": "physicalConditions.earProblems",
            "flag": "Ear Problem: {eyes_ears_nose}",
            "recommendation": "Refer to doctor for ear examination",
            "alert_type": "HEARING",
        },
    },
    {
        "name": "nose_finding",
        "conditions": _when("eyes_ears_nose", "in", _NOSE_FINDINGS),
        "event": {
            "code": "PHY-NOSE",
            "counter": "physicalConditions.noseProblems",
            "flag": "Nasal Finding: {eyes_ears_nose}",
            "recommendation": "Provide first aid and observe at the school clinic",
            "alert_type": "OTHER",
        },
    },
    {
        "name": "throat_problem",
        "conditions": _when("mouth_throat_neck", "notIn", _NOT_FLAGGED),
        "event": {
            "code": "PHY-THR",
            "counter": "physicalConditions.throatProblems",
            "flag": "Mouth/Throat Problem: {mouth_throat_neck}",
            "recommendation": "Refer to doctor for throat and neck examination",
            "alert_type": "INFECTION",
        },
    },
    {
        "name": "respiratory_abnormality",
        "conditions": _when("lungs_heart", "in", _RESPIRATORY_FINDINGS),
        "event": {
            "code": "PHY-RESP",
            "counter": "physicalConditions.respiratoryIssues",
            "flag": "Respiratory Abnormality: {lungs_heart}",
            "recommendation": "Refer to doctor immediately for respiratory evaluation",
            "alert_type": "RESPIRATORY",
        },
    },
    {
        "name": "cardiac_abnormality",
        "conditions": _when("lungs_heart", "in", _CARDIAC_FINDINGS),
        "event": {
            "code": "PHY-CARD",
            "counter": "physicalConditions.cardiacIssues",
            "flag": "Cardiac Abnormality: {lungs_heart}",
            "recommendation": "Refer to doctor immediately for cardiac evaluation",
            "alert_type": "CARDIAC",
        },
    },
    {
        "name": "other_cardiopulmonary_finding",
        "conditions": _when(
            "lungs_heart",
            "notIn",
            [*_NOT_FLAGGED, *_RESPIRATORY_FINDINGS, *_CARDIAC_FINDINGS],
        ),
        "event": {
            "code": "PHY-CP",
            "counter": "physicalConditions.otherCardiopulmonaryIssues",
            "flag": "Cardiac/Respiratory Abnormality: {lungs_heart}",
            "recommendation": "Refer to doctor immediately for cardiopulmonary evaluation",
            "alert_type": "OTHER",
        },
    },
    {
        "name": "abdominal_problem",
        "conditions": _when("abdomen", "notIn", _NOT_FLAGGED),
        "event": {
            "code": "PHY-ABD",
            "counter": "physicalConditions.abdominalIssues",
            "flag": "Abdominal Problem: {abdomen}",
            "recommendation": "Refer to doctor for abdominal examination",
            "alert_type": "OTHER",
        },
    },
    {
        "name": "deformity",
        "conditions": _when("deformities", "notIn", _NOT_FLAGGED),
        "event": {
            "code": "PHY-DEF",
            "counter": "physicalConditions.deformities",
            "flag": "Physical Deformity: {deformities}",
            "recommendation": "Coordinate specialist care with parent",
            "alert_type": "OTHER",
        },
    },
]

_PREVENTIVE_RULES = [
    {
        "name": "incomplete_immunization",
        "conditions": _when("immunization_complete", "equal", False),
        "event": {
            "code": "PRV-IMM",
            "counter": "preventiveCare.incompleteImmunization",
            "flag": "Incomplete Immunization",
            "recommendation": "Schedule catch-up immunization with parent and health center",
            "alert_type": "PREVENTIVE",
        },
    },
    {
        "name": "not_dewormed",
        "conditions": _when("dewormed", "equal", False),
        "event": {
            "code": "PRV-DWM",
            "counter": "preventiveCare.notDewormed",
            "flag": "Deworming Not Given",
            "recommendation": "Include in the next school deworming round",
            "alert_type": "PREVENTIVE",
        },
    },
    {
        "name": "no_iron_supplementation",
        "conditions": _when("iron_supplemented", "equal", False),
        "event": {
            "code": "PRV-FE",
            "counter": "preventiveCare.noIronSupplementation",
            "flag": "No Iron Supplementation",
            "recommendation": "Provide iron supplementation per school nutrition guidelines",
            "alert_type": "PREVENTIVE",
        },
    },
]

_RISK_RULES = [
    {
        "name": f"declared_{level.value.lower()}",
        "conditions": _when("declared_risk", "equal", level.value),
        "event": {"code": f"RISK-{level.value}", "counter": f"{RISK_CATEGORY}.{level.value}"},
    }
    for level in (
        RiskLevel.LOW,
        RiskLevel.MEDIUM,
        RiskLevel.HIGH,
        RiskLevel.URGENT,
        RiskLevel.UNKNOWN,
    )
]

DEFAULT_RULE_TABLE: dict[str, Any] = {
    "version": "2024.1",
    "domains": [
        {"name": NUTRITION, "rules": _NUTRITION_RULES},
        {"name": SCREENING, "rules": _SCREENING_RULES},
        {"name": PHYSICAL, "rules": _PHYSICAL_RULES},
        {"name": PREVENTIVE_CARE, "rules": _PREVENTIVE_RULES},
        {"name": RISK_LEVEL, "rules": _RISK_RULES},
    ],
}


@lru_cache
def default_rule_table() -> RuleTable:
    """Validated built-in rule table (cached; the table is immutable)."""
    return RuleTable.model_validate(DEFAULT_RULE_TABLE)
