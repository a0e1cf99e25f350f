"""
Tests for the declarative rule table and the rule engine.

Covers:
- Condition operators and all/any groups
- Load-time validation (unknown facts, malformed groups, duplicate names)
- Flag templates rendered from facts
- Built-in table: domains, counters, one risk bucket per record
- Loading and extending tables without touching the evaluator
- Per-domain fault isolation and deterministic evaluation
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from core.domain.enums import AlertType, RiskLevel
from core.domain.facts import FactMap
from core.domain.models import Event
from core.services.rule_engine import RuleEngine, run_domain
from core.services.rule_table import DOMAIN_ORDER, default_rule_table
from core.services.rules import Condition, ConditionGroup, Rule, RuleDomain, RuleTable, load_rule_table


def _rule(name: str, conditions: dict[str, Any], **event: Any) -> Rule:
    return Rule.model_validate(
        {"name": name, "conditions": conditions, "event": {"code": name.upper(), **event}}
    )


class ExplodingDomain:
    """Domain evaluator that always fails."""

    name = "exploding"

    def evaluate(self, facts: FactMap) -> list[Event]:
        raise RuntimeError("rule table corrupted")


class TestConditions:
    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            ("equal", 130.0, True),
            ("notEqual", 130.0, False),
            ("lessThan", 140, True),
            ("lessThanInclusive", 130, True),
            ("greaterThan", 130, False),
            ("greaterThanInclusive", 130, True),
            ("in", [120.0, 130.0], True),
            ("notIn", [120.0, 130.0], False),
        ],
    )
    def test_numeric_operators(self, operator: str, value: Any, expected: bool) -> None:
        condition = Condition(fact="height_in_cm", operator=operator, value=value)
        assert condition.holds(FactMap(height_in_cm=130.0)) is expected

    def test_contains_matches_substring(self) -> None:
        condition = Condition(fact="skin_scalp", operator="contains", value="Lice")
        assert condition.holds(FactMap(skin_scalp="Presence of Lice"))

    def test_unknown_fact_is_rejected_at_load_time(self) -> None:
        with pytest.raises(ValidationError, match="unknown fact"):
            Condition(fact="blood_type", operator="equal", value="O")

    def test_membership_requires_list(self) -> None:
        with pytest.raises(ValidationError, match="requires a list"):
            Condition(fact="abdomen", operator="in", value="Distended")

    def test_nested_groups(self) -> None:
        group = ConditionGroup.model_validate(
            {
                "any": [
                    {"fact": "lice", "operator": "equal", "value": True},
                    {
                        "all": [
                            {"fact": "dewormed", "operator": "equal", "value": False},
                            {"fact": "abdomen", "operator": "equal", "value": "Distended"},
                        ]
                    },
                ]
            }
        )

        assert group.holds(FactMap(lice=True))
        assert group.holds(FactMap(abdomen="Distended"))
        assert not group.holds(FactMap(abdomen="Distended", dewormed=True))

    def test_group_needs_exactly_one_branch(self) -> None:
        with pytest.raises(ValidationError, match="exactly one"):
            ConditionGroup.model_validate({})
        with pytest.raises(ValidationError, match="exactly one"):
            ConditionGroup.model_validate({"all": [], "any": []})


class TestRulesAndDomains:
    def test_rule_renders_flag_from_facts(self) -> None:
        rule = _rule(
            "eye",
            {"all": [{"fact": "eyes_ears_nose", "operator": "equal", "value": "Stye"}]},
            counter="physicalConditions.eyeProblems",
            flag="Eye Problem: {eyes_ears_nose}",
            alert_type="VISION",
        )

        event = rule.evaluate("physical", FactMap(eyes_ears_nose="Stye"))

        assert event is not None
        assert event.flag == "Eye Problem: Stye"
        assert event.category == "physicalConditions"
        assert event.condition == "eyeProblems"
        assert event.alert_type is AlertType.VISION
        assert rule.evaluate("physical", FactMap()) is None

    def test_event_needs_counter_or_flag(self) -> None:
        with pytest.raises(ValidationError, match="counter or a flag"):
            _rule("empty", {"all": []})

    def test_duplicate_rule_names_are_rejected(self) -> None:
        rule = _rule("dup", {"all": []}, flag="Something")
        with pytest.raises(ValidationError, match="duplicate rule names"):
            RuleDomain(name="physical", rules=[rule, rule])

    def test_duplicate_domains_are_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unique"):
            RuleTable(domains=[RuleDomain(name="a"), RuleDomain(name="a")])


class TestDefaultTable:
    def test_domains_in_fixed_order(self) -> None:
        assert [d.name for d in default_rule_table().domains] == list(DOMAIN_ORDER)

    def test_counter_layout(self) -> None:
        layout = default_rule_table().counters()

        assert layout["nutritionalIssues"] == [
            "severelyUnderweight",
            "underweight",
            "overweight",
            "obese",
            "severelyStunted",
            "stunted",
        ]
        assert layout["screeningFailures"] == ["vision", "hearing"]
        assert "cardiacIssues" in layout["physicalConditions"]
        assert layout["preventiveCare"] == [
            "incompleteImmunization",
            "notDewormed",
            "noIronSupplementation",
        ]
        assert layout["riskDistribution"] == ["LOW", "MEDIUM", "HIGH", "URGENT", "UNKNOWN"]

    @pytest.mark.parametrize("risk", list(RiskLevel))
    def test_exactly_one_risk_bucket(self, engine: RuleEngine, risk: RiskLevel) -> None:
        events = engine.evaluate(FactMap(declared_risk=risk))
        buckets = [e.condition for e in events if e.category == "riskDistribution"]
        assert buckets == [risk.value]

    def test_healthy_child_only_hits_risk_domain(self, engine: RuleEngine) -> None:
        facts = FactMap(immunization_complete=True, dewormed=True, iron_supplemented=True)
        events = engine.evaluate(facts)
        assert [e.domain for e in events] == ["riskLevel"]

    def test_cardiac_finding(self, engine: RuleEngine) -> None:
        events = engine.evaluate(FactMap(lungs_heart="Irregular heart rate"))
        cardiac = [e for e in events if e.code == "PHY-CARD"]

        assert len(cardiac) == 1
        assert cardiac[0].flag == "Cardiac Abnormality: Irregular heart rate"
        assert cardiac[0].counter == "physicalConditions.cardiacIssues"

    @pytest.mark.parametrize("finding", ["Tachycardia", "Crackles", "Diminished breath sounds"])
    def test_unlisted_cardiopulmonary_finding_is_flagged(
        self, engine: RuleEngine, finding: str
    ) -> None:
        events = [e for e in engine.evaluate(FactMap(lungs_heart=finding)) if e.domain == "physical"]

        assert [e.code for e in events] == ["PHY-CP"]
        assert events[0].flag == f"Cardiac/Respiratory Abnormality: {finding}"
        assert events[0].counter == "physicalConditions.otherCardiopulmonaryIssues"

    @pytest.mark.parametrize("finding", ["Normal", "Not Examined", "Rales", "Murmur"])
    def test_known_lung_heart_values_skip_catch_all(self, engine: RuleEngine, finding: str) -> None:
        codes = {e.code for e in engine.evaluate(FactMap(lungs_heart=finding))}
        assert "PHY-CP" not in codes

    def test_eye_ear_and_nose_findings_do_not_overlap(self, engine: RuleEngine) -> None:
        for finding, code in [
            ("Stye", "PHY-EYE"),
            ("Impacted cerumen", "PHY-EAR"),
            ("Mucus discharge", "PHY-NOSE"),
        ]:
            codes = {e.code for e in engine.evaluate(FactMap(eyes_ears_nose=finding))}
            assert codes & {"PHY-EYE", "PHY-EAR", "PHY-NOSE"} == {code}


class TestLoadingAndExtending:
    def test_load_rule_table_from_json(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text(json.dumps(default_rule_table().model_dump(mode="json", by_alias=True)))

        loaded = load_rule_table(path)

        assert loaded == default_rule_table()

    def test_invalid_json_table_fails_fast(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text('{"domains": [{"name": "x", "rules": [{"name": "r"}]}]}')

        with pytest.raises(ValidationError):
            load_rule_table(path)

    def test_with_rules_extends_a_domain(self) -> None:
        extra = {
            "name": "tall_for_age",
            "conditions": {"all": [{"fact": "height_for_age", "operator": "equal", "value": "Tall"}]},
            "event": {"code": "NUT-TALL", "counter": "nutritionalIssues.tall", "flag": "Tall for Age"},
        }

        table = default_rule_table().with_rules("nutrition", [extra])
        events = RuleEngine.from_table(table).evaluate(FactMap(height_for_age="Tall"))

        assert "tall" in table.counters()["nutritionalIssues"]
        assert any(e.code == "NUT-TALL" for e in events)
        assert len(default_rule_table().domain("nutrition").rules) == 6

    def test_with_rules_creates_a_new_domain(self) -> None:
        rule = _rule(
            "pale",
            {"all": [{"fact": "eyes_ears_nose", "operator": "equal", "value": "Pale Conjunctiva"}]},
            counter="anemiaScreening.pallor",
            flag="Pallor - Anemia Risk",
        )

        table = default_rule_table().with_rules("anemia", [rule])

        assert table.domains[-1].name == "anemia"
        assert table.domain("anemia").rules == [rule]


class TestRuleEngine:
    def test_failing_domain_is_isolated(self) -> None:
        table = default_rule_table()
        engine = RuleEngine([table.domain("nutrition"), ExplodingDomain(), table.domain("riskLevel")])

        events = engine.evaluate(FactMap(bmi_for_age="Obese"))

        assert [e.domain for e in events] == ["nutrition", "riskLevel"]

    def test_run_domain_swallows_domain_errors(self) -> None:
        assert run_domain(ExplodingDomain(), FactMap()) == []

    def test_type_error_inside_rule_is_isolated(self) -> None:
        broken = RuleDomain(
            name="broken",
            rules=[_rule("cmp", {"all": [{"fact": "abdomen", "operator": "lessThan", "value": 3}]}, flag="x")],
        )
        engine = RuleEngine([broken, default_rule_table().domain("riskLevel")])

        events = engine.evaluate(FactMap())

        assert [e.domain for e in events] == ["riskLevel"]

    def test_duplicate_domains_rejected(self) -> None:
        domain = default_rule_table().domain("nutrition")
        with pytest.raises(ValueError, match="duplicate"):
            RuleEngine([domain, domain])

    def test_custom_engine_has_no_counter_layout(self) -> None:
        assert RuleEngine([ExplodingDomain()]).counter_layout() == {}


@given(
    bmi=st.sampled_from(["Normal", "Wasted/Underweight", "Severely Wasted/Underweight", "Obese"]),
    lungs=st.sampled_from(["Normal", "Rales", "Murmur", "Irregular heart rate"]),
    vision=st.sampled_from(["Passed", "Failed", "Not Examined"]),
    dewormed=st.booleans(),
    risk=st.sampled_from(list(RiskLevel)),
)
def test_evaluation_is_deterministic(
    bmi: str, lungs: str, vision: str, dewormed: bool, risk: RiskLevel
) -> None:
    """Property-based test: identical facts always give the same event set."""
    engine = RuleEngine.default()
    facts = FactMap(
        bmi_for_age=bmi,
        lungs_heart=lungs,
        vision_screening=vision,
        dewormed=dewormed,
        declared_risk=risk,
    )

    first = {e.identity() for e in engine.evaluate(facts)}
    second = {e.identity() for e in engine.evaluate(facts)}

    assert first == second
    for domain in default_rule_table().domains:
        assert run_domain(domain, facts) == run_domain(domain, facts)
