"""
Declarative rule table.

A rule is data: a tree of `all`/`any` conditions over named facts plus an
event template. One generic evaluator interprets every rule, so the table can
be loaded from JSON or extended at runtime without touching evaluation code.

Example (JSON)::

    {
      "name": "vision_failed",
      "conditions": {"all": [{"fact": "vision_screening", "operator": "equal", "value": "Failed"}]},
      "event": {"code": "SCR-VIS", "counter": "screeningFailures.vision",
                "flag": "Vision Screening Failed"}
    }
"""

import operator
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.domain.enums import AlertType
from core.domain.facts import FactMap
from core.domain.models import Event


class Operator(str, Enum):
    EQUAL = "equal"
    NOT_EQUAL = "notEqual"
    IN = "in"
    NOT_IN = "notIn"
    LESS_THAN = "lessThan"
    LESS_THAN_INCLUSIVE = "lessThanInclusive"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_INCLUSIVE = "greaterThanInclusive"
    CONTAINS = "contains"


_OPERATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUAL: operator.eq,
    Operator.NOT_EQUAL: operator.ne,
    Operator.IN: lambda fact, value: fact in value,
    Operator.NOT_IN: lambda fact, value: fact not in value,
    Operator.LESS_THAN: operator.lt,
    Operator.LESS_THAN_INCLUSIVE: operator.le,
    Operator.GREATER_THAN: operator.gt,
    Operator.GREATER_THAN_INCLUSIVE: operator.ge,
    Operator.CONTAINS: lambda fact, value: value in fact,
}


class Condition(BaseModel):
    """Single comparison between a fact and a literal value."""

    model_config = ConfigDict(frozen=True)

    fact: str
    operator: Operator
    value: Any

    @field_validator("fact")
    @classmethod
    def fact_must_exist(cls, v: str) -> str:
        if v not in FactMap.fact_names():
            raise ValueError(f"unknown fact: {v}")
        return v

    @model_validator(mode="after")
    def membership_needs_collection(self) -> "Condition":
        if self.operator in (Operator.IN, Operator.NOT_IN) and not isinstance(
            self.value, list | tuple
        ):
            raise ValueError(f"operator {self.operator.value} requires a list value")
        return self

    def holds(self, facts: FactMap) -> bool:
        return bool(_OPERATORS[self.operator](facts.get(self.fact), self.value))


class ConditionGroup(BaseModel):
    """Boolean combination of conditions; exactly one of `all` / `any` is set."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    all_of: list[Union[Condition, "ConditionGroup"]] | None = Field(default=None, alias="all")
    any_of: list[Union[Condition, "ConditionGroup"]] | None = Field(default=None, alias="any")

    @model_validator(mode="after")
    def exactly_one_branch(self) -> "ConditionGroup":
        if (self.all_of is None) == (self.any_of is None):
            raise ValueError("condition group needs exactly one of 'all' or 'any'")
        return self

    def holds(self, facts: FactMap) -> bool:
        if self.all_of is not None:
            return all(item.holds(facts) for item in self.all_of)
        return any(item.holds(facts) for item in self.any_of or [])


class EventTemplate(BaseModel):
    """What a rule emits. `flag` may reference facts, e.g. "Eye Problem: {eyes_ears_nose}"."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(min_length=1)
    counter: str | None = Field(default=None, pattern=r"^[A-Za-z]+\.[A-Za-z]+$")
    flag: str | None = None
    recommendation: str | None = None
    alert_type: AlertType = AlertType.OTHER
    params: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def emits_something(self) -> "EventTemplate":
        if self.counter is None and self.flag is None:
            raise ValueError(f"event {self.code} needs a counter or a flag")
        return self

    def render(self, domain: str, rule: str, facts: FactMap) -> Event:
        values = facts.model_dump(mode="json")
        return Event(
            domain=domain,
            rule=rule,
            code=self.code,
            counter=self.counter,
            flag=self.flag.format_map(values) if self.flag else None,
            recommendation=self.recommendation,
            alert_type=self.alert_type,
            params=dict(self.params),
        )


class Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    conditions: ConditionGroup
    event: EventTemplate

    def evaluate(self, domain: str, facts: FactMap) -> Event | None:
        if not self.conditions.holds(facts):
            return None
        return self.event.render(domain, self.name, facts)


class RuleDomain(BaseModel):
    """Named bundle of independent rules sharing a clinical theme."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    rules: list[Rule] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def rule_names_unique(cls, v: list[Rule]) -> list[Rule]:
        names = [rule.name for rule in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate rule names: {', '.join(duplicates)}")
        return v

    def evaluate(self, facts: FactMap) -> list[Event]:
        """Evaluate every rule in table order."""
        events: list[Event] = []
        for rule in self.rules:
            event = rule.evaluate(self.name, facts)
            if event is not None:
                events.append(event)
        return events


class RuleTable(BaseModel):
    """Versioned, ordered set of rule domains."""

    model_config = ConfigDict(frozen=True)

    version: str = "1"
    domains: list[RuleDomain] = Field(default_factory=list)

    @field_validator("domains")
    @classmethod
    def domain_names_unique(cls, v: list[RuleDomain]) -> list[RuleDomain]:
        names = [domain.name for domain in v]
        if len(names) != len(set(names)):
            raise ValueError("rule domain names must be unique")
        return v

    def domain(self, name: str) -> RuleDomain:
        for domain in self.domains:
            if domain.name == name:
                return domain
        raise KeyError(name)

    def counters(self) -> dict[str, list[str]]:
        """Counter layout (category -> conditions) in table order."""
        layout: dict[str, list[str]] = {}
        for domain in self.domains:
            for rule in domain.rules:
                if rule.event.counter is None:
                    continue
                category, condition = rule.event.counter.split(".", 1)
                conditions = layout.setdefault(category, [])
                if condition not in conditions:
                    conditions.append(condition)
        return layout

    def with_rules(self, domain_name: str, rules: Iterable[Rule | Mapping[str, Any]]) -> "RuleTable":
        """Return a copy with `rules` appended to a domain, creating it if needed."""
        extra = [Rule.model_validate(rule) for rule in rules]
        domains = list(self.domains)
        for index, domain in enumerate(domains):
            if domain.name == domain_name:
                domains[index] = RuleDomain(name=domain.name, rules=[*domain.rules, *extra])
                break
        else:
            domains.append(RuleDomain(name=domain_name, rules=extra))
        return RuleTable(version=self.version, domains=domains)


ConditionGroup.model_rebuild()


def load_rule_table(path: str | Path) -> RuleTable:
    """Load and validate a rule table from a JSON file."""
    return RuleTable.model_validate_json(Path(path).read_text(encoding="utf-8"))
