"""
Rule engine: runs every clinical domain against one fact map.

Domains are isolated from each other. An error raised while one domain is
evaluated is logged and that domain contributes no events; the remaining
domains still run, so one broken rule cannot blind the whole assessment.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

import structlog

from core.domain.facts import FactMap
from core.domain.models import Event
from core.services.rule_table import default_rule_table
from core.services.rules import RuleTable

logger = structlog.get_logger(__name__)


class DomainEvaluator(Protocol):
    """
    Anything that turns facts into events for one named domain.

    `RuleDomain` is the table-driven implementation; hand-written evaluators
    can be plugged in next to it.
    """

    name: str

    def evaluate(self, facts: FactMap) -> list[Event]: ...


def run_domain(domain: DomainEvaluator, facts: FactMap) -> list[Event]:
    """Evaluate one domain; failures are logged and yield no events."""
    try:
        return list(domain.evaluate(facts))
    except Exception as e:
        logger.warning(
            "rule_domain_failed",
            domain=getattr(domain, "name", type(domain).__name__),
            error=str(e),
            error_type=type(e).__name__,
        )
        return []


class RuleEngine:
    """Composes a fixed, ordered set of domain evaluators."""

    def __init__(
        self, domains: Iterable[DomainEvaluator], table: RuleTable | None = None
    ) -> None:
        self.domains: tuple[DomainEvaluator, ...] = tuple(domains)
        self.table = table
        names = [domain.name for domain in self.domains]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate rule domains: {names}")

    @classmethod
    def from_table(cls, table: RuleTable) -> "RuleEngine":
        return cls(table.domains, table=table)

    @classmethod
    def default(cls) -> "RuleEngine":
        return cls.from_table(default_rule_table())

    def counter_layout(self) -> dict[str, list[str]]:
        """Known counters (category -> conditions), empty without a rule table."""
        return self.table.counters() if self.table is not None else {}

    @property
    def domain_names(self) -> Sequence[str]:
        return [domain.name for domain in self.domains]

    def evaluate(self, facts: FactMap) -> list[Event]:
        """Run all domains in order and concatenate their events."""
        events: list[Event] = []
        for domain in self.domains:
            events.extend(run_domain(domain, facts))
        return events
