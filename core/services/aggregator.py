"""
Population aggregator.

Evaluates many exam records with bounded parallelism and folds every
record's events into counters owned by a single aggregation call.

Key patterns:
- Structured concurrency with asyncio.TaskGroup
- A semaphore caps record evaluations in flight
- Per-record outcomes are explicit Results; a malformed record is excluded
  and logged, never fatal to the batch
- The accumulator lives for one call only and is updated under a lock
"""

import asyncio
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from core.config import ThresholdConfig
from core.domain.enums import AreaSeverity, RiskLevel
from core.domain.errors import MalformedRecordError
from core.domain.facts import FactMap
from core.domain.models import (
    AggregationResult,
    FindingStat,
    GroupBreakdown,
    PriorityArea,
    ReportFilters,
)
from core.services.normalizer import normalize
from core.services.result import Result
from core.services.rule_engine import RuleEngine
from core.services.rule_table import RISK_CATEGORY

logger = structlog.get_logger(__name__)

UNSPECIFIED_GROUP = "Unspecified"

RISK_BUCKETS = (
    RiskLevel.LOW.value,
    RiskLevel.MEDIUM.value,
    RiskLevel.HIGH.value,
    RiskLevel.URGENT.value,
    RiskLevel.UNKNOWN.value,
)


def percent(count: int, total: int) -> int:
    """Whole percentage rounded half up; 0 when there is nothing to divide by."""
    if total <= 0:
        return 0
    return (count * 200 + total) // (2 * total)


def area_severity(percentage: int, thresholds: ThresholdConfig) -> AreaSeverity:
    if percentage >= thresholds.high_severity_threshold:
        return AreaSeverity.HIGH
    if percentage >= thresholds.medium_severity_threshold:
        return AreaSeverity.MEDIUM
    return AreaSeverity.LOW


def identify_priority_areas(
    common_findings: Mapping[str, Mapping[str, FindingStat]],
    thresholds: ThresholdConfig | None = None,
) -> list[PriorityArea]:
    """Conditions at or above the reporting threshold, most prevalent first.

    The sort is stable, so ties keep the counter layout order.
    """
    thresholds = thresholds or ThresholdConfig()
    areas = [
        PriorityArea(
            category=category,
            condition=condition,
            count=stat.count,
            percentage=stat.percentage,
            severity=area_severity(stat.percentage, thresholds),
        )
        for category, conditions in common_findings.items()
        if category != RISK_CATEGORY
        for condition, stat in conditions.items()
        if stat.count > 0 and stat.percentage >= thresholds.priority_area_threshold
    ]
    return sorted(areas, key=lambda area: area.percentage, reverse=True)


@dataclass(frozen=True)
class RecordContribution:
    """What one valid record adds to the counters."""

    group: str
    counters: tuple[tuple[str, str], ...]
    risk_bucket: str


@dataclass
class _GroupCounters:
    total: int = 0
    findings: dict[str, dict[str, int]] = field(default_factory=dict)
    risk: dict[str, int] = field(default_factory=lambda: dict.fromkeys(RISK_BUCKETS, 0))

    def add(self, contribution: RecordContribution) -> None:
        self.total += 1
        for category, condition in contribution.counters:
            conditions = self.findings.setdefault(category, {})
            conditions[condition] = conditions.get(condition, 0) + 1
        self.risk[contribution.risk_bucket] = self.risk.get(contribution.risk_bucket, 0) + 1

    def finding_stats(self) -> dict[str, dict[str, FindingStat]]:
        return {
            category: {
                condition: FindingStat(count=count, percentage=percent(count, self.total))
                for condition, count in conditions.items()
            }
            for category, conditions in self.findings.items()
        }

    def risk_stats(self) -> dict[str, FindingStat]:
        return {
            bucket: FindingStat(count=count, percentage=percent(count, self.total))
            for bucket, count in self.risk.items()
        }


class AggregationCounters:
    """Mutable accumulator owned by exactly one aggregation call."""

    def __init__(self, layout: Mapping[str, Sequence[str]] | None = None) -> None:
        self._totals = _GroupCounters()
        for category, conditions in (layout or {}).items():
            if category == RISK_CATEGORY:
                continue
            self._totals.findings[category] = dict.fromkeys(conditions, 0)
        self._groups: dict[str, _GroupCounters] = {}

    @property
    def valid_records(self) -> int:
        return self._totals.total

    def add(self, contribution: RecordContribution) -> None:
        self._totals.add(contribution)
        self._groups.setdefault(contribution.group, _GroupCounters()).add(contribution)

    def to_result(
        self,
        total_records: int,
        excluded_record_ids: Sequence[str],
        thresholds: ThresholdConfig,
    ) -> AggregationResult:
        common_findings = self._totals.finding_stats()
        return AggregationResult(
            total_records=total_records,
            valid_records=self._totals.total,
            excluded_record_ids=list(excluded_record_ids),
            common_findings=common_findings,
            risk_analysis=self._totals.risk_stats(),
            grade_breakdown={
                group: GroupBreakdown(
                    total=counters.total,
                    findings=counters.finding_stats(),
                    risk_levels=counters.risk_stats(),
                )
                for group, counters in sorted(self._groups.items())
            },
            priority_areas=identify_priority_areas(common_findings, thresholds),
        )


def record_id_of(record: Any, index: int) -> str:
    if isinstance(record, Mapping):
        for key in ("id", "_id", "recordId", "stdId", "perId"):
            value = record.get(key)
            if value is not None:
                return str(value)
    return f"#{index}"


def findings_of(record: Any, record_id: str) -> Mapping[str, Any] | FactMap:
    """Findings carried by a raw record; flat records are their own findings.

    `findings: None` means nothing was recorded and reads as empty findings.
    """
    if isinstance(record, FactMap):
        return record
    if not isinstance(record, Mapping):
        raise MalformedRecordError(record_id, f"expected a mapping, got {type(record).__name__}")
    findings = record.get("findings", record)
    if findings is None:
        return {}
    if not isinstance(findings, Mapping | FactMap):
        raise MalformedRecordError(
            record_id, f"findings must be a mapping, got {type(findings).__name__}"
        )
    return findings


class FindingsAggregator:
    """
    Aggregates exam records into population counters.

    Design principles:
    - Bounded parallelism (evaluations run in worker threads under a semaphore)
    - Graceful degradation (malformed records are excluded, not fatal)
    - Reproducible output (counters are order-independent, layout order is fixed)
    """

    def __init__(
        self,
        engine: RuleEngine | None = None,
        max_concurrent: int = 5,
        thresholds: ThresholdConfig | None = None,
    ) -> None:
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")
        self.engine = engine or RuleEngine.default()
        self.max_concurrent = max_concurrent
        self.thresholds = thresholds or ThresholdConfig()
        self.logger = logger.bind(component="findings_aggregator")

    def evaluate_record(
        self, record: Any, index: int = 0, group_by: str = "grade"
    ) -> Result[RecordContribution, MalformedRecordError]:
        """Evaluate one record into its counter contribution."""
        record_id = record_id_of(record, index)
        try:
            facts = normalize(findings_of(record, record_id))
            events = self.engine.evaluate(facts)

            counters: dict[tuple[str, str], None] = {}
            risk_bucket: str | None = None
            for event in events:
                if event.category is None or event.condition is None:
                    continue
                if event.category == RISK_CATEGORY:
                    risk_bucket = risk_bucket or event.condition
                else:
                    counters[(event.category, event.condition)] = None

            group = record.get(group_by) if isinstance(record, Mapping) else None
            return Result.ok(
                RecordContribution(
                    group=str(group) if group not in (None, "") else UNSPECIFIED_GROUP,
                    counters=tuple(counters),
                    risk_bucket=risk_bucket or RiskLevel.UNKNOWN.value,
                )
            )
        except MalformedRecordError as e:
            return Result.err(e)
        except Exception as e:
            return Result.err(MalformedRecordError(record_id, f"{type(e).__name__}: {e}"))

    async def aggregate(
        self,
        records: Sequence[Any],
        filters: ReportFilters | None = None,
        group_by: str = "grade",
    ) -> AggregationResult:
        """Aggregate a caller-supplied record set. Empty input yields an all-zero result."""
        start_time = time.perf_counter()
        scoped = [record for record in records if filters is None or filters.matches(record)]

        counters = AggregationCounters(self.engine.counter_layout())
        excluded: dict[int, str] = {}
        lock = asyncio.Lock()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def evaluate(index: int, record: Any) -> None:
            async with semaphore:
                result = await asyncio.to_thread(self.evaluate_record, record, index, group_by)
            async with lock:
                if result.is_ok():
                    counters.add(result.unwrap())
                    return
                error = result.unwrap_err()
                excluded[index] = error.record_id
                self.logger.warning("record_excluded", record_id=error.record_id, reason=error.reason)

        async with asyncio.TaskGroup() as task_group:
            for index, record in enumerate(scoped):
                task_group.create_task(evaluate(index, record))

        result = counters.to_result(
            total_records=len(scoped),
            excluded_record_ids=[excluded[index] for index in sorted(excluded)],
            thresholds=self.thresholds,
        )
        self.logger.info(
            "aggregation_completed",
            total_records=result.total_records,
            valid_records=result.valid_records,
            excluded_records=len(result.excluded_record_ids),
            priority_areas=len(result.priority_areas),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return result
