"""
Decision-support facade used by reporting and exam-card controllers.

Single-record path: raw record -> facts -> events -> assessment.
Population path: raw records -> aggregation -> priority areas -> program
recommendations.

Client errors (missing school id, empty personnel scope, inverted date
range, unknown filter category) are rejected before any evaluation starts.
"""

import asyncio
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime
from typing import Any

import structlog

from core.config import AppConfig, get_config
from core.domain.enums import FilterCategory, Priority, RiskLevel, Severity
from core.domain.errors import InvalidScopeError, MalformedRecordError
from core.domain.facts import FAILED, FactMap
from core.domain.models import (
    AlertBreakdown,
    AssessedRecord,
    Assessment,
    FindingStat,
    PopulationReport,
    PreventiveCoverage,
    PriorityActions,
    ReportFilters,
)
from core.observability import configure_logging
from core.services.aggregator import (
    UNSPECIFIED_GROUP,
    FindingsAggregator,
    findings_of,
    percent,
    record_id_of,
)
from core.services.assessment import build_assessment
from core.services.normalizer import normalize
from core.services.record_store import RecordStore
from core.services.recommendations import generate_recommendations
from core.services.rule_engine import RuleEngine
from core.services.rules import load_rule_table

logger = structlog.get_logger(__name__)

_ESCALATED_RISKS = frozenset({RiskLevel.HIGH, RiskLevel.URGENT})

_CATEGORY_FILTERS: dict[FilterCategory, Callable[[AssessedRecord], bool]] = {
    FilterCategory.NOT_DEWORMED: lambda r: not r.facts.dewormed,
    FilterCategory.IMMUNIZATION_INCOMPLETE: lambda r: not r.facts.immunization_complete,
    FilterCategory.VISION_ISSUES: lambda r: r.facts.vision_screening == FAILED,
    FilterCategory.HEARING_ISSUES: lambda r: r.facts.auditory_screening == FAILED,
    FilterCategory.PENDING_APPROVAL: lambda r: not r.is_approved,
    FilterCategory.HIGH_RISK: lambda r: r.assessment.risk_level in _ESCALATED_RISKS,
    FilterCategory.MEDIUM_RISK: lambda r: r.assessment.risk_level is RiskLevel.MEDIUM,
    FilterCategory.LOW_RISK: lambda r: r.assessment.risk_level is RiskLevel.LOW,
    FilterCategory.UNCLASSIFIED: lambda r: r.facts.declared_risk is RiskLevel.UNKNOWN,
}


def _require_valid_range(filters: ReportFilters | None) -> None:
    if filters is not None and filters.has_inverted_range:
        raise InvalidScopeError(
            f"start date {filters.start_date} is after end date {filters.end_date}"
        )


class DecisionSupportService:
    """
    Entry point of the decision-support engine.

    Design principles:
    - Pure evaluation (no I/O inside the engine; records come from a RecordStore)
    - Bounded parallelism for populations and school comparisons
    - Partial failures degrade to exclusions, never to a failed report
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        engine: RuleEngine | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store
        self.engine = engine or RuleEngine.default()
        self.aggregator = FindingsAggregator(
            self.engine,
            max_concurrent=self.config.engine.max_concurrent_evaluations,
            thresholds=self.config.thresholds,
        )
        self.logger = logger.bind(component="decision_support")

    # Single-record path

    def assess_record(
        self, raw_record: Any, as_of: date | datetime | None = None
    ) -> Assessment:
        """Assess one exam record; raises MalformedRecordError when it cannot be read."""
        facts = normalize(findings_of(raw_record, record_id_of(raw_record, 0)))
        return build_assessment(self.engine.evaluate(facts), facts, as_of)

    def assess_records(
        self,
        raw_records: Sequence[Any],
        as_of: date | datetime | None = None,
        group_by: str = "grade",
    ) -> list[AssessedRecord]:
        """Assess many records, skipping (and logging) the ones that cannot be read."""
        assessed: list[AssessedRecord] = []
        for index, record in enumerate(raw_records):
            record_id = record_id_of(record, index)
            try:
                facts = normalize(findings_of(record, record_id))
            except MalformedRecordError as e:
                self.logger.warning("record_skipped", record_id=record_id, reason=e.reason)
                continue

            fields: Mapping[str, Any] = record if isinstance(record, Mapping) else {}
            group = fields.get(group_by)
            assessed.append(
                AssessedRecord(
                    record_id=record_id,
                    group=str(group) if group not in (None, "") else UNSPECIFIED_GROUP,
                    is_approved=fields.get("isApproved") is True,
                    facts=facts,
                    assessment=build_assessment(self.engine.evaluate(facts), facts, as_of),
                )
            )
        return assessed

    # Population path

    async def aggregate_findings(
        self,
        raw_records: Sequence[Any],
        filters: ReportFilters | None = None,
        *,
        scope: str = "custom",
        group_by: str = "grade",
        as_of: date | datetime | None = None,
        timeout_seconds: float | None = None,
    ) -> PopulationReport:
        """Aggregate records into a report with priority areas and recommendations.

        `timeout_seconds` (the configured aggregation timeout when omitted) is
        applied as an overall deadline; TimeoutError propagates to the caller.
        """
        _require_valid_range(filters)
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise InvalidScopeError("timeout_seconds must be positive")
        deadline = timeout_seconds or self.config.engine.aggregation_timeout_seconds
        async with asyncio.timeout(deadline):
            aggregation = await self.aggregator.aggregate(raw_records, filters, group_by)

        return PopulationReport(
            **dict(aggregation),
            scope=scope,
            recommendations=generate_recommendations(
                aggregation, self.config.thresholds, as_of
            ),
        )

    def _require_store(self) -> RecordStore:
        if self.store is None:
            raise RuntimeError("no record store configured")
        return self.store

    async def analyze_school(
        self,
        school_id: str,
        filters: ReportFilters | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> PopulationReport:
        """Population report for one school; the deadline covers the aggregation."""
        if not school_id or not school_id.strip():
            raise InvalidScopeError("school id is required")
        _require_valid_range(filters)

        records = await self._require_store().fetch_exam_records_for_school(school_id, filters)
        self.logger.info("school_analysis_started", school_id=school_id, records=len(records))
        return await self.aggregate_findings(
            records, filters, scope=school_id, timeout_seconds=timeout_seconds
        )

    async def analyze_personnel(self, scope_ids: Sequence[str]) -> PopulationReport:
        """Population report for personnel, broken down by position."""
        scope = [scope_id for scope_id in scope_ids if scope_id and scope_id.strip()]
        if not scope:
            raise InvalidScopeError("at least one school or district id is required")

        records = await self._require_store().fetch_personnel_health_records(scope)
        self.logger.info("personnel_analysis_started", scopes=len(scope), records=len(records))
        return await self.aggregate_findings(
            records, scope=",".join(scope), group_by="position"
        )

    async def compare_schools(
        self, school_ids: Sequence[str], filters: ReportFilters | None = None
    ) -> dict[str, PopulationReport]:
        """Reports for several schools, at most `max_concurrent_schools` at a time."""
        if not school_ids:
            raise InvalidScopeError("at least one school id is required")
        if any(not school_id or not school_id.strip() for school_id in school_ids):
            raise InvalidScopeError("school ids cannot be blank")
        _require_valid_range(filters)

        semaphore = asyncio.Semaphore(self.config.engine.max_concurrent_schools)

        async def analyze(school_id: str) -> PopulationReport:
            async with semaphore:
                return await self.analyze_school(school_id, filters)

        async with asyncio.TaskGroup() as task_group:
            tasks = {
                school_id: task_group.create_task(analyze(school_id))
                for school_id in dict.fromkeys(school_ids)
            }
        return {school_id: task.result() for school_id, task in tasks.items()}

    # Filters and summaries

    def filter_by_category(
        self, assessed: Sequence[AssessedRecord], category: FilterCategory | str
    ) -> list[AssessedRecord]:
        """Assessed records matching a reporting category."""
        try:
            key = FilterCategory(category)
        except ValueError as e:
            raise InvalidScopeError(f"unknown filter category: {category}") from e
        predicate = _CATEGORY_FILTERS[key]
        return [record for record in assessed if predicate(record)]

    def alert_breakdown(self, assessed: Sequence[AssessedRecord | Assessment]) -> AlertBreakdown:
        """Count records that are normal, need monitoring, or need escalation."""
        normal = monitoring = escalate = 0
        for item in assessed:
            assessment = item.assessment if isinstance(item, AssessedRecord) else item
            if assessment.has_severe_alert or assessment.risk_level in _ESCALATED_RISKS:
                escalate += 1
            elif assessment.risk_level is RiskLevel.MEDIUM or any(
                alert.severity is Severity.MODERATE for alert in assessment.alerts
            ):
                monitoring += 1
            else:
                normal += 1
        return AlertBreakdown(
            normal=normal,
            needs_monitoring=monitoring,
            escalate=escalate,
            total=normal + monitoring + escalate,
        )

    def preventive_program_stats(self, raw_records: Sequence[Any]) -> PreventiveCoverage:
        """Deworming, iron supplementation and immunization coverage."""
        facts: list[FactMap] = []
        for index, record in enumerate(raw_records):
            record_id = record_id_of(record, index)
            try:
                facts.append(normalize(findings_of(record, record_id)))
            except MalformedRecordError as e:
                self.logger.warning("record_skipped", record_id=record_id, reason=e.reason)

        total = len(facts)

        def stat(count: int) -> FindingStat:
            return FindingStat(count=count, percentage=percent(count, total))

        return PreventiveCoverage(
            total=total,
            dewormed=stat(sum(f.dewormed for f in facts)),
            iron_supplemented=stat(sum(f.iron_supplemented for f in facts)),
            immunization_complete=stat(sum(f.immunization_complete for f in facts)),
        )

    def priority_actions(self, assessment: Assessment) -> PriorityActions:
        """Alerts needing immediate attention and the URGENT/HIGH recommendations."""
        return PriorityActions(
            immediate_actions=[a for a in assessment.alerts if a.requires_immediate_attention],
            priority_recommendations=[
                r
                for r in assessment.recommendations
                if r.priority in (Priority.URGENT, Priority.HIGH)
            ],
        )


def create_service(
    config: AppConfig | None = None, store: RecordStore | None = None
) -> DecisionSupportService:
    """Build a service from configuration, loading a custom rule table when one is set."""
    config = config or get_config()
    configure_logging(config.logging)

    engine = None
    if config.engine.rule_table_path:
        table = load_rule_table(config.engine.rule_table_path)
        engine = RuleEngine.from_table(table)
        logger.info("rule_table_loaded", path=config.engine.rule_table_path, version=table.version)
    return DecisionSupportService(store=store, engine=engine, config=config)
