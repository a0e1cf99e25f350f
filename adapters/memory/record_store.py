"""
In-memory implementation of the record store port.

Records are kept per school; personnel records are matched on their school
id or district so one scope id can select a whole district.
"""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import structlog

from core.domain.models import ReportFilters

logger = structlog.get_logger(__name__)

_PERSONNEL_SCOPE_KEYS = ("schoolId", "schoolDistrictDivision")


class InMemoryRecordStore:
    """Dictionary-backed record store with optional simulated latency."""

    def __init__(self, latency_seconds: float = 0.0) -> None:
        if latency_seconds < 0:
            raise ValueError("latency_seconds cannot be negative")
        self.latency_seconds = latency_seconds
        self._exam_records: dict[str, list[Mapping[str, Any]]] = {}
        self._personnel_records: list[Mapping[str, Any]] = []
        self.logger = logger.bind(component="memory_record_store")

    def add_exam_records(self, school_id: str, records: Iterable[Mapping[str, Any]]) -> None:
        added = list(records)
        self._exam_records.setdefault(school_id, []).extend(added)
        self.logger.debug("exam_records_added", school_id=school_id, count=len(added))

    def add_personnel_records(self, records: Iterable[Mapping[str, Any]]) -> None:
        added = list(records)
        self._personnel_records.extend(added)
        self.logger.debug("personnel_records_added", count=len(added))

    @property
    def school_ids(self) -> list[str]:
        return sorted(self._exam_records)

    async def fetch_exam_records_for_school(
        self, school_id: str, filters: ReportFilters | None = None
    ) -> Sequence[Mapping[str, Any]]:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        records = self._exam_records.get(school_id, [])
        if filters is not None:
            records = [record for record in records if filters.matches(record)]
        self.logger.debug("exam_records_fetched", school_id=school_id, count=len(records))
        return list(records)

    async def fetch_personnel_health_records(
        self, scope_ids: Sequence[str]
    ) -> Sequence[Mapping[str, Any]]:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)
        scope = set(scope_ids)
        records = [
            record
            for record in self._personnel_records
            if any(record.get(key) in scope for key in _PERSONNEL_SCOPE_KEYS)
        ]
        self.logger.debug("personnel_records_fetched", scopes=len(scope), count=len(records))
        return records
