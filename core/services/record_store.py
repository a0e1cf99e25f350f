"""
Record store port.

The engine never queries storage itself; records arrive already
materialized through this protocol. Access-control filtering by school or
district is the store's responsibility.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from core.domain.models import ReportFilters

RawRecord = Mapping[str, Any]


class RecordStore(Protocol):
    """
    Protocol defining how exam records are fetched.

    Why Protocol over ABC: structural typing, trivial test doubles.
    """

    async def fetch_exam_records_for_school(
        self, school_id: str, filters: ReportFilters | None = None
    ) -> Sequence[RawRecord]:
        """Exam records of one school, restricted to the filter scope."""
        ...

    async def fetch_personnel_health_records(self, scope_ids: Sequence[str]) -> Sequence[RawRecord]:
        """Health records of personnel in the given schools or districts."""
        ...
