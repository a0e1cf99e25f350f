"""
Error taxonomy for the decision-support engine.

Client errors are raised before any evaluation starts. Per-record errors raised
inside the aggregator are always converted into an exclusion there.
"""


class DecisionSupportError(Exception):
    """Base class for all engine errors."""


class InvalidScopeError(DecisionSupportError, ValueError):
    """Missing or inconsistent scoping parameters (school id, date range, category)."""


class MalformedRecordError(DecisionSupportError, ValueError):
    """A raw record the engine cannot read."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"record {record_id!r} is malformed: {reason}")
        self.record_id = record_id
        self.reason = reason
