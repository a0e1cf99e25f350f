"""In-memory record store for tests, demos and offline runs."""

from .record_store import InMemoryRecordStore

__all__ = ["InMemoryRecordStore"]
