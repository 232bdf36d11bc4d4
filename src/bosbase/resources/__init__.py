"""Resource wrappers for the BosBase SDK."""

from bosbase.resources.records import AsyncRecordsResource, RecordsResource

__all__ = ["RecordsResource", "AsyncRecordsResource"]
