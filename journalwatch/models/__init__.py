from .store import StoreMode, StoreHandle
from .records import ActivityRecord, JournalEntryRecord

__all__ = [
    "StoreMode",
    "StoreHandle",
    "ActivityRecord",
    "JournalEntryRecord",
]
