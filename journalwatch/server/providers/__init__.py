"""
Server providers

Lazy singletons for every data provider
"""
from journalwatch.utils import LazySingleton

from .source_registry import SourceRegistry, SourceMetadata
from .journal_entry_provider import JournalEntryProvider
from .activity_store_provider import ActivityStoreProvider

source_registry = LazySingleton(SourceRegistry)
journal_entry_provider = LazySingleton(JournalEntryProvider)
activity_store_provider = LazySingleton(ActivityStoreProvider)

__all__ = [
    "SourceRegistry",
    "SourceMetadata",
    "JournalEntryProvider",
    "ActivityStoreProvider",
    "source_registry",
    "journal_entry_provider",
    "activity_store_provider",
]
