"""
Activity store resolver

Maps a journal entry to the activity store its ids live in. The mode comes
from the stored entry only; no request parameter takes part.
"""
from dataclasses import dataclass

from journalwatch.errors import ForbiddenError, NotFoundError
from journalwatch.models import JournalEntryRecord, StoreHandle, StoreMode
from journalwatch.utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StoreResolution:
    handle: StoreHandle
    entry: JournalEntryRecord

    @property
    def source_mode(self) -> StoreMode:
        return self.handle.mode


class StoreResolver:
    """Entry lookup plus ownership check, before any activity is read"""

    def __init__(self, entry_provider=None):
        if entry_provider is None:
            from journalwatch.server.providers import journal_entry_provider
            entry_provider = journal_entry_provider
        self.entry_provider = entry_provider

    def resolve_store(self, entry_id: str, caller_user_id: str) -> StoreResolution:
        """
        Resolve the store for ``entry_id`` on behalf of ``caller_user_id``

        Raises:
            NotFoundError: no such entry
            ForbiddenError: entry owned by someone else
        """
        entry = self.entry_provider.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("Journal entry not found")
        if entry.author_id != caller_user_id:
            logger.warning(f"User {caller_user_id} denied access to journal entry {entry_id}")
            raise ForbiddenError("Journal entry belongs to another user")
        return StoreResolution(handle=StoreHandle.for_mode(entry.source_mode), entry=entry)
