"""
JournalWatch base data provider
Shared plumbing for the providers in journalwatch.server.providers
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class JWBaseDataProvider:
    """
    Base data provider

    - falls back to the global database manager when none is injected
    - row / placeholder helpers used by the concrete providers
    """

    def __init__(self, db_manager=None):
        """
        Args:
            db_manager: DatabaseManager instance, None means the global one
        """
        if db_manager is None:
            from journalwatch.storage import jw_db_manager
            self.db = jw_db_manager
        else:
            self.db = db_manager

    @staticmethod
    def placeholders(values: Sequence[Any]) -> str:
        """'?, ?, ?' for an IN (...) clause"""
        return ', '.join('?' for _ in values)

    @staticmethod
    def row_to_dict(row) -> Dict[str, Any]:
        return {key: row[key] for key in row.keys()}

    def rows_to_dicts(self, rows) -> List[Dict[str, Any]]:
        return [self.row_to_dict(row) for row in rows]

    @staticmethod
    def load_json(value: Optional[str], default: Any) -> Any:
        """Decode a JSON column, returning ``default`` for NULL or broken values"""
        if value is None or value == '':
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Failed to decode JSON column value: {value!r}")
            return default
