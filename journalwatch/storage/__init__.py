"""
Storage module
"""
from .database_manager import DatabaseManager
from journalwatch.config.settings_manager import settings
from journalwatch.utils import LazySingleton


def create_default_db_manager() -> DatabaseManager:
    """The service database described by settings (pooled, read/write schema)"""
    return DatabaseManager(
        DB_PATH=settings.db_path,
        use_pool=True,
        pool_size=settings.db_pool_size
    )


# ==================== global instance ====================

# built on first use so importing the package never touches the disk
jw_db_manager = LazySingleton(create_default_db_manager)

# ==================== base provider ====================
from .base_providers import JWBaseDataProvider

__all__ = [
    "DatabaseManager",
    "jw_db_manager",
    "create_default_db_manager",
    "JWBaseDataProvider",
]
