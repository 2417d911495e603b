"""
SQLite database access for JournalWatch

Configuration driven: tables and indexes come from
journalwatch.config.database.TABLE_CONFIGS
"""
import sqlite3
import pandas as pd
from typing import Dict, List, Optional, Any
from contextlib import contextmanager
from queue import Queue, Empty, Full
import threading
import atexit

from journalwatch.config.database import TABLE_CONFIGS
from journalwatch.errors import UpstreamUnavailableError
from journalwatch.utils import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Database manager with an optional connection pool"""

    def __init__(self, DB_PATH: str, use_pool: bool = False, pool_size: int = 5, readonly: bool = False):
        """
        Args:
            DB_PATH: sqlite file path
            use_pool: keep a pool of open connections (default False)
            pool_size: pool size (default 5)
            readonly: open read-only and skip schema creation
        """
        self.DB_PATH = DB_PATH
        self.use_pool = use_pool
        self.pool_size = pool_size
        self.readonly = readonly

        self._connection_pool = None
        self._pool_lock = threading.Lock()

        if self.use_pool:
            self._init_connection_pool()
            atexit.register(self.close)

        if not self.readonly:
            self.init_database()

    def _init_connection_pool(self):
        logger.info(f"Initializing connection pool, size: {self.pool_size}")
        self._connection_pool = Queue(maxsize=self.pool_size)
        for _ in range(self.pool_size):
            self._connection_pool.put(self._create_connection())

    def _create_connection(self) -> sqlite3.Connection:
        try:
            if self.readonly:
                conn = sqlite3.connect(f"file:{self.DB_PATH}?mode=ro", uri=True, check_same_thread=False)
            else:
                conn = sqlite3.connect(self.DB_PATH, check_same_thread=False)
        except sqlite3.Error as e:
            logger.error(f"Cannot open database {self.DB_PATH}: {e}")
            raise UpstreamUnavailableError("Activity store is unavailable") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _get_pooled_connection(self) -> sqlite3.Connection:
        """
        Take a connection from the pool

        Falls back to a temporary connection when the pool is exhausted or the
        pooled connection turned out to be broken.
        """
        with self._pool_lock:
            pool = self._connection_pool
        if pool is None:
            return self._create_connection()
        try:
            conn = pool.get(timeout=1.0)
        except Empty:
            logger.warning("Connection pool exhausted, opening a temporary connection")
            return self._create_connection()
        try:
            conn.execute("SELECT 1")
            return conn
        except sqlite3.Error:
            logger.warning("Pooled connection is broken, opening a new one")
            return self._create_connection()

    def _return_pooled_connection(self, conn: sqlite3.Connection):
        with self._pool_lock:
            pool = self._connection_pool
        if pool is None:
            conn.close()
            return
        try:
            pool.put_nowait(conn)
        except Full:
            conn.close()

    def close(self):
        """Close every pooled connection"""
        with self._pool_lock:
            pool, self._connection_pool = self._connection_pool, None
        if pool is None:
            return

        closed_count = 0
        while not pool.empty():
            try:
                pool.get_nowait().close()
                closed_count += 1
            except Empty:
                break
        logger.info(f"Connection pool closed, {closed_count} connections released")

    @contextmanager
    def get_connection(self):
        """
        Connection context manager

        Commits on success and rolls back on failure. sqlite errors are
        re-raised as UpstreamUnavailableError so the HTTP layer reports 503.

        Yields:
            sqlite3.Connection
        """
        conn = self._get_pooled_connection() if self.use_pool else self._create_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Database operation failed, rolled back: {e}")
            raise UpstreamUnavailableError("Activity store is unavailable") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            if self.use_pool:
                self._return_pooled_connection(conn)
            else:
                conn.close()

    def init_database(self):
        """Create every configured table and index"""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            for config in TABLE_CONFIGS.values():
                self._create_table_from_config(cursor, config)
        logger.info(f"Database initialized, {len(TABLE_CONFIGS)} tables")

    def _create_table_from_config(self, cursor: sqlite3.Cursor, config: dict):
        """
        Create one table from its configuration

        Args:
            cursor: database cursor
            config: table configuration dict
        """
        table_name = config['table_name']
        columns = config['columns']
        table_constraints = config.get('table_constraints', [])
        indexes = config.get('indexes', [])

        column_definitions = []
        for col_name, col_config in columns.items():
            col_def = f"{col_name} {col_config['type']}"
            if col_config.get('constraints'):
                col_def += " " + " ".join(col_config['constraints'])
            column_definitions.append(col_def)

        if config.get('timestamps', False):
            column_definitions.append(
                "created_at TEXT DEFAULT (strftime('%Y-%m-%d %H:%M:%f000', 'now'))"
            )

        all_constraints = column_definitions + table_constraints
        cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {table_name} (
            {', '.join(all_constraints)}
        );
        """)
        logger.debug(f"Table '{table_name}' ready")

        for index in indexes:
            cursor.execute(f"""
            CREATE INDEX IF NOT EXISTS {index['name']}
            ON {table_name}({', '.join(index['columns'])});
            """)

    # ==================== reads ====================

    def fetch_all(self, sql: str, params: Optional[List[Any]] = None) -> List[sqlite3.Row]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params or [])
            return cursor.fetchall()

    def fetch_one(self, sql: str, params: Optional[List[Any]] = None) -> Optional[sqlite3.Row]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params or [])
            return cursor.fetchone()

    def read_frame(self, sql: str, params: Optional[List[Any]] = None) -> pd.DataFrame:
        """Run a query and return the rows as a DataFrame"""
        with self.get_connection() as conn:
            return pd.read_sql_query(sql, conn, params=params or [])

    # ==================== writes (seeding / ingestion tooling) ====================

    def insert_many(self, table_name: str, data_list: List[Dict[str, Any]]) -> int:
        """
        Insert several rows at once

        Args:
            table_name: table name
            data_list: rows as dicts; the first row decides the column list

        Returns:
            int: affected rows
        """
        if not data_list:
            return 0

        columns = list(data_list[0].keys())
        placeholders = ', '.join(['?' for _ in columns])
        sql = f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"
        values_list = [[row.get(col) for col in columns] for row in data_list]

        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.executemany(sql, values_list)
            logger.info(f"Inserted into {table_name}: {cursor.rowcount} rows")
            return cursor.rowcount
