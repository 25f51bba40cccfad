"""SQLite connection management with WAL mode."""

import logging
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from demonax.core.errors import PersistenceError
from demonax.db.schema import CREATE_SETTINGS, MIGRATIONS, SCHEMA_VERSION

logger = logging.getLogger(__name__)


class ReadPool:
    """Fixed-size pool of read-only connections for lookups during ingestion."""

    def __init__(self, db_path: Path, size: int = 4) -> None:
        self.db_path = db_path
        self.size = size
        self._idle: queue.LifoQueue[sqlite3.Connection] = queue.LifoQueue()
        self._all: list[sqlite3.Connection] = []
        self._lock = threading.Lock()

    def _open(self) -> sqlite3.Connection:
        uri = self.db_path.resolve().as_uri() + "?mode=ro"
        conn = sqlite3.connect(uri, uri=True, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def acquire(self) -> sqlite3.Connection:
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass
        with self._lock:
            if len(self._all) < self.size:
                conn = self._open()
                self._all.append(conn)
                return conn
        return self._idle.get()

    def release(self, conn: sqlite3.Connection) -> None:
        self._idle.put(conn)

    def close(self) -> None:
        with self._lock:
            for conn in self._all:
                conn.close()
            self._all.clear()
        self._idle = queue.LifoQueue()


class Database:
    """SQLite database with one write connection and a read-only pool."""

    def __init__(self, db_path: Path, read_pool_size: int = 4) -> None:
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
            read_pool_size: Maximum number of read-only connections
        """
        self.db_path = db_path
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._read_pool = ReadPool(db_path, size=read_pool_size)

    def connect(self) -> None:
        """
        Open database connection and apply pending migrations.

        Raises:
            PersistenceError: If the file cannot be opened as a database
        """
        try:
            # Ensure parent directory exists
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._connection = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode for WAL
            )
            self._connection.row_factory = sqlite3.Row

            # Enable WAL mode so readers do not block the writer
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.execute("PRAGMA synchronous=NORMAL")
            self._connection.execute("PRAGMA foreign_keys=ON")
        except (sqlite3.DatabaseError, OSError) as e:
            self.close()
            raise PersistenceError(f"Cannot open database {self.db_path}: {e}") from e

        self._init_schema()

    def _init_schema(self) -> None:
        """Apply migrations newer than the stored schema version."""
        self._connection.execute(CREATE_SETTINGS)
        current = self.schema_version()
        if current > SCHEMA_VERSION:
            raise PersistenceError(
                f"Database schema version {current} is newer than supported ({SCHEMA_VERSION})"
            )

        for version, statements in MIGRATIONS:
            if version <= current:
                continue
            logger.info("Migrating %s to schema version %d", self.db_path, version)
            with self.transaction() as cursor:
                for statement in statements:
                    cursor.execute(statement)
                cursor.execute(
                    "INSERT OR REPLACE INTO settings (key, value, updated_at) "
                    "VALUES ('schema_version', ?, datetime('now'))",
                    (str(version),),
                )

    def schema_version(self) -> int:
        row = self.connection.execute(
            "SELECT value FROM settings WHERE key = 'schema_version'"
        ).fetchone()
        return int(row["value"]) if row else 0

    def close(self) -> None:
        """Close all connections."""
        self._read_pool.close()
        if self._connection:
            self._connection.close()
            self._connection = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the write connection."""
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """
        Context manager for write transactions.

        Usage:
            with db.transaction() as cursor:
                cursor.execute(...)

        Automatically commits on success, rolls back on exception. The write
        connection is held exclusively for the duration.
        """
        with self._lock:
            cursor = self.connection.cursor()
            cursor.execute("BEGIN")
            try:
                yield cursor
                cursor.execute("COMMIT")
            except Exception:
                cursor.execute("ROLLBACK")
                raise

    @contextmanager
    def reader(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Borrow a read-only connection from the pool.

        Usage:
            with db.reader() as conn:
                conn.execute("SELECT ...")
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        conn = self._read_pool.acquire()
        try:
            yield conn
        finally:
            self._read_pool.release(conn)

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a single SQL statement."""
        with self._lock:
            return self.connection.execute(sql, params)

    def executemany(self, sql: str, params_seq: list[tuple]) -> sqlite3.Cursor:
        """Execute a SQL statement for each parameter set."""
        with self._lock:
            return self.connection.executemany(sql, params_seq)

    def fetchone(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        """Execute SQL and fetch one row."""
        with self._lock:
            cursor = self.connection.execute(sql, params)
            return cursor.fetchone()

    def fetchall(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Execute SQL and fetch all rows."""
        with self._lock:
            cursor = self.connection.execute(sql, params)
            return cursor.fetchall()
