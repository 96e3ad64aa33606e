import logging
import sqlite3
import threading
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Generator, List, Optional

# Type alias for clarity
Connection = sqlite3.Connection
Cursor = sqlite3.Cursor

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

logger = logging.getLogger(__name__)


class DatabaseConfig:
    """Database configuration settings."""

    def __init__(self, db_path: Path | str = "data/wallet.db", timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        # Seconds to wait for another writer to release the database lock
        self.timeout = timeout

    @property
    def connection_string(self) -> str:
        """Return the database file path as a string"""
        return str(self.db_path.absolute())


def _decimal_add(left: Optional[str], right: Optional[str]) -> Optional[str]:
    if left is None or right is None:
        return None
    return str(Decimal(str(left)) + Decimal(str(right)))


class DecimalSum:
    """SQL aggregate summing TEXT decimals exactly (SUM() would go through REAL)."""

    def __init__(self):
        self.total = Decimal("0")

    def step(self, value: Optional[str]) -> None:
        if value is not None:
            self.total += Decimal(str(value))

    def finalize(self) -> str:
        return str(self.total)


def configure_connection(conn: Connection) -> None:
    """
    Apply standard configuration to a SQLite connection.

    This function is called by all connection creation methods
    to ensure consistent settings.

    Args:
        conn: SQLite connection to configure
    """
    # Enable foreign key constraints (OFF by default in SQLite!)
    conn.execute("PRAGMA foreign_keys = ON")

    # Return rows as dict-like objects instead of tuples
    conn.row_factory = sqlite3.Row

    # Exact money arithmetic inside SQL statements
    conn.create_function("dec_add", 2, _decimal_add, deterministic=True)
    conn.create_aggregate("dec_sum", 1, DecimalSum)


class DatabaseManager:
    """
    Manages SQLite database connections.

    Each thread gets its own connection, so concurrent callers never share
    an open transaction. Uses context managers for safe transaction handling.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._local = threading.local()
        self._connections: List[Connection] = []
        self._lock = threading.Lock()

    def get_connection(self) -> Connection:
        """
        Get or create the database connection for the calling thread.

        Returns:
            sqlite3.Connection: Active database connection
        """
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._create_connection()
            self._local.connection = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    def _create_connection(self) -> Connection:
        """
        Create a new SQLite connection with proper settings.

        The connection runs in autocommit mode; multi-statement units are
        opened explicitly by transaction().

        Returns:
            sqlite3.Connection: Configured database connection
        """
        conn = sqlite3.connect(
            self.config.connection_string,
            timeout=self.config.timeout,
            isolation_level=None,
            check_same_thread=False,
        )

        # Apply standard configuration
        configure_connection(conn)

        return conn

    def close(self) -> None:
        """Close every connection opened by this manager."""
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Context manager for database transactions.

        BEGIN IMMEDIATE takes the write lock up front, so rows read inside
        the block cannot be changed by another writer before the block commits.
        Commits on success, rolls back on any exception (KeyboardInterrupt
        included) and re-raises. A locked database makes BEGIN or COMMIT
        raise sqlite3.OperationalError once the busy timeout runs out.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO ...")
                conn.execute("UPDATE ...")
        """
        conn = self.get_connection()
        if conn.in_transaction:
            raise RuntimeError("Nested transactions are not supported")

        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            logger.debug("Transaction rolled back")
            raise
        else:
            try:
                conn.commit()
            except sqlite3.Error:
                # A busy COMMIT leaves the transaction open
                if conn.in_transaction:
                    conn.rollback()
                raise

    def __enter__(self) -> "DatabaseManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - close connection."""
        self.close()


def execute_schema(conn: Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """
    Execute a SQL schema file.

    Args:
        conn: Database connection
        schema_path: Path to .sql file
    """
    with open(schema_path) as f:
        schema = f.read()

    conn.executescript(schema)


def initialize_database(db_manager: DatabaseManager) -> int:
    """
    Create tables and seed default categories if needed.

    Safe to call on an existing database.

    Returns:
        Current schema version
    """
    conn = db_manager.get_connection()
    execute_schema(conn)
    row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
    return row["version"]
