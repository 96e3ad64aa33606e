import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from wallet_tracker.database.connection import Connection, Cursor, DatabaseManager
from wallet_tracker.repositories.base import (
    DuplicateKeyError,
    ForeignKeyViolationError,
    StorageError,
)


def to_db_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_db_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def from_db_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def to_db_money(value: Decimal) -> str:
    # Store as string for precision
    return str(value)


def now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


class SQLiteRepository:
    """
    Shared plumbing for SQLite repositories.

    A repository is bound either to a DatabaseManager (every statement runs
    on the calling thread's connection and commits on its own) or to the
    connection of an open transaction scope handed out by SQLiteUnitOfWork.
    """

    def __init__(self, source: Union[DatabaseManager, Connection]):
        self._source = source

    @property
    def conn(self) -> Connection:
        if isinstance(self._source, DatabaseManager):
            return self._source.get_connection()
        return self._source

    def _execute(self, query: str, params: Iterable[Any] = ()) -> Cursor:
        """Run a statement, translating sqlite3 errors into repository errors"""
        try:
            return self.conn.execute(query, tuple(params))
        except sqlite3.IntegrityError as e:
            message = str(e)
            if "FOREIGN KEY" in message:
                raise ForeignKeyViolationError(f"Referenced record does not exist: {message}") from e
            if "UNIQUE" in message or "PRIMARY KEY" in message:
                raise DuplicateKeyError(f"Duplicate key: {message}") from e
            raise StorageError(f"Constraint failed: {message}") from e
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e

    def _fetchone(self, query: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        return self._execute(query, params).fetchone()

    def _fetchall(self, query: str, params: Iterable[Any] = ()) -> list:
        return self._execute(query, params).fetchall()
