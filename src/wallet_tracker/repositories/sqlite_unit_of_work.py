import sqlite3
from typing import Callable, TypeVar, Union

from wallet_tracker.database.connection import Connection, DatabaseManager
from wallet_tracker.repositories.base import StorageError
from wallet_tracker.repositories.sqlite_budget_repository import SQLiteBudgetRepository
from wallet_tracker.repositories.sqlite_category_repository import SQLiteCategoryRepository
from wallet_tracker.repositories.sqlite_goal_repository import SQLiteGoalRepository
from wallet_tracker.repositories.sqlite_recurring_repository import SQLiteRecurringRepository
from wallet_tracker.repositories.sqlite_transaction_repository import SQLiteTransactionRepository
from wallet_tracker.repositories.sqlite_transfer_repository import SQLiteTransferRepository
from wallet_tracker.repositories.sqlite_wallet_repository import SQLiteWalletRepository
from wallet_tracker.repositories.unit_of_work import RepositorySet, UnitOfWork

T = TypeVar("T")


def build_repositories(source: Union[DatabaseManager, Connection]) -> RepositorySet:
    """Bind one SQLite repository per entity to a manager or an open transaction"""
    return RepositorySet(
        wallets=SQLiteWalletRepository(source),
        categories=SQLiteCategoryRepository(source),
        transactions=SQLiteTransactionRepository(source),
        transfers=SQLiteTransferRepository(source),
        budgets=SQLiteBudgetRepository(source),
        goals=SQLiteGoalRepository(source),
        recurring=SQLiteRecurringRepository(source),
    )


class SQLiteUnitOfWork(UnitOfWork):
    """
    Unit of work over a SQLite database.

    run_atomic() opens a BEGIN IMMEDIATE transaction on the calling thread's
    connection, so balances read inside the scope stay current until commit.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self._repositories = build_repositories(db_manager)

    @property
    def repositories(self) -> RepositorySet:
        return self._repositories

    def run_atomic(self, fn: Callable[[RepositorySet], T]) -> T:
        try:
            with self.db_manager.transaction() as conn:
                return fn(build_repositories(conn))
        except sqlite3.Error as e:
            # Statements inside fn are already translated; this is BEGIN or COMMIT
            raise StorageError(f"Transaction failed: {e}") from e
