"""
Application wiring.

build_services() composes every service from one UnitOfWork. Callers keep
the returned Services and pass it around; there is no module level container.
"""
from dataclasses import dataclass
from typing import Optional

from wallet_tracker.config.settings import Settings
from wallet_tracker.database.connection import DatabaseConfig, DatabaseManager, initialize_database
from wallet_tracker.repositories.sqlite_unit_of_work import SQLiteUnitOfWork
from wallet_tracker.repositories.unit_of_work import UnitOfWork
from wallet_tracker.services.budget_service import BudgetService
from wallet_tracker.services.category_service import CategoryService
from wallet_tracker.services.goal_service import GoalService
from wallet_tracker.services.recurring_service import RecurringService
from wallet_tracker.services.transaction_service import TransactionService
from wallet_tracker.services.transfer_service import TransferService
from wallet_tracker.services.wallet_service import WalletService


@dataclass
class Services:
    uow: UnitOfWork
    wallets: WalletService
    categories: CategoryService
    transactions: TransactionService
    transfers: TransferService
    budgets: BudgetService
    goals: GoalService
    recurring: RecurringService
    db_manager: Optional[DatabaseManager] = None

    def close(self) -> None:
        if self.db_manager is not None:
            self.db_manager.close()


def build_services(uow: UnitOfWork, settings: Optional[Settings] = None) -> Services:
    """Wire every service to the given storage handle"""
    settings = settings or Settings()
    transactions = TransactionService(uow, recent_limit=settings.recent_limit)

    return Services(
        uow=uow,
        wallets=WalletService(uow, default_currency=settings.default_currency),
        categories=CategoryService(uow),
        transactions=transactions,
        transfers=TransferService(uow),
        budgets=BudgetService(uow),
        goals=GoalService(uow),
        recurring=RecurringService(uow, transactions),
    )


def create_services(settings: Optional[Settings] = None, initialize: bool = True) -> Services:
    """
    Build the SQLite backed service graph.

    Args:
        settings: Defaults to Settings.load()
        initialize: Apply the schema first (idempotent)
    """
    settings = settings or Settings.load()
    db_manager = DatabaseManager(DatabaseConfig(settings.db_path, timeout=settings.busy_timeout))
    if initialize:
        initialize_database(db_manager)

    services = build_services(SQLiteUnitOfWork(db_manager), settings)
    services.db_manager = db_manager
    return services
