"""
Transactional boundary shared by every multi-write operation.

Services never open storage transactions themselves. They hand a function
to UnitOfWork.run_atomic(), which calls it with a RepositorySet bound to one
atomic scope:

    def post(repos: RepositorySet) -> Transaction:
        wallet = repos.wallets.get_by_id(wallet_id)
        repos.transactions.create(txn)
        repos.wallets.update_balance(wallet.id, wallet.balance + txn.amount)
        return txn

    txn = uow.run_atomic(post)

Either every write made through `repos` is committed, or none is.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, TypeVar

from wallet_tracker.repositories.base import (
    BudgetRepository,
    CategoryRepository,
    GoalRepository,
    RecurringRepository,
    TransactionRepository,
    TransferRepository,
    WalletRepository,
)

T = TypeVar("T")


@dataclass(frozen=True)
class RepositorySet:
    """One repository per entity, all operating against the same scope"""
    wallets: WalletRepository
    categories: CategoryRepository
    transactions: TransactionRepository
    transfers: TransferRepository
    budgets: BudgetRepository
    goals: GoalRepository
    recurring: RecurringRepository


class UnitOfWork(ABC):
    """Storage handle: unscoped repositories plus the atomic scope primitive"""

    @property
    @abstractmethod
    def repositories(self) -> RepositorySet:
        """
        Repositories for plain reads and single-row writes.

        Every call through these commits on its own.
        """
        pass

    @abstractmethod
    def run_atomic(self, fn: Callable[[RepositorySet], T]) -> T:
        """
        Run fn inside one atomic scope.

        Args:
            fn: Receives repositories bound to the scope. Must not use any
                other repositories for writes that belong to the unit.

        Returns:
            Whatever fn returns, after the scope has been committed

        Raises:
            Whatever fn raised, after every write in the scope was rolled back
        """
        pass
