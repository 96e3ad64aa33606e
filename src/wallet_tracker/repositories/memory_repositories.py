"""
In-memory storage backend.

Implements every repository over plain dicts, with the same error semantics
as the SQLite backend (missing references raise ForeignKeyViolationError,
duplicate ids raise DuplicateKeyError). Entities are copied in and out, so
callers never hold a reference to stored state.
"""
import threading
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional, TypeVar

from wallet_tracker.domain.enums import CategoryType, TransactionType
from wallet_tracker.domain.models import (
    Budget,
    Category,
    Goal,
    GoalContribution,
    RecurringTransaction,
    Transaction,
    Transfer,
    Wallet,
)
from wallet_tracker.repositories.base import (
    BudgetFilter,
    BudgetRepository,
    CategoryRepository,
    CategorySummary,
    DuplicateKeyError,
    ForeignKeyViolationError,
    GoalFilter,
    GoalRepository,
    ListParams,
    RecordNotFoundError,
    RecurringFilter,
    RecurringRepository,
    TransactionFilter,
    TransactionRepository,
    TransactionSummary,
    TransferFilter,
    TransferRepository,
    UNCATEGORIZED,
    WalletFilter,
    WalletRepository,
    apply_percentages,
)
from wallet_tracker.repositories.unit_of_work import RepositorySet, UnitOfWork

T = TypeVar("T")


@dataclass
class InMemoryData:
    wallets: Dict[str, Wallet] = field(default_factory=dict)
    categories: Dict[str, Category] = field(default_factory=dict)
    transactions: Dict[str, Transaction] = field(default_factory=dict)
    transfers: Dict[str, Transfer] = field(default_factory=dict)
    budgets: Dict[str, Budget] = field(default_factory=dict)
    goals: Dict[str, Goal] = field(default_factory=dict)
    contributions: Dict[str, GoalContribution] = field(default_factory=dict)
    recurring: Dict[str, RecurringTransaction] = field(default_factory=dict)


class InMemoryStore:
    """Shared state for the in-memory repositories, guarded by one reentrant lock"""

    def __init__(self):
        self.data = InMemoryData()
        self.lock = threading.RLock()

    def snapshot(self) -> InMemoryData:
        return deepcopy(self.data)

    def restore(self, snapshot: InMemoryData) -> None:
        self.data = snapshot


def _paginate(items: list, params: Optional[ListParams]) -> list:
    params = params or ListParams()
    return items[params.offset:params.offset + params.limit]


def _newest_first(items: list, key: Callable) -> list:
    # Reverse insertion order first so that ties keep the latest insert on top
    return sorted(reversed(items), key=key, reverse=True)


class _InMemoryRepository:

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _data(self) -> InMemoryData:
        return self._store.data

    def _insert(self, table: Dict, entity, label: str):
        if entity.id in table:
            raise DuplicateKeyError(f"{label} with ID {entity.id} already exists")
        table[entity.id] = deepcopy(entity)
        return entity

    def _get(self, table: Dict, entity_id: str, label: str):
        try:
            return deepcopy(table[entity_id])
        except KeyError:
            raise RecordNotFoundError(f"{label} with ID {entity_id} not found")

    def _require(self, table: Dict, entity_id: Optional[str], label: str) -> None:
        if entity_id is not None and entity_id not in table:
            raise ForeignKeyViolationError(f"Referenced {label} {entity_id} does not exist")


class InMemoryWalletRepository(_InMemoryRepository, WalletRepository):

    def create(self, wallet: Wallet) -> Wallet:
        with self._store.lock:
            wallet.created_at = wallet.updated_at = datetime.now()
            return self._insert(self._data.wallets, wallet, "Wallet")

    def get_by_id(self, wallet_id: str) -> Wallet:
        with self._store.lock:
            return self._get(self._data.wallets, wallet_id, "Wallet")

    def list(self, filter: Optional[WalletFilter] = None) -> List[Wallet]:
        filter = filter or WalletFilter()
        with self._store.lock:
            wallets = [
                w for w in self._data.wallets.values()
                if (filter.is_active is None or w.is_active == filter.is_active)
                and (filter.type is None or w.type == filter.type)
                and (filter.currency is None or w.currency == filter.currency.upper())
            ]
            return deepcopy(sorted(wallets, key=lambda w: w.name.casefold()))

    def update(self, wallet: Wallet) -> Wallet:
        with self._store.lock:
            stored = self._data.wallets.get(wallet.id)
            if stored is None:
                raise RecordNotFoundError(f"Wallet with ID {wallet.id} not found")
            stored.name = wallet.name
            stored.type = wallet.type
            stored.currency = wallet.currency
            stored.color = wallet.color
            stored.icon = wallet.icon
            stored.is_active = wallet.is_active
            stored.updated_at = datetime.now()
            return wallet

    def delete(self, wallet_id: str) -> None:
        with self._store.lock:
            stored = self._data.wallets.get(wallet_id)
            if stored is None or not stored.is_active:
                raise RecordNotFoundError(f"Wallet with ID {wallet_id} not found")
            stored.is_active = False
            stored.updated_at = datetime.now()

    def update_balance(self, wallet_id: str, new_balance: Decimal) -> None:
        with self._store.lock:
            stored = self._data.wallets.get(wallet_id)
            if stored is None:
                raise RecordNotFoundError(f"Wallet with ID {wallet_id} not found")
            stored.balance = new_balance
            stored.updated_at = datetime.now()

    def get_total_balance(self) -> Decimal:
        with self._store.lock:
            return sum(
                (w.balance for w in self._data.wallets.values() if w.is_active),
                Decimal("0"),
            )


class InMemoryCategoryRepository(_InMemoryRepository, CategoryRepository):

    def create(self, category: Category) -> Category:
        with self._store.lock:
            self._require(self._data.categories, category.parent_id, "category")
            category.created_at = datetime.now()
            return self._insert(self._data.categories, category, "Category")

    def get_by_id(self, category_id: str) -> Category:
        with self._store.lock:
            return self._get(self._data.categories, category_id, "Category")

    def get_by_type(self, category_type: CategoryType) -> List[Category]:
        return [c for c in self.list() if c.type == category_type]

    def get_children(self, parent_id: str) -> List[Category]:
        return [c for c in self.list() if c.parent_id == parent_id]

    def list(self) -> List[Category]:
        with self._store.lock:
            return deepcopy(sorted(
                self._data.categories.values(),
                key=lambda c: (c.type.value, c.sort_order, c.name.casefold()),
            ))

    def update(self, category: Category) -> Category:
        with self._store.lock:
            if category.id not in self._data.categories:
                raise RecordNotFoundError(f"Category with ID {category.id} not found")
            self._require(self._data.categories, category.parent_id, "category")
            created_at = self._data.categories[category.id].created_at
            self._data.categories[category.id] = deepcopy(category)
            self._data.categories[category.id].created_at = created_at
            return category

    def delete(self, category_id: str) -> None:
        with self._store.lock:
            if self._data.categories.pop(category_id, None) is None:
                raise RecordNotFoundError(f"Category with ID {category_id} not found")
            # Mirror ON DELETE SET NULL / CASCADE
            for child in self._data.categories.values():
                if child.parent_id == category_id:
                    child.parent_id = None
            for txn in self._data.transactions.values():
                if txn.category_id == category_id:
                    txn.category_id = None
            for recurring in self._data.recurring.values():
                if recurring.category_id == category_id:
                    recurring.category_id = None
            for budget_id in [b.id for b in self._data.budgets.values() if b.category_id == category_id]:
                del self._data.budgets[budget_id]


def _matches_transaction(txn: Transaction, filter: TransactionFilter) -> bool:
    if filter.wallet_id and txn.wallet_id != filter.wallet_id:
        return False
    if filter.category_id and txn.category_id != filter.category_id:
        return False
    if filter.type and txn.type != filter.type:
        return False
    if filter.start_date and txn.transaction_date < filter.start_date:
        return False
    if filter.end_date and txn.transaction_date > filter.end_date:
        return False
    if filter.search and filter.search.lower() not in txn.description.lower():
        return False
    return all(txn.has_tag(tag) for tag in filter.tags)


class InMemoryTransactionRepository(_InMemoryRepository, TransactionRepository):

    def create(self, transaction: Transaction) -> Transaction:
        with self._store.lock:
            self._require(self._data.wallets, transaction.wallet_id, "wallet")
            self._require(self._data.categories, transaction.category_id, "category")
            transaction.created_at = transaction.updated_at = datetime.now()
            return self._insert(self._data.transactions, transaction, "Transaction")

    def get_by_id(self, transaction_id: str) -> Transaction:
        with self._store.lock:
            return self._get(self._data.transactions, transaction_id, "Transaction")

    def _matching(self, filter: Optional[TransactionFilter]) -> List[Transaction]:
        filter = filter or TransactionFilter()
        return [t for t in self._data.transactions.values() if _matches_transaction(t, filter)]

    def list(
        self,
        filter: Optional[TransactionFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transaction]:
        with self._store.lock:
            ordered = _newest_first(self._matching(filter), key=lambda t: t.transaction_date)
            return deepcopy(_paginate(ordered, params))

    def update(self, transaction: Transaction) -> Transaction:
        with self._store.lock:
            stored = self._data.transactions.get(transaction.id)
            if stored is None:
                raise RecordNotFoundError(f"Transaction with ID {transaction.id} not found")
            self._require(self._data.categories, transaction.category_id, "category")
            stored.category_id = transaction.category_id
            stored.description = transaction.description
            stored.tags = list(transaction.tags)
            stored.transaction_date = transaction.transaction_date
            stored.updated_at = datetime.now()
            return transaction

    def delete(self, transaction_id: str) -> None:
        with self._store.lock:
            if self._data.transactions.pop(transaction_id, None) is None:
                raise RecordNotFoundError(f"Transaction with ID {transaction_id} not found")

    def get_summary(self, filter: Optional[TransactionFilter] = None) -> TransactionSummary:
        summary = TransactionSummary()
        with self._store.lock:
            for txn in self._matching(filter):
                if txn.type == TransactionType.INCOME:
                    summary.total_income += txn.amount
                else:
                    summary.total_expense += txn.amount
                summary.count += 1
        return summary

    def get_by_category(self, filter: Optional[TransactionFilter] = None) -> List[CategorySummary]:
        grouped: Dict[Optional[str], CategorySummary] = {}
        with self._store.lock:
            for txn in self._matching(filter):
                summary = grouped.get(txn.category_id)
                if summary is None:
                    category = self._data.categories.get(txn.category_id) if txn.category_id else None
                    summary = CategorySummary(
                        category_id=txn.category_id,
                        category_name=category.name if category else UNCATEGORIZED,
                        total=Decimal("0"),
                        count=0,
                    )
                    grouped[txn.category_id] = summary
                summary.total += txn.amount
                summary.count += 1
        return apply_percentages(list(grouped.values()))


class InMemoryTransferRepository(_InMemoryRepository, TransferRepository):

    def create(self, transfer: Transfer) -> Transfer:
        with self._store.lock:
            self._require(self._data.wallets, transfer.from_wallet_id, "wallet")
            self._require(self._data.wallets, transfer.to_wallet_id, "wallet")
            transfer.created_at = datetime.now()
            return self._insert(self._data.transfers, transfer, "Transfer")

    def get_by_id(self, transfer_id: str) -> Transfer:
        with self._store.lock:
            return self._get(self._data.transfers, transfer_id, "Transfer")

    def list(
        self,
        filter: Optional[TransferFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transfer]:
        filter = filter or TransferFilter()

        def matches(t: Transfer) -> bool:
            if filter.wallet_id and filter.wallet_id not in (t.from_wallet_id, t.to_wallet_id):
                return False
            if filter.from_wallet_id and t.from_wallet_id != filter.from_wallet_id:
                return False
            if filter.to_wallet_id and t.to_wallet_id != filter.to_wallet_id:
                return False
            if filter.start_date and t.created_at.date() < filter.start_date:
                return False
            if filter.end_date and t.created_at.date() > filter.end_date:
                return False
            return True

        with self._store.lock:
            matching = [t for t in self._data.transfers.values() if matches(t)]
            ordered = _newest_first(matching, key=lambda t: t.created_at)
            return deepcopy(_paginate(ordered, params))


class InMemoryBudgetRepository(_InMemoryRepository, BudgetRepository):

    def create(self, budget: Budget) -> Budget:
        with self._store.lock:
            self._require(self._data.categories, budget.category_id, "category")
            budget.created_at = datetime.now()
            return self._insert(self._data.budgets, budget, "Budget")

    def get_by_id(self, budget_id: str) -> Budget:
        with self._store.lock:
            return self._get(self._data.budgets, budget_id, "Budget")

    def get_by_category(self, category_id: str) -> Budget:
        budgets = self.list(BudgetFilter(is_active=True, category_id=category_id))
        if not budgets:
            raise RecordNotFoundError(f"No active budget for category {category_id}")
        return budgets[0]

    def list(self, filter: Optional[BudgetFilter] = None) -> List[Budget]:
        filter = filter or BudgetFilter()
        with self._store.lock:
            budgets = [
                b for b in self._data.budgets.values()
                if (filter.is_active is None or b.is_active == filter.is_active)
                and (filter.category_id is None or b.category_id == filter.category_id)
                and (filter.period is None or b.period == filter.period)
            ]
            return deepcopy(_newest_first(budgets, key=lambda b: b.created_at))

    def update(self, budget: Budget) -> Budget:
        with self._store.lock:
            stored = self._data.budgets.get(budget.id)
            if stored is None:
                raise RecordNotFoundError(f"Budget with ID {budget.id} not found")
            stored.amount = budget.amount
            stored.period = budget.period
            stored.start_date = budget.start_date
            stored.end_date = budget.end_date
            stored.is_active = budget.is_active
            return budget

    def delete(self, budget_id: str) -> None:
        with self._store.lock:
            if self._data.budgets.pop(budget_id, None) is None:
                raise RecordNotFoundError(f"Budget with ID {budget_id} not found")


class InMemoryGoalRepository(_InMemoryRepository, GoalRepository):

    def create(self, goal: Goal) -> Goal:
        with self._store.lock:
            goal.created_at = goal.updated_at = datetime.now()
            return self._insert(self._data.goals, goal, "Goal")

    def get_by_id(self, goal_id: str) -> Goal:
        with self._store.lock:
            return self._get(self._data.goals, goal_id, "Goal")

    def list(self, filter: Optional[GoalFilter] = None) -> List[Goal]:
        filter = filter or GoalFilter()
        with self._store.lock:
            goals = [
                g for g in self._data.goals.values()
                if filter.status is None or g.status == filter.status
            ]
            # Goals without a deadline go last
            ordered = sorted(goals, key=lambda g: (g.deadline is None, g.deadline or date.min))
            return deepcopy(ordered)

    def update(self, goal: Goal) -> Goal:
        with self._store.lock:
            stored = self._data.goals.get(goal.id)
            if stored is None:
                raise RecordNotFoundError(f"Goal with ID {goal.id} not found")
            stored.name = goal.name
            stored.description = goal.description
            stored.target_amount = goal.target_amount
            stored.deadline = goal.deadline
            stored.status = goal.status
            stored.color = goal.color
            stored.icon = goal.icon
            stored.updated_at = datetime.now()
            return goal

    def delete(self, goal_id: str) -> None:
        with self._store.lock:
            if self._data.goals.pop(goal_id, None) is None:
                raise RecordNotFoundError(f"Goal with ID {goal_id} not found")
            for contribution_id in [
                c.id for c in self._data.contributions.values() if c.goal_id == goal_id
            ]:
                del self._data.contributions[contribution_id]

    def add_contribution(self, contribution: GoalContribution) -> GoalContribution:
        with self._store.lock:
            goal = self._data.goals.get(contribution.goal_id)
            if goal is None:
                raise RecordNotFoundError(f"Goal with ID {contribution.goal_id} not found")
            self._insert(self._data.contributions, contribution, "Contribution")
            goal.current_amount += contribution.amount
            goal.updated_at = datetime.now()
            return contribution

    def get_contributions(
        self,
        goal_id: str,
        params: Optional[ListParams] = None,
    ) -> List[GoalContribution]:
        with self._store.lock:
            matching = [c for c in self._data.contributions.values() if c.goal_id == goal_id]
            ordered = _newest_first(matching, key=lambda c: c.created_at)
            return deepcopy(_paginate(ordered, params))


class InMemoryRecurringRepository(_InMemoryRepository, RecurringRepository):

    def create(self, recurring: RecurringTransaction) -> RecurringTransaction:
        with self._store.lock:
            self._require(self._data.wallets, recurring.wallet_id, "wallet")
            self._require(self._data.categories, recurring.category_id, "category")
            recurring.created_at = datetime.now()
            return self._insert(self._data.recurring, recurring, "Recurring transaction")

    def get_by_id(self, recurring_id: str) -> RecurringTransaction:
        with self._store.lock:
            return self._get(self._data.recurring, recurring_id, "Recurring transaction")

    def list(self, filter: Optional[RecurringFilter] = None) -> List[RecurringTransaction]:
        filter = filter or RecurringFilter()
        with self._store.lock:
            items = [
                r for r in self._data.recurring.values()
                if (filter.wallet_id is None or r.wallet_id == filter.wallet_id)
                and (filter.is_active is None or r.is_active == filter.is_active)
                and (filter.type is None or r.type == filter.type)
                and (filter.frequency is None or r.frequency == filter.frequency)
            ]
            return deepcopy(sorted(items, key=lambda r: r.next_due))

    def get_due(self, as_of: date) -> List[RecurringTransaction]:
        return [r for r in self.list(RecurringFilter(is_active=True)) if r.next_due <= as_of]

    def update(self, recurring: RecurringTransaction) -> RecurringTransaction:
        with self._store.lock:
            stored = self._data.recurring.get(recurring.id)
            if stored is None:
                raise RecordNotFoundError(f"Recurring transaction with ID {recurring.id} not found")
            self._require(self._data.categories, recurring.category_id, "category")
            stored.category_id = recurring.category_id
            stored.amount = recurring.amount
            stored.description = recurring.description
            stored.frequency = recurring.frequency
            stored.next_due = recurring.next_due
            stored.end_date = recurring.end_date
            stored.is_active = recurring.is_active
            return recurring

    def delete(self, recurring_id: str) -> None:
        with self._store.lock:
            if self._data.recurring.pop(recurring_id, None) is None:
                raise RecordNotFoundError(f"Recurring transaction with ID {recurring_id} not found")


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of work over an InMemoryStore.

    run_atomic() holds the store lock for the whole scope and restores a
    snapshot taken on entry if the function raises.
    """

    def __init__(self, store: Optional[InMemoryStore] = None):
        self.store = store or InMemoryStore()
        self._repositories = RepositorySet(
            wallets=InMemoryWalletRepository(self.store),
            categories=InMemoryCategoryRepository(self.store),
            transactions=InMemoryTransactionRepository(self.store),
            transfers=InMemoryTransferRepository(self.store),
            budgets=InMemoryBudgetRepository(self.store),
            goals=InMemoryGoalRepository(self.store),
            recurring=InMemoryRecurringRepository(self.store),
        )

    @property
    def repositories(self) -> RepositorySet:
        return self._repositories

    def run_atomic(self, fn: Callable[[RepositorySet], T]) -> T:
        with self.store.lock:
            snapshot = self.store.snapshot()
            try:
                return fn(self._repositories)
            except BaseException:
                self.store.restore(snapshot)
                raise
