from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import (
    BudgetPeriod,
    CategoryType,
    GoalStatus,
    RecurringFrequency,
    TransactionType,
    WalletType,
)
from wallet_tracker.domain.errors import WalletTrackerError
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

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
UNCATEGORIZED = "Uncategorized"


class RepositoryError(WalletTrackerError):
    """Base class for normalized storage errors."""
    pass

class RecordNotFoundError(RepositoryError):
    """Raised when a referenced record cannot be found."""
    pass

class DuplicateKeyError(RepositoryError):
    """Raised when attempting to save a record whose key already exists."""
    pass

class ForeignKeyViolationError(RepositoryError):
    """Raised when a record references a row that does not exist."""
    pass

class StorageError(RepositoryError):
    """Raised for any other storage or transactional boundary failure."""
    pass


@dataclass
class ListParams:
    """Pagination parameters. Out of range values are clamped, not rejected."""
    limit: int = DEFAULT_LIMIT
    offset: int = 0

    def __post_init__(self):
        if self.limit <= 0:
            self.limit = DEFAULT_LIMIT
        self.limit = min(self.limit, MAX_LIMIT)
        self.offset = max(self.offset, 0)


@dataclass
class WalletFilter:
    is_active: Optional[bool] = None
    type: Optional[WalletType] = None
    currency: Optional[str] = None


@dataclass
class TransactionFilter:
    """All set fields must match. Dates are inclusive."""
    wallet_id: Optional[str] = None
    category_id: Optional[str] = None
    type: Optional[TransactionType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class TransferFilter:
    """wallet_id matches either side of the transfer."""
    wallet_id: Optional[str] = None
    from_wallet_id: Optional[str] = None
    to_wallet_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class BudgetFilter:
    is_active: Optional[bool] = None
    category_id: Optional[str] = None
    period: Optional[BudgetPeriod] = None


@dataclass
class GoalFilter:
    status: Optional[GoalStatus] = None


@dataclass
class RecurringFilter:
    wallet_id: Optional[str] = None
    is_active: Optional[bool] = None
    type: Optional[TransactionType] = None
    frequency: Optional[RecurringFrequency] = None


@dataclass
class TransactionSummary:
    """Aggregated totals for a set of transactions"""
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    count: int = 0

    @property
    def net(self) -> Decimal:
        """Net cash flow (income - expense)"""
        return self.total_income - self.total_expense


@dataclass
class CategorySummary:
    """Totals for one category. category_id None groups uncategorized entries."""
    category_id: Optional[str]
    category_name: str
    total: Decimal
    count: int
    percentage: Decimal = Decimal("0")


def apply_percentages(summaries: List[CategorySummary]) -> List[CategorySummary]:
    """Fill in each summary's share of the grand total, largest first"""
    grand_total = sum((s.total for s in summaries), Decimal("0"))
    for summary in summaries:
        if grand_total > 0:
            summary.percentage = summary.total / grand_total * 100
    return sorted(summaries, key=lambda s: s.total, reverse=True)


class WalletRepository(ABC):
    """
    Abstract repository for wallet persistence.

    The repository pattern abstracts the data access, making it easy
    to swap storage backends (SQLite in production, in-memory in tests).
    """

    @abstractmethod
    def create(self, wallet: Wallet) -> Wallet:
        """
        Save a new wallet.

        Raises:
            DuplicateKeyError: If a wallet with the same ID exists
        """
        pass

    @abstractmethod
    def get_by_id(self, wallet_id: str) -> Wallet:
        """
        Retrieve a wallet by ID, active or not.

        Raises:
            RecordNotFoundError: If the wallet does not exist
        """
        pass

    @abstractmethod
    def list(self, filter: Optional[WalletFilter] = None) -> List[Wallet]:
        """Retrieve wallets matching the filter, ordered by name"""
        pass

    @abstractmethod
    def update(self, wallet: Wallet) -> Wallet:
        """
        Update descriptive fields of a wallet. The balance is left untouched.

        Raises:
            RecordNotFoundError: If the wallet does not exist
        """
        pass

    @abstractmethod
    def delete(self, wallet_id: str) -> None:
        """
        Soft delete a wallet (is_active -> False). The record is kept.

        Raises:
            RecordNotFoundError: If the wallet does not exist or is already inactive
        """
        pass

    @abstractmethod
    def update_balance(self, wallet_id: str, new_balance: Decimal) -> None:
        """
        Set the wallet balance to an absolute value.

        Raises:
            RecordNotFoundError: If the wallet does not exist
        """
        pass

    @abstractmethod
    def get_total_balance(self) -> Decimal:
        """Sum of balances over active wallets"""
        pass


class CategoryRepository(ABC):
    """Abstract repository for category persistence."""

    @abstractmethod
    def create(self, category: Category) -> Category:
        pass

    @abstractmethod
    def get_by_id(self, category_id: str) -> Category:
        """
        Raises:
            RecordNotFoundError: If the category does not exist
        """
        pass

    @abstractmethod
    def get_by_type(self, category_type: CategoryType) -> List[Category]:
        pass

    @abstractmethod
    def get_children(self, parent_id: str) -> List[Category]:
        pass

    @abstractmethod
    def list(self) -> List[Category]:
        """All categories ordered by type, sort order and name"""
        pass

    @abstractmethod
    def update(self, category: Category) -> Category:
        pass

    @abstractmethod
    def delete(self, category_id: str) -> None:
        """
        Delete a category. Transactions keep existing with no category.

        Raises:
            RecordNotFoundError: If the category does not exist
        """
        pass


class TransactionRepository(ABC):
    """Abstract repository for income/expense ledger entries."""

    @abstractmethod
    def create(self, transaction: Transaction) -> Transaction:
        """
        Insert a transaction row. Does not touch the wallet balance.

        Raises:
            DuplicateKeyError: If the ID already exists
            ForeignKeyViolationError: If the wallet or category does not exist
        """
        pass

    @abstractmethod
    def get_by_id(self, transaction_id: str) -> Transaction:
        """
        Raises:
            RecordNotFoundError: If the transaction does not exist
        """
        pass

    @abstractmethod
    def list(
        self,
        filter: Optional[TransactionFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transaction]:
        """
        Retrieve transactions with optional filtering.

        Args:
            filter: Criteria every returned transaction matches
            params: Pagination, newest transaction_date first

        Returns:
            List of matching transactions
        """
        pass

    @abstractmethod
    def update(self, transaction: Transaction) -> Transaction:
        """
        Update descriptive fields (category, description, tags).

        Raises:
            RecordNotFoundError: If the transaction does not exist
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: str) -> None:
        """
        Raises:
            RecordNotFoundError: If the transaction does not exist
        """
        pass

    @abstractmethod
    def get_summary(self, filter: Optional[TransactionFilter] = None) -> TransactionSummary:
        """Total income, total expense and count of matching transactions"""
        pass

    @abstractmethod
    def get_by_category(self, filter: Optional[TransactionFilter] = None) -> List[CategorySummary]:
        """Per-category totals of matching transactions, largest first"""
        pass


class TransferRepository(ABC):
    """Abstract repository for wallet-to-wallet transfers."""

    @abstractmethod
    def create(self, transfer: Transfer) -> Transfer:
        """
        Insert a transfer row. Does not touch wallet balances.

        Raises:
            ForeignKeyViolationError: If either wallet does not exist
        """
        pass

    @abstractmethod
    def get_by_id(self, transfer_id: str) -> Transfer:
        pass

    @abstractmethod
    def list(
        self,
        filter: Optional[TransferFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transfer]:
        """Retrieve transfers, newest first"""
        pass


class BudgetRepository(ABC):
    """Abstract repository for budgets."""

    @abstractmethod
    def create(self, budget: Budget) -> Budget:
        pass

    @abstractmethod
    def get_by_id(self, budget_id: str) -> Budget:
        pass

    @abstractmethod
    def get_by_category(self, category_id: str) -> Budget:
        """
        Active budget for a category.

        Raises:
            RecordNotFoundError: If the category has no active budget
        """
        pass

    @abstractmethod
    def list(self, filter: Optional[BudgetFilter] = None) -> List[Budget]:
        pass

    @abstractmethod
    def update(self, budget: Budget) -> Budget:
        pass

    @abstractmethod
    def delete(self, budget_id: str) -> None:
        pass


class GoalRepository(ABC):
    """Abstract repository for savings goals and their contributions."""

    @abstractmethod
    def create(self, goal: Goal) -> Goal:
        pass

    @abstractmethod
    def get_by_id(self, goal_id: str) -> Goal:
        pass

    @abstractmethod
    def list(self, filter: Optional[GoalFilter] = None) -> List[Goal]:
        pass

    @abstractmethod
    def update(self, goal: Goal) -> Goal:
        """
        Update goal fields except current_amount, which only moves through
        add_contribution.
        """
        pass

    @abstractmethod
    def delete(self, goal_id: str) -> None:
        pass

    @abstractmethod
    def add_contribution(self, contribution: GoalContribution) -> GoalContribution:
        """
        Record a contribution and increment the goal's current_amount.

        The increment is relative (current_amount + amount) and applied by
        the store, never written back from a value read earlier.

        Raises:
            RecordNotFoundError: If the goal does not exist
        """
        pass

    @abstractmethod
    def get_contributions(
        self,
        goal_id: str,
        params: Optional[ListParams] = None,
    ) -> List[GoalContribution]:
        """Contributions of a goal, newest first"""
        pass


class RecurringRepository(ABC):
    """Abstract repository for recurring transaction templates."""

    @abstractmethod
    def create(self, recurring: RecurringTransaction) -> RecurringTransaction:
        pass

    @abstractmethod
    def get_by_id(self, recurring_id: str) -> RecurringTransaction:
        pass

    @abstractmethod
    def list(self, filter: Optional[RecurringFilter] = None) -> List[RecurringTransaction]:
        pass

    @abstractmethod
    def get_due(self, as_of: date) -> List[RecurringTransaction]:
        """
        Active templates with next_due on or before as_of, oldest first.

        Args:
            as_of: Reference date, usually today
        """
        pass

    @abstractmethod
    def update(self, recurring: RecurringTransaction) -> RecurringTransaction:
        pass

    @abstractmethod
    def delete(self, recurring_id: str) -> None:
        pass
