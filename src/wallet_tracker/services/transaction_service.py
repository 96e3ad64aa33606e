import logging
from calendar import monthrange
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from wallet_tracker.domain.enums import TransactionType
from wallet_tracker.domain.errors import InactiveWalletError, InsufficientBalanceError
from wallet_tracker.domain.models import Transaction
from wallet_tracker.repositories.base import (
    CategorySummary,
    ListParams,
    TransactionFilter,
    TransactionSummary,
)
from wallet_tracker.repositories.unit_of_work import RepositorySet, UnitOfWork
from wallet_tracker.services.models import MonthlySummary

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month"""
    _, last_day = monthrange(year, month)  # Gets the last day of month
    return date(year, month, 1), date(year, month, last_day)


def post_transaction(repos: RepositorySet, transaction: Transaction) -> Transaction:
    """
    Insert a validated transaction and apply it to its wallet balance.

    Must run inside an atomic scope: the balance is read and written
    through the same scoped repositories.

    Raises:
        RecordNotFoundError: If the wallet or category does not exist
        InactiveWalletError: If the wallet was soft deleted
        InsufficientBalanceError: If an expense exceeds the wallet balance
    """
    wallet = repos.wallets.get_by_id(transaction.wallet_id)
    if not wallet.is_active:
        raise InactiveWalletError(wallet.id)

    if transaction.category_id is not None:
        repos.categories.get_by_id(transaction.category_id)

    if transaction.type.is_expense and wallet.balance < transaction.amount:
        raise InsufficientBalanceError(wallet.id, wallet.balance, transaction.amount)

    repos.transactions.create(transaction)
    repos.wallets.update_balance(wallet.id, wallet.balance + transaction.signed_amount)
    return transaction


class TransactionService:

    def __init__(self, uow: UnitOfWork, recent_limit: int = 10):
        self.uow = uow
        self.recent_limit = recent_limit

    @property
    def repository(self):
        return self.uow.repositories.transactions

    def create(
        self,
        wallet_id: str,
        type: TransactionType,
        amount: Decimal,
        category_id: Optional[str] = None,
        description: str = "",
        tags: Optional[Iterable[str]] = None,
        transaction_date: Optional[date] = None,
    ) -> Transaction:
        """
        Record an income or expense and move the wallet balance with it.

        The ledger row and the balance update are committed together or not at all.

        Args:
            wallet_id: Wallet the money enters or leaves
            type: INCOME adds to the balance, EXPENSE subtracts
            amount: Strictly positive amount; the sign comes from type
            category_id: Optional category
            description: Free text
            tags: Free text labels, normalised to lower case
            transaction_date: Business date, defaults to today

        Returns:
            The persisted transaction

        Raises:
            ValidationError: Before any storage access, if input is invalid
            RecordNotFoundError: If the wallet or category does not exist
            InactiveWalletError: If the wallet was soft deleted
            InsufficientBalanceError: If an expense exceeds the wallet balance
        """
        transaction = Transaction(
            wallet_id=wallet_id,
            type=type,
            amount=amount,
            category_id=category_id,
            description=description,
            tags=list(tags or []),
            transaction_date=transaction_date or date.today(),
        )
        return self.post(transaction)

    def post(self, transaction: Transaction) -> Transaction:
        """Validate and persist a prepared transaction. Same guarantees as create()."""
        transaction.validate()

        self.uow.run_atomic(lambda repos: post_transaction(repos, transaction))
        logger.info(
            "Recorded %s of %s on wallet %s (%s)",
            transaction.type.value, transaction.amount, transaction.wallet_id, transaction.id,
        )
        return transaction

    def delete(self, transaction_id: str) -> None:
        """
        Delete a transaction and reverse its effect on the wallet balance.

        Raises:
            RecordNotFoundError: If the transaction does not exist
            InsufficientBalanceError: If reversing an income would make the balance negative
        """
        def reverse(repos: RepositorySet) -> None:
            transaction = repos.transactions.get_by_id(transaction_id)
            wallet = repos.wallets.get_by_id(transaction.wallet_id)

            new_balance = wallet.balance - transaction.signed_amount
            if new_balance < 0:
                raise InsufficientBalanceError(wallet.id, wallet.balance, transaction.amount)

            repos.transactions.delete(transaction.id)
            repos.wallets.update_balance(wallet.id, new_balance)

        self.uow.run_atomic(reverse)
        logger.info("Deleted transaction %s", transaction_id)

    def get(self, transaction_id: str) -> Transaction:
        return self.repository.get_by_id(transaction_id)

    def list(
        self,
        filter: Optional[TransactionFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transaction]:
        """
        Query transactions with optional filters.

        Example:
            ### Get all January 2026 expenses
            transactions = service.list(TransactionFilter(
                type=TransactionType.EXPENSE,
                start_date=date(2026, 1, 1),
                end_date=date(2026, 1, 31),
            ))
        """
        return self.repository.list(filter, params)

    def get_by_wallet(self, wallet_id: str, params: Optional[ListParams] = None) -> List[Transaction]:
        return self.repository.list(TransactionFilter(wallet_id=wallet_id), params)

    def get_recent(self, limit: Optional[int] = None) -> List[Transaction]:
        return self.repository.list(params=ListParams(limit=limit or self.recent_limit))

    def get_summary(self, filter: Optional[TransactionFilter] = None) -> TransactionSummary:
        return self.repository.get_summary(filter)

    def get_category_summary(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        type: TransactionType = TransactionType.EXPENSE,
    ) -> List[CategorySummary]:
        """Per-category totals for one transaction type, largest first"""
        filter = TransactionFilter(type=type, start_date=start_date, end_date=end_date)
        return self.repository.get_by_category(filter)

    def get_monthly_summary(self, year: int, month: int) -> MonthlySummary:
        """Get summary for a specific month"""
        start_date, end_date = month_bounds(year, month)

        totals = self.repository.get_summary(
            TransactionFilter(start_date=start_date, end_date=end_date)
        )
        by_category = self.get_category_summary(start_date, end_date)

        return MonthlySummary(year=year, month=month, totals=totals, by_category=by_category)
