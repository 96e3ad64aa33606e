import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import RecurringFrequency, TransactionType
from wallet_tracker.domain.models import RecurringTransaction
from wallet_tracker.repositories.base import RecurringFilter
from wallet_tracker.repositories.unit_of_work import UnitOfWork
from wallet_tracker.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)


class RecurringService:

    def __init__(self, uow: UnitOfWork, transaction_service: TransactionService):
        self.uow = uow
        self.transaction_service = transaction_service

    @property
    def repository(self):
        return self.uow.repositories.recurring

    def create(
        self,
        wallet_id: str,
        type: TransactionType,
        amount: Decimal,
        frequency: RecurringFrequency,
        next_due: date,
        category_id: Optional[str] = None,
        description: str = "",
        end_date: Optional[date] = None,
    ) -> RecurringTransaction:
        recurring = RecurringTransaction(
            wallet_id=wallet_id,
            type=type,
            amount=amount,
            frequency=frequency,
            next_due=next_due,
            category_id=category_id,
            description=description,
            end_date=end_date,
        )
        recurring.validate()

        self.repository.create(recurring)
        logger.info(
            "Scheduled %s %s of %s starting %s",
            recurring.frequency.value, recurring.type.value, recurring.amount, recurring.next_due,
        )
        return recurring

    def get(self, recurring_id: str) -> RecurringTransaction:
        return self.repository.get_by_id(recurring_id)

    def list(self, filter: Optional[RecurringFilter] = None) -> List[RecurringTransaction]:
        return self.repository.list(filter)

    def list_active(self) -> List[RecurringTransaction]:
        return self.repository.list(RecurringFilter(is_active=True))

    def get_due(self, as_of: Optional[date] = None) -> List[RecurringTransaction]:
        return self.repository.get_due(as_of or date.today())

    def process_due(self, as_of: Optional[date] = None) -> int:
        """
        Generate the transactions of every due recurring entry.

        Each entry is handled on its own: it produces one transaction dated
        next_due, then next_due moves forward one step. An entry that fails is
        logged and skipped so the rest of the batch still runs. If the
        transaction succeeds but the schedule update fails, the entry is due
        again on the next run and its transaction is generated twice.

        Args:
            as_of: Reference date, defaults to today

        Returns:
            Number of entries processed successfully
        """
        due = self.get_due(as_of)
        processed = 0

        for recurring in due:
            try:
                self.transaction_service.post(recurring.to_transaction())
            except Exception:
                logger.warning("Failed to process recurring %s", recurring.id, exc_info=True)
                continue

            recurring.advance_next_due()
            try:
                self.repository.update(recurring)
            except Exception:
                logger.warning("Failed to update recurring %s", recurring.id, exc_info=True)
                continue

            processed += 1

        logger.info("Processed %d of %d due recurring transactions", processed, len(due))
        return processed

    def update(
        self,
        recurring_id: str,
        amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        category_id: Optional[str] = None,
        frequency: Optional[RecurringFrequency] = None,
        next_due: Optional[date] = None,
        end_date: Optional[date] = None,
        is_active: Optional[bool] = None,
    ) -> RecurringTransaction:
        recurring = self.repository.get_by_id(recurring_id)

        if amount is not None:
            recurring.amount = amount
        if description is not None:
            recurring.description = description
        if category_id is not None:
            recurring.category_id = category_id
        if frequency is not None:
            recurring.frequency = frequency
        if next_due is not None:
            recurring.next_due = next_due
        if end_date is not None:
            recurring.end_date = end_date
        if is_active is not None:
            recurring.is_active = is_active
        recurring.validate()

        return self.repository.update(recurring)

    def deactivate(self, recurring_id: str) -> RecurringTransaction:
        # No validation: an entry past its end date is still allowed to stop
        recurring = self.repository.get_by_id(recurring_id)
        recurring.is_active = False
        return self.repository.update(recurring)

    def delete(self, recurring_id: str) -> None:
        self.repository.delete(recurring_id)
        logger.info("Deleted recurring transaction %s", recurring_id)
