import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import BudgetPeriod, TransactionType
from wallet_tracker.domain.models import Budget
from wallet_tracker.repositories.base import BudgetFilter, TransactionFilter
from wallet_tracker.repositories.unit_of_work import UnitOfWork
from wallet_tracker.services.models import BudgetStatus

logger = logging.getLogger(__name__)


class BudgetService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def repository(self):
        return self.uow.repositories.budgets

    def create(
        self,
        category_id: str,
        amount: Decimal,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Budget:
        """
        Create a spending limit for a category.

        Raises:
            ValidationError: If a field is invalid
            RecordNotFoundError: If the category does not exist
        """
        budget = Budget(
            category_id=category_id,
            amount=amount,
            period=period,
            start_date=start_date or date.today(),
            end_date=end_date,
        )
        budget.validate()

        self.uow.repositories.categories.get_by_id(category_id)
        self.repository.create(budget)
        logger.info("Created %s budget of %s for category %s", budget.period.value, budget.amount, category_id)
        return budget

    def get(self, budget_id: str) -> Budget:
        return self.repository.get_by_id(budget_id)

    def get_by_category(self, category_id: str) -> Budget:
        return self.repository.get_by_category(category_id)

    def list(self, filter: Optional[BudgetFilter] = None) -> List[Budget]:
        return self.repository.list(filter)

    def list_active(self) -> List[Budget]:
        return self.repository.list(BudgetFilter(is_active=True))

    def get_status(self, budget_id: str) -> BudgetStatus:
        """
        Compare a budget with the expenses of its category.

        Spending counts expense transactions dated from start_date through
        end_date, or with no upper bound when the budget has no end date.
        """
        budget = self.repository.get_by_id(budget_id)
        return self._status(budget)

    def get_all_status(self) -> List[BudgetStatus]:
        """Status of every active budget"""
        return [self._status(budget) for budget in self.list_active()]

    def update(
        self,
        budget_id: str,
        amount: Optional[Decimal] = None,
        period: Optional[BudgetPeriod] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        is_active: Optional[bool] = None,
    ) -> Budget:
        budget = self.repository.get_by_id(budget_id)

        if amount is not None:
            budget.amount = amount
        if period is not None:
            budget.period = period
        if start_date is not None:
            budget.start_date = start_date
        if end_date is not None:
            budget.end_date = end_date
        if is_active is not None:
            budget.is_active = is_active
        budget.validate()

        return self.repository.update(budget)

    def delete(self, budget_id: str) -> None:
        self.repository.delete(budget_id)
        logger.info("Deleted budget %s", budget_id)

    def _status(self, budget: Budget) -> BudgetStatus:
        repos = self.uow.repositories
        summary = repos.transactions.get_summary(
            TransactionFilter(
                category_id=budget.category_id,
                type=TransactionType.EXPENSE,
                start_date=budget.start_date,
                end_date=budget.end_date,
            )
        )
        category_name = repos.categories.get_by_id(budget.category_id).name
        return BudgetStatus.from_spent(budget, category_name, summary.total_expense)
