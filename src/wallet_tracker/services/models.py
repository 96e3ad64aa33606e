"""
Service layer models - DTOs for service operations.

These models represent the results of service operations, not domain entities.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.models import Budget, Goal
from wallet_tracker.repositories.base import CategorySummary, TransactionSummary


@dataclass
class BudgetStatus:
    """
    Spending measured against one budget.

    progress is a percentage and is not clamped: 125 means 25% over the limit.
    """
    budget: Budget
    category_name: str
    spent: Decimal
    remaining: Decimal
    progress: Decimal
    is_over_budget: bool

    @classmethod
    def from_spent(cls, budget: Budget, category_name: str, spent: Decimal) -> "BudgetStatus":
        return cls(
            budget=budget,
            category_name=category_name,
            spent=spent,
            remaining=budget.remaining(spent),
            progress=budget.progress(spent),
            is_over_budget=budget.is_over_budget(spent),
        )


@dataclass
class GoalProgress:
    """Snapshot of a goal's progress towards its target"""
    goal: Goal
    progress: Decimal
    remaining: Decimal
    days_left: Optional[int]
    contribution_count: int

    @property
    def is_completed(self) -> bool:
        return self.goal.is_completed


@dataclass
class MonthlySummary:
    """
    Summary of transactions for a specific month.

    Aggregates income, expenses, and net flow for reporting.
    """
    year: int
    month: int
    totals: TransactionSummary
    by_category: List[CategorySummary] = field(default_factory=list)

    @property
    def start_date(self) -> date:
        """First day of the month"""
        return date(self.year, self.month, 1)

    @property
    def total_income(self) -> Decimal:
        return self.totals.total_income

    @property
    def total_expense(self) -> Decimal:
        return self.totals.total_expense

    @property
    def net_flow(self) -> Decimal:
        """Net cash flow (income - expense)"""
        return self.totals.net

    @property
    def transaction_count(self) -> int:
        return self.totals.count
