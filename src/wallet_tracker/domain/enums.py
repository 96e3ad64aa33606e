from enum import Enum

class WalletType(Enum):
    """Kind of account a wallet represents"""
    CASH = "cash"
    BANK = "bank"
    EWALLET = "ewallet"


class CategoryType(Enum):
    """Whether a category groups income or expenses"""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionType(Enum):
    """Represents whether money is coming in or out"""
    INCOME = "income" # in
    EXPENSE = "expense" # out

    @property
    def is_income(self) -> bool:
        return self is TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self is TransactionType.EXPENSE


class BudgetPeriod(Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class GoalStatus(Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurringFrequency(Enum):
    """How often a recurring transaction generates a real one"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
