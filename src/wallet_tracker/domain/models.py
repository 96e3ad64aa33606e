from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from uuid import uuid4

from wallet_tracker.domain.enums import (
    BudgetPeriod,
    CategoryType,
    GoalStatus,
    RecurringFrequency,
    TransactionType,
    WalletType,
)
from wallet_tracker.domain.errors import SameWalletTransferError, ValidationError

NAME_MAX_LENGTH = 100
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Matches the NUMERIC(15, 2) money columns
CENT = Decimal("0.01")
MONEY_INTEGER_DIGITS = 13
MONEY_LIMIT = Decimal(10) ** MONEY_INTEGER_DIGITS


def new_id() -> str:
    """Generate a new entity identifier"""
    return str(uuid4())


def to_money(value) -> Decimal:
    """
    Coerce a user supplied amount into an exact Decimal.

    Floats are rejected: binary floating point cannot represent most
    currency amounts exactly. Amounts are limited to 13 integer digits
    and 2 decimal places.

    Raises:
        ValidationError: If the value is a float, not a number or out of range
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"Amount must be a Decimal, int or str, got {type(value).__name__}")
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    if abs(result) >= MONEY_LIMIT:
        raise ValidationError(f"Amount must have at most {MONEY_INTEGER_DIGITS} integer digits: {value}")
    if result != result.quantize(CENT):
        raise ValidationError(f"Amount must have at most 2 decimal places: {value}")
    return result


def _clean_name(name: str, entity: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(f"{entity} name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"{entity} name must be at most {NAME_MAX_LENGTH} characters")
    return name


def _require_enum(value, enum_cls, message: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"{message}: {value!r}")


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the target month"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    _, last_day = monthrange(year, month)
    return date(year, month, min(day.day, last_day))


@dataclass
class Wallet:
    """A named monetary account. Its balance is only changed by the mutation services."""
    name: str
    type: WalletType = WalletType.CASH
    balance: Decimal = ZERO
    currency: str = "IDR"
    color: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        self.name = _clean_name(self.name, "Wallet")
        self.type = _require_enum(self.type, WalletType, "Invalid wallet type")

        self.currency = (self.currency or "").strip().upper()
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValidationError("Currency must be a 3-letter ISO code")

        self.balance = to_money(self.balance)
        if self.balance < ZERO:
            raise ValidationError("Wallet balance cannot be negative")

    def __repr__(self):
        return f"Wallet({self.name}, {self.type.value}, {self.balance} {self.currency})"


@dataclass
class Category:
    """Groups transactions. A category with a parent_id is a sub-category."""
    name: str
    type: CategoryType
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None

    @property
    def is_subcategory(self) -> bool:
        return self.parent_id is not None

    def validate(self) -> None:
        self.name = _clean_name(self.name, "Category")
        self.type = _require_enum(self.type, CategoryType, "Invalid category type")


@dataclass
class Transaction:
    """Core ledger entry: a single income or expense against one wallet"""
    wallet_id: str
    type: TransactionType
    amount: Decimal
    transaction_date: date = field(default_factory=date.today)
    category_id: Optional[str] = None
    description: str = ""
    tags: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.wallet_id:
            raise ValidationError("Wallet is required")
        self.type = _require_enum(self.type, TransactionType, "Invalid transaction type")

        self.amount = to_money(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Transaction amount must be positive")

        self.description = (self.description or "").strip()
        tags, self.tags = self.tags or [], []
        for tag in tags:
            self.add_tag(tag)

    @property
    def signed_amount(self) -> Decimal:
        """Return amount with sign for balance calculations"""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    def add_tag(self, tag: str) -> None:
        tag = tag.strip().lower()
        if tag and tag not in self.tags:
            self.tags.append(tag)

    def has_tag(self, tag: str) -> bool:
        return tag.strip().lower() in self.tags

    def __repr__(self):
        sign = "+" if self.type == TransactionType.INCOME else "-"
        return f"Transaction({self.transaction_date}, {self.description[:30]}, {sign}{self.amount})"


@dataclass
class Transfer:
    """Movement of funds between two wallets. The fee is taken from the source only."""
    from_wallet_id: str
    to_wallet_id: str
    amount: Decimal
    fee: Decimal = ZERO
    note: str = ""
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.from_wallet_id:
            raise ValidationError("Source wallet is required")
        if not self.to_wallet_id:
            raise ValidationError("Destination wallet is required")
        if self.from_wallet_id == self.to_wallet_id:
            raise SameWalletTransferError(self.from_wallet_id)

        self.amount = to_money(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Transfer amount must be positive")

        self.fee = to_money(self.fee if self.fee is not None else ZERO)
        if self.fee < ZERO:
            raise ValidationError("Transfer fee cannot be negative")

        self.note = (self.note or "").strip()

    @property
    def total_deducted(self) -> Decimal:
        """Amount leaving the source wallet (amount + fee)"""
        return self.amount + self.fee


@dataclass
class Budget:
    """Spending limit for a category. end_date None means the budget never ends."""
    category_id: str
    amount: Decimal
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: date = field(default_factory=date.today)
    end_date: Optional[date] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.category_id:
            raise ValidationError("Category is required for budget")

        self.amount = to_money(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Budget amount must be positive")

        self.period = _require_enum(self.period, BudgetPeriod, "Invalid budget period")
        if self.end_date is not None and self.end_date <= self.start_date:
            raise ValidationError("End date must be after start date")

    def progress(self, spent: Decimal) -> Decimal:
        """Percentage of the budget used. Not clamped, can exceed 100."""
        if self.amount == ZERO:
            return ZERO
        return spent / self.amount * HUNDRED

    def remaining(self, spent: Decimal) -> Decimal:
        return max(ZERO, self.amount - spent)

    def is_over_budget(self, spent: Decimal) -> bool:
        return spent > self.amount


@dataclass
class Goal:
    """Savings target. current_amount always equals the sum of its contributions."""
    name: str
    target_amount: Decimal
    description: str = ""
    current_amount: Decimal = ZERO
    deadline: Optional[date] = None
    status: GoalStatus = GoalStatus.ACTIVE
    color: Optional[str] = None
    icon: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def validate(self) -> None:
        self.name = _clean_name(self.name, "Goal")
        self.description = (self.description or "").strip()

        self.target_amount = to_money(self.target_amount)
        if self.target_amount <= ZERO:
            raise ValidationError("Target amount must be positive")

        self.current_amount = to_money(self.current_amount)
        if self.current_amount < ZERO:
            raise ValidationError("Current amount cannot be negative")

        self.status = _require_enum(self.status, GoalStatus, "Invalid goal status")

    @property
    def progress(self) -> Decimal:
        if self.target_amount == ZERO:
            return ZERO
        return self.current_amount / self.target_amount * HUNDRED

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.target_amount - self.current_amount)

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount

    def days_until_deadline(self, today: Optional[date] = None) -> Optional[int]:
        """Days left before the deadline, or None if there is none or it has passed"""
        if self.deadline is None:
            return None
        days = (self.deadline - (today or date.today())).days
        return days if days >= 0 else None


@dataclass
class GoalContribution:
    goal_id: str
    amount: Decimal
    note: str = ""
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=datetime.now)

    def validate(self) -> None:
        if not self.goal_id:
            raise ValidationError("Goal is required for contribution")

        self.amount = to_money(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Contribution amount must be positive")

        self.note = (self.note or "").strip()


@dataclass
class RecurringTransaction:
    """Template that periodically generates real transactions"""
    wallet_id: str
    type: TransactionType
    amount: Decimal
    frequency: RecurringFrequency
    next_due: date
    category_id: Optional[str] = None
    description: str = ""
    end_date: Optional[date] = None
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: Optional[datetime] = None

    def validate(self) -> None:
        if not self.wallet_id:
            raise ValidationError("Wallet is required")
        self.type = _require_enum(self.type, TransactionType, "Invalid transaction type")

        self.amount = to_money(self.amount)
        if self.amount <= ZERO:
            raise ValidationError("Amount must be positive")

        self.frequency = _require_enum(self.frequency, RecurringFrequency, "Invalid frequency")
        if self.end_date is not None and self.end_date < self.next_due:
            raise ValidationError("End date must not be before next due date")

        self.description = (self.description or "").strip()

    def is_due(self, as_of: Optional[date] = None) -> bool:
        return self.is_active and self.next_due <= (as_of or date.today())

    def advance_next_due(self) -> None:
        """Move next_due forward one frequency step, deactivating past the end date"""
        if self.frequency == RecurringFrequency.DAILY:
            self.next_due = self.next_due + timedelta(days=1)
        elif self.frequency == RecurringFrequency.WEEKLY:
            self.next_due = self.next_due + timedelta(days=7)
        elif self.frequency == RecurringFrequency.MONTHLY:
            self.next_due = add_months(self.next_due, 1)
        elif self.frequency == RecurringFrequency.YEARLY:
            self.next_due = add_months(self.next_due, 12)

        if self.end_date is not None and self.next_due > self.end_date:
            self.is_active = False

    def to_transaction(self) -> Transaction:
        """Build the transaction this template generates for its current due date"""
        return Transaction(
            wallet_id=self.wallet_id,
            category_id=self.category_id,
            type=self.type,
            amount=self.amount,
            description=self.description,
            transaction_date=self.next_due,
        )
