import pytest
from datetime import date
from decimal import Decimal

from wallet_tracker.database.connection import DatabaseManager, initialize_database
from wallet_tracker.domain.enums import CategoryType, GoalStatus, RecurringFrequency, TransactionType
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
    DuplicateKeyError,
    ForeignKeyViolationError,
    GoalFilter,
    ListParams,
    RecordNotFoundError,
    StorageError,
    TransactionFilter,
    TransferFilter,
    WalletFilter,
)
from wallet_tracker.repositories.sqlite_unit_of_work import SQLiteUnitOfWork


@pytest.fixture
def repos(sqlite_uow: SQLiteUnitOfWork):
    return sqlite_uow.repositories


@pytest.fixture
def cash(repos) -> Wallet:
    wallet = Wallet(name="Cash", balance=Decimal("1000000"))
    wallet.validate()
    return repos.wallets.create(wallet)


def make_transaction(wallet: Wallet, amount: str, **kwargs) -> Transaction:
    kwargs.setdefault("type", TransactionType.EXPENSE)
    txn = Transaction(wallet_id=wallet.id, amount=Decimal(amount), **kwargs)
    txn.validate()
    return txn


@pytest.mark.integration
class TestSchema:

    def test_initialize_is_idempotent(self, test_db: DatabaseManager):
        assert initialize_database(test_db) == 1
        assert initialize_database(test_db) == 1

    def test_default_categories_are_seeded(self, repos):
        # Act
        categories = repos.categories.list()

        # Assert
        names = {c.name for c in categories}
        assert {"Salary", "Food & Dining", "Groceries"} <= names
        food, children = repos.categories.get_by_id("cat-food"), repos.categories.get_children("cat-food")
        assert food.type == CategoryType.EXPENSE
        assert [c.name for c in children] == ["Groceries", "Restaurant", "Coffee"]

    def test_negative_balance_is_refused_by_the_store(self, repos, cash):
        with pytest.raises(StorageError):
            repos.wallets.update_balance(cash.id, Decimal("-1"))


@pytest.mark.integration
class TestSQLiteWalletRepository:

    def test_round_trip_keeps_decimal_precision(self, repos):
        wallet = Wallet(name="Bank", balance=Decimal("1234567.89"), currency="USD")
        repos.wallets.create(wallet)

        stored = repos.wallets.get_by_id(wallet.id)

        assert stored.balance == Decimal("1234567.89")
        assert stored.currency == "USD"
        assert stored.created_at is not None

    def test_soft_delete_and_total(self, repos, cash):
        # Arrange
        repos.wallets.create(Wallet(name="Bank", balance=Decimal("0.10")))
        closed = repos.wallets.create(Wallet(name="Closed", balance=Decimal("0.20")))

        # Act
        repos.wallets.delete(closed.id)

        # Assert
        assert repos.wallets.get_total_balance() == Decimal("1000000.10")
        assert [w.name for w in repos.wallets.list(WalletFilter(is_active=True))] == ["Bank", "Cash"]
        assert not repos.wallets.get_by_id(closed.id).is_active

    def test_total_of_no_wallets_is_zero(self, repos):
        assert repos.wallets.get_total_balance() == Decimal("0")

    def test_duplicate_id(self, repos, cash):
        with pytest.raises(DuplicateKeyError):
            repos.wallets.create(cash)

    def test_missing_wallet(self, repos):
        with pytest.raises(RecordNotFoundError):
            repos.wallets.get_by_id("missing")
        with pytest.raises(RecordNotFoundError):
            repos.wallets.update_balance("missing", Decimal("1"))


@pytest.mark.integration
class TestSQLiteTransactionRepository:

    def test_create_and_get(self, repos, cash):
        # Arrange
        txn = make_transaction(
            cash, "99.99", category_id="cat-food", description="Dinner",
            tags=["Family", "weekend"], transaction_date=date(2026, 1, 15),
        )

        # Act
        repos.transactions.create(txn)
        stored = repos.transactions.get_by_id(txn.id)

        # Assert
        assert stored.amount == Decimal("99.99")
        assert stored.tags == ["family", "weekend"]
        assert stored.transaction_date == date(2026, 1, 15)
        assert stored.category_id == "cat-food"

    def test_unknown_wallet_is_a_foreign_key_violation(self, repos):
        txn = Transaction(wallet_id="missing", type=TransactionType.INCOME, amount=Decimal("1"))

        with pytest.raises(ForeignKeyViolationError):
            repos.transactions.create(txn)

    def test_summary_is_exact(self, repos, cash):
        # Arrange
        for amount in ("0.1", "0.2"):
            repos.transactions.create(make_transaction(cash, amount))
        repos.transactions.create(make_transaction(cash, "1000", type=TransactionType.INCOME))

        # Act
        summary = repos.transactions.get_summary()

        # Assert
        assert summary.total_expense == Decimal("0.3")
        assert summary.total_income == Decimal("1000")
        assert summary.net == Decimal("999.7")
        assert summary.count == 3

    def test_summary_of_nothing(self, repos):
        summary = repos.transactions.get_summary()

        assert summary.total_income == Decimal("0")
        assert summary.count == 0

    def test_filters(self, repos, cash):
        # Arrange
        create = repos.transactions.create
        create(make_transaction(cash, "10", description="Coffee beans", tags=["home"],
                                transaction_date=date(2026, 1, 1)))
        create(make_transaction(cash, "20", description="Coffee shop", tags=["work", "home"],
                                transaction_date=date(2026, 1, 15)))
        create(make_transaction(cash, "30", description="Taxi", type=TransactionType.INCOME,
                                transaction_date=date(2026, 2, 1)))

        def count(**kwargs):
            return len(repos.transactions.list(TransactionFilter(**kwargs)))

        # Act & Assert
        assert count(search="coffee") == 2
        assert count(tags=["home"]) == 2
        assert count(tags=["home", "work"]) == 1
        assert count(start_date=date(2026, 1, 15), end_date=date(2026, 2, 1)) == 2
        assert count(type=TransactionType.INCOME) == 1
        assert count(wallet_id="other") == 0

    def test_list_newest_first_with_pagination(self, repos, cash):
        for day in (3, 1, 2):
            repos.transactions.create(make_transaction(cash, "1", transaction_date=date(2026, 1, day)))

        page = repos.transactions.list(params=ListParams(limit=2, offset=1))

        assert [t.transaction_date.day for t in page] == [2, 1]

    def test_category_summary(self, repos, cash):
        # Arrange
        repos.transactions.create(make_transaction(cash, "75", category_id="cat-food"))
        repos.transactions.create(make_transaction(cash, "25"))

        # Act
        summaries = repos.transactions.get_by_category(TransactionFilter(type=TransactionType.EXPENSE))

        # Assert
        assert [(s.category_name, s.total, s.percentage) for s in summaries] == [
            ("Food & Dining", Decimal("75"), Decimal("75")),
            ("Uncategorized", Decimal("25"), Decimal("25")),
        ]

    def test_update_descriptive_fields(self, repos, cash):
        txn = repos.transactions.create(make_transaction(cash, "5"))
        txn.description = "Snacks"
        txn.tags = ["treat"]

        repos.transactions.update(txn)

        stored = repos.transactions.get_by_id(txn.id)
        assert (stored.description, stored.tags, stored.amount) == ("Snacks", ["treat"], Decimal("5"))

    def test_deleting_category_uncategorizes(self, repos, cash):
        category = Category(name="Temp", type=CategoryType.EXPENSE)
        repos.categories.create(category)
        txn = repos.transactions.create(make_transaction(cash, "5", category_id=category.id))

        repos.categories.delete(category.id)

        assert repos.transactions.get_by_id(txn.id).category_id is None

    def test_delete_missing(self, repos):
        with pytest.raises(RecordNotFoundError):
            repos.transactions.delete("missing")


@pytest.mark.integration
class TestSQLiteTransferRepository:

    def test_create_and_filter(self, repos, cash):
        # Arrange
        bank = repos.wallets.create(Wallet(name="Bank"))
        transfer = Transfer(from_wallet_id=cash.id, to_wallet_id=bank.id,
                            amount=Decimal("100000"), fee=Decimal("2500"), note="rent")

        # Act
        repos.transfers.create(transfer)

        # Assert
        stored = repos.transfers.get_by_id(transfer.id)
        assert stored.total_deducted == Decimal("102500")
        assert [t.id for t in repos.transfers.list(TransferFilter(wallet_id=bank.id))] == [transfer.id]
        assert repos.transfers.list(TransferFilter(from_wallet_id=bank.id)) == []
        today = date.today()
        assert len(repos.transfers.list(TransferFilter(start_date=today, end_date=today))) == 1

    def test_same_wallet_is_refused_by_the_store(self, repos, cash):
        transfer = Transfer(from_wallet_id=cash.id, to_wallet_id=cash.id, amount=Decimal("1"))

        with pytest.raises(StorageError):
            repos.transfers.create(transfer)


@pytest.mark.integration
class TestSQLiteBudgetRepository:

    def test_crud(self, repos):
        # Arrange
        budget = Budget(category_id="cat-food", amount=Decimal("2000000"), start_date=date(2026, 1, 1))

        # Act
        repos.budgets.create(budget)
        budget.amount = Decimal("2500000")
        repos.budgets.update(budget)

        # Assert
        assert repos.budgets.get_by_category("cat-food").amount == Decimal("2500000")
        repos.budgets.delete(budget.id)
        with pytest.raises(RecordNotFoundError):
            repos.budgets.get_by_id(budget.id)

    def test_unknown_category(self, repos):
        with pytest.raises(ForeignKeyViolationError):
            repos.budgets.create(Budget(category_id="missing", amount=Decimal("1")))


@pytest.mark.integration
class TestSQLiteGoalRepository:

    def test_contributions_increment_current_amount(self, repos):
        # Arrange
        goal = repos.goals.create(Goal(name="Laptop", target_amount=Decimal("1000000")))

        # Act
        for amount in ("0.1", "0.2", "800000"):
            repos.goals.add_contribution(GoalContribution(goal_id=goal.id, amount=Decimal(amount)))

        # Assert
        stored = repos.goals.get_by_id(goal.id)
        contributions = repos.goals.get_contributions(goal.id)
        assert stored.current_amount == Decimal("800000.3")
        assert sum(c.amount for c in contributions) == stored.current_amount

    def test_update_does_not_overwrite_current_amount(self, repos):
        goal = repos.goals.create(Goal(name="Trip", target_amount=Decimal("10")))
        repos.goals.add_contribution(GoalContribution(goal_id=goal.id, amount=Decimal("4")))

        goal.status = GoalStatus.CANCELLED
        repos.goals.update(goal)

        stored = repos.goals.get_by_id(goal.id)
        assert stored.current_amount == Decimal("4")
        assert repos.goals.list(GoalFilter(status=GoalStatus.CANCELLED))[0].id == goal.id

    def test_contribution_to_missing_goal(self, repos):
        with pytest.raises(RecordNotFoundError):
            repos.goals.add_contribution(GoalContribution(goal_id="missing", amount=Decimal("1")))

    def test_delete_cascades_to_contributions(self, repos):
        goal = repos.goals.create(Goal(name="Trip", target_amount=Decimal("10")))
        repos.goals.add_contribution(GoalContribution(goal_id=goal.id, amount=Decimal("4")))

        repos.goals.delete(goal.id)

        assert repos.goals.get_contributions(goal.id) == []


@pytest.mark.integration
class TestSQLiteRecurringRepository:

    def test_get_due(self, repos, cash):
        # Arrange
        def schedule(next_due, is_active=True):
            recurring = RecurringTransaction(
                wallet_id=cash.id,
                type=TransactionType.EXPENSE,
                amount=Decimal("50000"),
                frequency=RecurringFrequency.MONTHLY,
                next_due=next_due,
                is_active=is_active,
            )
            return repos.recurring.create(recurring)

        due = schedule(date(2026, 1, 25))
        schedule(date(2026, 1, 26))
        schedule(date(2026, 1, 1), is_active=False)

        # Act
        result = repos.recurring.get_due(date(2026, 1, 25))

        # Assert
        assert [r.id for r in result] == [due.id]

    def test_update_persists_schedule(self, repos, cash):
        recurring = repos.recurring.create(RecurringTransaction(
            wallet_id=cash.id,
            type=TransactionType.INCOME,
            amount=Decimal("10"),
            frequency=RecurringFrequency.MONTHLY,
            next_due=date(2026, 1, 31),
            end_date=date(2026, 3, 1),
        ))

        recurring.advance_next_due()
        repos.recurring.update(recurring)

        stored = repos.recurring.get_by_id(recurring.id)
        assert stored.next_due == date(2026, 2, 28)
        assert stored.end_date == date(2026, 3, 1)
        assert stored.is_active
