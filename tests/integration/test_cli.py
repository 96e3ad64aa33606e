import pytest
from datetime import date
from decimal import Decimal
from rich.console import Console
from typer.testing import CliRunner

from wallet_tracker import cli
from wallet_tracker.app import build_services
from wallet_tracker.domain.enums import CategoryType, TransactionType
from wallet_tracker.repositories.memory_repositories import InMemoryUnitOfWork

runner = CliRunner()


@pytest.fixture
def services(mocker):
    """Run the CLI against an in-memory backend"""
    mocker.patch("wallet_tracker.cli.configure_logging")
    mocker.patch.object(cli, "console", Console(width=200))
    services = build_services(InMemoryUnitOfWork())
    cli.state.services = services
    yield services
    cli.state.services = None
    cli.state.verbose = False


@pytest.fixture
def cash(services):
    return services.wallets.create(name="Cash", initial_balance=Decimal("1000000"))


def invoke(*args):
    return runner.invoke(cli.app, list(args))


@pytest.mark.integration
class TestWalletCommands:

    def test_add_and_list(self, services):
        # Act
        added = invoke("wallet", "add", "BCA", "--type", "bank", "--balance", "1500000")
        listed = invoke("wallet", "list")

        # Assert
        assert added.exit_code == 0, added.output
        assert "Created wallet" in added.output
        assert "BCA" in listed.output
        assert "1,500,000.00" in listed.output
        assert services.wallets.list()[0].balance == Decimal("1500000")

    def test_invalid_balance_exits_with_error(self, services):
        result = invoke("wallet", "add", "BCA", "--balance", "lots")

        assert result.exit_code == 1
        assert "Error" in result.output
        assert services.wallets.list() == []

    def test_total(self, services, cash):
        result = invoke("wallet", "total")

        assert result.exit_code == 0
        assert "1,000,000.00" in result.output

    def test_delete(self, services, cash):
        result = invoke("wallet", "delete", cash.id)

        assert result.exit_code == 0
        assert not services.wallets.get(cash.id).is_active


@pytest.mark.integration
class TestTransactionCommands:

    def test_add_expense(self, services, cash):
        # Arrange
        food = services.categories.create("Food", CategoryType.EXPENSE)

        # Act
        result = invoke(
            "tx", "add", cash.id, "expense", "25000",
            "--category", food.id, "--description", "Lunch", "--tag", "work", "--date", "2026-01-10",
        )

        # Assert
        assert result.exit_code == 0, result.output
        txn = services.transactions.list()[0]
        assert txn.amount == Decimal("25000")
        assert txn.tags == ["work"]
        assert txn.transaction_date == date(2026, 1, 10)
        assert services.wallets.get(cash.id).balance == Decimal("975000")

    def test_insufficient_balance_is_reported(self, services, cash):
        result = invoke("tx", "add", cash.id, "expense", "1500000")

        assert result.exit_code == 1
        assert "Insufficient balance" in result.output
        assert services.wallets.get(cash.id).balance == Decimal("1000000")

    def test_list_filters_by_search(self, services, cash):
        services.transactions.create(cash.id, TransactionType.EXPENSE, Decimal("10"), description="Coffee")
        services.transactions.create(cash.id, TransactionType.EXPENSE, Decimal("20"), description="Taxi")

        result = invoke("tx", "list", "--search", "coffee")

        assert result.exit_code == 0
        assert "Coffee" in result.output
        assert "Taxi" not in result.output

    def test_delete_restores_balance(self, services, cash):
        txn = services.transactions.create(cash.id, TransactionType.EXPENSE, Decimal("10"))

        result = invoke("tx", "delete", txn.id)

        assert result.exit_code == 0
        assert services.wallets.get(cash.id).balance == Decimal("1000000")


@pytest.mark.integration
class TestOtherCommands:

    def test_transfer(self, services, cash):
        bank = services.wallets.create(name="Bank")

        result = invoke("transfer", "create", cash.id, bank.id, "100000", "--fee", "2000")

        assert result.exit_code == 0, result.output
        assert "102,000.00" in result.output
        assert services.wallets.get(bank.id).balance == Decimal("100000")

    def test_transfer_to_same_wallet(self, services, cash):
        result = invoke("transfer", "create", cash.id, cash.id, "1")

        assert result.exit_code == 1
        assert "same wallet" in result.output

    def test_goal_contribution_reaches_target(self, services):
        goal = services.goals.create(name="Laptop", target_amount=Decimal("1000"))

        result = invoke("goal", "contribute", goal.id, "1000")

        assert result.exit_code == 0, result.output
        assert "Goal reached" in result.output

    def test_budget_status(self, services, cash):
        food = services.categories.create("Food", CategoryType.EXPENSE)
        services.budgets.create(food.id, Decimal("100"), start_date=date(2026, 1, 1))
        services.transactions.create(
            cash.id, TransactionType.EXPENSE, Decimal("125"), category_id=food.id,
            transaction_date=date(2026, 1, 2),
        )

        result = invoke("budget", "status")

        assert result.exit_code == 0, result.output
        assert "125.0%" in result.output

    def test_recurring_process(self, services, cash):
        services.recurring.create(
            wallet_id=cash.id,
            type=TransactionType.INCOME,
            amount=Decimal("5000"),
            frequency="monthly",
            next_due=date(2026, 1, 25),
        )

        result = invoke("recurring", "process", "--as-of", "2026-01-31")

        assert result.exit_code == 0, result.output
        assert "Processed 1" in result.output

    def test_report(self, services, cash):
        services.transactions.create(
            cash.id, TransactionType.EXPENSE, Decimal("45000"), transaction_date=date(2026, 1, 5)
        )

        result = invoke("report", "--month", "1", "--year", "2026")

        assert result.exit_code == 0, result.output
        assert "January 2026" in result.output
        assert "Uncategorized" in result.output

    def test_empty_report(self, services):
        result = invoke("report", "--month", "2", "--year", "2020")

        assert result.exit_code == 0
        assert "No transactions found" in result.output
