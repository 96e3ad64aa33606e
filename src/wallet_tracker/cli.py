import typer
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, List, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from wallet_tracker.app import Services, create_services
from wallet_tracker.config.settings import Settings
from wallet_tracker.database.connection import initialize_database
from wallet_tracker.domain.enums import (
    BudgetPeriod,
    CategoryType,
    RecurringFrequency,
    TransactionType,
    WalletType,
)
from wallet_tracker.domain.models import to_money
from wallet_tracker.repositories.base import ListParams, TransactionFilter, WalletFilter
from wallet_tracker.utils.logging import configure_logging

app = typer.Typer(
    name="wallet-tracker",
    help="Track wallets, income, expenses, budgets and savings goals",
    add_completion=False,
)
wallet_app = typer.Typer(help="Manage wallets")
category_app = typer.Typer(help="Manage categories")
tx_app = typer.Typer(help="Record and browse income and expenses")
transfer_app = typer.Typer(help="Move money between wallets")
budget_app = typer.Typer(help="Spending limits per category")
goal_app = typer.Typer(help="Savings goals")
recurring_app = typer.Typer(help="Scheduled transactions")

app.add_typer(wallet_app, name="wallet")
app.add_typer(category_app, name="category")
app.add_typer(tx_app, name="tx")
app.add_typer(transfer_app, name="transfer")
app.add_typer(budget_app, name="budget")
app.add_typer(goal_app, name="goal")
app.add_typer(recurring_app, name="recurring")

console = Console()

DATE_FORMATS = ["%Y-%m-%d"]


class State:
    verbose: bool = False
    services: Optional[Services] = None


state = State()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    )
):
    """
    Wallet Tracker - Personal finance ledger for your wallets.
    """
    settings = Settings.load()
    configure_logging("DEBUG" if verbose else settings.log_level)

    if state.services is None:
        state.services = create_services(settings)

    state.verbose = verbose


@contextmanager
def handle_errors() -> Iterator[None]:
    """Print failures in red and exit with code 1"""
    try:
        yield
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if state.verbose:
            console.print_exception()
        raise typer.Exit(code=1)


def money(value: Decimal) -> str:
    return f"{value:,.2f}"


def signed(amount: Decimal, type: TransactionType) -> str:
    if type.is_income:
        return f"[green]+{money(amount)}[/green]"
    return f"[red]-{money(amount)}[/red]"


def as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value is not None else None


# ═══════════════════════════════════════════════════════════
# INIT
# ═══════════════════════════════════════════════════════════

@app.command(name="init")
def init():
    """Create the database schema and default categories."""
    with handle_errors():
        version = initialize_database(state.services.db_manager)
        console.print(f"[bold green]✓ Database ready[/bold green] (schema version {version})")


# ═══════════════════════════════════════════════════════════
# WALLETS
# ═══════════════════════════════════════════════════════════

@wallet_app.command(name="add")
def wallet_add(
    name: str = typer.Argument(..., help="Wallet name"),
    type: WalletType = typer.Option(WalletType.CASH, "--type", "-t", help="Wallet type"),
    balance: str = typer.Option("0", "--balance", "-b", help="Initial balance"),
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="3-letter currency code"),
):
    """
    Create a wallet.

    Examples:
        wallet-tracker wallet add "BCA" --type bank --balance 1500000
    """
    with handle_errors():
        wallet = state.services.wallets.create(
            name=name,
            type=type,
            initial_balance=to_money(balance),
            currency=currency,
        )
        console.print(f"[bold green]✓ Created wallet[/bold green] {wallet.name} ({wallet.id})")


@wallet_app.command(name="list")
def wallet_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include deleted wallets"),
):
    """List wallets with their balances."""
    with handle_errors():
        filter = None if show_all else WalletFilter(is_active=True)
        wallets = state.services.wallets.list(filter)

        if not wallets:
            console.print("[yellow]No wallets yet[/yellow]")
            return

        table = Table(title="Wallets")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Balance", justify="right")
        table.add_column("Status", justify="center")

        for wallet in wallets:
            table.add_row(
                wallet.id,
                wallet.name,
                wallet.type.value,
                f"{money(wallet.balance)} {wallet.currency}",
                "[green]active[/green]" if wallet.is_active else "[dim]deleted[/dim]",
            )

        console.print(table)


@wallet_app.command(name="edit")
def wallet_edit(
    wallet_id: str = typer.Argument(..., help="Wallet ID"),
    name: Optional[str] = typer.Option(None, "--name", "-n"),
    type: Optional[WalletType] = typer.Option(None, "--type", "-t"),
    currency: Optional[str] = typer.Option(None, "--currency", "-c"),
):
    """Rename or re-type a wallet. The balance cannot be edited."""
    with handle_errors():
        wallet = state.services.wallets.update(wallet_id, name=name, type=type, currency=currency)
        console.print(f"[bold green]✓ Updated wallet[/bold green] {wallet.name}")


@wallet_app.command(name="delete")
def wallet_delete(wallet_id: str = typer.Argument(..., help="Wallet ID")):
    """Deactivate a wallet. Its history is kept."""
    with handle_errors():
        state.services.wallets.delete(wallet_id)
        console.print(f"[bold green]✓ Deleted wallet[/bold green] {wallet_id}")


@wallet_app.command(name="total")
def wallet_total():
    """Show the combined balance of active wallets."""
    with handle_errors():
        total = state.services.wallets.get_total_balance()
        console.print(f"[bold]Total balance:[/bold] {money(total)}")


# ═══════════════════════════════════════════════════════════
# CATEGORIES
# ═══════════════════════════════════════════════════════════

@category_app.command(name="add")
def category_add(
    name: str = typer.Argument(..., help="Category name"),
    type: CategoryType = typer.Option(..., "--type", "-t", help="income or expense"),
    parent_id: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent category ID"),
    icon: Optional[str] = typer.Option(None, "--icon"),
):
    """Create a category or sub-category."""
    with handle_errors():
        category = state.services.categories.create(name=name, type=type, parent_id=parent_id, icon=icon)
        console.print(f"[bold green]✓ Created category[/bold green] {category.name} ({category.id})")


@category_app.command(name="list")
def category_list(
    type: Optional[CategoryType] = typer.Option(None, "--type", "-t"),
):
    """List categories."""
    with handle_errors():
        categories = (
            state.services.categories.list_by_type(type) if type else state.services.categories.list()
        )

        table = Table(title="Categories")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Parent", style="dim")

        for category in categories:
            name = f"{category.icon} {category.name}" if category.icon else category.name
            table.add_row(category.id, name, category.type.value, category.parent_id or "")

        console.print(table)


# ═══════════════════════════════════════════════════════════
# TRANSACTIONS
# ═══════════════════════════════════════════════════════════

@tx_app.command(name="add")
def tx_add(
    wallet_id: str = typer.Argument(..., help="Wallet ID"),
    type: TransactionType = typer.Argument(..., help="income or expense"),
    amount: str = typer.Argument(..., help="Amount, always positive"),
    category_id: Optional[str] = typer.Option(None, "--category", "-c", help="Category ID"),
    description: str = typer.Option("", "--description", "-d"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", help="Tag, repeatable"),
    on: Optional[datetime] = typer.Option(None, "--date", formats=DATE_FORMATS, help="Defaults to today"),
):
    """
    Record an income or expense.

    Examples:
        wallet-tracker tx add <wallet-id> expense 25000 -c cat-food -d "Lunch"
    """
    with handle_errors():
        txn = state.services.transactions.create(
            wallet_id=wallet_id,
            type=type,
            amount=to_money(amount),
            category_id=category_id,
            description=description,
            tags=tags or [],
            transaction_date=as_date(on),
        )
        wallet = state.services.wallets.get(wallet_id)
        console.print(
            f"[bold green]✓ Recorded[/bold green] {signed(txn.amount, txn.type)} "
            f"→ {wallet.name} balance {money(wallet.balance)}"
        )


@tx_app.command(name="list")
def tx_list(
    wallet_id: Optional[str] = typer.Option(None, "--wallet", "-w"),
    type: Optional[TransactionType] = typer.Option(None, "--type", "-t"),
    search: Optional[str] = typer.Option(None, "--search", "-s"),
    start: Optional[datetime] = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, "--to", formats=DATE_FORMATS),
    limit: int = typer.Option(20, "--limit", "-n"),
):
    """List transactions, newest first."""
    with handle_errors():
        transactions = state.services.transactions.list(
            TransactionFilter(
                wallet_id=wallet_id,
                type=type,
                search=search,
                start_date=as_date(start),
                end_date=as_date(end),
            ),
            ListParams(limit=limit),
        )

        if not transactions:
            console.print("[yellow]No transactions found[/yellow]")
            return

        table = Table(title="Transactions")
        table.add_column("Date", style="cyan")
        table.add_column("Description", max_width=40)
        table.add_column("Category", style="dim")
        table.add_column("Amount", justify="right")
        table.add_column("ID", style="dim")

        for txn in transactions:
            table.add_row(
                str(txn.transaction_date),
                txn.description,
                txn.category_id or "Uncategorized",
                signed(txn.amount, txn.type),
                txn.id,
            )

        console.print(table)


@tx_app.command(name="delete")
def tx_delete(transaction_id: str = typer.Argument(..., help="Transaction ID")):
    """Delete a transaction and reverse its effect on the wallet."""
    with handle_errors():
        state.services.transactions.delete(transaction_id)
        console.print(f"[bold green]✓ Deleted transaction[/bold green] {transaction_id}")


# ═══════════════════════════════════════════════════════════
# TRANSFERS
# ═══════════════════════════════════════════════════════════

@transfer_app.command(name="create")
def transfer_create(
    from_wallet_id: str = typer.Argument(..., help="Source wallet ID"),
    to_wallet_id: str = typer.Argument(..., help="Destination wallet ID"),
    amount: str = typer.Argument(..., help="Amount credited to the destination"),
    fee: str = typer.Option("0", "--fee", "-f", help="Fee taken from the source"),
    note: str = typer.Option("", "--note"),
):
    """Move money between two wallets."""
    with handle_errors():
        transfer = state.services.transfers.create(
            from_wallet_id=from_wallet_id,
            to_wallet_id=to_wallet_id,
            amount=to_money(amount),
            fee=to_money(fee),
            note=note,
        )
        console.print(
            f"[bold green]✓ Transferred[/bold green] {money(transfer.amount)} "
            f"(total deducted {money(transfer.total_deducted)})"
        )


@transfer_app.command(name="list")
def transfer_list(
    wallet_id: Optional[str] = typer.Option(None, "--wallet", "-w"),
    limit: int = typer.Option(20, "--limit", "-n"),
):
    """List transfers, newest first."""
    with handle_errors():
        if wallet_id:
            transfers = state.services.transfers.get_by_wallet(wallet_id, ListParams(limit=limit))
        else:
            transfers = state.services.transfers.list(params=ListParams(limit=limit))

        table = Table(title="Transfers")
        table.add_column("When", style="cyan")
        table.add_column("From", style="dim")
        table.add_column("To", style="dim")
        table.add_column("Amount", justify="right")
        table.add_column("Fee", justify="right", style="red")
        table.add_column("Note")

        for transfer in transfers:
            table.add_row(
                transfer.created_at.strftime("%Y-%m-%d %H:%M") if transfer.created_at else "",
                transfer.from_wallet_id,
                transfer.to_wallet_id,
                money(transfer.amount),
                money(transfer.fee),
                transfer.note,
            )

        console.print(table)


# ═══════════════════════════════════════════════════════════
# BUDGETS
# ═══════════════════════════════════════════════════════════

@budget_app.command(name="add")
def budget_add(
    category_id: str = typer.Argument(..., help="Category ID"),
    amount: str = typer.Argument(..., help="Spending limit"),
    period: BudgetPeriod = typer.Option(BudgetPeriod.MONTHLY, "--period", "-p"),
    start: Optional[datetime] = typer.Option(None, "--from", formats=DATE_FORMATS),
    end: Optional[datetime] = typer.Option(None, "--to", formats=DATE_FORMATS),
):
    """Create a budget for a category."""
    with handle_errors():
        budget = state.services.budgets.create(
            category_id=category_id,
            amount=to_money(amount),
            period=period,
            start_date=as_date(start),
            end_date=as_date(end),
        )
        console.print(f"[bold green]✓ Created budget[/bold green] {budget.id}")


@budget_app.command(name="status")
def budget_status():
    """Show spending against every active budget."""
    with handle_errors():
        statuses = state.services.budgets.get_all_status()

        if not statuses:
            console.print("[yellow]No active budgets[/yellow]")
            return

        table = Table(title="Budgets")
        table.add_column("Category", style="cyan")
        table.add_column("Limit", justify="right")
        table.add_column("Spent", justify="right")
        table.add_column("Remaining", justify="right")
        table.add_column("Progress", justify="right")

        for status in statuses:
            color = "red" if status.is_over_budget else "green"
            table.add_row(
                status.category_name,
                money(status.budget.amount),
                money(status.spent),
                money(status.remaining),
                f"[{color}]{status.progress:.1f}%[/{color}]",
            )

        console.print(table)


# ═══════════════════════════════════════════════════════════
# GOALS
# ═══════════════════════════════════════════════════════════

@goal_app.command(name="add")
def goal_add(
    name: str = typer.Argument(..., help="Goal name"),
    target: str = typer.Argument(..., help="Target amount"),
    deadline: Optional[datetime] = typer.Option(None, "--deadline", formats=DATE_FORMATS),
    description: str = typer.Option("", "--description", "-d"),
):
    """Create a savings goal."""
    with handle_errors():
        goal = state.services.goals.create(
            name=name,
            target_amount=to_money(target),
            description=description,
            deadline=as_date(deadline),
        )
        console.print(f"[bold green]✓ Created goal[/bold green] {goal.name} ({goal.id})")


@goal_app.command(name="list")
def goal_list(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include completed and cancelled goals"),
):
    """List goals with their progress."""
    with handle_errors():
        goals = state.services.goals.list() if show_all else state.services.goals.list_active()

        table = Table(title="Goals")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Saved", justify="right")
        table.add_column("Target", justify="right")
        table.add_column("Progress", justify="right")
        table.add_column("Deadline")
        table.add_column("Status")

        for goal in goals:
            table.add_row(
                goal.id,
                goal.name,
                money(goal.current_amount),
                money(goal.target_amount),
                f"{goal.progress:.1f}%",
                str(goal.deadline or ""),
                goal.status.value,
            )

        console.print(table)


@goal_app.command(name="contribute")
def goal_contribute(
    goal_id: str = typer.Argument(..., help="Goal ID"),
    amount: str = typer.Argument(..., help="Amount to add"),
    note: str = typer.Option("", "--note"),
):
    """Add money to a goal."""
    with handle_errors():
        state.services.goals.add_contribution(goal_id, to_money(amount), note)
        progress = state.services.goals.get_progress(goal_id)

        console.print(
            f"[bold green]✓ Added {money(to_money(amount))}[/bold green] "
            f"→ {money(progress.goal.current_amount)} of {money(progress.goal.target_amount)} "
            f"({progress.progress:.1f}%)"
        )
        if progress.is_completed:
            console.print("[bold green]🎉 Goal reached![/bold green]")


@goal_app.command(name="cancel")
def goal_cancel(goal_id: str = typer.Argument(..., help="Goal ID")):
    """Cancel a goal."""
    with handle_errors():
        goal = state.services.goals.cancel(goal_id)
        console.print(f"[bold green]✓ Cancelled goal[/bold green] {goal.name}")


# ═══════════════════════════════════════════════════════════
# RECURRING
# ═══════════════════════════════════════════════════════════

@recurring_app.command(name="add")
def recurring_add(
    wallet_id: str = typer.Argument(..., help="Wallet ID"),
    type: TransactionType = typer.Argument(..., help="income or expense"),
    amount: str = typer.Argument(..., help="Amount"),
    frequency: RecurringFrequency = typer.Option(RecurringFrequency.MONTHLY, "--every", "-e"),
    next_due: Optional[datetime] = typer.Option(None, "--start", formats=DATE_FORMATS, help="First due date"),
    end: Optional[datetime] = typer.Option(None, "--until", formats=DATE_FORMATS),
    category_id: Optional[str] = typer.Option(None, "--category", "-c"),
    description: str = typer.Option("", "--description", "-d"),
):
    """Schedule a recurring transaction."""
    with handle_errors():
        recurring = state.services.recurring.create(
            wallet_id=wallet_id,
            type=type,
            amount=to_money(amount),
            frequency=frequency,
            next_due=as_date(next_due) or date.today(),
            category_id=category_id,
            description=description,
            end_date=as_date(end),
        )
        console.print(f"[bold green]✓ Scheduled[/bold green] {recurring.id}, next due {recurring.next_due}")


@recurring_app.command(name="list")
def recurring_list():
    """List active recurring transactions."""
    with handle_errors():
        table = Table(title="Recurring")
        table.add_column("ID", style="dim")
        table.add_column("Description")
        table.add_column("Amount", justify="right")
        table.add_column("Every")
        table.add_column("Next due", style="cyan")

        for recurring in state.services.recurring.list_active():
            table.add_row(
                recurring.id,
                recurring.description,
                signed(recurring.amount, recurring.type),
                recurring.frequency.value,
                str(recurring.next_due),
            )

        console.print(table)


@recurring_app.command(name="process")
def recurring_process(
    as_of: Optional[datetime] = typer.Option(None, "--as-of", formats=DATE_FORMATS),
):
    """Generate the transactions of every due entry."""
    with handle_errors():
        processed = state.services.recurring.process_due(as_of=as_date(as_of))
        console.print(f"[bold green]✓ Processed {processed} recurring transactions[/bold green]")


# ═══════════════════════════════════════════════════════════
# REPORT
# ═══════════════════════════════════════════════════════════

@app.command(name="report")
def report(
    month: Optional[int] = typer.Option(
        None,
        "--month", "-m",
        help="Month (1-12)",
        min=1,
        max=12
    ),
    year: Optional[int] = typer.Option(
        None,
        "--year", "-y",
        help="Year",
    ),
):
    """
    Generate a monthly income and expense report.

    Examples:
        wallet-tracker report
        wallet-tracker report --month 1 --year 2026
    """
    with handle_errors():
        today = date.today()
        summary = state.services.transactions.get_monthly_summary(
            year=year or today.year,
            month=month or today.month,
        )

        month_name = summary.start_date.strftime("%B %Y")
        console.print(f"\n[bold cyan]Monthly Report: {month_name}[/bold cyan]")

        if summary.transaction_count == 0:
            console.print(Panel(
                "[yellow]No transactions found for this month[/yellow]",
                title="Empty Report",
                border_style="yellow"
            ))
            return

        summary_text = (
            f"[bold]Transactions:[/bold] {summary.transaction_count}\n\n"
            f"[red]💸 Expenses:[/red]  {summary.total_expense:>14,.2f}\n"
            f"[green]💰 Income:[/green]    {summary.total_income:>14,.2f}\n"
            f"{'─' * 30}\n"
        )
        color = "green" if summary.net_flow >= 0 else "red"
        summary_text += f"[bold {color}]Net:[/bold {color}]         {summary.net_flow:>14,.2f}"

        console.print(Panel(
            summary_text,
            title=f"[bold]{month_name} Summary[/bold]",
            border_style="cyan",
            padding=(1, 2)
        ))

        if summary.by_category:
            console.print("\n[bold]Top Spending Categories[/bold]")

            category_table = Table(show_header=True, box=None, padding=(0, 2))
            category_table.add_column("Category", style="cyan", no_wrap=True)
            category_table.add_column("Amount", justify="right", style="red")
            category_table.add_column("% of Total", justify="right", style="dim")

            for item in summary.by_category[:10]:
                category_table.add_row(item.category_name, money(item.total), f"{item.percentage:.1f}%")

            console.print(category_table)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
