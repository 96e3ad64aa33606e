import sqlite3
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import BudgetPeriod
from wallet_tracker.domain.models import Budget
from wallet_tracker.repositories.base import BudgetFilter, BudgetRepository, RecordNotFoundError
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_date,
    from_db_datetime,
    now_iso,
    to_db_date,
    to_db_money,
)


class SQLiteBudgetRepository(SQLiteRepository, BudgetRepository):
    """SQLite implementation of the BudgetRepository."""

    def create(self, budget: Budget) -> Budget:
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO budgets (id, category_id, amount, period, start_date, end_date, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                budget.id,
                budget.category_id,
                to_db_money(budget.amount),
                budget.period.value,
                to_db_date(budget.start_date),
                to_db_date(budget.end_date),
                int(budget.is_active),
                timestamp,
            ),
        )
        budget.created_at = from_db_datetime(timestamp)
        return budget

    def get_by_id(self, budget_id: str) -> Budget:
        row = self._fetchone("SELECT * FROM budgets WHERE id = ?", (budget_id,))
        if row is None:
            raise RecordNotFoundError(f"Budget with ID {budget_id} not found")
        return self._row_to_budget(row)

    def get_by_category(self, category_id: str) -> Budget:
        row = self._fetchone(
            "SELECT * FROM budgets WHERE category_id = ? AND is_active = 1"
            " ORDER BY created_at DESC LIMIT 1",
            (category_id,),
        )
        if row is None:
            raise RecordNotFoundError(f"No active budget for category {category_id}")
        return self._row_to_budget(row)

    def list(self, filter: Optional[BudgetFilter] = None) -> List[Budget]:
        filter = filter or BudgetFilter()
        query = "SELECT * FROM budgets WHERE 1=1"
        params = []

        if filter.is_active is not None:
            query += " AND is_active = ?"
            params.append(int(filter.is_active))

        if filter.category_id:
            query += " AND category_id = ?"
            params.append(filter.category_id)

        if filter.period:
            query += " AND period = ?"
            params.append(filter.period.value)

        query += " ORDER BY created_at DESC"

        return [self._row_to_budget(row) for row in self._fetchall(query, params)]

    def update(self, budget: Budget) -> Budget:
        cursor = self._execute(
            """
            UPDATE budgets
            SET amount = ?, period = ?, start_date = ?, end_date = ?, is_active = ?
            WHERE id = ?
            """,
            (
                to_db_money(budget.amount),
                budget.period.value,
                to_db_date(budget.start_date),
                to_db_date(budget.end_date),
                int(budget.is_active),
                budget.id,
            ),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Budget with ID {budget.id} not found")
        return budget

    def delete(self, budget_id: str) -> None:
        cursor = self._execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Budget with ID {budget_id} not found")

    def _row_to_budget(self, row: sqlite3.Row) -> Budget:
        return Budget(
            id=row["id"],
            category_id=row["category_id"],
            amount=Decimal(row["amount"]),
            period=BudgetPeriod(row["period"]),
            start_date=from_db_date(row["start_date"]),
            end_date=from_db_date(row["end_date"]),
            is_active=bool(row["is_active"]),
            created_at=from_db_datetime(row["created_at"]),
        )
