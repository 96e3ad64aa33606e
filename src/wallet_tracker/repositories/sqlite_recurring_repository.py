import sqlite3
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import RecurringFrequency, TransactionType
from wallet_tracker.domain.models import RecurringTransaction
from wallet_tracker.repositories.base import (
    RecordNotFoundError,
    RecurringFilter,
    RecurringRepository,
)
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_date,
    from_db_datetime,
    now_iso,
    to_db_date,
    to_db_money,
)


class SQLiteRecurringRepository(SQLiteRepository, RecurringRepository):
    """SQLite implementation of the RecurringRepository."""

    def create(self, recurring: RecurringTransaction) -> RecurringTransaction:
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO recurring_transactions (
                id, wallet_id, category_id, type, amount, description,
                frequency, next_due, end_date, is_active, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                recurring.id,
                recurring.wallet_id,
                recurring.category_id,
                recurring.type.value,
                to_db_money(recurring.amount),
                recurring.description,
                recurring.frequency.value,
                to_db_date(recurring.next_due),
                to_db_date(recurring.end_date),
                int(recurring.is_active),
                timestamp,
            ),
        )
        recurring.created_at = from_db_datetime(timestamp)
        return recurring

    def get_by_id(self, recurring_id: str) -> RecurringTransaction:
        row = self._fetchone("SELECT * FROM recurring_transactions WHERE id = ?", (recurring_id,))
        if row is None:
            raise RecordNotFoundError(f"Recurring transaction with ID {recurring_id} not found")
        return self._row_to_recurring(row)

    def list(self, filter: Optional[RecurringFilter] = None) -> List[RecurringTransaction]:
        filter = filter or RecurringFilter()
        query = "SELECT * FROM recurring_transactions WHERE 1=1"
        params = []

        if filter.wallet_id:
            query += " AND wallet_id = ?"
            params.append(filter.wallet_id)

        if filter.is_active is not None:
            query += " AND is_active = ?"
            params.append(int(filter.is_active))

        if filter.type:
            query += " AND type = ?"
            params.append(filter.type.value)

        if filter.frequency:
            query += " AND frequency = ?"
            params.append(filter.frequency.value)

        query += " ORDER BY next_due, created_at"

        return [self._row_to_recurring(row) for row in self._fetchall(query, params)]

    def get_due(self, as_of: date) -> List[RecurringTransaction]:
        rows = self._fetchall(
            "SELECT * FROM recurring_transactions"
            " WHERE is_active = 1 AND next_due <= ?"
            " ORDER BY next_due, created_at",
            (to_db_date(as_of),),
        )
        return [self._row_to_recurring(row) for row in rows]

    def update(self, recurring: RecurringTransaction) -> RecurringTransaction:
        cursor = self._execute(
            """
            UPDATE recurring_transactions
            SET category_id = ?, amount = ?, description = ?, frequency = ?,
                next_due = ?, end_date = ?, is_active = ?
            WHERE id = ?
            """,
            (
                recurring.category_id,
                to_db_money(recurring.amount),
                recurring.description,
                recurring.frequency.value,
                to_db_date(recurring.next_due),
                to_db_date(recurring.end_date),
                int(recurring.is_active),
                recurring.id,
            ),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Recurring transaction with ID {recurring.id} not found")
        return recurring

    def delete(self, recurring_id: str) -> None:
        cursor = self._execute("DELETE FROM recurring_transactions WHERE id = ?", (recurring_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Recurring transaction with ID {recurring_id} not found")

    def _row_to_recurring(self, row: sqlite3.Row) -> RecurringTransaction:
        return RecurringTransaction(
            id=row["id"],
            wallet_id=row["wallet_id"],
            category_id=row["category_id"],
            type=TransactionType(row["type"]),
            amount=Decimal(row["amount"]),
            description=row["description"] or "",
            frequency=RecurringFrequency(row["frequency"]),
            next_due=from_db_date(row["next_due"]),
            end_date=from_db_date(row["end_date"]),
            is_active=bool(row["is_active"]),
            created_at=from_db_datetime(row["created_at"]),
        )
