import json
import sqlite3
from decimal import Decimal
from typing import List, Optional, Tuple

from wallet_tracker.domain.enums import TransactionType
from wallet_tracker.domain.models import Transaction
from wallet_tracker.repositories.base import (
    CategorySummary,
    ListParams,
    RecordNotFoundError,
    TransactionFilter,
    TransactionRepository,
    TransactionSummary,
    UNCATEGORIZED,
    apply_percentages,
)
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_date,
    from_db_datetime,
    now_iso,
    to_db_date,
    to_db_money,
)


def build_transaction_where(filter: Optional[TransactionFilter], alias: str = "t") -> Tuple[str, list]:
    """Translate a TransactionFilter into a WHERE clause and its parameters"""
    filter = filter or TransactionFilter()
    clause = " WHERE 1=1"
    params = []

    if filter.wallet_id:
        clause += f" AND {alias}.wallet_id = ?"
        params.append(filter.wallet_id)

    if filter.category_id:
        clause += f" AND {alias}.category_id = ?"
        params.append(filter.category_id)

    if filter.type:
        clause += f" AND {alias}.type = ?"
        params.append(filter.type.value)

    if filter.start_date:
        clause += f" AND {alias}.transaction_date >= ?"
        params.append(to_db_date(filter.start_date))

    if filter.end_date:
        clause += f" AND {alias}.transaction_date <= ?"
        params.append(to_db_date(filter.end_date))

    if filter.search:
        clause += f" AND {alias}.description LIKE ?"
        params.append(f"%{filter.search}%")

    for tag in filter.tags:
        clause += f" AND EXISTS (SELECT 1 FROM json_each({alias}.tags) WHERE value = ?)"
        params.append(tag.strip().lower())

    return clause, params

class SQLiteTransactionRepository(SQLiteRepository, TransactionRepository):
    """
    SQLite implementation of the TransactionRepository.

    Handles all database operations for transactions using raw SQL.
    """

    def create(self, transaction: Transaction) -> Transaction:
        """Insert a single transaction."""
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO transactions (
                id, wallet_id, category_id, type, amount, description,
                tags, transaction_date, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.id,
                transaction.wallet_id,
                transaction.category_id,
                transaction.type.value,
                to_db_money(transaction.amount),
                transaction.description,
                json.dumps(transaction.tags),
                to_db_date(transaction.transaction_date),
                timestamp,
                timestamp,
            ),
        )
        transaction.created_at = transaction.updated_at = from_db_datetime(timestamp)
        return transaction

    def get_by_id(self, transaction_id: str) -> Transaction:
        """Retrieve a transaction by ID"""
        row = self._fetchone("SELECT * FROM transactions WHERE id = ?", (transaction_id,))
        if row is None:
            raise RecordNotFoundError(f"Transaction with ID {transaction_id} not found")
        return self._row_to_transaction(row)

    def list(
        self,
        filter: Optional[TransactionFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transaction]:
        """Retrieve transactions with optional filtering."""
        params = params or ListParams()
        where, values = build_transaction_where(filter)

        query = (
            "SELECT t.* FROM transactions t" + where +
            " ORDER BY t.transaction_date DESC, t.created_at DESC LIMIT ? OFFSET ?"
        )
        values.extend([params.limit, params.offset])

        return [self._row_to_transaction(row) for row in self._fetchall(query, values)]

    def update(self, transaction: Transaction) -> Transaction:
        """Update descriptive fields. Amount, type and wallet never change here."""
        cursor = self._execute(
            """
            UPDATE transactions
            SET category_id = ?, description = ?, tags = ?,
                transaction_date = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                transaction.category_id,
                transaction.description,
                json.dumps(transaction.tags),
                to_db_date(transaction.transaction_date),
                now_iso(),
                transaction.id,
            ),
        )

        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Transaction with ID {transaction.id} not found")

        return transaction

    def delete(self, transaction_id: str) -> None:
        """Delete a transaction by ID."""
        cursor = self._execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Transaction with ID {transaction_id} not found")

    def get_summary(self, filter: Optional[TransactionFilter] = None) -> TransactionSummary:
        where, values = build_transaction_where(filter)
        rows = self._fetchall(
            "SELECT t.type AS type, dec_sum(t.amount) AS total, COUNT(*) AS count"
            " FROM transactions t" + where + " GROUP BY t.type",
            values,
        )

        summary = TransactionSummary()
        for row in rows:
            if row["type"] == TransactionType.INCOME.value:
                summary.total_income = Decimal(row["total"])
            else:
                summary.total_expense = Decimal(row["total"])
            summary.count += row["count"]
        return summary

    def get_by_category(self, filter: Optional[TransactionFilter] = None) -> List[CategorySummary]:
        where, values = build_transaction_where(filter)
        rows = self._fetchall(
            "SELECT t.category_id AS category_id, c.name AS category_name,"
            " dec_sum(t.amount) AS total, COUNT(*) AS count"
            " FROM transactions t LEFT JOIN categories c ON c.id = t.category_id"
            + where + " GROUP BY t.category_id",
            values,
        )

        summaries = [
            CategorySummary(
                category_id=row["category_id"],
                category_name=row["category_name"] or UNCATEGORIZED,
                total=Decimal(row["total"]),
                count=row["count"],
            )
            for row in rows
        ]
        return apply_percentages(summaries)

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert database row to Transaction object."""
        return Transaction(
            id=row["id"],
            wallet_id=row["wallet_id"],
            category_id=row["category_id"],
            type=TransactionType(row["type"]),
            amount=Decimal(row["amount"]),
            description=row["description"] or "",
            tags=json.loads(row["tags"]) if row["tags"] else [],
            transaction_date=from_db_date(row["transaction_date"]),
            created_at=from_db_datetime(row["created_at"]),
            updated_at=from_db_datetime(row["updated_at"]),
        )
