import sqlite3
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.models import Transfer
from wallet_tracker.repositories.base import (
    ListParams,
    RecordNotFoundError,
    TransferFilter,
    TransferRepository,
)
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_datetime,
    now_iso,
    to_db_date,
    to_db_money,
)


class SQLiteTransferRepository(SQLiteRepository, TransferRepository):
    """SQLite implementation of the TransferRepository."""

    def create(self, transfer: Transfer) -> Transfer:
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO transfers (id, from_wallet_id, to_wallet_id, amount, fee, note, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transfer.id,
                transfer.from_wallet_id,
                transfer.to_wallet_id,
                to_db_money(transfer.amount),
                to_db_money(transfer.fee),
                transfer.note,
                timestamp,
            ),
        )
        transfer.created_at = from_db_datetime(timestamp)
        return transfer

    def get_by_id(self, transfer_id: str) -> Transfer:
        row = self._fetchone("SELECT * FROM transfers WHERE id = ?", (transfer_id,))
        if row is None:
            raise RecordNotFoundError(f"Transfer with ID {transfer_id} not found")
        return self._row_to_transfer(row)

    def list(
        self,
        filter: Optional[TransferFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transfer]:
        filter = filter or TransferFilter()
        params = params or ListParams()
        query = "SELECT * FROM transfers WHERE 1=1"
        values = []

        if filter.wallet_id:
            query += " AND (from_wallet_id = ? OR to_wallet_id = ?)"
            values.extend([filter.wallet_id, filter.wallet_id])

        if filter.from_wallet_id:
            query += " AND from_wallet_id = ?"
            values.append(filter.from_wallet_id)

        if filter.to_wallet_id:
            query += " AND to_wallet_id = ?"
            values.append(filter.to_wallet_id)

        # created_at is an ISO timestamp, so compare on its date part
        if filter.start_date:
            query += " AND date(created_at) >= ?"
            values.append(to_db_date(filter.start_date))

        if filter.end_date:
            query += " AND date(created_at) <= ?"
            values.append(to_db_date(filter.end_date))

        query += " ORDER BY created_at DESC LIMIT ? OFFSET ?"
        values.extend([params.limit, params.offset])

        return [self._row_to_transfer(row) for row in self._fetchall(query, values)]

    def _row_to_transfer(self, row: sqlite3.Row) -> Transfer:
        return Transfer(
            id=row["id"],
            from_wallet_id=row["from_wallet_id"],
            to_wallet_id=row["to_wallet_id"],
            amount=Decimal(row["amount"]),
            fee=Decimal(row["fee"]),
            note=row["note"] or "",
            created_at=from_db_datetime(row["created_at"]),
        )
