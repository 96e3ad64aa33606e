import sqlite3
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import WalletType
from wallet_tracker.domain.models import Wallet
from wallet_tracker.repositories.base import RecordNotFoundError, WalletFilter, WalletRepository
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_datetime,
    now_iso,
    to_db_money,
)


class SQLiteWalletRepository(SQLiteRepository, WalletRepository):
    """SQLite implementation of the WalletRepository."""

    def create(self, wallet: Wallet) -> Wallet:
        """Save a new wallet."""
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO wallets (
                id, name, type, balance, currency, color, icon,
                is_active, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                wallet.id,
                wallet.name,
                wallet.type.value,
                to_db_money(wallet.balance),
                wallet.currency,
                wallet.color,
                wallet.icon,
                int(wallet.is_active),
                timestamp,
                timestamp,
            ),
        )
        wallet.created_at = wallet.updated_at = from_db_datetime(timestamp)
        return wallet

    def get_by_id(self, wallet_id: str) -> Wallet:
        row = self._fetchone("SELECT * FROM wallets WHERE id = ?", (wallet_id,))
        if row is None:
            raise RecordNotFoundError(f"Wallet with ID {wallet_id} not found")
        return self._row_to_wallet(row)

    def list(self, filter: Optional[WalletFilter] = None) -> List[Wallet]:
        """Retrieve wallets with optional filtering."""
        filter = filter or WalletFilter()
        query = "SELECT * FROM wallets WHERE 1=1"
        params = []

        if filter.is_active is not None:
            query += " AND is_active = ?"
            params.append(int(filter.is_active))

        if filter.type:
            query += " AND type = ?"
            params.append(filter.type.value)

        if filter.currency:
            query += " AND currency = ?"
            params.append(filter.currency.upper())

        query += " ORDER BY name COLLATE NOCASE"

        return [self._row_to_wallet(row) for row in self._fetchall(query, params)]

    def update(self, wallet: Wallet) -> Wallet:
        cursor = self._execute(
            """
            UPDATE wallets
            SET name = ?, type = ?, currency = ?, color = ?, icon = ?,
                is_active = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                wallet.name,
                wallet.type.value,
                wallet.currency,
                wallet.color,
                wallet.icon,
                int(wallet.is_active),
                now_iso(),
                wallet.id,
            ),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Wallet with ID {wallet.id} not found")
        return wallet

    def delete(self, wallet_id: str) -> None:
        """Soft delete: the row stays for the transactions that reference it."""
        cursor = self._execute(
            "UPDATE wallets SET is_active = 0, updated_at = ? WHERE id = ? AND is_active = 1",
            (now_iso(), wallet_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Active wallet with ID {wallet_id} not found")

    def update_balance(self, wallet_id: str, new_balance: Decimal) -> None:
        cursor = self._execute(
            "UPDATE wallets SET balance = ?, updated_at = ? WHERE id = ?",
            (to_db_money(new_balance), now_iso(), wallet_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Wallet with ID {wallet_id} not found")

    def get_total_balance(self) -> Decimal:
        row = self._fetchone(
            "SELECT COALESCE(dec_sum(balance), '0') AS total FROM wallets WHERE is_active = 1"
        )
        return Decimal(row["total"])

    def _row_to_wallet(self, row: sqlite3.Row) -> Wallet:
        """Convert database row to Wallet object."""
        return Wallet(
            id=row["id"],
            name=row["name"],
            type=WalletType(row["type"]),
            balance=Decimal(row["balance"]),
            currency=row["currency"],
            color=row["color"],
            icon=row["icon"],
            is_active=bool(row["is_active"]),
            created_at=from_db_datetime(row["created_at"]),
            updated_at=from_db_datetime(row["updated_at"]),
        )
