import sqlite3
from typing import List

from wallet_tracker.domain.enums import CategoryType
from wallet_tracker.domain.models import Category
from wallet_tracker.repositories.base import CategoryRepository, RecordNotFoundError
from wallet_tracker.repositories.sqlite_base import SQLiteRepository, from_db_datetime, now_iso

ORDER_BY = " ORDER BY type, sort_order, name COLLATE NOCASE"


class SQLiteCategoryRepository(SQLiteRepository, CategoryRepository):
    """SQLite implementation of the CategoryRepository."""

    def create(self, category: Category) -> Category:
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO categories (id, name, type, color, icon, parent_id, sort_order, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category.id,
                category.name,
                category.type.value,
                category.color,
                category.icon,
                category.parent_id,
                category.sort_order,
                timestamp,
            ),
        )
        category.created_at = from_db_datetime(timestamp)
        return category

    def get_by_id(self, category_id: str) -> Category:
        row = self._fetchone("SELECT * FROM categories WHERE id = ?", (category_id,))
        if row is None:
            raise RecordNotFoundError(f"Category with ID {category_id} not found")
        return self._row_to_category(row)

    def get_by_type(self, category_type: CategoryType) -> List[Category]:
        rows = self._fetchall(
            "SELECT * FROM categories WHERE type = ?" + ORDER_BY,
            (category_type.value,),
        )
        return [self._row_to_category(row) for row in rows]

    def get_children(self, parent_id: str) -> List[Category]:
        rows = self._fetchall(
            "SELECT * FROM categories WHERE parent_id = ?" + ORDER_BY,
            (parent_id,),
        )
        return [self._row_to_category(row) for row in rows]

    def list(self) -> List[Category]:
        return [self._row_to_category(row) for row in self._fetchall("SELECT * FROM categories" + ORDER_BY)]

    def update(self, category: Category) -> Category:
        cursor = self._execute(
            """
            UPDATE categories
            SET name = ?, color = ?, icon = ?, sort_order = ?
            WHERE id = ?
            """,
            (category.name, category.color, category.icon, category.sort_order, category.id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Category with ID {category.id} not found")
        return category

    def delete(self, category_id: str) -> None:
        cursor = self._execute("DELETE FROM categories WHERE id = ?", (category_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Category with ID {category_id} not found")

    def _row_to_category(self, row: sqlite3.Row) -> Category:
        return Category(
            id=row["id"],
            name=row["name"],
            type=CategoryType(row["type"]),
            color=row["color"],
            icon=row["icon"],
            parent_id=row["parent_id"],
            sort_order=row["sort_order"],
            created_at=from_db_datetime(row["created_at"]),
        )
