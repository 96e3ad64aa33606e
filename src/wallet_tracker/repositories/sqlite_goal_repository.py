import sqlite3
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import GoalStatus
from wallet_tracker.domain.models import Goal, GoalContribution
from wallet_tracker.repositories.base import (
    GoalFilter,
    GoalRepository,
    ListParams,
    RecordNotFoundError,
)
from wallet_tracker.repositories.sqlite_base import (
    SQLiteRepository,
    from_db_date,
    from_db_datetime,
    now_iso,
    to_db_date,
    to_db_money,
)


class SQLiteGoalRepository(SQLiteRepository, GoalRepository):
    """SQLite implementation of the GoalRepository."""

    def create(self, goal: Goal) -> Goal:
        timestamp = now_iso()
        self._execute(
            """
            INSERT INTO goals (
                id, name, description, target_amount, current_amount, deadline,
                status, color, icon, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                goal.id,
                goal.name,
                goal.description,
                to_db_money(goal.target_amount),
                to_db_money(goal.current_amount),
                to_db_date(goal.deadline),
                goal.status.value,
                goal.color,
                goal.icon,
                timestamp,
                timestamp,
            ),
        )
        goal.created_at = goal.updated_at = from_db_datetime(timestamp)
        return goal

    def get_by_id(self, goal_id: str) -> Goal:
        row = self._fetchone("SELECT * FROM goals WHERE id = ?", (goal_id,))
        if row is None:
            raise RecordNotFoundError(f"Goal with ID {goal_id} not found")
        return self._row_to_goal(row)

    def list(self, filter: Optional[GoalFilter] = None) -> List[Goal]:
        filter = filter or GoalFilter()
        query = "SELECT * FROM goals WHERE 1=1"
        params = []

        if filter.status:
            query += " AND status = ?"
            params.append(filter.status.value)

        # Goals without a deadline go last
        query += " ORDER BY deadline IS NULL, deadline, created_at"

        return [self._row_to_goal(row) for row in self._fetchall(query, params)]

    def update(self, goal: Goal) -> Goal:
        cursor = self._execute(
            """
            UPDATE goals
            SET name = ?, description = ?, target_amount = ?, deadline = ?,
                status = ?, color = ?, icon = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                goal.name,
                goal.description,
                to_db_money(goal.target_amount),
                to_db_date(goal.deadline),
                goal.status.value,
                goal.color,
                goal.icon,
                now_iso(),
                goal.id,
            ),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Goal with ID {goal.id} not found")
        return goal

    def delete(self, goal_id: str) -> None:
        cursor = self._execute("DELETE FROM goals WHERE id = ?", (goal_id,))
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Goal with ID {goal_id} not found")

    def add_contribution(self, contribution: GoalContribution) -> GoalContribution:
        """Insert the contribution, then increment current_amount in place."""
        if self._fetchone("SELECT 1 FROM goals WHERE id = ?", (contribution.goal_id,)) is None:
            raise RecordNotFoundError(f"Goal with ID {contribution.goal_id} not found")

        self._execute(
            """
            INSERT INTO goal_contributions (id, goal_id, amount, note, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                contribution.id,
                contribution.goal_id,
                to_db_money(contribution.amount),
                contribution.note,
                contribution.created_at.isoformat(timespec="seconds"),
            ),
        )

        cursor = self._execute(
            """
            UPDATE goals
            SET current_amount = dec_add(current_amount, ?), updated_at = ?
            WHERE id = ?
            """,
            (to_db_money(contribution.amount), now_iso(), contribution.goal_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFoundError(f"Goal with ID {contribution.goal_id} not found")

        return contribution

    def get_contributions(
        self,
        goal_id: str,
        params: Optional[ListParams] = None,
    ) -> List[GoalContribution]:
        params = params or ListParams()
        rows = self._fetchall(
            "SELECT * FROM goal_contributions WHERE goal_id = ?"
            " ORDER BY created_at DESC LIMIT ? OFFSET ?",
            (goal_id, params.limit, params.offset),
        )
        return [
            GoalContribution(
                id=row["id"],
                goal_id=row["goal_id"],
                amount=Decimal(row["amount"]),
                note=row["note"] or "",
                created_at=from_db_datetime(row["created_at"]),
            )
            for row in rows
        ]

    def _row_to_goal(self, row: sqlite3.Row) -> Goal:
        return Goal(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            target_amount=Decimal(row["target_amount"]),
            current_amount=Decimal(row["current_amount"]),
            deadline=from_db_date(row["deadline"]),
            status=GoalStatus(row["status"]),
            color=row["color"],
            icon=row["icon"],
            created_at=from_db_datetime(row["created_at"]),
            updated_at=from_db_datetime(row["updated_at"]),
        )
