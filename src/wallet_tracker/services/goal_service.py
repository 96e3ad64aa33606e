import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import GoalStatus
from wallet_tracker.domain.models import Goal, GoalContribution
from wallet_tracker.repositories.base import GoalFilter, ListParams, MAX_LIMIT
from wallet_tracker.repositories.unit_of_work import UnitOfWork
from wallet_tracker.services.models import GoalProgress

logger = logging.getLogger(__name__)


class GoalService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def repository(self):
        return self.uow.repositories.goals

    def create(
        self,
        name: str,
        target_amount: Decimal,
        description: str = "",
        deadline: Optional[date] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Goal:
        goal = Goal(
            name=name,
            target_amount=target_amount,
            description=description,
            deadline=deadline,
            color=color,
            icon=icon,
        )
        goal.validate()

        self.repository.create(goal)
        logger.info("Created goal %s (%s) with target %s", goal.id, goal.name, goal.target_amount)
        return goal

    def get(self, goal_id: str) -> Goal:
        return self.repository.get_by_id(goal_id)

    def list(self, filter: Optional[GoalFilter] = None) -> List[Goal]:
        return self.repository.list(filter)

    def list_active(self) -> List[Goal]:
        return self.repository.list(GoalFilter(status=GoalStatus.ACTIVE))

    def add_contribution(self, goal_id: str, amount: Decimal, note: str = "") -> GoalContribution:
        """
        Add money to a goal.

        The contribution row and the increment of current_amount are one
        atomic unit. Afterwards an active goal that reached its target is
        marked completed; that step is best effort and never fails the call.

        Raises:
            ValidationError: If the amount is not positive
            RecordNotFoundError: If the goal does not exist
        """
        contribution = GoalContribution(goal_id=goal_id, amount=amount, note=note)
        contribution.validate()

        self.uow.run_atomic(lambda repos: repos.goals.add_contribution(contribution))
        logger.info("Added %s to goal %s", contribution.amount, goal_id)

        self._complete_if_reached(goal_id)
        return contribution

    def get_contributions(
        self,
        goal_id: str,
        params: Optional[ListParams] = None,
    ) -> List[GoalContribution]:
        return self.repository.get_contributions(goal_id, params)

    def get_progress(self, goal_id: str, today: Optional[date] = None) -> GoalProgress:
        goal = self.repository.get_by_id(goal_id)
        # TODO: add a count query to GoalRepository; this caps at one page
        contributions = self.repository.get_contributions(goal_id, ListParams(limit=MAX_LIMIT))

        return GoalProgress(
            goal=goal,
            progress=goal.progress,
            remaining=goal.remaining,
            days_left=goal.days_until_deadline(today),
            contribution_count=len(contributions),
        )

    def update(
        self,
        goal_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        target_amount: Optional[Decimal] = None,
        deadline: Optional[date] = None,
        status: Optional[GoalStatus] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Goal:
        """Update goal fields. current_amount only moves through add_contribution."""
        goal = self.repository.get_by_id(goal_id)

        if name is not None:
            goal.name = name
        if description is not None:
            goal.description = description
        if target_amount is not None:
            goal.target_amount = target_amount
        if deadline is not None:
            goal.deadline = deadline
        if status is not None:
            goal.status = status
        if color is not None:
            goal.color = color
        if icon is not None:
            goal.icon = icon
        goal.validate()

        return self.repository.update(goal)

    def mark_completed(self, goal_id: str) -> Goal:
        return self.update(goal_id, status=GoalStatus.COMPLETED)

    def cancel(self, goal_id: str) -> Goal:
        return self.update(goal_id, status=GoalStatus.CANCELLED)

    def delete(self, goal_id: str) -> None:
        self.repository.delete(goal_id)
        logger.info("Deleted goal %s", goal_id)

    def _complete_if_reached(self, goal_id: str) -> None:
        try:
            goal = self.repository.get_by_id(goal_id)
            if goal.status == GoalStatus.ACTIVE and goal.is_completed:
                goal.status = GoalStatus.COMPLETED
                self.repository.update(goal)
                logger.info("Goal %s reached its target", goal_id)
        except Exception:
            logger.warning("Could not mark goal %s as completed", goal_id, exc_info=True)
