import logging

import pytest
from datetime import date
from decimal import Decimal

from wallet_tracker.app import Services
from wallet_tracker.domain.enums import GoalStatus
from wallet_tracker.domain.errors import ValidationError
from wallet_tracker.repositories.base import RecordNotFoundError, StorageError


@pytest.fixture
def laptop(services: Services):
    return services.goals.create(name="Laptop", target_amount=Decimal("1000000"), deadline=date(2026, 6, 30))


@pytest.mark.unit
class TestContributions:

    def test_goal_completes_when_target_is_reached(self, services: Services, laptop):
        # Arrange
        services.goals.add_contribution(laptop.id, Decimal("800000"))
        assert services.goals.get(laptop.id).status == GoalStatus.ACTIVE

        # Act
        services.goals.add_contribution(laptop.id, Decimal("300000"), note="bonus")

        # Assert
        goal = services.goals.get(laptop.id)
        assert goal.current_amount == Decimal("1100000")
        assert goal.status == GoalStatus.COMPLETED
        assert goal.remaining == Decimal("0")

    def test_current_amount_equals_sum_of_contributions(self, services: Services, laptop):
        amounts = [Decimal("0.10"), Decimal("0.20"), Decimal("12345.67"), Decimal("1")]
        for amount in amounts:
            services.goals.add_contribution(laptop.id, amount)

        contributions = services.goals.get_contributions(laptop.id)
        assert sum(c.amount for c in contributions) == services.goals.get(laptop.id).current_amount
        assert services.goals.get(laptop.id).current_amount == Decimal("12346.97")

    def test_contributions_are_newest_first(self, services: Services, laptop):
        first = services.goals.add_contribution(laptop.id, Decimal("1"))
        second = services.goals.add_contribution(laptop.id, Decimal("2"))

        assert [c.id for c in services.goals.get_contributions(laptop.id)] == [second.id, first.id]

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-100")])
    def test_non_positive_amount_is_rejected(self, services: Services, laptop, amount):
        with pytest.raises(ValidationError):
            services.goals.add_contribution(laptop.id, amount)

        assert services.goals.get(laptop.id).current_amount == Decimal("0")

    def test_unknown_goal(self, services: Services):
        with pytest.raises(RecordNotFoundError):
            services.goals.add_contribution("missing", Decimal("10"))

    def test_cancelled_goal_still_accepts_money(self, services: Services, laptop):
        services.goals.cancel(laptop.id)

        services.goals.add_contribution(laptop.id, Decimal("2000000"))

        goal = services.goals.get(laptop.id)
        assert goal.current_amount == Decimal("2000000")
        assert goal.status == GoalStatus.CANCELLED

    def test_failed_completion_keeps_the_contribution(self, services: Services, laptop, mocker, caplog):
        # Arrange
        mocker.patch.object(
            services.uow.repositories.goals, "update", side_effect=StorageError("locked")
        )

        # Act
        with caplog.at_level(logging.WARNING, logger="wallet_tracker"):
            services.goals.add_contribution(laptop.id, Decimal("1000000"))

        # Assert
        goal = services.goals.get(laptop.id)
        assert goal.current_amount == Decimal("1000000")
        assert goal.status == GoalStatus.ACTIVE
        assert "Could not mark goal" in caplog.text

    def test_unexpected_completion_error_is_not_raised(self, services: Services, laptop, mocker, caplog):
        # Arrange
        mocker.patch.object(
            services.uow.repositories.goals, "update", side_effect=RuntimeError("driver crashed")
        )

        # Act
        with caplog.at_level(logging.WARNING, logger="wallet_tracker"):
            services.goals.add_contribution(laptop.id, Decimal("1000000"))

        # Assert
        assert services.goals.get(laptop.id).current_amount == Decimal("1000000")
        assert "Could not mark goal" in caplog.text


@pytest.mark.unit
class TestGoalQueries:

    def test_progress(self, services: Services, laptop):
        # Arrange
        services.goals.add_contribution(laptop.id, Decimal("250000"))
        services.goals.add_contribution(laptop.id, Decimal("150000"))

        # Act
        progress = services.goals.get_progress(laptop.id, today=date(2026, 6, 20))

        # Assert
        assert progress.progress == Decimal("40")
        assert progress.remaining == Decimal("600000")
        assert progress.days_left == 10
        assert progress.contribution_count == 2
        assert not progress.is_completed

    def test_list_orders_by_deadline_with_open_ended_last(self, services: Services, laptop):
        open_ended = services.goals.create(name="Rainy day", target_amount=Decimal("5000000"))
        trip = services.goals.create(name="Trip", target_amount=Decimal("3000000"), deadline=date(2026, 3, 1))

        assert [g.id for g in services.goals.list()] == [trip.id, laptop.id, open_ended.id]

    def test_list_active_excludes_finished_goals(self, services: Services, laptop):
        done = services.goals.create(name="Phone", target_amount=Decimal("10"))
        services.goals.mark_completed(done.id)

        assert [g.id for g in services.goals.list_active()] == [laptop.id]


@pytest.mark.unit
class TestGoalUpdates:

    def test_update_fields(self, services: Services, laptop):
        services.goals.update(laptop.id, name="Gaming laptop", target_amount=Decimal("1500000"))

        goal = services.goals.get(laptop.id)
        assert goal.name == "Gaming laptop"
        assert goal.target_amount == Decimal("1500000")

    def test_update_does_not_touch_current_amount(self, services: Services, laptop):
        services.goals.add_contribution(laptop.id, Decimal("100"))

        services.goals.update(laptop.id, description="new")

        assert services.goals.get(laptop.id).current_amount == Decimal("100")

    def test_invalid_target(self, services: Services, laptop):
        with pytest.raises(ValidationError):
            services.goals.update(laptop.id, target_amount=Decimal("0"))

    def test_delete_removes_contributions(self, services: Services, laptop):
        services.goals.add_contribution(laptop.id, Decimal("100"))

        services.goals.delete(laptop.id)

        with pytest.raises(RecordNotFoundError):
            services.goals.get(laptop.id)
        assert services.goals.get_contributions(laptop.id) == []
