"""Tests for savings goal flows and progress."""

import pytest
from datetime import timedelta
from decimal import Decimal

from finance_tracker.models.activity import ActivityEventType
from finance_tracker.models.goal import GoalPriority, GoalStatus, GoalUpdate
from finance_tracker.orchestrator import GoalFlow
from finance_tracker.reports import compute_goal_progress
from finance_tracker.services.storage import NotFoundError
from tests.factories import OWNER, TODAY, make_goal


@pytest.fixture
def goals(goal_storage, activity, today):
    return GoalFlow(goal_storage, activity, today)


def achieved_events(activity):
    return [e for e in activity.events if e.event_type == ActivityEventType.GOAL_ACHIEVED]


class TestGoalFlow:
    """Tests for goal actions."""

    @pytest.mark.asyncio
    async def test_add_funds_accumulates(self, goals):
        goal = await goals.create_goal(make_goal())

        await goals.add_funds(OWNER, goal.id, Decimal("200.00"))
        updated = await goals.add_funds(OWNER, goal.id, Decimal("100.00"))

        assert updated.current_amount == Decimal("300.00")
        assert updated.status == GoalStatus.ACTIVE
        assert (await goals.get_goal(OWNER, goal.id)).current_amount == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_reaching_target_logs_achievement_once(self, goals, activity):
        """Test that the achieved event fires on the transition only."""
        goal = await goals.create_goal(make_goal())

        first = await goals.add_funds(OWNER, goal.id, Decimal("1200.00"))
        await goals.add_funds(OWNER, goal.id, Decimal("50.00"))

        assert first.status == GoalStatus.ACHIEVED
        assert len(achieved_events(activity)) == 1

    @pytest.mark.asyncio
    async def test_set_progress_overwrites(self, goals, activity):
        goal = await goals.create_goal(make_goal())
        await goals.add_funds(OWNER, goal.id, Decimal("500.00"))

        updated = await goals.set_progress(OWNER, goal.id, Decimal("1500.00"))

        assert updated.current_amount == Decimal("1500.00")
        assert updated.status == GoalStatus.ACHIEVED
        assert len(achieved_events(activity)) == 1

    @pytest.mark.asyncio
    async def test_invalid_amounts_rejected(self, goals):
        goal = await goals.create_goal(make_goal())
        with pytest.raises(ValueError):
            await goals.add_funds(OWNER, goal.id, Decimal("0"))
        with pytest.raises(ValueError):
            await goals.set_progress(OWNER, goal.id, Decimal("-1.00"))

    @pytest.mark.asyncio
    async def test_missing_goal(self, goals):
        goal = make_goal()
        with pytest.raises(NotFoundError):
            await goals.add_funds(OWNER, goal.id, Decimal("10.00"))

    @pytest.mark.asyncio
    async def test_list_orders_by_priority_then_date(self, goals):
        later = await goals.create_goal(make_goal(
            title="Car", priority=GoalPriority.HIGH, target_date=TODAY + timedelta(days=300),
        ))
        sooner = await goals.create_goal(make_goal(
            title="Laptop", priority=GoalPriority.HIGH, target_date=TODAY + timedelta(days=30),
        ))
        low = await goals.create_goal(make_goal(title="Holiday", priority=GoalPriority.LOW))

        listed = await goals.list_goals(OWNER)

        assert [g.id for g in listed] == [sooner.id, later.id, low.id]

    @pytest.mark.asyncio
    async def test_achieved_goals_leave_active_list(self, goals):
        goal = await goals.create_goal(make_goal())
        await goals.set_progress(OWNER, goal.id, Decimal("1200.00"))

        assert await goals.list_goals(OWNER) == []
        assert len(await goals.list_goals(OWNER, status=None)) == 1

    @pytest.mark.asyncio
    async def test_update_and_delete(self, goals):
        goal = await goals.create_goal(make_goal())

        updated = await goals.update_goal(OWNER, goal.id, GoalUpdate(title="Rainy day"))
        assert updated.title == "Rainy day"

        await goals.delete_goal(OWNER, goal.id)
        with pytest.raises(NotFoundError):
            await goals.get_goal(OWNER, goal.id)


class TestGoalProgress:
    """Tests for derived goal progress."""

    def test_progress_and_monthly_required(self):
        """Test 900 remaining over 90 days is 300 per 30-day month."""
        goal = make_goal(current_amount=Decimal("300.00"))
        progress = compute_goal_progress(goal, TODAY)

        assert progress.progress == 25
        assert progress.days_remaining == 90
        assert progress.monthly_required == Decimal("300.00")

    def test_past_target_date(self):
        goal = make_goal(target_date=TODAY - timedelta(days=5))
        progress = compute_goal_progress(goal, TODAY)

        assert progress.days_remaining == 0
        assert progress.monthly_required == Decimal("0")

    @pytest.mark.asyncio
    async def test_flow_progress_uses_clock(self, goals):
        await goals.create_goal(make_goal(current_amount=Decimal("600.00")))

        [progress] = await goals.goal_progress(OWNER)

        assert progress.progress == 50
        assert progress.monthly_required == Decimal("200.00")
