"""Tests for the dashboard aggregation and the onboarding flow."""

import datetime as dt

import pytest
from bson import ObjectId

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.services.activities import ActivityService
from app.services.dashboard import DashboardService, chart_labels
from app.services.emissions.emission_calculator import get_emission_calculator
from app.services.onboarding import OnboardingService

UTC = dt.timezone.utc


@pytest.fixture
def dashboard(db):
    return DashboardService(db, ActivityService(db, get_emission_calculator()))


@pytest.fixture
def june_user(db, user_factory):
    user = user_factory(target_emission=100.0, total_trees=2)
    db.activities.seed(
        {"user_id": user["_id"], "category": "Food", "emission": 20.0, "date": dt.datetime(2025, 6, 14, 9, tzinfo=UTC)},
        {"user_id": user["_id"], "category": "Food", "emission": 5.0, "date": dt.datetime(2025, 6, 2, 9, tzinfo=UTC)},
        {"user_id": user["_id"], "category": "Transportation", "emission": 10.0,
         "date": dt.datetime(2025, 6, 15, 8, tzinfo=UTC)},
    )
    return user


class TestDashboard:
    def test_chart_labels(self, now):
        weekly = chart_labels("weekly", now)
        assert weekly[0] == "2025-06-09"
        assert weekly[-1] == "2025-06-15"
        assert len(chart_labels("monthly", now)) == 30
        assert chart_labels("yearly", now)[0] == "Jan"

    @pytest.mark.asyncio
    async def test_weekly(self, dashboard, june_user, now):
        data = await dashboard.get_dashboard(june_user["_id"], "weekly", now=now)
        summary = data["summary"]
        assert summary["total_emission"] == 30.0
        assert summary["daily_average"] == 4.29
        assert summary["total_trees"] == 2
        assert data["chart_data"]["data"][-2:] == [20.0, 10.0]
        assert [c["category"] for c in data["category_breakdown"]] == ["Food", "Transportation"]

    @pytest.mark.asyncio
    async def test_monthly_includes_pending_trees(self, dashboard, june_user, now):
        data = await dashboard.get_dashboard(june_user["_id"], "monthly", now=now)
        summary = data["summary"]
        assert summary["total_emission"] == 35.0
        assert summary["daily_average"] == 2.33
        assert summary["pending_monthly_trees"] == 6
        assert summary["total_trees"] == 8
        assert sum(data["chart_data"]["data"]) == pytest.approx(35.0)

    @pytest.mark.asyncio
    async def test_yearly_chart_by_month(self, dashboard, june_user, now):
        data = await dashboard.get_dashboard(june_user["_id"], "yearly", now=now)
        labels, values = data["chart_data"]["labels"], data["chart_data"]["data"]
        assert values[labels.index("Jun")] == 35.0
        assert sum(values) == 35.0

    @pytest.mark.asyncio
    async def test_unknown_user_or_period(self, dashboard, june_user, now):
        with pytest.raises(NotFoundError):
            await dashboard.get_dashboard(ObjectId(), "weekly", now=now)
        with pytest.raises(InvalidInputError):
            await dashboard.get_dashboard(june_user["_id"], "hourly", now=now)


class TestOnboarding:
    @pytest.mark.asyncio
    async def test_flow(self, db, user_doc):
        service = OnboardingService(db)
        status = await service.get_status(user_doc["_id"])
        assert status["completed"] is False
        assert status["total_steps"] == 4
        assert status["remaining_steps"][0] == "welcome"

        await service.complete_step(user_doc["_id"], "welcome")
        result = await service.complete_step(user_doc["_id"], "set_target", target_emission=80)
        assert result["onboarding_completed"] is False
        assert (await db.users.find_one({"_id": user_doc["_id"]}))["target_emission"] == 80

        with pytest.raises(ConflictError):
            await service.complete_step(user_doc["_id"], "welcome")

        await service.complete_step(user_doc["_id"], "first_activity")
        final = await service.complete_step(user_doc["_id"], "explore_dashboard")
        assert final["onboarding_completed"] is True
        status = await service.get_status(user_doc["_id"])
        assert status["remaining_steps"] == []
        assert len(status["completed_steps"]) == 4

    @pytest.mark.asyncio
    async def test_invalid_step_and_skip(self, db, user_doc):
        service = OnboardingService(db)
        with pytest.raises(InvalidInputError):
            await service.complete_step(user_doc["_id"], "dance")
        assert await service.skip(user_doc["_id"]) == {"onboarding_completed": True}
        assert (await service.get_status(user_doc["_id"]))["completed"] is True
        with pytest.raises(NotFoundError):
            await service.skip(ObjectId())
