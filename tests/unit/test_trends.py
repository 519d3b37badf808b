"""
Unit tests for engagement metrics and dashboard trends.
"""

from datetime import datetime

import pytest

from src.core.metrics.bucketing import bucket_by_month
from src.core.metrics.engagement import consistency_score, frequency_metrics, time_slot
from src.core.metrics.models import MonthlyActivity, MonthlyCount, Training, User
from src.core.metrics.trends import (
    compute_trends,
    dashboard_stats,
    key_insights,
    location_utilization,
    monthly_engagement,
    monthly_growth,
)


def activity_for(trainings: list[Training]) -> MonthlyActivity:
    return bucket_by_month(trainings)


TRAININGS = [
    Training("a@x.com", datetime(2024, 1, 1, 9), "GymX"),   # Monday morning
    Training("a@x.com", datetime(2024, 1, 8, 18), "GymX"),  # Monday evening
    Training("b@x.com", datetime(2024, 1, 10, 13), "GymY"),
    Training("a@x.com", datetime(2024, 2, 5, 10), "GymX"),
    Training("b@x.com", datetime(2024, 2, 6, 19), "GymY"),
    Training("b@x.com", datetime(2024, 2, 7, 19), "GymY"),
    Training("b@x.com", datetime(2024, 2, 8, 19), ""),
    Training("c@x.com", datetime(2024, 2, 9, 19), "GymZ"),
]


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------

class TestTimeSlot:
    @pytest.mark.parametrize("hour,slot", [
        (0, "Morning"), (11, "Morning"),
        (12, "Afternoon"), (16, "Afternoon"),
        (17, "Evening"), (23, "Evening"),
    ])
    def test_slots(self, hour, slot):
        assert time_slot(hour) == slot


class TestConsistencyScore:
    def test_ideal_cadence_is_100(self):
        assert consistency_score(24, 2) == 100

    def test_capped(self):
        assert consistency_score(60, 2) == 100

    def test_partial(self):
        assert consistency_score(3, 1) == 25

    def test_no_months(self):
        assert consistency_score(0, 0) == 0


class TestFrequencyMetrics:
    def test_per_athlete_frequency(self):
        users = {"a@x.com": User("a@x.com", "Ann", "Lee")}
        metrics = frequency_metrics(TRAININGS, users)

        assert [m.email for m in metrics] == ["b@x.com", "a@x.com", "c@x.com"]

        ann = metrics[1]
        assert ann.name == "Ann Lee"
        assert ann.total_sessions == 3
        assert ann.months_active == 2
        assert ann.sessions_per_month == 1.5
        assert ann.most_active_day == "Monday"
        assert ann.most_active_time == "Morning"
        assert ann.day_frequency == {"Monday": 3}
        assert ann.consistency_score == 13

    def test_unknown_user_name(self):
        metrics = frequency_metrics(TRAININGS, {})
        assert all(m.name == "Unknown" for m in metrics)

    def test_no_trainings(self):
        assert frequency_metrics([], {}) == []


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

class TestTrends:
    def test_monthly_growth(self):
        growth = monthly_growth(activity_for(TRAININGS))

        assert len(growth) == 1
        assert growth[0].month == "2024-02"
        # 3 -> 5 sessions, 2 -> 3 users
        assert growth[0].session_growth == pytest.approx(200 / 3)
        assert growth[0].user_growth == pytest.approx(50.0)

    def test_growth_from_empty_month_is_zero(self):
        activity = MonthlyActivity(
            monthly_sessions=(MonthlyCount("2024-01", 0), MonthlyCount("2024-02", 4)),
        )
        growth = monthly_growth(activity)

        assert growth[0].session_growth == 0.0
        assert growth[0].user_growth == 0.0

    def test_no_growth_without_two_months(self):
        assert monthly_growth(MonthlyActivity()) == ()

    def test_monthly_engagement(self):
        engagement = monthly_engagement(activity_for(TRAININGS))

        assert [(e.month, e.total_sessions, e.active_users) for e in engagement] == [
            ("2024-01", 3, 2),
            ("2024-02", 5, 3),
        ]
        assert engagement[0].sessions_per_user == pytest.approx(1.5)

    def test_location_utilization_sums_to_100(self):
        utilization = location_utilization(activity_for(TRAININGS))

        assert [u.location for u in utilization] == ["GymX", "GymY", "GymZ"]
        assert sum(u.utilization_rate for u in utilization) == pytest.approx(100.0)
        assert utilization[0].utilization_rate == pytest.approx(300 / 7)

    def test_key_insights(self):
        activity = activity_for(TRAININGS)
        insights = key_insights(activity, compute_trends(activity))

        assert insights.average_sessions_per_user == pytest.approx(1.6)
        assert insights.most_utilized_location == "GymX"
        assert insights.latest_session_growth == pytest.approx(66.7)

    def test_dashboard_stats(self):
        stats = dashboard_stats(activity_for(TRAININGS))

        assert stats.total_sessions == 8
        assert stats.peak_active_users == 3
        assert stats.average_sessions_per_month == 4
        assert stats.most_popular_location == "GymX"

    def test_empty_activity(self):
        activity = MonthlyActivity()
        insights = key_insights(activity, compute_trends(activity))
        stats = dashboard_stats(activity)

        assert insights.most_utilized_location == "N/A"
        assert insights.average_sessions_per_user == 0.0
        assert stats.total_sessions == 0
        assert stats.peak_active_users == 0
        assert stats.most_popular_location == "N/A"
