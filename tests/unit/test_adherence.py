"""
Unit tests for adherence, progress and churn risk.
"""

import math
from datetime import datetime, timedelta

import pytest

from src.core.metrics.adherence import (
    classify_churn_risk,
    days_since,
    plan_adherence_rate,
    progress_rate,
    rolling_adherence_rate,
    shift_months,
    summarize_user,
)
from src.core.metrics.models import (
    Grade,
    MonthlyCount,
    Plan,
    RawMeasurements,
    RiskLevel,
    Training,
)
from src.core.metrics.scoring import score_assessment


NOW = datetime(2024, 6, 15, 12, 0)


def sessions(email: str, start: datetime, count: int, step_days: int = 1) -> list[Training]:
    return [
        Training(email=email, date=start + timedelta(days=i * step_days))
        for i in range(count)
    ]


# ---------------------------------------------------------------------------
# Rolling Adherence
# ---------------------------------------------------------------------------

class TestShiftMonths:
    def test_back_across_year(self):
        assert shift_months(datetime(2024, 2, 10), -3) == datetime(2023, 11, 10)

    def test_day_is_clamped(self):
        assert shift_months(datetime(2024, 5, 31), -3) == datetime(2024, 2, 29)


class TestRollingAdherence:
    def test_full_cadence_is_100(self):
        """36 sessions in three months is exactly the ideal."""
        trainings = sessions("a@x.com", NOW - timedelta(days=80), 36, step_days=2)
        assert rolling_adherence_rate(trainings, NOW) == pytest.approx(100.0)

    def test_uncapped_when_over_training(self):
        trainings = sessions("a@x.com", NOW - timedelta(days=60), 54)
        assert rolling_adherence_rate(trainings, NOW) == pytest.approx(150.0)

    def test_sessions_outside_window_are_ignored(self):
        trainings = [
            Training("a@x.com", datetime(2024, 3, 14)),
            Training("a@x.com", datetime(2024, 3, 15, 12)),
            Training("a@x.com", datetime(2024, 6, 16)),
        ]
        assert rolling_adherence_rate(trainings, NOW) == pytest.approx(100 / 36)

    def test_no_trainings(self):
        assert rolling_adherence_rate([], NOW) == 0.0


# ---------------------------------------------------------------------------
# Progress and Recency
# ---------------------------------------------------------------------------

class TestProgressRate:
    def test_needs_two_assessments(self):
        single = score_assessment("a@x.com", NOW, RawMeasurements(pull_ups=10))
        assert progress_rate([single]) == 0.0
        assert progress_rate([]) == 0.0

    def test_oldest_to_newest(self):
        first = score_assessment("a@x.com", datetime(2024, 1, 1), RawMeasurements())
        last = score_assessment("a@x.com", datetime(2024, 5, 1), RawMeasurements(pull_ups=35))
        expected = (last.composite_score - first.composite_score) / first.composite_score * 100

        assert progress_rate([last, first]) == pytest.approx(expected)
        assert expected > 0


class TestDaysSince:
    def test_whole_days(self):
        assert days_since(datetime(2024, 6, 1, 23, 0), NOW) == 14.0

    def test_never_trained_is_infinite(self):
        assert math.isinf(days_since(None, NOW))


# ---------------------------------------------------------------------------
# Churn Risk
# ---------------------------------------------------------------------------

class TestChurnRisk:
    def test_inactivity_precedes_low_adherence(self):
        """20 idle days and 30% adherence is high risk, not medium."""
        risk = classify_churn_risk(20, 30, 0)
        assert risk.level == RiskLevel.HIGH
        assert risk.reason == "No training in 20 days"

    def test_fourteen_days_is_not_inactive(self):
        assert classify_churn_risk(14, 80, 0).level == RiskLevel.LOW

    def test_low_adherence(self):
        risk = classify_churn_risk(3, 49.9, 10)
        assert (risk.level, risk.reason) == (RiskLevel.MEDIUM, "Low training adherence")

    def test_negative_progress(self):
        risk = classify_churn_risk(3, 75, -2)
        assert (risk.level, risk.reason) == (RiskLevel.MEDIUM, "Negative progress trend")

    def test_regular_pattern(self):
        risk = classify_churn_risk(3, 50, 0)
        assert (risk.level, risk.reason) == (RiskLevel.LOW, "Regular training pattern")

    def test_never_trained(self):
        risk = classify_churn_risk(math.inf, 0, 0)
        assert (risk.level, risk.reason) == (RiskLevel.HIGH, "No training recorded")


# ---------------------------------------------------------------------------
# Plan Adherence
# ---------------------------------------------------------------------------

class TestPlanAdherence:
    plan = Plan("a@x.com", datetime(2024, 1, 1), datetime(2024, 1, 29))

    def test_four_week_plan_with_ten_sessions(self):
        trainings = sessions("a@x.com", datetime(2024, 1, 2), 10, step_days=2)
        assert plan_adherence_rate(self.plan, trainings) == pytest.approx(1000 / 12)

    def test_capped_at_100(self):
        trainings = sessions("a@x.com", datetime(2024, 1, 1), 20)
        assert plan_adherence_rate(self.plan, trainings) == 100.0

    def test_only_own_sessions_within_plan(self):
        trainings = [
            Training("b@x.com", datetime(2024, 1, 5)),
            Training("a@x.com", datetime(2023, 12, 31)),
            Training("a@x.com", datetime(2024, 2, 1)),
            Training("a@x.com", datetime(2024, 1, 29)),
        ]
        assert plan_adherence_rate(self.plan, trainings) == pytest.approx(100 / 12)

    def test_partial_days_round_up(self):
        """27 days and 9 hours is a 28-day plan: 12 expected sessions."""
        plan = Plan("a@x.com", datetime(2024, 1, 1, 9), datetime(2024, 1, 28, 18))
        trainings = sessions("a@x.com", datetime(2024, 1, 2), 9, step_days=2)

        assert plan.duration_days == 28
        assert plan_adherence_rate(plan, trainings) == pytest.approx(75.0)

    def test_plan_shorter_than_a_week(self):
        plan = Plan("a@x.com", datetime(2024, 1, 1), datetime(2024, 1, 5))
        trainings = sessions("a@x.com", datetime(2024, 1, 1), 3)
        assert plan_adherence_rate(plan, trainings) == 0.0


# ---------------------------------------------------------------------------
# User Summary
# ---------------------------------------------------------------------------

class TestSummarizeUser:
    def test_summary_uses_only_own_records(self):
        trainings = [
            Training("a@x.com", datetime(2024, 6, 10)),
            Training("a@x.com", datetime(2024, 5, 2)),
            Training("b@x.com", datetime(2024, 6, 14)),
        ]
        assessments = [
            score_assessment("a@x.com", datetime(2024, 1, 1), RawMeasurements()),
            score_assessment(
                "a@x.com",
                datetime(2024, 5, 1),
                RawMeasurements(finger_strength_added_weight=35, body_weight=70, pull_ups=30),
            ),
        ]
        summary = summarize_user("a@x.com", trainings, assessments, NOW)

        assert summary.total_sessions == 2
        assert summary.last_training_date == datetime(2024, 6, 10)
        assert summary.days_since_last_training == 5.0
        assert summary.current_grade == assessments[1].grade
        assert summary.current_score == assessments[1].composite_score
        assert summary.monthly_training_counts == (
            MonthlyCount("2024-05", 1),
            MonthlyCount("2024-06", 1),
        )
        assert summary.adherence_rate == pytest.approx(200 / 36)
        assert summary.churn_risk.level == RiskLevel.MEDIUM

    def test_athlete_without_records(self):
        summary = summarize_user("ghost@x.com", [], [], NOW)

        assert summary.current_grade is None
        assert summary.current_score == 0.0
        assert summary.total_sessions == 0
        assert summary.last_training_date is None
        assert math.isinf(summary.days_since_last_training)
        assert summary.churn_risk.reason == "No training recorded"

    def test_grade_comes_from_latest_assessment(self):
        assessments = [
            score_assessment(
                "a@x.com",
                datetime(2024, 1, 1),
                RawMeasurements(finger_strength_added_weight=70, body_weight=70, pull_ups=30),
            ),
            score_assessment("a@x.com", datetime(2024, 4, 1), RawMeasurements()),
        ]
        summary = summarize_user("a@x.com", [], assessments, NOW)

        assert summary.current_grade == Grade.V4
        assert summary.progress_rate < 0
