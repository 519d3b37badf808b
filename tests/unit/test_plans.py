"""
Unit tests for training plan outcomes.
"""

from datetime import datetime, timedelta

import pytest

from src.core.metrics.models import Assessment, AssessmentMetrics, Grade, Plan, RawMeasurements, Training
from src.core.metrics.plans import assessment_progress, plan_metrics, success_rate


NOW = datetime(2024, 6, 1)


def scored(email: str, when: datetime, score: float) -> Assessment:
    return Assessment(
        email=email,
        date=when,
        raw=RawMeasurements(),
        metrics=AssessmentMetrics(0.5, 0.1, 0.1, 0.1, 0.5),
        composite_score=score,
        grade=Grade.V5,
    )


class TestSuccessRate:
    @pytest.mark.parametrize("improvement,rate", [
        (35.0, 100.0),
        (20.0, 100.0),
        (12.0, 75.0),
        (5.0, 50.0),
        (0.0, 25.0),
        (-3.0, 0.0),
    ])
    def test_ladder(self, improvement, rate):
        assert success_rate(improvement) == rate


class TestAssessmentProgress:
    plan = Plan("a@x.com", datetime(2024, 2, 1), datetime(2024, 3, 1))

    def test_before_and_after(self):
        assessments = [
            scored("a@x.com", datetime(2024, 1, 1), 0.6),
            scored("a@x.com", datetime(2024, 1, 20), 0.7),
            scored("a@x.com", datetime(2024, 2, 15), 5.0),
            scored("a@x.com", datetime(2024, 3, 10), 0.77),
            scored("b@x.com", datetime(2024, 3, 10), 2.0),
        ]
        progress = assessment_progress(self.plan, assessments)

        assert progress.before_plan == 0.7
        assert progress.after_plan == 0.77
        assert progress.improvement == pytest.approx(10.0)

    def test_missing_side_means_no_improvement(self):
        assessments = [scored("a@x.com", datetime(2024, 3, 10), 0.9)]
        progress = assessment_progress(self.plan, assessments)

        assert progress.before_plan == 0.0
        assert progress.after_plan == 0.9
        assert progress.improvement == 0.0


class TestPlanMetrics:
    def test_no_plans(self):
        metrics = plan_metrics("a@x.com", [], [], [], NOW)

        assert metrics.active_plan is None
        assert metrics.completed_plans == ()
        assert metrics.adherence_rate == 0.0
        assert metrics.success_rate == 0.0

    def test_latest_completed_plan_is_graded(self):
        older = Plan("a@x.com", datetime(2023, 10, 1), datetime(2023, 10, 29))
        latest = Plan("a@x.com", datetime(2024, 1, 1), datetime(2024, 1, 29))
        active = Plan("a@x.com", datetime(2024, 5, 20), datetime(2024, 6, 17))
        trainings = [
            Training("a@x.com", datetime(2024, 1, 2) + timedelta(days=2 * i))
            for i in range(10)
        ]
        assessments = [
            scored("a@x.com", datetime(2023, 12, 20), 0.7),
            scored("a@x.com", datetime(2024, 2, 5), 0.86),
        ]
        metrics = plan_metrics(
            "a@x.com",
            [latest, active, older, Plan("b@x.com", datetime(2024, 1, 1), datetime(2024, 3, 1))],
            trainings,
            assessments,
            NOW,
        )

        assert metrics.active_plan == active
        assert metrics.completed_plans == (older, latest)
        assert metrics.adherence_rate == pytest.approx(1000 / 12)
        assert metrics.assessment_progress.improvement == pytest.approx(22.857, abs=1e-3)
        assert metrics.success_rate == 100.0

    def test_only_active_plan(self):
        active = Plan("a@x.com", datetime(2024, 5, 20), datetime(2024, 6, 17))
        metrics = plan_metrics("a@x.com", [active], [], [], NOW)

        assert metrics.active_plan == active
        assert metrics.completed_plans == ()
