"""
Unit tests for cohort statistics and peer comparison.
"""

from datetime import datetime

import pytest

from src.core.metrics.cohort import (
    MetricStats,
    compare_to_cohort,
    compute_cohort_stats,
    latest_assessments,
    round_half_up,
    select_cohort,
)
from src.core.metrics.models import (
    METRIC_NAMES,
    Assessment,
    AssessmentMetrics,
    Grade,
    RawMeasurements,
)


def assessment(
    email: str,
    score: float,
    grade: Grade = Grade.V6,
    when: datetime = datetime(2024, 1, 1),
    value: float = 0.5,
) -> Assessment:
    return Assessment(
        email=email,
        date=when,
        raw=RawMeasurements(),
        metrics=AssessmentMetrics(value, value, value, value, value),
        composite_score=score,
        grade=grade,
    )


# ---------------------------------------------------------------------------
# Metric Statistics
# ---------------------------------------------------------------------------

class TestMetricStats:
    def test_basic_stats(self):
        stats = MetricStats.from_values([0.4, 0.2, 0.6])

        assert stats.count == 3
        assert stats.average == pytest.approx(0.4)
        assert stats.median == 0.4
        assert stats.max == 0.6

    def test_even_length_median_is_upper_middle(self):
        """No interpolation: [1, 2, 3, 4] has median 3."""
        assert MetricStats.from_values([4, 1, 3, 2]).median == 3

    def test_non_positive_values_are_ignored(self):
        stats = MetricStats.from_values([0, -1, 2])
        assert stats.values == (2,)

    def test_empty_cohort(self):
        stats = MetricStats.from_values([])

        assert stats.count == 0
        assert stats.average == 0
        for value in (-1, 0, 0.5, 10):
            assert stats.percentile(value) == 0

    def test_percentile_counts_values_at_or_below(self):
        stats = MetricStats.from_values([1, 2, 3])

        assert stats.percentile(2) == 67
        assert stats.percentile(3) == 100
        assert stats.percentile(0.5) == 0

    def test_percentile_rounds_half_up(self):
        stats = MetricStats.from_values([1, 2, 3, 4, 5, 6, 7, 8])
        # 1/8 = 12.5%
        assert stats.percentile(1) == 13

    def test_non_positive_target_is_zero(self):
        stats = MetricStats.from_values([1, 2, 3])
        assert stats.percentile(0) == 0

    def test_percentile_is_monotonic(self):
        """Raising the value never lowers its percentile."""
        stats = MetricStats.from_values([0.3, 0.7, 0.7, 1.1, 1.4, 2.0, 2.5])
        probes = [i / 10 for i in range(0, 30)]
        percentiles = [stats.percentile(p) for p in probes]
        assert percentiles == sorted(percentiles)


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [(12.5, 13), (2.5, 3), (66.666, 67), (0.49, 0)])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


# ---------------------------------------------------------------------------
# Cohort Selection and Comparison
# ---------------------------------------------------------------------------

class TestLatestAssessments:
    def test_keeps_most_recent_per_athlete(self):
        old = assessment("a@x.com", 0.7, when=datetime(2023, 6, 1))
        new = assessment("a@x.com", 0.9, when=datetime(2024, 6, 1))

        assert latest_assessments([new, old]) == {"a@x.com": new}


class TestSelectCohort:
    def test_same_grade_other_athletes(self):
        target = assessment("a@x.com", 0.8, Grade.V6)
        pool = [
            target,
            assessment("b@x.com", 0.78, Grade.V6),
            assessment("c@x.com", 0.95, Grade.V7),
            assessment("d@x.com", 0.76, Grade.V6),
        ]
        cohort = select_cohort(target, pool)
        assert [a.email for a in cohort] == ["b@x.com", "d@x.com"]

    def test_uses_latest_grade_of_each_peer(self):
        """A peer who moved up a grade leaves the cohort."""
        target = assessment("a@x.com", 0.8, Grade.V6)
        pool = [
            target,
            assessment("b@x.com", 0.78, Grade.V6, when=datetime(2023, 1, 1)),
            assessment("b@x.com", 0.9, Grade.V7, when=datetime(2024, 1, 1)),
        ]
        assert select_cohort(target, pool) == []


class TestCompareToCohort:
    def test_comparison_covers_every_metric(self):
        target = assessment("a@x.com", 0.8, value=0.6)
        cohort = [
            assessment("b@x.com", 0.76, value=0.4),
            assessment("c@x.com", 0.84, value=0.8),
        ]
        comparison = compare_to_cohort(target, cohort)

        assert comparison.grade == "V6"
        assert comparison.cohort_size == 2
        assert comparison.composite_percentile == 50
        assert [m.metric for m in comparison.metrics] == list(METRIC_NAMES)

        finger = comparison.metrics[0]
        assert finger.value == 0.6
        assert finger.percentile == 50
        assert finger.cohort_average == pytest.approx(0.6)
        assert finger.cohort_median == 0.8
        assert finger.cohort_max == 0.8
        assert finger.cohort_count == 2

    def test_empty_cohort_gives_zero_percentiles(self):
        comparison = compare_to_cohort(assessment("a@x.com", 0.8), [])

        assert comparison.cohort_size == 0
        assert comparison.composite_percentile == 0
        assert all(m.percentile == 0 and m.cohort_count == 0 for m in comparison.metrics)

    def test_precomputed_stats_are_reused(self):
        cohort = [assessment("b@x.com", 0.76), assessment("c@x.com", 0.84)]
        stats = compute_cohort_stats(cohort)

        assert stats.size == 2
        assert stats.percentile("pull_ups", 0.5) == 100
        assert stats.percentile("unknown", 0.5) == 0
        assert compare_to_cohort(assessment("a@x.com", 0.8), cohort, stats) == \
            compare_to_cohort(assessment("a@x.com", 0.8), cohort)
