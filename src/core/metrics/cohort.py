"""
Peer comparison within a grade cohort.

A cohort is every other athlete whose current grade matches the target's.
Statistics are recomputed for each query: cohort membership shifts
whenever an assessment is added, so there is no cohort state to keep.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .models import METRIC_NAMES, Assessment


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values, like a spreadsheet."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class MetricStats:
    """
    Distribution of one metric across a cohort.

    The median is the upper-middle element of the sorted values
    (``values[n // 2]``), not an interpolated median. Grade comparisons
    have always been made against this value, so it stays.
    """
    values: tuple[float, ...] = ()
    average: float = 0.0
    median: float = 0.0
    max: float = 0.0

    @property
    def count(self) -> int:
        return len(self.values)

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "MetricStats":
        ordered = tuple(sorted(value for value in values if value > 0))
        if not ordered:
            return cls()
        return cls(
            values=ordered,
            average=sum(ordered) / len(ordered),
            median=ordered[len(ordered) // 2],
            max=ordered[-1],
        )

    def percentile(self, value: float) -> int:
        """Share of cohort values at or below ``value``, 0..100."""
        if not self.values or value <= 0:
            return 0
        at_or_below = sum(1 for cohort_value in self.values if cohort_value <= value)
        return round_half_up(100 * at_or_below / len(self.values))


@dataclass(frozen=True)
class CohortStats:
    """Per-metric statistics plus the composite score distribution."""
    metrics: dict[str, MetricStats] = field(default_factory=dict)
    composite_score: MetricStats = field(default_factory=MetricStats)

    @property
    def size(self) -> int:
        return self.composite_score.count

    def percentile(self, metric: str, value: float) -> int:
        stats = self.metrics.get(metric)
        if stats is None:
            return 0
        return stats.percentile(value)


@dataclass(frozen=True)
class MetricComparison:
    metric: str
    value: float
    percentile: int
    cohort_average: float
    cohort_median: float
    cohort_max: float
    cohort_count: int


@dataclass(frozen=True)
class CohortComparison:
    """How one assessment ranks against its grade cohort."""
    email: str
    grade: str
    cohort_size: int
    composite_score: float
    composite_percentile: int
    metrics: tuple[MetricComparison, ...] = ()


def compute_cohort_stats(cohort: Sequence[Assessment]) -> CohortStats:
    """
    Aggregate a cohort's normalized metrics.

    Only values above zero count; an empty cohort yields zeroed stats
    whose percentile is always 0.
    """
    return CohortStats(
        metrics={
            name: MetricStats.from_values(
                assessment.metrics.as_mapping()[name] for assessment in cohort
            )
            for name in METRIC_NAMES
        },
        composite_score=MetricStats.from_values(
            assessment.composite_score for assessment in cohort
        ),
    )


def latest_assessments(assessments: Iterable[Assessment]) -> dict[str, Assessment]:
    """Most recent assessment per athlete email."""
    latest: dict[str, Assessment] = {}
    for assessment in assessments:
        current = latest.get(assessment.email)
        if current is None or assessment.date > current.date:
            latest[assessment.email] = assessment
    return latest


def select_cohort(
    target: Assessment,
    assessments: Iterable[Assessment],
) -> list[Assessment]:
    """
    Other athletes' latest assessments sharing the target's grade.

    One assessment per athlete, so frequent testers don't outweigh others.
    """
    return [
        assessment
        for email, assessment in sorted(latest_assessments(assessments).items())
        if email != target.email and assessment.grade == target.grade
    ]


def compare_to_cohort(
    target: Assessment,
    cohort: Sequence[Assessment],
    stats: Optional[CohortStats] = None,
) -> CohortComparison:
    stats = stats or compute_cohort_stats(cohort)
    values = target.metrics.as_mapping()

    comparisons = []
    for name in METRIC_NAMES:
        metric_stats = stats.metrics[name]
        comparisons.append(MetricComparison(
            metric=name,
            value=values[name],
            percentile=metric_stats.percentile(values[name]),
            cohort_average=metric_stats.average,
            cohort_median=metric_stats.median,
            cohort_max=metric_stats.max,
            cohort_count=metric_stats.count,
        ))

    return CohortComparison(
        email=target.email,
        grade=target.grade.value,
        cohort_size=len(cohort),
        composite_score=target.composite_score,
        composite_percentile=stats.composite_score.percentile(target.composite_score),
        metrics=tuple(comparisons),
    )
