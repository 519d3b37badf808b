"""
Calendar-month bucketing of training sessions.

Buckets are rebuilt from the full set of trainings on every call. The
aggregation is a fold over Counters that produces sorted, immutable
series, so results can be compared or computed per bucket in parallel
without shared state.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Callable, Iterable, Optional

from .models import LocationCount, MonthlyActivity, MonthlyCount, Training


TrainingPredicate = Callable[[Training], bool]


@dataclass(frozen=True)
class TrainingFilter:
    """
    Dashboard filter expressed as a predicate over trainings.

    Every criterion is optional; an empty filter matches everything.
    Date bounds are inclusive. A plain ``date`` as ``end`` covers the
    whole day.
    """
    emails: Optional[frozenset[str]] = None
    start: Optional[date] = None
    end: Optional[date] = None
    location: Optional[str] = None

    def __call__(self, training: Training) -> bool:
        return self.matches(training)

    def matches(self, training: Training) -> bool:
        if self.emails is not None and training.email not in self.emails:
            return False
        if self.start is not None and training.date < _as_start(self.start):
            return False
        if self.end is not None and training.date > _as_end(self.end):
            return False
        if self.location and training.location != self.location:
            return False
        return True


def _as_start(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def _as_end(value: date) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.max)


def filter_trainings(
    trainings: Iterable[Training],
    predicate: Optional[TrainingPredicate] = None,
) -> list[Training]:
    if predicate is None:
        return list(trainings)
    return [training for training in trainings if predicate(training)]


def month_key(value: date) -> str:
    """Zero-padded ``YYYY-MM``; sorts lexicographically in time order."""
    return f"{value.year:04d}-{value.month:02d}"


def bucket_by_month(trainings: Iterable[Training]) -> MonthlyActivity:
    """
    Group trainings into month buckets.

    Returns monthly session counts and distinct active users, both
    ascending by month, and global location totals descending by count
    (ties broken by name). No trainings gives three empty series.
    """
    dated = [training for training in trainings if training.date is not None]

    sessions = Counter(month_key(training.date) for training in dated)
    active_pairs = {(month_key(training.date), training.email) for training in dated}
    active_users = Counter(key for key, _ in active_pairs)
    locations = Counter(training.location for training in dated if training.location)

    return MonthlyActivity(
        monthly_sessions=tuple(
            MonthlyCount(month=key, value=count)
            for key, count in sorted(sessions.items())
        ),
        monthly_active_users=tuple(
            MonthlyCount(month=key, value=count)
            for key, count in sorted(active_users.items())
        ),
        top_locations=tuple(
            LocationCount(location=location, sessions=count)
            for location, count in sorted(
                locations.items(),
                key=lambda item: (-item[1], item[0]),
            )
        ),
    )


def monthly_counts(trainings: Iterable[Training]) -> tuple[MonthlyCount, ...]:
    """Session counts per month for a single athlete's history."""
    return bucket_by_month(trainings).monthly_sessions
