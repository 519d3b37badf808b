"""Per-athlete training frequency and consistency."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from .adherence import IDEAL_SESSIONS_PER_MONTH
from .bucketing import month_key
from .cohort import round_half_up
from .models import Training, User


WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass(frozen=True)
class FrequencyMetrics:
    email: str
    name: str
    total_sessions: int
    months_active: int
    sessions_per_month: float
    most_active_day: str
    most_active_time: str
    consistency_score: int
    day_frequency: dict[str, int] = field(default_factory=dict)
    time_frequency: dict[str, int] = field(default_factory=dict)


def time_slot(hour: int) -> str:
    if hour < 12:
        return "Morning"
    if hour < 17:
        return "Afternoon"
    return "Evening"


def consistency_score(total_sessions: int, months_active: int) -> int:
    """Average sessions per active month against 12, scaled to 0..100."""
    if not months_active:
        return 0
    average = total_sessions / months_active
    return min(round_half_up(average / IDEAL_SESSIONS_PER_MONTH * 100), 100)


def _most_common(counter: Counter) -> str:
    if not counter:
        return "N/A"
    # Counter.most_common keeps first-seen order on ties.
    return counter.most_common(1)[0][0]


def frequency_metrics(
    trainings: Sequence[Training],
    users: Mapping[str, User],
) -> list[FrequencyMetrics]:
    """
    Training frequency for every athlete with at least one session.

    Sorted by total sessions, busiest first.
    """
    by_email: dict[str, list[Training]] = {}
    for training in trainings:
        by_email.setdefault(training.email, []).append(training)

    results = []
    for email, sessions in by_email.items():
        days = Counter(WEEKDAY_NAMES[t.date.weekday()] for t in sessions)
        slots = Counter(time_slot(t.date.hour) for t in sessions)
        months_active = len({month_key(t.date) for t in sessions})
        user = users.get(email)

        results.append(FrequencyMetrics(
            email=email,
            name=f"{user.first_name} {user.last_name}".strip() if user else "Unknown",
            total_sessions=len(sessions),
            months_active=months_active,
            sessions_per_month=round(len(sessions) / months_active, 1),
            most_active_day=_most_common(days),
            most_active_time=_most_common(slots),
            consistency_score=consistency_score(len(sessions), months_active),
            day_frequency=dict(days),
            time_frequency=dict(slots),
        ))

    return sorted(results, key=lambda metric: (-metric.total_sessions, metric.email))
