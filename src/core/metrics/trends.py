"""
Derived trends on top of the monthly activity series.

Everything here reads a ``MonthlyActivity`` and never looks at raw
trainings, so the numbers always agree with the charts they annotate.
"""

from dataclasses import dataclass

from .cohort import round_half_up
from .models import MonthlyActivity


@dataclass(frozen=True)
class MonthlyGrowth:
    """Month-over-month change in percent; 0 when the prior month was 0."""
    month: str
    session_growth: float
    user_growth: float


@dataclass(frozen=True)
class MonthlyEngagement:
    month: str
    total_sessions: int
    active_users: int
    sessions_per_user: float


@dataclass(frozen=True)
class LocationUtilization:
    location: str
    sessions: int
    utilization_rate: float


@dataclass(frozen=True)
class ActivityTrends:
    growth: tuple[MonthlyGrowth, ...] = ()
    engagement: tuple[MonthlyEngagement, ...] = ()
    location_utilization: tuple[LocationUtilization, ...] = ()


@dataclass(frozen=True)
class KeyInsights:
    average_sessions_per_user: float
    most_utilized_location: str
    latest_session_growth: float


@dataclass(frozen=True)
class DashboardStats:
    """Headline numbers shown above the charts."""
    total_sessions: int
    peak_active_users: int
    average_sessions_per_month: int
    most_popular_location: str


def _growth(current: int, previous: int) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def _users_by_month(activity: MonthlyActivity) -> dict[str, int]:
    return {entry.month: entry.value for entry in activity.monthly_active_users}


def monthly_growth(activity: MonthlyActivity) -> tuple[MonthlyGrowth, ...]:
    users = _users_by_month(activity)
    sessions = activity.monthly_sessions
    return tuple(
        MonthlyGrowth(
            month=current.month,
            session_growth=_growth(current.value, previous.value),
            user_growth=_growth(users.get(current.month, 0), users.get(previous.month, 0)),
        )
        for previous, current in zip(sessions, sessions[1:])
    )


def monthly_engagement(activity: MonthlyActivity) -> tuple[MonthlyEngagement, ...]:
    users = _users_by_month(activity)
    engagement = []
    for entry in activity.monthly_sessions:
        active = users.get(entry.month, 0)
        engagement.append(MonthlyEngagement(
            month=entry.month,
            total_sessions=entry.value,
            active_users=active,
            sessions_per_user=entry.value / active if active else 0.0,
        ))
    return tuple(engagement)


def location_utilization(activity: MonthlyActivity) -> tuple[LocationUtilization, ...]:
    total = sum(entry.sessions for entry in activity.top_locations)
    return tuple(
        LocationUtilization(
            location=entry.location,
            sessions=entry.sessions,
            utilization_rate=entry.sessions / total * 100 if total else 0.0,
        )
        for entry in activity.top_locations
    )


def compute_trends(activity: MonthlyActivity) -> ActivityTrends:
    return ActivityTrends(
        growth=monthly_growth(activity),
        engagement=monthly_engagement(activity),
        location_utilization=location_utilization(activity),
    )


def key_insights(activity: MonthlyActivity, trends: ActivityTrends) -> KeyInsights:
    engagement = trends.engagement
    average = (
        round(sum(m.sessions_per_user for m in engagement) / len(engagement), 1)
        if engagement else 0.0
    )
    return KeyInsights(
        average_sessions_per_user=average,
        most_utilized_location=(
            activity.top_locations[0].location if activity.top_locations else "N/A"
        ),
        latest_session_growth=(
            round(trends.growth[-1].session_growth, 1) if trends.growth else 0.0
        ),
    )


def dashboard_stats(activity: MonthlyActivity) -> DashboardStats:
    total = sum(entry.value for entry in activity.monthly_sessions)
    months = len(activity.monthly_sessions)
    return DashboardStats(
        total_sessions=total,
        peak_active_users=max((e.value for e in activity.monthly_active_users), default=0),
        average_sessions_per_month=round_half_up(total / months) if months else 0,
        most_popular_location=(
            activity.top_locations[0].location if activity.top_locations else "N/A"
        ),
    )
