"""
Training adherence, progress and churn risk.

Two adherence figures exist and must not be conflated:

- the rolling rate compares the last three calendar months against an
  ideal of 12 sessions a month and is left uncapped, so over-training
  shows up above 100;
- the plan rate compares a bounded plan against 3 sessions a week and is
  capped at 100.
"""

import calendar
import math
from datetime import datetime
from typing import Iterable, Optional, Sequence

from .bucketing import monthly_counts
from .models import (
    Assessment,
    AssessmentPoint,
    ChurnRisk,
    Plan,
    RiskLevel,
    Training,
    UserMetricsSummary,
)


IDEAL_SESSIONS_PER_MONTH = 12
ADHERENCE_WINDOW_MONTHS = 3
PLAN_SESSIONS_PER_WEEK = 3

INACTIVITY_DAYS = 14
LOW_ADHERENCE_RATE = 50.0


def shift_months(moment: datetime, months: int) -> datetime:
    """Move a datetime by whole calendar months, clamping the day."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def rolling_adherence_rate(trainings: Iterable[Training], now: datetime) -> float:
    """
    Sessions in the last three calendar months vs. the ideal cadence.

    The window runs from the same day three months ago up to ``now``.
    Not capped.
    """
    window_start = shift_months(now, -ADHERENCE_WINDOW_MONTHS)
    recent = sum(1 for training in trainings if window_start <= training.date <= now)
    ideal = ADHERENCE_WINDOW_MONTHS * IDEAL_SESSIONS_PER_MONTH
    return recent / ideal * 100


def progress_rate(assessments: Sequence[Assessment]) -> float:
    """
    Percent change in composite score from the oldest to the newest test.

    Needs at least two assessments; a zero baseline yields 0.
    """
    if len(assessments) < 2:
        return 0.0
    ordered = sorted(assessments, key=lambda assessment: assessment.date)
    oldest = ordered[0].composite_score
    newest = ordered[-1].composite_score
    if oldest == 0:
        return 0.0
    return (newest - oldest) / oldest * 100


def assessment_history(
    email: str,
    assessments: Iterable[Assessment],
) -> tuple[AssessmentPoint, ...]:
    """An athlete's composite scores and grades, oldest first."""
    own = sorted(
        (assessment for assessment in assessments if assessment.email == email),
        key=lambda assessment: assessment.date,
    )
    return tuple(
        AssessmentPoint(
            date=assessment.date,
            composite_score=assessment.composite_score,
            grade=assessment.grade,
        )
        for assessment in own
    )


def days_since(last: Optional[datetime], now: datetime) -> float:
    """Whole days between ``last`` and ``now``; infinite when never."""
    if last is None:
        return math.inf
    return float((now.date() - last.date()).days)


def classify_churn_risk(
    days_since_last_training: float,
    adherence_rate: float,
    progress: float,
) -> ChurnRisk:
    """First matching rule wins: inactivity, then adherence, then progress."""
    if days_since_last_training > INACTIVITY_DAYS:
        if math.isinf(days_since_last_training):
            return ChurnRisk(RiskLevel.HIGH, "No training recorded")
        return ChurnRisk(
            RiskLevel.HIGH,
            f"No training in {int(days_since_last_training)} days",
        )
    if adherence_rate < LOW_ADHERENCE_RATE:
        return ChurnRisk(RiskLevel.MEDIUM, "Low training adherence")
    if progress < 0:
        return ChurnRisk(RiskLevel.MEDIUM, "Negative progress trend")
    return ChurnRisk(RiskLevel.LOW, "Regular training pattern")


def plan_adherence_rate(plan: Plan, trainings: Iterable[Training]) -> float:
    """
    Share of expected plan sessions actually done, capped at 100.

    Expected sessions are three per full week of the plan. A plan shorter
    than a week expects nothing and scores 0.
    """
    expected = (plan.duration_days // 7) * PLAN_SESSIONS_PER_WEEK
    if expected <= 0:
        return 0.0
    actual = sum(
        1
        for training in trainings
        if training.email == plan.email
        and plan.start_date <= training.date <= plan.end_date
    )
    return min(actual / expected * 100, 100.0)


def summarize_user(
    email: str,
    trainings: Sequence[Training],
    assessments: Sequence[Assessment],
    now: datetime,
) -> UserMetricsSummary:
    """
    Build one athlete's metrics summary.

    ``trainings`` and ``assessments`` may contain other athletes' records;
    only those matching ``email`` are used. The current grade always comes
    from the most recent assessment.
    """
    own_trainings = sorted(
        (training for training in trainings if training.email == email),
        key=lambda training: training.date,
        reverse=True,
    )
    own_assessments = sorted(
        (assessment for assessment in assessments if assessment.email == email),
        key=lambda assessment: assessment.date,
        reverse=True,
    )

    last_training = own_trainings[0].date if own_trainings else None
    latest_assessment = own_assessments[0] if own_assessments else None

    idle_days = days_since(last_training, now)
    adherence = rolling_adherence_rate(own_trainings, now)
    progress = progress_rate(own_assessments)

    return UserMetricsSummary(
        email=email,
        current_grade=latest_assessment.grade if latest_assessment else None,
        current_score=latest_assessment.composite_score if latest_assessment else 0.0,
        total_sessions=len(own_trainings),
        monthly_training_counts=monthly_counts(own_trainings),
        last_training_date=last_training,
        days_since_last_training=idle_days,
        adherence_rate=adherence,
        progress_rate=progress,
        churn_risk=classify_churn_risk(idle_days, adherence, progress),
    )
