"""
Training plan outcomes.

A plan is active while its end date lies in the future; otherwise it is
completed. The most recently completed plan is the one we grade: how many
of its expected sessions were done, and how the athlete's composite score
moved from before the plan started to after it ended.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from .adherence import plan_adherence_rate
from .models import Assessment, Plan, Training


# (minimum improvement %, success rate), checked top to bottom.
SUCCESS_RATE_LADDER: tuple[tuple[float, float], ...] = (
    (20.0, 100.0),
    (10.0, 75.0),
    (5.0, 50.0),
    (0.0, 25.0),
)


@dataclass(frozen=True)
class AssessmentProgress:
    """Composite score just before a plan and just after it."""
    before_plan: float = 0.0
    after_plan: float = 0.0
    improvement: float = 0.0


@dataclass(frozen=True)
class UserPlanMetrics:
    email: str
    active_plan: Optional[Plan] = None
    completed_plans: tuple[Plan, ...] = ()
    adherence_rate: float = 0.0
    success_rate: float = 0.0
    assessment_progress: AssessmentProgress = field(default_factory=AssessmentProgress)


def success_rate(improvement: float) -> float:
    for minimum, rate in SUCCESS_RATE_LADDER:
        if improvement >= minimum:
            return rate
    return 0.0


def assessment_progress(plan: Plan, assessments: Sequence[Assessment]) -> AssessmentProgress:
    """
    Compare the last assessment before the plan with the last one after.

    Assessments taken during the plan are ignored. Improvement stays 0
    unless both sides exist and the baseline is positive.
    """
    own = sorted(
        (assessment for assessment in assessments if assessment.email == plan.email),
        key=lambda assessment: assessment.date,
    )
    before = [a for a in own if a.date < plan.start_date]
    after = [a for a in own if a.date > plan.end_date]

    before_score = before[-1].composite_score if before else 0.0
    after_score = after[-1].composite_score if after else 0.0

    improvement = 0.0
    if before and after and before_score > 0:
        improvement = (after_score - before_score) / before_score * 100

    return AssessmentProgress(
        before_plan=before_score,
        after_plan=after_score,
        improvement=improvement,
    )


def plan_metrics(
    email: str,
    plans: Sequence[Plan],
    trainings: Sequence[Training],
    assessments: Sequence[Assessment],
    now: datetime,
) -> UserPlanMetrics:
    own = [plan for plan in plans if plan.email == email]

    active = [plan for plan in own if plan.end_date > now]
    completed = tuple(sorted(
        (plan for plan in own if plan.end_date <= now),
        key=lambda plan: plan.end_date,
    ))
    active_plan = max(active, key=lambda plan: plan.start_date) if active else None

    if not completed:
        return UserPlanMetrics(email=email, active_plan=active_plan)

    latest = completed[-1]
    progress = assessment_progress(latest, assessments)

    return UserPlanMetrics(
        email=email,
        active_plan=active_plan,
        completed_plans=completed,
        adherence_rate=plan_adherence_rate(latest, trainings),
        success_rate=success_rate(progress.improvement),
        assessment_progress=progress,
    )
