"""
Metrics engine: the pipeline from a normalized batch to analytics.

The engine is the single entry point the API and scripts use. It knows
nothing about who is asking: callers pass a ``RecordScope`` describing
which athletes are visible, and the engine only ever reads records inside
it. Each call recomputes everything from the batch it is given.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable, Optional

from .adherence import assessment_history, summarize_user
from .bucketing import TrainingPredicate, bucket_by_month, filter_trainings
from .cohort import CohortComparison, compare_to_cohort, latest_assessments, select_cohort
from .engagement import FrequencyMetrics, frequency_metrics
from .models import (
    AssessmentPoint,
    Dataset,
    MonthlyActivity,
    User,
    UserMetricsSummary,
    to_plain,
)
from .plans import UserPlanMetrics, plan_metrics
from .trends import (
    ActivityTrends,
    DashboardStats,
    KeyInsights,
    compute_trends,
    dashboard_stats,
    key_insights,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordScope:
    """
    The set of athletes a caller may see.

    ``emails=None`` means everyone. Deciding who gets which scope is an
    authorization concern that lives outside the engine.
    """
    emails: Optional[frozenset[str]] = None

    @classmethod
    def everyone(cls) -> "RecordScope":
        return cls()

    @classmethod
    def only(cls, emails: Iterable[str]) -> "RecordScope":
        return cls(emails=frozenset(email.strip().lower() for email in emails))

    @property
    def is_unrestricted(self) -> bool:
        return self.emails is None

    def allows(self, email: str) -> bool:
        return self.emails is None or email in self.emails

    def apply(self, dataset: Dataset) -> Dataset:
        """Restrict a dataset to visible athletes. Coaches stay, athletes are trimmed."""
        if self.emails is None:
            return dataset
        return Dataset(
            users=tuple(u for u in dataset.users if self.allows(u.email)),
            trainings=tuple(t for t in dataset.trainings if self.allows(t.email)),
            assessments=tuple(a for a in dataset.assessments if self.allows(a.email)),
            coaches=tuple(
                replace(coach, athletes=frozenset(e for e in coach.athletes if self.allows(e)))
                for coach in dataset.coaches
            ),
            plans=tuple(p for p in dataset.plans if self.allows(p.email)),
        )


@dataclass(frozen=True)
class AnalyticsBundle:
    """Everything the dashboard renders, as plain values."""
    generated_at: datetime
    activity: MonthlyActivity
    trends: ActivityTrends
    insights: KeyInsights
    stats: DashboardStats
    engagement: tuple[FrequencyMetrics, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return to_plain(self)


@dataclass(frozen=True)
class UserReport:
    """One athlete's full picture."""
    user: User
    summary: UserMetricsSummary
    cohort: Optional[CohortComparison]
    plans: UserPlanMetrics
    coaches: tuple[str, ...] = ()
    assessment_history: tuple[AssessmentPoint, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return to_plain(self)


class MetricsEngine:
    """
    Stateless analytics pipeline.

    ``now`` can be pinned for reproducible results; by default each call
    uses the current time.
    """

    def __init__(self, now: Optional[datetime] = None) -> None:
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or datetime.now()

    def build_dashboard(
        self,
        dataset: Dataset,
        scope: RecordScope = RecordScope(),
        training_filter: Optional[TrainingPredicate] = None,
    ) -> AnalyticsBundle:
        """
        Aggregate the visible trainings into the dashboard bundle.

        The filter narrows trainings further (user, dates, location) after
        the scope is applied.
        """
        visible = scope.apply(dataset)
        trainings = filter_trainings(visible.trainings, training_filter)

        activity = bucket_by_month(trainings)
        trends = compute_trends(activity)

        bundle = AnalyticsBundle(
            generated_at=self.now,
            activity=activity,
            trends=trends,
            insights=key_insights(activity, trends),
            stats=dashboard_stats(activity),
            engagement=tuple(frequency_metrics(trainings, visible.index_users())),
        )

        logger.info(
            "Built dashboard bundle",
            extra={
                "trainings": len(trainings),
                "months": len(activity.monthly_sessions),
                "scoped": not scope.is_unrestricted,
            },
        )
        return bundle

    def summarize(
        self,
        dataset: Dataset,
        email: str,
        scope: RecordScope = RecordScope(),
    ) -> Optional[UserReport]:
        """
        Build one athlete's report, or None when they are unknown or hidden.

        The cohort is drawn from the whole batch: peers are compared by
        grade, and only aggregate statistics about them are returned.
        """
        email = email.strip().lower()
        if not scope.allows(email):
            return None

        user = dataset.index_users().get(email)
        if user is None:
            return None

        now = self.now
        summary = summarize_user(email, dataset.trainings, dataset.assessments, now)

        cohort = None
        latest = latest_assessments(dataset.assessments).get(email)
        if latest is not None:
            peers = select_cohort(latest, dataset.assessments)
            cohort = compare_to_cohort(latest, peers)

        return UserReport(
            user=user,
            summary=summary,
            cohort=cohort,
            plans=plan_metrics(email, dataset.plans, dataset.trainings, dataset.assessments, now),
            coaches=tuple(sorted(coach.email for coach in dataset.coaches_of(email))),
            assessment_history=assessment_history(email, dataset.assessments),
        )

    def summarize_all(
        self,
        dataset: Dataset,
        scope: RecordScope = RecordScope(),
    ) -> list[UserMetricsSummary]:
        """Summaries for every visible athlete, highest churn risk first."""
        now = self.now
        visible = scope.apply(dataset)
        summaries = [
            summarize_user(user.email, visible.trainings, visible.assessments, now)
            for user in visible.users
        ]
        order = {"high": 0, "medium": 1, "low": 2}
        return sorted(
            summaries,
            key=lambda summary: (order[summary.churn_risk.level.value], summary.email),
        )
