"""
Dashboard analytics endpoints.

Serves the aggregate series the dashboard charts:
- monthly sessions and active users
- location totals and utilization
- growth, engagement and headline stats
- per-athlete training frequency and churn risk

Every response is computed from a fresh batch, restricted to the
athletes the caller is allowed to see.
"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.metrics.bucketing import TrainingFilter
from ...core.metrics.engine import AnalyticsBundle
from ..dependencies import (
    AuthenticatedUser,
    DatasetDep,
    MetricsEngineDep,
    RecordScopeDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class MonthlySessions(BaseModel):
    month: str = Field(description="Month bucket, YYYY-MM")
    sessions: int = Field(description="Training sessions in the month")


class MonthlyUsers(BaseModel):
    month: str = Field(description="Month bucket, YYYY-MM")
    users: int = Field(description="Distinct athletes who trained in the month")


class LocationSessions(BaseModel):
    location: str
    sessions: int


class GrowthItem(BaseModel):
    month: str
    session_growth: float = Field(description="Sessions change vs previous month, %")
    user_growth: float = Field(description="Active users change vs previous month, %")


class EngagementItem(BaseModel):
    month: str
    total_sessions: int
    active_users: int
    sessions_per_user: float


class UtilizationItem(BaseModel):
    location: str
    sessions: int
    utilization_rate: float = Field(description="Share of located sessions, %")


class InsightsResponse(BaseModel):
    average_sessions_per_user: float
    most_utilized_location: str
    latest_session_growth: float


class StatsResponse(BaseModel):
    total_sessions: int
    peak_active_users: int
    average_sessions_per_month: int
    most_popular_location: str


class DashboardResponse(BaseModel):
    """Everything needed to render the dashboard charts."""
    generated_at: datetime
    monthly_sessions: list[MonthlySessions]
    monthly_active_users: list[MonthlyUsers]
    top_locations: list[LocationSessions]
    growth: list[GrowthItem]
    engagement: list[EngagementItem]
    location_utilization: list[UtilizationItem]
    insights: InsightsResponse
    stats: StatsResponse


class FrequencyItem(BaseModel):
    """Training frequency for one athlete."""
    email: str
    name: str
    total_sessions: int
    months_active: int
    sessions_per_month: float
    most_active_day: str
    most_active_time: str
    consistency_score: int = Field(description="0-100, against 12 sessions per month")
    day_frequency: dict[str, int] = Field(default_factory=dict)
    time_frequency: dict[str, int] = Field(default_factory=dict)


class EngagementResponse(BaseModel):
    athletes: list[FrequencyItem]
    total: int


class RiskItem(BaseModel):
    email: str
    level: str = Field(description="low, medium or high")
    reason: str
    days_since_last_training: Optional[float] = Field(
        None, description="None when the athlete never trained"
    )
    adherence_rate: float
    progress_rate: float


class RiskResponse(BaseModel):
    athletes: list[RiskItem]
    total: int


def _dashboard_response(bundle: AnalyticsBundle) -> DashboardResponse:
    plain = bundle.as_dict()
    activity = plain["activity"]
    trends = plain["trends"]
    return DashboardResponse(
        generated_at=bundle.generated_at,
        monthly_sessions=[
            MonthlySessions(month=item["month"], sessions=item["value"])
            for item in activity["monthly_sessions"]
        ],
        monthly_active_users=[
            MonthlyUsers(month=item["month"], users=item["value"])
            for item in activity["monthly_active_users"]
        ],
        top_locations=[LocationSessions(**item) for item in activity["top_locations"]],
        growth=[GrowthItem(**item) for item in trends["growth"]],
        engagement=[EngagementItem(**item) for item in trends["engagement"]],
        location_utilization=[
            UtilizationItem(**item) for item in trends["location_utilization"]
        ],
        insights=InsightsResponse(**plain["insights"]),
        stats=StatsResponse(**plain["stats"]),
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    status_code=status.HTTP_200_OK,
    summary="Dashboard series",
    description="Monthly sessions, active users, locations and derived trends",
)
async def get_dashboard(
    api_key: AuthenticatedUser,
    dataset: DatasetDep,
    scope: RecordScopeDep,
    engine: MetricsEngineDep,
    user: Optional[str] = Query(None, description="Only this athlete's sessions"),
    location: Optional[str] = Query(None, description="Only sessions at this location"),
    start: Optional[date] = Query(None, description="First day to include"),
    end: Optional[date] = Query(None, description="Last day to include"),
) -> DashboardResponse:
    """
    Aggregate the visible trainings into dashboard series.

    Filters are applied on top of the caller's scope: a non-admin asking
    for another athlete simply gets empty series.
    """
    training_filter = TrainingFilter(
        emails=frozenset([user.strip().lower()]) if user else None,
        start=start,
        end=end,
        location=location or None,
    )

    logger.info(
        "Building dashboard",
        extra={
            "user": user,
            "location": location,
            "start": start.isoformat() if start else None,
            "end": end.isoformat() if end else None,
        },
    )

    bundle = engine.build_dashboard(dataset, scope=scope, training_filter=training_filter)
    return _dashboard_response(bundle)


@router.get(
    "/engagement",
    response_model=EngagementResponse,
    status_code=status.HTTP_200_OK,
    summary="Training frequency per athlete",
)
async def get_engagement(
    api_key: AuthenticatedUser,
    dataset: DatasetDep,
    scope: RecordScopeDep,
    engine: MetricsEngineDep,
) -> EngagementResponse:
    bundle = engine.build_dashboard(dataset, scope=scope)
    athletes = [FrequencyItem(**item) for item in bundle.as_dict()["engagement"]]
    return EngagementResponse(athletes=athletes, total=len(athletes))


@router.get(
    "/risk",
    response_model=RiskResponse,
    status_code=status.HTTP_200_OK,
    summary="Churn risk per athlete",
    description="Visible athletes ordered from highest to lowest churn risk",
)
async def get_churn_risk(
    api_key: AuthenticatedUser,
    dataset: DatasetDep,
    scope: RecordScopeDep,
    engine: MetricsEngineDep,
) -> RiskResponse:
    summaries = engine.summarize_all(dataset, scope=scope)
    athletes = [
        RiskItem(
            email=summary.email,
            level=summary.churn_risk.level.value,
            reason=summary.churn_risk.reason,
            days_since_last_training=(
                None if summary.last_training_date is None
                else summary.days_since_last_training
            ),
            adherence_rate=summary.adherence_rate,
            progress_rate=summary.progress_rate,
        )
        for summary in summaries
    ]
    return RiskResponse(athletes=athletes, total=len(athletes))
