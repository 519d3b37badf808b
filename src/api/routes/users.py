"""
Athlete-specific API endpoints.

Lists the athletes a caller may see and serves one athlete's report:
training summary, churn risk, grade cohort comparison and plan outcomes.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.metrics.engine import UserReport
from ..dependencies import (
    AuthenticatedUser,
    CallerEmail,
    DatasetDep,
    MetricsEngineDep,
    RecordScopeDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class UserInfo(BaseModel):
    email: str
    first_name: str = ""
    last_name: str = ""
    display_name: str


class UsersResponse(BaseModel):
    users: list[UserInfo] = Field(description="Visible athletes, ordered by email")
    total: int


class MonthlyTrainingCount(BaseModel):
    month: str
    value: int


class ChurnRiskInfo(BaseModel):
    level: str = Field(description="low, medium or high")
    reason: str


class SummaryInfo(BaseModel):
    """Training and progress indicators for one athlete."""
    email: str
    current_grade: Optional[str] = None
    current_score: float
    total_sessions: int
    monthly_training_counts: list[MonthlyTrainingCount]
    last_training_date: Optional[datetime] = None
    days_since_last_training: Optional[float] = Field(
        None, description="None when the athlete never trained"
    )
    adherence_rate: float = Field(description="Sessions over the last 3 months against 12 per month, %")
    progress_rate: float = Field(description="Composite score change from first to latest assessment, %")
    churn_risk: ChurnRiskInfo


class MetricComparisonInfo(BaseModel):
    metric: str
    value: float
    percentile: int
    cohort_average: float
    cohort_median: float
    cohort_max: float
    cohort_count: int


class CohortInfo(BaseModel):
    """Latest assessment ranked against athletes of the same grade."""
    email: str
    grade: str
    cohort_size: int
    composite_score: float
    composite_percentile: int
    metrics: list[MetricComparisonInfo]


class PlanInfo(BaseModel):
    email: str
    start_date: datetime
    end_date: datetime
    plan_type: str = ""
    status: str = ""


class AssessmentProgressInfo(BaseModel):
    before_plan: float
    after_plan: float
    improvement: float


class PlanMetricsInfo(BaseModel):
    email: str
    active_plan: Optional[PlanInfo] = None
    completed_plans: list[PlanInfo] = Field(default_factory=list)
    adherence_rate: float
    success_rate: float
    assessment_progress: AssessmentProgressInfo


class AssessmentPointInfo(BaseModel):
    date: datetime
    composite_score: float
    grade: str


class UserReportResponse(BaseModel):
    user: UserInfo
    summary: SummaryInfo
    cohort: Optional[CohortInfo] = None
    plans: PlanMetricsInfo
    coaches: list[str] = Field(default_factory=list, description="Emails of coaches following the athlete")
    assessment_history: list[AssessmentPointInfo] = Field(
        default_factory=list, description="Composite score and grade per assessment, oldest first"
    )


def _report_response(report: UserReport) -> UserReportResponse:
    plain = report.as_dict()
    plain["user"]["display_name"] = report.user.display_name
    return UserReportResponse.model_validate(plain)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=UsersResponse,
    status_code=status.HTTP_200_OK,
    summary="List visible athletes",
    description="Admins see every athlete; anyone else sees only themselves",
)
async def list_users(
    api_key: AuthenticatedUser,
    dataset: DatasetDep,
    scope: RecordScopeDep,
) -> UsersResponse:
    visible = sorted(scope.apply(dataset).users, key=lambda user: user.email)
    users = [
        UserInfo(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
        )
        for user in visible
    ]
    return UsersResponse(users=users, total=len(users))


@router.get(
    "/me/summary",
    response_model=UserReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Get my report",
    description="Training summary, cohort comparison and plan outcomes for the caller",
)
async def get_my_summary(
    api_key: AuthenticatedUser,
    caller: CallerEmail,
    dataset: DatasetDep,
    scope: RecordScopeDep,
    engine: MetricsEngineDep,
) -> UserReportResponse:
    report = engine.summarize(dataset, caller, scope=scope)
    if report is None:
        # Admins are not necessarily athletes themselves.
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No athlete record for this email.",
        )
    return _report_response(report)


@router.get(
    "/{email}/summary",
    response_model=UserReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Get an athlete's report",
    responses={
        403: {"description": "Athlete outside the caller's scope"},
        404: {"description": "Athlete not found"},
    },
)
async def get_user_summary(
    email: str,
    api_key: AuthenticatedUser,
    caller: CallerEmail,
    dataset: DatasetDep,
    scope: RecordScopeDep,
    engine: MetricsEngineDep,
) -> UserReportResponse:
    """
    Retrieve one athlete's report.

    Non-admin callers may only ask for themselves.
    """
    email = email.strip().lower()

    if not scope.allows(email):
        logger.warning(
            "Report requested outside caller scope",
            extra={"caller": caller, "email": email},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to view this athlete.",
        )

    report = engine.summarize(dataset, email, scope=scope)
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Athlete {email} not found",
        )

    logger.info("Served athlete report", extra={"caller": caller, "email": email})
    return _report_response(report)
