"""
Domain models for climbing training analytics.

These models represent the core business concepts. They have no dependencies
on external frameworks, data sources, or APIs. Records are frozen: once a row
has been normalized it is a value, and every derived aggregate is rebuilt
from scratch rather than mutated in place.
"""

import math
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional


class Grade(Enum):
    """
    Discrete skill level derived from an assessment's composite score.

    Declared from lowest to highest so ``rank`` orders grades.
    """
    V4 = "V4"
    V5 = "V5"
    V6 = "V6"
    V7 = "V7"
    V8 = "V8"
    V9 = "V9"
    V10 = "V10"
    V11 = "V11"
    V12 = "V12"

    @property
    def rank(self) -> int:
        return list(Grade).index(self)


class RiskLevel(Enum):
    """Churn-risk categories, from least to most concerning."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Source Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class User:
    """An athlete. Email is the join key for every other record."""
    email: str
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email


@dataclass(frozen=True)
class Training:
    """A single training session. Two sessions are never merged."""
    email: str
    date: datetime
    location: str = ""
    completion_marker: str = ""


@dataclass(frozen=True)
class RawMeasurements:
    """Measured quantities as captured on the assessment sheet."""
    finger_strength_added_weight: float = 0.0
    body_weight: float = 0.0
    height: float = 0.0
    pull_ups: float = 0.0
    push_ups: float = 0.0
    toe_to_bar: float = 0.0
    leg_spread: float = 0.0


@dataclass(frozen=True)
class AssessmentMetrics:
    """
    Body-relative metrics computed from raw measurements.

    All five values are dimensionless ratios, so athletes of different
    size can be compared with each other.
    """
    finger_strength: float
    pull_ups: float
    push_ups: float
    toe_to_bar: float
    leg_spread: float
    weights: Mapping[str, float] = field(default_factory=dict, compare=False, hash=False)

    def as_mapping(self) -> dict[str, float]:
        """Metric name to normalized value, in canonical metric order."""
        return {name: getattr(self, name) for name in METRIC_NAMES}


@dataclass(frozen=True)
class Assessment:
    """
    A scored physical assessment.

    Built once at ingestion time and never edited. A newer assessment
    for the same athlete supersedes it.
    """
    email: str
    date: datetime
    raw: RawMeasurements
    metrics: AssessmentMetrics
    composite_score: float
    grade: Grade
    notes: str = ""


@dataclass(frozen=True)
class Coach:
    """
    A coach and the athletes they follow.

    ``athletes`` holds email strings only. Resolving them to users goes
    through an index built per batch, never through object references.
    """
    email: str
    first_name: str = ""
    last_name: str = ""
    specialties: frozenset[str] = frozenset()
    athletes: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Plan:
    """A bounded training plan with explicit start and end dates."""
    email: str
    start_date: datetime
    end_date: datetime
    plan_type: str = ""
    status: str = ""

    @property
    def duration_days(self) -> int:
        """Length in days, a partial day counting as a whole one."""
        return math.ceil((self.end_date - self.start_date).total_seconds() / 86400)


@dataclass(frozen=True)
class Dataset:
    """
    One fully materialized batch of normalized records.

    The lookups build a fresh email index on each call; nothing is cached
    because the batch is replaced, not updated, when sources change.
    """
    users: tuple[User, ...] = ()
    trainings: tuple[Training, ...] = ()
    assessments: tuple[Assessment, ...] = ()
    coaches: tuple[Coach, ...] = ()
    plans: tuple[Plan, ...] = ()

    def index_users(self) -> dict[str, User]:
        return {user.email: user for user in self.users}

    def athletes_of(self, coach: Coach) -> list[User]:
        """Resolve a coach's athlete emails, skipping unknown ones."""
        index = self.index_users()
        return [index[email] for email in sorted(coach.athletes) if email in index]

    def coaches_of(self, email: str) -> list[Coach]:
        return [coach for coach in self.coaches if email in coach.athletes]


# ---------------------------------------------------------------------------
# Derived Aggregates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MonthlyCount:
    """A value attached to a ``YYYY-MM`` bucket."""
    month: str
    value: int


@dataclass(frozen=True)
class LocationCount:
    location: str
    sessions: int


@dataclass(frozen=True)
class MonthlyActivity:
    """The three independently sorted series produced by month bucketing."""
    monthly_sessions: tuple[MonthlyCount, ...] = ()
    monthly_active_users: tuple[MonthlyCount, ...] = ()
    top_locations: tuple[LocationCount, ...] = ()


@dataclass(frozen=True)
class AssessmentPoint:
    """One entry of an athlete's assessment history."""
    date: datetime
    composite_score: float
    grade: Grade


@dataclass(frozen=True)
class ChurnRisk:
    level: RiskLevel
    reason: str


@dataclass(frozen=True)
class UserMetricsSummary:
    """Per-athlete training and progress indicators."""
    email: str
    current_grade: Optional[Grade]
    current_score: float
    total_sessions: int
    monthly_training_counts: tuple[MonthlyCount, ...]
    last_training_date: Optional[datetime]
    days_since_last_training: float
    adherence_rate: float
    progress_rate: float
    churn_risk: ChurnRisk


METRIC_NAMES: tuple[str, ...] = (
    "finger_strength",
    "pull_ups",
    "push_ups",
    "toe_to_bar",
    "leg_spread",
)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_plain(item) for item in value)
    if isinstance(value, float) and math.isinf(value):
        return None
    return value


def to_plain(record: Any) -> Any:
    """
    Convert a dataclass tree into plain nested dicts and lists.

    Enums become their values, datetimes ISO strings, sets sorted lists
    and infinite floats ``None``, so the result is JSON-serializable.
    """
    if is_dataclass(record) and not isinstance(record, type):
        return _plain(asdict(record))
    return _plain(record)
