"""
Climbing training metrics.

Contains the domain models, the record normalizer and the derivation
pipeline (bucketing, scoring, cohorts, adherence and risk).
"""

from .models import (
    Assessment,
    AssessmentPoint,
    AssessmentMetrics,
    ChurnRisk,
    Coach,
    Dataset,
    Grade,
    LocationCount,
    MonthlyActivity,
    MonthlyCount,
    Plan,
    RawMeasurements,
    RiskLevel,
    Training,
    User,
    UserMetricsSummary,
)
from .normalizer import RawRecords, normalize_dataset
from .engine import AnalyticsBundle, MetricsEngine, RecordScope, UserReport

__all__ = [
    "Assessment",
    "AssessmentPoint",
    "AssessmentMetrics",
    "ChurnRisk",
    "Coach",
    "Dataset",
    "Grade",
    "LocationCount",
    "MonthlyActivity",
    "MonthlyCount",
    "Plan",
    "RawMeasurements",
    "RiskLevel",
    "Training",
    "User",
    "UserMetricsSummary",
    "RawRecords",
    "normalize_dataset",
    "AnalyticsBundle",
    "MetricsEngine",
    "RecordScope",
    "UserReport",
]
