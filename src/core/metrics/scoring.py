"""
Assessment scoring: raw measurements to normalized metrics and a grade.

Every metric is divided by body weight or height so athletes of different
size land on the same scale. Division by zero is ruled out structurally:
body weight and height fall back to fixed defaults when they are missing
or non-positive, and each ratio has a floor.

The thresholds and weights are product decisions. Changing them changes
every athlete's grade, so they live here as reviewed constants.
"""

from datetime import datetime
from typing import Any, Callable, Mapping

from .models import Assessment, AssessmentMetrics, Grade, RawMeasurements


DEFAULT_BODY_WEIGHT = 70.0
DEFAULT_HEIGHT = 170.0

METRIC_WEIGHTS: dict[str, float] = {
    "finger_strength": 0.45,
    "pull_ups": 0.20,
    "push_ups": 0.10,
    "toe_to_bar": 0.15,
    "leg_spread": 0.10,
}

# Score used when no weight was added on the finger board.
UNWEIGHTED_FINGER_STRENGTH = 0.5

METRIC_FLOORS: dict[str, float] = {
    "pull_ups": 0.01,
    "push_ups": 0.02,
    "toe_to_bar": 0.01,
    "leg_spread": 0.3,
}

# Strictly descending; first threshold the score exceeds wins.
GRADE_THRESHOLDS: tuple[tuple[float, Grade], ...] = (
    (1.45, Grade.V12),
    (1.30, Grade.V11),
    (1.15, Grade.V10),
    (1.05, Grade.V9),
    (0.95, Grade.V8),
    (0.85, Grade.V7),
    (0.75, Grade.V6),
    (0.65, Grade.V5),
)
DEFAULT_GRADE = Grade.V4

WEAKNESS_THRESHOLDS: tuple[tuple[str, float, str], ...] = (
    ("finger_strength", 0.8, "finger strength"),
    ("pull_ups", 0.4, "pulling strength"),
    ("toe_to_bar", 0.3, "core strength"),
    ("leg_spread", 0.5, "flexibility"),
)

# Normalized row key -> accepted spreadsheet headers, most specific first.
MEASUREMENT_ALIASES: dict[str, tuple[str, ...]] = {
    "finger_strength_added_weight": (
        "fingerStrengthAddedWeight",
        "fingerStrengthWeight",
        "addedWeight",
        "fingerStrength",
        "hangWeight",
    ),
    "body_weight": ("bodyWeight", "weight", "bodyweight"),
    "height": ("height", "heightCm"),
    "pull_ups": ("pullUps", "pullups", "pullUpsRepetitions", "pullUpReps"),
    "push_ups": ("pushUps", "pushups", "pushUpsRepetitions", "pushUpReps"),
    "toe_to_bar": ("toeToBar", "toesToBar", "toeToBarRepetitions", "toeToBarReps"),
    "leg_spread": ("legSpread", "legSpreadCm", "legSpreadDistance"),
}


def measurements_from_row(
    row: Mapping[str, Any],
    parse_number: Callable[[Any], float],
) -> RawMeasurements:
    """
    Pull raw measurements out of a normalized row.

    ``parse_number`` turns any cell into a float and returns 0.0 for
    anything it can't read, so a malformed cell never aborts scoring.
    """
    values: dict[str, float] = {}
    for name, aliases in MEASUREMENT_ALIASES.items():
        raw_value: Any = None
        for alias in aliases:
            if row.get(alias) not in (None, ""):
                raw_value = row[alias]
                break
        values[name] = parse_number(raw_value)
    return RawMeasurements(**values)


def normalize_measurements(raw: RawMeasurements) -> AssessmentMetrics:
    """Convert raw measurements into body-relative ratios."""
    body_weight = raw.body_weight if raw.body_weight > 0 else DEFAULT_BODY_WEIGHT
    height = raw.height if raw.height > 0 else DEFAULT_HEIGHT

    if raw.finger_strength_added_weight == 0:
        finger_strength = UNWEIGHTED_FINGER_STRENGTH
    else:
        finger_strength = (raw.finger_strength_added_weight + body_weight) / body_weight

    return AssessmentMetrics(
        finger_strength=finger_strength,
        pull_ups=max(METRIC_FLOORS["pull_ups"], raw.pull_ups / body_weight),
        push_ups=max(METRIC_FLOORS["push_ups"], raw.push_ups / body_weight),
        toe_to_bar=max(METRIC_FLOORS["toe_to_bar"], raw.toe_to_bar / body_weight),
        leg_spread=max(METRIC_FLOORS["leg_spread"], raw.leg_spread / height),
        weights=dict(METRIC_WEIGHTS),
    )


def composite_score(
    metrics: AssessmentMetrics,
    weights: Mapping[str, float] = METRIC_WEIGHTS,
) -> float:
    """Weighted sum of the five normalized metrics."""
    values = metrics.as_mapping()
    return sum(weights[name] * values[name] for name in weights)


def classify_grade(score: float) -> Grade:
    for threshold, grade in GRADE_THRESHOLDS:
        if score > threshold:
            return grade
    return DEFAULT_GRADE


def find_weaknesses(metrics: AssessmentMetrics) -> list[str]:
    """Areas whose normalized value falls below its threshold."""
    values = metrics.as_mapping()
    return [
        label
        for name, threshold, label in WEAKNESS_THRESHOLDS
        if values[name] < threshold
    ]


def build_notes(grade: Grade, score: float, weaknesses: list[str]) -> str:
    """
    Diagnostic text stored with the assessment.

    Purely informational: nothing downstream parses it.
    """
    parts = [f"Grade: {grade.value}", f"Score: {score:.2f}"]
    if weaknesses:
        parts.append(f"Weaknesses: {', '.join(weaknesses)}")
    else:
        parts.append("No major weaknesses")
    return " | ".join(parts)


def score_assessment(email: str, date: datetime, raw: RawMeasurements) -> Assessment:
    """Score one set of measurements and wrap it as an Assessment."""
    metrics = normalize_measurements(raw)
    score = composite_score(metrics)
    grade = classify_grade(score)
    return Assessment(
        email=email,
        date=date,
        raw=raw,
        metrics=metrics,
        composite_score=score,
        grade=grade,
        notes=build_notes(grade, score, find_weaknesses(metrics)),
    )
