"""
Record normalization: raw spreadsheet rows to typed domain records.

Sheets exported from the training app are inconsistent: headers carry
decorations, cells are blank, dates come in several formats and the same
athlete's email shows up with different casing. This module absorbs all
of that. A malformed row is skipped and counted, never raised, so one bad
cell cannot fail a whole batch.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from .models import Assessment, Coach, Dataset, Plan, Training, User
from .scoring import measurements_from_row, score_assessment

logger = logging.getLogger(__name__)


Row = Union[Mapping[str, Any], Sequence[Any]]

# Characters the sheet tool prepends to protected or computed columns.
DECORATOR_CHARACTERS: tuple[str, ...] = ("\U0001F512", "\ufe0f", "*")

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y, %H:%M:%S",
    "%m/%d/%Y, %I:%M:%S %p",
    "%d %B %Y",
    "%B %d, %Y",
)

FIRST_NAME_KEYS = ("firstName", "firstname", "name")
LAST_NAME_KEYS = ("lastName", "lastname", "surname")
LOCATION_KEYS = ("where", "location", "gym")
COMPLETION_KEYS = ("completed", "done", "status", "completion")
START_DATE_KEYS = ("startDate", "start", "startdate")
END_DATE_KEYS = ("endDate", "end", "enddate")


@dataclass
class RawRecords:
    """
    Rows per entity type, as delivered by a record source.

    Trainings may be split across several sheet ranges; they are kept as
    separate ranges here and concatenated in order during normalization.
    """
    users: list[Row] = field(default_factory=list)
    trainings: list[list[Row]] = field(default_factory=list)
    assessments: list[Row] = field(default_factory=list)
    coaches: list[Row] = field(default_factory=list)
    plans: list[Row] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Cell Parsing
# ---------------------------------------------------------------------------

def normalize_key(key: Any) -> str:
    """
    Clean a header into a camelCase key.

    "🔒 First Name" becomes "firstName": decorators stripped, trimmed,
    lower-cased, then each inner word capitalized.
    """
    text = "" if key is None else str(key)
    for char in DECORATOR_CHARACTERS:
        text = text.replace(char, "")
    text = text.strip().lower()
    return re.sub(r"\s+(.)", lambda match: match.group(1).upper(), text)


def normalize_email(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_number(value: Any) -> float:
    """Read a numeric cell. Anything unreadable counts as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a date cell into a naive datetime.

    Timezone-aware values are converted to UTC first. Returns None for
    anything unparseable; callers drop such rows.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = _parse_date_text(text)
        if parsed is None:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_date_text(text: str) -> Optional[datetime]:
    iso_text = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso_text)
    except ValueError:
        pass
    for date_format in DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format)
        except ValueError:
            continue
    return None


def _first_present(row: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def _split_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = re.split(r"[,;\n]", str(value))
    return [str(item).strip() for item in items if str(item).strip()]


# ---------------------------------------------------------------------------
# Row Shaping
# ---------------------------------------------------------------------------

def rows_to_dicts(rows: Sequence[Row]) -> list[dict[str, Any]]:
    """
    Turn raw rows into dicts keyed by normalized header names.

    Mapping rows are re-keyed directly. Sequence rows treat the first row
    as the header; short rows are padded with None and extra cells ignored.
    """
    rows = list(rows)
    if not rows:
        return []

    if isinstance(rows[0], Mapping):
        return [
            {normalize_key(key): value for key, value in row.items()}
            for row in rows
            if isinstance(row, Mapping)
        ]

    header = [normalize_key(cell) for cell in rows[0]]
    shaped = []
    for row in rows[1:]:
        if isinstance(row, Mapping) or isinstance(row, (str, bytes)):
            continue
        cells = list(row)
        shaped.append({
            key: cells[index] if index < len(cells) else None
            for index, key in enumerate(header)
            if key
        })
    return shaped


def _log_dropped(entity: str, total: int, kept: int) -> None:
    if total != kept:
        logger.debug(
            "Dropped malformed rows",
            extra={"entity": entity, "total": total, "dropped": total - kept},
        )


# ---------------------------------------------------------------------------
# Entity Normalizers
# ---------------------------------------------------------------------------

def normalize_users(rows: Sequence[Row]) -> list[User]:
    """
    Users keyed by email; later duplicates of the same email are ignored.
    """
    dicts = rows_to_dicts(rows)
    users: dict[str, User] = {}
    for row in dicts:
        email = normalize_email(row.get("email"))
        if not email or email in users:
            continue
        users[email] = User(
            email=email,
            first_name=clean_text(_first_present(row, FIRST_NAME_KEYS)),
            last_name=clean_text(_first_present(row, LAST_NAME_KEYS)),
        )
    _log_dropped("users", len(dicts), len(users))
    return list(users.values())


def normalize_trainings(rows: Sequence[Row]) -> list[Training]:
    dicts = rows_to_dicts(rows)
    trainings = []
    for row in dicts:
        email = normalize_email(row.get("email"))
        when = parse_date(row.get("date"))
        if not email or when is None:
            continue
        trainings.append(Training(
            email=email,
            date=when,
            location=clean_text(_first_present(row, LOCATION_KEYS)),
            completion_marker=clean_text(_first_present(row, COMPLETION_KEYS)),
        ))
    _log_dropped("trainings", len(dicts), len(trainings))
    return trainings


def normalize_assessments(rows: Sequence[Row]) -> list[Assessment]:
    """Normalize and score assessment rows in one pass."""
    dicts = rows_to_dicts(rows)
    assessments = []
    for row in dicts:
        email = normalize_email(row.get("email"))
        when = parse_date(row.get("date"))
        if not email or when is None:
            continue
        raw = measurements_from_row(row, parse_number)
        assessments.append(score_assessment(email, when, raw))
    _log_dropped("assessments", len(dicts), len(assessments))
    return assessments


def normalize_coaches(rows: Sequence[Row]) -> list[Coach]:
    dicts = rows_to_dicts(rows)
    coaches = []
    for row in dicts:
        email = normalize_email(row.get("email"))
        if not email:
            continue
        coaches.append(Coach(
            email=email,
            first_name=clean_text(_first_present(row, FIRST_NAME_KEYS)),
            last_name=clean_text(_first_present(row, LAST_NAME_KEYS)),
            specialties=frozenset(_split_list(row.get("specialties"))),
            athletes=frozenset(
                normalize_email(athlete)
                for athlete in _split_list(row.get("athletes"))
            ),
        ))
    _log_dropped("coaches", len(dicts), len(coaches))
    return coaches


def normalize_plans(rows: Sequence[Row]) -> list[Plan]:
    dicts = rows_to_dicts(rows)
    plans = []
    for row in dicts:
        email = normalize_email(row.get("email"))
        start = parse_date(_first_present(row, START_DATE_KEYS))
        end = parse_date(_first_present(row, END_DATE_KEYS))
        if not email or start is None or end is None:
            continue
        plans.append(Plan(
            email=email,
            start_date=start,
            end_date=end,
            plan_type=clean_text(row.get("type")),
            status=clean_text(row.get("status")),
        ))
    _log_dropped("plans", len(dicts), len(plans))
    return plans


def normalize_dataset(raw: RawRecords) -> Dataset:
    """
    Normalize every entity of a batch into an immutable Dataset.

    Training ranges are normalized separately (each carries its own
    header row) and concatenated in the order given.
    """
    trainings: list[Training] = []
    for training_range in raw.trainings:
        trainings.extend(normalize_trainings(training_range))

    dataset = Dataset(
        users=tuple(normalize_users(raw.users)),
        trainings=tuple(trainings),
        assessments=tuple(normalize_assessments(raw.assessments)),
        coaches=tuple(normalize_coaches(raw.coaches)),
        plans=tuple(normalize_plans(raw.plans)),
    )

    logger.info(
        "Normalized record batch",
        extra={
            "users": len(dataset.users),
            "trainings": len(dataset.trainings),
            "assessments": len(dataset.assessments),
            "coaches": len(dataset.coaches),
            "plans": len(dataset.plans),
        },
    )
    return dataset
