"""
Record source for spreadsheet exports.

The training app exports one CSV per entity (users, trainings, assessments,
coaches, plans). Trainings are split across several exports and are
returned as separate ranges, each with its own header row.

Mock mode serves rows held in memory, seeded with a small sample batch,
enabling local development and API testing without data files on disk.
"""

import csv
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Protocol

from src.core.metrics.normalizer import RawRecords, Row

logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Raised when a batch cannot be loaded at all."""
    pass


@dataclass
class SourceConfig:
    """
    Where the exports live.

    Only the users export is required; the others are read when present
    and treated as empty otherwise.
    """
    data_dir: str
    users_file: str = "users.csv"
    training_files: list[str] = field(default_factory=lambda: ["trainings.csv"])
    assessments_file: str = "assessments.csv"
    coaches_file: str = "coaches.csv"
    plans_file: str = "plans.csv"
    encoding: str = "utf-8-sig"


class RecordSource(Protocol):
    """
    Protocol for loading one batch of raw rows.

    Using a protocol means the API can be exercised with an in-memory
    source and we can swap in a sheets API reader without touching the
    metrics code.
    """

    def load(self) -> RawRecords:
        """Return all raw rows for one batch."""
        ...


class CsvRecordSource:
    """
    Reads CSV exports from a directory.

    Rows are returned as lists with the header first; header cleanup and
    type conversion are left to the normalizer.
    """

    def __init__(self, config: SourceConfig) -> None:
        self._config = config
        self._dir = Path(config.data_dir)

    def load(self) -> RawRecords:
        if not self._config.data_dir:
            raise DataSourceError("Data directory is not configured")
        if not self._dir.is_dir():
            raise DataSourceError(f"Data directory not found: {self._dir}")

        users = self._read(self._config.users_file, required=True)
        records = RawRecords(
            users=users,
            trainings=[
                self._read(name, required=False)
                for name in self._config.training_files
            ],
            assessments=self._read(self._config.assessments_file, required=False),
            coaches=self._read(self._config.coaches_file, required=False),
            plans=self._read(self._config.plans_file, required=False),
        )

        logger.info(
            "Loaded CSV exports",
            extra={
                "data_dir": str(self._dir),
                "users": max(len(records.users) - 1, 0),
                "training_ranges": len(records.trainings),
            },
        )
        return records

    def _read(self, filename: str, required: bool) -> list[Row]:
        path = self._dir / filename
        if not path.is_file():
            if required:
                raise DataSourceError(f"Required export not found: {path}")
            logger.warning("Optional export missing", extra={"path": str(path)})
            return []

        try:
            with path.open(newline="", encoding=self._config.encoding) as handle:
                return [row for row in csv.reader(handle) if any(cell.strip() for cell in row)]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            logger.error(
                "Failed to read export",
                extra={"path": str(path), "error": str(e)},
            )
            raise DataSourceError(f"Failed to read {path}: {e}")


# ---------------------------------------------------------------------------
# Mock Source for Local Development
# ---------------------------------------------------------------------------

def sample_records(now: Optional[datetime] = None) -> RawRecords:
    """
    A small batch for local development, dated relative to ``now``.

    Ann trains regularly, Bob stopped a month ago and Cat never trained,
    so the dashboard charts and the churn-risk list both have content.
    """
    now = now or datetime.now()

    def day(offset: int, hour: int = 18) -> str:
        return (now - timedelta(days=offset)).replace(hour=hour, minute=0).strftime("%Y-%m-%d %H:%M")

    ann_sessions = [
        ["ann@example.com", day(offset, hour=9 if offset % 3 else 18), "Boulder Barn" if offset % 2 else "Crux Gym"]
        for offset in range(2, 90, 3)
    ]
    bob_sessions = [
        ["bob@example.com", day(offset), "Crux Gym"]
        for offset in range(32, 120, 7)
    ]

    return RawRecords(
        users=[
            ["Email", "First Name", "Last Name"],
            ["ann@example.com", "Ann", "Lee"],
            ["bob@example.com", "Bob", "Ray"],
            ["cat@example.com", "Cat", "Moss"],
        ],
        trainings=[[["Email", "Date", "Where"], *ann_sessions, *bob_sessions]],
        assessments=[
            ["Email", "Date", "Finger Strength Added Weight", "Body Weight", "Height",
             "Pull Ups", "Push Ups", "Toe To Bar", "Leg Spread"],
            ["ann@example.com", day(150), "10", "62", "168", "8", "15", "5", "90"],
            ["ann@example.com", day(20), "18", "62", "168", "12", "20", "10", "110"],
            ["bob@example.com", day(100), "8", "75", "180", "9", "15", "5", "90"],
            ["cat@example.com", day(60), "30", "58", "160", "15", "25", "15", "130"],
        ],
        coaches=[
            ["Email", "First Name", "Specialties", "Athletes"],
            ["coach@example.com", "Kim", "bouldering; finger strength", "ann@example.com, bob@example.com"],
        ],
        plans=[
            ["Email", "Start Date", "End Date", "Type", "Status"],
            ["ann@example.com", day(120), day(92), "strength", "completed"],
            ["ann@example.com", day(14), day(-14), "power", "active"],
        ],
    )


class MockRecordSource:
    """
    In-memory record source for local development.

    Serves whatever rows it was constructed with. Not suitable for
    production, but perfect for development and testing.
    """

    def __init__(self, records: Optional[RawRecords] = None) -> None:
        self._records = records or RawRecords()
        logger.info("Initialized mock record source (in-memory)")

    def load(self) -> RawRecords:
        return RawRecords(
            users=list(self._records.users),
            trainings=[list(rows) for rows in self._records.trainings],
            assessments=list(self._records.assessments),
            coaches=list(self._records.coaches),
            plans=list(self._records.plans),
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_record_source(
    config: Optional[SourceConfig] = None,
    mock_mode: bool = False,
) -> RecordSource:
    """
    Create a record source based on configuration.

    Args:
        config: Source configuration (required if not mock_mode)
        mock_mode: If True, return an in-memory source seeded with sample_records()

    Returns:
        RecordSource implementation (CSV or Mock)
    """
    if mock_mode:
        return MockRecordSource(sample_records())

    if config is None:
        raise DataSourceError("config is required when not in mock mode")

    return CsvRecordSource(config)
