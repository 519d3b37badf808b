"""
Record sources for training data.

Reads spreadsheet exports (CSV files in a directory) and returns raw rows.
Includes mock mode for local development without data files.
"""

from .client import (
    CsvRecordSource,
    DataSourceError,
    MockRecordSource,
    RecordSource,
    SourceConfig,
    create_record_source,
    sample_records,
)

__all__ = [
    "CsvRecordSource",
    "DataSourceError",
    "MockRecordSource",
    "RecordSource",
    "SourceConfig",
    "create_record_source",
    "sample_records",
]
