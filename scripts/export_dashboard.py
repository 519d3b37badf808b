#!/usr/bin/env python3
"""
Export the dashboard analytics bundle as JSON.

Reads the CSV exports configured in .env (or passed on the command line),
runs the metrics pipeline once and writes the result.

Usage:
    python scripts/export_dashboard.py --data-dir exports/ --output dashboard.json
    python scripts/export_dashboard.py --user athlete@example.com --start 2024-01-01

Requires:
    - .env file with DATA_DIR, or --data-dir
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Add src to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.config.settings import get_settings
from src.core.metrics import MetricsEngine, RecordScope, normalize_dataset
from src.core.metrics.bucketing import TrainingFilter
from src.infrastructure.sources import DataSourceError, SourceConfig, create_record_source


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Export climbing dashboard analytics to JSON')
    parser.add_argument('--data-dir', help='Directory with the CSV exports (defaults to DATA_DIR)')
    parser.add_argument('--output', help='Write JSON here instead of stdout')
    parser.add_argument('--user', help='Only this athlete\'s sessions')
    parser.add_argument('--location', help='Only sessions at this location')
    parser.add_argument('--start', type=date.fromisoformat, help='First day to include (YYYY-MM-DD)')
    parser.add_argument('--end', type=date.fromisoformat, help='Last day to include (YYYY-MM-DD)')
    parser.add_argument('--summaries', action='store_true', help='Include per-athlete churn summaries')
    return parser


def export_dashboard(args: argparse.Namespace) -> dict:
    """Load one batch and build the bundle. Raises DataSourceError if the exports can't be read."""
    settings = get_settings()

    config = SourceConfig(
        data_dir=args.data_dir or settings.data_dir,
        users_file=settings.users_file,
        training_files=settings.training_files_list,
        assessments_file=settings.assessments_file,
        coaches_file=settings.coaches_file,
        plans_file=settings.plans_file,
    )
    dataset = normalize_dataset(create_record_source(config=config).load())

    training_filter = TrainingFilter(
        emails=frozenset([args.user.strip().lower()]) if args.user else None,
        start=args.start,
        end=args.end,
        location=args.location,
    )

    engine = MetricsEngine()
    result = engine.build_dashboard(dataset, training_filter=training_filter).as_dict()

    if args.summaries:
        result['summaries'] = [
            {
                'email': summary.email,
                'churn_risk': summary.churn_risk.level.value,
                'reason': summary.churn_risk.reason,
                'adherence_rate': summary.adherence_rate,
                'progress_rate': summary.progress_rate,
            }
            for summary in engine.summarize_all(dataset, scope=RecordScope.everyone())
        ]

    return result


def main():
    args = build_parser().parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=get_settings().log_level.upper(),
        stream=sys.stderr,
    )

    try:
        result = export_dashboard(args)
    except DataSourceError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    payload = json.dumps(result, indent=2)

    if args.output:
        Path(args.output).write_text(payload + '\n', encoding='utf-8')
        stats = result['stats']
        print(f"Wrote {args.output}")
        print(f"  Sessions: {stats['total_sessions']}")
        print(f"  Peak active users: {stats['peak_active_users']}")
        print(f"  Most popular location: {stats['most_popular_location']}")
    else:
        print(payload)


if __name__ == '__main__':
    main()
