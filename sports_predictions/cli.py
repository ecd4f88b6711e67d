"""
Command line entry point for operating the Sports Predictions API.

    $ python -m sports_predictions.cli init-db
    $ python -m sports_predictions.cli load-data [events.json] [predictions.json]
    $ python -m sports_predictions.cli archive [--retention-days N]
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from sports_predictions.core.config import Settings, get_settings
from sports_predictions.core.errors import AppError
from sports_predictions.core.logger import setup_logger
from sports_predictions.db.init_db import init_db
from sports_predictions.services.archive_service import run_archive_sweep
from sports_predictions.services.identity import format_instant
from sports_predictions.services.ingestion_service import run_ingestion

logger = setup_logger("sports_predictions.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sports_predictions",
        description="Sports Predictions API maintenance commands.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    subcommands.add_parser("init-db", help="Create all database tables.")

    load = subcommands.add_parser("load-data", help="Load events and predictions from JSON files.")
    load.add_argument("events_path", nargs="?", default=None, help="Events JSON array (default: DATA_EVENTS_PATH).")
    load.add_argument(
        "predictions_path", nargs="?", default=None,
        help="Predictions JSON array (default: DATA_PREDICTIONS_PATH).",
    )

    archive = subcommands.add_parser("archive", help="Archive events older than the retention period now.")
    archive.add_argument(
        "--retention-days", type=int, default=None,
        help="Override ARCHIVE_RETENTION_DAYS.",
    )
    return parser


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()

    try:
        if args.command == "init-db":
            asyncio.run(init_db(settings))
            print("Database tables created")

        elif args.command == "load-data":
            events_path = args.events_path or settings.DATA_EVENTS_PATH
            predictions_path = args.predictions_path or settings.DATA_PREDICTIONS_PATH
            summary = asyncio.run(run_ingestion(settings, events_path, predictions_path))
            print("Data loaded")
            print(f"   Events: {summary.events_created}")
            print(f"   Predictions: {summary.predictions_created}")
            for error in summary.errors:
                print(f"   Skipped {error}")

        elif args.command == "archive":
            result = asyncio.run(run_archive_sweep(settings, args.retention_days))
            print(
                f"Archived {result.archived_count} events dated before "
                f"{format_instant(result.archived_before)} ({result.total_archived} archived in total)"
            )

    except AppError as e:
        logger.error(f"{args.command} failed: {e.message}")
        print(f"{args.command} failed: {e.message}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
