"""Bulk import pipeline entry point."""

import argparse
import json
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError as SettingsError

from core.config import Settings
from core.errors import BulkImportError, PortalError, ValidationError
from core.logging import configure_logging
from orchestration.runner import get_import_results, run_bulk_import

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="placement-import",
        description="Import students from a CSV file and distribute them to eligible companies.",
    )
    parser.add_argument("csv_path", type=Path, help="Student CSV with a header row")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config/portal.yaml"),
        help="Portal YAML configuration (default: config/portal.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=None,
        help="Console progress; repeat for more detail",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full import report as JSON"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the bulk import pipeline."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
    except SettingsError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    if args.verbose is not None:
        settings.verbose = args.verbose
    configure_logging(settings.log_level)

    try:
        csv_text = args.csv_path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Cannot read import file", path=str(args.csv_path), error=str(e))
        return 1

    try:
        ctx, report = run_bulk_import(csv_text, settings=settings, portal_path=args.config)
    except ValidationError as e:
        logger.error("Configuration error", error=str(e), errors=e.errors)
        return 1
    except BulkImportError as e:
        logger.error(
            "Import aborted",
            processed=e.report.processed_count,
            total=e.report.total_count,
            error=str(e),
        )
        return 2
    except PortalError as e:
        logger.error("Import failed", error=str(e))
        return 2

    if args.json:
        print(json.dumps(get_import_results(ctx, report), indent=2))
    else:
        logger.info(
            "Import complete",
            imported=report.processed_count,
            rejected=len(report.rejected),
            batches=report.batches_sent,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
