"""Pipeline runner for batch student imports."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import httpx

from core import verbose
from core.config import PortalConfig, Settings, load_config
from core.context import PortalContext
from orchestration.importer import parse_student_csv
from orchestration.service import PlacementPortal
from schemas.distribution import ImportReport, NoOp


async def run_bulk_import_async(
    csv_text: str,
    settings: Settings | None = None,
    portal: PortalConfig | None = None,
    portal_path: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[PortalContext, ImportReport]:
    """Run a bulk import: Boot -> Parse -> Import -> Distribute.

    Args:
        csv_text: Student CSV with a header row
        settings: Optional pre-loaded settings
        portal: Optional pre-loaded portal config
        portal_path: Path to portal YAML (if portal not provided)
        transport: Optional HTTP transport override

    Returns:
        The booted context and the import report
    """
    run_start = time.monotonic()

    # Stage 0: Boot
    if settings is None or portal is None:
        loaded_settings, loaded_portal = load_config(portal_path, settings)
        settings = settings or loaded_settings
        portal = portal or loaded_portal

    verbose.configure(settings.verbose)

    ctx = PortalContext.boot(settings, portal)

    verbose.header("Bulk Student Import")
    verbose.stage("Boot", "load configuration and open the spreadsheet client")
    verbose.step(f"Spreadsheet: {settings.spreadsheet_id or '(unset)'}")
    verbose.step(
        f"Batch size {settings.batch_size}, retries {settings.max_retries}, "
        f"cache TTL {settings.cache_ttl_seconds:.0f}s"
    )

    # Stage 1: Parse
    rows = parse_student_csv(csv_text)
    verbose.stage("Parse", f"{len(rows)} data rows read")

    # Stages 2 and 3: Import, then auto-distribute
    async with PlacementPortal.from_context(ctx, transport=transport) as service:
        report = await service.bulk_import_students(rows)

    distributed = sum(1 for d in report.distributions if not isinstance(d, NoOp))
    total = time.monotonic() - run_start
    verbose.header(
        f"Done: {report.processed_count}/{report.total_count} imported, "
        f"{len(report.rejected)} rejected, {distributed} distributed ({total:.2f}s)"
    )

    return ctx, report


def run_bulk_import(
    csv_text: str,
    settings: Settings | None = None,
    portal: PortalConfig | None = None,
    portal_path: Path | None = None,
) -> tuple[PortalContext, ImportReport]:
    """Synchronous wrapper for run_bulk_import_async."""
    return asyncio.run(run_bulk_import_async(csv_text, settings, portal, portal_path))


def get_import_results(ctx: PortalContext, report: ImportReport) -> dict[str, Any]:
    """Get detailed results from an import run.

    Useful for inspection and debugging.
    """
    return {
        "summary": ctx.summary(),
        "report": report.model_dump(mode="json"),
        "activities": [a.model_dump(mode="json") for a in ctx.recent_activities()],
    }
