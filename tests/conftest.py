"""Shared fixtures wiring the gateway and portal to an in-memory spreadsheet."""
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest
from factories import SPREADSHEET_ID, FakeSheets

from core.config import PortalConfig, Settings
from core.context import PortalContext
from gateway.codec import (
    COMPANY_COLUMNS,
    PLACEMENT_COLUMNS,
    STUDENT_COLUMNS,
    company_to_row,
    student_to_row,
)
from gateway.fallback import FileFallbackStore
from gateway.http_client import SheetsClient
from gateway.store import RemoteStoreGateway
from orchestration.service import PlacementPortal
from schemas.company import Company
from schemas.student import Student


@pytest.fixture()
def sheets() -> FakeSheets:
    server = FakeSheets()
    server.seed("Students", STUDENT_COLUMNS)
    server.seed("Companies", COMPANY_COLUMNS)
    server.seed("Placements", PLACEMENT_COLUMNS)
    return server


@pytest.fixture()
def seed_students(sheets: FakeSheets) -> Callable[..., None]:
    def seed(*students: Student) -> None:
        sheets.seed("Students", STUDENT_COLUMNS, [student_to_row(s) for s in students])
    return seed


@pytest.fixture()
def seed_companies(sheets: FakeSheets) -> Callable[..., None]:
    def seed(*companies: Company) -> None:
        sheets.seed("Companies", COMPANY_COLUMNS, [company_to_row(c) for c in companies])
    return seed


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        spreadsheet_id=SPREADSHEET_ID,
        sheets_api_key="test-key",
        rate_limit_rps=0,
        retry_delay_seconds=0,
        distribution_pacing_seconds=0,
        import_batch_pause_seconds=0,
        fallback_dir=str(tmp_path / "fallback"),
    )


@pytest.fixture()
def ctx(settings: Settings) -> PortalContext:
    return PortalContext.boot(settings, PortalConfig())


@pytest.fixture()
def client(sheets: FakeSheets, settings: Settings) -> SheetsClient:
    return SheetsClient.from_settings(settings, transport=httpx.MockTransport(sheets.handle))


@pytest.fixture()
def gateway(client: SheetsClient, ctx: PortalContext) -> RemoteStoreGateway:
    return RemoteStoreGateway(client, ctx)


@pytest.fixture()
def portal(client: SheetsClient, ctx: PortalContext, settings: Settings) -> PlacementPortal:
    return PlacementPortal(ctx, client, FileFallbackStore(settings.fallback_dir))
