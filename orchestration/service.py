"""Caller-facing operations of the placement portal."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import structlog

from core.config import SheetNames
from core.context import ActivityEntry, PortalContext
from core.errors import NotFoundError, TransportError, ValidationError
from core.ids import generate_placement_id
from gateway.fallback import FallbackStore, FileFallbackStore
from gateway.http_client import SheetsClient
from gateway.store import RemoteStoreGateway, WriteResult
from orchestration.distributor import DistributionOrchestrator
from orchestration.exporter import (
    ExportFormat,
    exportable_students,
    students_to_csv,
    students_to_records,
)
from orchestration.importer import RawRecord, StudentImporter, parse_student_csv
from orchestration.placements import (
    DashboardStats,
    PlacementView,
    dashboard_stats,
    resolve_placements,
)
from schemas.company import Company, parse_company
from schemas.distribution import DistributionReport, ImportReport, NoOp
from schemas.placement import Placement, parse_placement
from schemas.student import Student, parse_student

logger = structlog.get_logger(__name__)


class PlacementPortal:
    """Facade over gateway, matcher and orchestrator for the UI layer.

    Use as an async context manager so the underlying HTTP client is open.
    """

    def __init__(
        self,
        ctx: PortalContext,
        client: SheetsClient,
        fallback: FallbackStore | None = None,
    ):
        self.ctx = ctx
        self.client = client
        self.fallback = fallback
        self.gateway = RemoteStoreGateway(client, ctx)
        self.distributor = DistributionOrchestrator(self.gateway, ctx)
        self.importer = StudentImporter(self.gateway, self.distributor, ctx)

    @classmethod
    def from_context(
        cls,
        ctx: PortalContext,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> PlacementPortal:
        return cls(
            ctx,
            SheetsClient.from_settings(ctx.settings, transport=transport),
            FileFallbackStore(ctx.settings.fallback_dir),
        )

    async def __aenter__(self) -> PlacementPortal:
        await self.client.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.client.__aexit__(*args)

    @property
    def sheets(self) -> SheetNames:
        return self.ctx.portal.sheets

    # Reads with local fallback

    async def _read(self, sheet: str, model: type[Any]) -> list[Any]:
        try:
            records = await self.gateway.fetch_rows(sheet)
        except TransportError as e:
            if self.fallback is None:
                raise
            records = self.fallback.load(sheet, model)
            logger.warning(
                "Remote store unreachable, serving local snapshot",
                sheet=sheet,
                records=len(records),
                error=str(e),
            )
            self.ctx.log_activity(
                "fallback_used", sheet, f"Served {len(records)} {sheet} rows from local snapshot"
            )
            return records

        if self.fallback is not None:
            self.fallback.save(sheet, records)
        return records

    async def get_students(self) -> list[Student]:
        return await self._read(self.sheets.students, Student)

    async def get_companies(self) -> list[Company]:
        return await self._read(self.sheets.companies, Company)

    async def get_placements(self) -> list[Placement]:
        return await self._read(self.sheets.placements, Placement)

    # Students

    async def add_student(self, record: Mapping[str, Any] | Student) -> Student:
        """Validate and append a new student; ID and email must be unique."""
        student = parse_student(record)
        existing: list[Student] = await self.gateway.fetch_rows(self.sheets.students)
        _check_unique_student(student, existing)

        await self.gateway.append_row(self.sheets.students, student)
        self.ctx.log_activity("student_added", student.student_id, student.full_name)
        return student

    async def update_student(
        self, student_id: str, record: Mapping[str, Any] | Student
    ) -> Student:
        """Overwrite the student ``student_id`` with ``record``."""
        student = parse_student(record)
        existing: list[Student] = await self.gateway.fetch_rows(self.sheets.students)
        others = [s for s in existing if s.student_id != student_id]
        _check_unique_student(student, others)

        await self.gateway.update_row(self.sheets.students, student_id, student)
        self.ctx.log_activity("student_updated", student_id, student.full_name)
        return student

    async def update_students(
        self, records: Sequence[Mapping[str, Any] | Student]
    ) -> WriteResult:
        """Overwrite several existing students in one batch request."""
        students = [parse_student(r) for r in records]
        result = await self.gateway.update_rows(self.sheets.students, students)
        self.ctx.log_activity(
            "students_updated", self.sheets.students, f"Updated {len(students)} records"
        )
        return result

    # Companies

    async def add_company(self, record: Mapping[str, Any] | Company) -> Company:
        company = parse_company(record)
        existing: list[Company] = await self.gateway.fetch_rows(self.sheets.companies)
        if any(c.company_id == company.company_id for c in existing):
            raise ValidationError(f"Company {company.company_id} already exists")

        await self.gateway.append_row(self.sheets.companies, company)
        self.ctx.log_activity("company_added", company.company_id, company.company_name)
        return company

    # Placements

    async def add_placement(self, record: Mapping[str, Any] | Placement) -> Placement:
        """Validate and append a placement, generating its ID when absent.

        The referenced student and company must exist.
        """
        existing: list[Placement] = await self.gateway.fetch_rows(self.sheets.placements)
        if isinstance(record, Mapping) and not (
            record.get("placement_id") or record.get("placementId")
        ):
            record = {
                **record,
                "placement_id": generate_placement_id(p.placement_id for p in existing),
            }
        placement = parse_placement(record)
        if any(p.placement_id == placement.placement_id for p in existing):
            raise ValidationError(f"Placement {placement.placement_id} already exists")
        await self._check_references(placement)

        await self.gateway.append_row(self.sheets.placements, placement)
        self.ctx.log_activity(
            "placement_updated",
            placement.placement_id,
            f"{placement.student_id} applied to {placement.company_id} ({placement.status.value})",
        )
        return placement

    async def update_placement(
        self, placement_id: str, record: Mapping[str, Any] | Placement
    ) -> Placement:
        placement = parse_placement(record)
        await self._check_references(placement)

        await self.gateway.update_row(self.sheets.placements, placement_id, placement)
        self.ctx.log_activity(
            "placement_updated", placement_id, f"Status {placement.status.value}"
        )
        return placement

    async def _check_references(self, placement: Placement) -> None:
        students: list[Student] = await self.gateway.fetch_rows(self.sheets.students)
        companies: list[Company] = await self.gateway.fetch_rows(self.sheets.companies)
        missing = []
        if not any(s.student_id == placement.student_id for s in students):
            missing.append(f"student {placement.student_id}")
        if not any(c.company_id == placement.company_id for c in companies):
            missing.append(f"company {placement.company_id}")
        if missing:
            raise ValidationError(f"Placement references unknown {' and '.join(missing)}")

    async def placement_views(self) -> list[PlacementView]:
        placements = await self.get_placements()
        students = await self.get_students()
        companies = await self.get_companies()
        return resolve_placements(placements, students, companies)

    # Distribution

    async def distribute_data_to_companies(
        self,
        students: Sequence[Mapping[str, Any] | Student],
        company_ids: Sequence[str],
        cancel: asyncio.Event | None = None,
    ) -> DistributionReport:
        parsed = [parse_student(s) for s in students]
        return await self.distributor.distribute_to_companies(parsed, company_ids, cancel=cancel)

    async def auto_distribute_to_eligible_companies(
        self,
        student: Mapping[str, Any] | Student,
        cancel: asyncio.Event | None = None,
    ) -> DistributionReport | NoOp:
        return await self.distributor.auto_distribute_to_eligible_companies(
            parse_student(student), cancel=cancel
        )

    async def bulk_import_students(self, raw_rows: Sequence[RawRecord]) -> ImportReport:
        return await self.importer.bulk_import_students(raw_rows)

    async def bulk_import_csv(self, text: str) -> ImportReport:
        return await self.importer.bulk_import_students(parse_student_csv(text))

    # Export and dashboard

    async def export_for_company(
        self, company_id: str, format: str = "csv"
    ) -> str | list[dict[str, Any]]:
        """Students eligible for ``company_id`` as CSV text or a list of dicts."""
        try:
            export_format = ExportFormat(format.lower())
        except ValueError:
            raise ValidationError(f"Unsupported export format: {format}") from None

        companies = await self.get_companies()
        company = next((c for c in companies if c.company_id == company_id), None)
        if company is None:
            raise NotFoundError(f"Company {company_id} not found")

        students = exportable_students(company, await self.get_students())
        self.ctx.log_activity(
            "data_exported", company_id, f"Exported {len(students)} students as {export_format.value}"
        )
        if export_format is ExportFormat.CSV:
            return students_to_csv(students)
        return students_to_records(students)

    async def dashboard(self) -> DashboardStats:
        students = await self.get_students()
        companies = await self.get_companies()
        placements = await self.get_placements()
        return dashboard_stats(
            students, companies, placements, self.ctx.portal.successful_placement_statuses
        )

    def recent_activities(self, limit: int | None = None) -> list[ActivityEntry]:
        return self.ctx.recent_activities(limit)


def _check_unique_student(student: Student, existing: Sequence[Student]) -> None:
    for other in existing:
        if other.student_id == student.student_id:
            raise ValidationError(f"Student {student.student_id} already exists")
        if other.email.lower() == student.email.lower():
            raise ValidationError(f"Email {student.email} is already registered")
