"""Bulk student import: validate, append in batches, then auto-distribute."""

from __future__ import annotations

import asyncio
import csv
import io
from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from core import verbose
from core.context import PortalContext
from core.errors import BulkImportError, PortalError, ValidationError
from gateway.store import RemoteStoreGateway, chunked
from orchestration.distributor import DistributionOrchestrator
from schemas.distribution import ImportReport, NoOp, RejectedRecord
from schemas.student import Student, parse_student

logger = structlog.get_logger(__name__)

# Column order of bulk-import files.
IMPORT_FIELDS = (
    "student_id",
    "full_name",
    "email",
    "phone",
    "department",
    "year",
    "cgpa",
    "skills",
)
MIN_IMPORT_COLUMNS = 7

RawRecord = Mapping[str, Any] | Sequence[Any] | Student


def record_from_cells(cells: Sequence[Any]) -> dict[str, Any]:
    """Map positional import cells onto student fields."""
    if len(cells) < MIN_IMPORT_COLUMNS:
        raise ValidationError(
            f"Expected at least {MIN_IMPORT_COLUMNS} columns, got {len(cells)}"
        )
    record = {field: str(value).strip() for field, value in zip(IMPORT_FIELDS, cells)}
    if not record["student_id"]:
        raise ValidationError("Missing student ID")
    record["status"] = "Active"
    return record


def parse_student_csv(text: str) -> list[list[str]]:
    """Split CSV text into data rows, dropping the header and blank lines."""
    reader = csv.reader(io.StringIO(text.strip()))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    return rows[1:]


def _to_student(raw: RawRecord) -> Student:
    if isinstance(raw, Student):
        return raw
    if isinstance(raw, Mapping):
        return parse_student(raw)
    return parse_student(record_from_cells(raw))


def is_distributable(student: Student) -> bool:
    """Active students with a real CGPA get auto-distributed after import."""
    return student.is_active and student.cgpa > 0


class StudentImporter:
    """Imports student records in bounded batches."""

    def __init__(
        self,
        gateway: RemoteStoreGateway,
        distributor: DistributionOrchestrator,
        ctx: PortalContext,
    ):
        self.gateway = gateway
        self.distributor = distributor
        self.ctx = ctx

    def validate(
        self, raw_records: Sequence[RawRecord], existing: Sequence[Student]
    ) -> tuple[list[Student], list[RejectedRecord]]:
        """Parse raw records, rejecting malformed rows and duplicate IDs or emails."""
        seen_ids = {s.student_id for s in existing}
        seen_emails = {s.email.lower() for s in existing}
        accepted: list[Student] = []
        rejected: list[RejectedRecord] = []

        for index, raw in enumerate(raw_records):
            try:
                student = _to_student(raw)
                if student.student_id in seen_ids:
                    raise ValidationError(f"Duplicate student ID {student.student_id}")
                if student.email.lower() in seen_emails:
                    raise ValidationError(f"Duplicate email {student.email}")
            except ValidationError as e:
                rejected.append(RejectedRecord(index=index, error=str(e)))
                continue
            seen_ids.add(student.student_id)
            seen_emails.add(student.email.lower())
            accepted.append(student)

        return accepted, rejected

    async def bulk_import_students(self, raw_records: Sequence[RawRecord]) -> ImportReport:
        """Import ``raw_records`` then auto-distribute eligible students.

        Records are appended in chunks of at most ``batch_size``. A failing
        chunk stops the import and raises ``BulkImportError`` carrying the
        report, whose ``processed_count`` says how many rows made it in.
        """
        sheet = self.ctx.portal.sheets.students
        existing: list[Student] = await self.gateway.fetch_rows(sheet)
        students, rejected = self.validate(raw_records, existing)

        report = ImportReport(total_count=len(students), rejected=rejected)
        for r in rejected:
            logger.warning("Rejected import record", index=r.index, error=r.error)

        verbose.stage("Import", f"append {len(students)} students in batches")
        pause = self.ctx.settings.import_batch_pause_seconds
        batches = list(chunked(students, self.ctx.settings.batch_size))

        for number, batch in enumerate(batches, start=1):
            try:
                await self.gateway.batch_append(sheet, batch)
            except PortalError as e:
                report.aborted = True
                report.error = f"Batch import failed at record {report.processed_count}: {e}"
                self.ctx.log_activity(
                    "bulk_import_failed",
                    sheet,
                    f"Imported {report.processed_count}/{report.total_count} before failure",
                )
                logger.error(
                    "Bulk import aborted",
                    processed=report.processed_count,
                    total=report.total_count,
                    error=str(e),
                )
                raise BulkImportError(report.error, report) from e

            report.processed_count += len(batch)
            report.batches_sent += 1
            verbose.progress(report.processed_count, report.total_count)

            if pause > 0 and number < len(batches):
                await asyncio.sleep(pause)

        self.ctx.log_activity(
            "bulk_import",
            sheet,
            f"Imported {report.processed_count} student records"
            + (f", rejected {len(rejected)}" if rejected else ""),
        )

        verbose.stage("Distribute", "auto-distribute imported students")
        for student in students:
            if not is_distributable(student):
                continue
            try:
                result = await self.distributor.auto_distribute_to_eligible_companies(student)
            except PortalError as e:
                logger.warning(
                    "Auto-distribution failed", student_id=student.student_id, error=str(e)
                )
                result = NoOp(student_id=student.student_id, reason=f"Distribution failed: {e}")
            report.distributions.append(result)
            verbose.step(f"{student.student_id}: {_describe(result)}")

        return report


def _describe(result: Any) -> str:
    if isinstance(result, NoOp):
        return result.reason
    return f"{result.success_count}/{result.total} companies"
