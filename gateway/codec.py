"""Row codecs: typed records <-> spreadsheet rows in fixed column order."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import structlog

from core.errors import ValidationError
from gateway.http_client import Cell, Grid
from schemas.base import parse_record
from schemas.company import Company, parse_company
from schemas.distribution import Referral
from schemas.placement import Placement
from schemas.student import Student, parse_student

logger = structlog.get_logger(__name__)

STUDENT_COLUMNS = (
    "Student ID", "Full Name", "Email", "Phone", "Department",
    "Year", "CGPA", "Skills", "Status", "Date Added",
)
COMPANY_COLUMNS = (
    "Company ID", "Company Name", "Industry", "Location", "HR Name",
    "HR Email", "HR Phone", "Package", "Positions", "Min CGPA", "Status",
    "Eligible Departments",
)
PLACEMENT_COLUMNS = (
    "Placement ID", "Student ID", "Company ID", "Position", "Application Date",
    "Status", "Package", "Interview Date", "Notes",
)
REFERRAL_COLUMNS = (
    "Student ID", "Full Name", "Email", "Phone", "Department",
    "Year", "CGPA", "Skills", "Date Sent", "Review Status",
)

Record = Student | Company | Placement | Referral
RowParser = Callable[[Sequence[Cell]], Any]


def _cells(row: Sequence[Cell], width: int) -> list[str]:
    """Stringify and right-pad a row; the API drops trailing empty cells."""
    cells = ["" if c is None else str(c).strip() for c in row[:width]]
    return cells + [""] * (width - len(cells))


def student_to_row(student: Student) -> list[Cell]:
    return [
        student.student_id,
        student.full_name,
        student.email,
        student.phone,
        student.department,
        student.year,
        student.cgpa,
        student.skills,
        student.status,
        student.date_added.isoformat(),
    ]


def student_from_row(row: Sequence[Cell]) -> Student:
    (student_id, full_name, email, phone, department,
     year, cgpa, skills, status, date_added) = _cells(row, len(STUDENT_COLUMNS))
    data: dict[str, Any] = {
        "student_id": student_id,
        "full_name": full_name,
        "email": email,
        "phone": phone,
        "department": department,
        "year": year,
        "cgpa": cgpa,
        "skills": skills,
        "status": status,
    }
    if date_added:
        data["date_added"] = date_added
    return parse_student(data)


def company_to_row(company: Company) -> list[Cell]:
    return [
        company.company_id,
        company.company_name,
        company.industry,
        company.location,
        company.hr_name,
        company.hr_email,
        company.hr_phone,
        company.package_offered,
        company.positions,
        company.min_cgpa,
        company.status,
        "; ".join(company.eligible_departments),
    ]


def company_from_row(row: Sequence[Cell]) -> Company:
    (company_id, name, industry, location, hr_name, hr_email, hr_phone,
     package, positions, min_cgpa, status, departments) = _cells(row, len(COMPANY_COLUMNS))
    return parse_company(
        {
            "company_id": company_id,
            "company_name": name,
            "industry": industry,
            "location": location,
            "hr_name": hr_name,
            "hr_email": hr_email,
            "hr_phone": hr_phone,
            "package_offered": package,
            "positions": positions,
            "min_cgpa": min_cgpa,
            "status": status,
            "eligible_departments": departments,
        }
    )


def placement_to_row(placement: Placement) -> list[Cell]:
    return [
        placement.placement_id,
        placement.student_id,
        placement.company_id,
        placement.position,
        placement.application_date.isoformat(),
        placement.status.value,
        "" if placement.package_offered is None else placement.package_offered,
        placement.interview_date.isoformat() if placement.interview_date else "",
        placement.notes,
    ]


def placement_from_row(row: Sequence[Cell]) -> Placement:
    (placement_id, student_id, company_id, position, application_date,
     status, package, interview_date, notes) = _cells(row, len(PLACEMENT_COLUMNS))
    # Stored rows were validated on the way in; no future-date check on read.
    return parse_record(
        Placement,
        {
            "placement_id": placement_id,
            "student_id": student_id,
            "company_id": company_id,
            "position": position,
            "application_date": application_date,
            "status": status or "Applied",
            "package_offered": package,
            "interview_date": interview_date,
            "notes": notes,
        },
        "placement",
    )


def referral_to_row(referral: Referral) -> list[Cell]:
    student = referral.student
    return [
        student.student_id,
        student.full_name,
        student.email,
        student.phone,
        student.department,
        student.year,
        student.cgpa,
        student.skills,
        referral.date_sent.isoformat(),
        referral.review_status,
    ]


def to_row(record: Record) -> list[Cell]:
    """Serialise any known record type to its sheet row."""
    if isinstance(record, Student):
        return student_to_row(record)
    if isinstance(record, Company):
        return company_to_row(record)
    if isinstance(record, Placement):
        return placement_to_row(record)
    if isinstance(record, Referral):
        return referral_to_row(record)
    raise ValidationError(f"Cannot serialise {type(record).__name__} to a sheet row")


def record_key(record: Record) -> str:
    """Value of the key (first) column for a record."""
    return str(to_row(record)[0])


def parse_grid(grid: Grid, parser: RowParser | None, sheet: str) -> list[Any]:
    """Parse data rows below the header.

    Blank rows are skipped. Rows that fail validation are logged and skipped
    so one bad cell does not hide the rest of the sheet. Without a parser the
    raw string rows are returned.
    """
    records: list[Any] = []
    for offset, row in enumerate(grid[1:], start=2):
        if not row or not any(str(c).strip() for c in row):
            continue
        if parser is None:
            records.append([str(c) for c in row])
            continue
        try:
            records.append(parser(row))
        except ValidationError as e:
            logger.warning("Skipping invalid sheet row", sheet=sheet, row=offset, error=str(e))
    return records
