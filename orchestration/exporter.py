"""Export of a company's eligible students as CSV text or structured records."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from enum import Enum
from typing import Any

from schemas.company import Company
from schemas.student import Student

EXPORT_HEADERS = [
    "Student ID",
    "Full Name",
    "Email",
    "Phone",
    "Department",
    "Year",
    "CGPA",
    "Skills",
]


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


def exportable_students(company: Company, students: Sequence[Student]) -> list[Student]:
    """Active students meeting the company's minimum CGPA, in input order."""
    return [s for s in students if s.is_active and s.cgpa >= company.min_cgpa]


def _export_row(student: Student) -> list[Any]:
    return [
        student.student_id,
        student.full_name,
        student.email,
        student.phone,
        student.department,
        student.year,
        student.cgpa,
        student.skills,
    ]


def students_to_csv(students: Sequence[Student]) -> str:
    """CSV with a header row; every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for student in students:
        writer.writerow(_export_row(student))
    return buffer.getvalue()


def students_to_records(students: Sequence[Student]) -> list[dict[str, Any]]:
    """Structured export: one dict per student keyed by field name."""
    return [
        s.model_dump(mode="json", exclude={"status", "date_added"}) for s in students
    ]
