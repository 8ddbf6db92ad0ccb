"""Eligibility matching between students and companies.

Pure functions: no I/O, no mutation of their inputs. Filters are stable, so
output order follows input order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from schemas.company import Company
from schemas.student import Student

logger = structlog.get_logger(__name__)

DepartmentLookup = Mapping[str, str]


def normalize_department(value: str, lookup: DepartmentLookup | None = None) -> str:
    """Canonical lowercase department name; codes resolve through ``lookup``."""
    key = value.strip().lower()
    if lookup:
        key = lookup.get(key, key).lower()
    return key


def student_cgpa(student: Student) -> float:
    """Student CGPA as a float; unparseable values count as 0."""
    try:
        return float(student.cgpa)
    except (TypeError, ValueError):
        logger.warning(
            "Non-numeric CGPA treated as 0",
            student_id=getattr(student, "student_id", None),
            cgpa=student.cgpa,
        )
        return 0.0


def is_eligible(
    student: Student,
    company: Company,
    departments: DepartmentLookup | None = None,
) -> bool:
    """Whether ``student`` may be forwarded to ``company``.

    Requires an active company with open positions, the student's CGPA at or
    above the company minimum, and the student's department among the
    company's eligible departments (an empty set admits every department).
    """
    if not company.is_active or company.positions <= 0:
        return False
    if student_cgpa(student) < company.min_cgpa:
        return False
    if not company.eligible_departments:
        return True
    allowed = {normalize_department(d, departments) for d in company.eligible_departments}
    return normalize_department(student.department, departments) in allowed


def match_companies_for_student(
    student: Student,
    companies: Sequence[Company],
    departments: DepartmentLookup | None = None,
) -> list[Company]:
    """Companies eligible to receive ``student``, in input order."""
    return [c for c in companies if is_eligible(student, c, departments)]


def match_students_for_company(
    company: Company,
    students: Sequence[Student],
    departments: DepartmentLookup | None = None,
) -> list[Student]:
    """Students eligible for ``company``, in input order."""
    return [s for s in students if is_eligible(s, company, departments)]
