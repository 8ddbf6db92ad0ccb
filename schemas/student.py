"""Student record schema."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from .base import BaseSchema, Cgpa, Email, number_or_zero, parse_record

STUDENT_ID_PATTERN = r"^[A-Z]{2}-\d{4}-\d{3}$"


class Student(BaseSchema):
    """A student as stored in the Students sheet."""

    student_id: str = Field(..., pattern=STUDENT_ID_PATTERN, description="e.g. CS-2023-001")
    full_name: str = Field(..., min_length=1, max_length=100)
    email: Email
    phone: str = ""
    department: str = ""
    year: str = ""
    cgpa: Cgpa = 0.0
    skills: str = ""
    status: str = "Active"
    date_added: date = Field(default_factory=date.today)

    @field_validator("cgpa", mode="before")
    @classmethod
    def _permissive_cgpa(cls, v: Any, info: ValidationInfo) -> Any:
        return number_or_zero(v, "cgpa", (info.data or {}).get("student_id"))

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return v if v not in (None, "") else "Active"

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() == "active"


def parse_student(data: Any) -> Student:
    """Convert untyped input into a ``Student`` or raise ``ValidationError``."""
    return parse_record(Student, data, "student")
