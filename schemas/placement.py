"""Placement record schema."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import Field, field_validator, model_validator

from core.errors import ValidationError

from .base import BaseSchema, number_or_zero, parse_record

PLACEMENT_ID_PATTERN = r"^PL-\d{3,}$"


class PlacementStatus(str, Enum):
    """Stage of a student's application to a company."""

    APPLIED = "Applied"
    SHORTLISTED = "Shortlisted"
    INTERVIEW_SCHEDULED = "Interview Scheduled"
    INTERVIEW_COMPLETED = "Interview Completed"
    SELECTED = "Selected"
    REJECTED = "Rejected"
    OFFER_LETTER = "Offer Letter"
    JOINED = "Joined"


class Placement(BaseSchema):
    """A placement application linking one student to one company."""

    placement_id: str = Field(..., pattern=PLACEMENT_ID_PATTERN, description="e.g. PL-001")
    student_id: str = Field(..., min_length=1)
    company_id: str = Field(..., min_length=1)
    position: str = ""
    application_date: date
    status: PlacementStatus = PlacementStatus.APPLIED
    package_offered: float | None = Field(default=None, ge=0)
    interview_date: date | None = None
    notes: str = ""

    @field_validator("package_offered", mode="before")
    @classmethod
    def _optional_package(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return number_or_zero(v, "package_offered")

    @field_validator("interview_date", mode="before")
    @classmethod
    def _blank_date(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _interview_needs_date(self) -> Placement:
        if self.status == PlacementStatus.INTERVIEW_SCHEDULED and self.interview_date is None:
            raise ValueError("interview date required for scheduled interviews")
        return self


def parse_placement(data: Any, today: date | None = None) -> Placement:
    """Validate a new placement submission.

    Besides the record shape, the application date may not lie in the future.
    """
    placement = parse_record(Placement, data, "placement")
    today = today or date.today()
    if placement.application_date > today:
        raise ValidationError(
            "Invalid placement record: application date cannot be in the future",
            errors=[{"loc": ("application_date",), "msg": "in the future"}],
        )
    return placement
