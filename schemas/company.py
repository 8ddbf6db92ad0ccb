"""Company record schema."""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from .base import BaseSchema, Cgpa, number_or_zero, parse_record

COMPANY_ID_PATTERN = r"^COMP-\d{3}$"


class Company(BaseSchema):
    """A recruiting company as stored in the Companies sheet."""

    company_id: str = Field(..., pattern=COMPANY_ID_PATTERN, description="e.g. COMP-001")
    company_name: str = Field(..., min_length=1, max_length=255)
    industry: str = ""
    location: str = ""
    hr_name: str = ""
    hr_email: str = ""
    hr_phone: str = ""
    package_offered: float = Field(default=0.0, ge=0, description="Per annum")
    positions: int = Field(default=0, ge=0)
    min_cgpa: Cgpa = 0.0
    eligible_departments: list[str] = Field(
        default_factory=list, description="Empty means every department"
    )
    status: str = "Active"

    @field_validator("package_offered", "min_cgpa", mode="before")
    @classmethod
    def _numeric(cls, v: Any, info: ValidationInfo) -> Any:
        return number_or_zero(v, info.field_name, (info.data or {}).get("company_id"))

    @field_validator("positions", mode="before")
    @classmethod
    def _whole_positions(cls, v: Any, info: ValidationInfo) -> Any:
        value = number_or_zero(v, "positions", (info.data or {}).get("company_id"))
        return int(value) if isinstance(value, float) and value.is_integer() else value

    @field_validator("eligible_departments", mode="before")
    @classmethod
    def _split_departments(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.replace(";", ",").split(",") if part.strip()]
        return v

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, v: Any) -> Any:
        return v if v not in (None, "") else "Active"

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() == "active"


def parse_company(data: Any) -> Company:
    """Convert untyped input into a ``Company`` or raise ``ValidationError``."""
    return parse_record(Company, data, "company")
