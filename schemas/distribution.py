"""Distribution, referral and import result schemas."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from pydantic import Field

from .base import BaseSchema
from .student import Student


class Referral(BaseSchema):
    """A student row as written into a company's target sheet."""

    student: Student
    date_sent: date = Field(default_factory=date.today)
    review_status: str = "Pending Review"


class DistributionOutcome(BaseSchema):
    """Result of sending student data to one company."""

    company_id: str
    success: bool
    response: dict[str, Any] | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DistributionReport(BaseSchema):
    """Ordered per-company outcomes plus aggregate counts."""

    student_ids: list[str] = Field(default_factory=list)
    outcomes: list[DistributionOutcome] = Field(default_factory=list)
    success_count: int = 0
    total: int = 0
    cancelled: bool = False

    @property
    def failure_count(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    @property
    def all_succeeded(self) -> bool:
        return self.success_count == self.total


class NoOp(BaseSchema):
    """Nothing was distributed; not an error."""

    student_id: str
    reason: str = "No eligible companies found"


class RejectedRecord(BaseSchema):
    """An input row that failed validation during bulk import."""

    index: int
    error: str


class ImportReport(BaseSchema):
    """Progress and outcome of a bulk student import."""

    total_count: int = 0
    processed_count: int = 0
    batches_sent: int = 0
    rejected: list[RejectedRecord] = Field(default_factory=list)
    distributions: list[DistributionReport | NoOp] = Field(default_factory=list)
    aborted: bool = False
    error: str | None = None

    @property
    def progress(self) -> float:
        if self.total_count == 0:
            return 1.0
        return self.processed_count / self.total_count
