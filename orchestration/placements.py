"""Placement views: display labels and dashboard statistics."""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from schemas.company import Company
from schemas.placement import Placement
from schemas.student import Student

UNKNOWN_STUDENT = "Unknown student"
UNKNOWN_COMPANY = "Unknown company"


class PlacementView(BaseModel):
    """A placement with its references resolved for display."""

    placement: Placement
    student_name: str
    company_name: str

    @property
    def label(self) -> str:
        return f"{self.student_name} → {self.company_name} ({self.placement.status.value})"


class DashboardStats(BaseModel):
    """Headline numbers for the dashboard."""

    total_students: int
    total_companies: int
    total_placements: int
    successful_placements: int
    pending_placements: int
    placement_rate: int  # percent of students with a successful placement


def resolve_placements(
    placements: Sequence[Placement],
    students: Sequence[Student],
    companies: Sequence[Company],
) -> list[PlacementView]:
    """Attach student and company names; dangling IDs get a placeholder label."""
    student_names = {s.student_id: s.full_name for s in students}
    company_names = {c.company_id: c.company_name for c in companies}
    return [
        PlacementView(
            placement=p,
            student_name=student_names.get(p.student_id, UNKNOWN_STUDENT),
            company_name=company_names.get(p.company_id, UNKNOWN_COMPANY),
        )
        for p in placements
    ]


def dashboard_stats(
    students: Sequence[Student],
    companies: Sequence[Company],
    placements: Sequence[Placement],
    successful_statuses: Sequence[str],
) -> DashboardStats:
    successful = sum(1 for p in placements if p.status.value in successful_statuses)
    rate = round(successful / len(students) * 100) if students else 0
    return DashboardStats(
        total_students=len(students),
        total_companies=len(companies),
        total_placements=len(placements),
        successful_placements=successful,
        pending_placements=len(placements) - successful,
        placement_rate=rate,
    )
