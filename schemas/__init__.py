"""
Pydantic schemas for the placement portal.

Contract-first design: these schemas define the record shapes exchanged
between the gateway, matcher, orchestrator and HTTP surface.
"""

from .company import Company, parse_company
from .distribution import (
    DistributionOutcome,
    DistributionReport,
    ImportReport,
    NoOp,
    Referral,
    RejectedRecord,
)
from .placement import Placement, PlacementStatus, parse_placement
from .student import Student, parse_student

__all__ = [
    # Records
    "Student",
    "Company",
    "Placement",
    "PlacementStatus",
    "Referral",
    "parse_student",
    "parse_company",
    "parse_placement",
    # Results
    "DistributionOutcome",
    "DistributionReport",
    "ImportReport",
    "NoOp",
    "RejectedRecord",
]
