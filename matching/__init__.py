"""Matching stage: which students may be sent to which companies."""

from matching.eligibility import (
    is_eligible,
    match_companies_for_student,
    match_students_for_company,
    normalize_department,
)

__all__ = [
    "is_eligible",
    "match_companies_for_student",
    "match_students_for_company",
    "normalize_department",
]
