"""Tests for bulk student import."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest
from factories import make_company, make_student

from core.errors import BulkImportError, ValidationError
from orchestration.distributor import DistributionOrchestrator
from orchestration.importer import StudentImporter, parse_student_csv, record_from_cells
from schemas.distribution import DistributionReport, NoOp


@pytest.fixture()
def importer(gateway, ctx) -> StudentImporter:
    return StudentImporter(gateway, DistributionOrchestrator(gateway, ctx), ctx)


def run_import(importer: StudentImporter, records):
    async def scenario():
        async with importer.gateway.client:
            return await importer.bulk_import_students(records)

    return asyncio.run(scenario())


def student_records(count: int) -> list[dict[str, object]]:
    return [
        {
            "student_id": f"CS-2024-{i:03d}",
            "full_name": f"Student {i}",
            "email": f"student{i}@college.edu",
            "department": "Computer Science",
            "year": "Third Year",
            "cgpa": "7.5",
        }
        for i in range(count)
    ]


def test_import_appends_in_batches_of_one_hundred(importer, sheets) -> None:
    report = run_import(importer, student_records(250))

    appends = sheets.calls("POST", "append")
    assert [len(json.loads(r.content)["values"]) for r in appends] == [100, 100, 50]
    assert report.processed_count == report.total_count == 250
    assert report.batches_sent == 3
    assert report.progress == 1.0
    assert len(sheets.data_rows("Students")) == 250


def test_failed_batch_aborts_with_progress(importer, sheets, ctx) -> None:
    def fail_second_batch(request: httpx.Request):
        if request.method == "POST" and len(sheets.calls("POST")) == 2:
            return httpx.Response(400, json={"error": {"message": "Request payload too large"}})
        return None

    sheets.intercept = fail_second_batch

    with pytest.raises(BulkImportError) as exc:
        run_import(importer, student_records(250))

    report = exc.value.report
    assert report.aborted
    assert report.processed_count == 100
    assert report.batches_sent == 1
    assert report.progress == pytest.approx(0.4)
    assert len(sheets.calls("POST")) == 2
    assert len(sheets.data_rows("Students")) == 100
    assert ctx.recent_activities(1)[0].type == "bulk_import_failed"


def test_invalid_and_duplicate_records_are_rejected(importer, sheets, seed_students) -> None:
    seed_students(make_student("CS-2023-001"))
    records = [
        ["CS-2024-001", "Asha", "asha@college.edu", "98", "Computer Science", "Final", "8.1"],
        ["CS-2023-001", "Again", "again@college.edu", "98", "Computer Science", "Final", "8.1"],
        ["CS-2024-002", "Short", "short@college.edu"],
        ["CS-2024-003", "Dup Mail", "ASHA@college.edu", "98", "Computer Science", "Final", "7"],
        ["CS-2024-001", "Twice", "twice@college.edu", "98", "Computer Science", "Final", "7"],
        ["", "No Id", "noid@college.edu", "98", "Computer Science", "Final", "7"],
        {"student_id": "CS-2024-004", "full_name": "Mapped", "email": "mapped@college.edu"},
    ]

    report = run_import(importer, records)

    assert report.total_count == 2
    assert [r.index for r in report.rejected] == [1, 2, 3, 4, 5]
    assert "Duplicate student ID" in report.rejected[0].error
    assert "columns" in report.rejected[1].error
    assert "Duplicate email" in report.rejected[2].error
    assert [r[0] for r in sheets.data_rows("Students")] == ["CS-2023-001", "CS-2024-001", "CS-2024-004"]


def test_imported_students_are_auto_distributed(importer, sheets, seed_companies) -> None:
    seed_companies(make_company("COMP-001", min_cgpa=7.0))
    records = [
        {"student_id": "CS-2024-001", "full_name": "A", "email": "a@college.edu",
         "department": "Computer Science", "cgpa": 8.0},
        {"student_id": "CS-2024-002", "full_name": "B", "email": "b@college.edu",
         "department": "Computer Science", "cgpa": "N/A"},
        {"student_id": "CS-2024-003", "full_name": "C", "email": "c@college.edu",
         "department": "Computer Science", "cgpa": 6.0},
        {"student_id": "CS-2024-004", "full_name": "D", "email": "d@college.edu",
         "department": "Computer Science", "cgpa": 9.0, "status": "Graduated"},
    ]

    report = run_import(importer, records)

    first, second = report.distributions
    assert isinstance(first, DistributionReport)
    assert first.student_ids == ["CS-2024-001"]
    assert first.success_count == 1
    assert second == NoOp(student_id="CS-2024-003")
    assert [r[0] for r in sheets.data_rows("Company_COMP-001")] == ["CS-2024-001"]


def test_distribution_failure_after_import_is_reported(importer, sheets) -> None:
    sheets.intercept = lambda request: (
        httpx.Response(403) if request.method == "GET" and "Companies" in request.url.path else None
    )

    report = run_import(importer, student_records(1))

    assert report.processed_count == 1
    (result,) = report.distributions
    assert isinstance(result, NoOp)
    assert result.reason.startswith("Distribution failed")


def test_parse_student_csv_drops_header_and_blank_lines() -> None:
    text = (
        "Student ID,Full Name,Email,Phone,Department,Year,CGPA,Skills\n"
        "CS-2024-001,Asha Rao,asha@college.edu,98,Computer Science,Final,8.4,\"Python, SQL\"\n"
        "\n"
        ",,,\n"
        "IT-2024-002,Ravi,ravi@college.edu,97,IT,Third,7.9\n"
    )

    rows = parse_student_csv(text)

    assert [r[0] for r in rows] == ["CS-2024-001", "IT-2024-002"]
    assert rows[0][7] == "Python, SQL"


def test_record_from_cells() -> None:
    record = record_from_cells([" CS-2024-001 ", "Asha", "asha@college.edu", "98", "CS", "Final", "8.4"])

    assert record["student_id"] == "CS-2024-001"
    assert record["status"] == "Active"
    assert "skills" not in record

    with pytest.raises(ValidationError):
        record_from_cells(["CS-2024-001", "Asha"])
    with pytest.raises(ValidationError):
        record_from_cells(["  ", "Asha", "a@b.co", "", "", "", ""])
