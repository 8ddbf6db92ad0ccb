"""Tests for distributing student data to company sheets."""
from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest
from factories import make_company, make_student

from core.errors import ValidationError
from gateway.codec import REFERRAL_COLUMNS
from orchestration.distributor import DistributionOrchestrator
from schemas.distribution import DistributionReport, NoOp


@pytest.fixture()
def distributor(gateway, ctx) -> DistributionOrchestrator:
    return DistributionOrchestrator(gateway, ctx)


def run(distributor: DistributionOrchestrator, coro_fn):
    async def scenario():
        async with distributor.gateway.client:
            return await coro_fn()

    return asyncio.run(scenario())


def fail_company(company_id: str):
    def intercept(request: httpx.Request):
        if request.method == "POST" and f"Company_{company_id}!" in request.url.path:
            return httpx.Response(403, json={"error": {"message": "The caller does not have permission"}})
        return None

    return intercept


def test_partial_failure_reports_every_company(distributor, sheets, ctx) -> None:
    sheets.intercept = fail_company("COMP-002")
    student = make_student("CS-2023-001")

    report = run(
        distributor,
        lambda: distributor.distribute_to_companies([student], ["COMP-001", "COMP-002", "COMP-003"]),
    )

    assert [(o.company_id, o.success) for o in report.outcomes] == [
        ("COMP-001", True),
        ("COMP-002", False),
        ("COMP-003", True),
    ]
    assert report.success_count == 2
    assert report.total == 3
    assert report.failure_count == 1
    assert not report.all_succeeded
    assert "permission" in report.outcomes[1].error
    assert ctx.recent_activities(1)[0].description == "Data distributed to 2/3 companies"


def test_rows_land_in_company_sheet_with_review_status(distributor, sheets) -> None:
    students = [make_student("CS-2023-001"), make_student("CS-2023-002", cgpa=9.1)]

    report = run(distributor, lambda: distributor.distribute_to_companies(students, ["COMP-001"]))

    assert report.all_succeeded
    (append,) = sheets.calls("POST", "append")
    assert "Company_COMP-001!A:Z:append" in append.url.path
    assert sheets.tables["Company_COMP-001"][0] == list(REFERRAL_COLUMNS)
    rows = sheets.data_rows("Company_COMP-001")
    assert [r[0] for r in rows] == ["CS-2023-001", "CS-2023-002"]
    assert rows[1][6] == "9.1"
    assert rows[0][8:] == [date.today().isoformat(), "Pending Review"]


def test_distribution_updates_statistics(distributor, ctx) -> None:
    students = [make_student("CS-2023-001"), make_student("CS-2023-002")]

    run(distributor, lambda: distributor.distribute_to_companies(students, ["COMP-001", "COMP-002"]))

    assert ctx.stats.data_sent_today == 2
    assert ctx.stats.companies_contacted == 2
    assert ctx.stats.last_distribution is not None


def test_distribution_requires_students(distributor) -> None:
    with pytest.raises(ValidationError):
        run(distributor, lambda: distributor.distribute_to_companies([], ["COMP-001"]))


def test_cancellation_stops_remaining_companies(distributor, sheets) -> None:
    cancel = asyncio.Event()

    def cancel_after_first(request: httpx.Request):
        if request.method == "POST":
            cancel.set()
        return None

    sheets.intercept = cancel_after_first

    report = run(
        distributor,
        lambda: distributor.distribute_to_companies(
            [make_student()], ["COMP-001", "COMP-002", "COMP-003"], cancel=cancel
        ),
    )

    assert report.cancelled
    assert [o.company_id for o in report.outcomes] == ["COMP-001"]
    assert len(sheets.calls("POST", "append")) == 1


def test_auto_distribute_sends_only_to_eligible_companies(distributor, sheets, seed_companies) -> None:
    seed_companies(
        make_company("COMP-001", positions=5, min_cgpa=7.0, eligible_departments=["Computer Science"]),
        make_company("COMP-002", min_cgpa=9.0),
    )
    student = make_student("CS-2023-099", cgpa=8.2, department="Computer Science")

    report = run(distributor, lambda: distributor.auto_distribute_to_eligible_companies(student))

    assert isinstance(report, DistributionReport)
    assert (report.success_count, report.total) == (1, 1)
    assert [o.company_id for o in report.outcomes] == ["COMP-001"]
    assert "Company_COMP-002" not in sheets.tables
    assert sheets.data_rows("Company_COMP-001")[0][0] == "CS-2023-099"


def test_auto_distribute_matches_department_codes(distributor, seed_companies) -> None:
    seed_companies(make_company("COMP-001", eligible_departments=["CS"]))
    student = make_student("CS-2023-010", department="Computer Science")

    report = run(distributor, lambda: distributor.auto_distribute_to_eligible_companies(student))

    assert isinstance(report, DistributionReport)
    assert report.success_count == 1


def test_auto_distribute_without_match_is_a_no_op(distributor, sheets, seed_companies, ctx) -> None:
    seed_companies(make_company("COMP-001", min_cgpa=9.5), make_company("COMP-002", status="Inactive"))

    result = run(
        distributor,
        lambda: distributor.auto_distribute_to_eligible_companies(make_student(cgpa=8.0)),
    )

    assert result == NoOp(student_id="CS-2023-001")
    assert sheets.writes == []
    assert ctx.recent_activities(1)[0].type == "distribution_skipped"


def test_referrals_read_back_from_new_company_sheet(distributor, sheets) -> None:
    students = [make_student("CS-2023-001"), make_student("CS-2023-002")]

    async def scenario():
        await distributor.distribute_to_companies(students, ["COMP-001"])
        await distributor.distribute_to_companies([make_student("CS-2023-003")], ["COMP-001"])
        return await distributor.gateway.fetch_rows("Company_COMP-001")

    rows = run(distributor, scenario)

    assert [r[0] for r in rows] == ["CS-2023-001", "CS-2023-002", "CS-2023-003"]
    assert len(sheets.calls("PUT")) == 1
    assert sheets.tables["Company_COMP-001"][0] == list(REFERRAL_COLUMNS)


def test_pacing_between_companies(distributor, ctx, monkeypatch) -> None:
    delays: list[float] = []

    async def record_sleep(seconds: float) -> None:
        delays.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", record_sleep)
    ctx.settings.distribution_pacing_seconds = 0.2

    report = run(
        distributor,
        lambda: distributor.distribute_to_companies(
            [make_student()], ["COMP-001", "COMP-002", "COMP-003"]
        ),
    )

    assert report.success_count == 3
    assert delays == [0.2, 0.2]
