"""Tests for the placement portal service."""
from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest
from factories import make_company, make_student

from core.errors import NotFoundError, ValidationError
from schemas.distribution import DistributionReport, NoOp


def run(portal, coro_fn):
    async def scenario():
        async with portal:
            return await coro_fn()

    return asyncio.run(scenario())


def student_form(student_id: str = "CS-2023-099", **overrides: object) -> dict[str, object]:
    form: dict[str, object] = {
        "studentId": student_id,
        "fullName": "Meera Iyer",
        "email": f"{student_id.lower()}@college.edu",
        "phone": "9000000000",
        "department": "Computer Science",
        "year": "Final Year",
        "cgpa": "8.2",
        "skills": "Java",
    }
    form.update(overrides)
    return form


def test_add_student_appends_and_logs(portal, sheets, ctx) -> None:
    student = run(portal, lambda: portal.add_student(student_form()))

    assert student.student_id == "CS-2023-099"
    assert sheets.data_rows("Students")[0][:3] == ["CS-2023-099", "Meera Iyer", "cs-2023-099@college.edu"]
    assert ctx.recent_activities(1)[0].type == "student_added"


@pytest.mark.parametrize(
    "form",
    [student_form("CS-2023-001"), student_form("CS-2023-100", email="CS-2023-001@College.edu")],
)
def test_add_student_rejects_duplicates(portal, sheets, seed_students, form) -> None:
    seed_students(make_student("CS-2023-001"))

    with pytest.raises(ValidationError):
        run(portal, lambda: portal.add_student(form))

    assert sheets.writes == []


def test_add_student_rejects_malformed_input(portal, sheets) -> None:
    with pytest.raises(ValidationError):
        run(portal, lambda: portal.add_student(student_form(cgpa="12")))

    assert sheets.requests == []


def test_update_student_overwrites_row(portal, sheets, seed_students) -> None:
    seed_students(make_student("CS-2023-001"), make_student("CS-2023-002"))

    updated = run(
        portal, lambda: portal.update_student("CS-2023-002", student_form("CS-2023-002", cgpa="9.3"))
    )

    assert updated.cgpa == 9.3
    assert sheets.data_rows("Students")[1][6] == "9.3"


def test_update_unknown_student_raises_without_writing(portal, sheets, seed_students) -> None:
    seed_students(make_student("CS-2023-001"))

    with pytest.raises(NotFoundError):
        run(portal, lambda: portal.update_student("XX-0000-000", student_form("XX-0000-000")))

    assert sheets.writes == []


def test_update_students_in_one_batch(portal, sheets, seed_students) -> None:
    seed_students(make_student("CS-2023-001"), make_student("CS-2023-002"))

    result = run(
        portal,
        lambda: portal.update_students(
            [make_student("CS-2023-001", status="Placed"), make_student("CS-2023-002", status="Placed")]
        ),
    )

    assert result.requests == 1
    assert len(sheets.calls("POST", "batch_update")) == 1


def test_add_company_rejects_duplicate_id(portal, sheets, seed_companies) -> None:
    seed_companies(make_company("COMP-001"))

    with pytest.raises(ValidationError):
        run(portal, lambda: portal.add_company({"companyId": "COMP-001", "companyName": "Other"}))

    company = run(portal, lambda: portal.add_company({"companyId": "COMP-002", "companyName": "Other"}))
    assert company.company_id == "COMP-002"
    assert [r[0] for r in sheets.data_rows("Companies")] == ["COMP-001", "COMP-002"]


def placement_form(**overrides: object) -> dict[str, object]:
    form: dict[str, object] = {
        "studentId": "CS-2023-001",
        "companyId": "COMP-001",
        "position": "Analyst",
        "applicationDate": date.today().isoformat(),
        "status": "Applied",
    }
    form.update(overrides)
    return form


def test_add_placement_generates_sequential_ids(portal, sheets, seed_students, seed_companies) -> None:
    seed_students(make_student("CS-2023-001"))
    seed_companies(make_company("COMP-001"))

    async def scenario():
        first = await portal.add_placement(placement_form())
        second = await portal.add_placement(placement_form(status="Shortlisted"))
        return first, second

    first, second = run(portal, scenario)

    assert (first.placement_id, second.placement_id) == ("PL-001", "PL-002")
    assert [r[0] for r in sheets.data_rows("Placements")] == ["PL-001", "PL-002"]


def test_add_placement_requires_known_references(portal, sheets, seed_students) -> None:
    seed_students(make_student("CS-2023-001"))

    with pytest.raises(ValidationError) as exc:
        run(portal, lambda: portal.add_placement(placement_form(companyId="COMP-404")))

    assert "company COMP-404" in str(exc.value)
    assert sheets.writes == []


def test_update_placement_and_views(portal, sheets, seed_students, seed_companies) -> None:
    seed_students(make_student("CS-2023-001", full_name="Asha Rao"))
    seed_companies(make_company("COMP-001", company_name="Acme"))

    async def scenario():
        await portal.add_placement(placement_form())
        await portal.update_placement(
            "PL-001", placement_form(placementId="PL-001", status="Selected", packageOffered="900000")
        )
        return await portal.placement_views()

    (view,) = run(portal, scenario)

    assert view.label == "Asha Rao → Acme (Selected)"
    assert view.placement.package_offered == 900000
    assert len(sheets.calls("PUT")) == 1


def test_reads_fall_back_to_local_snapshot(portal, sheets, seed_students, ctx) -> None:
    seed_students(make_student("CS-2023-001"))

    def time_out(request: httpx.Request):
        raise httpx.ConnectTimeout("timed out", request=request)

    async def scenario():
        fresh = await portal.get_students()
        ctx.cache.clear()
        sheets.intercept = time_out
        stale = await portal.get_students()
        return fresh, stale

    fresh, stale = run(portal, scenario)

    assert stale == fresh
    assert ctx.recent_activities(1)[0].type == "fallback_used"


def test_fallback_without_snapshot_is_empty(portal, sheets) -> None:
    def unreachable(request: httpx.Request):
        raise httpx.ConnectError("down", request=request)

    sheets.intercept = unreachable

    assert run(portal, portal.get_companies) == []


def test_distribute_and_auto_distribute(portal, sheets, seed_companies) -> None:
    seed_companies(make_company("COMP-001"), make_company("COMP-002", min_cgpa=9.0))

    async def scenario():
        manual = await portal.distribute_data_to_companies([student_form()], ["COMP-002"])
        auto = await portal.auto_distribute_to_eligible_companies(student_form())
        none = await portal.auto_distribute_to_eligible_companies(student_form(cgpa="5"))
        return manual, auto, none

    manual, auto, none = run(portal, scenario)

    assert isinstance(manual, DistributionReport) and manual.all_succeeded
    assert [o.company_id for o in auto.outcomes] == ["COMP-001"]
    assert isinstance(none, NoOp)
    assert sorted(name for name in sheets.tables if name.startswith("Company_")) == [
        "Company_COMP-001", "Company_COMP-002",
    ]


def test_bulk_import_csv(portal, sheets) -> None:
    text = (
        "Student ID,Full Name,Email,Phone,Department,Year,CGPA,Skills\n"
        "CS-2024-001,Asha,asha@college.edu,98,Computer Science,Final,8.4,Python\n"
        "CS-2024-002,Ravi,ravi@college.edu,97,Computer Science,Final,7.9,Go\n"
    )

    report = run(portal, lambda: portal.bulk_import_csv(text))

    assert report.processed_count == 2
    assert len(sheets.calls("POST", "append")) == 1


def test_export_for_company(portal, seed_students, seed_companies, ctx) -> None:
    seed_students(make_student("CS-2023-001", cgpa=8.0), make_student("CS-2023-002", cgpa=6.0))
    seed_companies(make_company("COMP-001", min_cgpa=7.0))

    async def scenario():
        return (
            await portal.export_for_company("COMP-001"),
            await portal.export_for_company("COMP-001", "JSON"),
        )

    text, records = run(portal, scenario)

    assert text.count("\n") == 2
    assert [r["student_id"] for r in records] == ["CS-2023-001"]
    assert ctx.recent_activities(1)[0].type == "data_exported"


def test_export_rejects_unknown_company_and_format(portal) -> None:
    with pytest.raises(NotFoundError):
        run(portal, lambda: portal.export_for_company("COMP-999"))
    with pytest.raises(ValidationError):
        run(portal, lambda: portal.export_for_company("COMP-001", "xlsx"))


def test_dashboard(portal, seed_students, seed_companies) -> None:
    seed_students(make_student("CS-2023-001"), make_student("CS-2023-002"))
    seed_companies(make_company("COMP-001"))

    async def scenario():
        await portal.add_placement(placement_form(status="Offer Letter"))
        return await portal.dashboard()

    stats = run(portal, scenario)

    assert stats.total_students == 2
    assert stats.successful_placements == 1
    assert stats.placement_rate == 50
