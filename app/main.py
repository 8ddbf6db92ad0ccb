"""FastAPI application entry point."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from core.config import snapshot_config
from core.context import PortalContext
from core.errors import (
    BulkImportError,
    NotFoundError,
    PortalError,
    RemoteReadError,
    RemoteWriteError,
    TransportError,
    ValidationError,
)
from core.logging import configure_logging
from orchestration.service import PlacementPortal

STATUS_CODES: dict[type[PortalError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    TransportError: 502,
    RemoteReadError: 502,
    RemoteWriteError: 502,
    BulkImportError: 502,
}


class DistributionRequest(BaseModel):
    students: list[dict[str, Any]] = Field(..., min_length=1)
    company_ids: list[str] = Field(..., alias="companyIds", min_length=1)

    model_config = {"populate_by_name": True}


def get_portal(request: Request) -> PlacementPortal:
    return request.app.state.portal


def create_app(portal: PlacementPortal | None = None) -> FastAPI:
    """Build the API. Without ``portal`` one is booted from configuration on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        service = portal
        if service is None:
            ctx = PortalContext.boot()
            configure_logging(ctx.settings.log_level)
            service = PlacementPortal.from_context(ctx)
        async with service:
            app.state.portal = service
            yield

    app = FastAPI(
        title="Placement Portal API",
        description="Student placement records and company data distribution",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        status = next(
            (code for cls, code in STATUS_CODES.items() if isinstance(exc, cls)), 500
        )
        body: dict[str, Any] = {"error": type(exc).__name__, "message": str(exc)}
        if isinstance(exc, BulkImportError):
            body["report"] = exc.report.model_dump(mode="json", by_alias=True)
        return JSONResponse(status_code=status, content=body)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Placement Portal API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    @app.get("/config")
    async def config(portal: PlacementPortal = Depends(get_portal)):
        return snapshot_config(portal.ctx.settings, portal.ctx.portal)

    @app.get("/students")
    async def list_students(portal: PlacementPortal = Depends(get_portal)):
        return await portal.get_students()

    @app.post("/students", status_code=201)
    async def create_student(
        record: dict[str, Any],
        distribute: bool = False,
        portal: PlacementPortal = Depends(get_portal),
    ):
        student = await portal.add_student(record)
        body: dict[str, Any] = {"student": student}
        if distribute:
            body["distribution"] = await portal.auto_distribute_to_eligible_companies(student)
        return body

    @app.put("/students/{student_id}")
    async def replace_student(
        student_id: str,
        record: dict[str, Any],
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.update_student(student_id, record)

    @app.post("/students/import")
    async def import_students(
        rows: list[dict[str, Any]],
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.bulk_import_students(rows)

    @app.post("/students/{student_id}/distribute")
    async def auto_distribute(
        student_id: str,
        portal: PlacementPortal = Depends(get_portal),
    ):
        students = await portal.get_students()
        student = next((s for s in students if s.student_id == student_id), None)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        return await portal.auto_distribute_to_eligible_companies(student)

    @app.get("/companies")
    async def list_companies(portal: PlacementPortal = Depends(get_portal)):
        return await portal.get_companies()

    @app.post("/companies", status_code=201)
    async def create_company(
        record: dict[str, Any],
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.add_company(record)

    @app.get("/companies/{company_id}/export")
    async def export_company(
        company_id: str,
        format: str = "csv",
        portal: PlacementPortal = Depends(get_portal),
    ):
        exported = await portal.export_for_company(company_id, format)
        if isinstance(exported, str):
            return PlainTextResponse(exported, media_type="text/csv")
        return exported

    @app.get("/placements")
    async def list_placements(portal: PlacementPortal = Depends(get_portal)):
        views = await portal.placement_views()
        return [
            {**v.placement.model_dump(mode="json", by_alias=True), "label": v.label} for v in views
        ]

    @app.post("/placements", status_code=201)
    async def create_placement(
        record: dict[str, Any],
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.add_placement(record)

    @app.put("/placements/{placement_id}")
    async def replace_placement(
        placement_id: str,
        record: dict[str, Any],
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.update_placement(placement_id, record)

    @app.post("/distributions")
    async def distribute(
        request: DistributionRequest,
        portal: PlacementPortal = Depends(get_portal),
    ):
        return await portal.distribute_data_to_companies(request.students, request.company_ids)

    @app.get("/activities")
    async def activities(limit: int = 5, portal: PlacementPortal = Depends(get_portal)):
        return portal.recent_activities(limit)

    @app.get("/dashboard")
    async def dashboard(portal: PlacementPortal = Depends(get_portal)):
        return {
            **(await portal.dashboard()).model_dump(),
            "distribution": portal.ctx.stats.model_dump(mode="json"),
        }

    return app


app = create_app()
