"""Distribution stage: push student rows to company target sheets."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date

import structlog

from core import verbose
from core.context import PortalContext
from core.errors import PortalError, ValidationError
from gateway.codec import REFERRAL_COLUMNS
from gateway.store import RemoteStoreGateway, WriteResult
from matching.eligibility import match_companies_for_student
from schemas.company import Company
from schemas.distribution import DistributionOutcome, DistributionReport, NoOp, Referral
from schemas.student import Student

logger = structlog.get_logger(__name__)


class DistributionOrchestrator:
    """Coordinates matching and gateway writes for distribution actions."""

    def __init__(self, gateway: RemoteStoreGateway, ctx: PortalContext):
        self.gateway = gateway
        self.ctx = ctx

    async def distribute_to_companies(
        self,
        students: Sequence[Student],
        company_ids: Sequence[str],
        cancel: asyncio.Event | None = None,
    ) -> DistributionReport:
        """Send ``students`` to each company in ``company_ids``, in order.

        Companies are handled one at a time with a pacing delay in between.
        A failed company is recorded and the loop moves on. Setting ``cancel``
        stops further companies from being contacted; calls already issued
        run to completion.
        """
        if not students:
            raise ValidationError("No students selected for distribution")

        today = date.today()
        referrals = [
            Referral(
                student=s,
                date_sent=today,
                review_status=self.ctx.portal.initial_review_status,
            )
            for s in students
        ]
        report = DistributionReport(
            student_ids=[s.student_id for s in students],
            total=len(company_ids),
        )
        pacing = self.ctx.settings.distribution_pacing_seconds

        logger.info(
            "Distributing students",
            students=len(students),
            companies=len(company_ids),
        )

        for position, company_id in enumerate(company_ids):
            if cancel is not None and cancel.is_set():
                logger.warning(
                    "Distribution cancelled",
                    remaining=len(company_ids) - position,
                )
                report.cancelled = True
                break

            outcome = await self._send_to_company(referrals, company_id)
            report.outcomes.append(outcome)
            verbose.outcome(company_id, outcome.success, outcome.error or "")
            if outcome.success:
                report.success_count += 1

            if pacing > 0 and position < len(company_ids) - 1:
                await asyncio.sleep(pacing)

        self.ctx.record_distribution(len(students), report.success_count)
        self.ctx.log_activity(
            "distribution_summary",
            ", ".join(report.student_ids),
            f"Data distributed to {report.success_count}/{report.total} companies",
        )
        return report

    async def auto_distribute_to_eligible_companies(
        self,
        student: Student,
        cancel: asyncio.Event | None = None,
    ) -> DistributionReport | NoOp:
        """Distribute one student to every company it is eligible for.

        Returns ``NoOp`` without writing anything when no company matches.
        """
        companies: list[Company] = await self.gateway.fetch_rows(self.ctx.portal.sheets.companies)
        eligible = match_companies_for_student(
            student, companies, self.ctx.portal.department_lookup()
        )

        if not eligible:
            self.ctx.log_activity(
                "distribution_skipped",
                student.student_id,
                f"No eligible companies found for {student.full_name}",
            )
            return NoOp(student_id=student.student_id)

        logger.info(
            "Eligible companies found",
            student_id=student.student_id,
            companies=[c.company_id for c in eligible],
        )
        return await self.distribute_to_companies(
            [student], [c.company_id for c in eligible], cancel=cancel
        )

    async def _send_to_company(
        self, referrals: Sequence[Referral], company_id: str
    ) -> DistributionOutcome:
        sheet = self.ctx.portal.company_sheet(company_id)
        try:
            await self.gateway.ensure_headers(sheet, REFERRAL_COLUMNS)
            result: WriteResult
            if len(referrals) == 1:
                result = await self.gateway.append_row(sheet, referrals[0])
            else:
                result = await self.gateway.batch_append(sheet, referrals)
        except PortalError as e:
            logger.warning("Failed to send data to company", company_id=company_id, error=str(e))
            return DistributionOutcome(company_id=company_id, success=False, error=str(e))

        self.ctx.log_activity("data_distributed", company_id, f"{len(referrals)} students")
        return DistributionOutcome(
            company_id=company_id, success=True, response=result.model_dump(mode="json")
        )
