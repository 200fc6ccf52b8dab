"""
Revi Audit — Report generation pipeline

  submission
      -> ReportAssembler loads company + ordered answers
          -> client and internal prompts generated concurrently (Gemini)
              -> both texts stored as new Report rows
                  -> Q&A transcript rendered to DOCX
                      -> partner email and agency email sent concurrently

The partner email is the deliverable: its failure fails the request.  The
agency package is best-effort and only reported back to the caller.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import EmailDeliveryError, RecipientMissingError
from app.models.company import Company
from app.models.submission import Report
from app.services.document_service import DOCX_MIME
from app.services.email_service import (
    Attachment,
    EmailResult,
    EmailService,
    get_email_service,
)
from app.services.gemini_service import GeminiService, get_gemini_service
from app.services.prompts import client_report_prompt, internal_agency_prompt
from app.services.report_assembler import (
    QADocument,
    ReportAssembler,
    format_submission_date,
    question_answer_pairs,
)

logger = structlog.get_logger("audit.report_service")

REPORT_SUCCESS_MESSAGE = "Report generated and sent successfully!"
DOCUMENT_SUCCESS_MESSAGE = "Document generated and sent successfully!"


def client_report_title(company_name: str) -> str:
    return f"{company_name} Technology & Workflow Opportunity Report"


def internal_report_title(company_name: str) -> str:
    return f"Internal Agency Report - {company_name}"


class ReportService:
    """Generates the AI reports for a submission and delivers them."""

    def __init__(
        self,
        assembler: ReportAssembler | None = None,
        gemini: GeminiService | None = None,
        email_service: EmailService | None = None,
    ) -> None:
        self._assembler = assembler or ReportAssembler()
        self._gemini = gemini
        self._email = email_service

    @property
    def gemini(self) -> GeminiService:
        if self._gemini is None:
            self._gemini = get_gemini_service()
        return self._gemini

    @property
    def email(self) -> EmailService:
        if self._email is None:
            self._email = get_email_service()
        return self._email

    async def resolve_partner_email(
        self,
        company: Company,
        db_session: AsyncSession,
        override: str | None = None,
    ) -> str:
        """Pick the report recipient for a company.

        Order: explicit override, the partner's ``provider_email``, the
        company's own ``provider_email``.
        """
        if override:
            return override

        if company.partner_id is not None:
            partner = await db_session.get(Company, company.partner_id)
            if partner is not None and partner.provider_email:
                return partner.provider_email

        if company.provider_email:
            return company.provider_email

        raise RecipientMissingError(
            f"No recipient email configured for company {company.name!r}"
        )

    async def generate_and_dispatch(
        self,
        submission_id: int,
        db_session: AsyncSession,
        model: str | None = None,
        email: str | None = None,
    ) -> dict[str, Any]:
        """Run the whole pipeline for one submission.

        Raises
        ------
        SubmissionNotFoundError, CompanyNotFoundError
            From the assembler.
        RecipientMissingError
            When no partner recipient can be determined.
        ReportGenerationError
            When the AI text generator fails for either report.
        EmailDeliveryError
            When the partner email could not be sent.
        """
        log = logger.bind(submission_id=submission_id)
        log.info("report_pipeline_start", model=model)

        data = await self._assembler.load(submission_id, db_session, include_unanswered=True)
        company = data.company
        recipient = await self.resolve_partner_email(company, db_session, email)

        now = datetime.now(timezone.utc)
        user_answers = question_answer_pairs(data)
        client_text, internal_text = await asyncio.gather(
            self.gemini.generate_report(
                client_report_prompt(company.name, company.industry, now),
                user_answers,
                model=model,
            ),
            self.gemini.generate_report(
                internal_agency_prompt(company.name, company.industry, company.size, now),
                user_answers,
                model=model,
            ),
        )

        client_report = Report(
            submission_id=submission_id,
            title=client_report_title(company.name),
            content=client_text,
            generated_at=now,
        )
        internal_report = Report(
            submission_id=submission_id,
            title=internal_report_title(company.name),
            content=internal_text,
            generated_at=now,
        )
        db_session.add_all([client_report, internal_report])
        await db_session.flush()
        await db_session.commit()
        report_ids = [client_report.id, internal_report.id]
        log.info("reports_persisted", report_ids=report_ids)

        qa = await asyncio.to_thread(self._assembler.render_qa_document, data)

        partner_result, agency_result = await asyncio.gather(
            self.email.send_report_email(
                email=recipient,
                report_text=client_text,
                subject=client_report_title(company.name),
                attachment_name=f"{company.name}-audit-report",
            ),
            self._send_agency_package(company.name, client_text, internal_text, qa),
        )

        if not agency_result.success:
            log.warning("agency_email_failed", error=agency_result.error)

        if not partner_result.success:
            log.error("partner_email_failed", recipient=recipient, error=partner_result.error)
            raise EmailDeliveryError()

        log.info("report_pipeline_complete", recipient=recipient)
        return {
            "message": REPORT_SUCCESS_MESSAGE,
            "partnerEmailResult": partner_result.to_dict(),
            "agencyEmailResult": agency_result.to_dict(),
            "reportIds": report_ids,
            "report": client_text,
        }

    async def _send_agency_package(
        self,
        company_name: str,
        client_text: str,
        internal_text: str,
        qa: QADocument,
    ) -> EmailResult:
        agency_email = get_settings().AGENCY_EMAIL
        if not agency_email:
            return EmailResult(success=False, error="Missing AGENCY_EMAIL")
        return await self.email.send_agency_email(
            email=agency_email,
            company_name=company_name,
            client_report=client_text,
            internal_report=internal_text,
            qa_document=Attachment(qa.file_name, qa.docx_bytes, DOCX_MIME),
        )

    async def export_qa_document(
        self,
        submission_id: int,
        email: str,
        db_session: AsyncSession,
    ) -> dict[str, Any]:
        """Render the Q&A transcript and email it to ``email``.

        Raises ``EmailDeliveryError`` when sending fails.
        """
        log = logger.bind(submission_id=submission_id)
        qa = await self._assembler.generate_qa_document(submission_id, db_session)
        data = qa.data

        result = await self.email.send_docx_email(
            email=email,
            docx_bytes=qa.docx_bytes,
            file_name=qa.file_name,
            company_name=data.company.name,
            industry=str(getattr(data.company.industry, "value", data.company.industry)),
            submission_date=format_submission_date(data.submission.created_at),
            total_questions=data.total_questions,
        )
        if not result.success:
            log.error("qa_document_email_failed", error=result.error)
            raise EmailDeliveryError("Failed to send email with document attachment")

        log.info("qa_document_sent", file_name=qa.file_name)
        return {
            "message": DOCUMENT_SUCCESS_MESSAGE,
            "emailData": result.to_dict(),
            "documentInfo": {
                "fileName": qa.file_name,
                "companyName": data.company.name,
                "totalQuestions": data.total_questions,
            },
        }


_report_service: ReportService | None = None


def get_report_service() -> ReportService:
    global _report_service
    if _report_service is None:
        _report_service = ReportService()
    return _report_service
