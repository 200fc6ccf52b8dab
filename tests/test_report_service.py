"""Tests for ReportService — the generate-and-email pipeline.

Gemini and Resend are replaced by mocks; the database, the assembler and
the DOCX renderer are real.
"""
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy import func, select

from app.errors import (
    EmailDeliveryError,
    RecipientMissingError,
    ReportGenerationError,
    SubmissionNotFoundError,
)
from app.models import Report
from app.services.company_cache import CompanyCache
from app.services.email_service import EmailResult
from app.services.form_mapper import SubmittedAnswer
from app.services.report_service import (
    REPORT_SUCCESS_MESSAGE,
    ReportService,
    client_report_title,
)
from app.services.submission_service import SubmissionService


def _email_service(partner_ok=True, agency_ok=True):
    service = MagicMock()
    service.send_report_email = AsyncMock(
        return_value=EmailResult(success=True, data={"id": "p1"})
        if partner_ok
        else EmailResult(success=False, error="bounced")
    )
    service.send_agency_email = AsyncMock(
        return_value=EmailResult(success=True, data={"id": "a1"})
        if agency_ok
        else EmailResult(success=False, error="agency down")
    )
    service.send_docx_email = AsyncMock(return_value=EmailResult(success=True, data={"id": "d1"}))
    return service


def _gemini():
    gemini = MagicMock()

    async def generate(instructions, user_answers, model=None):
        if "internal" in instructions.lower():
            return "# Internal analysis"
        return "# Client report"

    gemini.generate_report = AsyncMock(side_effect=generate)
    return gemini


@pytest.fixture
def agency_settings():
    with patch(
        "app.services.report_service.get_settings",
        return_value=SimpleNamespace(AGENCY_EMAIL="agency@example.com"),
    ):
        yield


async def _submit(db, sample_form, fake_redis):
    q = sample_form.questions
    service = SubmissionService(company_cache=CompanyCache(redis_client=fake_redis))
    completed = await service.complete_submission(
        db,
        [SubmittedAnswer(q["tools"].id, ["CRM"]), SubmittedAnswer(q["goals"].id, "Grow")],
        company_name="Acme Retail",
    )
    return completed.submission


async def _report_count(session_factory):
    async with session_factory() as fresh:
        return (await fresh.execute(select(func.count()).select_from(Report))).scalar_one()


class TestResolvePartnerEmail:
    @pytest.mark.asyncio
    async def test_override_wins(self, db, sample_form):
        service = ReportService()
        assert await service.resolve_partner_email(sample_form.client, db, "x@example.com") == "x@example.com"

    @pytest.mark.asyncio
    async def test_partner_provider_email(self, db, sample_form):
        assert await ReportService().resolve_partner_email(sample_form.client, db) == "partner@example.com"

    @pytest.mark.asyncio
    async def test_own_provider_email_when_partner_has_none(self, db, sample_form):
        sample_form.partner.provider_email = None
        sample_form.client.provider_email = "client@example.com"
        await db.flush()
        assert await ReportService().resolve_partner_email(sample_form.client, db) == "client@example.com"

    @pytest.mark.asyncio
    async def test_no_recipient(self, db, sample_form):
        sample_form.partner.provider_email = None
        await db.flush()
        with pytest.raises(RecipientMissingError):
            await ReportService().resolve_partner_email(sample_form.client, db)


class TestGenerateAndDispatch:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, db, sample_form, fake_redis, agency_settings, session_factory):
        submission = await _submit(db, sample_form, fake_redis)
        email = _email_service()
        service = ReportService(gemini=_gemini(), email_service=email)

        result = await service.generate_and_dispatch(submission.id, db)

        assert result["message"] == REPORT_SUCCESS_MESSAGE
        assert result["report"] == "# Client report"
        assert len(result["reportIds"]) == 2
        assert result["partnerEmailResult"]["success"] is True
        assert result["agencyEmailResult"]["success"] is True
        assert await _report_count(session_factory) == 2

        partner_call = email.send_report_email.await_args.kwargs
        assert partner_call["email"] == "partner@example.com"
        assert partner_call["subject"] == client_report_title("Acme Retail")
        assert partner_call["attachment_name"] == "Acme Retail-audit-report"

        agency_call = email.send_agency_email.await_args.kwargs
        assert agency_call["email"] == "agency@example.com"
        assert agency_call["internal_report"] == "# Internal analysis"
        assert agency_call["qa_document"].filename == "Acme_Retail_audit_responses.docx"
        assert agency_call["qa_document"].content[:2] == b"PK"

    @pytest.mark.asyncio
    async def test_answers_sent_in_display_order(self, db, sample_form, fake_redis, agency_settings):
        submission = await _submit(db, sample_form, fake_redis)
        gemini = _gemini()
        await ReportService(gemini=gemini, email_service=_email_service()).generate_and_dispatch(
            submission.id, db, model="custom-model"
        )

        call = gemini.generate_report.await_args_list[0]
        assert call.args[1] == [
            {"question": "Which tools do you use?", "answer": "CRM"},
            {"question": "What are your goals?", "answer": "Grow"},
        ]
        assert call.kwargs["model"] == "custom-model"

    @pytest.mark.asyncio
    async def test_partner_failure_raises_but_keeps_reports(
        self, db, sample_form, fake_redis, agency_settings, session_factory
    ):
        submission = await _submit(db, sample_form, fake_redis)
        service = ReportService(gemini=_gemini(), email_service=_email_service(partner_ok=False))

        with pytest.raises(EmailDeliveryError):
            await service.generate_and_dispatch(submission.id, db)
        assert await _report_count(session_factory) == 2

    @pytest.mark.asyncio
    async def test_agency_failure_is_reported_not_raised(
        self, db, sample_form, fake_redis, agency_settings
    ):
        submission = await _submit(db, sample_form, fake_redis)
        service = ReportService(gemini=_gemini(), email_service=_email_service(agency_ok=False))

        result = await service.generate_and_dispatch(submission.id, db)
        assert result["agencyEmailResult"] == {"success": False, "error": "agency down"}

    @pytest.mark.asyncio
    async def test_missing_agency_address(self, db, sample_form, fake_redis):
        submission = await _submit(db, sample_form, fake_redis)
        email = _email_service()
        with patch(
            "app.services.report_service.get_settings",
            return_value=SimpleNamespace(AGENCY_EMAIL=""),
        ):
            result = await ReportService(gemini=_gemini(), email_service=email).generate_and_dispatch(
                submission.id, db
            )
        assert result["agencyEmailResult"]["error"] == "Missing AGENCY_EMAIL"
        email.send_agency_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generation_failure_stores_nothing(
        self, db, sample_form, fake_redis, agency_settings, session_factory
    ):
        submission = await _submit(db, sample_form, fake_redis)
        gemini = MagicMock()
        gemini.generate_report = AsyncMock(side_effect=ReportGenerationError("all models failed"))
        email = _email_service()

        with pytest.raises(ReportGenerationError):
            await ReportService(gemini=gemini, email_service=email).generate_and_dispatch(submission.id, db)
        assert await _report_count(session_factory) == 0
        email.send_report_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_submission(self, db):
        with pytest.raises(SubmissionNotFoundError):
            await ReportService(gemini=_gemini(), email_service=_email_service()).generate_and_dispatch(999, db)


class TestExportQaDocument:
    @pytest.mark.asyncio
    async def test_sends_transcript(self, db, sample_form, fake_redis):
        submission = await _submit(db, sample_form, fake_redis)
        email = _email_service()

        result = await ReportService(email_service=email).export_qa_document(
            submission.id, "ops@example.com", db
        )

        assert result["documentInfo"] == {
            "fileName": "Acme_Retail_audit_responses.docx",
            "companyName": "Acme Retail",
            "totalQuestions": 4,
        }
        kwargs = email.send_docx_email.await_args.kwargs
        assert kwargs["email"] == "ops@example.com"
        assert kwargs["industry"] == "retail"
        assert kwargs["docx_bytes"][:2] == b"PK"

    @pytest.mark.asyncio
    async def test_send_failure(self, db, sample_form, fake_redis):
        submission = await _submit(db, sample_form, fake_redis)
        email = _email_service()
        email.send_docx_email = AsyncMock(return_value=EmailResult(success=False, error="nope"))

        with pytest.raises(EmailDeliveryError):
            await ReportService(email_service=email).export_qa_document(submission.id, "ops@example.com", db)
