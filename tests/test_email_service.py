"""Tests for EmailService — Resend calls are mocked, renderers are real."""
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from app.services.document_service import DOCX_MIME, PDF_MIME
from app.services.email_service import (
    Attachment,
    EmailResult,
    EmailService,
    ensure_suffix,
)


def _settings(api_key="re_test"):
    return SimpleNamespace(RESEND_API_KEY=api_key, FROM_EMAIL="audit@example.com")


@pytest.fixture
def resend_mock():
    with patch("app.services.email_service.resend") as mock_resend, patch(
        "app.services.email_service.get_settings", return_value=_settings()
    ):
        mock_resend.Emails.send = MagicMock(return_value={"id": "msg_123"})
        yield mock_resend


def _sent_params(resend_mock):
    return resend_mock.Emails.send.call_args.args[0]


class TestHelpers:
    def test_ensure_suffix(self):
        assert ensure_suffix("report", ".pdf") == "report.pdf"
        assert ensure_suffix("report.pdf", ".pdf") == "report.pdf"

    def test_result_to_dict_omits_empty_fields(self):
        assert EmailResult(success=True).to_dict() == {"success": True}
        assert EmailResult(success=False, error="x").to_dict() == {"success": False, "error": "x"}

    def test_attachment_bytes_become_int_list(self):
        assert Attachment("a.pdf", b"\x01\x02", PDF_MIME).to_resend()["content"] == [1, 2]


class TestSend:
    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        with patch("app.services.email_service.get_settings", return_value=_settings("")), patch(
            "app.services.email_service.resend"
        ) as mock_resend:
            result = await EmailService().send("a@example.com", "Hi", "<p>Hi</p>")
        assert result.success is False
        assert result.error == "Missing RESEND_API_KEY"
        mock_resend.Emails.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_success(self, resend_mock):
        result = await EmailService().send("a@example.com", "Hi", "<p>Hi</p>")
        assert result.success is True
        assert result.data == {"id": "msg_123"}
        params = _sent_params(resend_mock)
        assert params["from"] == "audit@example.com"
        assert params["to"] == ["a@example.com"]
        assert "attachments" not in params

    @pytest.mark.asyncio
    async def test_provider_failure_is_returned_not_raised(self, resend_mock):
        resend_mock.Emails.send.side_effect = RuntimeError("rate limited")
        result = await EmailService().send("a@example.com", "Hi", "<p>Hi</p>")
        assert result.success is False
        assert result.error == "rate limited"


class TestCompositions:
    @pytest.mark.asyncio
    async def test_report_email_attaches_docx(self, resend_mock):
        result = await EmailService().send_report_email(
            "client@example.com", "# Report\n\nBody", "Acme - Client Report", "acme-report"
        )
        assert result.success is True
        assert result.data["attachmentName"] == "acme-report.docx"

        params = _sent_params(resend_mock)
        assert params["subject"] == "Acme - Client Report"
        (attachment,) = params["attachments"]
        assert attachment["filename"] == "acme-report.docx"
        assert attachment["content_type"] == DOCX_MIME
        assert "acme-report.docx" in params["html"]

    @pytest.mark.asyncio
    async def test_agency_email_carries_three_documents(self, resend_mock):
        qa = Attachment("Acme_audit_responses.docx", b"PK-qa", DOCX_MIME)
        result = await EmailService().send_agency_email(
            "agency@example.com", "Acme", "# Client", "# Internal", qa
        )
        assert result.success is True

        params = _sent_params(resend_mock)
        assert params["subject"] == "Complete Audit Package - Acme"
        assert [a["filename"] for a in params["attachments"]] == [
            "Acme-client-report.docx",
            "Acme-internal-agency-report.docx",
            "Acme_audit_responses.docx",
        ]
        assert "Internal Agency Report" in params["html"]

    @pytest.mark.asyncio
    async def test_docx_email_subject_and_metadata(self, resend_mock):
        result = await EmailService().send_docx_email(
            "ops@example.com", b"PK", "Acme_audit_responses.docx", "Acme", "retail", "3/7/2024", 4
        )
        assert result.data["totalQuestions"] == 4
        assert _sent_params(resend_mock)["subject"] == "Acme - Audit Responses Document"

    @pytest.mark.asyncio
    async def test_pdf_email(self, resend_mock):
        result = await EmailService().send_pdf_email(
            "a@example.com", "plain words", "Notes", "notes", fmt="plain"
        )
        assert result.success is True
        (attachment,) = _sent_params(resend_mock)["attachments"]
        assert attachment["filename"] == "notes.pdf"
        assert attachment["content_type"] == PDF_MIME
        assert bytes(attachment["content"][:4]) == b"%PDF"
