"""
Revi Audit — Email dispatch

Delivers audit artifacts through Resend.  HTML bodies are rendered from the
Jinja2 templates under ``app/templates/emails``; attachments are produced by
``app.services.document_service``.

``EmailService.send`` never raises: every failure is returned as an
``EmailResult`` with ``success=False`` so callers decide which failures are
fatal.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

import resend
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import get_settings
from app.services.document_service import (
    DOCX_MIME,
    FORMAT_MARKDOWN,
    PDF_MIME,
    render_docx,
    render_pdf,
)

logger = structlog.get_logger("audit.email_service")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

AGENCY_PACKAGE_CONTENTS = [
    {
        "title": "Client Report",
        "description": "Professional report formatted for client presentation "
        "containing insights and recommendations.",
        "color": "#667eea",
    },
    {
        "title": "Internal Agency Report",
        "description": "Detailed internal analysis with strategic insights for "
        "agency use and client management.",
        "color": "#764ba2",
    },
    {
        "title": "Q&A Document",
        "description": "Complete question and answer document with all client "
        "responses for reference.",
        "color": "#28a745",
    },
]


@dataclass
class Attachment:
    filename: str
    content: bytes
    content_type: str

    def to_resend(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "content": list(self.content),
            "content_type": self.content_type,
        }


@dataclass
class EmailResult:
    success: bool
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            payload["error"] = self.error
        if self.data:
            payload["data"] = self.data
        return payload


def ensure_suffix(name: str, suffix: str) -> str:
    return name if name.endswith(suffix) else f"{name}{suffix}"


def render_template(name: str, **context: Any) -> str:
    context.setdefault("sent_at", datetime.now())
    return _templates.get_template(name).render(**context)


class EmailService:
    """Thin Resend wrapper plus the audit-specific email compositions."""

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Sequence[Attachment] = (),
    ) -> EmailResult:
        settings = get_settings()
        log = logger.bind(to=to, subject=subject, attachments=len(attachments))

        if not settings.RESEND_API_KEY:
            log.warning("email_missing_api_key")
            return EmailResult(success=False, error="Missing RESEND_API_KEY")

        resend.api_key = settings.RESEND_API_KEY
        params: dict[str, Any] = {
            "from": settings.FROM_EMAIL,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if attachments:
            params["attachments"] = [a.to_resend() for a in attachments]

        try:
            response = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as exc:
            log.warning("email_send_failed", error=str(exc))
            return EmailResult(success=False, error=str(exc) or "Failed to send email")

        provider_id = None
        if isinstance(response, dict):
            provider_id = response.get("id")
        elif hasattr(response, "id"):
            provider_id = response.id

        log.info("email_sent", provider_message_id=provider_id)
        return EmailResult(success=True, data={"id": provider_id})

    # ── Compositions ──────────────────────────────────────────────────────

    async def send_report_email(
        self,
        email: str,
        report_text: str,
        subject: str,
        attachment_name: str,
        fmt: str = FORMAT_MARKDOWN,
        additional_attachments: Sequence[Attachment] = (),
    ) -> EmailResult:
        """Email one report rendered as a DOCX attachment."""
        file_name = ensure_suffix(attachment_name, ".docx")
        try:
            docx_bytes = await asyncio.to_thread(render_docx, report_text, subject, fmt)
        except Exception as exc:
            logger.exception("report_email_render_failed", subject=subject)
            return EmailResult(success=False, error=str(exc))

        html = render_template(
            "report_email.html",
            subject=subject,
            recipient=email,
            attachment_name=file_name,
        )
        result = await self.send(
            email,
            subject,
            html,
            [Attachment(file_name, docx_bytes, DOCX_MIME), *additional_attachments],
        )
        if result.success:
            result.data.update(
                {
                    "recipient": email,
                    "subject": subject,
                    "attachmentName": file_name,
                    "format": fmt,
                }
            )
        return result

    async def send_agency_email(
        self,
        email: str,
        company_name: str,
        client_report: str,
        internal_report: str,
        qa_document: Attachment,
    ) -> EmailResult:
        """Email the full audit package (client, internal and Q&A documents)."""
        try:
            client_docx, internal_docx = await asyncio.gather(
                asyncio.to_thread(render_docx, client_report, "Client Report"),
                asyncio.to_thread(render_docx, internal_report, "Internal Agency Report"),
            )
        except Exception as exc:
            logger.exception("agency_email_render_failed", company_name=company_name)
            return EmailResult(success=False, error=str(exc))

        html = render_template(
            "agency_email.html",
            company_name=company_name,
            contents=AGENCY_PACKAGE_CONTENTS,
        )
        attachments = [
            Attachment(f"{company_name}-client-report.docx", client_docx, DOCX_MIME),
            Attachment(f"{company_name}-internal-agency-report.docx", internal_docx, DOCX_MIME),
            qa_document,
        ]
        return await self.send(
            email,
            f"Complete Audit Package - {company_name}",
            html,
            attachments,
        )

    async def send_docx_email(
        self,
        email: str,
        docx_bytes: bytes,
        file_name: str,
        company_name: str,
        industry: str,
        submission_date: str,
        total_questions: int,
    ) -> EmailResult:
        """Email the Q&A transcript of one submission."""
        html = render_template(
            "docx_email.html",
            company_name=company_name,
            industry=industry,
            submission_date=submission_date,
            total_questions=total_questions,
            file_name=file_name,
        )
        result = await self.send(
            email,
            f"{company_name} - Audit Responses Document",
            html,
            [Attachment(file_name, docx_bytes, DOCX_MIME)],
        )
        if result.success:
            result.data.update(
                {
                    "fileName": file_name,
                    "companyName": company_name,
                    "totalQuestions": total_questions,
                }
            )
        return result

    async def send_pdf_email(
        self,
        email: str,
        text: str,
        subject: str,
        attachment_name: str,
        fmt: str = FORMAT_MARKDOWN,
    ) -> EmailResult:
        """Email arbitrary text rendered as a PDF attachment."""
        file_name = ensure_suffix(attachment_name, ".pdf")
        try:
            pdf_bytes = await asyncio.to_thread(render_pdf, text, subject, fmt)
        except Exception as exc:
            logger.exception("pdf_email_render_failed", subject=subject)
            return EmailResult(success=False, error=str(exc))

        html = render_template(
            "report_email.html",
            subject=subject,
            recipient=email,
            attachment_name=file_name,
        )
        result = await self.send(
            email, subject, html, [Attachment(file_name, pdf_bytes, PDF_MIME)]
        )
        if result.success:
            result.data.update(
                {
                    "recipient": email,
                    "subject": subject,
                    "attachmentName": file_name,
                    "format": fmt,
                }
            )
        return result


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
