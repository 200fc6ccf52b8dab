from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel
from app.schemas.company import EmailAddress, RequiredEmail


class ReportCreate(CamelModel):
    submission_id: int
    title: str = Field(min_length=1, max_length=255)
    content: str
    generated_at: Optional[datetime] = None


class ReportUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None


class ReportResponse(CamelModel):
    id: int
    submission_id: int
    title: str
    content: str
    generated_at: datetime
    created_at: datetime


# ── Generation and delivery ──────────────────────────────────────────────────

class GenerateReportRequest(CamelModel):
    submission_id: int
    model: Optional[str] = None
    email: EmailAddress = None


class GenerateReportResponse(CamelModel):
    message: str
    partner_email_result: dict[str, Any]
    agency_email_result: dict[str, Any]
    report_ids: list[int]
    report: str


class ExportDocxRequest(CamelModel):
    submission_id: int
    email: RequiredEmail


class DocumentInfo(CamelModel):
    file_name: str
    company_name: str
    total_questions: int


class ExportDocxResponse(CamelModel):
    message: str
    email_data: dict[str, Any]
    document_info: DocumentInfo


class SendEmailRequest(CamelModel):
    email: RequiredEmail
    text: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    attachment_name: str = Field("report", min_length=1)
    format: Literal["markdown", "plain"] = "markdown"
