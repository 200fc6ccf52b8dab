"""
Revi Audit — Ad-hoc email API

``POST /send-email`` renders arbitrary Markdown or plain text to PDF and
emails it.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.schemas.report import SendEmailRequest
from app.services.email_service import EmailService, get_email_service

logger = structlog.get_logger("audit.api.email")

router = APIRouter()

EMAIL_SENT_MESSAGE = "Email sent successfully"
EMAIL_FAILED_MESSAGE = "There was a problem sending your email"


@router.post("/send-email", summary="Email text rendered as a PDF")
async def send_email(
    payload: SendEmailRequest,
    email_service: EmailService = Depends(get_email_service),
) -> Any:
    log = logger.bind(recipient=payload.email, subject=payload.subject)

    result = await email_service.send_pdf_email(
        email=payload.email,
        text=payload.text,
        subject=payload.subject,
        attachment_name=payload.attachment_name,
        fmt=payload.format,
    )
    if not result.success:
        log.error("send_email_failed", error=result.error)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": EMAIL_FAILED_MESSAGE, "code": "EMAIL_SEND_FAILED"},
        )

    log.info("send_email_complete")
    return {"success": True, "message": EMAIL_SENT_MESSAGE, "data": result.data}
