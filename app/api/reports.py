"""
Revi Audit — Reports API

  - ``POST /generate``     AI client + internal reports for a submission,
                           stored and emailed to the partner and the agency
  - ``POST /export-docx``  Q&A transcript of a submission emailed as DOCX
  - CRUD over stored ``Report`` rows

Every generation inserts new rows; existing reports are never rewritten by
the pipeline.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_or_404
from app.api.pagination import PageParams, page_params, paginate
from app.database import get_db
from app.models.submission import Report, Submission
from app.schemas.common import MessageResponse, Page
from app.schemas.report import (
    ExportDocxRequest,
    ExportDocxResponse,
    GenerateReportRequest,
    GenerateReportResponse,
    ReportCreate,
    ReportResponse,
    ReportUpdate,
)
from app.services.report_service import ReportService, get_report_service

logger = structlog.get_logger("audit.api.reports")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /generate — AI report pipeline
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/generate",
    response_model=GenerateReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate and email the audit reports for a submission",
)
async def generate_report(
    payload: GenerateReportRequest,
    db: AsyncSession = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> dict[str, Any]:
    """Generate the client and internal reports and deliver them.

    Fails with 502 when the AI generator or the partner email fails.  A
    failed agency email is reported in ``agencyEmailResult`` only.
    """
    logger.info("generate_report_request", submission_id=payload.submission_id)
    return await service.generate_and_dispatch(
        payload.submission_id,
        db,
        model=payload.model,
        email=payload.email,
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /export-docx — Q&A transcript by email
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/export-docx",
    response_model=ExportDocxResponse,
    summary="Email the Q&A document of a submission",
)
async def export_docx(
    payload: ExportDocxRequest,
    db: AsyncSession = Depends(get_db),
    service: ReportService = Depends(get_report_service),
) -> dict[str, Any]:
    logger.info("export_docx_request", submission_id=payload.submission_id)
    return await service.export_qa_document(payload.submission_id, payload.email, db)


# ──────────────────────────────────────────────────────────────────────────────
# CRUD
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/", response_model=Page[ReportResponse], summary="List reports")
async def list_reports(
    submission_id: Optional[int] = Query(None, alias="submissionId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Report)
    if submission_id is not None:
        stmt = stmt.where(Report.submission_id == submission_id)
    return await paginate(db, stmt, params, Report.generated_at, Report.id)


@router.get("/{report_id}", response_model=ReportResponse, summary="Get report")
async def get_report(report_id: int, db: AsyncSession = Depends(get_db)) -> Report:
    return await get_or_404(db, Report, report_id, "Report")


@router.post(
    "/",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a report",
)
async def create_report(payload: ReportCreate, db: AsyncSession = Depends(get_db)) -> Report:
    await get_or_404(db, Submission, payload.submission_id, "Submission")
    data = payload.model_dump(exclude_none=True)
    report = Report(**data)
    db.add(report)
    await db.flush()
    return report


@router.put("/{report_id}", response_model=ReportResponse, summary="Update report")
async def update_report(
    report_id: int,
    payload: ReportUpdate,
    db: AsyncSession = Depends(get_db),
) -> Report:
    report = await get_or_404(db, Report, report_id, "Report")
    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    for field, value in update_data.items():
        setattr(report, field, value)
    await db.flush()
    return report


@router.delete("/{report_id}", response_model=MessageResponse, summary="Delete report")
async def delete_report(report_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    report = await get_or_404(db, Report, report_id, "Report")
    await db.delete(report)
    await db.flush()
    return {"message": f"Report {report_id} deleted."}
