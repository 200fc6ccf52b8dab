"""
Revi Audit — Submissions API

``POST /complete`` is the survey's final step: it validates the answers
against the company's form and stores the submission atomically.  The
remaining endpoints are plain CRUD.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_or_404
from app.api.pagination import PageParams, page_params, paginate
from app.database import get_db
from app.models.company import Company
from app.models.form import Form
from app.models.submission import Answer, Submission
from app.schemas.common import MessageResponse, Page
from app.schemas.submission import (
    CompleteSubmissionRequest,
    CompleteSubmissionResponse,
    SubmissionCreate,
    SubmissionResponse,
    SubmissionUpdate,
)
from app.services.company_cache import CompanyCache, get_company_cache
from app.services.form_mapper import SubmittedAnswer, submitted_answers_from_form_data
from app.services.submission_service import SubmissionService

logger = structlog.get_logger("audit.api.submissions")

router = APIRouter()

SUBMISSION_SAVED_MESSAGE = "Form submission saved successfully"


def submitted_answers(payload: CompleteSubmissionRequest) -> list[SubmittedAnswer]:
    """Structured ``answers`` win; legacy ``formData`` is converted."""
    if payload.answers:
        return [SubmittedAnswer(question_id=a.question_id, value=a.value) for a in payload.answers]
    if payload.form_data:
        return submitted_answers_from_form_data(payload.form_data)
    return []


# ──────────────────────────────────────────────────────────────────────────────
# POST /complete — Store a finished survey
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/complete",
    response_model=CompleteSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Complete a survey submission",
)
async def complete_submission(
    payload: CompleteSubmissionRequest,
    db: AsyncSession = Depends(get_db),
    cache: CompanyCache = Depends(get_company_cache),
) -> dict[str, Any]:
    """Validate the submitted answers and persist them.

    Unknown question ids and ids from other forms are skipped and listed in
    ``invalidQuestionIds``.  A payload with no usable answer is rejected
    with 400 and nothing is written.
    """
    service = SubmissionService(company_cache=cache)
    completed = await service.complete_submission(
        db,
        submitted_answers(payload),
        company_name=payload.company_name,
        company_id=payload.company_id,
        form_id=payload.form_id,
    )
    return {
        "success": True,
        "message": SUBMISSION_SAVED_MESSAGE,
        "data": {
            "submission": completed.submission,
            "answers": completed.answers,
            "invalid_question_ids": completed.invalid_question_ids,
        },
    }


# ──────────────────────────────────────────────────────────────────────────────
# CRUD
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/", response_model=Page[SubmissionResponse], summary="List submissions")
async def list_submissions(
    company_id: Optional[int] = Query(None, alias="companyId"),
    form_id: Optional[int] = Query(None, alias="formId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Submission)
    if company_id is not None:
        stmt = stmt.where(Submission.company_id == company_id)
    if form_id is not None:
        stmt = stmt.where(Submission.form_id == form_id)
    return await paginate(db, stmt, params, Submission.created_at, Submission.id)


@router.get("/{submission_id}", response_model=SubmissionResponse, summary="Get submission")
async def get_submission(submission_id: int, db: AsyncSession = Depends(get_db)) -> Submission:
    return await get_or_404(db, Submission, submission_id, "Submission")


@router.post(
    "/",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an empty submission",
)
async def create_submission(
    payload: SubmissionCreate,
    db: AsyncSession = Depends(get_db),
) -> Submission:
    await get_or_404(db, Form, payload.form_id, "Form")
    await get_or_404(db, Company, payload.company_id, "Company")
    submission = Submission(**payload.model_dump())
    db.add(submission)
    await db.flush()
    logger.info("create_submission_complete", submission_id=submission.id)
    return submission


@router.put("/{submission_id}", response_model=SubmissionResponse, summary="Update submission")
async def update_submission(
    submission_id: int,
    payload: SubmissionUpdate,
    db: AsyncSession = Depends(get_db),
) -> Submission:
    submission = await get_or_404(db, Submission, submission_id, "Submission")
    update_data = payload.model_dump(exclude_unset=True)
    reassigned = [
        field
        for field in ("form_id", "company_id")
        if update_data.get(field) is not None and update_data[field] != getattr(submission, field)
    ]
    if reassigned and await db.scalar(select(exists().where(Answer.submission_id == submission_id))):
        logger.warning("update_submission_has_answers", submission_id=submission_id, fields=reassigned)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Submission {submission_id} already has answers; its form and company are fixed.",
        )
    if update_data.get("form_id") is not None:
        await get_or_404(db, Form, update_data["form_id"], "Form")
    if update_data.get("company_id") is not None:
        await get_or_404(db, Company, update_data["company_id"], "Company")

    for field, value in update_data.items():
        if value is not None:
            setattr(submission, field, value)
    await db.flush()
    return submission


@router.delete("/{submission_id}", response_model=MessageResponse, summary="Delete submission")
async def delete_submission(submission_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    submission = await get_or_404(db, Submission, submission_id, "Submission")
    await db.delete(submission)
    await db.flush()
    logger.info("delete_submission_complete", submission_id=submission_id)
    return {"message": f"Submission {submission_id} deleted."}
