"""
Revi Audit — Answers API

Answers normally arrive through ``POST /submissions/complete``; these
endpoints exist for corrections.  An answer cannot be moved to another
submission.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_or_404
from app.api.pagination import PageParams, page_params, paginate
from app.database import get_db
from app.models.form import Question, QuestionCategory
from app.models.submission import Answer, Submission
from app.schemas.common import MessageResponse, Page
from app.schemas.submission import AnswerCreate, AnswerResponse, AnswerUpdate

logger = structlog.get_logger("audit.api.answers")

router = APIRouter()


async def _ensure_question_on_form(question_id: int, submission: Submission, db: AsyncSession) -> None:
    """A submission may only hold answers to questions of its own form."""
    await get_or_404(db, Question, question_id, "Question")
    form_id = await db.scalar(
        select(QuestionCategory.form_id)
        .join(Question, Question.category_id == QuestionCategory.id)
        .where(Question.id == question_id)
    )
    if form_id != submission.form_id:
        logger.warning(
            "answer_question_form_mismatch",
            question_id=question_id,
            question_form_id=form_id,
            submission_id=submission.id,
            submission_form_id=submission.form_id,
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Question {question_id} does not belong to form {submission.form_id}.",
        )


@router.get("/", response_model=Page[AnswerResponse], summary="List answers")
async def list_answers(
    submission_id: Optional[int] = Query(None, alias="submissionId"),
    question_id: Optional[int] = Query(None, alias="questionId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Answer)
    if submission_id is not None:
        stmt = stmt.where(Answer.submission_id == submission_id)
    if question_id is not None:
        stmt = stmt.where(Answer.question_id == question_id)
    return await paginate(db, stmt, params, Answer.id)


@router.get("/{answer_id}", response_model=AnswerResponse, summary="Get answer")
async def get_answer(answer_id: int, db: AsyncSession = Depends(get_db)) -> Answer:
    return await get_or_404(db, Answer, answer_id, "Answer")


@router.post(
    "/",
    response_model=AnswerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create answer",
)
async def create_answer(payload: AnswerCreate, db: AsyncSession = Depends(get_db)) -> Answer:
    submission = await get_or_404(db, Submission, payload.submission_id, "Submission")
    await _ensure_question_on_form(payload.question_id, submission, db)
    answer = Answer(**payload.model_dump())
    db.add(answer)
    await db.flush()
    return answer


@router.put("/{answer_id}", response_model=AnswerResponse, summary="Update answer")
async def update_answer(
    answer_id: int,
    payload: AnswerUpdate,
    db: AsyncSession = Depends(get_db),
) -> Answer:
    answer = await get_or_404(db, Answer, answer_id, "Answer")
    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "question_id" in update_data:
        submission = await get_or_404(db, Submission, answer.submission_id, "Submission")
        await _ensure_question_on_form(update_data["question_id"], submission, db)

    for field, value in update_data.items():
        setattr(answer, field, value)
    await db.flush()
    logger.info("update_answer_complete", answer_id=answer_id, updated_fields=list(update_data))
    return answer


@router.delete("/{answer_id}", response_model=MessageResponse, summary="Delete answer")
async def delete_answer(answer_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    answer = await get_or_404(db, Answer, answer_id, "Answer")
    await db.delete(answer)
    await db.flush()
    return {"message": f"Answer {answer_id} deleted."}
