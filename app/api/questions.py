"""
Revi Audit — Questions API
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
from app.models.form import Question, QuestionCategory, QuestionType
from app.schemas.common import MessageResponse, Page
from app.schemas.question import QuestionCreate, QuestionResponse, QuestionUpdate

logger = structlog.get_logger("audit.api.questions")

router = APIRouter()


@router.get("/", response_model=Page[QuestionResponse], summary="List questions")
async def list_questions(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    form_id: Optional[int] = Query(None, alias="formId"),
    type: Optional[QuestionType] = Query(None),
    required: Optional[bool] = Query(None),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Question)
    if category_id is not None:
        stmt = stmt.where(Question.category_id == category_id)
    if form_id is not None:
        stmt = stmt.join(QuestionCategory, QuestionCategory.id == Question.category_id).where(
            QuestionCategory.form_id == form_id
        )
    if type is not None:
        stmt = stmt.where(Question.type == type)
    if required is not None:
        stmt = stmt.where(Question.required.is_(required))
    return await paginate(db, stmt, params, Question.order, Question.id)


@router.get("/{question_id}", response_model=QuestionResponse, summary="Get question")
async def get_question(question_id: int, db: AsyncSession = Depends(get_db)) -> Question:
    return await get_or_404(db, Question, question_id, "Question")


@router.post(
    "/",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create question",
)
async def create_question(
    payload: QuestionCreate,
    db: AsyncSession = Depends(get_db),
) -> Question:
    await get_or_404(db, QuestionCategory, payload.category_id, "Question category")
    question = Question(**payload.model_dump())
    db.add(question)
    await db.flush()
    logger.info("create_question_complete", question_id=question.id, type=question.type)
    return question


@router.put("/{question_id}", response_model=QuestionResponse, summary="Update question")
async def update_question(
    question_id: int,
    payload: QuestionUpdate,
    db: AsyncSession = Depends(get_db),
) -> Question:
    question = await get_or_404(db, Question, question_id, "Question")
    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("category_id") is not None:
        await get_or_404(db, QuestionCategory, update_data["category_id"], "Question category")

    for field, value in update_data.items():
        setattr(question, field, value)
    await db.flush()
    logger.info("update_question_complete", question_id=question_id, updated_fields=list(update_data))
    return question


@router.delete("/{question_id}", response_model=MessageResponse, summary="Delete question")
async def delete_question(question_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    question = await get_or_404(db, Question, question_id, "Question")
    await db.delete(question)
    await db.flush()
    logger.info("delete_question_complete", question_id=question_id)
    return {"message": f"Question {question_id} deleted."}
