"""
Revi Audit — Question conditionals API

Conditionals are validated on every write: both questions must exist, be
distinct, and the new dependency must not close a cycle.
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
from app.models.form import Question, QuestionConditional
from app.schemas.common import MessageResponse, Page
from app.schemas.question import (
    QuestionConditionalCreate,
    QuestionConditionalResponse,
    QuestionConditionalUpdate,
)
from app.services.conditional_service import ConditionalService

logger = structlog.get_logger("audit.api.question_conditionals")

router = APIRouter()


async def _validate_edge(
    question_id: int,
    condition_question_id: int,
    db: AsyncSession,
    ignore_conditional_id: int | None = None,
) -> None:
    if question_id == condition_question_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A question cannot depend on itself.",
        )
    await get_or_404(db, Question, question_id, "Question")
    await get_or_404(db, Question, condition_question_id, "Condition question")
    await ConditionalService().ensure_acyclic(
        question_id,
        condition_question_id,
        db,
        ignore_conditional_id=ignore_conditional_id,
    )


@router.get("/", response_model=Page[QuestionConditionalResponse], summary="List conditionals")
async def list_conditionals(
    question_id: Optional[int] = Query(None, alias="questionId"),
    condition_question_id: Optional[int] = Query(None, alias="conditionQuestionId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(QuestionConditional)
    if question_id is not None:
        stmt = stmt.where(QuestionConditional.question_id == question_id)
    if condition_question_id is not None:
        stmt = stmt.where(QuestionConditional.condition_question_id == condition_question_id)
    return await paginate(db, stmt, params, QuestionConditional.created_at, QuestionConditional.id)


@router.get(
    "/{conditional_id}",
    response_model=QuestionConditionalResponse,
    summary="Get conditional",
)
async def get_conditional(
    conditional_id: int,
    db: AsyncSession = Depends(get_db),
) -> QuestionConditional:
    return await get_or_404(db, QuestionConditional, conditional_id, "Question conditional")


@router.post(
    "/",
    response_model=QuestionConditionalResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create conditional",
)
async def create_conditional(
    payload: QuestionConditionalCreate,
    db: AsyncSession = Depends(get_db),
) -> QuestionConditional:
    log = logger.bind(
        question_id=payload.question_id,
        condition_question_id=payload.condition_question_id,
    )
    await _validate_edge(payload.question_id, payload.condition_question_id, db)

    conditional = QuestionConditional(**payload.model_dump())
    db.add(conditional)
    await db.flush()
    log.info("create_conditional_complete", conditional_id=conditional.id)
    return conditional


@router.put(
    "/{conditional_id}",
    response_model=QuestionConditionalResponse,
    summary="Update conditional",
)
async def update_conditional(
    conditional_id: int,
    payload: QuestionConditionalUpdate,
    db: AsyncSession = Depends(get_db),
) -> QuestionConditional:
    conditional = await get_or_404(db, QuestionConditional, conditional_id, "Question conditional")
    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    question_id = update_data.get("question_id", conditional.question_id)
    condition_question_id = update_data.get(
        "condition_question_id", conditional.condition_question_id
    )
    if "question_id" in update_data or "condition_question_id" in update_data:
        await _validate_edge(
            question_id,
            condition_question_id,
            db,
            ignore_conditional_id=conditional.id,
        )

    for field, value in update_data.items():
        setattr(conditional, field, value)
    await db.flush()
    logger.info(
        "update_conditional_complete",
        conditional_id=conditional_id,
        updated_fields=list(update_data),
    )
    return conditional


@router.delete("/{conditional_id}", response_model=MessageResponse, summary="Delete conditional")
async def delete_conditional(
    conditional_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    conditional = await get_or_404(db, QuestionConditional, conditional_id, "Question conditional")
    await db.delete(conditional)
    await db.flush()
    return {"message": f"Question conditional {conditional_id} deleted."}
