"""
Revi Audit — Question options API
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
from app.models.form import Question, QuestionOption
from app.schemas.common import MessageResponse, Page
from app.schemas.question import (
    QuestionOptionCreate,
    QuestionOptionResponse,
    QuestionOptionUpdate,
)

logger = structlog.get_logger("audit.api.question_options")

router = APIRouter()


@router.get("/", response_model=Page[QuestionOptionResponse], summary="List options")
async def list_options(
    question_id: Optional[int] = Query(None, alias="questionId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(QuestionOption)
    if question_id is not None:
        stmt = stmt.where(QuestionOption.question_id == question_id)
    return await paginate(db, stmt, params, QuestionOption.order, QuestionOption.id)


@router.get("/{option_id}", response_model=QuestionOptionResponse, summary="Get option")
async def get_option(option_id: int, db: AsyncSession = Depends(get_db)) -> QuestionOption:
    return await get_or_404(db, QuestionOption, option_id, "Question option")


@router.post(
    "/",
    response_model=QuestionOptionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create option",
)
async def create_option(
    payload: QuestionOptionCreate,
    db: AsyncSession = Depends(get_db),
) -> QuestionOption:
    await get_or_404(db, Question, payload.question_id, "Question")
    option = QuestionOption(**payload.model_dump())
    db.add(option)
    await db.flush()
    logger.info("create_option_complete", option_id=option.id, question_id=option.question_id)
    return option


@router.put("/{option_id}", response_model=QuestionOptionResponse, summary="Update option")
async def update_option(
    option_id: int,
    payload: QuestionOptionUpdate,
    db: AsyncSession = Depends(get_db),
) -> QuestionOption:
    option = await get_or_404(db, QuestionOption, option_id, "Question option")
    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("question_id") is not None:
        await get_or_404(db, Question, update_data["question_id"], "Question")

    for field, value in update_data.items():
        setattr(option, field, value)
    await db.flush()
    return option


@router.delete("/{option_id}", response_model=MessageResponse, summary="Delete option")
async def delete_option(option_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    option = await get_or_404(db, QuestionOption, option_id, "Question option")
    await db.delete(option)
    await db.flush()
    return {"message": f"Question option {option_id} deleted."}
