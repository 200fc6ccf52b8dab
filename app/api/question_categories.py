"""
Revi Audit — Question categories API
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
from app.models.form import Form, QuestionCategory
from app.schemas.common import MessageResponse, Page
from app.schemas.question import (
    QuestionCategoryCreate,
    QuestionCategoryResponse,
    QuestionCategoryUpdate,
)

logger = structlog.get_logger("audit.api.question_categories")

router = APIRouter()


@router.get("/", response_model=Page[QuestionCategoryResponse], summary="List categories")
async def list_categories(
    form_id: Optional[int] = Query(None, alias="formId"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(QuestionCategory)
    if form_id is not None:
        stmt = stmt.where(QuestionCategory.form_id == form_id)
    return await paginate(db, stmt, params, QuestionCategory.order, QuestionCategory.id)


@router.get("/{category_id}", response_model=QuestionCategoryResponse, summary="Get category")
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)) -> QuestionCategory:
    return await get_or_404(db, QuestionCategory, category_id, "Question category")


@router.post(
    "/",
    response_model=QuestionCategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
async def create_category(
    payload: QuestionCategoryCreate,
    db: AsyncSession = Depends(get_db),
) -> QuestionCategory:
    await get_or_404(db, Form, payload.form_id, "Form")
    category = QuestionCategory(**payload.model_dump())
    db.add(category)
    await db.flush()
    logger.info("create_category_complete", category_id=category.id, form_id=category.form_id)
    return category


@router.put("/{category_id}", response_model=QuestionCategoryResponse, summary="Update category")
async def update_category(
    category_id: int,
    payload: QuestionCategoryUpdate,
    db: AsyncSession = Depends(get_db),
) -> QuestionCategory:
    category = await get_or_404(db, QuestionCategory, category_id, "Question category")
    update_data = payload.model_dump(exclude_unset=True)
    if update_data.get("form_id") is not None:
        await get_or_404(db, Form, update_data["form_id"], "Form")

    for field, value in update_data.items():
        setattr(category, field, value)
    await db.flush()
    logger.info("update_category_complete", category_id=category_id, updated_fields=list(update_data))
    return category


@router.delete("/{category_id}", response_model=MessageResponse, summary="Delete category")
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    category = await get_or_404(db, QuestionCategory, category_id, "Question category")
    await db.delete(category)
    await db.flush()
    logger.info("delete_category_complete", category_id=category_id)
    return {"message": f"Question category {category_id} deleted."}
