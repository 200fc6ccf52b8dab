"""
Revi Audit — Forms API

CRUD for audit forms plus the nested structure view used by the survey UI
and a visibility preview that runs the conditional evaluator.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.api.pagination import PageParams, page_params, paginate
from app.config import get_settings
from app.database import get_db
from app.models.form import Form, Question, QuestionCategory
from app.schemas.common import MessageResponse, Page
from app.schemas.form import (
    FormCreate,
    FormResponse,
    FormStructure,
    FormUpdate,
    VisibilityRequest,
    VisibilityResponse,
)
from app.services.conditional_service import ConditionalService, visible_question_ids

logger = structlog.get_logger("audit.api.forms")

router = APIRouter()


async def _get_form_or_404(form_id: int, db: AsyncSession) -> Form:
    form = await db.get(Form, form_id)
    if form is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Form {form_id} not found.",
        )
    return form


async def load_form_structure(form_id: int, db: AsyncSession) -> dict[str, Any] | None:
    """Return the form with its categories, questions, options and
    conditionals, each level sorted by ``(order, id)``."""
    stmt = (
        select(Form)
        .where(Form.id == form_id)
        .options(
            selectinload(Form.categories)
            .selectinload(QuestionCategory.questions)
            .selectinload(Question.options),
            selectinload(Form.categories)
            .selectinload(QuestionCategory.questions)
            .selectinload(Question.conditionals),
        )
    )
    form = (await db.execute(stmt)).scalar_one_or_none()
    if form is None:
        return None

    categories = sorted(form.categories, key=lambda c: (c.order, c.id))
    return {
        "id": form.id,
        "title": form.title,
        "description": form.description,
        "created_at": form.created_at,
        "categories": [
            {
                "id": category.id,
                "name": category.name,
                "order": category.order,
                "questions": sorted(category.questions, key=lambda q: (q.order, q.id)),
            }
            for category in categories
        ],
    }


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List forms
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/", response_model=Page[FormResponse], summary="List forms")
async def list_forms(
    search: Optional[str] = Query(None, min_length=1, description="Case-insensitive title filter"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Form)
    if search:
        stmt = stmt.where(Form.title.ilike(f"%{search}%"))
    return await paginate(db, stmt, params, Form.created_at, Form.id)


@router.get("/{form_id}", response_model=FormResponse, summary="Get form by ID")
async def get_form(form_id: int, db: AsyncSession = Depends(get_db)) -> Form:
    return await _get_form_or_404(form_id, db)


# ──────────────────────────────────────────────────────────────────────────────
# GET /{form_id}/structure — Categories, questions, options, conditionals
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{form_id}/structure",
    response_model=FormStructure,
    summary="Get the full question tree of a form",
)
async def get_form_structure(
    form_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    structure = await load_form_structure(form_id, db)
    if structure is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Form {form_id} not found.",
        )
    return structure


# ──────────────────────────────────────────────────────────────────────────────
# POST /{form_id}/visibility — Which questions are shown for given answers
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{form_id}/visibility",
    response_model=VisibilityResponse,
    summary="Evaluate conditional visibility",
)
async def evaluate_visibility(
    form_id: int,
    payload: VisibilityRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, list[int]]:
    await _get_form_or_404(form_id, db)

    questions = await ConditionalService().load_form_rules(form_id, db)
    visible = visible_question_ids(
        questions,
        payload.answers,
        get_settings().CONDITIONAL_COMBINATION,
    )
    visible_set = set(visible)
    return {
        "visible_question_ids": visible,
        "hidden_question_ids": [q.question_id for q in questions if q.question_id not in visible_set],
    }


# ──────────────────────────────────────────────────────────────────────────────
# POST / PUT / DELETE
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=FormResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a form",
)
async def create_form(payload: FormCreate, db: AsyncSession = Depends(get_db)) -> Form:
    form = Form(**payload.model_dump())
    db.add(form)
    await db.flush()
    logger.info("create_form_complete", form_id=form.id)
    return form


@router.put("/{form_id}", response_model=FormResponse, summary="Update a form")
async def update_form(
    form_id: int,
    payload: FormUpdate,
    db: AsyncSession = Depends(get_db),
) -> Form:
    form = await _get_form_or_404(form_id, db)
    update_data = payload.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(form, field, value)
    await db.flush()
    logger.info("update_form_complete", form_id=form_id, updated_fields=list(update_data))
    return form


@router.delete("/{form_id}", response_model=MessageResponse, summary="Delete a form")
async def delete_form(form_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    form = await _get_form_or_404(form_id, db)
    await db.delete(form)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("delete_form_conflict", form_id=form_id, error=str(exc.orig))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Form is still used by companies or submissions.",
        ) from exc
    logger.info("delete_form_complete", form_id=form_id)
    return {"message": f"Form {form_id} deleted."}
