"""
Revi Audit — Route helpers shared by the CRUD modules.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Base, is_storable_id

ModelT = TypeVar("ModelT", bound=Base)


async def get_or_404(
    db: AsyncSession,
    model: type[ModelT],
    object_id: int,
    label: str,
) -> ModelT:
    """Load ``model`` by primary key or raise a 404 naming ``label``.

    Ids outside the integer column range cannot exist and are not queried.
    """
    instance = await db.get(model, object_id) if is_storable_id(object_id) else None
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} {object_id} not found.",
        )
    return instance
