"""
Revi Audit — Analytics API

Time series for the admin dashboard.  ``GET /clients-growth`` counts client
companies per year, month or day of their ``created_at``.  Period labels
are ``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD`` and sort chronologically as
strings.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.company import Company, CompanyType
from app.schemas.analytics import GrowthSeriesResponse

logger = structlog.get_logger("audit.api.analytics")

router = APIRouter()

GroupBy = Literal["year", "month", "day"]

# PostgreSQL ``to_char`` patterns and their SQLite ``strftime`` equivalents.
_PERIOD_FORMATS: dict[str, tuple[str, str]] = {
    "year": ("YYYY", "%Y"),
    "month": ("YYYY-MM", "%Y-%m"),
    "day": ("YYYY-MM-DD", "%Y-%m-%d"),
}


def period_label(column: Any, group_by: str, dialect_name: str) -> Any:
    """SQL expression formatting ``column`` as the period label."""
    pg_format, sqlite_format = _PERIOD_FORMATS[group_by]
    if dialect_name == "postgresql":
        return func.to_char(column, pg_format)
    return func.strftime(sqlite_format, column)


# ──────────────────────────────────────────────────────────────────────────────
# GET /clients-growth — New client companies per period
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/clients-growth",
    response_model=GrowthSeriesResponse,
    summary="Client companies created per period",
)
async def clients_growth(
    group_by: GroupBy = Query("month", alias="groupBy"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Both range bounds are inclusive calendar days."""
    if start_date and end_date and start_date > end_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="startDate must not be after endDate.",
        )

    period = period_label(Company.created_at, group_by, db.bind.dialect.name).label("period")
    stmt = (
        select(period, func.count(Company.id).label("value"))
        .where(Company.type == CompanyType.CLIENT)
        .group_by(period)
        .order_by(period)
    )
    if start_date is not None:
        since = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        stmt = stmt.where(Company.created_at >= since)
    if end_date is not None:
        until = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        stmt = stmt.where(Company.created_at < until)

    rows = (await db.execute(stmt)).all()
    logger.info(
        "clients_growth_complete",
        group_by=group_by,
        start_date=start_date,
        end_date=end_date,
        periods=len(rows),
    )
    return {
        "success": True,
        "data": [{"label": row.period, "value": row.value} for row in rows],
    }
