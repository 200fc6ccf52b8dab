"""
Revi Audit — Companies API

CRUD for partner and client companies, name lookup for survey sessions and
logo upload.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.pagination import PageParams, page_params, paginate
from app.database import get_db
from app.errors import DuplicateCompanyNameError
from app.models.company import Company, CompanySize, CompanyType, Industry
from app.models.form import Form
from app.schemas.common import MessageResponse, Page
from app.schemas.company import CompanyCreate, CompanyResponse, CompanyUpdate
from app.services.company_cache import CompanyCache, get_company_cache
from app.utils.storage import upload_company_logo

logger = structlog.get_logger("audit.api.companies")

router = APIRouter()


async def _get_company_or_404(company_id: int, db: AsyncSession) -> Company:
    company = await db.get(Company, company_id)
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {company_id} not found.",
        )
    return company


async def _ensure_form_exists(form_id: int, db: AsyncSession) -> None:
    if await db.get(Form, form_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Form {form_id} not found.",
        )


async def _ensure_name_available(
    name: str,
    db: AsyncSession,
    exclude_id: int | None = None,
) -> None:
    stmt = select(Company.id).where(Company.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Company.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise DuplicateCompanyNameError()


async def _validate_role(
    company_type: CompanyType,
    partner_id: int | None,
    db: AsyncSession,
    company_id: int | None = None,
) -> None:
    """Partners have no partner; clients reference an existing partner."""
    if company_type == CompanyType.PARTNER:
        if partner_id is not None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="A partner company cannot reference a partner.",
            )
        return

    if partner_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A client company must reference a partner.",
        )
    if partner_id == company_id:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A company cannot be its own partner.",
        )
    partner = await db.get(Company, partner_id)
    if partner is None or partner.type != CompanyType.PARTNER:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Company {partner_id} is not a partner.",
        )


async def _flush_unique(db: AsyncSession, log: Any) -> None:
    """Flush, turning a lost race on the unique name into a 409."""
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        log.warning("company_integrity_error", error=str(exc.orig))
        raise DuplicateCompanyNameError() from exc


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List companies
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/",
    response_model=Page[CompanyResponse],
    summary="List companies",
)
async def list_companies(
    industry: Optional[Industry] = Query(None),
    size: Optional[CompanySize] = Query(None),
    type: Optional[CompanyType] = Query(None),
    partner_id: Optional[int] = Query(None, alias="partnerId"),
    search: Optional[str] = Query(None, min_length=1, description="Case-insensitive name filter"),
    params: PageParams = Depends(page_params),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stmt = select(Company)
    if industry is not None:
        stmt = stmt.where(Company.industry == industry)
    if size is not None:
        stmt = stmt.where(Company.size == size)
    if type is not None:
        stmt = stmt.where(Company.type == type)
    if partner_id is not None:
        stmt = stmt.where(Company.partner_id == partner_id)
    if search:
        stmt = stmt.where(Company.name.ilike(f"%{search}%"))

    return await paginate(db, stmt, params, Company.created_at, Company.id)


# ──────────────────────────────────────────────────────────────────────────────
# GET /names/{name} — Resolve a company by its unique name
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/names/{name}",
    response_model=CompanyResponse,
    summary="Get a company by name",
)
async def get_company_by_name(
    name: str,
    db: AsyncSession = Depends(get_db),
    cache: CompanyCache = Depends(get_company_cache),
) -> Company:
    company = await cache.get_by_name(name, db)
    if company is None:
        logger.warning("company_name_not_found", company_name=name)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company not found.",
        )
    return company


# ──────────────────────────────────────────────────────────────────────────────
# GET /{company_id}
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Get company by ID",
)
async def get_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
) -> Company:
    return await _get_company_or_404(company_id, db)


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Create company
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/",
    response_model=CompanyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
)
async def create_company(
    payload: CompanyCreate,
    db: AsyncSession = Depends(get_db),
) -> Company:
    """Create a partner or client company.

    The name must be unique; the check here gives a friendly 409 and the
    database constraint settles concurrent inserts.
    """
    log = logger.bind(company_name=payload.name)
    log.info("create_company_start")

    await _ensure_form_exists(payload.form_id, db)
    await _ensure_name_available(payload.name, db)
    await _validate_role(payload.type, payload.partner_id, db)

    company = Company(**payload.model_dump())
    db.add(company)
    await _flush_unique(db, log)

    log.info("create_company_complete", company_id=company.id)
    return company


# ──────────────────────────────────────────────────────────────────────────────
# PUT /{company_id} — Update company
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/{company_id}",
    response_model=CompanyResponse,
    summary="Update a company",
)
async def update_company(
    company_id: int,
    payload: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    cache: CompanyCache = Depends(get_company_cache),
) -> Company:
    log = logger.bind(company_id=company_id)
    log.info("update_company_start")

    company = await _get_company_or_404(company_id, db)
    update_data = payload.model_dump(exclude_unset=True)

    if update_data.get("name") is not None:
        update_data["name"] = update_data["name"].strip()
        await _ensure_name_available(update_data["name"], db, exclude_id=company.id)
    if update_data.get("form_id") is not None:
        await _ensure_form_exists(update_data["form_id"], db)

    new_type = update_data.get("type") or company.type
    new_partner_id = update_data.get("partner_id", company.partner_id)
    if "type" in update_data or "partner_id" in update_data:
        await _validate_role(new_type, new_partner_id, db, company_id=company.id)
        if company.type == CompanyType.PARTNER and new_type == CompanyType.CLIENT:
            has_clients = (
                await db.execute(select(Company.id).where(Company.partner_id == company.id))
            ).first()
            if has_clients is not None:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="A partner with clients cannot become a client.",
                )

    old_name = company.name
    for field, value in update_data.items():
        setattr(company, field, value)

    await _flush_unique(db, log)
    await cache.invalidate(old_name, company.name)

    log.info("update_company_complete", updated_fields=list(update_data.keys()))
    return company


# ──────────────────────────────────────────────────────────────────────────────
# POST /{company_id}/logo — Upload logo image
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{company_id}/logo",
    response_model=CompanyResponse,
    summary="Upload a company logo",
)
async def upload_logo(
    company_id: int,
    file: UploadFile = File(..., description="Logo image"),
    db: AsyncSession = Depends(get_db),
) -> Company:
    """Store the logo in GCS and point ``imageURL`` at it."""
    log = logger.bind(company_id=company_id)
    company = await _get_company_or_404(company_id, db)

    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Logo must be an image.",
        )

    file_bytes = await file.read()
    if not file_bytes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Logo file is empty.",
        )

    url = await asyncio.to_thread(
        upload_company_logo,
        company.id,
        file.filename or "logo",
        file_bytes,
        file.content_type,
    )
    company.image_url = url
    await db.flush()

    log.info("company_logo_uploaded", image_url=url)
    return company


# ──────────────────────────────────────────────────────────────────────────────
# DELETE /{company_id}
# ──────────────────────────────────────────────────────────────────────────────

@router.delete(
    "/{company_id}",
    response_model=MessageResponse,
    summary="Delete a company",
)
async def delete_company(
    company_id: int,
    db: AsyncSession = Depends(get_db),
    cache: CompanyCache = Depends(get_company_cache),
) -> dict[str, Any]:
    company = await _get_company_or_404(company_id, db)
    name = company.name

    has_clients = (
        await db.execute(select(Company.id).where(Company.partner_id == company.id))
    ).first()
    if has_clients is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Reassign or delete this partner's clients first.",
        )

    await db.delete(company)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("delete_company_conflict", company_id=company_id, error=str(exc.orig))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Company still has submissions.",
        ) from exc
    await cache.invalidate(name)

    logger.info("delete_company_complete", company_id=company_id)
    return {"message": f"Company {company_id} deleted."}
