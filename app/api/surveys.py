"""
Revi Audit — Survey session API

The survey UI opens ``/surveys/{company_name}``: the company is resolved by
name through the company cache and returned together with the full
structure of its form.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.forms import load_form_structure
from app.database import get_db
from app.errors import CompanyNotFoundError, FormNotFoundError
from app.schemas.company import CompanyResponse
from app.schemas.common import CamelModel
from app.schemas.form import FormStructure
from app.services.company_cache import CompanyCache, get_company_cache

logger = structlog.get_logger("audit.api.surveys")

router = APIRouter()


class SurveySession(CamelModel):
    company: CompanyResponse
    form: FormStructure


@router.get(
    "/{company_name}",
    response_model=SurveySession,
    summary="Open a survey session for a company",
)
async def get_survey(
    company_name: str,
    db: AsyncSession = Depends(get_db),
    cache: CompanyCache = Depends(get_company_cache),
) -> dict[str, Any]:
    log = logger.bind(company_name=company_name)

    company = await cache.get_by_name(company_name, db)
    if company is None:
        log.warning("survey_company_not_found")
        raise CompanyNotFoundError()

    structure = await load_form_structure(company.form_id, db)
    if structure is None:
        log.error("survey_form_missing", form_id=company.form_id)
        raise FormNotFoundError()

    log.info("survey_session_opened", company_id=company.id, form_id=company.form_id)
    return {"company": company, "form": structure}
