"""
Revi Audit — Submission completion

Persists a finished audit: resolves the company and its form, validates the
submitted answers through ``FormDataMapper`` and writes one ``Submission``
plus all of its ``Answer`` rows atomically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import CompanyNotFoundError, FormNotFoundError
from app.models.company import Company
from app.models.form import Form
from app.models.submission import Answer, Submission
from app.services.company_cache import CompanyCache, get_company_cache
from app.services.form_mapper import FormDataMapper, MappedFormData, SubmittedAnswer

logger = structlog.get_logger("audit.submission_service")


@dataclass
class CompletedSubmission:
    submission: Submission
    answers: list[Answer] = field(default_factory=list)
    invalid_question_ids: list[int] = field(default_factory=list)
    mapped: MappedFormData | None = None


class SubmissionService:
    """Writes submissions and their answers in a single transaction."""

    def __init__(
        self,
        mapper: FormDataMapper | None = None,
        company_cache: CompanyCache | None = None,
    ) -> None:
        self._mapper = mapper or FormDataMapper()
        self._company_cache = company_cache

    @property
    def company_cache(self) -> CompanyCache:
        if self._company_cache is None:
            self._company_cache = get_company_cache()
        return self._company_cache

    async def resolve_company(
        self,
        db_session: AsyncSession,
        company_name: str | None = None,
        company_id: int | None = None,
    ) -> Company:
        company: Company | None = None
        if company_id is not None:
            company = await db_session.get(Company, company_id)
        elif company_name:
            company = await self.company_cache.get_by_name(company_name, db_session)

        if company is None:
            raise CompanyNotFoundError("Company not found for this form submission")
        return company

    async def complete_submission(
        self,
        db_session: AsyncSession,
        submitted: Iterable[SubmittedAnswer],
        company_name: str | None = None,
        company_id: int | None = None,
        form_id: int | None = None,
    ) -> CompletedSubmission:
        """Validate and store one completed audit.

        The company is looked up by id when given, otherwise by name.  The
        form defaults to the company's assigned form; an explicit
        ``form_id`` must reference an existing form.

        Nothing is written unless every insert succeeds.

        Raises
        ------
        CompanyNotFoundError, FormNotFoundError
            When the company or form cannot be resolved.
        NoQuestionsFoundError, NoValidAnswersError
            Propagated from the mapper; no rows are written.
        """
        log = logger.bind(company_name=company_name, company_id=company_id)
        log.info("submission_complete_start")

        company = await self.resolve_company(db_session, company_name, company_id)
        target_form_id = form_id if form_id is not None else company.form_id

        form = await db_session.get(Form, target_form_id)
        if form is None:
            raise FormNotFoundError()

        log = log.bind(company_id=company.id, form_id=form.id)

        mapped = await self._mapper.map(submitted, form.id, db_session)

        try:
            submission = Submission(form_id=form.id, company_id=company.id)
            db_session.add(submission)
            await db_session.flush()

            answers = [
                Answer(
                    submission_id=submission.id,
                    question_id=answer.question_id,
                    value=answer.value,
                )
                for answer in mapped.validated_answers
            ]
            db_session.add_all(answers)
            await db_session.flush()
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            log.exception("submission_complete_failed")
            raise

        log.info(
            "submission_complete_done",
            submission_id=submission.id,
            answers=len(answers),
            invalid_question_ids=mapped.invalid_question_ids,
        )
        return CompletedSubmission(
            submission=submission,
            answers=answers,
            invalid_question_ids=mapped.invalid_question_ids,
            mapped=mapped,
        )
