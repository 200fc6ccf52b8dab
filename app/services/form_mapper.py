"""
Revi Audit — Form Data Mapper

Turns a client-submitted set of question answers into validated, typed
answer records scoped to one authoritative form.

Input arrives as an explicit list of ``SubmittedAnswer(question_id, value)``.
Legacy clients that still post a flat ``formData`` mapping keyed by
``question_<id>`` are converted at the API boundary with
``submitted_answers_from_form_data`` so both paths share one pipeline:

  1. collect candidate question ids      (none -> NoQuestionsFoundError)
  2. fetch those questions joined to their category's form
  3. split into valid / invalid ids      (invalid ids are logged, not fatal)
  4. normalise values, dropping blanks   (nothing left -> NoValidAnswersError)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import is_storable_id
from app.errors import NoQuestionsFoundError, NoValidAnswersError
from app.models.form import Question, QuestionCategory

logger = structlog.get_logger("audit.form_mapper")

QUESTION_FIELD_PATTERN = re.compile(r"^question_(\d+)$")


@dataclass
class SubmittedAnswer:
    question_id: int
    value: Any


@dataclass(frozen=True)
class ValidatedAnswer:
    question_id: int
    value: str


@dataclass
class QuestionWithAnswers:
    question_id: int
    question_text: str
    question_type: str
    answers: list[str]
    raw_value: Any


@dataclass(frozen=True)
class QuestionRow:
    """Projection of a question joined to its owning category's form."""

    id: int
    text: str
    type: str
    form_id: int


@dataclass
class MappedFormData:
    validated_answers: list[ValidatedAnswer] = field(default_factory=list)
    questions_with_answers: list[QuestionWithAnswers] = field(default_factory=list)
    total_questions_submitted: int = 0
    valid_questions_count: int = 0
    invalid_question_ids: list[int] = field(default_factory=list)


# ──────────────────────────────────────────────────────────────────────────────
# Pure helpers
# ──────────────────────────────────────────────────────────────────────────────


def submitted_answers_from_form_data(
    form_data: Mapping[str, Any],
) -> list[SubmittedAnswer]:
    """Convert a legacy ``{"question_<id>": value}`` payload.

    Keys that do not follow the ``question_<digits>`` pattern are ignored.
    """
    submitted: list[SubmittedAnswer] = []
    for key, value in form_data.items():
        match = QUESTION_FIELD_PATTERN.match(str(key))
        if match:
            submitted.append(SubmittedAnswer(question_id=int(match.group(1)), value=value))
    return submitted


def normalise_values(value: Any) -> list[str]:
    """Return the non-blank, trimmed string values carried by ``value``.

    Lists yield one entry per element, scalars at most one.  ``None`` is
    treated as no answer.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        values: list[str] = []
        for item in value:
            values.extend(normalise_values(item))
        return values
    text = value.strip() if isinstance(value, str) else str(value).strip()
    return [text] if text else []


def collect_candidates(
    submitted: Iterable[SubmittedAnswer],
) -> dict[int, list[Any]]:
    """Group raw submitted values by question id, preserving first-seen order."""
    candidates: dict[int, list[Any]] = {}
    for item in submitted:
        candidates.setdefault(item.question_id, []).append(item.value)
    return candidates


def build_mapped_form_data(
    candidates: Mapping[int, list[Any]],
    questions: Mapping[int, QuestionRow],
    form_id: int,
) -> MappedFormData:
    """Partition candidates against the fetched questions and normalise values.

    Raises ``NoValidAnswersError`` when no answer survives.
    """
    result = MappedFormData(total_questions_submitted=len(candidates))
    invalid: list[int] = []

    for question_id, raw_values in candidates.items():
        question = questions.get(question_id)
        if question is None or question.form_id != form_id:
            invalid.append(question_id)
            continue

        result.valid_questions_count += 1
        values: list[str] = []
        for raw in raw_values:
            values.extend(normalise_values(raw))

        result.validated_answers.extend(
            ValidatedAnswer(question_id=question_id, value=v) for v in values
        )
        result.questions_with_answers.append(
            QuestionWithAnswers(
                question_id=question_id,
                question_text=question.text,
                question_type=question.type,
                answers=values,
                raw_value=raw_values[0] if len(raw_values) == 1 else list(raw_values),
            )
        )

    result.invalid_question_ids = sorted(invalid)

    if not result.validated_answers:
        raise NoValidAnswersError()

    return result


# ──────────────────────────────────────────────────────────────────────────────
# Mapper
# ──────────────────────────────────────────────────────────────────────────────


class FormDataMapper:
    """Validates submitted answers against the questions of one form."""

    async def fetch_questions(
        self,
        question_ids: Iterable[int],
        db_session: AsyncSession,
    ) -> dict[int, QuestionRow]:
        """Fetch questions by id together with their category's ``form_id``.

        Questions whose category no longer exists are not returned, and ids
        outside the integer key range are never sent to the database.
        """
        ids = [qid for qid in question_ids if is_storable_id(qid)]
        if not ids:
            return {}

        stmt = (
            select(
                Question.id,
                Question.text,
                Question.type,
                QuestionCategory.form_id,
            )
            .join(QuestionCategory, QuestionCategory.id == Question.category_id)
            .where(Question.id.in_(ids))
        )
        rows = (await db_session.execute(stmt)).all()
        return {
            row.id: QuestionRow(
                id=row.id,
                text=row.text,
                type=getattr(row.type, "value", row.type),
                form_id=row.form_id,
            )
            for row in rows
        }

    async def map(
        self,
        submitted: Iterable[SubmittedAnswer],
        form_id: int,
        db_session: AsyncSession,
    ) -> MappedFormData:
        """Run the full validation pipeline for one form.

        Parameters
        ----------
        submitted:
            Answers as posted by the client.
        form_id:
            The form the answers must belong to.
        db_session:
            Active SQLAlchemy async session.

        Raises
        ------
        NoQuestionsFoundError
            When no question is referenced at all.  Raised before any
            database access.
        NoValidAnswersError
            When every referenced question was invalid or every value blank.
        """
        candidates = collect_candidates(submitted)
        log = logger.bind(form_id=form_id, candidate_count=len(candidates))

        if not candidates:
            log.warning("form_mapper_no_questions")
            raise NoQuestionsFoundError()

        questions = await self.fetch_questions(candidates.keys(), db_session)

        try:
            mapped = build_mapped_form_data(candidates, questions, form_id)
        except NoValidAnswersError:
            log.warning("form_mapper_no_valid_answers")
            raise

        if mapped.invalid_question_ids:
            log.warning(
                "form_mapper_invalid_questions",
                invalid_question_ids=mapped.invalid_question_ids,
            )

        log.info(
            "form_mapper_complete",
            valid_questions=mapped.valid_questions_count,
            answers=len(mapped.validated_answers),
        )
        return mapped
