"""
Revi Audit — Report Assembler

Loads a stored submission and reshapes its answers into the ordered
category -> question -> answers tree used by every downstream artifact:

  * the Markdown Q&A transcript (rendered to DOCX and emailed)
  * the ``[{question, answer}]`` list handed to the AI text generator

Ordering rules
--------------
Categories are sorted by ``(order, id)``, questions inside a category by
``(order, id)``.  Answers of a multi-select question keep the order in which
they were stored.  Question numbering in the transcript is global across
categories and starts at 1.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, NamedTuple

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import CompanyNotFoundError, SubmissionNotFoundError
from app.models.company import Company
from app.models.form import Question, QuestionCategory
from app.models.submission import Answer, Submission
from app.services.document_service import render_docx

logger = structlog.get_logger("audit.report_assembler")

NO_RESPONSE_PLACEHOLDER = "*No response provided*"
NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class AnswerRow:
    """One answer joined to its question and category.

    ``value`` is ``None`` for a question row carried without an answer.
    """

    category_id: int
    category_name: str
    category_order: int
    question_id: int
    question_text: str
    question_order: int
    value: str | None = None


@dataclass
class QuestionGroup:
    question_id: int
    text: str
    order: int
    answers: list[str] = field(default_factory=list)

    @property
    def display_answer(self) -> str:
        return ", ".join(self.answers)


@dataclass
class CategoryGroup:
    category_id: int
    name: str
    order: int
    questions: list[QuestionGroup] = field(default_factory=list)


@dataclass
class SubmissionDocumentData:
    submission: Submission
    company: Company
    categories: list[CategoryGroup] = field(default_factory=list)

    @property
    def total_questions(self) -> int:
        return sum(len(c.questions) for c in self.categories)


class QADocument(NamedTuple):
    docx_bytes: bytes
    file_name: str
    data: SubmissionDocumentData


# ──────────────────────────────────────────────────────────────────────────────
# Pure shaping
# ──────────────────────────────────────────────────────────────────────────────


def group_answer_rows(
    rows: Iterable[AnswerRow],
    questions: Iterable[AnswerRow] = (),
) -> list[CategoryGroup]:
    """Group answer rows into ordered categories and questions.

    ``questions`` contributes question entries that should appear even
    without an answer.  Blank or missing values are never added as answers.
    """
    categories: dict[int, CategoryGroup] = {}
    grouped: dict[int, QuestionGroup] = {}

    def _question_for(row: AnswerRow) -> QuestionGroup:
        category = categories.get(row.category_id)
        if category is None:
            category = CategoryGroup(
                category_id=row.category_id,
                name=row.category_name,
                order=row.category_order or 0,
            )
            categories[row.category_id] = category

        question = grouped.get(row.question_id)
        if question is None:
            question = QuestionGroup(
                question_id=row.question_id,
                text=row.question_text,
                order=row.question_order or 0,
            )
            grouped[row.question_id] = question
            category.questions.append(question)
        return question

    for row in questions:
        _question_for(row)

    for row in rows:
        question = _question_for(row)
        if row.value:
            question.answers.append(row.value)

    ordered = sorted(categories.values(), key=lambda c: (c.order, c.category_id))
    for category in ordered:
        category.questions.sort(key=lambda q: (q.order, q.question_id))
    return ordered


def _enum_text(value: Any) -> str:
    if value is None or value == "":
        return NOT_SPECIFIED
    return str(getattr(value, "value", value))


def format_submission_date(value: Any) -> str:
    if value is None:
        return NOT_SPECIFIED
    return f"{value.month}/{value.day}/{value.year}"


def document_title(data: SubmissionDocumentData) -> str:
    return f"{data.company.name} - Audit Responses"


def build_document_content(data: SubmissionDocumentData) -> str:
    """Render the Q&A transcript as Markdown."""
    company = data.company
    parts = [
        f"# {document_title(data)}\n\n",
        f"**Company:** {company.name}\n",
        f"**Industry:** {_enum_text(company.industry)}\n",
        f"**Size:** {_enum_text(company.size)}\n",
        f"**Submission Date:** {format_submission_date(data.submission.created_at)}\n\n",
    ]

    number = 1
    for category in data.categories:
        parts.append(f"## {category.name}\n\n")
        for question in category.questions:
            parts.append(f"**{number}. {question.text}**\n\n")
            if question.answers:
                parts.append(f"{question.display_answer}\n\n")
            else:
                parts.append(f"{NO_RESPONSE_PLACEHOLDER}\n\n")
            number += 1
        parts.append("---\n\n")

    return "".join(parts)


def question_answer_pairs(data: SubmissionDocumentData) -> list[dict[str, str]]:
    """Flatten answered questions into ``[{question, answer}]`` in display order."""
    return [
        {"question": question.text, "answer": question.display_answer}
        for category in data.categories
        for question in category.questions
        if question.answers
    ]


def answer_pairs(data: SubmissionDocumentData) -> set[tuple[int, str]]:
    return {
        (question.question_id, value)
        for category in data.categories
        for question in category.questions
        for value in question.answers
    }


def qa_file_name(company_name: str) -> str:
    return f"{re.sub(r'[^a-zA-Z0-9]', '_', company_name)}_audit_responses.docx"


# ──────────────────────────────────────────────────────────────────────────────
# Assembler
# ──────────────────────────────────────────────────────────────────────────────


class ReportAssembler:
    """Loads submissions and turns them into report-ready structures."""

    async def load(
        self,
        submission_id: int,
        db_session: AsyncSession,
        include_unanswered: bool = False,
    ) -> SubmissionDocumentData:
        """Load a submission, its company and its grouped answers.

        Raises
        ------
        SubmissionNotFoundError
            When no submission has ``submission_id``.
        CompanyNotFoundError
            When the submission's company no longer exists.
        """
        log = logger.bind(submission_id=submission_id)

        submission = await db_session.get(Submission, submission_id)
        if submission is None:
            log.warning("assembler_submission_missing")
            raise SubmissionNotFoundError()

        company = await db_session.get(Company, submission.company_id)
        if company is None:
            log.warning("assembler_company_missing", company_id=submission.company_id)
            raise CompanyNotFoundError("Company not found for this form submission")

        answer_stmt = (
            select(
                QuestionCategory.id.label("category_id"),
                QuestionCategory.name.label("category_name"),
                QuestionCategory.order.label("category_order"),
                Question.id.label("question_id"),
                Question.text.label("question_text"),
                Question.order.label("question_order"),
                Answer.value.label("value"),
            )
            .select_from(Answer)
            .join(Question, Question.id == Answer.question_id)
            .join(QuestionCategory, QuestionCategory.id == Question.category_id)
            .where(Answer.submission_id == submission_id)
            .order_by(Answer.id)
        )
        rows = [AnswerRow(**row._mapping) for row in (await db_session.execute(answer_stmt)).all()]

        question_rows: list[AnswerRow] = []
        if include_unanswered:
            form_stmt = (
                select(
                    QuestionCategory.id.label("category_id"),
                    QuestionCategory.name.label("category_name"),
                    QuestionCategory.order.label("category_order"),
                    Question.id.label("question_id"),
                    Question.text.label("question_text"),
                    Question.order.label("question_order"),
                )
                .select_from(Question)
                .join(QuestionCategory, QuestionCategory.id == Question.category_id)
                .where(QuestionCategory.form_id == submission.form_id)
            )
            question_rows = [
                AnswerRow(**row._mapping) for row in (await db_session.execute(form_stmt)).all()
            ]

        categories = group_answer_rows(rows, question_rows)
        log.info(
            "assembler_loaded",
            answers=len(rows),
            categories=len(categories),
            include_unanswered=include_unanswered,
        )
        return SubmissionDocumentData(
            submission=submission,
            company=company,
            categories=categories,
        )

    @staticmethod
    def render_qa_document(
        data: SubmissionDocumentData,
        renderer: Callable[[str, str], bytes] = render_docx,
    ) -> QADocument:
        content = build_document_content(data)
        return QADocument(
            docx_bytes=renderer(content, document_title(data)),
            file_name=qa_file_name(data.company.name),
            data=data,
        )

    async def generate_qa_document(
        self,
        submission_id: int,
        db_session: AsyncSession,
        renderer: Callable[[str, str], bytes] = render_docx,
    ) -> QADocument:
        """Build the DOCX Q&A transcript for a submission.

        Every question of the form is listed; unanswered ones carry the
        "No response provided" placeholder.
        """
        data = await self.load(submission_id, db_session, include_unanswered=True)
        return self.render_qa_document(data, renderer)
