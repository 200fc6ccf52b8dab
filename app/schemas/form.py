from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.form import ConditionalOperator, QuestionType
from app.schemas.common import CamelModel


class FormCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""


class FormUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class FormResponse(CamelModel):
    id: int
    title: str
    description: str
    created_at: datetime


# ── Structure (form -> categories -> questions) ──────────────────────────────

class OptionNode(CamelModel):
    id: int
    text: str
    value: str
    order: int


class ConditionalNode(CamelModel):
    id: int
    condition_question_id: int
    condition_values: list[str]
    show_question: bool
    operator: ConditionalOperator


class QuestionNode(CamelModel):
    id: int
    text: str
    type: QuestionType
    required: bool
    order: int
    options: list[OptionNode] = []
    conditionals: list[ConditionalNode] = []


class CategoryNode(CamelModel):
    id: int
    name: str
    order: int
    questions: list[QuestionNode] = []


class FormStructure(FormResponse):
    categories: list[CategoryNode] = []


class VisibilityRequest(CamelModel):
    answers: dict[int, list[str]] = {}


class VisibilityResponse(CamelModel):
    visible_question_ids: list[int]
    hidden_question_ids: list[int]
