from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from app.models.form import ConditionalOperator, QuestionType
from app.schemas.common import CamelModel


# ── Categories ───────────────────────────────────────────────────────────────

class QuestionCategoryCreate(CamelModel):
    form_id: int
    name: str = Field(min_length=1, max_length=255)
    order: int = Field(0, ge=0)


class QuestionCategoryUpdate(CamelModel):
    form_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    order: Optional[int] = Field(None, ge=0)


class QuestionCategoryResponse(CamelModel):
    id: int
    form_id: int
    name: str
    order: int
    created_at: datetime


# ── Questions ────────────────────────────────────────────────────────────────

class QuestionCreate(CamelModel):
    category_id: int
    text: str = Field(min_length=1)
    type: QuestionType
    required: bool = False
    order: int = Field(0, ge=0)


class QuestionUpdate(CamelModel):
    category_id: Optional[int] = None
    text: Optional[str] = Field(None, min_length=1)
    type: Optional[QuestionType] = None
    required: Optional[bool] = None
    order: Optional[int] = Field(None, ge=0)


class QuestionResponse(CamelModel):
    id: int
    category_id: int
    text: str
    type: QuestionType
    required: bool
    order: int
    created_at: datetime


# ── Options ──────────────────────────────────────────────────────────────────

class QuestionOptionCreate(CamelModel):
    question_id: int
    text: str = Field(min_length=1, max_length=255)
    value: str = Field(min_length=1, max_length=255)
    order: int = Field(0, ge=0)


class QuestionOptionUpdate(CamelModel):
    question_id: Optional[int] = None
    text: Optional[str] = Field(None, min_length=1, max_length=255)
    value: Optional[str] = Field(None, min_length=1, max_length=255)
    order: Optional[int] = Field(None, ge=0)


class QuestionOptionResponse(CamelModel):
    id: int
    question_id: int
    text: str
    value: str
    order: int
    created_at: datetime


# ── Conditionals ─────────────────────────────────────────────────────────────

class QuestionConditionalCreate(CamelModel):
    question_id: int
    condition_question_id: int
    condition_values: list[str] = Field(min_length=1)
    show_question: bool = True
    operator: ConditionalOperator = ConditionalOperator.OR

    @model_validator(mode="after")
    def distinct_questions(self) -> "QuestionConditionalCreate":
        if self.question_id == self.condition_question_id:
            raise ValueError("A question cannot depend on itself")
        return self


class QuestionConditionalUpdate(CamelModel):
    question_id: Optional[int] = None
    condition_question_id: Optional[int] = None
    condition_values: Optional[list[str]] = Field(None, min_length=1)
    show_question: Optional[bool] = None
    operator: Optional[ConditionalOperator] = None


class QuestionConditionalResponse(CamelModel):
    id: int
    question_id: int
    condition_question_id: int
    condition_values: list[str]
    show_question: bool
    operator: ConditionalOperator
    created_at: datetime
