"""
Revi Audit — Form models (forms, categories, questions, options, conditionals).
"""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class QuestionType(str, enum.Enum):
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    CONDITIONAL = "conditional"


class ConditionalOperator(str, enum.Enum):
    AND = "AND"
    OR = "OR"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Form(Base):
    __tablename__ = "forms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    categories: Mapped[list["QuestionCategory"]] = relationship(
        "QuestionCategory", back_populates="form", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Form id={self.id} title={self.title!r}>"


class QuestionCategory(Base):
    """A section of the survey.  ``order`` drives display sequence."""

    __tablename__ = "question_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    form_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("forms.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    form: Mapped["Form"] = relationship("Form", back_populates="categories")
    questions: Mapped[list["Question"]] = relationship(
        "Question", back_populates="category", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<QuestionCategory id={self.id} form={self.form_id} order={self.order}>"


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("question_categories.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[QuestionType] = mapped_column(
        Enum(QuestionType, name="question_type", values_callable=_enum_values),
        nullable=False,
    )
    required: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    category: Mapped["QuestionCategory"] = relationship(
        "QuestionCategory", back_populates="questions"
    )
    options: Mapped[list["QuestionOption"]] = relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="(QuestionOption.order, QuestionOption.id)",
    )
    conditionals: Mapped[list["QuestionConditional"]] = relationship(
        "QuestionConditional",
        back_populates="question",
        cascade="all, delete-orphan",
        foreign_keys="QuestionConditional.question_id",
        order_by="QuestionConditional.id",
    )

    def __repr__(self) -> str:
        return f"<Question id={self.id} type={self.type} category={self.category_id}>"


class QuestionOption(Base):
    """Enumerated choice for multiple_choice / checkbox questions."""

    __tablename__ = "question_options"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    text: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    question: Mapped["Question"] = relationship("Question", back_populates="options")


class QuestionConditional(Base):
    """Visibility rule: ``question_id`` is shown or hidden depending on the
    answers given to ``condition_question_id``."""

    __tablename__ = "question_conditionals"
    __table_args__ = (
        CheckConstraint(
            "question_id <> condition_question_id",
            name="ck_conditional_distinct_questions",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    condition_question_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    condition_values: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list, comment="Array of accepted answer values"
    )
    show_question: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    operator: Mapped[ConditionalOperator] = mapped_column(
        Enum(ConditionalOperator, name="conditional_operator", values_callable=_enum_values),
        default=ConditionalOperator.OR,
        server_default="OR",
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    question: Mapped["Question"] = relationship(
        "Question", back_populates="conditionals", foreign_keys=[question_id]
    )

    def __repr__(self) -> str:
        return (
            f"<QuestionConditional q={self.question_id} "
            f"depends_on={self.condition_question_id} op={self.operator}>"
        )
