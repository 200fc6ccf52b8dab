"""
Revi Audit — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.company import Company, CompanySize, CompanyType, Industry
from app.models.form import (
    ConditionalOperator,
    Form,
    Question,
    QuestionCategory,
    QuestionConditional,
    QuestionOption,
    QuestionType,
)
from app.models.submission import Answer, Report, Submission

__all__ = [
    "Company",
    "CompanySize",
    "CompanyType",
    "Industry",
    "Form",
    "QuestionCategory",
    "Question",
    "QuestionType",
    "QuestionOption",
    "QuestionConditional",
    "ConditionalOperator",
    "Submission",
    "Answer",
    "Report",
]
