from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, model_validator

from app.schemas.common import CamelModel


def _non_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Answer value must not be blank")
    return v


AnswerValue = Annotated[str, AfterValidator(_non_blank)]


class SubmissionCreate(CamelModel):
    form_id: int
    company_id: int


class SubmissionUpdate(CamelModel):
    form_id: Optional[int] = None
    company_id: Optional[int] = None


class SubmissionResponse(CamelModel):
    id: int
    form_id: int
    company_id: int
    created_at: datetime


class AnswerCreate(CamelModel):
    submission_id: int
    question_id: int
    value: AnswerValue


class AnswerUpdate(CamelModel):
    # No submission_id: an answer stays with the submission it was created for.
    question_id: Optional[int] = None
    value: Optional[AnswerValue] = None


class AnswerResponse(CamelModel):
    id: int
    submission_id: int
    question_id: int
    value: str
    created_at: datetime


# ── Form completion ──────────────────────────────────────────────────────────

class SubmittedAnswerIn(CamelModel):
    question_id: int
    value: Any = None


class CompleteSubmissionRequest(CamelModel):
    """Body of ``POST /submissions/complete``.

    ``answers`` is the structured form; ``formData`` (``{"question_<id>":
    value}``) is accepted for older clients.  When both are present the
    structured answers win.
    """

    company_name: Optional[str] = None
    company_id: Optional[int] = None
    form_id: Optional[int] = None
    answers: Optional[list[SubmittedAnswerIn]] = None
    form_data: Optional[dict[str, Any]] = None

    @model_validator(mode="after")
    def company_identified(self) -> "CompleteSubmissionRequest":
        if self.company_id is None and not (self.company_name or "").strip():
            raise ValueError("Either companyName or companyId is required")
        return self


class CompletedSubmissionData(CamelModel):
    submission: SubmissionResponse
    answers: list[AnswerResponse]
    invalid_question_ids: list[int]


class CompleteSubmissionResponse(CamelModel):
    success: bool = True
    message: str
    data: CompletedSubmissionData
