"""
Revi Audit — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import (
    analytics,
    answers,
    companies,
    email,
    forms,
    question_categories,
    question_conditionals,
    question_options,
    questions,
    reports,
    submissions,
    surveys,
)

router = APIRouter()

router.include_router(companies.router, prefix="/companies", tags=["Companies"])
router.include_router(forms.router, prefix="/forms", tags=["Forms"])
router.include_router(question_categories.router, prefix="/question-categories", tags=["Question Categories"])
router.include_router(questions.router, prefix="/questions", tags=["Questions"])
router.include_router(question_options.router, prefix="/question-options", tags=["Question Options"])
router.include_router(question_conditionals.router, prefix="/question-conditionals", tags=["Question Conditionals"])
router.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
router.include_router(answers.router, prefix="/answers", tags=["Answers"])
router.include_router(reports.router, prefix="/reports", tags=["Reports"])
router.include_router(surveys.router, prefix="/surveys", tags=["Surveys"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
router.include_router(email.router, tags=["Email"])
