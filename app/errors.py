"""
Revi Audit — Application error taxonomy.

Service-layer code raises these; ``app.main`` maps every ``AuditError`` to a
JSON response carrying ``detail`` and a stable ``code``.
"""

from __future__ import annotations


class AuditError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    code: str = "AUDIT_ERROR"
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ── Structural-empty errors ──────────────────────────────────────────────────

class NoQuestionsFoundError(AuditError):
    """The payload did not reference a single question."""

    code = "NO_QUESTIONS_FOUND"
    default_message = "No valid questions found in form data"


class NoValidAnswersError(AuditError):
    """Questions were referenced but nothing survived validation."""

    code = "NO_VALID_ANSWERS"
    default_message = "No valid question found"


# ── Not-found errors ─────────────────────────────────────────────────────────

class CompanyNotFoundError(AuditError):
    status_code = 404
    code = "COMPANY_NOT_FOUND"
    default_message = "Company not found"


class FormNotFoundError(AuditError):
    status_code = 404
    code = "FORM_NOT_FOUND"
    default_message = "Form not found"


class SubmissionNotFoundError(AuditError):
    status_code = 404
    code = "SUBMISSION_NOT_FOUND"
    default_message = "Submission not found"


# ── Validation / conflict ────────────────────────────────────────────────────

class ConditionalCycleError(AuditError):
    status_code = 422
    code = "CONDITIONAL_CYCLE"
    default_message = "Conditional would create a circular question dependency"


class RecipientMissingError(AuditError):
    status_code = 422
    code = "RECIPIENT_MISSING"
    default_message = "No recipient email configured for this company"


class DuplicateCompanyNameError(AuditError):
    status_code = 409
    code = "DUPLICATE_COMPANY_NAME"
    default_message = "A company with this name already exists"


# ── Downstream service failures ──────────────────────────────────────────────

class ReportGenerationError(AuditError):
    status_code = 502
    code = "REPORT_GENERATION_FAILED"
    default_message = "Report generation failed"


class EmailDeliveryError(AuditError):
    status_code = 502
    code = "EMAIL_SEND_FAILED"
    default_message = "There was a problem sending your email"
