"""
errors.py — Domain Error Types for the Quote Service

Every collaborator raises one of these exceptions. Each carries the domain it
originated from (e.g. "organisation", "currency") and a human-readable message.
The HTTP layer maps the classes to status codes:

    NotFoundError   → 404
    ForbiddenError  → 403
    ValidationError → 400
    InternalError   → 500 (also used for anything unclassified)
"""

from typing import Optional


class QuoteServiceError(Exception):
    """Base class of all domain errors raised by the quote service."""

    code = "INTERNAL_ERROR"
    status_code = 500
    # Set on errors re-raised by the quote pipeline
    step: Optional[str] = None

    def __init__(self, domain: str, message: str, cause: Optional[BaseException] = None):
        self.domain = domain
        self.message = message
        self.cause = cause
        super().__init__(str(self))

    def __str__(self):
        text = f"[{self.domain}] {self.code}: {self.message}"
        if self.cause is not None:
            text += f": {self.cause}"
        return text


class NotFoundError(QuoteServiceError):
    """The requested entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ValidationError(QuoteServiceError):
    """Malformed or conflicting input, e.g. a duplicate identity."""

    code = "VALIDATION_ERROR"
    status_code = 400


class ForbiddenError(QuoteServiceError):
    """The caller may not act on behalf of the requested organisation."""

    code = "FORBIDDEN"
    status_code = 403


class InternalError(QuoteServiceError):
    """Unexpected failure; wraps the underlying cause for diagnostics."""


def tag_step_error(step: str, error: BaseException) -> QuoteServiceError:
    """
    Re-labels an error raised inside a quote pipeline step.

    Domain errors keep their class (a NotFound stays a NotFound) so the HTTP
    mapping is unaffected; the message gains the step prefix. Anything else is
    wrapped in an InternalError.

    Args:
        step (str): Step identity, e.g. "step 1 - validate organisation".
        error (BaseException): The error raised by the step.

    Returns:
        QuoteServiceError: The tagged error, with the original as its cause.
    """
    if isinstance(error, QuoteServiceError):
        tagged = type(error)(error.domain, f"{step}: {error.message}", cause=error.cause)
    else:
        tagged = InternalError("quote", f"{step}: unexpected failure", cause=error)
    tagged.step = step
    return tagged
