"""
Exam Portal - Error Taxonomy

Every error raised by the exam flow derives from ExamError. The HTTP layer maps
each class to a status code and a short public message; details stay in logs.
"""


class ExamError(Exception):
    """Base class for exam domain errors."""

    error_code = "INTERNAL_ERROR"
    status_code = 500
    public_detail = "An unexpected error occurred"


class ValidationError(ExamError, ValueError):
    """Malformed input (submission body, question payload, sample count)."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    @property
    def public_detail(self) -> str:  # type: ignore[override]
        return str(self) or "Invalid request"


class NotFoundError(ExamError, LookupError):
    """Unknown attempt or question, or an attempt owned by another user."""

    error_code = "NOT_FOUND"
    status_code = 404

    @property
    def public_detail(self) -> str:  # type: ignore[override]
        return str(self) or "Not found"


class TransientStorageError(ExamError):
    """Backing store unreachable. Callers may re-request; nothing is retried here."""

    error_code = "STORAGE_UNAVAILABLE"
    status_code = 503
    public_detail = "Storage temporarily unavailable"
