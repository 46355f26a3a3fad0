"""
Domain exceptions for the explanation cache and AI collaborators.
Routers translate these into HTTP errors; ExplanationService recovers from
StoreUnavailable and GeneratorFailure locally and never lets them reach the caller.
"""


class StudyNotesError(Exception):
    """Base exception for the study notes backend."""

    error_code: str = "STUDYNOTES_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInput(StudyNotesError):
    """Empty or whitespace-only text; rejected before any I/O."""

    error_code: str = "INVALID_INPUT"


class StoreUnavailable(StudyNotesError):
    """Explanation store read or write failed (database unreachable, query error)."""

    error_code: str = "STORE_UNAVAILABLE"


class GeneratorFailure(StudyNotesError):
    """External AI model errored, timed out, returned nothing, or is not configured."""

    error_code: str = "GENERATOR_FAILURE"
