"""
Error taxonomy for section re-evaluation.

Every failure raised by the pipeline derives from ReEvaluationError. The
route layer maps ``http_status`` onto the response; only the orchestrator
decides whether a failure ends the request.
"""


class ReEvaluationError(Exception):
    """Base class for re-evaluation failures."""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ReEvaluationError):
    """Missing or invalid request fields, or a request the policy forbids."""

    http_status = 400


class NotFoundError(ReEvaluationError):
    """Answer sheet or section does not exist."""

    http_status = 404


class ModelTransientError(ReEvaluationError):
    """Upstream overload/quota/rate-limit failure, or an exhausted model list."""

    http_status = 502


class ModelHardError(ReEvaluationError):
    """Any other upstream model failure. Never retried across models."""

    http_status = 502


class FileFetchError(ReEvaluationError):
    """The answer sheet's source file could not be downloaded."""

    http_status = 502


class ParseError(ReEvaluationError):
    """Model text could not be coerced into a JSON object."""

    http_status = 422


class PersistenceError(ReEvaluationError):
    """Updating the answer sheet failed."""

    http_status = 500


class LoggingError(ReEvaluationError):
    """Inserting the audit log row failed. Reported, never surfaced."""

    http_status = 500
