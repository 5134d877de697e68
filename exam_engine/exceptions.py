"""
Domain errors raised by the attempt engine

Every error carries an HTTP status and a short machine-readable code so the
API layer can render it without knowing the individual kinds.
"""
from typing import Any, Dict, Optional


class ExamEngineError(Exception):
    """Base class for expected, recoverable failures"""

    status_code = 400
    error = "bad_request"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "error": self.error,
            "message": self.message,
            "status_code": self.status_code,
        }
        payload.update(self.extra)
        return payload


class NotFoundError(ExamEngineError):
    status_code = 404
    error = "not_found"


class ForbiddenError(ExamEngineError):
    status_code = 403
    error = "forbidden"


class MaxAttemptsExceededError(ExamEngineError):
    status_code = 409
    error = "max_attempts_exceeded"


class InactiveTestError(ExamEngineError):
    """Test is unpublished, deactivated or outside its availability window"""

    status_code = 400
    error = "test_not_active"


class InvalidPasswordError(ExamEngineError):
    status_code = 400
    error = "invalid_password"


class NoActiveAttemptError(ExamEngineError):
    status_code = 409
    error = "no_active_attempt"


class AttemptInProgressError(ExamEngineError):
    """Student already has an unfinished attempt on this test"""

    status_code = 409
    error = "attempt_in_progress"


class DataValidationError(ExamEngineError):
    status_code = 422
    error = "validation_error"


class ConcurrencyConflictError(ExamEngineError):
    """Optimistic lock kept failing after all retries"""

    status_code = 503
    error = "concurrency_conflict"


class RateLimitExceededError(ExamEngineError):
    status_code = 429
    error = "rate_limit_exceeded"
