"""
Error taxonomy for slide image generation.

Every failure of an external call is mapped to one ErrorKind. The kind value
doubles as the machine-readable note attached to a failed job.
"""

from enum import Enum
from typing import Optional, Union


class ErrorKind(str, Enum):
    TRANSIENT = "transient_overload"
    QUOTA_EXHAUSTED = "quota_exhausted"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown_error"


class GenerationError(Exception):
    """Base class for classified external call failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        status: Optional[Union[int, str]] = None,
        attempts: int = 0
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.attempts = attempts

    @property
    def error_note(self) -> str:
        return self.kind.value


class TransientServiceError(GenerationError):
    """Service overloaded or unavailable; retried with backoff."""
    kind = ErrorKind.TRANSIENT


class QuotaExhaustedError(GenerationError):
    """Rate or usage limit reached; never retried."""
    kind = ErrorKind.QUOTA_EXHAUSTED


class InvalidRequestError(GenerationError):
    """Malformed request or configuration problem; never retried."""
    kind = ErrorKind.INVALID_REQUEST


class UnknownError(GenerationError):
    """Unclassified failure; retried once."""
    kind = ErrorKind.UNKNOWN


ERROR_TYPES = {
    ErrorKind.TRANSIENT: TransientServiceError,
    ErrorKind.QUOTA_EXHAUSTED: QuotaExhaustedError,
    ErrorKind.INVALID_REQUEST: InvalidRequestError,
    ErrorKind.UNKNOWN: UnknownError,
}


class BatchCancelledError(Exception):
    """The batch was cancelled (user reset) before it finished."""


class AnalysisFailedError(Exception):
    """The analysis step failed; no generation was started."""
