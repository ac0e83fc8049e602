from enum import Enum
from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error

class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass

class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass

class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass

class ValidationError(AppError):
    """Raised when input validation fails."""
    pass

class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass

class ExtractionError(AppError):
    """Raised when text cannot be extracted from an uploaded document."""
    pass

class SubjectNotFoundError(AppError):
    """Raised when the subject an operation refers to does not exist."""
    pass

class AlreadyProcessedError(AppError):
    """Raised when enrichment has already completed for a subject."""
    pass

class EnrichmentInProgressError(AlreadyProcessedError):
    """Raised when another worker holds a live enrichment claim for the subject."""
    pass


class GenerationErrorCode(str, Enum):
    """Structured failure codes assigned once by the text-generation client."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    INVALID_REQUEST = "invalid_request"
    AUTHENTICATION = "authentication"
    SERVER_ERROR = "server_error"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


RETRYABLE_GENERATION_CODES = frozenset(
    {GenerationErrorCode.RATE_LIMITED, GenerationErrorCode.TIMEOUT}
)


class GenerationServiceError(APIClientError):
    """Raised by the text-generation client for any failed completion."""

    def __init__(
        self,
        message: str,
        code: GenerationErrorCode = GenerationErrorCode.UNKNOWN,
        status_code: Optional[int] = None,
        original_error: Exception = None,
    ):
        super().__init__(message, original_error=original_error)
        self.code = code
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_GENERATION_CODES


class RateLimitError(GenerationServiceError):
    """Raised when the provider rejects a request for rate or quota reasons."""

    def __init__(self, message: str, status_code: Optional[int] = 429, original_error: Exception = None):
        super().__init__(
            message,
            code=GenerationErrorCode.RATE_LIMITED,
            status_code=status_code,
            original_error=original_error,
        )

class GenerationFailedError(AppError):
    """Raised when a generation step gives up, either exhausted or non-retryable."""

    def __init__(self, message: str, attempts: int = 0, original_error: Exception = None):
        super().__init__(message, original_error=original_error)
        self.attempts = attempts

class NotificationError(APIClientError):
    """Raised when a downstream notification (skills engine, approval queue) fails."""
    pass

class NotificationTimeoutError(NotificationError, APITimeoutError):
    """Raised when a downstream notification exceeds its timeout."""
    pass
