"""
Business exceptions shared by the services layer.
Kept free of HTTP concerns; see api.exceptions for the HTTP mapping.
"""
from typing import Optional


class ExtractionError(Exception):
    """Base class for failures of a single extraction attempt."""

    default_message = "Document processing failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.status_code = status_code


class RateLimitedError(ExtractionError):
    """The extraction service throttled the request (HTTP 429)."""

    default_message = "Rate limit exceeded. Please try again later."


class QuotaExhaustedError(ExtractionError):
    """The extraction service refuses further calls for this session (HTTP 402/403)."""

    default_message = "AI credits depleted. Please add more credits."


class MalformedResponseError(ExtractionError):
    """The extraction service answered with content that violates the response schema."""

    default_message = "Invalid AI response format"


class ExtractionUnavailableError(ExtractionError):
    """Network failure, timeout or generic non-2xx answer."""

    default_message = "Extraction service unavailable"


class PersistenceError(Exception):
    """Local snapshot could not be read or written."""
    pass


class DocumentNotFoundError(Exception):
    """Raised when a document record is not found."""
    pass


class InvalidStatusTransitionError(Exception):
    """Raised when a record leaves a state other than processing."""
    pass


class BatchInProgressError(Exception):
    """Raised when a batch is submitted while another one is running."""
    pass


class UnsupportedFileError(Exception):
    """Raised when an uploaded file is rejected before processing."""

    def __init__(self, message: str, too_large: bool = False):
        super().__init__(message)
        self.too_large = too_large
