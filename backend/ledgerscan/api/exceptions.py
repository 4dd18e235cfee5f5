"""
HTTP mapping for business exceptions.
Separates business exceptions (core.exceptions) from HTTP exceptions.
"""
from typing import Optional

from fastapi import HTTPException, status

from ..core.exceptions import (
    BatchInProgressError,
    DocumentNotFoundError,
    ExtractionError,
    InvalidStatusTransitionError,
    PersistenceError,
    QuotaExhaustedError,
    RateLimitedError,
    UnsupportedFileError,
)


def handle_business_exception(e: Exception) -> Optional[HTTPException]:
    """
    Convert business exceptions to HTTP exceptions.
    This keeps business logic clean of HTTP concerns.

    Returns:
        HTTPException, or None when `e` is not a business exception
    """
    if isinstance(e, DocumentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, BatchInProgressError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, InvalidStatusTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, UnsupportedFileError):
        code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE if e.too_large else status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        return HTTPException(status_code=code, detail=str(e))
    elif isinstance(e, QuotaExhaustedError):
        return HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=e.message)
    elif isinstance(e, RateLimitedError):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=e.message)
    elif isinstance(e, ExtractionError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    elif isinstance(e, PersistenceError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Local storage failure: {e}"
        )
    return None
