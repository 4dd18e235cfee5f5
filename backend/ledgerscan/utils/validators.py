"""
Validation utilities - Pure validation functions.
"""
from ..core.config import ACCEPTED_MIME_PREFIXES, MAX_FILE_SIZE_MB
from ..core.exceptions import UnsupportedFileError


def validate_filename(filename: str) -> None:
    """
    Validate filename.

    Raises:
        UnsupportedFileError: If filename is empty
    """
    if not filename or not filename.strip():
        raise UnsupportedFileError("Filename cannot be empty")


def validate_file_type(file_type: str) -> None:
    """Only images and PDFs are accepted."""
    normalized = (file_type or "").strip().lower()
    if not any(normalized.startswith(prefix) for prefix in ACCEPTED_MIME_PREFIXES):
        raise UnsupportedFileError(f"Unsupported file type: {file_type or 'unknown'}")


def validate_uploaded_file(filename: str, file_type: str, size: int) -> None:
    """
    Validate one uploaded file before it is queued.

    Raises:
        UnsupportedFileError: Empty name, unsupported type, or file too large
    """
    validate_filename(filename)
    validate_file_type(file_type)

    max_bytes = MAX_FILE_SIZE_MB * 1024 * 1024
    if size > max_bytes:
        raise UnsupportedFileError(
            f"File {filename} exceeds the {MAX_FILE_SIZE_MB}MB limit",
            too_large=True
        )
    if size == 0:
        raise UnsupportedFileError(f"File {filename} is empty")
