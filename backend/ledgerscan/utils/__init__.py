"""
Utility functions - Pure functions with no dependencies.
These can be used across all layers.
"""
from .filename_heuristics import extract_from_filename
from .validators import validate_file_type, validate_filename, validate_uploaded_file

__all__ = [
    "extract_from_filename",
    "validate_file_type",
    "validate_filename",
    "validate_uploaded_file",
]
