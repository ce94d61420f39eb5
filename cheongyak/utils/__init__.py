"""
Utility functions for the Housing Subscription Matching System
"""

from .validators import (
    validate_content_type,
    validate_file_size,
    validate_upload,
    compute_fingerprint,
    sanitize_filename
)

__all__ = [
    "validate_content_type",
    "validate_file_size",
    "validate_upload",
    "compute_fingerprint",
    "sanitize_filename"
]
