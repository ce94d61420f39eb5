"""
Utility functions for upload validation and file handling
"""
import hashlib
import re
import unicodedata
from pathlib import Path
from typing import List, Optional

from ..config import settings
from ..exceptions import DocumentValidationError

MAX_FILENAME_BYTES = 200
UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

FILE_SIGNATURES = {
    b"%PDF": "application/pdf",
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG\r\n\x1a\n": "image/png",
}


def detect_content_type(content: bytes) -> Optional[str]:
    """Content type implied by the file's leading bytes"""
    for signature, content_type in FILE_SIGNATURES.items():
        if content.startswith(signature):
            return content_type
    return None


def validate_content_type(content_type: Optional[str], allowed_types: List[str] = None) -> bool:
    """
    Validate a declared upload content type

    Args:
        content_type: MIME type sent with the upload
        allowed_types: Allowed MIME types (defaults to settings)

    Returns:
        True if the type is accepted, False otherwise
    """
    if allowed_types is None:
        allowed_types = settings.get_allowed_content_types_list()
    if not content_type:
        return False
    return content_type.split(";")[0].strip().lower() in allowed_types


def validate_file_size(file_size: int, max_size: int = None) -> bool:
    """
    Validate file size

    Args:
        file_size: Size of the file in bytes
        max_size: Maximum allowed size in bytes (defaults to settings)

    Returns:
        True if file size is within limit, False otherwise
    """
    if max_size is None:
        max_size = settings.max_file_size

    return 0 < file_size <= max_size


def validate_upload(content: bytes, content_type: Optional[str]) -> str:
    """Check an upload before it enters the pipeline and return its content type"""
    if not validate_content_type(content_type):
        raise DocumentValidationError(
            f"Unsupported file type: {content_type}. Allowed: {settings.allowed_content_types}"
        )
    if not validate_file_size(len(content)):
        raise DocumentValidationError(
            f"File size must be between 1 byte and {settings.max_file_size // (1024 * 1024)} MB"
        )

    declared = content_type.split(";")[0].strip().lower()
    detected = detect_content_type(content)
    if detected != declared:
        raise DocumentValidationError(f"File content does not match declared type {declared}")
    return declared


def compute_fingerprint(content: bytes) -> str:
    """SHA-256 hex digest identifying identical files"""
    return hashlib.sha256(content).hexdigest()


def sanitize_filename(filename: str, max_bytes: int = MAX_FILENAME_BYTES) -> str:
    """
    Make an uploaded filename safe to store

    Browsers on macOS send decomposed Hangul, so names are NFC-normalised
    before the length limit, which counts UTF-8 bytes.

    Args:
        filename: Filename as sent by the client
        max_bytes: Maximum encoded length of the result

    Returns:
        A non-empty filename without path components or reserved characters
    """
    name = unicodedata.normalize("NFC", filename).replace("\\", "/").split("/")[-1]
    name = UNSAFE_FILENAME_CHARS.sub("_", name).strip(". ")
    if not name:
        return "unnamed_file"

    stem, suffix = Path(name).stem, Path(name).suffix
    while len((stem + suffix).encode("utf-8")) > max_bytes and stem:
        stem = stem[:-1]
    return stem + suffix


def extract_text_snippet(text: Optional[str], max_length: int = 200) -> str:
    """Single-line preview of extracted text, cut at a word boundary when one is close"""
    if not text:
        return ""

    flattened = " ".join(text.split())
    if len(flattened) <= max_length:
        return flattened

    snippet = flattened[:max_length]
    boundary = snippet.rfind(" ")
    if boundary > max_length * 0.8:
        snippet = snippet[:boundary]
    return snippet + "..."
