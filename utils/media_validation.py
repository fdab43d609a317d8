"""Validation helpers for uploaded crop images and report payloads."""

import base64
import binascii
import os
import re
import time
from typing import Optional

from models.analysis_result import UploadedImage
from services.errors import (
    ImageTooLargeError,
    InvalidDocumentError,
    InvalidInputError,
    UnsupportedImageTypeError,
)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
}

DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024

PDF_DATA_URL_PREFIX = "data:application/pdf;base64,"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")
_DATA_URL_HEADER = re.compile(r"^data:[^;]+;base64,")


def max_image_bytes() -> int:
    """Return the configured upload limit (MAX_UPLOAD_BYTES, default 10 MB)."""
    raw = os.getenv("MAX_UPLOAD_BYTES")
    if not raw or not raw.strip():
        return DEFAULT_MAX_IMAGE_BYTES
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"MAX_UPLOAD_BYTES must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError("MAX_UPLOAD_BYTES must be positive.")
    return value


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def sanitize_filename(name: str) -> str:
    """Replace every character outside [a-zA-Z0-9_.-] with an underscore."""
    return _UNSAFE_CHARS.sub("_", name)


def normalize_mime_type(mime_type: Optional[str]) -> str:
    if not mime_type:
        return ""
    return mime_type.lower().split(";", 1)[0].strip()


def validate_image_type(mime_type: Optional[str]) -> str:
    """Return the normalized MIME type or raise if it is not an allowed image type."""
    normalized = normalize_mime_type(mime_type)
    if normalized not in ALLOWED_IMAGE_TYPES:
        raise UnsupportedImageTypeError("Only JPG, JPEG, PNG are allowed")
    return normalized


def validate_image_size(content: bytes, max_bytes: int) -> None:
    if not content:
        raise InvalidInputError("No image uploaded")
    if len(content) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ImageTooLargeError(f"Image exceeds the {limit_mb:g} MB upload limit")


def build_stored_filename(original_name: Optional[str], mime_type: str, now_ms: Optional[int] = None) -> str:
    """Return `crop_<ms timestamp><ext>` for an uploaded image.

    The extension comes from the sanitized original name; when it has none,
    `.png` is used for PNG uploads and `.jpg` for everything else.
    """
    stamp = now_ms if now_ms is not None else timestamp_ms()
    safe_original = sanitize_filename(original_name or "")
    _, ext = os.path.splitext(safe_original)
    if not ext or ext == ".":
        ext = ".png" if mime_type == "image/png" else ".jpg"
    return f"crop_{stamp}{ext}"


def build_uploaded_image(
    content: bytes,
    mime_type: Optional[str],
    original_name: Optional[str],
    max_bytes: int,
) -> UploadedImage:
    """Validate an image submission and wrap it as an `UploadedImage`.

    Raises:
        UnsupportedImageTypeError: The MIME type is not JPEG or PNG.
        ImageTooLargeError: The payload exceeds `max_bytes`.
        InvalidInputError: The payload is empty.
    """
    normalized = validate_image_type(mime_type)
    validate_image_size(content, max_bytes)
    original = original_name or ""
    return UploadedImage(
        content=content,
        mime_type=normalized,
        original_filename=original,
        stored_filename=build_stored_filename(original, normalized),
    )


def decode_image_data_url(data_url: str) -> bytes:
    """Decode a `data:<mime>;base64,<payload>` string (the header is optional)."""
    payload = _DATA_URL_HEADER.sub("", data_url.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInputError("Image data is not valid base64") from exc


def decode_pdf_data_url(data_url: Optional[str]) -> bytes:
    """Decode a PDF data URL, rejecting anything not tagged as application/pdf."""
    if not data_url or not data_url.startswith(PDF_DATA_URL_PREFIX):
        raise InvalidDocumentError("Invalid or missing PDF data")
    try:
        content = base64.b64decode(data_url[len(PDF_DATA_URL_PREFIX):], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidDocumentError("Invalid or missing PDF data") from exc
    if not content:
        raise InvalidDocumentError("Invalid or missing PDF data")
    return content


def report_base_name(base_name: Optional[str], now_ms: Optional[int] = None) -> str:
    """Return the sanitized report base name, defaulting to `analysis_<ms timestamp>`."""
    if not base_name:
        stamp = now_ms if now_ms is not None else timestamp_ms()
        base_name = f"analysis_{stamp}"
    return sanitize_filename(base_name)
