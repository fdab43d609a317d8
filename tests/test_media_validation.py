import base64

import pytest

from services.errors import (
    ImageTooLargeError,
    InvalidDocumentError,
    InvalidInputError,
    UnsupportedImageTypeError,
)
from utils.media_validation import (
    DEFAULT_MAX_IMAGE_BYTES,
    build_stored_filename,
    build_uploaded_image,
    decode_image_data_url,
    decode_pdf_data_url,
    max_image_bytes,
    report_base_name,
    sanitize_filename,
    validate_image_type,
)


def test_sanitize_filename_replaces_unsafe_characters():
    assert sanitize_filename("my leaf (1)/ä.jpg") == "my_leaf__1___.jpg"
    assert sanitize_filename("ok_name-1.PNG") == "ok_name-1.PNG"


@pytest.mark.parametrize("mime_type", ["image/gif", "image/webp", "text/plain", "application/pdf", "", None])
def test_validate_image_type_rejects_disallowed(mime_type):
    with pytest.raises(UnsupportedImageTypeError):
        validate_image_type(mime_type)


@pytest.mark.parametrize(
    "mime_type, expected",
    [
        ("image/jpeg", "image/jpeg"),
        ("image/jpg", "image/jpg"),
        ("IMAGE/PNG", "image/png"),
        ("image/png; charset=binary", "image/png"),
    ],
)
def test_validate_image_type_accepts_allowed(mime_type, expected):
    assert validate_image_type(mime_type) == expected


def test_unsupported_type_is_invalid_input():
    assert issubclass(UnsupportedImageTypeError, InvalidInputError)
    assert issubclass(ImageTooLargeError, InvalidInputError)


def test_build_stored_filename_keeps_original_extension():
    assert build_stored_filename("leaf.jpg", "image/jpeg", now_ms=1700000000123) == "crop_1700000000123.jpg"
    assert build_stored_filename("Leaf Photo.PNG", "image/png", now_ms=5) == "crop_5.PNG"


def test_build_stored_filename_defaults_extension_from_mime_type():
    assert build_stored_filename("", "image/png", now_ms=7) == "crop_7.png"
    assert build_stored_filename(None, "image/jpeg", now_ms=7) == "crop_7.jpg"
    assert build_stored_filename("noext", "image/jpg", now_ms=7) == "crop_7.jpg"


def test_build_uploaded_image_rejects_oversized_payload():
    with pytest.raises(ImageTooLargeError):
        build_uploaded_image(b"x" * 11, "image/png", "a.png", max_bytes=10)


def test_build_uploaded_image_rejects_empty_payload():
    with pytest.raises(InvalidInputError):
        build_uploaded_image(b"", "image/png", "a.png", max_bytes=10)


def test_build_uploaded_image_checks_type_before_size():
    with pytest.raises(UnsupportedImageTypeError):
        build_uploaded_image(b"x" * 100, "image/gif", "a.gif", max_bytes=10)


def test_build_uploaded_image_accepts_payload_at_limit():
    image = build_uploaded_image(b"x" * 10, "image/JPEG", "leaf.jpg", max_bytes=10)
    assert image.size == 10
    assert image.mime_type == "image/jpeg"
    assert image.original_filename == "leaf.jpg"
    assert image.stored_filename.startswith("crop_")
    assert image.stored_filename.endswith(".jpg")


def test_decode_image_data_url_strips_header():
    payload = base64.b64encode(b"\x89PNG data").decode()
    assert decode_image_data_url(f"data:image/png;base64,{payload}") == b"\x89PNG data"
    assert decode_image_data_url(payload) == b"\x89PNG data"


def test_decode_image_data_url_rejects_bad_base64():
    with pytest.raises(InvalidInputError):
        decode_image_data_url("data:image/png;base64,@@not-base64@@")


def test_decode_pdf_data_url():
    payload = base64.b64encode(b"%PDF-1.4").decode()
    assert decode_pdf_data_url(f"data:application/pdf;base64,{payload}") == b"%PDF-1.4"


@pytest.mark.parametrize(
    "data_url",
    [None, "", "data:text/plain;base64,AAAA", "application/pdf;base64,AAAA", "data:application/pdf;base64,"],
)
def test_decode_pdf_data_url_rejects_non_pdf(data_url):
    with pytest.raises(InvalidDocumentError):
        decode_pdf_data_url(data_url)


def test_report_base_name():
    assert report_base_name("crop report/1") == "crop_report_1"
    assert report_base_name(None, now_ms=42) == "analysis_42"
    assert report_base_name("", now_ms=42) == "analysis_42"


def test_max_image_bytes_from_env(monkeypatch):
    monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
    assert max_image_bytes() == DEFAULT_MAX_IMAGE_BYTES == 10 * 1024 * 1024

    monkeypatch.setenv("MAX_UPLOAD_BYTES", "2048")
    assert max_image_bytes() == 2048

    monkeypatch.setenv("MAX_UPLOAD_BYTES", "lots")
    with pytest.raises(RuntimeError):
        max_image_bytes()
