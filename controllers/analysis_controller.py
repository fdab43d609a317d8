from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request, UploadFile

from models.analysis_result import UploadedImage
from services.archive_store import ArchiveStore
from services.errors import InvalidInputError, ServiceUnavailableError
from services.openai.crop_analyzer import MISSING_KEY_MESSAGE, CropDiseaseAnalyzer
from services.openai.crop_prompts import PROMPT_VERSION
from utils.media_validation import build_uploaded_image, decode_image_data_url, validate_image_type


async def receive_multipart(request: Request, file: Optional[UploadFile]) -> UploadedImage:
    """Turn a multipart upload into an `UploadedImage`.

    The type is checked before the body is read, and at most one byte past
    the limit is read so oversized uploads are rejected without buffering
    them whole.
    """
    if file is None:
        raise InvalidInputError("No image uploaded")
    validate_image_type(file.content_type)

    max_bytes = request.app.state.max_upload_bytes
    content = await file.read(max_bytes + 1)
    return build_uploaded_image(content, file.content_type, file.filename, max_bytes)


def receive_data_url(
    request: Request,
    image_data_url: Optional[str],
    mime_type: Optional[str],
    original_name: Optional[str],
) -> UploadedImage:
    """Turn a `{imageDataUrl, mimeType, originalName}` envelope into an `UploadedImage`."""
    if not image_data_url or not mime_type:
        raise InvalidInputError("Missing imageDataUrl or mimeType")
    validate_image_type(mime_type)

    content = decode_image_data_url(image_data_url)
    return build_uploaded_image(content, mime_type, original_name, request.app.state.max_upload_bytes)


async def analyze_image(request: Request, image: UploadedImage) -> Dict[str, Any]:
    """Store the upload, diagnose it, and archive the analysis metadata.

    Args:
        request: FastAPI Request (used to access app.state for shared clients).
        image: Validated upload from either adapter.

    Returns:
        A dict containing: success, imageFilename, imageUrl, analysis.
    """
    openai_client = request.app.state.openai_client
    # Nothing is archived when analysis cannot run.
    if openai_client is None:
        raise ServiceUnavailableError(MISSING_KEY_MESSAGE)

    store = ArchiveStore(request.app.state.storage)
    analyzer = CropDiseaseAnalyzer(openai_client)

    await store.save_upload(image)
    analysis = await analyzer.analyze(image.content, image.mime_type)

    await store.try_save_metadata(
        Path(image.stored_filename).stem,
        {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "imageFilename": image.stored_filename,
            "promptVersion": PROMPT_VERSION,
            **analysis.to_dict(),
        },
    )

    return {
        "success": True,
        "imageFilename": image.stored_filename,
        "imageUrl": f"/uploads/{image.stored_filename}",
        "analysis": analysis.to_dict(),
    }
