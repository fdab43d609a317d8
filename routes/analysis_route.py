"""FastAPI routes for crop image analysis."""

import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.analysis_controller import analyze_image, receive_data_url, receive_multipart
from services.errors import AgriCareError

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analyze", tags=["analysis"])


class AnalyzeImagePayload(BaseModel):
    imageDataUrl: Optional[str] = None
    mimeType: Optional[str] = None
    originalName: Optional[str] = None


@router.post("", summary="Diagnose an uploaded crop image")
async def analyze_upload_route(request: Request, image: Optional[UploadFile] = File(None)):
    """Handle a multipart upload (field `image`) and return the normalized analysis.

    Raises:
        AgriCareError: Validation, configuration, upstream or parse failures.
        HTTPException: Any other failure, reported as a generic 500.
    """
    try:
        uploaded = await receive_multipart(request, image)
        return await analyze_image(request, uploaded)
    except (AgriCareError, HTTPException):
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Analysis of multipart upload failed")
        raise HTTPException(status_code=500, detail="Analysis failed") from exc


@router.post("/base64", summary="Diagnose a crop image sent as a data URL")
async def analyze_data_url_route(request: Request, payload: AnalyzeImagePayload):
    """Handle a JSON envelope carrying a base64 data URL."""
    try:
        uploaded = receive_data_url(request, payload.imageDataUrl, payload.mimeType, payload.originalName)
        return await analyze_image(request, uploaded)
    except (AgriCareError, HTTPException):
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Analysis of data URL upload failed")
        raise HTTPException(status_code=500, detail="Analysis failed") from exc
