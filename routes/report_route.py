"""FastAPI routes for PDF reports."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.report_controller import render_report, save_report
from services.errors import AgriCareError

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])


class SaveReportPayload(BaseModel):
    pdfDataUrl: Optional[str] = None
    baseName: Optional[str] = None
    analysis: Any = None
    imageFilename: Optional[str] = None


class RenderReportPayload(BaseModel):
    imageFilename: str
    analysis: Optional[Dict[str, Any]] = None
    baseName: Optional[str] = None


@router.post("/save-report", summary="Archive a client-rendered PDF report")
async def save_report_route(request: Request, payload: SaveReportPayload):
    try:
        return await save_report(
            request, payload.pdfDataUrl, payload.baseName, payload.analysis, payload.imageFilename
        )
    except (AgriCareError, HTTPException):
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Saving report failed")
        raise HTTPException(status_code=500, detail="Failed to save report") from exc


@router.post("/report", summary="Render, archive and download a PDF report")
async def render_report_route(request: Request, payload: RenderReportPayload):
    """Render the report for an archived image and return it as a PDF download."""
    try:
        return await render_report(request, payload.imageFilename, payload.analysis, payload.baseName)
    except (AgriCareError, HTTPException):
        raise
    except Exception as exc:  # pylint: disable=broad-exception-caught
        LOGGER.exception("Rendering report failed")
        raise HTTPException(status_code=500, detail="Failed to generate report") from exc
