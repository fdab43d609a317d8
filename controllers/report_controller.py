import asyncio
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from models.analysis_result import AnalysisResult, ReportRecord
from services.archive_store import ArchiveStore
from services.report_renderer import ReportRenderer
from utils.media_validation import decode_pdf_data_url, report_base_name


async def save_report(
    request: Request,
    pdf_data_url: Optional[str],
    base_name: Optional[str],
    analysis: Any,
    image_filename: Optional[str],
) -> Dict[str, Any]:
    """Archive a client-rendered PDF report.

    Raises:
        InvalidDocumentError: If `pdf_data_url` is not a base64 PDF data URL.
            Nothing is written in that case.
    """
    content = decode_pdf_data_url(pdf_data_url)
    record = ReportRecord(
        content=content,
        base_name=report_base_name(base_name),
        analysis=AnalysisResult.from_parsed(analysis) if analysis is not None else None,
        image_filename=image_filename,
    )

    store = ArchiveStore(request.app.state.storage)
    await store.save_report(record)
    return {"success": True, "reportUrl": f"/reports/{record.base_name}.pdf"}


async def render_report(
    request: Request,
    image_filename: str,
    analysis: Optional[Dict[str, Any]],
    base_name: Optional[str] = None,
) -> Response:
    """Render a report for an archived upload, archive it, and return the PDF.

    Raises:
        HTTPException(404) if the image is not in the archive.
        InvalidInputError if the archived image cannot be decoded.
    """
    store = ArchiveStore(request.app.state.storage)
    image_bytes = await store.read_upload(image_filename)
    if image_bytes is None:
        raise HTTPException(status_code=404, detail="Image not found")

    result = AnalysisResult.from_parsed(analysis)
    renderer = ReportRenderer.from_env()
    # reportlab and Pillow are blocking -> run in thread
    rendered = await asyncio.to_thread(renderer.render, image_bytes, result, base_name)

    record = ReportRecord(
        content=rendered.content,
        base_name=rendered.base_name,
        analysis=result,
        image_filename=image_filename,
    )
    await store.save_report(record)

    report_url = f"/reports/{record.base_name}.pdf"
    return Response(
        content=rendered.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{record.base_name}.pdf"',
            "X-Report-Url": report_url,
        },
    )
