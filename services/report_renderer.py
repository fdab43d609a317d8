"""PDF report renderer.

Lays out the uploaded crop photo and the four analysis sections on A4 pages
with reportlab's canvas API. The vertical cursor runs top-down (title first)
and is converted to reportlab's bottom-up space only when drawing.

Content that would cross the bottom margin continues on a new page; nothing
is truncated.

Example:
    renderer = ReportRenderer()
    report = renderer.render(image_bytes, analysis)
    report.content  # PDF bytes
"""
from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from models.analysis_result import AnalysisResult, RenderedReport, UNKNOWN_DISEASE
from services.errors import InvalidInputError
from utils.media_validation import report_base_name

TITLE = "AgriCare Crop Disease Analysis"
BRAND_RGB = (23, 155, 64)
EMPTY_PLACEHOLDER = "—"
BULLET = "•"

# Built-in Type1 fonts only encode Latin-1. Other scripts need a TTF, see
# ReportRenderer.from_env.
REGULAR_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"


def register_ttf_font(path: str) -> str:
    """Register a TrueType font file with reportlab and return its font name.

    The name is the file stem. A name that is already registered is reused.

    Raises:
        RuntimeError: If the file is missing or is not a usable TrueType font.
    """
    name = Path(path).stem
    if name not in pdfmetrics.getRegisteredFontNames():
        try:
            pdfmetrics.registerFont(TTFont(name, path))
        except (TTFError, OSError) as exc:
            raise RuntimeError(f"Report font {path!r} could not be loaded") from exc
    return name


def fit_within(width: float, height: float, max_width: float, max_height: float) -> Tuple[float, float]:
    """Scale (width, height) by min(max_width / width, max_height / height)."""
    scale = min(max_width / width, max_height / height)
    return width * scale, height * scale


def wrap_text(text: str, font_name: str, font_size: float, max_width: float) -> List[str]:
    """Greedy word wrap measured with the PDF font metrics.

    Explicit newlines start a new line. A single word wider than
    `max_width` is kept whole on its own line. Empty text yields one
    empty line.
    """
    lines: List[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = words[0]
        for word in words[1:]:
            candidate = f"{current} {word}"
            if stringWidth(candidate, font_name, font_size) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class _PageCursor:
    """Canvas plus a top-down vertical cursor that breaks pages on overflow."""

    def __init__(self, pdf: canvas.Canvas, page_height: float, margin: float) -> None:
        self.pdf = pdf
        self.page_height = page_height
        self.margin = margin
        self.y = margin
        self.pages = 1

    def ensure_room(self, height: float) -> None:
        if self.y + height > self.page_height - self.margin:
            self.pdf.showPage()
            self.pages += 1
            self.y = self.margin

    def text(self, x: float, value: str, font_name: str, font_size: float, rgb=(0, 0, 0)) -> None:
        # showPage() resets the graphics state, so font and colour are set per line.
        self.ensure_room(0)
        self.pdf.setFont(font_name, font_size)
        self.pdf.setFillColorRGB(*(channel / 255 for channel in rgb))
        self.pdf.drawString(x, self.page_height - self.y, value)

    def advance(self, amount: float) -> None:
        self.y += amount


class ReportRenderer:
    """Render an analysis and its source image into a PDF document.

    Args:
        page_size: (width, height) in points. Defaults to A4.
        margin: Left, right, top and bottom margin in points.
        image_max_height: Height of the box the photo is scaled into.
        line_height: Vertical advance per body line.
        regular_font: Registered font name for body text.
        bold_font: Registered font name for the title and headings.
    """

    def __init__(
        self,
        page_size: Tuple[float, float] = A4,
        margin: float = 40,
        image_max_height: float = 260,
        line_height: float = 16,
        regular_font: str = REGULAR_FONT,
        bold_font: str = BOLD_FONT,
    ) -> None:
        self.page_width, self.page_height = page_size
        self.margin = margin
        self.content_width = self.page_width - 2 * margin
        self.image_max_height = image_max_height
        self.line_height = line_height
        self.regular_font = regular_font
        self.bold_font = bold_font

    @classmethod
    def from_env(cls) -> "ReportRenderer":
        """Build a renderer using REPORT_FONT_PATH / REPORT_BOLD_FONT_PATH when set.

        Without REPORT_FONT_PATH the built-in Helvetica pair is used. The bold
        font falls back to the regular TTF.
        """
        regular_path = os.getenv("REPORT_FONT_PATH")
        if not regular_path:
            return cls()
        bold_path = os.getenv("REPORT_BOLD_FONT_PATH") or regular_path
        return cls(regular_font=register_ttf_font(regular_path), bold_font=register_ttf_font(bold_path))

    def render(
        self,
        image_bytes: bytes,
        analysis: AnalysisResult,
        base_name: Optional[str] = None,
    ) -> RenderedReport:
        """Render the report.

        Args:
            image_bytes: Original bytes of the uploaded photo.
            analysis: Normalized analysis to print.
            base_name: Optional file base name; defaults to `analysis_<ms timestamp>`.

        Raises:
            InvalidInputError: If the image bytes cannot be decoded.
        """
        name = report_base_name(base_name)
        photo = self._load_image(image_bytes)

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=(self.page_width, self.page_height))
        pdf.setTitle(TITLE)
        cursor = _PageCursor(pdf, self.page_height, self.margin)

        self._draw_title(cursor)
        self._draw_image(cursor, photo)

        self._draw_heading(cursor, "Disease Name")
        self._draw_paragraph(cursor, analysis.disease or UNKNOWN_DISEASE)
        cursor.advance(8)

        self._draw_heading(cursor, "Required Medicines / Treatments")
        self._draw_bullets(cursor, analysis.medicines)
        cursor.advance(8)

        self._draw_heading(cursor, "Description")
        self._draw_paragraph(cursor, analysis.description)
        cursor.advance(8)

        self._draw_heading(cursor, "Possible Causes")
        self._draw_bullets(cursor, analysis.causes)

        pdf.save()
        return RenderedReport(content=buffer.getvalue(), base_name=name, page_count=cursor.pages)

    @staticmethod
    def _load_image(image_bytes: bytes) -> Image.Image:
        try:
            photo = Image.open(io.BytesIO(image_bytes))
            photo.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise InvalidInputError("Image could not be decoded for the report") from exc
        if photo.mode not in ("RGB", "RGBA", "L"):
            photo = photo.convert("RGBA")
        return photo

    def _draw_title(self, cursor: _PageCursor) -> None:
        cursor.text(self.margin, TITLE, self.bold_font, 18, BRAND_RGB)
        cursor.advance(10)
        pdf = cursor.pdf
        pdf.setStrokeColorRGB(*(channel / 255 for channel in BRAND_RGB))
        pdf.setLineWidth(1)
        rule_y = self.page_height - cursor.y
        pdf.line(self.margin, rule_y, self.page_width - self.margin, rule_y)
        cursor.advance(20)

    def _draw_image(self, cursor: _PageCursor, photo: Image.Image) -> None:
        width, height = fit_within(photo.width, photo.height, self.content_width, self.image_max_height)
        cursor.ensure_room(height)
        cursor.pdf.drawImage(
            ImageReader(photo),
            self.margin,
            self.page_height - cursor.y - height,
            width=width,
            height=height,
            mask="auto",
        )
        cursor.advance(height + 20)

    def _draw_heading(self, cursor: _PageCursor, title: str) -> None:
        cursor.text(self.margin, title, self.bold_font, 14)
        cursor.advance(18)

    def _draw_paragraph(self, cursor: _PageCursor, text: str) -> None:
        for line in wrap_text(text, self.regular_font, 12, self.content_width):
            cursor.text(self.margin, line, self.regular_font, 12)
            cursor.advance(self.line_height)

    def _draw_bullets(self, cursor: _PageCursor, entries: Iterable[str]) -> None:
        entries = list(entries)
        if not entries:
            cursor.text(self.margin, EMPTY_PLACEHOLDER, self.regular_font, 12)
            cursor.advance(self.line_height)
            return
        for entry in entries:
            self._draw_paragraph(cursor, f"{BULLET} {entry}")
