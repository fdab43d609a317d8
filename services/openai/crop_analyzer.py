"""Crop disease diagnosis using OpenAI's Responses API."""

import base64
import logging
import os
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from models.analysis_result import AnalysisResult
from services.errors import AnalysisParseError, ServiceUnavailableError, UpstreamError
from services.openai.crop_prompts import build_analysis_prompt
from services.openai.response_parser import extract_text, extract_usage, parse_analysis
from utils.media_validation import normalize_mime_type

LOGGER = logging.getLogger(__name__)
DEFAULT_MODEL = "gpt-4o-mini"

# "image/jpg" is accepted from clients but is not a registered type.
_MIME_ALIASES = {"image/jpg": "image/jpeg"}
MISSING_KEY_MESSAGE = "API key not configured. Set OPENAI_API_KEY in .env"


def to_image_data_url(image_bytes: bytes, mime_type: str) -> str:
    """Encode raw image bytes as a data URL that carries the MIME type."""
    mime_type = normalize_mime_type(mime_type)
    mime_type = _MIME_ALIASES.get(mime_type, mime_type)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def build_inputs(prompt: str, image_bytes: bytes, mime_type: str) -> List[Dict[str, Any]]:
    """Build the single user message holding the prompt and the inline image."""
    return [
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": prompt},
                {"type": "input_image", "image_url": to_image_data_url(image_bytes, mime_type)},
            ],
        }
    ]


class CropDiseaseAnalyzer:
    """Send a crop photo to the vision model and normalize its diagnosis."""

    def __init__(self, client: Optional[AsyncOpenAI], model: Optional[str] = None) -> None:
        self.client = client
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_MODEL)
        self.prompt = build_analysis_prompt()

    async def analyze(self, image_bytes: bytes, mime_type: str) -> AnalysisResult:
        """Diagnose a single image. One attempt, no retries.

        Raises:
            ServiceUnavailableError: No OpenAI client is configured.
            UpstreamError: The API call failed.
            AnalysisParseError: The answer is not a JSON object.
        """
        if self.client is None:
            raise ServiceUnavailableError(MISSING_KEY_MESSAGE)

        start_time = time.time()
        response = await self._create_response(build_inputs(self.prompt, image_bytes, mime_type))

        try:
            result = parse_analysis(extract_text(response))
        except AnalysisParseError:
            LOGGER.error("Unparseable model output: %r", extract_text(response)[:200])
            raise

        usage = extract_usage(response)
        LOGGER.info(
            "Crop analysis latency: %.3fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return result

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        try:
            return await self.client.responses.create(model=self.model, input=inputs)
        except OpenAIError as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise UpstreamError(str(exc) or "Analysis failed") from exc
