"""Helpers to parse Responses API outputs into crop analyses."""

import json
import re
from typing import Any, Dict, Optional

from models.analysis_result import AnalysisResult
from services.errors import AnalysisParseError

# First ``` block, optionally tagged with a language name.
_FENCED_BLOCK = re.compile(r"```[\w+-]*[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)


def extract_text(response: Any) -> str:
    """Return the text answer from a Responses API result."""
    text = getattr(response, "output_text", None)
    if text:
        return text
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                return getattr(content, "text", "") or ""
    return ""


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, else the whole trimmed text."""
    trimmed = (text or "").strip()
    match = _FENCED_BLOCK.search(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def parse_analysis(text: str) -> AnalysisResult:
    """Parse model output into a normalized `AnalysisResult`.

    Raises:
        AnalysisParseError: The text is not JSON or not a JSON object.
    """
    try:
        parsed = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise AnalysisParseError("Failed to parse AI response as JSON") from exc
    if not isinstance(parsed, dict):
        raise AnalysisParseError("Failed to parse AI response as JSON")
    return AnalysisResult.from_parsed(parsed)


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }
