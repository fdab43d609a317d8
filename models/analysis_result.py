from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

UNKNOWN_DISEASE = "Unknown"


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


@dataclass(frozen=True)
class AnalysisResult:
    """Normalized diagnosis returned by the vision model.

    Attributes:
        disease: Most likely disease name, "Unknown" when the model gave none.
        medicines: Suggested treatments, in the order the model listed them.
        description: Short free-text description of the condition.
        causes: Likely causes, in the order the model listed them.
    """

    disease: str = UNKNOWN_DISEASE
    medicines: List[str] = field(default_factory=list)
    description: str = ""
    causes: List[str] = field(default_factory=list)

    @classmethod
    def from_parsed(cls, parsed: Any) -> "AnalysisResult":
        """Coerce any parsed JSON value into a fully populated result.

        Fields with the wrong type fall back to their defaults. List fields
        keep only their string entries. Never raises.
        """
        data: Dict[str, Any] = parsed if isinstance(parsed, dict) else {}
        disease = data.get("disease")
        description = data.get("description")
        return cls(
            disease=disease if isinstance(disease, str) else UNKNOWN_DISEASE,
            medicines=_string_list(data.get("medicines")),
            description=description if isinstance(description, str) else "",
            causes=_string_list(data.get("causes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "disease": self.disease,
            "medicines": list(self.medicines),
            "description": self.description,
            "causes": list(self.causes),
        }


@dataclass(frozen=True)
class UploadedImage:
    """An accepted image submission, identical for both upload adapters.

    Attributes:
        content: Raw image bytes.
        mime_type: Normalized MIME type (image/jpeg, image/jpg or image/png).
        original_filename: Filename as sent by the client.
        stored_filename: Sanitized, timestamped name used in the archive.
    """

    content: bytes
    mime_type: str
    original_filename: str
    stored_filename: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RenderedReport:
    content: bytes
    base_name: str
    page_count: int = 1


@dataclass(frozen=True)
class ReportRecord:
    """A PDF report ready to be archived together with its context."""

    content: bytes
    base_name: str
    analysis: Optional[AnalysisResult] = None
    image_filename: Optional[str] = None
