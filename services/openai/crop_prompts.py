"""Prompt for crop disease diagnosis.

The model's output format depends on this text. Bump PROMPT_VERSION whenever
the wording changes so archived analyses can be traced to the prompt that
produced them.
"""

PROMPT_VERSION = "1"

CROP_ANALYSIS_PROMPT = (
    "You are an expert agronomist. Analyze the provided crop image for disease detection. "
    "Identify the most likely disease, list practical treatments/medicines (brand-agnostic when possible), "
    "provide a concise description, and list likely causes. "
    "Return a STRICT JSON object with keys: disease (string), medicines (string[]), "
    "description (string), causes (string[]). "
    "No markdown or extra commentary."
)


def build_analysis_prompt() -> str:
    """Return the instruction sent alongside every crop image."""
    return CROP_ANALYSIS_PROMPT
