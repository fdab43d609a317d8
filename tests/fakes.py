import io
from types import SimpleNamespace

from PIL import Image


class FakeResponses:
    """Stands in for `AsyncOpenAI.responses`, recording every call."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            output_text=self.text,
            output=[],
            usage=SimpleNamespace(input_tokens=120, output_tokens=40),
        )


class FakeOpenAIClient:
    def __init__(self, text=None, error=None):
        self.responses = FakeResponses(text=text, error=error)


def make_image_bytes(fmt="JPEG", size=(64, 48), mode="RGB"):
    color = (30, 120, 40, 200) if mode == "RGBA" else (30, 120, 40)
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format=fmt)
    return buffer.getvalue()
