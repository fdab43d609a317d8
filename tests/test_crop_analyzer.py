import asyncio
import base64

import httpx
import openai
import pytest

from models.analysis_result import AnalysisResult
from services.errors import AnalysisParseError, ServiceUnavailableError, UpstreamError
from services.openai.crop_analyzer import CropDiseaseAnalyzer, to_image_data_url
from services.openai.crop_prompts import CROP_ANALYSIS_PROMPT, build_analysis_prompt
from tests.fakes import FakeOpenAIClient


def test_prompt_names_every_output_field():
    prompt = build_analysis_prompt()
    assert prompt == CROP_ANALYSIS_PROMPT
    for field in ("disease (string)", "medicines (string[])", "description (string)", "causes (string[])"):
        assert field in prompt
    assert "STRICT JSON" in prompt


def test_to_image_data_url_carries_mime_type():
    url = to_image_data_url(b"abc", "image/png")
    assert url == "data:image/png;base64," + base64.b64encode(b"abc").decode()


def test_to_image_data_url_uses_registered_jpeg_type():
    assert to_image_data_url(b"abc", "image/jpg").startswith("data:image/jpeg;base64,")
    assert to_image_data_url(b"abc", "IMAGE/JPG; q=1").startswith("data:image/jpeg;base64,")


def test_analyze_sends_prompt_and_inline_image():
    client = FakeOpenAIClient(text='```json\n{"disease": "Rust", "medicines": ["Sulfur"]}\n```')
    analyzer = CropDiseaseAnalyzer(client, model="test-model")

    result = asyncio.run(analyzer.analyze(b"\xff\xd8image", "image/jpeg"))

    assert result == AnalysisResult(disease="Rust", medicines=["Sulfur"], description="", causes=[])
    [call] = client.responses.calls
    assert call["model"] == "test-model"
    [message] = call["input"]
    assert message["role"] == "user"
    text_part, image_part = message["content"]
    assert text_part == {"type": "input_text", "text": CROP_ANALYSIS_PROMPT}
    assert image_part["type"] == "input_image"
    assert image_part["image_url"].startswith("data:image/jpeg;base64,")


def test_analyze_model_defaults_from_env(monkeypatch):
    monkeypatch.setenv("OPENAI_MODEL", "env-model")
    assert CropDiseaseAnalyzer(FakeOpenAIClient()).model == "env-model"


def test_analyze_without_client_is_service_unavailable():
    with pytest.raises(ServiceUnavailableError):
        asyncio.run(CropDiseaseAnalyzer(None).analyze(b"img", "image/png"))


def test_analyze_maps_openai_errors_to_upstream_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    client = FakeOpenAIClient(error=openai.APIConnectionError(request=request))

    with pytest.raises(UpstreamError):
        asyncio.run(CropDiseaseAnalyzer(client).analyze(b"img", "image/png"))
    assert len(client.responses.calls) == 1


def test_analyze_unparseable_output_is_parse_error():
    client = FakeOpenAIClient(text="not json")
    with pytest.raises(AnalysisParseError):
        asyncio.run(CropDiseaseAnalyzer(client).analyze(b"img", "image/png"))
