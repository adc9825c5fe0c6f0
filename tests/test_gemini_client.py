"""Tests for the Gemini analysis client."""

import base64
import json

import pytest

from derma_relay.config import Settings
from derma_relay.errors import AnalysisError, ConfigurationError, InvalidImageError
from derma_relay.schemas import Severity
from derma_relay.services.gemini_client import (
    ANALYSIS_PROMPT,
    ANALYSIS_SCHEMA,
    GeminiClient,
    decode_image,
    parse_analysis,
)


IMAGE_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
IMAGE_B64 = base64.b64encode(IMAGE_BYTES).decode()


class TestDecodeImage:
    def test_plain_base64(self):
        assert decode_image(IMAGE_B64) == IMAGE_BYTES

    def test_data_url_prefix_is_stripped(self):
        assert decode_image(f"data:image/png;base64,{IMAGE_B64}") == IMAGE_BYTES

    def test_invalid_base64_raises(self):
        with pytest.raises(InvalidImageError):
            decode_image("not base64!!")


class TestParseAnalysis:
    def test_valid_payload(self, sample_analysis):
        result = parse_analysis(json.dumps(sample_analysis))
        assert result.condition_name == "Benign nevus (mole)"
        assert result.severity is Severity.low

    def test_surrounding_whitespace_is_ignored(self, sample_analysis):
        result = parse_analysis("\n  " + json.dumps(sample_analysis) + "  \n")
        assert result.suggestions[0].startswith("Consult")

    @pytest.mark.parametrize("text", [None, "", "not json", "[]", '{"conditionName": "x"}'])
    def test_unusable_payload_raises_invalid_format(self, text):
        with pytest.raises(AnalysisError, match="invalid response format"):
            parse_analysis(text)

    def test_severity_outside_enum_rejected(self, sample_analysis):
        sample_analysis["severity"] = "critical"
        with pytest.raises(AnalysisError, match="invalid response format"):
            parse_analysis(json.dumps(sample_analysis))


def test_schema_requires_every_field_and_constrains_severity():
    assert set(ANALYSIS_SCHEMA["required"]) == {"conditionName", "description", "symptoms", "suggestions", "severity"}
    assert ANALYSIS_SCHEMA["properties"]["severity"]["enum"] == ["low", "medium", "high"]


def test_missing_api_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        GeminiClient(Settings(gemini_api_key=None))


@pytest.mark.anyio
class TestAnalyzeSkinCondition:
    async def test_sends_image_then_prompt_with_schema(self, settings, make_genai_client, sample_analysis):
        client, generate_content = make_genai_client(text=json.dumps(sample_analysis))
        gemini = GeminiClient(settings, client=client)

        result = await gemini.analyze_skin_condition(IMAGE_B64, "image/png")

        assert result.severity in set(Severity)
        assert len(generate_content.calls) == 1
        call = generate_content.calls[0]
        assert call["model"] == "gemini-2.5-flash"
        image_part, prompt = call["contents"]
        assert image_part.inline_data.data == IMAGE_BYTES
        assert image_part.inline_data.mime_type == "image/png"
        assert prompt == ANALYSIS_PROMPT
        assert call["config"].response_mime_type == "application/json"

    async def test_upstream_failure_raises_analysis_error(self, settings, make_genai_client):
        client, _ = make_genai_client(error=RuntimeError("quota exceeded"))
        gemini = GeminiClient(settings, client=client)

        with pytest.raises(AnalysisError, match="quota exceeded"):
            await gemini.analyze_skin_condition(IMAGE_B64, "image/jpeg")

    async def test_malformed_response_raises_analysis_error(self, settings, make_genai_client):
        client, _ = make_genai_client(text="Sorry, I cannot help with that.")
        gemini = GeminiClient(settings, client=client)

        with pytest.raises(AnalysisError, match="invalid response format"):
            await gemini.analyze_skin_condition(IMAGE_B64, "image/jpeg")

    async def test_invalid_image_never_calls_model(self, settings, make_genai_client):
        client, generate_content = make_genai_client(text="{}")
        gemini = GeminiClient(settings, client=client)

        with pytest.raises(InvalidImageError):
            await gemini.analyze_skin_condition("%%%", "image/jpeg")
        assert generate_content.calls == []


@pytest.mark.anyio
async def test_aclose_closes_async_client(settings, make_genai_client):
    client, _ = make_genai_client(text="{}")
    gemini = GeminiClient(settings, client=client)

    await gemini.aclose()

    assert client.aio.closed
