from __future__ import annotations
from typing import Any, Dict
import base64
import binascii
import json

from google import genai
from google.genai import types
from pydantic import ValidationError

from derma_relay.config import Settings, settings as default_settings
from derma_relay.errors import AnalysisError, ConfigurationError, InvalidImageError
from derma_relay.schemas import AnalysisResult
from derma_relay.utils.logging import get_logger

logger = get_logger("gemini")

ANALYSIS_PROMPT = (
    "Analyze the provided image of a skin condition. Based on the visual evidence, identify the most likely "
    "dermatological condition. Provide a detailed, structured explanation in JSON format. The explanation should include:\n"
    "1. The common name of the potential condition.\n"
    "2. A clear, concise description of what the condition is.\n"
    "3. A list of typical symptoms associated with this condition.\n"
    "4. A list of general, non-prescriptive suggestions for next steps.\n"
    "5. A severity field (low, medium, or high) that reflects the risk or urgency of the condition.\n"
    "IMPORTANT: Your response MUST NOT be considered medical advice. Start the suggestions with a strong "
    "recommendation to consult a qualified healthcare professional or dermatologist for an accurate diagnosis "
    "and treatment plan. If the image is not clear, or does not appear to show a skin condition, respond with "
    "an analysis that indicates this. The severity field must always be one of: low, medium, or high."
)

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "conditionName": {
            "type": "STRING",
            "description": "The common name of the potential skin condition.",
        },
        "description": {
            "type": "STRING",
            "description": "A detailed and neutral description of what the skin condition is.",
        },
        "symptoms": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "A list of common symptoms associated with the condition.",
        },
        "suggestions": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": (
                "A list of general, non-prescriptive suggestions for next steps. This MUST start with a "
                "strong recommendation to consult a qualified healthcare professional."
            ),
        },
        "severity": {
            "type": "STRING",
            "description": "Severity of the condition: low, medium, or high. Always return one of these three values.",
            "enum": ["low", "medium", "high"],
        },
    },
    "required": ["conditionName", "description", "symptoms", "suggestions", "severity"],
}

INVALID_FORMAT_MESSAGE = "AI returned an invalid response format."


def decode_image(base64_image: str) -> bytes:
    """Decode the client's base64 payload, tolerating a leading data URL header."""
    data = base64_image.strip()
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError() from e


def parse_analysis(text: str | None) -> AnalysisResult:
    json_text = (text or "").strip()
    try:
        return AnalysisResult.model_validate(json.loads(json_text))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"[Gemini] Failed to parse JSON response: {json_text[:1000]} ({e})")
        raise AnalysisError(INVALID_FORMAT_MESSAGE) from e


class GeminiClient:
    def __init__(self, config: Settings | None = None, client: Any = None) -> None:
        config = config or default_settings
        if client is None:
            if not config.gemini_api_key:
                raise ConfigurationError("GEMINI_API_KEY environment variable not set")
            client = genai.Client(
                api_key=config.gemini_api_key,
                http_options=types.HttpOptions(timeout=int(config.gemini_timeout_seconds * 1000)),
            )

        self.client = client
        self.model_name = config.gemini_model

    async def aclose(self) -> None:
        await self.client.aio.aclose()

    async def analyze_skin_condition(self, base64_image: str, mime_type: str) -> AnalysisResult:
        """
        Ask the model for a structured assessment of a skin image.

        Args:
            base64_image: image bytes, base64 encoded
            mime_type: MIME type of the image, passed through unchecked

        Returns:
            The parsed AnalysisResult

        Raises:
            InvalidImageError: the payload is not base64
            AnalysisError: the upstream call failed or returned an unusable body
        """
        image_bytes = decode_image(base64_image)
        logger.info(f"[Gemini] Analyzing image mime_type={mime_type} bytes={len(image_bytes)}")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=[
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                    ANALYSIS_PROMPT,
                ],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=ANALYSIS_SCHEMA,
                ),
            )
        except Exception as e:
            logger.warning(f"[Gemini] analyze call failed: {e}")
            raise AnalysisError(str(e) or None) from e

        return parse_analysis(getattr(response, "text", None))
