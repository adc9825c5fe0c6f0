"""Pytest configuration and fixtures."""

import json
from types import SimpleNamespace

import httpx
import pytest

from derma_relay.config import Settings


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-gemini-key", places_api_key="test-places-key")


@pytest.fixture
def sample_analysis():
    return {
        "conditionName": "Benign nevus (mole)",
        "description": "A common, usually harmless growth of pigment cells.",
        "symptoms": ["Round brown spot", "Even color", "Smooth border"],
        "suggestions": [
            "Consult a qualified healthcare professional or dermatologist for an accurate diagnosis.",
            "Monitor the mole for changes in size, shape or color.",
        ],
        "severity": "low",
    }


@pytest.fixture
def sample_places():
    """Places API records as returned for a single text search."""
    return [
        {
            "displayName": {"text": "City Dermatology Centre", "languageCode": "en"},
            "formattedAddress": "12 Main Road, Mangaluru",
            "rating": 4.6,
            "userRatingCount": 210,
            "businessStatus": "OPERATIONAL",
            "googleMapsUri": "https://maps.google.com/?cid=1",
        },
        {
            "displayName": {"text": "Happy Paws Veterinary Clinic", "languageCode": "en"},
            "formattedAddress": "4 Skin Street, Mangaluru",
            "rating": 4.9,
        },
        {
            "displayName": {"text": "Sunrise Multispeciality Hospital", "languageCode": "en"},
            "formattedAddress": "88 Hospital Lane, Mangaluru",
            "rating": 4.1,
        },
        {
            "displayName": {"text": "Corner Bakery", "languageCode": "en"},
            "formattedAddress": "1 Market Street, Mangaluru",
        },
    ]


class FakeGenerateContent:
    """Stands in for client.aio.models.generate_content and records each call."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class FakeAsyncClient:
    """Stands in for genai.Client().aio."""

    def __init__(self, generate_content):
        self.models = SimpleNamespace(generate_content=generate_content)
        self.closed = False

    async def aclose(self):
        self.closed = True


def fake_genai_client(generate_content):
    return SimpleNamespace(aio=FakeAsyncClient(generate_content))


@pytest.fixture
def make_genai_client():
    def _make(text=None, error=None):
        generate_content = FakeGenerateContent(text=text, error=error)
        return fake_genai_client(generate_content), generate_content

    return _make


class PlacesApiStub:
    """httpx transport handler that answers text searches from a query -> response table."""

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default if default is not None else {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        answer = self.responses.get(body["textQuery"], self.default)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    @property
    def queries(self):
        return [json.loads(r.content)["textQuery"] for r in self.requests]


@pytest.fixture
def places_api():
    return PlacesApiStub()


@pytest.fixture
def places_http(places_api):
    return httpx.AsyncClient(transport=httpx.MockTransport(places_api))
