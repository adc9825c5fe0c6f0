from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from derma_relay.config import Settings, settings as default_settings
from derma_relay.errors import AnalysisError, ConfigurationError, InvalidImageError
from derma_relay.schemas import AnalysisRequest, FindDermatologistsResponse, PlaceQuery
from derma_relay.services.gemini_client import GeminiClient
from derma_relay.services.places_client import PlacesClient
from derma_relay.utils.logging import get_logger, set_level
from derma_relay.utils.middleware import BodySizeLimitMiddleware


logger = get_logger("app")

MISSING_IMAGE_MESSAGE = "Missing base64Image or mimeType in request body."
MISSING_COORDINATES_MESSAGE = "Missing lat or lng in request body."
PLACES_KEY_MESSAGE = "Google Places API key not configured on server."


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    settings: Settings | None = None,
    gemini_client: GeminiClient | None = None,
    places_client: PlacesClient | None = None,
) -> FastAPI:
    """
    Build the relay application.

    Upstream clients are created here unless passed in, so a missing
    GEMINI_API_KEY fails at startup rather than on the first request.
    """
    settings = settings or default_settings
    set_level(settings.log_level)

    app = FastAPI(title="Derma Relay API", version="0.2.0")
    app.state.settings = settings
    app.state.gemini = gemini_client or GeminiClient(settings)
    app.state.places = places_client or PlacesClient(settings)

    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        if any(err.get("type") == "json_invalid" for err in exc.errors()):
            return _error(400, "Invalid JSON body.")
        return _error(400, "Invalid request body.")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unexpected error in {request.url.path}")
        return _error(500, str(exc) or "Internal server error.")

    @app.on_event("startup")
    async def on_startup():
        logger.info(f"API starting up (model={settings.gemini_model}, places configured={app.state.places.configured})")

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.gemini.aclose()
        await app.state.places.aclose()
        logger.info("API shutting down")

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/analyze")
    async def analyze(body: AnalysisRequest | None = None):
        """
        Relay a skin image to Gemini and return its structured assessment.

        Body: {"base64Image": str, "mimeType": str}

        Returns:
            {conditionName, description, symptoms[], suggestions[], severity}
        """
        if body is None or not body.base64_image or not body.mime_type:
            raise HTTPException(status_code=400, detail=MISSING_IMAGE_MESSAGE)

        try:
            result = await app.state.gemini.analyze_skin_condition(body.base64_image, body.mime_type)
        except InvalidImageError as e:
            raise HTTPException(status_code=400, detail=e.message)
        except AnalysisError as e:
            raise HTTPException(status_code=500, detail=e.message)

        return JSONResponse(content=result.model_dump(mode="json", by_alias=True))

    @app.post("/find-dermatologists")
    async def find_dermatologists(body: PlaceQuery | None = None):
        """
        Search nearby dermatology clinics around the given coordinates.

        Body: {"lat": float, "lng": float}

        Returns:
            {"places": [...], "failedQueries": [...]}; failedQueries lists the
            text searches that failed upstream and were left out of places.
        """
        if body is None or body.lat is None or body.lng is None:
            raise HTTPException(status_code=400, detail=MISSING_COORDINATES_MESSAGE)
        if not app.state.places.configured:
            raise HTTPException(status_code=500, detail=PLACES_KEY_MESSAGE)

        try:
            outcome = await app.state.places.find_dermatologists(body.lat, body.lng)
        except ConfigurationError as e:
            raise HTTPException(status_code=500, detail=e.message)

        if outcome.partial:
            logger.warning(f"Partial dermatologist results; failed queries: {outcome.failed_queries}")

        response = FindDermatologistsResponse(places=outcome.places, failed_queries=outcome.failed_queries)
        return JSONResponse(content=response.model_dump(mode="json", by_alias=True, exclude_none=True))

    return app


def run() -> None:
    uvicorn.run(
        "derma_relay.main:create_app",
        factory=True,
        host=default_settings.api_host,
        port=default_settings.api_port,
    )


if __name__ == "__main__":
    run()
