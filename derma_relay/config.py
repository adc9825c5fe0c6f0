import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
	api_host: str = "0.0.0.0"
	api_port: int = 3000
	log_level: str = "INFO"

	# Gemini API settings
	gemini_api_key: str | None = None
	gemini_model: str = "gemini-2.5-flash"
	gemini_timeout_seconds: float = 60.0

	# Google Places API (New) settings
	places_api_key: str | None = None
	places_base_url: str = "https://places.googleapis.com/v1"
	places_timeout_seconds: float = 15.0
	places_search_radius_meters: float = 5.0
	places_max_results: int = 10

	# Requests above this size are rejected before the body is parsed
	max_body_bytes: int = 10 * 1024 * 1024

	@classmethod
	def from_env(cls) -> "Settings":
		return cls(
			api_host=os.getenv("API_HOST", "0.0.0.0"),
			api_port=int(os.getenv("API_PORT", "3000")),
			log_level=os.getenv("LOG_LEVEL", "INFO"),
			gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
			gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
			gemini_timeout_seconds=float(os.getenv("GEMINI_TIMEOUT_SECONDS", "60")),
			places_api_key=os.getenv("PLACES_API_KEY") or None,
			places_base_url=os.getenv("PLACES_BASE_URL", "https://places.googleapis.com/v1"),
			places_timeout_seconds=float(os.getenv("PLACES_TIMEOUT_SECONDS", "15")),
			places_search_radius_meters=float(os.getenv("PLACES_SEARCH_RADIUS_METERS", "5.0")),
			places_max_results=int(os.getenv("PLACES_MAX_RESULTS", "10")),
			max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(10 * 1024 * 1024))),
		)


settings = Settings.from_env()
