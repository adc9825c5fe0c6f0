from __future__ import annotations
from typing import Any, Dict, List
import asyncio

import httpx

from derma_relay.config import Settings, settings as default_settings
from derma_relay.errors import ConfigurationError, PlacesSearchError
from derma_relay.pipeline.place_filter import select_dermatology_places
from derma_relay.schemas import PlaceSearchOutcome
from derma_relay.utils.logging import get_logger


logger = get_logger("places_client")

SEARCH_QUERIES = (
    "dermatologist",
    "skin specialist",
    "dermatology clinic",
    "skin doctor",
    "dermatologist hospital",
)

PLACE_FIELDS = (
    "displayName",
    "formattedAddress",
    "rating",
    "userRatingCount",
    "businessStatus",
    "nationalPhoneNumber",
    "internationalPhoneNumber",
    "websiteUri",
    "googleMapsUri",
    "regularOpeningHours",
    "types",
)
FIELD_MASK = ",".join(f"places.{field}" for field in PLACE_FIELDS)


class PlacesClient:
    def __init__(self, config: Settings | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or default_settings
        self.api_key = self.config.places_api_key
        self.base_url = self.config.places_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self.config.places_timeout_seconds))
        logger.info(f"Initialized places client with base_url: {self.base_url}")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _search_body(self, query: str, lat: float, lng: float) -> Dict[str, Any]:
        return {
            "textQuery": query,
            "maxResultCount": self.config.places_max_results,
            "locationBias": {
                "circle": {
                    "center": {"latitude": lat, "longitude": lng},
                    "radius": self.config.places_search_radius_meters,
                },
            },
            "rankPreference": "DISTANCE",
        }

    async def search_text(self, query: str, lat: float, lng: float) -> List[Dict[str, Any]]:
        """
        Run one Places text search biased to the given point.

        Returns:
            Raw place records as returned by the API; empty when nothing matched.

        Raises:
            PlacesSearchError: transport failure, non-2xx status or unreadable body
        """
        url = f"{self.base_url}/places:searchText"
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key or "",
            "X-Goog-FieldMask": FIELD_MASK,
        }
        try:
            response = await self._http.post(url, json=self._search_body(query, lat, lng), headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise PlacesSearchError(f"Places search '{query}' returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise PlacesSearchError(f"Places search '{query}' failed: {e}") from e
        except ValueError as e:
            raise PlacesSearchError(f"Places search '{query}' returned invalid JSON") from e

        places = data.get("places") if isinstance(data, dict) else None
        return places or []

    async def find_dermatologists(self, lat: float, lng: float) -> PlaceSearchOutcome:
        """Search every query concurrently and merge the results in query order."""
        if not self.configured:
            raise ConfigurationError("Google Places API key not configured on server.")

        results = await asyncio.gather(
            *(self.search_text(query, lat, lng) for query in SEARCH_QUERIES),
            return_exceptions=True,
        )

        merged: List[Dict[str, Any]] = []
        failed: List[str] = []
        for query, result in zip(SEARCH_QUERIES, results):
            if isinstance(result, PlacesSearchError):
                logger.warning(f"Skipping failed query: {result}")
                failed.append(query)
            elif isinstance(result, BaseException):
                raise result
            else:
                merged.extend(result)

        places = select_dermatology_places(merged)
        logger.info(
            f"Dermatologist search at ({lat}, {lng}): {len(merged)} raw, "
            f"{len(places)} kept, {len(failed)} failed queries"
        )
        return PlaceSearchOutcome(places=places, failed_queries=failed)
