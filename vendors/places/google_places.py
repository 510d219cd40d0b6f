"""Async Google Places client - geocoding, paginated nearby search, place details."""

import asyncio
import time
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from config import config, get_logger
from exceptions import ConfigurationError, PlacesAPIError, PlacesHTTPError
from server.metrics import metrics
from vendors.places.schemas import PlaceSchema
from vendors.session_manager_async import AsyncSessionManager

logger = get_logger(__name__).bind(component="places")

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PLACE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

DETAIL_FIELDS = [
    "place_id",
    "name",
    "formatted_address",
    "rating",
    "user_ratings_total",
    "price_level",
    "types",
    "geometry",
]

# Nearby search returns at most 20 results per page and 3 pages per query
MAX_PAGES = 3


class GooglePlacesClient:
    """Restaurant lookup against the Google Places web service.

    Contract: transport failures raise PlacesHTTPError, non-OK API statuses
    raise PlacesAPIError, ZERO_RESULTS is an empty result.
    """

    service = "google_places"

    def __init__(
        self,
        api_key: Optional[str] = None,
        page_token_delay: float = 2.0,
        page_token_retries: int = 3,
    ):
        api_key = api_key or config.get_places_api_key()
        if not api_key:
            raise ConfigurationError(
                "GOOGLE_PLACES_API_KEY environment variable is required",
                config_key="GOOGLE_PLACES_API_KEY",
            )
        self.api_key = api_key
        # next_page_token only becomes valid a short while after it is issued
        self.page_token_delay = page_token_delay
        self.page_token_retries = page_token_retries

    async def _get_json(self, operation: str, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a Places endpoint and parse JSON. Raises PlacesHTTPError on failure."""
        session = await AsyncSessionManager.get_session(self.service)
        params = {**params, "key": self.api_key}
        start_time = time.time()

        try:
            async with session.get(url, params=params) as response:
                duration = time.time() - start_time
                if response.status >= 400:
                    error_body = await response.text()
                    metrics.places_requests.labels(operation=operation, status=f"http_{response.status}").inc()
                    logger.error(
                        "places http error",
                        operation=operation,
                        status_code=response.status,
                        error_body=error_body[:500] if error_body else None,
                        duration_seconds=round(duration, 2),
                    )
                    raise PlacesHTTPError(
                        f"HTTP {response.status} error", operation=operation, status_code=response.status
                    )

                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    metrics.places_requests.labels(operation=operation, status="bad_json").inc()
                    raise PlacesHTTPError(f"JSON parse failed: {e}", operation=operation) from e

        except asyncio.TimeoutError as e:
            duration = time.time() - start_time
            metrics.places_requests.labels(operation=operation, status="timeout").inc()
            logger.error("places request timeout", operation=operation, duration_seconds=round(duration, 2))
            raise PlacesHTTPError(f"Request timeout after {duration:.1f}s", operation=operation) from e

        except aiohttp.ClientError as e:
            metrics.places_requests.labels(operation=operation, status="error").inc()
            logger.error("places request failed", operation=operation, error=str(e), error_type=type(e).__name__)
            raise PlacesHTTPError(f"Request failed: {e}", operation=operation) from e

        metrics.places_requests.labels(operation=operation, status="success").inc()
        metrics.places_request_duration.labels(operation=operation).observe(duration)
        return payload

    @staticmethod
    def _check_status(payload: Dict[str, Any], operation: str, location: Optional[str] = None) -> bool:
        """True if the payload has results, False on ZERO_RESULTS. Raises on other statuses."""
        status = payload.get("status", "UNKNOWN_ERROR")
        if status == "OK":
            return True
        if status == "ZERO_RESULTS":
            return False
        message = payload.get("error_message") or f"Places API error: {status}"
        raise PlacesAPIError(message, operation=operation, status=status, location=location)

    async def geocode(self, address: str) -> Tuple[float, float]:
        """Resolve an address to (lat, lng)

        Raises:
            PlacesAPIError: If the address can't be resolved
        """
        payload = await self._get_json("geocode", GEOCODE_URL, {"address": address})
        if not self._check_status(payload, "geocode", location=address) or not payload.get("results"):
            raise PlacesAPIError(
                f"Could not find coordinates for location: {address}",
                operation="geocode",
                status="ZERO_RESULTS",
                location=address,
            )

        coords = payload["results"][0]["geometry"]["location"]
        return coords["lat"], coords["lng"]

    async def nearby_restaurants(
        self,
        lat: float,
        lng: float,
        radius: int = config.PLACES_SEARCH_RADIUS,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Restaurants near a point, following next_page_token until `limit` is reached"""
        results: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {
            "location": f"{lat},{lng}",
            "radius": radius,
            "type": "restaurant",
        }

        for page in range(MAX_PAGES):
            payload = await self._fetch_page(params, is_followup=page > 0)
            if not self._check_status(payload, "nearby"):
                break

            results.extend(payload.get("results", []))
            token = payload.get("next_page_token")
            logger.debug("fetched nearby page", page=page + 1, page_results=len(payload.get("results", [])), total=len(results))

            if len(results) >= limit or not token:
                break
            params = {"pagetoken": token}

        return results[:limit]

    async def _fetch_page(self, params: Dict[str, Any], is_followup: bool) -> Dict[str, Any]:
        """Fetch one nearby-search page. Follow-up pages wait for the token to activate."""
        if not is_followup:
            return await self._get_json("nearby", NEARBY_SEARCH_URL, params)

        for attempt in range(self.page_token_retries):
            await asyncio.sleep(self.page_token_delay)
            payload = await self._get_json("nearby", NEARBY_SEARCH_URL, params)
            if payload.get("status") != "INVALID_REQUEST":
                return payload
            logger.debug("page token not ready", attempt=attempt + 1)

        return payload

    async def place_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Detailed record for a place, or None if the service has nothing for it"""
        payload = await self._get_json(
            "details",
            PLACE_DETAILS_URL,
            {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS)},
        )
        if not self._check_status(payload, "details"):
            return None
        return payload.get("result")

    async def search_restaurants(self, location: str, limit: int = 20) -> List[PlaceSchema]:
        """Restaurants around a free-text location, with details where available

        A failed details lookup falls back to the nearby-search record.
        """
        lat, lng = await self.geocode(location)
        places = await self.nearby_restaurants(lat, lng, limit=limit)

        async def detailed(place: Dict[str, Any]) -> Dict[str, Any]:
            place_id = place.get("place_id")
            if not place_id:
                return place
            try:
                return await self.place_details(place_id) or place
            except (PlacesHTTPError, PlacesAPIError) as e:
                logger.warning("failed to get place details", place_id=place_id, error=str(e))
                return place

        detailed_places = await asyncio.gather(*(detailed(p) for p in places))

        restaurants = []
        for place in detailed_places:
            restaurants.append(PlaceSchema.from_api(place))

        logger.info("searched restaurants", location=location, found=len(restaurants), limit=limit)
        return restaurants
