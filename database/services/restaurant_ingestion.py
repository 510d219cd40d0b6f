"""
Restaurant Ingestion Service

Orchestrates the flow from the places service into the poll store:
1. Location search via the places client
2. Boundary validation and deduplication of restaurant records
3. Catalog upsert and (optionally) poll creation in one transaction
"""

import asyncio
from typing import Any, Dict, List, Optional

from config import config, get_logger
from database.id_generation import generate_poll_id, generate_poll_slug
from database.models import Poll, Restaurant
from exceptions import DinePollError, ValidationError
from server.metrics import metrics

logger = get_logger(__name__).bind(component="ingestion")


class RestaurantIngestionService:
    """
    Service for ingesting restaurants from the places service into the database.
    """

    def __init__(self, db, places, location_delay: float = 1.0):
        """
        Args:
            db: Database instance for repository access
            places: Places client exposing search_restaurants(location, limit)
            location_delay: Pause between locations in batch runs (places quota)
        """
        self.db = db
        self.places = places
        self.location_delay = location_delay

    async def _fetch_restaurants(self, location: str, limit: int) -> List[Restaurant]:
        """Search the places service and dedupe results by restaurant id"""
        if not location or not location.strip():
            raise ValidationError("Location is required", field="location")
        if limit < 1:
            raise ValidationError("Limit must be positive", field="limit", value=limit)

        places = await self.places.search_restaurants(location.strip(), limit)

        seen = set()
        restaurants = []
        for place in places:
            restaurant = place.to_restaurant()
            if restaurant.id in seen:
                continue
            seen.add(restaurant.id)
            restaurants.append(restaurant)
        return restaurants

    async def ingest_location(self, location: str, limit: int = 20) -> List[Restaurant]:
        """Add restaurants around a location to the catalog. Returns stored restaurants."""
        restaurants = await self._fetch_restaurants(location, limit)
        if not restaurants:
            logger.info("no restaurants found", location=location)
            return []

        stored = await self.db.restaurants.upsert_restaurants(restaurants)
        logger.info("ingested location", location=location, restaurants=len(stored))
        return stored

    async def create_poll_for_location(
        self,
        location: str,
        slug: Optional[str] = None,
        limit: int = 20,
        title: Optional[str] = None,
        max_voters: int = config.DEFAULT_MAX_VOTERS,
    ) -> Optional[Poll]:
        """Ingest a location's restaurants and create a poll over them

        Returns None when the places service finds nothing.

        Raises:
            ValidationError: If no slug is given and none can be derived from
                the location. Raised before the places service is called.
        """
        slug = slug or generate_poll_slug(location)

        restaurants = await self._fetch_restaurants(location, limit)
        if not restaurants:
            logger.info("no restaurants found", location=location)
            return None

        async with self.db.polls.transaction() as conn:
            stored = await self.db.restaurants.upsert_restaurants(restaurants, conn=conn)
            poll = await self.db.polls.create_poll(
                Poll(
                    id=generate_poll_id(),
                    slug=slug,
                    title=title or f"Restaurants in {location.strip()}",
                    max_rankings=min(config.DEFAULT_MAX_RANKINGS, len(stored)),
                    max_voters=max_voters,
                    restaurants=stored,
                ),
                conn=conn,
            )

        metrics.polls_created.labels(source="populate").inc()
        logger.info("created poll for location", location=location, slug=slug, poll_id=poll.id, restaurants=len(stored))
        return poll

    async def populate_locations(
        self, locations: List[Dict[str, str]], limit: int = 20
    ) -> Dict[str, Any]:
        """Create a poll per {location, slug} entry, continuing past failures

        Returns:
            Stats dict with created polls and failed locations
        """
        stats: Dict[str, Any] = {"created": [], "empty": [], "failed": []}

        for index, entry in enumerate(locations):
            location = entry["location"]
            try:
                poll = await self.create_poll_for_location(location, slug=entry.get("slug"), limit=limit)
                if poll:
                    stats["created"].append({"location": location, "slug": poll.slug, "poll_id": poll.id})
                else:
                    stats["empty"].append(location)
            except DinePollError as e:
                metrics.record_error(component="ingestion", error=e)
                logger.error("failed to populate location", location=location, error=str(e))
                stats["failed"].append({"location": location, "error": str(e)})

            if index < len(locations) - 1:
                await asyncio.sleep(self.location_delay)

        logger.info(
            "population complete",
            created=len(stats["created"]),
            empty=len(stats["empty"]),
            failed=len(stats["failed"]),
        )
        return stats
