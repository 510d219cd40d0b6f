"""Async RestaurantRepository for the restaurant catalog

Handles:
- Upserting restaurants fetched from the places service
- Reading the catalog in ingestion order (poll candidate selection)
"""

from typing import List, Optional

from asyncpg import Connection

from config import get_logger
from database.models import Restaurant
from database.repositories_async.base import BaseRepository

logger = get_logger(__name__).bind(component="restaurant_repository")


def _build_restaurant(row) -> Restaurant:
    """Factory to construct Restaurant from database row"""
    return Restaurant(
        id=row["id"],
        name=row["name"],
        location=row["location"],
        place_id=row["place_id"],
        created_at=row["created_at"],
    )


class RestaurantRepository(BaseRepository):
    """Repository for restaurant catalog operations"""

    async def upsert_restaurants(
        self, restaurants: List[Restaurant], conn: Optional[Connection] = None
    ) -> List[Restaurant]:
        """Insert restaurants, refreshing name/location of ones already stored

        Deduplicates on id (derived from place_id). Returns the stored rows
        in input order.
        """
        if not restaurants:
            return []

        stored = []
        async with self._ensure_conn(conn) as c:
            for restaurant in restaurants:
                row = await c.fetchrow(
                    """
                    INSERT INTO restaurants (id, name, location, place_id)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT (id) DO UPDATE
                    SET name = EXCLUDED.name, location = EXCLUDED.location
                    RETURNING id, name, location, place_id, created_at
                    """,
                    restaurant.id,
                    restaurant.name,
                    restaurant.location,
                    restaurant.place_id,
                )
                stored.append(_build_restaurant(row))

        logger.info("upserted restaurants", count=len(stored))
        return stored

    async def get_catalog(self, limit: int) -> List[Restaurant]:
        """First `limit` restaurants in ingestion order"""
        rows = await self._fetch(
            """
            SELECT id, name, location, place_id, created_at
            FROM restaurants
            ORDER BY created_at ASC, id ASC
            LIMIT $1
            """,
            limit,
        )
        return [_build_restaurant(row) for row in rows]

    async def count(self) -> int:
        return await self._fetchval("SELECT COUNT(*) FROM restaurants")
