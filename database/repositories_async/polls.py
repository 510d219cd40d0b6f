"""Async PollRepository for poll operations

Handles:
- Creating polls with their ordered candidate set
- Retrieving polls by id or slug with candidates
- Listing polls with restaurant and voter counts (admin view)
- Opening/closing polls
"""

from typing import Any, Dict, List, Optional

import asyncpg
from asyncpg import Connection

from config import get_logger
from database.models import Poll, Restaurant
from database.repositories_async.base import BaseRepository
from exceptions import DataIntegrityError

logger = get_logger(__name__).bind(component="poll_repository")

_POLL_COLUMNS = "id, slug, title, description, max_rankings, max_voters, is_active, created_at"


def _build_poll(row, restaurants: List[Restaurant]) -> Poll:
    """Factory to construct Poll from database row + candidates"""
    return Poll(
        id=row["id"],
        slug=row["slug"],
        title=row["title"],
        description=row["description"],
        max_rankings=row["max_rankings"],
        max_voters=row["max_voters"],
        is_active=row["is_active"],
        restaurants=restaurants,
        created_at=row["created_at"],
    )


class PollRepository(BaseRepository):
    """Repository for poll operations"""

    async def create_poll(self, poll: Poll, conn: Optional[Connection] = None) -> Poll:
        """Store a poll and link its restaurants in list order

        Restaurants must already exist in the catalog.
        """
        async with self._ensure_conn(conn) as c:
            try:
                row = await c.fetchrow(
                    f"""
                    INSERT INTO polls (id, slug, title, description, max_rankings, max_voters, is_active)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING {_POLL_COLUMNS}
                    """,
                    poll.id,
                    poll.slug,
                    poll.title,
                    poll.description,
                    poll.max_rankings,
                    poll.max_voters,
                    poll.is_active,
                )
            except asyncpg.UniqueViolationError as e:
                raise DataIntegrityError(
                    f"Poll slug already exists: {poll.slug}",
                    table="polls",
                    constraint=e.constraint_name,
                ) from e

            if poll.restaurants:
                await c.executemany(
                    """
                    INSERT INTO poll_restaurants (poll_id, restaurant_id, position)
                    VALUES ($1, $2, $3)
                    """,
                    [(poll.id, r.id, position) for position, r in enumerate(poll.restaurants)],
                )

        logger.info(
            "poll created",
            poll_id=poll.id,
            slug=poll.slug,
            restaurant_count=len(poll.restaurants),
            max_voters=poll.max_voters,
        )
        return _build_poll(row, list(poll.restaurants))

    async def get_candidates(self, poll_id: str, conn: Optional[Connection] = None) -> List[Restaurant]:
        """Candidates of a poll in creation order"""
        query = """
            SELECT r.id, r.name, r.location, r.place_id, r.created_at
            FROM poll_restaurants pr
            JOIN restaurants r ON r.id = pr.restaurant_id
            WHERE pr.poll_id = $1
            ORDER BY pr.position ASC
        """
        if conn:
            rows = await conn.fetch(query, poll_id)
        else:
            rows = await self._fetch(query, poll_id)

        return [
            Restaurant(
                id=row["id"],
                name=row["name"],
                location=row["location"],
                place_id=row["place_id"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def get_poll(self, poll_id: str, conn: Optional[Connection] = None) -> Optional[Poll]:
        """Get poll with candidates, or None"""
        query = f"SELECT {_POLL_COLUMNS} FROM polls WHERE id = $1"
        row = await conn.fetchrow(query, poll_id) if conn else await self._fetchrow(query, poll_id)
        if not row:
            return None
        restaurants = await self.get_candidates(poll_id, conn=conn)
        return _build_poll(row, restaurants)

    async def get_poll_by_slug(self, slug: str) -> Optional[Poll]:
        row = await self._fetchrow(f"SELECT {_POLL_COLUMNS} FROM polls WHERE slug = $1", slug)
        if not row:
            return None
        restaurants = await self.get_candidates(row["id"])
        return _build_poll(row, restaurants)

    async def list_polls(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent polls with restaurant and voter counts"""
        rows = await self._fetch(
            """
            SELECT
                p.id, p.slug, p.title, p.is_active, p.max_voters, p.created_at,
                (SELECT COUNT(*) FROM poll_restaurants pr WHERE pr.poll_id = p.id) AS restaurant_count,
                (SELECT COUNT(DISTINCT v.voter_id) FROM votes v WHERE v.poll_id = p.id) AS voter_count
            FROM polls p
            ORDER BY p.created_at DESC
            LIMIT $1
            """,
            limit,
        )
        return [
            {
                "id": row["id"],
                "slug": row["slug"],
                "title": row["title"],
                "is_active": row["is_active"],
                "max_voters": row["max_voters"],
                "created_at": row["created_at"].isoformat() if row["created_at"] else None,
                "restaurant_count": row["restaurant_count"],
                "voter_count": row["voter_count"],
            }
            for row in rows
        ]

    async def set_active(self, poll_id: str, is_active: bool) -> bool:
        """Open or close a poll. Returns False if the poll doesn't exist."""
        result = await self._execute(
            "UPDATE polls SET is_active = $2 WHERE id = $1", poll_id, is_active
        )
        updated = self._parse_row_count(result) > 0
        if updated:
            logger.info("poll status changed", poll_id=poll_id, is_active=is_active)
        return updated
