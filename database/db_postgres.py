"""PostgreSQL Database Layer with Repository Pattern

Async repositories handle all data access.
Database class handles only orchestration and high-level operations.
"""

import asyncpg
from typing import Any, Dict, List, Optional, Tuple
from pathlib import Path

from config import get_logger, config
from database.id_generation import generate_poll_id
from database.models import Ballot, Poll
from database.repositories_async import (
    BallotRepository,
    PollRepository,
    RestaurantRepository,
)
from exceptions import DatabaseConnectionError, NotEnoughRestaurantsError

logger = get_logger(__name__).bind(component="database_postgres")


class Database:
    """Async PostgreSQL database with repository pattern

    Usage:
        db = await Database.create()
        poll = await db.polls.get_poll("poll_0123456789abcdef")
        poll, ballots = await db.get_poll_snapshot(poll.id)
        await db.close()
    """

    pool: asyncpg.Pool

    restaurants: RestaurantRepository
    polls: PollRepository
    ballots: BallotRepository

    def __init__(self, pool: asyncpg.Pool):
        """Use Database.create() classmethod instead of direct instantiation."""
        self.pool = pool

        self.restaurants = RestaurantRepository(pool)
        self.polls = PollRepository(pool)
        self.ballots = BallotRepository(pool)

        logger.info("database initialized with repositories")

    @classmethod
    async def create(
        cls,
        dsn: Optional[str] = None,
        min_size: int = config.POSTGRES_POOL_MIN_SIZE,
        max_size: int = config.POSTGRES_POOL_MAX_SIZE
    ) -> "Database":
        """Create database with connection pool

        Args:
            dsn: PostgreSQL connection string (defaults to config.get_postgres_dsn())
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        if dsn is None:
            dsn = config.get_postgres_dsn()

        try:
            pool = await asyncpg.create_pool(
                dsn,
                min_size=min_size,
                max_size=max_size,
                command_timeout=60,
            )
            logger.info("connection pool created", min_size=min_size, max_size=max_size)
            return cls(pool)
        except (asyncpg.PostgresError, OSError, ConnectionError) as e:
            # Connection-specific errors only - let programming errors fail loudly
            logger.error("failed to create connection pool", error=str(e))
            raise DatabaseConnectionError(f"Failed to connect to PostgreSQL: {e}")

    async def close(self):
        """Close connection pool"""
        await self.pool.close()
        logger.info("connection pool closed")

    async def init_schema(self):
        """Initialize database schema. Safe to call multiple times."""
        schema_path = Path(__file__).parent / "schema_postgres.sql"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")

        async with self.pool.acquire() as conn:
            await conn.execute(schema_path.read_text())

        logger.info("schema initialized")

    # ==================
    # ORCHESTRATION METHODS
    # ==================

    async def create_poll_from_catalog(
        self,
        title: str,
        restaurant_count: Optional[int] = None,
        description: Optional[str] = None,
        max_rankings: int = config.DEFAULT_MAX_RANKINGS,
        max_voters: int = config.DEFAULT_MAX_VOTERS,
        slug: Optional[str] = None,
    ) -> Poll:
        """Create a poll over the first `restaurant_count` catalog restaurants

        Without a restaurant_count the poll starts with no candidates.

        Raises:
            NotEnoughRestaurantsError: If the catalog is too small
        """
        available = []
        if restaurant_count:
            available = await self.restaurants.get_catalog(limit=restaurant_count)
            if len(available) < restaurant_count:
                raise NotEnoughRestaurantsError(
                    f"Not enough restaurants available. Only {len(available)} restaurants found.",
                    requested=restaurant_count,
                    available=len(available),
                )

        poll = Poll(
            id=generate_poll_id(),
            slug=slug,
            title=title,
            description=description,
            max_rankings=max_rankings,
            max_voters=max_voters,
            restaurants=available,
        )
        return await self.polls.create_poll(poll)

    async def get_poll_snapshot(self, poll_id: str) -> Optional[Tuple[Poll, List[Ballot]]]:
        """Read a poll, its candidates and its ballots from one consistent snapshot

        Returns None if the poll doesn't exist.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction(isolation="repeatable_read", readonly=True):
                poll = await self.polls.get_poll(poll_id, conn=conn)
                if not poll:
                    return None
                ballots = await self.ballots.get_ballots(poll_id, conn=conn)
        return poll, ballots

    async def get_stats(self) -> Dict[str, Any]:
        """Aggregate counts for health checks"""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                SELECT
                    (SELECT COUNT(*) FROM restaurants) AS restaurants,
                    (SELECT COUNT(*) FROM polls) AS polls,
                    (SELECT COUNT(*) FROM polls WHERE is_active) AS active_polls,
                    (SELECT COUNT(DISTINCT (poll_id, voter_id)) FROM votes) AS ballots
                """
            )
        return {
            "restaurants": row["restaurants"],
            "polls": row["polls"],
            "active_polls": row["active_polls"],
            "ballots": row["ballots"],
        }
