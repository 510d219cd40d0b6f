"""Async BallotRepository for ranked ballots

A ballot is stored as one votes row per ranked restaurant, all sharing a
voter_id. Acceptance is serialised per poll by locking the poll row, so the
voter cap holds under concurrent submissions.
"""

from typing import Dict, List, Optional

from asyncpg import Connection

from config import get_logger
from database.models import Ballot
from database.repositories_async.base import BaseRepository
from exceptions import PollClosedError, PollFullError, PollNotFoundError

logger = get_logger(__name__).bind(component="ballot_repository")


class BallotRepository(BaseRepository):
    """Repository for ballot operations"""

    async def count_voters(self, poll_id: str, conn: Optional[Connection] = None) -> int:
        query = "SELECT COUNT(DISTINCT voter_id) FROM votes WHERE poll_id = $1"
        if conn:
            return await conn.fetchval(query, poll_id)
        return await self._fetchval(query, poll_id)

    async def submit_ballot(
        self, poll_id: str, voter_id: str, rankings: Dict[str, int]
    ) -> int:
        """Store a validated ballot atomically

        Re-checks the poll's state under a row lock: the caller's earlier
        checks may be stale by the time the ballot is written.

        Returns:
            Number of vote rows written

        Raises:
            PollNotFoundError, PollClosedError, PollFullError
        """
        async with self.transaction() as conn:
            poll = await conn.fetchrow(
                "SELECT is_active, max_voters FROM polls WHERE id = $1 FOR UPDATE",
                poll_id,
            )
            if not poll:
                raise PollNotFoundError("Poll not found", poll_id=poll_id)
            if not poll["is_active"]:
                raise PollClosedError("Poll is no longer active", poll_id=poll_id)

            voters = await self.count_voters(poll_id, conn=conn)
            if voters >= poll["max_voters"]:
                raise PollFullError(
                    "Poll has reached maximum number of voters",
                    poll_id=poll_id,
                    max_voters=poll["max_voters"],
                )

            await conn.executemany(
                """
                INSERT INTO votes (poll_id, voter_id, restaurant_id, rank)
                VALUES ($1, $2, $3, $4)
                """,
                [(poll_id, voter_id, restaurant_id, rank) for restaurant_id, rank in rankings.items()],
            )

        logger.info(
            "ballot stored",
            poll_id=poll_id,
            voter_id=voter_id[:14],
            rankings=len(rankings),
            voter_number=voters + 1,
        )
        return len(rankings)

    async def get_ballots(self, poll_id: str, conn: Optional[Connection] = None) -> List[Ballot]:
        """All ballots of a poll in submission order"""
        query = """
            SELECT voter_id, restaurant_id, rank
            FROM votes
            WHERE poll_id = $1
            ORDER BY id ASC
        """
        rows = await conn.fetch(query, poll_id) if conn else await self._fetch(query, poll_id)

        grouped: Dict[str, Dict[str, int]] = {}
        for row in rows:
            grouped.setdefault(row["voter_id"], {})[row["restaurant_id"]] = row["rank"]

        return [Ballot(voter_id=voter_id, rankings=rankings) for voter_id, rankings in grouped.items()]
