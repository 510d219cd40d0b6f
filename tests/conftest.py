"""
Shared test fixtures

Environment is pinned before any project module reads config. The
in-memory database mirrors the repository API closely enough for the
routes and services, including the poll row lock semantics of
BallotRepository.submit_ballot.
"""

import asyncio
import os
import tempfile

_DATA_DIR = tempfile.mkdtemp(prefix="dinepoll-tests-")
os.environ["DINEPOLL_DB_DIR"] = _DATA_DIR
os.environ["DINEPOLL_RATE_LIMIT_DB"] = os.path.join(_DATA_DIR, "rate_limits.db")
os.environ["DINEPOLL_ADMIN_TOKEN"] = "test-admin-token"
os.environ["DINEPOLL_VOTE_RATE_LIMIT"] = "1000"
os.environ.pop("GOOGLE_PLACES_API_KEY", None)

from contextlib import asynccontextmanager  # noqa: E402
from dataclasses import replace  # noqa: E402
from datetime import datetime, timedelta  # noqa: E402
from typing import Dict, List, Optional  # noqa: E402

import pytest  # noqa: E402

from database.db_postgres import Database  # noqa: E402
from database.models import Ballot, Poll, Restaurant  # noqa: E402
from exceptions import (  # noqa: E402
    DataIntegrityError,
    PollClosedError,
    PollFullError,
    PollNotFoundError,
)


class _Clock:
    """Strictly increasing timestamps so creation order is unambiguous"""

    def __init__(self):
        self.now = datetime(2025, 1, 1, 12, 0, 0)

    def tick(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class InMemoryRestaurantRepository:

    def __init__(self, store):
        self.store = store

    async def upsert_restaurants(self, restaurants: List[Restaurant], conn=None) -> List[Restaurant]:
        stored = []
        for restaurant in restaurants:
            existing = self.store.restaurants.get(restaurant.id)
            created_at = existing.created_at if existing else self.store.clock.tick()
            record = replace(restaurant, created_at=created_at)
            self.store.restaurants[restaurant.id] = record
            stored.append(record)
        return stored

    async def get_catalog(self, limit: int) -> List[Restaurant]:
        catalog = sorted(self.store.restaurants.values(), key=lambda r: (r.created_at, r.id))
        return catalog[:limit]

    async def count(self) -> int:
        return len(self.store.restaurants)


class InMemoryPollRepository:

    def __init__(self, store):
        self.store = store

    @asynccontextmanager
    async def transaction(self, isolation: str = "read_committed", readonly: bool = False):
        yield None

    async def create_poll(self, poll: Poll, conn=None) -> Poll:
        if poll.slug and any(p.slug == poll.slug for p in self.store.polls.values()):
            raise DataIntegrityError(
                f"Poll slug already exists: {poll.slug}", table="polls", constraint="polls_slug_key"
            )
        for restaurant in poll.restaurants:
            if restaurant.id not in self.store.restaurants:
                raise DataIntegrityError("Unknown restaurant", table="poll_restaurants")
        stored = replace(poll, restaurants=list(poll.restaurants), created_at=self.store.clock.tick())
        self.store.polls[poll.id] = stored
        return replace(stored, restaurants=list(stored.restaurants))

    async def get_candidates(self, poll_id: str, conn=None) -> List[Restaurant]:
        poll = self.store.polls.get(poll_id)
        return list(poll.restaurants) if poll else []

    async def get_poll(self, poll_id: str, conn=None) -> Optional[Poll]:
        poll = self.store.polls.get(poll_id)
        return replace(poll, restaurants=list(poll.restaurants)) if poll else None

    async def get_poll_by_slug(self, slug: str) -> Optional[Poll]:
        for poll in self.store.polls.values():
            if poll.slug == slug:
                return await self.get_poll(poll.id)
        return None

    async def list_polls(self, limit: int = 50) -> List[Dict]:
        polls = sorted(self.store.polls.values(), key=lambda p: p.created_at, reverse=True)[:limit]
        return [
            {
                "id": p.id,
                "slug": p.slug,
                "title": p.title,
                "is_active": p.is_active,
                "max_voters": p.max_voters,
                "created_at": p.created_at.isoformat(),
                "restaurant_count": len(p.restaurants),
                "voter_count": len(self.store.ballots.get(p.id, [])),
            }
            for p in polls
        ]

    async def set_active(self, poll_id: str, is_active: bool) -> bool:
        poll = self.store.polls.get(poll_id)
        if not poll:
            return False
        self.store.polls[poll_id] = replace(poll, is_active=is_active)
        return True


class InMemoryBallotRepository:

    def __init__(self, store):
        self.store = store

    async def count_voters(self, poll_id: str, conn=None) -> int:
        return len(self.store.ballots.get(poll_id, []))

    async def submit_ballot(self, poll_id: str, voter_id: str, rankings: Dict[str, int]) -> int:
        poll = self.store.polls.get(poll_id)
        if not poll:
            raise PollNotFoundError("Poll not found", poll_id=poll_id)
        if not poll.is_active:
            raise PollClosedError("Poll is no longer active", poll_id=poll_id)
        ballots = self.store.ballots.setdefault(poll_id, [])
        if len(ballots) >= poll.max_voters:
            raise PollFullError(
                "Poll has reached maximum number of voters", poll_id=poll_id, max_voters=poll.max_voters
            )
        ballots.append(Ballot(voter_id=voter_id, rankings=dict(rankings)))
        return len(rankings)

    async def get_ballots(self, poll_id: str, conn=None) -> List[Ballot]:
        return list(self.store.ballots.get(poll_id, []))


class InMemoryStore:

    def __init__(self):
        self.clock = _Clock()
        self.restaurants: Dict[str, Restaurant] = {}
        self.polls: Dict[str, Poll] = {}
        self.ballots: Dict[str, List[Ballot]] = {}


class InMemoryDatabase(Database):
    """Database orchestration (create_poll_from_catalog) over in-memory repositories"""

    def __init__(self):
        self.pool = None
        self.store = InMemoryStore()
        self.restaurants = InMemoryRestaurantRepository(self.store)
        self.polls = InMemoryPollRepository(self.store)
        self.ballots = InMemoryBallotRepository(self.store)

    async def get_poll_snapshot(self, poll_id: str):
        poll = await self.polls.get_poll(poll_id)
        if not poll:
            return None
        return poll, await self.ballots.get_ballots(poll_id)

    async def get_stats(self):
        return {
            "restaurants": len(self.store.restaurants),
            "polls": len(self.store.polls),
            "active_polls": sum(1 for p in self.store.polls.values() if p.is_active),
            "ballots": sum(len(b) for b in self.store.ballots.values()),
        }

    async def close(self):
        pass


def _restaurants(count: int) -> List[Restaurant]:
    return [
        Restaurant(id=f"rst_{index:016x}", name=f"Restaurant {index}", location=f"{index} Main St")
        for index in range(count)
    ]


@pytest.fixture
def memory_db():
    return InMemoryDatabase()


@pytest.fixture
def catalog(memory_db):
    """Six restaurants in the catalog, in creation order"""
    return asyncio.run(memory_db.restaurants.upsert_restaurants(_restaurants(6)))
