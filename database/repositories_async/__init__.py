"""Async PostgreSQL repositories using asyncpg connection pooling"""

from database.repositories_async.base import BaseRepository
from database.repositories_async.ballots import BallotRepository
from database.repositories_async.polls import PollRepository
from database.repositories_async.restaurants import RestaurantRepository

__all__ = [
    "BaseRepository",
    "BallotRepository",
    "PollRepository",
    "RestaurantRepository",
]
