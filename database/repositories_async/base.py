"""Shared asyncpg plumbing for the poll store repositories

Each repository wraps the one pool owned by Database. Reads go straight
through pool.acquire(); anything that must see or write several rows
atomically (poll creation, ballot acceptance, result snapshots) runs inside
transaction(), and methods that take an optional `conn` join the caller's
transaction instead of opening their own.
"""

import asyncpg
from asyncpg import Connection
from typing import Any, List, Optional
from contextlib import asynccontextmanager

from config import get_logger

logger = get_logger(__name__).bind(component="repository")


class BaseRepository:
    """Pool-backed query helpers and transaction scoping for repositories"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        """Execute query and fetch single row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def _fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        """Execute query and fetch all rows"""
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def _fetchval(self, query: str, *args: Any) -> Any:
        """Execute query and return the first column of the first row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def _execute(self, query: str, *args: Any) -> str:
        """Execute query without returning rows (INSERT, UPDATE, DELETE)"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)

    @asynccontextmanager
    async def transaction(self, isolation: str = "read_committed", readonly: bool = False):
        """Context manager for explicit transactions

        Usage:
            async with self.transaction() as conn:
                await conn.execute("INSERT ...")
                await conn.execute("UPDATE ...")

        Commits on clean exit, rolls back on exception.
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction(isolation=isolation, readonly=readonly):
                yield conn

    @asynccontextmanager
    async def _ensure_conn(self, conn: Optional[Connection] = None):
        """Use provided connection or open a new transaction.

        Lets methods participate in a caller's transaction when conn is passed.
        """
        if conn:
            yield conn
        else:
            async with self.transaction() as c:
                yield c

    @staticmethod
    def _parse_row_count(result: str) -> int:
        """Extract row count from PostgreSQL result like 'UPDATE 5' or 'DELETE 3'."""
        if not result:
            return 0
        return int(result.split()[-1])
