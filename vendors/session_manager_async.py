"""
Async Session Manager for external HTTP services

Centralized aiohttp session pooling for the places lookup client.
One shared session per service, created lazily, closed on shutdown.
"""

import aiohttp
from typing import Any, Dict

from config import get_logger

logger = get_logger(__name__).bind(component="http")


class AsyncSessionManager:
    """
    Manages aiohttp client sessions per external service.

    Sessions are created lazily and reused for process lifetime.
    """

    _sessions: Dict[str, aiohttp.ClientSession] = {}

    @classmethod
    async def get_session(cls, service: str, timeout_total: int = 30) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session for a service.

        Args:
            service: Service name (e.g., "google_places")
            timeout_total: Total timeout in seconds (default: 30s)
        """
        if service not in cls._sessions or cls._sessions[service].closed:
            timeout = aiohttp.ClientTimeout(
                total=timeout_total,
                connect=10,
                sock_read=timeout_total
            )

            connector = aiohttp.TCPConnector(
                limit=10,
                limit_per_host=5,
                ttl_dns_cache=300,
                enable_cleanup_closed=True
            )

            cls._sessions[service] = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers={"Accept": "application/json"},
                raise_for_status=False  # status handled by the client
            )

            logger.debug("created async session", service=service, timeout_seconds=timeout_total)

        return cls._sessions[service]

    @classmethod
    async def close_all(cls):
        """Close all active sessions (call on application shutdown)"""
        if not cls._sessions:
            return

        logger.info("closing async sessions", session_count=len(cls._sessions))

        for service, session in cls._sessions.items():
            if not session.closed:
                await session.close()
                logger.debug("closed async session", service=service)

        cls._sessions.clear()

    @classmethod
    def get_stats(cls) -> Dict[str, Any]:
        """Get statistics about active sessions"""
        return {
            "total_sessions": len(cls._sessions),
            "services": {
                service: {"closed": session.closed}
                for service, session in cls._sessions.items()
            },
        }
