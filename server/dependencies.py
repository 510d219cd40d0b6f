"""FastAPI Dependencies

Centralized dependency injection for reuse across all route modules.
"""

import secrets

from fastapi import Header, HTTPException, Request

from config import config
from database.db_postgres import Database


def get_db(request: Request) -> Database:
    """Dependency to get shared database instance from app state

    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(db: Database = Depends(get_db)):
            poll = await db.polls.get_poll(poll_id)

    Tests override this with an in-memory store via app.dependency_overrides.
    """
    return request.app.state.db


def get_places_client(request: Request):
    """Dependency to get the places lookup client (None when no API key is configured)"""
    return getattr(request.app.state, "places", None)


async def verify_admin_token(authorization: str = Header(None)) -> bool:
    """Verify admin bearer token"""
    if not config.ADMIN_TOKEN:
        raise HTTPException(
            status_code=500, detail="Admin authentication not configured"
        )

    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Invalid authentication scheme")

    if not secrets.compare_digest(token, config.ADMIN_TOKEN):
        raise HTTPException(status_code=403, detail="Invalid admin token")

    return True
