"""Input sanitization and existence checks for API routes."""

import re

from fastapi import HTTPException

from database.id_generation import validate_poll_id
from exceptions import PollNotFoundError


def sanitize_string(value: str, max_length: int = 200) -> str:
    """Strip markup-ish characters and control characters, collapse whitespace"""
    if not value:
        return ""

    sanitized = re.sub(r'[<>"`\x00-\x1f]', "", value)
    sanitized = re.sub(r'\s+', " ", sanitized).strip()
    return sanitized[:max_length]


async def require_poll(db, poll_id: str):
    """Get poll or raise 404."""
    if not poll_id:
        raise HTTPException(status_code=400, detail="Poll ID is required")
    if not validate_poll_id(poll_id):
        raise HTTPException(status_code=404, detail="Poll not found")
    poll = await db.polls.get_poll(poll_id)
    if not poll:
        raise HTTPException(status_code=404, detail="Poll not found")
    return poll


def require_active(poll):
    """Raise 400 if the poll is closed."""
    if not poll.is_active:
        raise HTTPException(status_code=400, detail="Poll is no longer active")
    return poll


def poll_error_status(error: Exception) -> int:
    """HTTP status for a poll-state error"""
    return 404 if isinstance(error, PollNotFoundError) else 400
