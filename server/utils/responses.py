"""Response payload builders for the poll API.

Successful responses are flat dicts with "success": True; failures are
raised as HTTPException and rendered as {"detail": ...}.
"""

from typing import List, Optional

from database.models import Poll, TallyResult


def success_response(data: dict, **extras) -> dict:
    """{"success": True, **data, **extras}"""
    return {"success": True, **data, **extras}


def list_response(items: list, key: str, total: Optional[int] = None) -> dict:
    """{"success": True, key: items, "total": N}"""
    return success_response({key: items, "total": total if total is not None else len(items)})


def poll_payload(poll: Poll, current_voters: int) -> dict:
    """Voter-facing poll view: candidates in tie-break order plus capacity"""
    return {
        "id": poll.id,
        "title": poll.title,
        "description": poll.description,
        "is_active": poll.is_active,
        "max_rankings": poll.max_rankings,
        "max_voters": poll.max_voters,
        "current_voters": current_voters,
        "has_reached_max_voters": current_voters >= poll.max_voters,
        "restaurants": [
            {"id": r.id, "name": r.name, "place_id": r.place_id, "location": r.location}
            for r in poll.restaurants
        ],
    }


def results_payload(poll: Poll, results: List[TallyResult], total_voters: int) -> dict:
    return success_response({
        "results": [r.to_dict() for r in results],
        "total_voters": total_voters,
        "max_voters": poll.max_voters,
        "poll_title": poll.title,
        "is_active": poll.is_active,
    })
