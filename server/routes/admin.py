"""
Admin API routes

Restaurant population from the places service and poll lifecycle.
All endpoints require the admin bearer token.
"""

from fastapi import APIRouter, Depends, HTTPException

from config import get_logger
from database.db_postgres import Database
from database.services import RestaurantIngestionService
from exceptions import DataIntegrityError, DinePollError, ValidationError
from server.dependencies import get_db, get_places_client, verify_admin_token
from server.metrics import metrics
from server.models.requests import PopulateRequest
from server.utils.responses import list_response, success_response

logger = get_logger(__name__).bind(component="admin")


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/populate")
async def populate_restaurants(
    body: PopulateRequest,
    db: Database = Depends(get_db),
    places=Depends(get_places_client),
    is_admin: bool = Depends(verify_admin_token),
):
    """Fetch restaurants near a location and create a poll over them

    Restaurants are upserted into the shared catalog; the poll uses the
    fetched set in the order the places service returned them.
    """
    if places is None:
        raise HTTPException(status_code=503, detail="Places API key not configured")

    # Reject a taken slug before any places lookup
    if body.poll_slug and await db.polls.get_poll_by_slug(body.poll_slug):
        raise HTTPException(status_code=409, detail=f"Poll slug already exists: {body.poll_slug}")

    service = RestaurantIngestionService(db, places)
    try:
        poll = await service.create_poll_for_location(
            body.location, slug=body.poll_slug, limit=body.limit
        )
    except DataIntegrityError as e:
        raise HTTPException(status_code=409, detail=f"Poll slug already exists: {body.poll_slug}") from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message) from e
    except DinePollError as e:
        metrics.record_error(component="admin", error=e)
        logger.error("populate failed", location=body.location, error=str(e))
        raise HTTPException(status_code=502, detail="Failed to fetch restaurants from places service") from e

    if poll is None:
        raise HTTPException(status_code=404, detail=f"No restaurants found for {body.location}")

    return success_response(
        {"poll": poll.to_dict()},
        message=f"Created poll with {len(poll.restaurants)} restaurants for {body.location}",
    )


@router.get("/polls")
async def list_polls(
    limit: int = 50,
    db: Database = Depends(get_db),
    is_admin: bool = Depends(verify_admin_token),
):
    """List recent polls with restaurant and voter counts"""
    polls = await db.polls.list_polls(limit=max(1, min(limit, 200)))
    return list_response(polls, key="polls")


@router.post("/polls/{poll_id}/close")
async def close_poll(
    poll_id: str,
    db: Database = Depends(get_db),
    is_admin: bool = Depends(verify_admin_token),
):
    """Stop accepting ballots for a poll. Results stay readable."""
    if not await db.polls.set_active(poll_id, False):
        raise HTTPException(status_code=404, detail="Poll not found")

    logger.info("poll closed", poll_id=poll_id)
    return success_response({"poll_id": poll_id, "is_active": False}, message="Poll closed")
