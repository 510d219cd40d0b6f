"""Poll API routes - poll creation, poll details and ranked results."""

from fastapi import APIRouter, Depends, HTTPException

from config import get_logger
from database.db_postgres import Database
from database.id_generation import validate_poll_id
from database.vote_utils import compute_ranked_tally
from exceptions import NotEnoughRestaurantsError
from server.dependencies import get_db
from server.metrics import metrics
from server.models.requests import CreatePollRequest
from server.utils.responses import poll_payload, results_payload, success_response
from server.utils.validation import require_active, require_poll

logger = get_logger(__name__).bind(component="api")

router = APIRouter(prefix="/api", tags=["polls"])


@router.post("/create-poll")
async def create_poll(body: CreatePollRequest, db: Database = Depends(get_db)):
    """Create a poll over the first `restaurantCount` restaurants of the catalog."""
    try:
        poll = await db.create_poll_from_catalog(
            title=body.title,
            restaurant_count=body.restaurant_count,
            description=body.description,
            max_rankings=body.max_rankings,
            max_voters=body.max_voters,
        )
    except NotEnoughRestaurantsError as e:
        raise HTTPException(status_code=400, detail=e.message)

    metrics.polls_created.labels(source="api").inc()

    if poll.restaurants:
        message = f"Poll created successfully with {len(poll.restaurants)} restaurants"
    else:
        message = "Poll created successfully"

    return success_response({"poll": poll.to_dict()}, message=message)


@router.get("/poll/{poll_id}")
async def get_poll(poll_id: str, db: Database = Depends(get_db)):
    """Get an open poll with its restaurants and voter counts."""
    poll = require_active(await require_poll(db, poll_id))
    current_voters = await db.ballots.count_voters(poll_id)

    return success_response({"poll": poll_payload(poll, current_voters)})


@router.get("/poll/{poll_id}/results")
async def get_poll_results(poll_id: str, db: Database = Depends(get_db)):
    """Ranked results: Borda points per restaurant, highest first.

    Closed polls still report results.
    """
    snapshot = await db.get_poll_snapshot(poll_id) if validate_poll_id(poll_id) else None
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Poll not found")
    poll, ballots = snapshot

    with metrics.tally_duration.time():
        results = compute_ranked_tally(poll.restaurants, ballots)

    return results_payload(poll, results, total_voters=len(ballots))
