"""Vote API routes - ranked ballot submission."""

from fastapi import APIRouter, Depends, HTTPException

from config import get_logger
from database.db_postgres import Database
from database.id_generation import generate_voter_id
from database.vote_utils import validate_ballot
from exceptions import InvalidBallotError, PollClosedError, PollError, PollFullError
from server.dependencies import get_db
from server.metrics import metrics
from server.models.requests import VoteRequest
from server.utils.responses import success_response
from server.utils.validation import poll_error_status, require_active, require_poll

logger = get_logger(__name__).bind(component="api")

router = APIRouter(prefix="/api", tags=["votes"])


def _rejection_reason(error: PollError) -> str:
    if isinstance(error, PollFullError):
        return "poll_full"
    if isinstance(error, PollClosedError):
        return "poll_closed"
    return "not_found"


@router.post("/vote/{poll_id}")
async def submit_vote(poll_id: str, body: VoteRequest, db: Database = Depends(get_db)):
    """Submit one anonymous voter's full ranking of the poll's restaurants.

    Every restaurant must be ranked exactly once with ranks 1..N.
    """
    poll = await require_poll(db, poll_id)
    try:
        require_active(poll)
    except HTTPException:
        metrics.ballots_rejected.labels(reason="poll_closed").inc()
        raise

    current_voters = await db.ballots.count_voters(poll_id)
    if current_voters >= poll.max_voters:
        metrics.ballots_rejected.labels(reason="poll_full").inc()
        raise HTTPException(status_code=400, detail="Poll has reached maximum number of voters")

    voter_id = generate_voter_id()
    try:
        rankings = validate_ballot(poll.restaurants, body.as_pairs(), voter_id=voter_id)
    except InvalidBallotError as e:
        metrics.ballots_rejected.labels(reason="invalid_ballot").inc()
        logger.info("ballot rejected", poll_id=poll_id, reason=e.message, candidate_id=e.candidate_id)
        raise HTTPException(status_code=400, detail=e.message)

    try:
        votes_submitted = await db.ballots.submit_ballot(poll_id, voter_id, rankings)
    except PollError as e:
        # Lost a race against another ballot or the poll closing
        metrics.ballots_rejected.labels(reason=_rejection_reason(e)).inc()
        raise HTTPException(status_code=poll_error_status(e), detail=e.message)

    metrics.ballots_submitted.inc()

    return success_response(
        {
            "poll_id": poll_id,
            "votes_submitted": votes_submitted,
            "current_voters": current_voters + 1,
            "max_voters": poll.max_voters,
        },
        message="Vote submitted successfully",
    )
