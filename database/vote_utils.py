"""Shared ranked-vote tally and ballot validation logic."""

from typing import Dict, List, Mapping, Sequence

from database.models import Ballot, Candidate, TallyResult
from exceptions import InvalidBallotError


def points_for_rank(rank: int, candidate_count: int) -> int:
    """Borda points for a rank: first place earns N, last place earns 1."""
    return candidate_count - rank + 1


def compute_ranked_tally(
    candidates: Sequence[Candidate], ballots: Sequence[Ballot]
) -> List[TallyResult]:
    """Compute a Borda-count leaderboard for a poll.

    Preconditions (owned by the caller, not checked here): every ballot is a
    permutation of 1..N over exactly the given candidates. Rankings for
    candidates not in `candidates` are ignored.

    Results are sorted by total points descending. Ties keep the order in
    which candidates were given (sorted() is stable).
    """
    candidate_count = len(candidates)
    results = []

    for candidate in candidates:
        ranks = [
            rank
            for rank in (ballot.rank_of(candidate.id) for ballot in ballots)
            if rank is not None
        ]

        rank_counts = [0] * candidate_count
        for rank in ranks:
            if 1 <= rank <= candidate_count:
                rank_counts[rank - 1] += 1

        results.append(
            TallyResult(
                id=candidate.id,
                name=candidate.name,
                place_id=candidate.place_id,
                total_points=sum(points_for_rank(rank, candidate_count) for rank in ranks),
                vote_count=len(ranks),
                rank_counts=rank_counts,
                average_rank=sum(ranks) / len(ranks) if ranks else 0,
            )
        )

    return sorted(results, key=lambda result: result.total_points, reverse=True)


def validate_ballot(
    candidates: Sequence[Candidate],
    rankings: Mapping[str, int] | Sequence[tuple],
    voter_id: str | None = None,
) -> Dict[str, int]:
    """Check that rankings form a complete ranking of the candidates.

    Accepts either a mapping of candidate id -> rank or a sequence of
    (candidate_id, rank) pairs; the pair form is how ballots arrive over
    HTTP and is the only form that can carry duplicates.

    Returns the ballot as a candidate id -> rank dict.

    Raises:
        InvalidBallotError: naming the offending candidate where there is one
    """
    pairs = list(rankings.items()) if isinstance(rankings, Mapping) else list(rankings)

    if not pairs:
        raise InvalidBallotError("At least one ranking is required", voter_id=voter_id)

    poll_ids = [c.id for c in candidates]
    known = set(poll_ids)
    ballot: Dict[str, int] = {}

    for candidate_id, rank in pairs:
        if candidate_id not in known:
            raise InvalidBallotError(
                "Invalid restaurant IDs in rankings",
                voter_id=voter_id,
                candidate_id=candidate_id,
            )
        if candidate_id in ballot:
            raise InvalidBallotError(
                "Each restaurant may only be ranked once",
                voter_id=voter_id,
                candidate_id=candidate_id,
            )
        ballot[candidate_id] = rank

    for candidate_id in poll_ids:
        if candidate_id not in ballot:
            raise InvalidBallotError(
                "All restaurants in the poll must be ranked",
                voter_id=voter_id,
                candidate_id=candidate_id,
            )

    if sorted(ballot.values()) != list(range(1, len(poll_ids) + 1)):
        raise InvalidBallotError(
            "Ranks must be sequential starting from 1", voter_id=voter_id
        )

    return ballot
