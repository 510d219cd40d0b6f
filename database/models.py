"""
Database Models for dinepoll

Pydantic dataclasses with runtime validation for core entities.
"""

from typing import Dict, List, Optional
from datetime import datetime
from pydantic.dataclasses import dataclass
from dataclasses import asdict, field

from config import get_logger

logger = get_logger(__name__).bind(component="dinepoll")


@dataclass(frozen=True)
class Restaurant:
    """Restaurant entity - the candidate of a poll

    Immutable once a poll references it.
    """

    id: str  # Primary key
    name: str
    location: Optional[str] = None  # Formatted address from places lookup
    place_id: Optional[str] = None  # Places service identifier (dedupe key)
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        if self.created_at:
            data["created_at"] = self.created_at.isoformat()
        return data


# Candidate is the tally's name for a poll option
Candidate = Restaurant


@dataclass
class Poll:
    """Poll entity with its ordered candidate list"""

    id: str
    title: str
    slug: Optional[str] = None  # Human-readable handle for populated polls
    description: Optional[str] = None
    max_rankings: int = 4
    max_voters: int = 3
    is_active: bool = True
    restaurants: List[Restaurant] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.max_voters < 1:
            from exceptions import ValidationError
            raise ValidationError(
                f"Invalid max_voters: {self.max_voters}. Must be at least 1",
                field="max_voters",
                value=self.max_voters
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data["restaurants"] = [r.to_dict() for r in self.restaurants]
        if self.created_at:
            data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class Ballot:
    """One voter's ranking: restaurant id -> rank (1 = most preferred)

    A valid ballot ranks every candidate of its poll exactly once with
    ranks forming a permutation of 1..N (see vote_utils.validate_ballot).
    """

    voter_id: str
    rankings: Dict[str, int]

    def rank_of(self, candidate_id: str) -> Optional[int]:
        return self.rankings.get(candidate_id)


@dataclass
class TallyResult:
    """Per-candidate result row of a ranked tally"""

    id: str
    name: str
    total_points: int
    vote_count: int
    rank_counts: List[int]  # rank_counts[i] = ballots placing candidate at rank i+1
    average_rank: float
    place_id: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)
