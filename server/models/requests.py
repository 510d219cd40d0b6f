"""
Pydantic request models for API validation

Field aliases accept the camelCase keys the web front-end sends.
"""

from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import config
from server.utils.validation import sanitize_string


class CreatePollRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: Optional[str] = None
    max_rankings: int = Field(default=config.DEFAULT_MAX_RANKINGS, alias="maxRankings")
    max_voters: int = Field(default=config.DEFAULT_MAX_VOTERS, alias="maxVoters")
    restaurant_count: Optional[int] = Field(default=None, alias="restaurantCount")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Title is required and must be a string")
        sanitized = sanitize_string(v, max_length=len(v))
        if len(sanitized) > config.MAX_TITLE_LENGTH:
            raise ValueError(f"Title too long (max {config.MAX_TITLE_LENGTH} characters)")
        return sanitized

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        sanitized = sanitize_string(str(v), max_length=1000)
        return sanitized or None

    @field_validator("restaurant_count")
    @classmethod
    def validate_restaurant_count(cls, v: Optional[int]) -> Optional[int]:
        # 0 means no restaurants, same as omitting the field
        if not v:
            return None
        low, high = config.MIN_RESTAURANTS_PER_POLL, config.MAX_RESTAURANTS_PER_POLL
        if v < low or v > high:
            raise ValueError(f"Restaurant count must be between {low} and {high}")
        return v

    @field_validator("max_rankings")
    @classmethod
    def validate_max_rankings(cls, v: int) -> int:
        if v < 1 or v > config.MAX_RESTAURANTS_PER_POLL:
            raise ValueError(f"Max rankings must be between 1 and {config.MAX_RESTAURANTS_PER_POLL}")
        return v

    @field_validator("max_voters")
    @classmethod
    def validate_max_voters(cls, v: int) -> int:
        if v < 1 or v > config.MAX_VOTERS_LIMIT:
            raise ValueError(f"Max voters must be between 1 and {config.MAX_VOTERS_LIMIT}")
        return v


class RankingEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    option_id: str = Field(alias="optionId")
    rank: int


class VoteRequest(BaseModel):
    rankings: List[RankingEntry]

    @field_validator("rankings")
    @classmethod
    def validate_rankings(cls, v: List[RankingEntry]) -> List[RankingEntry]:
        if not v:
            raise ValueError("At least one ranking is required")
        return v

    def as_pairs(self) -> List[tuple]:
        return [(entry.option_id, entry.rank) for entry in self.rankings]


class PopulateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    location: str
    poll_slug: Optional[str] = Field(default=None, alias="pollSlug")
    limit: int = 10

    @field_validator("location", mode="before")
    @classmethod
    def validate_location(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Location is required")
        return sanitize_string(v)

    @field_validator("poll_slug")
    @classmethod
    def validate_poll_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if len(v) > 100 or not all(c.isalnum() or c == "-" for c in v):
            raise ValueError("Poll slug must be letters, digits and dashes (max 100)")
        return v.lower()

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: int) -> int:
        if v < 1 or v > 60:
            raise ValueError("Limit must be between 1 and 60")
        return v
