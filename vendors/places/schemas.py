"""
Pydantic schemas for places lookup output - runtime validation at the boundary.

Validates records from the places service before they enter the catalog.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from database.id_generation import generate_restaurant_id
from database.models import Restaurant


class PlaceSchema(BaseModel):
    """Restaurant record from the places service"""
    model_config = ConfigDict(extra="ignore")

    place_id: Optional[str] = None
    name: str = "Unknown Restaurant"
    formatted_address: str = "Unknown Location"
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    price_level: Optional[int] = None
    types: List[str] = []

    @field_validator("name", "formatted_address", mode="before")
    @classmethod
    def default_blank(cls, v: Any, info) -> str:
        """Blank names/addresses fall back to the placeholder"""
        if v is None or not str(v).strip():
            return "Unknown Restaurant" if info.field_name == "name" else "Unknown Location"
        return str(v).strip()

    @classmethod
    def from_api(cls, place: Dict[str, Any]) -> "PlaceSchema":
        """Build from a nearby-search or details record (vicinity is the nearby-search address)"""
        data = dict(place)
        if not data.get("formatted_address") and data.get("vicinity"):
            data["formatted_address"] = data["vicinity"]
        return cls.model_validate(data)

    def to_restaurant(self) -> Restaurant:
        return Restaurant(
            id=generate_restaurant_id(
                place_id=self.place_id, name=self.name, location=self.formatted_address
            ),
            name=self.name,
            location=self.formatted_address,
            place_id=self.place_id,
        )
