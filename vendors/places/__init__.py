"""Places lookup service clients"""

from vendors.places.google_places import GooglePlacesClient
from vendors.places.schemas import PlaceSchema

__all__ = ["GooglePlacesClient", "PlaceSchema"]
