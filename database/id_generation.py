"""
ID Generation - Identifier generation for poll entities

Single source of truth for ALL ID generation.

Entity ID Patterns:
- Restaurant ID: rst_{16-char-sha256} - deterministic from place_id, e.g. "rst_7a8f3b2c1d9e4f5a"
- Poll ID: poll_{16-char-hex} - random, unguessable share link
- Voter ID: voter_{32-char-hex} - random, one per submitted ballot
- Poll slug: {location-words}-restaurants-{year} - e.g. "san-francisco-ca-restaurants-2025"

Restaurant ID Fallback Hierarchy:
1. place_id - Places service identifier (stable across ingestions)
2. name + location - For records without a place_id
"""

import hashlib
import re
import secrets
from datetime import datetime
from typing import Optional

from exceptions import ValidationError


def generate_restaurant_id(
    place_id: Optional[str] = None,
    name: Optional[str] = None,
    location: Optional[str] = None,
) -> str:
    """Generate a deterministic restaurant ID

    Re-ingesting the same place always yields the same ID, so the catalog
    deduplicates across locations and runs.

    Raises:
        ValueError: If neither place_id nor name is provided
    """
    if place_id and place_id.strip():
        key = f"place:{place_id.strip()}"
    elif name and name.strip():
        normalized_name = re.sub(r'\s+', ' ', name.strip().lower())
        normalized_location = re.sub(r'\s+', ' ', (location or "").strip().lower())
        key = f"name:{normalized_name}|{normalized_location}"
    else:
        raise ValueError("Restaurant ID requires place_id or name")

    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return f"rst_{digest[:16]}"


def generate_poll_id() -> str:
    """Generate a random poll ID (doubles as the share link token)"""
    return f"poll_{secrets.token_hex(8)}"


def generate_voter_id() -> str:
    """Generate an anonymous voter ID for one ballot"""
    return f"voter_{secrets.token_hex(16)}"


def slugify(text: str) -> str:
    """Lowercase, collapse non-alphanumerics to single dashes

    Examples:
        >>> slugify("San Francisco, CA")
        'san-francisco-ca'
    """
    return re.sub(r'[^a-z0-9]+', '-', text.lower()).strip('-')


def generate_poll_slug(location: str, year: Optional[int] = None) -> str:
    """Generate a readable slug for a location-seeded poll

    Examples:
        >>> generate_poll_slug("New York, NY", year=2024)
        'new-york-ny-restaurants-2024'
    """
    base = slugify(location)
    if not base:
        raise ValidationError("Poll slug requires a location with letters or digits", field="location", value=location)
    year = year or datetime.now().year
    return f"{base}-restaurants-{year}"


def validate_poll_id(poll_id: str) -> bool:
    """Check a poll ID matches the poll_{16 hex} format"""
    return bool(poll_id) and re.fullmatch(r'poll_[0-9a-f]{16}', poll_id) is not None
