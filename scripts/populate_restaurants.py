"""Populate the restaurant catalog and seed location polls from the places service.

Fetches restaurants around each location, upserts them into the catalog and
creates one poll per location. Locations that fail are logged and skipped.

Usage:
    uv run python scripts/populate_restaurants.py
    uv run python scripts/populate_restaurants.py --location "Austin, TX" --slug austin-eats
    uv run python scripts/populate_restaurants.py --catalog-only --location "Seattle, WA"
"""

import argparse
import asyncio
import sys
from typing import Dict, List, Optional

from config import config, get_logger
from database.db_postgres import Database
from database.id_generation import generate_poll_slug
from database.services import RestaurantIngestionService
from exceptions import ValidationError
from vendors.places import GooglePlacesClient
from vendors.session_manager_async import AsyncSessionManager

logger = get_logger(__name__)

DEFAULT_LOCATIONS = [
    "San Francisco, CA",
    "New York, NY",
    "Los Angeles, CA",
    "Chicago, IL",
]


def build_locations(locations: List[str], slugs: Optional[List[str]] = None) -> List[Dict[str, str]]:
    """Pair each location with its poll slug, generating slugs that weren't given"""
    slugs = slugs or []
    if len(slugs) > len(locations):
        raise ValueError("More --slug values than --location values")

    entries = []
    for index, location in enumerate(locations):
        slug = slugs[index] if index < len(slugs) else generate_poll_slug(location)
        entries.append({"location": location, "slug": slug})
    return entries


async def populate(
    locations: List[Dict[str, str]],
    limit: int,
    catalog_only: bool = False,
    init_schema: bool = False,
) -> dict:
    """Run ingestion for every location against the configured database.

    Returns:
        Stats dict from the ingestion service (or catalog counts)
    """
    db = await Database.create()
    try:
        if init_schema:
            await db.init_schema()

        service = RestaurantIngestionService(db, GooglePlacesClient())

        if catalog_only:
            added = {}
            for entry in locations:
                stored = await service.ingest_location(entry["location"], limit=limit)
                added[entry["location"]] = len(stored)
            return {"catalog": added, "catalog_size": await db.restaurants.count()}

        stats = await service.populate_locations(locations, limit=limit)
        stats["catalog_size"] = await db.restaurants.count()
        return stats
    finally:
        await AsyncSessionManager.close_all()
        await db.close()


def main():
    parser = argparse.ArgumentParser(description="Populate restaurants and location polls")
    parser.add_argument(
        "--location",
        action="append",
        dest="locations",
        help="Location to search (repeatable, default: four large US cities)",
    )
    parser.add_argument(
        "--slug",
        action="append",
        dest="slugs",
        help="Poll slug for the matching --location (default: generated)",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Maximum restaurants per location (default: 20)",
    )
    parser.add_argument(
        "--catalog-only",
        action="store_true",
        help="Only add restaurants to the catalog, don't create polls",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create tables before populating",
    )
    args = parser.parse_args()

    if not config.get_places_api_key():
        print("GOOGLE_PLACES_API_KEY is not set", file=sys.stderr)
        sys.exit(1)

    try:
        locations = build_locations(args.locations or DEFAULT_LOCATIONS, args.slugs)
    except (ValueError, ValidationError) as e:
        parser.error(str(e))

    logger.info("starting population", locations=len(locations), limit=args.limit)

    stats = asyncio.run(
        populate(locations, args.limit, catalog_only=args.catalog_only, init_schema=args.init_schema)
    )

    if args.catalog_only:
        for location, count in stats["catalog"].items():
            print(f"{location}: {count} restaurants")
        print(f"Catalog now holds {stats['catalog_size']} restaurants")
        return

    for created in stats["created"]:
        print(f"Created poll {created['slug']} ({created['poll_id']}) for {created['location']}")
    for location in stats["empty"]:
        print(f"No restaurants found for {location}")
    for failed in stats["failed"]:
        print(f"Failed {failed['location']}: {failed['error']}")
    print(f"Catalog now holds {stats['catalog_size']} restaurants")

    if stats["failed"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
