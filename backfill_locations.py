"""Fill in missing location data for a JSON export of photos.

Photos that have coordinates but no ``location_name`` are reverse geocoded one
at a time (respecting the Nominatim usage policy) and the file is rewritten.
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path

from trip_routes.config import load_settings
from trip_routes.geocoding import NominatimGeocoder
from trip_routes.models import Photo


async def backfill(path: Path) -> None:
    settings = load_settings()
    photos = [Photo.model_validate(p) for p in json.loads(path.read_text())]
    print(f"Loaded {len(photos):,} photos from {path}")

    async with NominatimGeocoder.from_settings(settings) as geocoder:
        updated, stats = await geocoder.backfill_locations(photos)

    by_id = {p.id: p for p in updated}
    merged = [by_id.get(p.id, p) for p in photos]
    path.write_text(json.dumps([p.model_dump(mode="json") for p in merged], indent=2))

    print(f"Processed: {stats.processed:,}")
    print(f"Updated:   {stats.updated:,}")
    print(f"Errors:    {stats.errors:,}")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("photos_json", type=Path)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(backfill(args.photos_json))


if __name__ == "__main__":
    main()
