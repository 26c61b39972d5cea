"""Reverse geocoding against Nominatim.

Geocoding is best-effort enrichment: every public lookup returns ``None``
instead of raising when the provider cannot answer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import httpx

from .config import DEFAULT_LANDMARK_CLASSES, Settings
from .limiter import RequestLimiter, SequentialQueue
from .models import BackfillStats, Coordinate, LocationInfo, Photo, utc_now

logger = logging.getLogger(__name__)

CITY_FIELDS = ("city", "town", "village", "municipality", "suburb")


class NominatimGeocoder:
    """Rate-limited reverse geocoding client with retry and exponential backoff."""

    def __init__(
        self,
        *,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "TripRoutes/1.0",
        request_delay: float = 1.0,
        max_retries: int = 10,
        backoff_base: float = 1.0,
        landmark_classes: Iterable[str] = DEFAULT_LANDMARK_CLASSES,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        limiter: RequestLimiter | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.landmark_classes = frozenset(landmark_classes)
        self.limiter = limiter or RequestLimiter(request_delay)
        self._sleep = sleep
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"User-Agent": user_agent},
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> NominatimGeocoder:
        return cls(
            base_url=settings.nominatim_base_url,
            user_agent=settings.nominatim_user_agent,
            request_delay=settings.geocoding_request_delay,
            max_retries=settings.geocoding_max_retries,
            backoff_base=settings.geocoding_backoff_base,
            landmark_classes=settings.landmark_classes,
            timeout=settings.request_timeout,
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> NominatimGeocoder:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def reverse_geocode(self, latitude: float, longitude: float) -> LocationInfo | None:
        """Resolve a coordinate pair to place metadata, or ``None``."""
        params = {
            "lat": str(latitude),
            "lon": str(longitude),
            "format": "json",
            "addressdetails": "1",
            "extratags": "1",
            "namedetails": "1",
        }
        try:
            data = await self._get_with_retry("/reverse", params)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Geocoding failed for (%s, %s): %s", latitude, longitude, exc)
            return None

        if not isinstance(data, dict) or not data.get("address"):
            logger.info("No geocoding data found for (%s, %s)", latitude, longitude)
            return None

        address = data["address"]
        country_code = address.get("country_code")
        return LocationInfo(
            location_name=data.get("display_name"),
            city=self.extract_city(address),
            state=address.get("state") or address.get("region"),
            country=address.get("country"),
            country_code=country_code.upper() if country_code else None,
            landmark=self.extract_landmark(data),
        )

    async def batch_reverse_geocode(
        self, coordinates: Iterable[Coordinate]
    ) -> list[LocationInfo | None]:
        """Geocode coordinates one at a time, keeping the provider spacing."""
        queue = SequentialQueue()
        return await queue.run(
            coordinates,
            lambda coord: self.reverse_geocode(coord.latitude, coord.longitude),
        )

    @staticmethod
    def extract_city(address: dict[str, Any]) -> str | None:
        for field in CITY_FIELDS:
            if address.get(field):
                return address[field]
        return None

    def extract_landmark(self, data: dict[str, Any]) -> str | None:
        if data.get("name") and data.get("type") and data.get("class") in self.landmark_classes:
            return data["name"]
        return None

    async def enrich_photo(self, photo: Photo) -> Photo:
        """Return ``photo`` with location fields filled in when they can be resolved.

        Only photos with coordinates and no ``location_name`` are looked up.
        """
        if photo.latitude is None or photo.longitude is None or photo.location_name:
            return photo

        logger.info("Extracting location for coordinates: %s, %s", photo.latitude, photo.longitude)
        info = await self.reverse_geocode(photo.latitude, photo.longitude)
        if info is None:
            return photo
        return photo.model_copy(update={**info.model_dump(), "updated_at": utc_now()})

    async def backfill_locations(self, photos: Iterable[Photo]) -> tuple[list[Photo], BackfillStats]:
        """Enrich every photo still missing location data.

        Returns the photos that gained location data along with run counters.
        """
        pending = [
            p for p in photos
            if p.latitude is not None and p.longitude is not None and not p.location_name
        ]
        logger.info("Starting location backfill for %d photos", len(pending))

        stats = BackfillStats()
        updated: list[Photo] = []
        for photo in pending:
            stats.processed += 1
            try:
                enriched = await self.enrich_photo(photo)
            except Exception:
                stats.errors += 1
                logger.exception("Error processing photo %s", photo.id)
                continue
            if enriched.location_name:
                updated.append(enriched)
                stats.updated += 1

        logger.info("Location backfill completed: %s", stats.model_dump())
        return updated, stats

    async def _get_with_retry(self, path: str, params: dict[str, str]) -> Any:
        attempt = 0
        while True:
            try:
                async with self.limiter:
                    response = await self.client.get(path, params=params)
                if response.status_code >= 500:
                    response.raise_for_status()
            except (httpx.TransportError, httpx.HTTPStatusError) as exc:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = self.backoff_base * 2**attempt
                logger.warning(
                    "Geocoding request failed (%s), retrying in %.1fs (attempt %d/%d)",
                    exc, delay, attempt, self.max_retries,
                )
                await self._sleep(delay)
                continue

            response.raise_for_status()
            return response.json()
