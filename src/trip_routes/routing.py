"""OpenRouteService client: directions, isochrones and distance matrices."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import Settings
from .limiter import RequestLimiter
from .models import (
    Coordinate,
    DirectionsRequest,
    IsochroneRequest,
    MatrixRequest,
    MatrixResponse,
    ORSRouteResponse,
    RouteProfile,
    SimpleDirectionsRequest,
    TravelTime,
)

logger = logging.getLogger(__name__)

SNAP_RADIUS_M = 10_000


class RoutingError(Exception):
    """Base class for routing client failures."""


class RoutingConfigurationError(RoutingError):
    """The client cannot issue requests, e.g. no API key is configured."""


class RoutingServiceError(RoutingError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str, body: str):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"OpenRouteService request failed: {status_code} {reason} - {body}")


class NoRouteFoundError(RoutingError):
    """The provider returned no route for the requested coordinates."""


class OpenRouteServiceClient:
    """Async client for the OpenRouteService v2 API.

    Requests are spaced by a small fixed delay through the client's own
    :class:`RequestLimiter`.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.openrouteservice.org",
        request_delay: float = 0.1,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        limiter: RequestLimiter | None = None,
    ):
        self.api_key = api_key or ""
        self.limiter = limiter or RequestLimiter(request_delay)
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> OpenRouteServiceClient:
        return cls(
            settings.openroute_api_key,
            base_url=settings.openroute_base_url,
            request_delay=settings.openroute_request_delay,
            timeout=settings.request_timeout,
            **kwargs,
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> OpenRouteServiceClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def get_directions(self, request: DirectionsRequest) -> ORSRouteResponse:
        """Route through all of ``request.coordinates`` in order."""
        body = {
            "coordinates": [c.to_lonlat() for c in request.coordinates],
            "units": request.units,
            "language": request.language,
            "geometry": request.geometry,
            "instructions": request.instructions,
            "elevation": request.elevation,
            "extra_info": request.extra_info,
            "radiuses": [SNAP_RADIUS_M] * len(request.coordinates),
        }
        data = await self._post(f"/v2/directions/{request.profile.value}", body)
        return ORSRouteResponse.model_validate(data)

    async def get_simple_directions(self, request: SimpleDirectionsRequest) -> ORSRouteResponse:
        return await self.get_directions(
            DirectionsRequest(
                coordinates=[request.start, request.end],
                profile=request.profile,
                geometry=True,
                instructions=True,
            )
        )

    async def get_isochrones(self, request: IsochroneRequest) -> dict[str, Any]:
        """Reachability polygons as a GeoJSON FeatureCollection."""
        body = {
            "locations": [c.to_lonlat() for c in request.locations],
            "range": request.range,
            "range_type": request.range_type,
            "units": request.units,
            "location_type": request.location_type,
            "smoothing": request.smoothing,
            "area_units": request.area_units,
            "attributes": request.attributes,
        }
        return await self._post(f"/v2/isochrones/{request.profile.value}", body)

    async def get_matrix(self, request: MatrixRequest) -> MatrixResponse:
        body: dict[str, Any] = {
            "locations": [c.to_lonlat() for c in request.locations],
            "metrics": request.metrics,
            "resolve_locations": request.resolve_locations,
            "units": request.units,
        }
        if request.sources is not None:
            body["sources"] = request.sources
        if request.destinations is not None:
            body["destinations"] = request.destinations
        data = await self._post(f"/v2/matrix/{request.profile.value}", body)
        return MatrixResponse.model_validate(data)

    async def optimize_route(
        self,
        coordinates: list[Coordinate],
        profile: RouteProfile = RouteProfile.DRIVING_CAR,
    ) -> ORSRouteResponse:
        """Route through the stops in the order given."""
        return await self.get_directions(
            DirectionsRequest(coordinates=coordinates, profile=profile, geometry=True, instructions=True)
        )

    async def get_travel_time(
        self,
        start: Coordinate,
        end: Coordinate,
        profile: RouteProfile = RouteProfile.DRIVING_CAR,
    ) -> TravelTime:
        response = await self.get_simple_directions(
            SimpleDirectionsRequest(start=start, end=end, profile=profile)
        )
        if not response.routes:
            raise NoRouteFoundError("No route found")
        summary = response.routes[0].summary
        return TravelTime(distance=summary.distance, duration=summary.duration)

    async def _post(self, endpoint: str, body: dict[str, Any]) -> Any:
        if not self.api_key:
            raise RoutingConfigurationError("OpenRouteService API key not configured")

        async with self.limiter:
            logger.debug("POST %s", endpoint)
            response = await self.client.post(
                endpoint,
                json=body,
                headers={
                    "Authorization": self.api_key,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )

        if not response.is_success:
            raise RoutingServiceError(response.status_code, response.reason_phrase, response.text)
        return response.json()
