"""Build a route's segments from its stops via the routing provider."""

from __future__ import annotations

import logging
import uuid

from .models import Coordinate, DirectionsRequest, Route, RouteSegment
from .routing import NoRouteFoundError, OpenRouteServiceClient
from .segments import coordinates_hash, stop_pairs

logger = logging.getLogger(__name__)


async def regenerate_segments(route: Route, client: OpenRouteServiceClient) -> list[RouteSegment]:
    """Compute one segment per consecutive stop pair.

    Segments already on the route with a matching ``coordinates_hash`` are
    reused without calling the provider. Routing errors propagate.
    """
    cached = {seg.coordinates_hash: seg for seg in route.segments}
    segments: list[RouteSegment] = []

    for start, end in stop_pairs(route.stops):
        key = coordinates_hash(start.latlon, end.latlon, route.profile)
        hit = cached.get(key)
        if hit is not None:
            segments.append(
                hit.model_copy(update={"start_stop_id": start.id, "end_stop_id": end.id})
            )
            continue

        response = await client.get_directions(
            DirectionsRequest(
                coordinates=[
                    Coordinate(latitude=start.latitude, longitude=start.longitude),
                    Coordinate(latitude=end.latitude, longitude=end.longitude),
                ],
                profile=route.profile,
                geometry=True,
                instructions=False,
            )
        )
        if not response.routes:
            raise NoRouteFoundError(f"No route found between stops {start.id} and {end.id}")

        routed = response.routes[0]
        segments.append(
            RouteSegment(
                id=str(uuid.uuid4()),
                route_id=route.id,
                start_stop_id=start.id,
                end_stop_id=end.id,
                distance=routed.summary.distance,
                duration=routed.summary.duration,
                coordinates_hash=key,
                geometry=routed.geometry,
            )
        )

    logger.info(
        "Regenerated %d segments for route %s (%d reused)",
        len(segments), route.id, sum(1 for s in segments if s.coordinates_hash in cached),
    )
    return segments
