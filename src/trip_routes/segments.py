"""Segment ordering and route path aggregation."""

import hashlib
import logging

from .geometry import (
    DEFAULT_RESOLUTION,
    DEFAULT_SHARPNESS,
    GeometryDecodeError,
    bezier_spline,
    decode_geometry,
    merge_segment_points,
)
from .models import LatLon, Route, RouteProfile, RouteSegment, RouteStop

logger = logging.getLogger(__name__)


def order_stops(stops: list[RouteStop]) -> list[RouteStop]:
    return sorted(stops, key=lambda stop: stop.order_index)


def order_segments(route: Route) -> list[RouteSegment]:
    """Sort a route's segments by the order_index of each segment's start stop.

    Segments whose start stop is unknown sort as order_index 0.
    """
    order_by_stop = {stop.id: stop.order_index for stop in route.stops}
    return sorted(route.segments, key=lambda seg: order_by_stop.get(seg.start_stop_id, 0))


def stop_pairs(stops: list[RouteStop]) -> list[tuple[RouteStop, RouteStop]]:
    """Consecutive (start, end) stop pairs in traversal order."""
    ordered = order_stops(stops)
    return list(zip(ordered, ordered[1:]))


def coordinates_hash(start: LatLon, end: LatLon, profile: RouteProfile | str) -> str:
    """Stable cache key for the routed geometry between two coordinates."""
    profile_name = profile.value if isinstance(profile, RouteProfile) else profile
    key = f"{start[0]:.6f},{start[1]:.6f};{end[0]:.6f},{end[1]:.6f};{profile_name}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def merge_route_points(route: Route) -> list[LatLon]:
    """Decode and merge the ordered segment geometries of a route.

    Undecodable segments are skipped with a warning.
    """
    decoded: list[list[LatLon]] = []
    for seg in order_segments(route):
        try:
            decoded.append(decode_geometry(seg.geometry))
        except GeometryDecodeError as exc:
            logger.warning("Skipping segment %s of route %s: %s", seg.id, route.id, exc)
    return merge_segment_points(decoded)


def build_route_path(
    route: Route,
    *,
    smooth: bool = True,
    resolution: int = DEFAULT_RESOLUTION,
    sharpness: float = DEFAULT_SHARPNESS,
) -> list[LatLon]:
    """Produce the single display path for a route, curved unless ``smooth`` is off."""
    if not route.segments:
        return []

    points = merge_route_points(route)
    if not smooth:
        return points
    return bezier_spline(points, resolution=resolution, sharpness=sharpness)
