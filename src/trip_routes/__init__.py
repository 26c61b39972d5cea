"""Trip route aggregation, geocoding and routing library."""

from .geocoding import NominatimGeocoder
from .geometry import bezier_spline, decode_geometry, decode_polyline, encode_polyline, merge_segment_points
from .limiter import RequestLimiter, SequentialQueue
from .models import LocationInfo, Route, RouteProfile, RouteSegment, RouteStop
from .routing import (
    OpenRouteServiceClient,
    RoutingConfigurationError,
    RoutingError,
    RoutingServiceError,
)
from .segments import build_route_path, order_segments

__all__ = [
    "LocationInfo",
    "NominatimGeocoder",
    "OpenRouteServiceClient",
    "RequestLimiter",
    "Route",
    "RouteProfile",
    "RouteSegment",
    "RouteStop",
    "RoutingConfigurationError",
    "RoutingError",
    "RoutingServiceError",
    "SequentialQueue",
    "bezier_spline",
    "build_route_path",
    "decode_geometry",
    "decode_polyline",
    "encode_polyline",
    "merge_segment_points",
    "order_segments",
]
