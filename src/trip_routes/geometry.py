"""Segment geometry decoding, joint-aware merging and Bezier smoothing.

Geometries arrive either as encoded polyline strings or as GeoJSON
LineStrings. All points returned from this module are ``(lat, lon)``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable

import polyline

from .models import LatLon, LineStringGeometry

logger = logging.getLogger(__name__)

PRECISION_6_MARKER = "6"
DEFAULT_RESOLUTION = 50_000
DEFAULT_SHARPNESS = 0.5
# Spline time step, and the width of the alternating on/off windows that
# decide which sampled positions are emitted.
_TIME_STEP = 10
_EMIT_WINDOW = 100


class GeometryDecodeError(ValueError):
    """Raised when a segment geometry cannot be turned into points."""


def decode_polyline(encoded: str) -> list[LatLon]:
    """Decode an encoded polyline, detecting precision from its first character.

    A leading ``"6"`` marks a precision-6 string; the marker itself is not part
    of the encoding. Anything else is decoded at precision 5.
    """
    if not encoded:
        return []
    try:
        if encoded[0] == PRECISION_6_MARKER:
            points = polyline.decode(encoded[1:], 6)
        else:
            points = polyline.decode(encoded, 5)
    except (IndexError, ValueError, TypeError) as exc:
        raise GeometryDecodeError(f"Invalid encoded polyline: {exc}") from exc
    return [(float(lat), float(lon)) for lat, lon in points]


def encode_polyline(points: Iterable[LatLon], precision: int = 5) -> str:
    """Encode ``(lat, lon)`` points, prefixing the precision-6 marker when needed."""
    encoded = polyline.encode(list(points), precision)
    if precision == 6:
        return PRECISION_6_MARKER + encoded
    return encoded


def decode_geometry(geometry: str | LineStringGeometry | dict | None) -> list[LatLon]:
    """Turn a stored segment geometry into ``(lat, lon)`` points."""
    if geometry is None:
        return []
    if isinstance(geometry, str):
        return decode_polyline(geometry)

    if isinstance(geometry, dict):
        if geometry.get("type") != "LineString":
            raise GeometryDecodeError(f"Unsupported geometry type: {geometry.get('type')}")
        coordinates = geometry.get("coordinates")
    else:
        coordinates = geometry.coordinates

    if not isinstance(coordinates, list):
        raise GeometryDecodeError("LineString coordinates must be a list")

    points: list[LatLon] = []
    for pair in coordinates:
        if len(pair) < 2:
            raise GeometryDecodeError(f"Invalid LineString position: {pair!r}")
        # GeoJSON is [lon, lat]
        points.append((float(pair[1]), float(pair[0])))
    return points


def merge_segment_points(segment_points: Iterable[list[LatLon]]) -> list[LatLon]:
    """Concatenate per-segment point lists, dropping each repeated joint point."""
    merged: list[LatLon] = []
    for points in segment_points:
        if not points:
            continue
        if merged:
            merged.extend(points[1:])
        else:
            merged.extend(points)
    return merged


def bezier_spline(
    points: list[LatLon],
    resolution: int = DEFAULT_RESOLUTION,
    sharpness: float = DEFAULT_SHARPNESS,
) -> list[LatLon]:
    """Smooth a polyline into a curve passing through every input point.

    Each span between consecutive points becomes a cubic Bezier whose control
    points are pulled toward the neighbouring span midpoints by ``sharpness``.
    ``resolution`` is the number of time units the whole curve is sampled over.
    Fewer than three points are returned unchanged.
    """
    if len(points) < 3:
        return list(points)
    if resolution <= 0:
        raise ValueError("resolution must be positive")

    # Work in (x=lon, y=lat) space like the GeoJSON the curve is built from
    xy = [(lon, lat) for lat, lon in points]
    controls = _control_points(xy, sharpness)

    curve: list[LatLon] = []

    def emit(time: int) -> None:
        if (time // _EMIT_WINDOW) % 2 == 0:
            x, y = _position(xy, controls, time, resolution)
            curve.append((y, x))

    for time in range(0, resolution, _TIME_STEP):
        emit(time)
    emit(resolution)
    return curve


def _control_points(
    xy: list[tuple[float, float]], sharpness: float
) -> list[tuple[tuple[float, float], tuple[float, float]]]:
    centers = [
        ((x1 + x2) / 2, (y1 + y2) / 2)
        for (x1, y1), (x2, y2) in zip(xy, xy[1:])
    ]

    controls = [(xy[0], xy[0])]
    for i in range(len(centers) - 1):
        px, py = xy[i + 1]
        (c1x, c1y), (c2x, c2y) = centers[i], centers[i + 1]
        dx = px - (c1x + c2x) / 2
        dy = py - (c1y + c2y) / 2
        controls.append(
            (
                ((1.0 - sharpness) * px + sharpness * (c1x + dx),
                 (1.0 - sharpness) * py + sharpness * (c1y + dy)),
                ((1.0 - sharpness) * px + sharpness * (c2x + dx),
                 (1.0 - sharpness) * py + sharpness * (c2y + dy)),
            )
        )
    controls.append((xy[-1], xy[-1]))
    return controls


def _position(
    xy: list[tuple[float, float]],
    controls: list[tuple[tuple[float, float], tuple[float, float]]],
    time: float,
    duration: int,
) -> tuple[float, float]:
    t = min(max(time, 0), duration)
    progress = t / duration
    if progress >= 1:
        return xy[-1]

    span = math.floor((len(xy) - 1) * progress)
    local_t = (len(xy) - 1) * progress - span
    return _cubic(local_t, xy[span], controls[span][1], controls[span + 1][0], xy[span + 1])


def _cubic(t, p1, c1, c2, p2) -> tuple[float, float]:
    u = 1 - t
    b0, b1, b2, b3 = t * t * t, 3 * t * t * u, 3 * t * u * u, u * u * u
    return (
        p2[0] * b0 + c2[0] * b1 + c1[0] * b2 + p1[0] * b3,
        p2[1] * b0 + c2[1] * b1 + c1[1] * b2 + p1[1] * b3,
    )
