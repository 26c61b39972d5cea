"""Tests for polyline decoding, segment merging and Bezier smoothing."""

import polyline
import pytest

from trip_routes.geometry import (
    GeometryDecodeError,
    bezier_spline,
    decode_geometry,
    decode_polyline,
    encode_polyline,
    merge_segment_points,
)
from trip_routes.models import LineStringGeometry

GOOGLE_SAMPLE = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


class TestDecodePolyline:
    def test_precision_5_reference_string(self):
        points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")
        assert points == GOOGLE_SAMPLE

    def test_precision_6_marker_roundtrip(self):
        points = [(47.376887, 8.541694), (47.372253, 8.539512), (47.366923, 8.544814)]
        encoded = "6" + polyline.encode(points, 6)
        decoded = decode_polyline(encoded)
        assert len(decoded) == 3
        for got, want in zip(decoded, points):
            assert got == pytest.approx(want, abs=1e-6)

    def test_encode_helper_adds_marker(self):
        encoded = encode_polyline(GOOGLE_SAMPLE, precision=6)
        assert encoded.startswith("6")
        assert decode_polyline(encoded) == GOOGLE_SAMPLE

    def test_empty_string(self):
        assert decode_polyline("") == []

    def test_truncated_string_raises(self):
        with pytest.raises(GeometryDecodeError):
            decode_polyline("_p~iF~ps|U_")


class TestDecodeGeometry:
    def test_geojson_is_swapped_to_latlon(self):
        geometry = LineStringGeometry(coordinates=[[2.35, 48.86], [2.29, 48.85]])
        assert decode_geometry(geometry) == [(48.86, 2.35), (48.85, 2.29)]

    def test_geojson_dict(self):
        geometry = {"type": "LineString", "coordinates": [[13.4, 52.5, 34.0], [13.5, 52.6, 35.0]]}
        assert decode_geometry(geometry) == [(52.5, 13.4), (52.6, 13.5)]

    def test_unsupported_dict_type(self):
        with pytest.raises(GeometryDecodeError):
            decode_geometry({"type": "Point", "coordinates": [1.0, 2.0]})

    def test_none_is_empty(self):
        assert decode_geometry(None) == []


class TestMergeSegmentPoints:
    def test_joint_points_removed(self):
        segments = [
            [(0.0, 0.0), (0.0, 1.0), (0.0, 2.0), (0.0, 3.0)],
            [(0.0, 3.0), (1.0, 3.0), (2.0, 3.0)],
            [(2.0, 3.0), (2.0, 4.0), (2.0, 5.0), (2.0, 6.0), (2.0, 7.0)],
        ]
        merged = merge_segment_points(segments)
        assert len(merged) == sum(len(s) for s in segments) - (len(segments) - 1)
        assert merged[0] == (0.0, 0.0)
        assert merged[-1] == (2.0, 7.0)
        assert len(set(merged)) == len(merged)

    def test_empty_segments_do_not_drop_points(self):
        merged = merge_segment_points([[], [(1.0, 1.0), (2.0, 2.0)]])
        assert merged == [(1.0, 1.0), (2.0, 2.0)]

    def test_no_segments(self):
        assert merge_segment_points([]) == []


class TestBezierSpline:
    POINTS = [(48.80, 2.30), (48.83, 2.32), (48.86, 2.35)]

    def test_passes_through_endpoints_and_joints(self):
        curve = bezier_spline(self.POINTS)
        assert curve[0] == self.POINTS[0]
        assert curve[-1] == self.POINTS[-1]
        assert self.POINTS[1] in curve

    def test_sample_count_follows_resolution(self):
        # every other 100-unit window of 10-unit steps, plus the final point
        assert len(bezier_spline(self.POINTS, resolution=50_000)) == 2501
        assert len(bezier_spline(self.POINTS, resolution=10_000)) == 501

    def test_short_paths_unchanged(self):
        assert bezier_spline([(1.0, 2.0), (3.0, 4.0)]) == [(1.0, 2.0), (3.0, 4.0)]
        assert bezier_spline([]) == []

    def test_curve_stays_near_input(self):
        curve = bezier_spline(self.POINTS, sharpness=0.85)
        lats = [p[0] for p in curve]
        lons = [p[1] for p in curve]
        assert min(lats) >= 48.79 and max(lats) <= 48.87
        assert min(lons) >= 2.29 and max(lons) <= 2.36

    def test_rejects_bad_resolution(self):
        with pytest.raises(ValueError):
            bezier_spline(self.POINTS, resolution=0)
