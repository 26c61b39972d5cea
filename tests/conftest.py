import json

import httpx
import polyline
import pytest

from trip_routes.geocoding import NominatimGeocoder
from trip_routes.limiter import RequestLimiter
from trip_routes.models import LineStringGeometry, Route, RouteSegment, RouteStop
from trip_routes.routing import OpenRouteServiceClient

NOMINATIM_EIFFEL = {
    "display_name": "Tour Eiffel, 5, Avenue Anatole France, Paris, Île-de-France, France",
    "name": "Tour Eiffel",
    "type": "attraction",
    "class": "tourism",
    "address": {
        "tourism": "Tour Eiffel",
        "road": "Avenue Anatole France",
        "city": "Paris",
        "state": "Île-de-France",
        "country": "France",
        "country_code": "fr",
    },
}


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_stop(stop_id: str, order_index: int, lat: float, lon: float, route_id: str = "r1") -> RouteStop:
    return RouteStop(
        id=stop_id, route_id=route_id, title=f"Stop {stop_id}",
        latitude=lat, longitude=lon, order_index=order_index,
    )


def make_segment(seg_id: str, start: str, end: str, geometry, route_id: str = "r1") -> RouteSegment:
    return RouteSegment(
        id=seg_id, route_id=route_id, start_stop_id=start, end_stop_id=end,
        distance=1.0, duration=60.0, coordinates_hash=f"hash-{seg_id}", geometry=geometry,
    )


def ors_directions_handler(calls: list):
    """Fake /v2/directions endpoint: routes straight between the posted coordinates."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append((request.url.path, body))
        latlon = [(lat, lon) for lon, lat in body["coordinates"]]
        return httpx.Response(
            200,
            json={
                "routes": [
                    {
                        "summary": {"distance": 12.5, "duration": 900.0},
                        "geometry": polyline.encode(latlon),
                        "segments": [{"distance": 12.5, "duration": 900.0, "steps": []}],
                        "way_points": [0, len(latlon) - 1],
                    }
                ]
            },
        )

    return handler


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def three_stop_route():
    """Stops stored out of order (2, 0, 1) with one segment per leg.

    A -> B -> C in traversal order; the segments carry mixed geometry formats.
    """
    stops = [
        make_stop("c", 2, 48.86, 2.35),
        make_stop("a", 0, 48.80, 2.30),
        make_stop("b", 1, 48.83, 2.32),
    ]
    seg_ab = make_segment("ab", "a", "b", polyline.encode([(48.80, 2.30), (48.815, 2.31), (48.83, 2.32)]))
    seg_bc = make_segment(
        "bc", "b", "c",
        LineStringGeometry(coordinates=[[2.32, 48.83], [2.335, 48.845], [2.34, 48.85], [2.35, 48.86]]),
    )
    return Route(id="r1", trip_id="t1", title="Paris loop", stops=stops, segments=[seg_bc, seg_ab])


@pytest.fixture
def nominatim_geocoder():
    """Build a geocoder backed by a mock transport and no request spacing."""

    def build(handler, **kwargs) -> NominatimGeocoder:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://nominatim.test")
        kwargs.setdefault("limiter", RequestLimiter(0))
        return NominatimGeocoder(client=client, **kwargs)

    return build


@pytest.fixture
def ors_client():
    """Build an OpenRouteService client backed by a mock transport."""

    def build(handler, api_key: str | None = "test-key", **kwargs) -> OpenRouteServiceClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://ors.test")
        kwargs.setdefault("limiter", RequestLimiter(0))
        return OpenRouteServiceClient(api_key, client=client, **kwargs)

    return build
