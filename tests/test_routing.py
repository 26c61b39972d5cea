"""Tests for the OpenRouteService client and segment regeneration."""

import json

import httpx
import pytest

from conftest import make_stop, ors_directions_handler
from trip_routes.limiter import RequestLimiter
from trip_routes.models import (
    Coordinate,
    DirectionsRequest,
    IsochroneRequest,
    MatrixRequest,
    Route,
    RouteProfile,
)
from trip_routes.planner import regenerate_segments
from trip_routes.routing import (
    NoRouteFoundError,
    RoutingConfigurationError,
    RoutingServiceError,
)
from trip_routes.segments import build_route_path

PARIS = Coordinate(latitude=48.8566, longitude=2.3522)
LYON = Coordinate(latitude=45.764, longitude=4.8357)


@pytest.mark.asyncio
class TestOpenRouteServiceClient:
    async def test_missing_api_key_fails_before_network(self, ors_client):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        client = ors_client(handler, api_key=None)
        assert client.is_configured() is False
        with pytest.raises(RoutingConfigurationError):
            await client.get_directions(DirectionsRequest(coordinates=[PARIS, LYON]))
        assert calls == []

    async def test_directions_body_uses_lonlat(self, ors_client):
        calls = []
        client = ors_client(ors_directions_handler(calls))
        response = await client.get_directions(
            DirectionsRequest(coordinates=[PARIS, LYON], profile=RouteProfile.CYCLING_ROAD)
        )

        path, body = calls[0]
        assert path == "/v2/directions/cycling-road"
        assert body["coordinates"] == [[2.3522, 48.8566], [4.8357, 45.764]]
        assert body["radiuses"] == [10_000, 10_000]
        assert response.routes[0].summary.distance == 12.5

    async def test_sends_api_key_header(self, ors_client):
        seen = []

        def handler(request):
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={"routes": []})

        await ors_client(handler, api_key="secret").get_directions(DirectionsRequest(coordinates=[PARIS, LYON]))
        assert seen == ["secret"]

    async def test_provider_error_includes_status_and_body(self, ors_client):
        client = ors_client(lambda request: httpx.Response(403, text='{"error": "Access to this API has been disallowed"}'))
        with pytest.raises(RoutingServiceError) as excinfo:
            await client.get_directions(DirectionsRequest(coordinates=[PARIS, LYON]))

        assert excinfo.value.status_code == 403
        message = str(excinfo.value)
        assert "403" in message
        assert "Forbidden" in message
        assert "disallowed" in message

    async def test_isochrones_and_matrix_payloads(self, ors_client):
        calls = []

        def handler(request):
            calls.append((request.url.path, json.loads(request.content)))
            if "matrix" in request.url.path:
                return httpx.Response(200, json={"durations": [[0, 16000], [16100, 0]]})
            return httpx.Response(200, json={"type": "FeatureCollection", "features": []})

        client = ors_client(handler)
        iso = await client.get_isochrones(
            IsochroneRequest(locations=[PARIS], range=[600, 1200], profile=RouteProfile.FOOT_WALKING)
        )
        matrix = await client.get_matrix(MatrixRequest(locations=[PARIS, LYON], sources=[0]))

        assert iso["type"] == "FeatureCollection"
        assert matrix.durations[0][1] == 16000
        assert calls[0][0] == "/v2/isochrones/foot-walking"
        assert calls[0][1]["locations"] == [[2.3522, 48.8566]]
        assert calls[0][1]["range"] == [600, 1200]
        assert calls[1][0] == "/v2/matrix/driving-car"
        assert calls[1][1]["sources"] == [0]
        assert "destinations" not in calls[1][1]

    async def test_travel_time(self, ors_client):
        client = ors_client(ors_directions_handler([]))
        travel = await client.get_travel_time(PARIS, LYON)
        assert travel.distance == 12.5
        assert travel.duration == 900.0

    async def test_travel_time_without_route(self, ors_client):
        client = ors_client(lambda request: httpx.Response(200, json={"routes": []}))
        with pytest.raises(NoRouteFoundError):
            await client.get_travel_time(PARIS, LYON)

    async def test_requests_are_spaced(self, ors_client, fake_clock):
        limiter = RequestLimiter(0.1, clock=fake_clock, sleep=fake_clock.sleep)
        client = ors_client(ors_directions_handler([]), limiter=limiter)
        await client.get_travel_time(PARIS, LYON)
        await client.get_travel_time(LYON, PARIS)
        assert fake_clock.sleeps == [pytest.approx(0.1)]


@pytest.mark.asyncio
class TestRegenerateSegments:
    def route(self):
        stops = [
            make_stop("c", 2, 45.764, 4.8357),
            make_stop("a", 0, 48.8566, 2.3522),
            make_stop("b", 1, 47.3216, 5.0415),
        ]
        return Route(id="r1", trip_id="t1", title="Paris to Lyon", stops=stops)

    async def test_one_segment_per_leg_in_stop_order(self, ors_client):
        calls = []
        route = self.route()
        segments = await regenerate_segments(route, ors_client(ors_directions_handler(calls)))

        assert [(s.start_stop_id, s.end_stop_id) for s in segments] == [("a", "b"), ("b", "c")]
        assert len(calls) == 2
        assert calls[0][1]["coordinates"] == [[2.3522, 48.8566], [5.0415, 47.3216]]

        path = build_route_path(route.model_copy(update={"segments": segments}), smooth=False)
        assert path == [(48.8566, 2.3522), (47.3216, 5.0415), (45.764, 4.8357)]

    async def test_cached_segments_are_reused(self, ors_client):
        calls = []
        client = ors_client(ors_directions_handler(calls))
        route = self.route()
        first = await regenerate_segments(route, client)
        second = await regenerate_segments(route.model_copy(update={"segments": first}), client)

        assert len(calls) == 2
        assert [s.id for s in second] == [s.id for s in first]

    async def test_routing_errors_propagate(self, ors_client):
        client = ors_client(lambda request: httpx.Response(500, text="upstream down"))
        with pytest.raises(RoutingServiceError):
            await regenerate_segments(self.route(), client)
