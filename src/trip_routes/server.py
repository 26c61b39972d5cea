"""FastAPI server for trips, photos and routes."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, configure_logging, load_settings
from .geocoding import NominatimGeocoder
from .models import (
    BackfillStats,
    CreatePhotoRequest,
    CreateRouteRequest,
    CreateRouteStopRequest,
    CreateTripRequest,
    DirectionsRequest,
    IsochroneRequest,
    LocationInfo,
    LocationStats,
    MatrixRequest,
    MatrixResponse,
    OptimizeRequest,
    ORSRouteResponse,
    Photo,
    Route,
    RoutePath,
    RouteProfile,
    RouteStop,
    SimpleDirectionsRequest,
    TravelTime,
    Trip,
    UpdatePhotoRequest,
    UpdateRouteRequest,
    UpdateRouteStopRequest,
    UpdateTripRequest,
)
from .planner import regenerate_segments
from .routing import (
    NoRouteFoundError,
    OpenRouteServiceClient,
    RoutingConfigurationError,
    RoutingError,
)
from .segments import build_route_path
from .store import TripStore

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    store: TripStore | None = None,
    geocoder: NominatimGeocoder | None = None,
    routing_client: OpenRouteServiceClient | None = None,
) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(app.state.settings.log_level)
        yield
        await app.state.geocoder.aclose()
        await app.state.routing_client.aclose()

    app = FastAPI(title="Trip Routes", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store or TripStore()
    app.state.geocoder = geocoder or NominatimGeocoder.from_settings(settings)
    app.state.routing_client = routing_client or OpenRouteServiceClient.from_settings(settings)

    _register_error_handlers(app)
    _register_trip_routes(app)
    _register_photo_routes(app)
    _register_route_routes(app)
    _register_openroute_routes(app)
    return app


def get_store(request: Request) -> TripStore:
    return request.app.state.store


def get_geocoder(request: Request) -> NominatimGeocoder:
    return request.app.state.geocoder


def get_routing_client(request: Request) -> OpenRouteServiceClient:
    return request.app.state.routing_client


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request data", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(RoutingError)
    async def _routing_failed(request: Request, exc: RoutingError):
        logger.error("Routing error on %s %s: %s", request.method, request.url.path, exc)
        if isinstance(exc, RoutingConfigurationError):
            status = 503
        elif isinstance(exc, NoRouteFoundError):
            status = 404
        else:
            status = 502
        return JSONResponse(status_code=status, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


def _require_trip(store: TripStore, trip_id: str) -> Trip:
    trip = store.get_trip(trip_id)
    if trip is None:
        raise HTTPException(status_code=404, detail="Trip not found")
    return trip


def _require_route(store: TripStore, route_id: str) -> Route:
    route = store.get_route(route_id)
    if route is None:
        raise HTTPException(status_code=404, detail="Route not found")
    return route


# --- trips -------------------------------------------------------------------


def _register_trip_routes(app: FastAPI) -> None:
    @app.get("/trips", response_model=list[Trip])
    async def list_trips(store: TripStore = Depends(get_store)):
        return store.list_trips()

    @app.post("/trips", response_model=Trip, status_code=201)
    async def create_trip(payload: CreateTripRequest, store: TripStore = Depends(get_store)):
        trip = store.create_trip(
            name=payload.name,
            description=payload.description,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
        logger.info("Created trip %s", trip.id)
        return trip

    @app.get("/trips/{trip_id}", response_model=Trip)
    async def get_trip(trip_id: str, store: TripStore = Depends(get_store)):
        return _require_trip(store, trip_id)

    @app.put("/trips/{trip_id}", response_model=Trip)
    async def update_trip(trip_id: str, payload: UpdateTripRequest,
                          store: TripStore = Depends(get_store)):
        trip = store.update_trip(trip_id, payload)
        if trip is None:
            raise HTTPException(status_code=404, detail="Trip not found")
        return trip

    @app.delete("/trips/{trip_id}", status_code=204)
    async def delete_trip(trip_id: str, store: TripStore = Depends(get_store)):
        if not store.delete_trip(trip_id):
            raise HTTPException(status_code=404, detail="Trip not found")
        return Response(status_code=204)

    @app.get("/trips/{trip_id}/photos", response_model=list[Photo])
    async def trip_photos(trip_id: str, store: TripStore = Depends(get_store)):
        _require_trip(store, trip_id)
        return store.photos_for_trip(trip_id)

    @app.get("/trips/{trip_id}/routes", response_model=list[Route])
    async def trip_routes(trip_id: str, store: TripStore = Depends(get_store)):
        _require_trip(store, trip_id)
        return store.routes_for_trip(trip_id)


# --- photos ------------------------------------------------------------------


def _register_photo_routes(app: FastAPI) -> None:
    @app.post("/photos", response_model=Photo, status_code=201)
    async def create_photo(
        payload: CreatePhotoRequest,
        store: TripStore = Depends(get_store),
        geocoder: NominatimGeocoder = Depends(get_geocoder),
    ):
        _require_trip(store, payload.trip_id)
        photo = store.create_photo(payload)
        return store.save_photo(await geocoder.enrich_photo(photo))

    @app.get("/photos/withCoordinates", response_model=list[Photo])
    async def photos_with_coordinates(store: TripStore = Depends(get_store)):
        return store.photos_with_coordinates()

    @app.get("/admin/location-stats", response_model=LocationStats)
    async def location_stats(store: TripStore = Depends(get_store)):
        return store.location_stats()

    @app.post("/photos/backfill-locations", response_model=BackfillStats)
    async def backfill_locations(
        store: TripStore = Depends(get_store),
        geocoder: NominatimGeocoder = Depends(get_geocoder),
    ):
        updated, stats = await geocoder.backfill_locations(store.photos_needing_location())
        for photo in updated:
            store.save_photo(photo)
        return stats

    @app.get("/photos/{photo_id}", response_model=Photo)
    async def get_photo(photo_id: str, store: TripStore = Depends(get_store)):
        photo = store.get_photo(photo_id)
        if photo is None:
            raise HTTPException(status_code=404, detail="Photo not found")
        return photo

    @app.put("/photos/{photo_id}", response_model=Photo)
    async def update_photo(
        photo_id: str,
        payload: UpdatePhotoRequest,
        store: TripStore = Depends(get_store),
        geocoder: NominatimGeocoder = Depends(get_geocoder),
    ):
        photo = store.update_photo(photo_id, payload)
        if photo is None:
            raise HTTPException(status_code=404, detail="Photo not found")
        return store.save_photo(await geocoder.enrich_photo(photo))

    @app.delete("/photos/{photo_id}", status_code=204)
    async def delete_photo(photo_id: str, store: TripStore = Depends(get_store)):
        if not store.delete_photo(photo_id):
            raise HTTPException(status_code=404, detail="Photo not found")
        return Response(status_code=204)

    @app.get("/geocode/reverse", response_model=LocationInfo)
    async def reverse_geocode(
        lat: float = Query(ge=-90, le=90),
        lon: float = Query(ge=-180, le=180),
        geocoder: NominatimGeocoder = Depends(get_geocoder),
    ):
        info = await geocoder.reverse_geocode(lat, lon)
        if info is None:
            raise HTTPException(status_code=404, detail="No location found for coordinates")
        return info


# --- routes ------------------------------------------------------------------


def _register_route_routes(app: FastAPI) -> None:
    @app.post("/routes", response_model=Route, status_code=201)
    async def create_route(
        payload: CreateRouteRequest,
        store: TripStore = Depends(get_store),
        routing: OpenRouteServiceClient = Depends(get_routing_client),
    ):
        _require_trip(store, payload.trip_id)
        if not routing.is_configured():
            raise HTTPException(
                status_code=503,
                detail="Route generation service not configured. "
                       "Please set OPENROUTE_API_KEY environment variable.",
            )

        route = store.create_route(payload)
        try:
            segments = await regenerate_segments(route, routing)
        except RoutingError:
            store.delete_route(route.id)
            raise
        logger.info("Created route %s with %d stops", route.id, len(route.stops))
        return store.replace_segments(route.id, segments)

    @app.get("/routes/{route_id}", response_model=Route)
    async def get_route(route_id: str, store: TripStore = Depends(get_store)):
        return _require_route(store, route_id)

    @app.put("/routes/{route_id}", response_model=Route)
    async def update_route(route_id: str, payload: UpdateRouteRequest,
                           store: TripStore = Depends(get_store)):
        route = store.update_route(route_id, payload)
        if route is None:
            raise HTTPException(status_code=404, detail="Route not found")
        return route

    @app.delete("/routes/{route_id}", status_code=204)
    async def delete_route(route_id: str, store: TripStore = Depends(get_store)):
        if not store.delete_route(route_id):
            raise HTTPException(status_code=404, detail="Route not found")
        return Response(status_code=204)

    @app.get("/routes/{route_id}/path", response_model=RoutePath)
    async def route_path(route_id: str, smooth: bool = True,
                         store: TripStore = Depends(get_store)):
        route = _require_route(store, route_id)
        return RoutePath(
            route_id=route.id,
            num_segments=len(route.segments),
            points=build_route_path(route, smooth=smooth),
        )

    @app.post("/routes/{route_id}/regenerate", response_model=Route)
    async def regenerate_route(
        route_id: str,
        store: TripStore = Depends(get_store),
        routing: OpenRouteServiceClient = Depends(get_routing_client),
    ):
        route = _require_route(store, route_id)
        segments = await regenerate_segments(route, routing)
        return store.replace_segments(route_id, segments)

    @app.get("/routes/{route_id}/stops", response_model=list[RouteStop])
    async def route_stops(route_id: str, store: TripStore = Depends(get_store)):
        return _require_route(store, route_id).stops

    @app.post("/routes/{route_id}/stops", response_model=Route)
    async def add_stop(route_id: str, payload: CreateRouteStopRequest,
                       store: TripStore = Depends(get_store)):
        route = store.add_stop(route_id, payload)
        if route is None:
            raise HTTPException(status_code=404, detail="Route not found")
        return route

    @app.put("/routes/{route_id}/stops/{stop_id}", response_model=Route)
    async def update_stop(route_id: str, stop_id: str, payload: UpdateRouteStopRequest,
                          store: TripStore = Depends(get_store)):
        route = store.update_stop(route_id, stop_id, payload)
        if route is None:
            raise HTTPException(status_code=404, detail="Route stop not found")
        return route

    @app.delete("/routes/{route_id}/stops/{stop_id}", response_model=Route)
    async def delete_stop(route_id: str, stop_id: str, store: TripStore = Depends(get_store)):
        route = store.delete_stop(route_id, stop_id)
        if route is None:
            raise HTTPException(status_code=404, detail="Route stop not found")
        return route


# --- routing provider proxy ----------------------------------------------------


def _register_openroute_routes(app: FastAPI) -> None:
    @app.get("/openroute/health")
    async def openroute_health(routing: OpenRouteServiceClient = Depends(get_routing_client)):
        configured = routing.is_configured()
        return {
            "service": "OpenRouteService",
            "configured": configured,
            "message": "Service ready" if configured else "API key not configured",
        }

    @app.post("/openroute/directions", response_model=ORSRouteResponse)
    async def directions(payload: DirectionsRequest,
                         routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.get_directions(payload)

    @app.post("/openroute/directions/simple", response_model=ORSRouteResponse)
    async def simple_directions(payload: SimpleDirectionsRequest,
                                routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.get_simple_directions(payload)

    @app.post("/openroute/isochrones")
    async def isochrones(payload: IsochroneRequest,
                         routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.get_isochrones(payload)

    @app.post("/openroute/matrix", response_model=MatrixResponse)
    async def matrix(payload: MatrixRequest,
                     routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.get_matrix(payload)

    @app.post("/openroute/optimize", response_model=ORSRouteResponse)
    async def optimize(payload: OptimizeRequest,
                       routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.optimize_route(payload.coordinates, payload.profile)

    @app.post("/openroute/travel-time", response_model=TravelTime)
    async def travel_time(payload: SimpleDirectionsRequest,
                          routing: OpenRouteServiceClient = Depends(get_routing_client)):
        return await routing.get_travel_time(payload.start, payload.end, payload.profile)

    @app.get("/openroute/profiles")
    async def profiles():
        return {"profiles": [p.value for p in RouteProfile]}


app = create_app()
