"""Pydantic data models for trips, photos, routes and the routing provider."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

LatLon = tuple[float, float]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RouteProfile(str, Enum):
    """Travel modes understood by the routing provider."""

    DRIVING_CAR = "driving-car"
    DRIVING_HGV = "driving-hgv"
    CYCLING_REGULAR = "cycling-regular"
    CYCLING_ROAD = "cycling-road"
    CYCLING_MOUNTAIN = "cycling-mountain"
    CYCLING_ELECTRIC = "cycling-electric"
    FOOT_WALKING = "foot-walking"
    FOOT_HIKING = "foot-hiking"
    WHEELCHAIR = "wheelchair"


class Coordinate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    altitude: float | None = None

    def to_lonlat(self) -> list[float]:
        return [self.longitude, self.latitude]


class LineStringGeometry(BaseModel):
    """GeoJSON LineString; coordinates are ``[longitude, latitude]`` pairs."""

    type: Literal["LineString"] = "LineString"
    coordinates: list[list[float]]


class LocationInfo(BaseModel):
    """Place metadata resolved from a coordinate pair."""

    location_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None
    landmark: str | None = None


class RouteStop(BaseModel):
    id: str
    route_id: str
    title: str
    description: str | None = None
    latitude: float
    longitude: float
    order_index: int
    location_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @property
    def latlon(self) -> LatLon:
        return (self.latitude, self.longitude)


class RouteSegment(BaseModel):
    """A routed path between two consecutive stops."""

    id: str
    route_id: str
    start_stop_id: str
    end_stop_id: str
    distance: float
    duration: float
    coordinates_hash: str
    geometry: str | LineStringGeometry | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class Route(BaseModel):
    id: str
    trip_id: str
    title: str
    description: str | None = None
    profile: RouteProfile = RouteProfile.DRIVING_CAR
    stops: list[RouteStop] = []
    segments: list[RouteSegment] = []
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class RoutePath(BaseModel):
    """Merged, display-ready path of a route as ``[lat, lon]`` points."""

    route_id: str
    num_segments: int
    points: list[LatLon]


class Trip(BaseModel):
    id: str
    name: str
    description: str | None = None
    start_date: str
    end_date: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class Photo(BaseModel):
    id: str
    trip_id: str
    filename: str
    title: str | None = None
    description: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    altitude: float | None = None
    location_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    country_code: str | None = None
    landmark: str | None = None
    taken_at: str | None = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


# -- request payloads --------------------------------------------------------


class CreateTripRequest(BaseModel):
    name: str
    description: str | None = None
    start_date: str
    end_date: str | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Trip name is required")
        return value


class UpdateTripRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class CreatePhotoRequest(BaseModel):
    trip_id: str
    filename: str
    title: str | None = None
    description: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    altitude: float | None = None
    location_name: str | None = None
    taken_at: str | None = None


class UpdatePhotoRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    altitude: float | None = None
    taken_at: str | None = None


class CreateRouteStopRequest(BaseModel):
    title: str
    description: str | None = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    order_index: int


class UpdateRouteStopRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    order_index: int | None = None


class CreateRouteRequest(BaseModel):
    trip_id: str
    title: str
    description: str | None = None
    profile: RouteProfile = RouteProfile.DRIVING_CAR
    stops: list[CreateRouteStopRequest]


class UpdateRouteRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    profile: RouteProfile | None = None


# -- routing provider payloads ----------------------------------------------


class DirectionsRequest(BaseModel):
    coordinates: list[Coordinate] = Field(min_length=2)
    profile: RouteProfile = RouteProfile.DRIVING_CAR
    units: Literal["km", "m"] = "km"
    language: str = "en"
    geometry: bool = True
    instructions: bool = True
    elevation: bool = False
    extra_info: list[str] = []


class SimpleDirectionsRequest(BaseModel):
    start: Coordinate
    end: Coordinate
    profile: RouteProfile = RouteProfile.DRIVING_CAR


class OptimizeRequest(BaseModel):
    coordinates: list[Coordinate] = Field(min_length=3)
    profile: RouteProfile = RouteProfile.DRIVING_CAR


class IsochroneRequest(BaseModel):
    locations: list[Coordinate] = Field(min_length=1)
    range: list[float] = Field(min_length=1)
    range_type: Literal["time", "distance"] = "time"
    profile: RouteProfile = RouteProfile.DRIVING_CAR
    units: Literal["km", "m"] = "km"
    location_type: Literal["start", "destination"] = "start"
    smoothing: float = 25
    area_units: Literal["km", "m"] = "km"
    attributes: list[str] = ["area", "reachfactor", "total_pop"]


class MatrixRequest(BaseModel):
    locations: list[Coordinate] = Field(min_length=2)
    profile: RouteProfile = RouteProfile.DRIVING_CAR
    sources: list[int] | None = None
    destinations: list[int] | None = None
    metrics: list[Literal["distance", "duration"]] = ["distance", "duration"]
    resolve_locations: bool = False
    units: Literal["km", "m"] = "km"


class ORSRouteStep(BaseModel):
    distance: float
    duration: float
    type: int
    instruction: str
    name: str | None = None
    way_points: list[int] | None = None


class ORSRouteSegment(BaseModel):
    distance: float = 0.0
    duration: float = 0.0
    steps: list[ORSRouteStep] = []


class ORSRouteSummary(BaseModel):
    distance: float = 0.0
    duration: float = 0.0


class ORSRoute(BaseModel):
    summary: ORSRouteSummary
    geometry: Any = None
    segments: list[ORSRouteSegment] = []
    bbox: list[float] | None = None
    way_points: list[int] | None = None


class ORSRouteResponse(BaseModel):
    routes: list[ORSRoute] = []
    bbox: list[float] | None = None
    metadata: dict[str, Any] | None = None


class MatrixResponse(BaseModel):
    distances: list[list[float | None]] | None = None
    durations: list[list[float | None]] | None = None
    destinations: list[Any] | None = None
    sources: list[Any] | None = None
    metadata: dict[str, Any] | None = None


class TravelTime(BaseModel):
    distance: float
    duration: float


class BackfillStats(BaseModel):
    processed: int = 0
    updated: int = 0
    errors: int = 0


class LocationStats(BaseModel):
    total_photos: int
    photos_with_coordinates: int
    photos_with_location_data: int
    photos_needing_location_data: int
    coverage_percentage: int
