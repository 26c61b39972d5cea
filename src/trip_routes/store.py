"""In-memory repository for trips, photos and routes."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from .models import (
    CreatePhotoRequest,
    CreateRouteRequest,
    CreateRouteStopRequest,
    LocationStats,
    Photo,
    Route,
    RouteSegment,
    RouteStop,
    Trip,
    UpdatePhotoRequest,
    UpdateRouteRequest,
    UpdateRouteStopRequest,
    UpdateTripRequest,
    utc_now,
)
from .segments import order_stops, stop_pairs


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class TripStore:
    """Dict-backed storage. Reads return copies; mutate through the methods."""

    _trips: dict[str, Trip] = field(default_factory=dict)
    _photos: dict[str, Photo] = field(default_factory=dict)
    _routes: dict[str, Route] = field(default_factory=dict)

    # --- trips ---

    def create_trip(self, name: str, start_date: str, description: str | None = None,
                    end_date: str | None = None) -> Trip:
        trip = Trip(id=_new_id(), name=name, description=description,
                    start_date=start_date, end_date=end_date)
        self._trips[trip.id] = trip
        return trip.model_copy()

    def list_trips(self) -> list[Trip]:
        return sorted((t.model_copy() for t in self._trips.values()),
                      key=lambda t: t.start_date, reverse=True)

    def get_trip(self, trip_id: str) -> Trip | None:
        trip = self._trips.get(trip_id)
        return trip.model_copy() if trip else None

    def update_trip(self, trip_id: str, updates: UpdateTripRequest) -> Trip | None:
        trip = self._trips.get(trip_id)
        if trip is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        trip = trip.model_copy(update={**changes, "updated_at": utc_now()})
        self._trips[trip_id] = trip
        return trip.model_copy()

    def delete_trip(self, trip_id: str) -> bool:
        if self._trips.pop(trip_id, None) is None:
            return False
        self._photos = {k: p for k, p in self._photos.items() if p.trip_id != trip_id}
        self._routes = {k: r for k, r in self._routes.items() if r.trip_id != trip_id}
        return True

    # --- photos ---

    def create_photo(self, request: CreatePhotoRequest) -> Photo:
        photo = Photo(id=_new_id(), **request.model_dump())
        self._photos[photo.id] = photo
        return photo.model_copy()

    def save_photo(self, photo: Photo) -> Photo:
        self._photos[photo.id] = photo
        return photo.model_copy()

    def get_photo(self, photo_id: str) -> Photo | None:
        photo = self._photos.get(photo_id)
        return photo.model_copy() if photo else None

    def photos_for_trip(self, trip_id: str) -> list[Photo]:
        return [p.model_copy() for p in self._photos.values() if p.trip_id == trip_id]

    def photos_with_coordinates(self) -> list[Photo]:
        return [
            p.model_copy() for p in self._photos.values()
            if p.latitude is not None and p.longitude is not None
        ]

    def photos_needing_location(self) -> list[Photo]:
        return [
            p.model_copy() for p in self._photos.values()
            if p.latitude is not None and p.longitude is not None and not p.location_name
        ]

    def location_stats(self) -> LocationStats:
        """Coverage of reverse-geocoded location data across all photos."""
        with_coords = self.photos_with_coordinates()
        located = sum(1 for p in with_coords if p.location_name)
        coverage = int(located * 100 / len(with_coords) + 0.5) if with_coords else 0
        return LocationStats(
            total_photos=len(self._photos),
            photos_with_coordinates=len(with_coords),
            photos_with_location_data=located,
            photos_needing_location_data=len(with_coords) - located,
            coverage_percentage=coverage,
        )

    def update_photo(self, photo_id: str, updates: UpdatePhotoRequest) -> Photo | None:
        photo = self._photos.get(photo_id)
        if photo is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        if "latitude" in changes or "longitude" in changes:
            # moved photos must be geocoded again
            changes.update(location_name=None, city=None, state=None, country=None,
                           country_code=None, landmark=None)
        photo = photo.model_copy(update={**changes, "updated_at": utc_now()})
        self._photos[photo_id] = photo
        return photo.model_copy()

    def delete_photo(self, photo_id: str) -> bool:
        return self._photos.pop(photo_id, None) is not None

    # --- routes ---

    def create_route(self, request: CreateRouteRequest) -> Route:
        route_id = _new_id()
        stops = [self._make_stop(route_id, s) for s in request.stops]
        route = Route(
            id=route_id,
            trip_id=request.trip_id,
            title=request.title,
            description=request.description,
            profile=request.profile,
            stops=order_stops(stops),
        )
        self._routes[route_id] = route
        return route.model_copy(deep=True)

    def get_route(self, route_id: str) -> Route | None:
        route = self._routes.get(route_id)
        return route.model_copy(deep=True) if route else None

    def routes_for_trip(self, trip_id: str) -> list[Route]:
        return [r.model_copy(deep=True) for r in self._routes.values() if r.trip_id == trip_id]

    def update_route(self, route_id: str, updates: UpdateRouteRequest) -> Route | None:
        route = self._routes.get(route_id)
        if route is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        if "profile" in changes and changes["profile"] != route.profile:
            # geometry depends on the travel mode
            changes["segments"] = []
        route = route.model_copy(update={**changes, "updated_at": utc_now()})
        self._routes[route_id] = route
        return route.model_copy(deep=True)

    def replace_segments(self, route_id: str, segments: list[RouteSegment]) -> Route | None:
        route = self._routes.get(route_id)
        if route is None:
            return None
        route = route.model_copy(update={"segments": segments, "updated_at": utc_now()})
        self._routes[route_id] = route
        return route.model_copy(deep=True)

    def delete_route(self, route_id: str) -> bool:
        return self._routes.pop(route_id, None) is not None

    # --- stops ---

    def add_stop(self, route_id: str, request: CreateRouteStopRequest) -> Route | None:
        route = self._routes.get(route_id)
        if route is None:
            return None
        stops = order_stops([*route.stops, self._make_stop(route_id, request)])
        return self._save_stops(route, stops, route.segments)

    def update_stop(self, route_id: str, stop_id: str, updates: UpdateRouteStopRequest) -> Route | None:
        route = self._routes.get(route_id)
        if route is None or not any(s.id == stop_id for s in route.stops):
            return None
        changes = updates.model_dump(exclude_unset=True)
        stops = [
            s.model_copy(update={**changes, "updated_at": utc_now()}) if s.id == stop_id else s
            for s in route.stops
        ]
        segments = route.segments
        if changes.keys() & {"latitude", "longitude"}:
            segments = [s for s in segments if stop_id not in (s.start_stop_id, s.end_stop_id)]
        return self._save_stops(route, order_stops(stops), segments)

    def delete_stop(self, route_id: str, stop_id: str) -> Route | None:
        route = self._routes.get(route_id)
        if route is None or not any(s.id == stop_id for s in route.stops):
            return None
        stops = [s for s in route.stops if s.id != stop_id]
        segments = [s for s in route.segments if stop_id not in (s.start_stop_id, s.end_stop_id)]
        return self._save_stops(route, stops, segments)

    def _save_stops(self, route: Route, stops: list[RouteStop], segments: list[RouteSegment]) -> Route:
        # only legs between stops that are still adjacent survive
        legs = {(start.id, end.id) for start, end in stop_pairs(stops)}
        segments = [s for s in segments if (s.start_stop_id, s.end_stop_id) in legs]
        route = route.model_copy(update={"stops": stops, "segments": segments, "updated_at": utc_now()})
        self._routes[route.id] = route
        return route.model_copy(deep=True)

    @staticmethod
    def _make_stop(route_id: str, request: CreateRouteStopRequest) -> RouteStop:
        return RouteStop(id=_new_id(), route_id=route_id, **request.model_dump())
