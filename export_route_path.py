"""Export a stored route's merged path: compute the display curve, plot it, and write CSV.

Reads a route JSON document (as returned by ``GET /routes/{id}``) and uses the
trip_routes library for segment ordering, geometry merging and smoothing.
"""

import argparse
import csv
import json
import math
from pathlib import Path

import matplotlib.pyplot as plt

from trip_routes.models import LatLon, Route
from trip_routes.segments import build_route_path, order_stops

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(a: LatLon, b: LatLon) -> float:
    lat1, lon1 = map(math.radians, a)
    lat2, lon2 = map(math.radians, b)
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def path_rows(points: list[LatLon]) -> list[dict]:
    """One row per path point with cumulative distance along the path."""
    rows = []
    cumulative_km = 0.0
    for i, (lat, lon) in enumerate(points):
        if i > 0:
            cumulative_km += haversine_m(points[i - 1], (lat, lon)) / 1000
        rows.append({"index": i, "lat": lat, "lon": lon, "cumulative_km": cumulative_km})
    return rows


def export_csv(rows: list[dict], path: Path) -> None:
    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["index", "lat", "lon", "cumulative_km"])
        writer.writeheader()
        writer.writerows(rows)
    print(f"CSV exported: {path}")


def plot_path(route: Route, raw: list[LatLon], smooth: list[LatLon], path: Path) -> None:
    """Plot the raw merged polyline, the smoothed curve and the stops."""
    fig, ax = plt.subplots(figsize=(10, 10))
    if raw:
        ax.plot([p[1] for p in raw], [p[0] for p in raw], color="lightgray", linewidth=1, label="Merged segments")
    if smooth:
        ax.plot([p[1] for p in smooth], [p[0] for p in smooth], color="steelblue", linewidth=1.5, label="Display path")

    stops = order_stops(route.stops)
    ax.scatter([s.longitude for s in stops], [s.latitude for s in stops], color="coral", zorder=3, label="Stops")
    for stop in stops:
        ax.annotate(stop.title, (stop.longitude, stop.latitude), textcoords="offset points", xytext=(4, 4), fontsize=8)

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title(f"{route.title} ({route.profile.value})")
    ax.set_aspect("equal", adjustable="datalim")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    print(f"Plot saved: {path}")


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("route_json", type=Path)
    parser.add_argument("--out-dir", type=Path, default=Path("."))
    args = parser.parse_args()

    route = Route.model_validate(json.loads(args.route_json.read_text()))
    print(f"Route {route.title}: {len(route.stops)} stops, {len(route.segments)} segments\n")

    raw = build_route_path(route, smooth=False)
    smooth = build_route_path(route)
    rows = path_rows(smooth)

    total_km = sum(s.distance for s in route.segments)
    print(f"Merged points: {len(raw):,}")
    print(f"Curve points:  {len(smooth):,}")
    print(f"Routed length: {total_km:,.2f} km")
    if rows:
        print(f"Curve length:  {rows[-1]['cumulative_km']:,.2f} km")
    print()

    args.out_dir.mkdir(parents=True, exist_ok=True)
    export_csv(rows, args.out_dir / f"route_{route.id}_path.csv")
    plot_path(route, raw, smooth, args.out_dir / f"route_{route.id}_path.png")


if __name__ == "__main__":
    main()
