"""Spatial search over bus routes: nearby routes, transfers and route plans."""

from __future__ import annotations

import dataclasses
import json
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from itertools import pairwise
from pathlib import Path
from typing import Any

from .models import (
    BusStopProperties,
    GeoJsonFeature,
    GeometryType,
    RouteProperties,
    RoutePlan,
    RouteSegment,
    TransferPoint,
    TransferType,
)

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = "route_intersections.cache"
CACHE_VERSION = 1

NEAR_TRANSFER_DISTANCE = 0.005  # about 500 m in degrees
PROXIMATE_TRANSFER_DISTANCE = 0.01  # about 1 km in degrees
BBOX_MARGIN = 0.01
MAX_PLANS = 3

Point = tuple[float, float]
RouteFeature = GeoJsonFeature[RouteProperties]


class SearchError(Exception):
    """Base class for route search failures."""


class NoRoutesNearOriginError(SearchError):
    def __init__(self) -> None:
        super().__init__("No routes found near origin")


class NoRoutesNearDestinationError(SearchError):
    def __init__(self) -> None:
        super().__init__("No routes found near destination")


class NoValidPathError(SearchError):
    def __init__(self) -> None:
        super().__init__("No valid path found")


def _point_distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def _segment_distance(point: Point, start: Point, end: Point) -> float:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0 and dy == 0:
        return _point_distance(point, start)
    t = ((point[0] - start[0]) * dx + (point[1] - start[1]) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))
    return _point_distance(point, (start[0] + t * dx, start[1] + t * dy))


def _line_distance(coords: Sequence[Sequence[float]], point: Point) -> float:
    points = [(c[0], c[1]) for c in coords]
    if not points:
        return 0.0
    if len(points) == 1:
        return _point_distance(points[0], point)
    return min(_segment_distance(point, a, b) for a, b in pairwise(points))


def _line_coords(route: RouteFeature) -> list | None:
    if route.geometry.kind is GeometryType.LINE_STRING:
        return route.geometry.coordinates
    return None


def _copy_plan(plan: RoutePlan) -> RoutePlan:
    return dataclasses.replace(plan, routes=list(plan.routes))


@dataclass
class RouteIntersectionCache:
    """Precomputed transfer points between routes, persisted on disk."""

    intersections: dict[str, list[TransferPoint]]
    version: int = CACHE_VERSION
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def save_to_file(self, cache_dir: str | Path) -> None:
        cache_dir = Path(cache_dir)
        cache_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": self.version,
            "last_updated": self.last_updated.isoformat(),
            "intersections": {
                code: [transfer.to_dict() for transfer in transfers]
                for code, transfers in self.intersections.items()
            },
        }
        (cache_dir / CACHE_FILE_NAME).write_text(json.dumps(payload), encoding="utf-8")

    @classmethod
    def load_from_file(cls, cache_dir: str | Path) -> RouteIntersectionCache | None:
        """Return the stored cache, or None when absent or unreadable."""
        cache_file = Path(cache_dir) / CACHE_FILE_NAME
        if not cache_file.exists():
            return None
        raw = cache_file.read_bytes()
        try:
            data = json.loads(raw)
            intersections = {
                str(code): [TransferPoint.from_dict(item) for item in transfers]
                for code, transfers in data["intersections"].items()
            }
            return cls(
                intersections=intersections,
                version=int(data["version"]),
                last_updated=datetime.fromisoformat(data["last_updated"]),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Failed to load cache: %s", exc)
            return None


class SpatialSearch:
    """Finds routes near points and chains them through transfer points."""

    def __init__(
        self,
        routes: Iterable[RouteFeature],
        bus_stops: Iterable[BusStopProperties],
        cache_dir: str | Path | None = None,
    ) -> None:
        self.bus_stops: dict[str, list[BusStopProperties]] = {}
        for stop in bus_stops:
            if stop.ruta is not None:
                self.bus_stops.setdefault(stop.ruta, []).append(stop)

        self.routes: dict[str, RouteFeature] = {
            route.properties.codigo_de: route
            for route in routes
            if route.properties.codigo_de is not None
        }
        self.route_intersections: dict[str, list[TransferPoint]] = {}
        self.cache_dir = Path(cache_dir) if cache_dir is not None else Path("./cache")

        try:
            cache = RouteIntersectionCache.load_from_file(self.cache_dir)
        except OSError as exc:
            logger.error("Error loading cache: %s", exc)
            self._precalculate_intersections()
            return

        if cache is not None:
            logger.info("Loaded route intersections from cache")
            self.route_intersections = cache.intersections
            return

        logger.info("Cache not found, precalculating intersections")
        self._precalculate_intersections()
        try:
            RouteIntersectionCache(dict(self.route_intersections)).save_to_file(self.cache_dir)
        except OSError as exc:
            logger.error("Failed to save intersection cache: %s", exc)

    # ---------------------------------------------------------------- transfers

    def _precalculate_intersections(self) -> None:
        logger.info("Pre-calculating route intersections")
        total = len(self.routes)
        intersections: dict[str, list[TransferPoint]] = {}
        for code, route in self.routes.items():
            found = []
            for other_code in self._potential_intersections(route):
                if other_code == code:
                    continue
                transfer = self._best_transfer(route, self.routes[other_code])
                if transfer is not None:
                    found.append(transfer)
            logger.info(
                "Processed intersections for route %s (%d/%d total)", code, len(found), total
            )
            intersections[code] = found
        self.route_intersections = intersections
        logger.info("Intersection pre-calculation completed")

    def _potential_intersections(self, route: RouteFeature) -> list[str]:
        coords = _line_coords(route)
        if coords is None:
            return []
        min_x = min((c[0] for c in coords), default=math.inf) - BBOX_MARGIN
        min_y = min((c[1] for c in coords), default=math.inf) - BBOX_MARGIN
        max_x = max((c[0] for c in coords), default=-math.inf) + BBOX_MARGIN
        max_y = max((c[1] for c in coords), default=-math.inf) + BBOX_MARGIN

        result = []
        for code, other in self.routes.items():
            other_coords = _line_coords(other)
            if other_coords is None:
                continue
            if any(min_x <= c[0] <= max_x and min_y <= c[1] <= max_y for c in other_coords):
                result.append(code)
        return result

    def _best_transfer(self, route1: RouteFeature, route2: RouteFeature) -> TransferPoint | None:
        return (
            self._direct_transfer(route1, route2)
            or self._near_transfer(route1, route2, NEAR_TRANSFER_DISTANCE)
            or self._proximate_transfer(route1, route2, PROXIMATE_TRANSFER_DISTANCE)
        )

    def _stop_pairs(self, route1: RouteFeature, route2: RouteFeature):
        stops1 = self.bus_stops.get(route1.properties.codigo_de)
        stops2 = self.bus_stops.get(route2.properties.codigo_de)
        if stops1 is None or stops2 is None:
            return
        for stop1 in stops1:
            for stop2 in stops2:
                yield stop1, stop2

    @staticmethod
    def _codes(route1: RouteFeature, route2: RouteFeature) -> tuple[str, str]:
        return route1.properties.codigo_de or "", route2.properties.codigo_de or ""

    def _direct_transfer(self, route1: RouteFeature, route2: RouteFeature) -> TransferPoint | None:
        for stop1, stop2 in self._stop_pairs(route1, route2):
            if None in (stop1.latitud, stop1.longitud):
                continue
            if stop1.latitud == stop2.latitud and stop1.longitud == stop2.longitud:
                from_route, to_route = self._codes(route1, route2)
                return TransferPoint(
                    location=(stop1.longitud, stop1.latitud),
                    bus_stop=stop1,
                    distance_to_route=0.0,
                    transfer_type=TransferType.DIRECT,
                    from_route=from_route,
                    to_route=to_route,
                )
        return None

    def _near_transfer(
        self, route1: RouteFeature, route2: RouteFeature, max_distance: float
    ) -> TransferPoint | None:
        best = None
        min_distance = max_distance
        for stop1, stop2 in self._stop_pairs(route1, route2):
            if None in (stop1.longitud, stop1.latitud, stop2.longitud, stop2.latitud):
                continue
            point1 = (stop1.longitud, stop1.latitud)
            distance = _point_distance(point1, (stop2.longitud, stop2.latitud))
            if distance < min_distance:
                min_distance = distance
                from_route, to_route = self._codes(route1, route2)
                best = TransferPoint(
                    location=point1,
                    bus_stop=stop1,
                    distance_to_route=distance,
                    transfer_type=TransferType.NEAR,
                    from_route=from_route,
                    to_route=to_route,
                )
        return best

    def _proximate_transfer(
        self, route1: RouteFeature, route2: RouteFeature, max_distance: float
    ) -> TransferPoint | None:
        coords1 = _line_coords(route1)
        coords2 = _line_coords(route2)
        if coords1 is None or coords2 is None:
            return None
        best = None
        min_distance = max_distance
        for c1 in coords1:
            point1 = (c1[0], c1[1])
            for c2 in coords2:
                distance = _point_distance(point1, (c2[0], c2[1]))
                if distance < min_distance:
                    min_distance = distance
                    from_route, to_route = self._codes(route1, route2)
                    best = TransferPoint(
                        location=point1,
                        bus_stop=None,
                        distance_to_route=distance,
                        transfer_type=TransferType.PROXIMATE,
                        from_route=from_route,
                        to_route=to_route,
                    )
        return best

    # ------------------------------------------------------------------ search

    def find_routes_to_destination(
        self,
        origin: Point,
        destination: Point,
        max_transfers: int,
        max_route_distance: float,
    ) -> list[RoutePlan]:
        """Return up to three plans, fewest transfers first, then shortest."""
        origin_routes = self._nearby_routes(origin, max_route_distance)
        if not origin_routes:
            raise NoRoutesNearOriginError()
        destination_routes = self._nearby_routes(destination, max_route_distance)
        if not destination_routes:
            raise NoRoutesNearDestinationError()

        logger.debug(
            "Found %d routes near origin and %d near destination",
            len(origin_routes),
            len(destination_routes),
        )

        destination_codes = {route.properties.codigo_de for route in destination_routes}
        plans: list[RoutePlan] = []
        for start_route in origin_routes:
            visited = {start_route.properties.codigo_de or ""}
            self._explore(
                start_route, destination_codes, destination, max_transfers, visited, RoutePlan(), plans
            )

        if not plans:
            raise NoValidPathError()

        plans.sort(key=lambda plan: (plan.transfers_count, plan.total_distance))
        return plans[:MAX_PLANS]

    def _nearby_routes(self, point: Point, max_distance: float) -> list[RouteFeature]:
        result = []
        for route in self.routes.values():
            coords = _line_coords(route)
            if coords is None:
                continue
            if any(_point_distance((c[0], c[1]), point) <= max_distance for c in coords):
                result.append(route)
        return result

    def _explore(
        self,
        current: RouteFeature,
        destination_codes: set[str | None],
        destination: Point,
        transfers_left: int,
        visited: set[str],
        plan: RoutePlan,
        all_plans: list[RoutePlan],
    ) -> None:
        code = current.properties.codigo_de
        if code in destination_codes:
            end_point = self._closest_point_on_route(current, destination)
            if end_point is not None:
                plan.add_segment(
                    RouteSegment(
                        route=current.properties,
                        transfer_point=TransferPoint(
                            location=end_point,
                            bus_stop=None,
                            distance_to_route=_point_distance(end_point, destination),
                            transfer_type=TransferType.DIRECT,
                            from_route=code or "",
                            to_route="",
                        ),
                        transfer_type=TransferType.DIRECT,
                        segment_distance=self._route_distance(current, end_point) or 0.0,
                    )
                )
                all_plans.append(_copy_plan(plan))
                return

        if transfers_left <= 0:
            return

        for transfer in self.route_intersections.get(code, []):
            next_route = self.routes.get(transfer.to_route)
            if next_route is None:
                continue
            next_code = next_route.properties.codigo_de
            if next_code in visited:
                continue
            visited.add(next_code)
            plan.add_segment(
                RouteSegment(
                    route=current.properties,
                    transfer_point=transfer,
                    transfer_type=transfer.transfer_type,
                    segment_distance=self._route_distance(current, transfer.location) or 0.0,
                )
            )
            self._explore(
                next_route, destination_codes, destination, transfers_left - 1, visited, plan, all_plans
            )
            visited.discard(next_code)
            plan.routes.pop()

    @staticmethod
    def _closest_point_on_route(route: RouteFeature, point: Point) -> Point | None:
        coords = _line_coords(route)
        if not coords:
            return None
        best = min(coords, key=lambda c: _point_distance((c[0], c[1]), point))
        return (best[0], best[1])

    @staticmethod
    def _route_distance(route: RouteFeature, point: Point) -> float | None:
        coords = _line_coords(route)
        if coords is None:
            return None
        return _line_distance(coords, point)