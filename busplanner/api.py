"""HTTP API for route planning, backed by a process-wide planner."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from flask import Blueprint, Flask, Response, jsonify, request

from .data_loader import DataLoader
from .models import RoutePlan, TransferType
from .planner import PlanningConfig, PlanningError, RoutePlanner
from .search import SpatialSearch
from .validation import GeoValidator

logger = logging.getLogger(__name__)

# Approximate bounds of El Salvador.
MIN_LAT = 13.0
MAX_LAT = 14.5
MIN_LNG = -90.2
MAX_LNG = -87.5

AVERAGE_SPEED = 30.0  # distance units per hour
TRANSFER_SECONDS = 5 * 60
INTERDEPARTMENTAL_FACTOR = 1.2

_TRANSFER_LABELS = {
    TransferType.DIRECT: "Directo",
    TransferType.NEAR: "Cercano",
    TransferType.PROXIMATE: "Próximo",
}

_PLAN_QUERY_FIELDS = ("start_lat", "start_lng", "end_lat", "end_lng")


class _PlannerSlot:
    """Holds the shared planner; the lock is held while it is used."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.planner: RoutePlanner | None = None


_slot = _PlannerSlot()


def is_valid_coordinates(lat: float, lng: float) -> bool:
    """Whether the point lies within the approximate bounds of El Salvador."""
    return MIN_LAT <= lat <= MAX_LAT and MIN_LNG <= lng <= MAX_LNG


def _div_trunc(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


def estimate_travel_time(plan: RoutePlan) -> int:
    """Estimated travel time of a plan, in whole minutes rounded up."""
    base_time = int(plan.total_distance * 3600.0 / AVERAGE_SPEED)
    transfer_time = plan.transfers_count * TRANSFER_SECONDS
    if plan.is_interdepartmental:
        total_seconds = int(base_time * INTERDEPARTMENTAL_FACTOR) + transfer_time
    else:
        total_seconds = base_time + transfer_time
    return _div_trunc(total_seconds + 59, 60)


def convert_plan_to_response(plan: RoutePlan) -> dict[str, Any]:
    """Shape a plan as the JSON object returned to clients."""
    segments = []
    for segment in plan.routes:
        point = segment.transfer_point
        stop = point.bus_stop
        segments.append(
            {
                "route_code": segment.route.codigo_de or "",
                "route_name": segment.route.nombre_de or "",
                "transfer_type": _TRANSFER_LABELS[segment.transfer_type],
                "transfer_point": {
                    "latitude": point.location[1],
                    "longitude": point.location[0],
                    "stop_name": stop.nam if stop is not None else None,
                    "distance": point.distance_to_route,
                },
                "segment_distance": segment.segment_distance,
            }
        )
    return {
        "segments": segments,
        "total_distance": plan.total_distance,
        "transfers_count": plan.transfers_count,
        "is_interdepartmental": plan.is_interdepartmental,
        "estimated_time": estimate_travel_time(plan),
    }


def initialize_planner(
    data_dir: str | Path = "./data", cache_dir: str | Path = "./cache"
) -> None:
    """Load the data files and install the shared route planner."""
    logger.info("Initializing route planner...")
    data_dir = Path(data_dir)
    cache_dir = Path(cache_dir)

    if not cache_dir.exists():
        logger.info("Creating cache directory...")
        cache_dir.mkdir(parents=True, exist_ok=True)

    loader = DataLoader(data_dir)
    loader.load_all()
    logger.info("Data loaded successfully")

    validator = GeoValidator(loader.departments)

    logger.info("Initializing spatial search with cache...")
    search = SpatialSearch(
        list(loader.routes.features),
        [feature.properties for feature in loader.bus_stops.features],
        cache_dir,
    )

    config = PlanningConfig(
        max_route_distance=0.05,
        max_transfer_distance=0.01,
        max_transfers=10,
        results_limit=3,
    )

    logger.info("Creating route planner...")
    planner = RoutePlanner(validator, search, config)

    with _slot.lock:
        _slot.planner = planner
    logger.info("Route planner initialized successfully")


def reset_planner() -> None:
    """Remove the shared planner, leaving the API uninitialized."""
    with _slot.lock:
        _slot.planner = None


def _planning_response(
    status: int, success: bool, message: str | None, routes: list | None
) -> tuple[Response, int]:
    body = jsonify({"success": success, "message": message, "routes": routes})
    return body, status


def _parse_plan_query() -> dict[str, float]:
    values = {}
    for name in _PLAN_QUERY_FIELDS:
        raw = request.args.get(name)
        if raw is None:
            raise ValueError(f"missing field `{name}`")
        try:
            values[name] = float(raw)
        except ValueError:
            raise ValueError(f"invalid float literal for `{name}`") from None
    return values


def _plan_routes():
    try:
        query = _parse_plan_query()
    except ValueError as exc:
        return Response(f"Query deserialize error: {exc}", status=400, mimetype="text/plain")

    start_lat = query["start_lat"]
    start_lng = query["start_lng"]
    end_lat = query["end_lat"]
    end_lng = query["end_lng"]
    logger.info(
        "Planning routes from (%s, %s) to (%s, %s)", start_lat, start_lng, end_lat, end_lng
    )

    if not (is_valid_coordinates(start_lat, start_lng) and is_valid_coordinates(end_lat, end_lng)):
        logger.error("Invalid coordinates provided")
        return _planning_response(
            400, False, "Coordinates must be within El Salvador bounds", None
        )

    with _slot.lock:
        planner = _slot.planner
        if planner is None:
            logger.error("Route planner not initialized")
            return _planning_response(
                500, False, "Route planning system not initialized", None
            )

        try:
            plans = planner.plan_route((start_lng, start_lat), (end_lng, end_lat))
        except PlanningError as exc:
            logger.error("Error planning route: %r", exc)
            return _planning_response(500, False, str(exc), None)

    response_plans = [convert_plan_to_response(plan) for plan in plans]
    logger.debug("Found %d possible route plans", len(response_plans))

    if not response_plans:
        return _planning_response(
            404, False, "No valid routes found between the specified points", None
        )
    return _planning_response(200, True, None, response_plans)


def create_app() -> Flask:
    """Build the Flask application with the API routes under /api."""
    app = Flask(__name__)
    api = Blueprint("api", __name__, url_prefix="/api")
    api.add_url_rule("/plan_routes", view_func=_plan_routes, methods=["GET"])
    app.register_blueprint(api)
    return app