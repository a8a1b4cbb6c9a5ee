"""Route planning: validation, search and ranking of candidate plans."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .models import RoutePlan, RouteRequest, TransferType
from .search import SearchError, SpatialSearch
from .validation import (
    GeoValidator,
    InvalidCoordinatesError,
    ValidationError,
    ValidationResult,
)

logger = logging.getLogger(__name__)

Point = tuple[float, float]

_TRANSFER_PENALTIES = {
    TransferType.DIRECT: 0.0,
    TransferType.NEAR: 2.0,
    TransferType.PROXIMATE: 5.0,
}


class PlanningError(Exception):
    """Raised when no plan can be produced."""


class NoValidRoutesError(PlanningError):
    def __init__(self) -> None:
        super().__init__("No valid routes found")


@dataclass
class PlanningConfig:
    """Tuning knobs for the planner; distances are in degrees."""

    max_route_distance: float = 0.05  # about 5 km
    max_transfer_distance: float = 0.01  # about 1 km
    max_transfers: int = 10
    results_limit: int = 3


class RoutePlanner:
    """Combines geographic validation and spatial search into ranked plans."""

    def __init__(
        self,
        validator: GeoValidator,
        search: SpatialSearch,
        config: PlanningConfig | None = None,
    ) -> None:
        self.config = config if config is not None else PlanningConfig()
        self.validator = validator
        self.search = search

    def plan_route(self, origin: Point, destination: Point) -> list[RoutePlan]:
        """Return the best plans from ``origin`` to ``destination`` (lon, lat)."""
        logger.info("Validating geographic points")
        try:
            validation = self.validator.validate_route(origin, destination)
        except ValidationError as exc:
            raise PlanningError(f"Geographic validation error: {exc}") from exc

        if not validation.is_valid:
            logger.error("Invalid points for route planning")
            cause = InvalidCoordinatesError()
            raise PlanningError(f"Geographic validation error: {cause}") from cause

        request = self._create_route_request(origin, destination, validation)

        logger.info("Searching for possible routes")
        try:
            plans = self.search.find_routes_to_destination(
                request.origin,
                request.destination,
                request.max_transfers,
                request.max_route_distance,
            )
        except SearchError as exc:
            raise PlanningError(f"Search error: {exc}") from exc

        plans = sorted(plans, key=lambda plan: self._plan_score(plan, validation))
        if not plans:
            raise NoValidRoutesError()
        return plans[: self.config.results_limit]

    def _create_route_request(
        self, origin: Point, destination: Point, validation: ValidationResult
    ) -> RouteRequest:
        request = RouteRequest(
            origin=origin,
            destination=destination,
            max_route_distance=self.config.max_route_distance,
            max_transfer_distance=self.config.max_transfer_distance,
            max_transfers=self.config.max_transfers,
        )
        if validation.is_interdepartmental:
            request.max_route_distance *= 1.5
            request.max_transfer_distance *= 1.5
        if validation.distance_to_boundary < self.config.max_transfer_distance:
            request.max_route_distance *= 1.2
        return request

    def _plan_score(self, plan: RoutePlan, validation: ValidationResult) -> float:
        """Lower is better: transfers weigh most, then distance and transfer kind."""
        score = plan.transfers_count * 10.0
        score += plan.total_distance / self.config.max_route_distance
        score += sum(_TRANSFER_PENALTIES[segment.transfer_type] for segment in plan.routes)

        if plan.is_interdepartmental:
            score *= 0.8 if validation.is_interdepartmental else 1.2
        return score