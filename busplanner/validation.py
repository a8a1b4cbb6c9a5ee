"""Checks that points fall inside known departments and classifies trips."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry import Point as ShapelyPoint

from .models import (
    DepartmentProperties,
    GeoJsonFeature,
    GeoJsonFeatureCollection,
    GeoJsonGeometry,
    GeometryType,
    RouteProperties,
)

logger = logging.getLogger(__name__)

Point = tuple[float, float]

# Points this close to a department, though outside all of them, are tolerated.
BOUNDARY_TOLERANCE = 0.01


class ValidationError(Exception):
    """Base class for geographic validation failures."""


class InvalidCoordinatesError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Invalid coordinates")


class OutsideCountryError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Point outside country boundaries")


class DepartmentNotFoundError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Department not found")


@dataclass
class ValidationResult:
    """Outcome of validating an origin/destination pair."""

    is_valid: bool
    origin_department: str | None
    destination_department: str | None
    is_interdepartmental: bool
    distance_to_boundary: float


@dataclass
class DepartmentBoundary:
    """A department's name and its boundary shape."""

    name: str
    boundary: MultiPolygon


def _boundary_from(geometry: GeoJsonGeometry) -> MultiPolygon:
    if geometry.kind is not GeometryType.POLYGON or not geometry.coordinates:
        return MultiPolygon()
    rings = [[(coord[0], coord[1]) for coord in ring] for ring in geometry.coordinates]
    try:
        polygon = Polygon(rings[0], rings[1:])
    except (ValueError, GEOSException):
        return MultiPolygon()
    return MultiPolygon([polygon])


def _contains(boundary: MultiPolygon, point: Point) -> bool:
    if boundary.is_empty:
        return False
    return bool(boundary.contains(ShapelyPoint(point[0], point[1])))


def _distance(boundary: MultiPolygon, point: Point) -> float:
    if boundary.is_empty:
        return math.inf
    return float(boundary.distance(ShapelyPoint(point[0], point[1])))


class GeoValidator:
    """Locates points within the department boundaries."""

    def __init__(
        self, department_collection: GeoJsonFeatureCollection[DepartmentProperties]
    ) -> None:
        self.departments: list[DepartmentBoundary] = [
            DepartmentBoundary(
                name=feature.properties.nam,
                boundary=_boundary_from(feature.geometry),
            )
            for feature in department_collection.features
        ]

    def _distances(self, point: Point) -> Iterable[float]:
        return (_distance(dept.boundary, point) for dept in self.departments)

    def validate_point(self, point: Point) -> str | None:
        """Return the containing department's name.

        Returns None for a point just outside every department, and raises
        OutsideCountryError for one farther away.
        """
        for dept in self.departments:
            if _contains(dept.boundary, point):
                return dept.name

        min_distance = min(self._distances(point), default=math.inf)
        if min_distance < BOUNDARY_TOLERANCE:
            return None
        logger.error("Point (%s, %s) is outside every department", point[0], point[1])
        raise OutsideCountryError()

    def validate_route(self, origin: Point, destination: Point) -> ValidationResult:
        origin_dept = self.validate_point(origin)
        dest_dept = self.validate_point(destination)

        distance_to_boundary = min(self._distances(origin), default=math.inf)
        is_interdepartmental = (
            origin_dept is not None and dest_dept is not None and origin_dept != dest_dept
        )

        return ValidationResult(
            is_valid=origin_dept is not None and dest_dept is not None,
            origin_department=origin_dept,
            destination_department=dest_dept,
            is_interdepartmental=is_interdepartmental,
            distance_to_boundary=distance_to_boundary,
        )

    def get_route_departments(self, route_feature: GeoJsonFeature[RouteProperties]) -> list[str]:
        """Names of the departments that contain any vertex of the route."""
        if route_feature.geometry.kind is not GeometryType.LINE_STRING:
            return []
        points = [(coord[0], coord[1]) for coord in route_feature.geometry.coordinates]
        return [
            dept.name
            for dept in self.departments
            if any(_contains(dept.boundary, point) for point in points)
        ]

    def is_near_boundary(self, point: Point, max_distance: float) -> bool:
        return any(distance <= max_distance for distance in self._distances(point))

    def get_nearest_department(self, point: Point) -> str:
        if not self.departments:
            raise DepartmentNotFoundError()
        nearest = min(self.departments, key=lambda dept: _distance(dept.boundary, point))
        return nearest.name