"""Loading of department, bus-stop and route GeoJSON files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import (
    BusStopProperties,
    DepartmentProperties,
    GeoJsonFeature,
    GeoJsonFeatureCollection,
    RouteProperties,
)

logger = logging.getLogger(__name__)

DEPARTMENTS_FILE = "LIM DEPARTAMENTALES.geojson"
BUS_STOPS_FILE = "Paradas Transporte Colectivo AMSS.geojson"
ROUTE_FILES = (
    "Rutas Interdepartamentales.geojson",
    "Rutas Interurbanas.geojson",
    "Rutas Urbanas.geojson",
)


class LoaderError(Exception):
    """Raised when a data file cannot be read or parsed."""


class DataLoader:
    """Reads the planner's GeoJSON data from a directory."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self.departments: GeoJsonFeatureCollection[DepartmentProperties] = GeoJsonFeatureCollection()
        self.bus_stops: GeoJsonFeatureCollection[BusStopProperties] = GeoJsonFeatureCollection()
        self.routes: GeoJsonFeatureCollection[RouteProperties] = GeoJsonFeatureCollection()

    def load_all(self) -> None:
        """Load departments, bus stops and all route files."""
        self.departments = self._load_geojson(DEPARTMENTS_FILE, DepartmentProperties)
        self.bus_stops = self._load_geojson(BUS_STOPS_FILE, BusStopProperties)

        routes: GeoJsonFeatureCollection[RouteProperties] = GeoJsonFeatureCollection()
        for filename in ROUTE_FILES:
            routes.features.extend(self._load_geojson(filename, RouteProperties).features)
        self.routes = routes

    def _load_geojson(self, filename: str, properties_type: Any) -> GeoJsonFeatureCollection:
        path = self.data_dir / filename
        logger.info("Loading %s", path)
        try:
            with path.open(encoding="utf-8") as handle:
                raw = json.load(handle)
        except OSError as exc:
            raise LoaderError(f"IO error: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise LoaderError(f"JSON parsing error: {exc}") from exc

        if not isinstance(raw, dict) or "type" not in raw:
            raise LoaderError("GeoJSON parsing error: Invalid GeoJSON structure")

        try:
            return GeoJsonFeatureCollection.from_dict(raw, properties_type)
        except ValueError as exc:
            logger.error("Failed to parse GeoJSON from %s: %s", filename, exc)
            raise LoaderError(f"JSON parsing error: {exc}") from exc

    def find_routes_by_department(self, department: str) -> list[GeoJsonFeature[RouteProperties]]:
        return [f for f in self.routes.features if f.properties.departamento == department]

    def find_stops_by_route(self, route_code: str) -> list[BusStopProperties]:
        return [
            f.properties for f in self.bus_stops.features if f.properties.ruta == route_code
        ]

    def find_interdepartmental_routes(self) -> list[RouteProperties]:
        return [
            f.properties
            for f in self.routes.features
            if f.properties.subtipo == "INTERDEPARTAMENTAL"
        ]