"""GeoJSON records and route-planning data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _require_mapping(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what}: expected an object")
    return data


def _require_str(data: dict, key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string")
    return value


def _opt_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string")
    return value


def _opt_int(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r}: expected an integer")
    if not _I32_MIN <= value <= _I32_MAX:
        raise ValueError(f"field {key!r}: integer out of range")
    return value


def _opt_float(data: dict, key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r}: expected a number")
    return float(value)


def _without_none(pairs: dict[str, Any]) -> dict[str, Any]:
    return dict(pairs)


class GeometryType(str, Enum):
    """Geometry kinds understood by the planner."""

    POINT = "Point"
    LINE_STRING = "LineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"
    MULTI_LINE_STRING = "MultiLineString"

    @property
    def depth(self) -> int:
        return _DEPTHS[self]


_DEPTHS = {
    GeometryType.POINT: 1,
    GeometryType.LINE_STRING: 2,
    GeometryType.POLYGON: 3,
    GeometryType.MULTI_LINE_STRING: 3,
    GeometryType.MULTI_POLYGON: 4,
}


def _coordinates(value: Any, depth: int) -> Any:
    if depth == 0:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("coordinate: expected a number")
        return float(value)
    if not isinstance(value, list):
        raise ValueError("coordinates: expected an array")
    return [_coordinates(item, depth - 1) for item in value]


@dataclass
class GeoJsonGeometry:
    """A geometry with its kind and nested coordinate arrays."""

    kind: GeometryType
    coordinates: list

    @classmethod
    def from_dict(cls, data: Any) -> GeoJsonGeometry:
        data = _require_mapping(data, "geometry")
        raw_kind = _require_str(data, "type")
        try:
            kind = GeometryType(raw_kind)
        except ValueError:
            raise ValueError(f"unknown geometry type {raw_kind!r}") from None
        if "coordinates" not in data:
            raise ValueError("missing field 'coordinates'")
        return cls(kind, _coordinates(data["coordinates"], kind.depth))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "coordinates": self.coordinates}


class _PropertiesType(Protocol):
    @classmethod
    def from_dict(cls, data: Any) -> Any: ...


P = TypeVar("P")


@dataclass
class GeoJsonFeature(Generic[P]):
    """A single feature: typed properties plus a geometry."""

    type: str
    properties: P
    geometry: GeoJsonGeometry

    @classmethod
    def from_dict(cls, data: Any, properties_type: type[_PropertiesType]) -> GeoJsonFeature:
        data = _require_mapping(data, "feature")
        kind = _require_str(data, "type")
        if "properties" not in data:
            raise ValueError("missing field 'properties'")
        if "geometry" not in data:
            raise ValueError("missing field 'geometry'")
        return cls(
            type=kind,
            properties=properties_type.from_dict(data["properties"]),
            geometry=GeoJsonGeometry.from_dict(data["geometry"]),
        )


@dataclass
class GeoJsonFeatureCollection(Generic[P]):
    """A named feature collection with its coordinate reference system."""

    type: str = ""
    name: str = ""
    crs_type: str = ""
    crs_name: str = ""
    features: list[GeoJsonFeature[P]] = field(default_factory=list)

    @classmethod
    def from_dict(
        cls, data: Any, properties_type: type[_PropertiesType]
    ) -> GeoJsonFeatureCollection:
        data = _require_mapping(data, "feature collection")
        kind = _require_str(data, "type")
        name = _require_str(data, "name")
        if "crs" not in data:
            raise ValueError("missing field 'crs'")
        crs = _require_mapping(data["crs"], "crs")
        if "properties" not in crs:
            raise ValueError("missing field 'properties'")
        crs_properties = _require_mapping(crs["properties"], "crs properties")
        if "features" not in data:
            raise ValueError("missing field 'features'")
        raw_features = data["features"]
        if not isinstance(raw_features, list):
            raise ValueError("features: expected an array")
        return cls(
            type=kind,
            name=name,
            crs_type=_require_str(crs, "type"),
            crs_name=_require_str(crs_properties, "name"),
            features=[GeoJsonFeature.from_dict(item, properties_type) for item in raw_features],
        )


@dataclass(frozen=True)
class DepartmentProperties:
    """Attributes of a department boundary feature."""

    nam: str
    fcode: str | None = None
    cod: int | None = None
    na2: str | None = None
    na3: str | None = None
    area_km: float | None = None
    perimetro: float | None = None
    shape_leng: float | None = None
    shape_area: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> DepartmentProperties:
        data = _require_mapping(data, "department properties")
        return cls(
            nam=_require_str(data, "NAM"),
            fcode=_opt_str(data, "FCODE"),
            cod=_opt_int(data, "COD"),
            na2=_opt_str(data, "NA2"),
            na3=_opt_str(data, "NA3"),
            area_km=_opt_float(data, "AREA_KM"),
            perimetro=_opt_float(data, "PERIMETRO"),
            shape_leng=_opt_float(data, "SHAPE_LENG"),
            shape_area=_opt_float(data, "SHAPE_AREA"),
        )


@dataclass(frozen=True)
class BusStopProperties:
    """Attributes of a bus stop feature."""

    fid_l0coor: int | None = None
    ruta: str | None = None
    cod: str | None = None
    coordenada: str | None = None
    latitud: float | None = None
    longitud: float | None = None
    fcode: str | None = None
    na2: str | None = None
    na3: str | None = None
    nam: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> BusStopProperties:
        data = _require_mapping(data, "bus stop properties")
        return cls(
            fid_l0coor=_opt_int(data, "FID_L0Coor"),
            ruta=_opt_str(data, "Ruta"),
            cod=_opt_str(data, "Cod"),
            coordenada=_opt_str(data, "Coordenada"),
            latitud=_opt_float(data, "Latitud"),
            longitud=_opt_float(data, "Longitud"),
            fcode=_opt_str(data, "FCODE"),
            na2=_opt_str(data, "NA2"),
            na3=_opt_str(data, "NA3"),
            nam=_opt_str(data, "NAM"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "FID_L0Coor": self.fid_l0coor,
            "Ruta": self.ruta,
            "Cod": self.cod,
            "Coordenada": self.coordenada,
            "Latitud": self.latitud,
            "Longitud": self.longitud,
            "FCODE": self.fcode,
            "NA2": self.na2,
            "NA3": self.na3,
            "NAM": self.nam,
        }


@dataclass(frozen=True)
class RouteProperties:
    """Attributes of a bus route feature."""

    codigo_de: str | None = None
    nombre_de: str | None = None
    sentido: str | None = None
    tipo: str | None = None
    subtipo: str | None = None
    departamento: str | None = None
    kilometro: str | None = None
    cantidad_d: int | None = None
    shape_leng: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> RouteProperties:
        data = _require_mapping(data, "route properties")
        return cls(
            codigo_de=_opt_str(data, "Código_de"),
            nombre_de=_opt_str(data, "Nombre_de_"),
            sentido=_opt_str(data, "SENTIDO"),
            tipo=_opt_str(data, "TIPO"),
            subtipo=_opt_str(data, "SUBTIPO"),
            departamento=_opt_str(data, "DEPARTAMEN"),
            kilometro=_opt_str(data, "Kilómetro"),
            cantidad_d=_opt_int(data, "CANTIDAD_D"),
            shape_leng=_opt_float(data, "Shape_Leng"),
        )


class TransferType(str, Enum):
    """How two routes connect at a transfer point."""

    DIRECT = "Direct"  # same stop
    NEAR = "Near"  # within about 500 m
    PROXIMATE = "Proximate"  # within about 1 km


@dataclass
class TransferPoint:
    """A place where a rider can change from one route to another."""

    location: tuple[float, float]  # (longitude, latitude)
    bus_stop: BusStopProperties | None
    distance_to_route: float
    transfer_type: TransferType
    from_route: str
    to_route: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "location": [self.location[0], self.location[1]],
            "bus_stop": self.bus_stop.to_dict() if self.bus_stop is not None else None,
            "distance_to_route": self.distance_to_route,
            "transfer_type": self.transfer_type.value,
            "from_route": self.from_route,
            "to_route": self.to_route,
        }

    @classmethod
    def from_dict(cls, data: Any) -> TransferPoint:
        data = _require_mapping(data, "transfer point")
        location = data.get("location")
        if not isinstance(location, (list, tuple)) or len(location) != 2:
            raise ValueError("location: expected a pair of numbers")
        x, y = (_coordinates(value, 0) for value in location)
        raw_stop = data.get("bus_stop")
        distance = _opt_float(data, "distance_to_route")
        if distance is None:
            raise ValueError("missing field 'distance_to_route'")
        try:
            transfer_type = TransferType(_require_str(data, "transfer_type"))
        except ValueError as exc:
            raise ValueError(f"transfer_type: {exc}") from None
        return cls(
            location=(x, y),
            bus_stop=BusStopProperties.from_dict(raw_stop) if raw_stop is not None else None,
            distance_to_route=distance,
            transfer_type=transfer_type,
            from_route=_require_str(data, "from_route"),
            to_route=_require_str(data, "to_route"),
        )


@dataclass
class RouteSegment:
    """One leg of a plan: ride ``route`` up to ``transfer_point``."""

    route: RouteProperties
    transfer_point: TransferPoint
    transfer_type: TransferType
    segment_distance: float


@dataclass
class RoutePlan:
    """An ordered sequence of route segments from origin to destination."""

    routes: list[RouteSegment] = field(default_factory=list)
    total_distance: float = 0.0
    transfers_count: int = 0
    is_interdepartmental: bool = False

    def add_segment(self, segment: RouteSegment) -> None:
        self.total_distance += segment.segment_distance
        self.routes.append(segment)
        self.transfers_count = len(self.routes) - 1


@dataclass
class RouteRequest:
    """Search parameters for one planning request."""

    origin: tuple[float, float]
    destination: tuple[float, float]
    max_route_distance: float
    max_transfer_distance: float
    max_transfers: int