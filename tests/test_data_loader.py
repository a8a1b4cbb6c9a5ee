import json

import pytest

from busplanner.data_loader import (
    BUS_STOPS_FILE,
    DEPARTMENTS_FILE,
    ROUTE_FILES,
    DataLoader,
    LoaderError,
)

CRS = {"type": "name", "properties": {"name": "urn:ogc:def:crs:OGC:1.3:CRS84"}}


def _collection(name, features):
    return {"type": "FeatureCollection", "name": name, "crs": CRS, "features": features}


def _feature(properties, geometry):
    return {"type": "Feature", "properties": properties, "geometry": geometry}


def _line(*points):
    return {"type": "LineString", "coordinates": [list(p) for p in points]}


def _write(path, data):
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path):
    square = {
        "type": "Polygon",
        "coordinates": [[[-90.0, 13.0], [-88.0, 13.0], [-88.0, 14.0], [-90.0, 14.0], [-90.0, 13.0]]],
    }
    _write(tmp_path / DEPARTMENTS_FILE, _collection("deps", [_feature({"NAM": "San Salvador"}, square)]))
    stops = [
        _feature({"Ruta": "R-1", "Latitud": 13.7, "Longitud": -89.2}, {"type": "Point", "coordinates": [-89.2, 13.7]}),
        _feature({"Ruta": "R-2", "Latitud": 13.8, "Longitud": -89.1}, {"type": "Point", "coordinates": [-89.1, 13.8]}),
        _feature({"Ruta": "R-1", "Latitud": 13.75, "Longitud": -89.15}, {"type": "Point", "coordinates": [-89.15, 13.75]}),
    ]
    _write(tmp_path / BUS_STOPS_FILE, _collection("stops", stops))
    _write(
        tmp_path / ROUTE_FILES[0],
        _collection(
            "inter",
            [_feature({"Código_de": "R-9", "SUBTIPO": "INTERDEPARTAMENTAL", "DEPARTAMEN": "LA LIBERTAD"},
                      _line((-89.3, 13.6), (-89.2, 13.7)))],
        ),
    )
    _write(
        tmp_path / ROUTE_FILES[1],
        _collection("interurb", [_feature({"Código_de": "R-2", "DEPARTAMEN": "SAN SALVADOR"},
                                          _line((-89.1, 13.8), (-89.0, 13.9)))]),
    )
    _write(
        tmp_path / ROUTE_FILES[2],
        _collection("urb", [_feature({"Código_de": "R-1", "DEPARTAMEN": "SAN SALVADOR"},
                                     _line((-89.2, 13.7), (-89.15, 13.75)))]),
    )
    return tmp_path


def test_new_loader_is_empty(tmp_path):
    loader = DataLoader(tmp_path)
    assert loader.departments.features == []
    assert loader.bus_stops.features == []
    assert loader.routes.features == []


def test_load_all_reads_every_file(data_dir):
    loader = DataLoader(data_dir)
    loader.load_all()
    assert [f.properties.nam for f in loader.departments.features] == ["San Salvador"]
    assert len(loader.bus_stops.features) == 3
    codes = [f.properties.codigo_de for f in loader.routes.features]
    assert codes == ["R-9", "R-2", "R-1"]


def test_find_routes_by_department(data_dir):
    loader = DataLoader(data_dir)
    loader.load_all()
    found = loader.find_routes_by_department("SAN SALVADOR")
    assert sorted(f.properties.codigo_de for f in found) == ["R-1", "R-2"]
    assert loader.find_routes_by_department("NOWHERE") == []


def test_find_stops_by_route(data_dir):
    loader = DataLoader(data_dir)
    loader.load_all()
    stops = loader.find_stops_by_route("R-1")
    assert len(stops) == 2
    assert all(stop.ruta == "R-1" for stop in stops)


def test_find_interdepartmental_routes(data_dir):
    loader = DataLoader(data_dir)
    loader.load_all()
    routes = loader.find_interdepartmental_routes()
    assert [r.codigo_de for r in routes] == ["R-9"]


def test_missing_file_raises(data_dir):
    (data_dir / ROUTE_FILES[2]).unlink()
    with pytest.raises(LoaderError):
        DataLoader(data_dir).load_all()


def test_invalid_json_raises(data_dir):
    (data_dir / DEPARTMENTS_FILE).write_text("{not json", encoding="utf-8")
    with pytest.raises(LoaderError, match="JSON parsing error"):
        DataLoader(data_dir).load_all()


def test_structure_without_type_raises(data_dir):
    _write(data_dir / DEPARTMENTS_FILE, {"features": []})
    with pytest.raises(LoaderError, match="Invalid GeoJSON structure"):
        DataLoader(data_dir).load_all()


def test_non_object_raises(data_dir):
    _write(data_dir / BUS_STOPS_FILE, [1, 2, 3])
    with pytest.raises(LoaderError, match="Invalid GeoJSON structure"):
        DataLoader(data_dir).load_all()


def test_department_without_name_raises(data_dir):
    bad = _collection("deps", [_feature({"COD": 1}, {"type": "Point", "coordinates": [0, 0]})])
    _write(data_dir / DEPARTMENTS_FILE, bad)
    with pytest.raises(LoaderError):
        DataLoader(data_dir).load_all()