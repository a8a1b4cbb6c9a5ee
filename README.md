# busplanner

Plans bus journeys across El Salvador from GeoJSON transit data. It finds
the routes that pass near an origin and a destination, searches for
transfers between them (same stop, a nearby stop, or a nearby point on the
line), and ranks the resulting plans by number of transfers, distance and
transfer quality. Plans are served over a small HTTP API. A separate
command converts GeoJSON feature files into a compact MessagePack stream.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Data

The planner reads these files from a data directory (`./data` by default):

- `LIM DEPARTAMENTALES.geojson` – department boundaries (polygons)
- `Paradas Transporte Colectivo AMSS.geojson` – bus stops
- `Rutas Interdepartamentales.geojson`
- `Rutas Interurbanas.geojson`
- `Rutas Urbanas.geojson`

Each must be a feature collection with `type`, `name`, `crs` and
`features`. A missing or malformed file raises
`busplanner.data_loader.LoaderError`.

Transfer points between routes are computed once and stored as JSON in
`route_intersections.cache` inside a cache directory (`./cache` by default,
created when missing). Later starts reuse it; if it cannot be parsed it is
computed again and rewritten.

## Running the server

```
busplanner-server
```

The server loads the data from `./data`, uses `./cache` for the transfer
cache, and listens on `0.0.0.0` at the port given by the `PORT`
environment variable (default `8087`). Variables may also be placed in a
`.env` file. If the data cannot be loaded the command logs the error and
exits with status 1. Every request is logged as
`METHOD URI STATUS DURATIONms`.

### Planning a route

```
GET /api/plan_routes?start_lat=13.6929&start_lng=-89.2182&end_lat=13.7084&end_lng=-89.1821
```

All four parameters are required numbers; a missing or non-numeric one
gives `400` with a plain-text message. Coordinates outside El Salvador
(latitude 13.0–14.5, longitude -90.2 to -87.5) give `400`. If the planner
has not been initialised, or planning fails (a point outside every
department, no routes near a point, no connecting path), the answer is
`500` with the error in `message`. A successful answer looks like:

```json
{
  "success": true,
  "message": null,
  "routes": [
    {
      "segments": [
        {
          "route_code": "...",
          "route_name": "...",
          "transfer_type": "Directo",
          "transfer_point": {
            "latitude": 13.70,
            "longitude": -89.20,
            "stop_name": null,
            "distance": 0.0
          },
          "segment_distance": 0.0
        }
      ],
      "total_distance": 0.0,
      "transfers_count": 0,
      "is_interdepartmental": false,
      "estimated_time": 0
    }
  ]
}
```

Transfer types are `Directo` (same stop), `Cercano` (stop within about
500 m) and `Próximo` (route points within about 1 km). At most three plans
are returned. `estimated_time` is in minutes, rounded up: the distance at
30 units per hour, times 1.2 for interdepartmental plans, plus five minutes
per transfer.

## Using the library

```python
from busplanner.api import create_app, initialize_planner

initialize_planner("./data", "./cache")
app = create_app()
```

`busplanner.api.reset_planner()` removes the shared planner again.

The pieces can also be used on their own:

- `busplanner.data_loader.DataLoader` loads the collections, with helpers
  `find_routes_by_department`, `find_stops_by_route` and
  `find_interdepartmental_routes`.
- `busplanner.validation.GeoValidator` locates `(longitude, latitude)`
  points in departments.
- `busplanner.search.SpatialSearch` finds transfer paths between routes.
- `busplanner.planner.RoutePlanner` ties them together with a
  `PlanningConfig` and raises `PlanningError` when no plan can be made.
- `busplanner.astar.astar(graph, start, target, heuristic)` is a general
  A* shortest-path search over a mapping of nodes to
  `{neighbour: weight}`; it returns `(weight, path)` or `None`.

## Converting GeoJSON to MessagePack

```
busplanner-convert config.toml
```

The configuration (default `config.toml`) lists the files to convert:

```toml
[[files]]
input_path = "data/departamentos.geojson"
type_name = "LimDepartamentales"
output_path = "data/departamentos.bin"
```

`type_name` is one of `LimDepartamentales`, `ParadaTransporte` or `Ruta`;
the properties are read from lower-case keys (`fcode`, `cod`, `na2`,
`nam`, `area_km`; `ruta`, `parada_pgo`, `latitud`, `longitud`;
`codigo_de`, `nombre_de`, `sentido`, `tipo`, `kilometro`). Each feature's
properties are validated (positive area, latitude within ±90 and longitude
within ±180, non-negative kilometres) before being written. Files are
converted in parallel and the number of successes and failures is logged.

The output holds the feature count followed by one entry per feature:
`[properties, [geometry_type, coordinates]]`, with the properties as an
array in field order. A written file can be read back with
`busplanner.convert.read_bin`. To print the first value of a file (its
feature count) as JSON:

```
busplanner-convert --dump data/departamentos.bin
```

## What it does not do

The package has no database access: it offers no place search by name,
no lookup of nearby places or routes, routes by number, or street-graph
routing against a database. The HTTP API has only the `plan_routes`
endpoint, and there is no interactive console.