"""Conversion of GeoJSON feature files into a compact MessagePack stream.

A converted file holds the number of features followed by one entry per
feature: ``[properties, [geometry_type, coordinates]]``, where ``properties``
is an array of the record's fields in declaration order.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import tomllib
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import msgpack

logger = logging.getLogger(__name__)

_U32_MAX = 2**32 - 1
_PROGRESS_EVERY = 1000


class ConversionError(Exception):
    """Raised when a file cannot be converted, validated or read back."""


def _json_error(message: str) -> ConversionError:
    return ConversionError(f"Error de JSON: {message}")


def _validation_error(message: str) -> ConversionError:
    return ConversionError(f"Error de validación: {message}")


def _opt_str(data: dict, key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _json_error(f"field {key!r}: expected a string")
    return value


def _opt_u32(data: dict, key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise _json_error(f"field {key!r}: expected an unsigned integer")
    if not 0 <= value <= _U32_MAX:
        raise _json_error(f"field {key!r}: integer out of range")
    return value


def _opt_f64(data: dict, key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _json_error(f"field {key!r}: expected a number")
    return float(value)


def _require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise _json_error("properties: expected an object")
    return data


class _Properties(Protocol):
    @classmethod
    def from_dict(cls, data: Any) -> _Properties: ...

    def validate(self) -> None: ...

    def to_list(self) -> list: ...


class _Record:
    def to_list(self) -> list:
        return list(dataclasses.astuple(self))


@dataclass
class LimDepartamentales(_Record):
    """Properties of a department boundary."""

    fcode: str | None = None
    cod: int | None = None
    na2: str | None = None
    nam: str | None = None
    area_km: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LimDepartamentales:
        data = _require_object(data)
        return cls(
            fcode=_opt_str(data, "fcode"),
            cod=_opt_u32(data, "cod"),
            na2=_opt_str(data, "na2"),
            nam=_opt_str(data, "nam"),
            area_km=_opt_f64(data, "area_km"),
        )

    def validate(self) -> None:
        if self.area_km is not None and self.area_km <= 0.0:
            raise _validation_error("Área debe ser positiva")


@dataclass
class ParadaTransporte(_Record):
    """Properties of a public transport stop."""

    ruta: str | None = None
    parada_pgo: str | None = None
    latitud: float | None = None
    longitud: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ParadaTransporte:
        data = _require_object(data)
        return cls(
            ruta=_opt_str(data, "ruta"),
            parada_pgo=_opt_str(data, "parada_pgo"),
            latitud=_opt_f64(data, "latitud"),
            longitud=_opt_f64(data, "longitud"),
        )

    def validate(self) -> None:
        if self.latitud is None or self.longitud is None:
            return
        if not (-90.0 <= self.latitud <= 90.0 and -180.0 <= self.longitud <= 180.0):
            raise _validation_error("Coordenadas geográficas inválidas")


@dataclass
class Ruta(_Record):
    """Properties of a bus route."""

    codigo_de: str | None = None
    nombre_de: str | None = None
    sentido: str | None = None
    tipo: str | None = None
    kilometro: float | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Ruta:
        data = _require_object(data)
        return cls(
            codigo_de=_opt_str(data, "codigo_de"),
            nombre_de=_opt_str(data, "nombre_de"),
            sentido=_opt_str(data, "sentido"),
            tipo=_opt_str(data, "tipo"),
            kilometro=_opt_f64(data, "kilometro"),
        )

    def validate(self) -> None:
        if self.kilometro is not None and self.kilometro < 0.0:
            raise _validation_error("Kilómetros deben ser positivos")


PROPERTY_TYPES: dict[str, type] = {
    "LimDepartamentales": LimDepartamentales,
    "ParadaTransporte": ParadaTransporte,
    "Ruta": Ruta,
}


@dataclass(frozen=True)
class FileConfig:
    """One file to convert and the record type of its features."""

    input_path: str
    type_name: str
    output_path: str


def _read_json(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as handle:
            return json.load(handle)
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise _json_error(str(exc)) from exc


def _encode_feature(feature: Any, properties_type: type[_Properties]) -> list:
    feature = feature if isinstance(feature, dict) else {}
    raw_geometry = feature.get("geometry")
    raw_geometry = raw_geometry if isinstance(raw_geometry, dict) else {}
    geometry_type = raw_geometry.get("type")
    if not isinstance(geometry_type, str):
        geometry_type = "Unknown"
    coordinates = raw_geometry.get("coordinates")

    properties = properties_type.from_dict(feature.get("properties"))
    properties.validate()
    return [properties.to_list(), [geometry_type, coordinates]]


def convert_geojson_to_bin(
    input_path: str | Path, output_path: str | Path, properties_type: type[_Properties]
) -> None:
    """Convert a GeoJSON feature collection into the MessagePack stream format."""
    input_path = Path(input_path)
    output_path = Path(output_path)
    logger.info("Iniciando conversión de %s", input_path)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc

    data = _read_json(input_path)
    features = data.get("features") if isinstance(data, dict) else None
    if not isinstance(features, list):
        raise ConversionError("No hay features en el archivo")

    packer = msgpack.Packer()
    try:
        with output_path.open("wb") as out:
            out.write(packer.pack(len(features)))
            for index, feature in enumerate(features, start=1):
                out.write(packer.pack(_encode_feature(feature, properties_type)))
                if index % _PROGRESS_EVERY == 0:
                    logger.info("Procesados %d features", index)
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ConversionError(f"Error de MessagePack: {exc}") from exc

    logger.info("Conversión completada exitosamente: %s", output_path)


def _msgpack_error(what: str, exc: Exception) -> ConversionError:
    return ConversionError(f"Error de MessagePack: {what}: {exc}")


def read_bin(path: str | Path) -> list[list]:
    """Read back the features of a converted file as raw decoded entries."""
    try:
        with Path(path).open("rb") as handle:
            unpacker = msgpack.Unpacker(handle, raw=False)
            try:
                count = unpacker.unpack()
            except (msgpack.OutOfData, msgpack.UnpackException, ValueError) as exc:
                raise _msgpack_error("Error leyendo contador", exc) from exc
            if isinstance(count, bool) or not isinstance(count, int) or not 0 <= count <= _U32_MAX:
                raise ConversionError("Error de MessagePack: Error leyendo contador: invalid count")
            features = []
            for index in range(count):
                try:
                    features.append(unpacker.unpack())
                except (msgpack.OutOfData, msgpack.UnpackException, ValueError) as exc:
                    raise _msgpack_error(f"Error leyendo feature {index}", exc) from exc
            return features
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc


def dump_bin_as_json(path: str | Path) -> str:
    """Pretty-print the first value stored in a MessagePack file as JSON."""
    try:
        with Path(path).open("rb") as handle:
            unpacker = msgpack.Unpacker(handle, raw=False)
            try:
                value = unpacker.unpack()
            except (msgpack.OutOfData, msgpack.UnpackException, ValueError) as exc:
                raise _msgpack_error("Error al leer MessagePack", exc) from exc
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc
    try:
        return json.dumps(value, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ConversionError(f"Error al convertir a JSON: {exc}") from exc


def process_file(config: FileConfig) -> None:
    """Convert one configured file, choosing the record type by name."""
    logger.info("Procesando archivo: %s", config.input_path)
    properties_type = PROPERTY_TYPES.get(config.type_name)
    if properties_type is None:
        logger.error("Tipo desconocido: %s", config.type_name)
        raise _validation_error(f"Tipo desconocido: {config.type_name}")
    convert_geojson_to_bin(config.input_path, config.output_path, properties_type)


def load_config(path: str | Path) -> list[FileConfig]:
    """Read the list of files to convert from a TOML file."""
    try:
        with Path(path).open("rb") as handle:
            data = tomllib.load(handle)
    except OSError as exc:
        raise ConversionError(f"Error de IO: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConversionError(f"Error de configuración: {exc}") from exc

    files = data.get("files")
    if not isinstance(files, list):
        raise ConversionError("Error de configuración: missing field `files`")
    configs = []
    for entry in files:
        if not isinstance(entry, dict):
            raise ConversionError("Error de configuración: expected a table")
        values = {}
        for name in ("input_path", "type_name", "output_path"):
            value = entry.get(name)
            if not isinstance(value, str):
                raise ConversionError(f"Error de configuración: missing field `{name}`")
            values[name] = value
        configs.append(FileConfig(**values))
    return configs


def _run(config: FileConfig) -> ConversionError | None:
    try:
        process_file(config)
    except ConversionError as exc:
        return exc
    return None


def main(argv: list[str] | None = None) -> int:
    """Convert every file listed in the configuration, or dump a converted file."""
    parser = argparse.ArgumentParser(description="Convert GeoJSON files to MessagePack.")
    parser.add_argument("config", nargs="?", default="config.toml", help="TOML file list")
    parser.add_argument("--dump", metavar="PATH", help="print a converted file's header as JSON")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    if args.dump is not None:
        try:
            print(dump_bin_as_json(args.dump))
        except ConversionError as exc:
            logger.error("%s", exc)
            return 1
        return 0

    try:
        configs = load_config(args.config)
    except ConversionError as exc:
        logger.error("Error al cargar la configuración: %s", exc)
        return 0

    with ThreadPoolExecutor() as executor:
        results = list(executor.map(_run, configs))

    successes = errors = 0
    for config, error in zip(configs, results):
        if error is None:
            successes += 1
            logger.info("Archivo %s procesado exitosamente", config.input_path)
        else:
            errors += 1
            logger.error("Error al procesar %s: %s", config.input_path, error)

    logger.info("Proceso completado. Éxitos: %d, Errores: %d", successes, errors)
    return 0