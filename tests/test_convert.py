import json

import msgpack
import pytest

from busplanner.convert import (
    ConversionError,
    FileConfig,
    LimDepartamentales,
    ParadaTransporte,
    Ruta,
    convert_geojson_to_bin,
    dump_bin_as_json,
    load_config,
    main,
    process_file,
    read_bin,
)

SAMPLE = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {
                "fcode": "TEST",
                "cod": 1,
                "na2": "TEST",
                "nam": "TEST",
                "area_km": 100.0,
            },
            "geometry": {"type": "Point", "coordinates": [0.0, 0.0]},
        }
    ],
}


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_lim_departamentales_validation():
    lim = LimDepartamentales(fcode="TEST", cod=1, na2="TEST", nam="TEST", area_km=-1.0)
    with pytest.raises(ConversionError, match="Área debe ser positiva"):
        lim.validate()


def test_lim_zero_area_is_invalid():
    with pytest.raises(ConversionError):
        LimDepartamentales(area_km=0.0).validate()


def test_parada_transporte_validation():
    parada = ParadaTransporte(ruta="TEST", parada_pgo="TEST", latitud=91.0, longitud=0.0)
    with pytest.raises(ConversionError, match="Coordenadas geográficas inválidas"):
        parada.validate()


def test_parada_longitude_out_of_range():
    with pytest.raises(ConversionError):
        ParadaTransporte(latitud=0.0, longitud=-181.0).validate()


def test_parada_partial_coordinates_are_not_checked():
    assert ParadaTransporte(latitud=91.0).validate() is None


def test_ruta_negative_kilometers():
    with pytest.raises(ConversionError, match="Kilómetros deben ser positivos"):
        Ruta(kilometro=-0.5).validate()


def test_conversion(tmp_path):
    source = _write(tmp_path / "temp.json", SAMPLE)
    output = tmp_path / "out.bin"
    convert_geojson_to_bin(source, output, LimDepartamentales)
    assert read_bin(output) == [
        [["TEST", 1, "TEST", "TEST", 100.0], ["Point", [0.0, 0.0]]]
    ]


def test_header_holds_feature_count(tmp_path):
    source = _write(tmp_path / "temp.json", SAMPLE)
    output = tmp_path / "out.bin"
    convert_geojson_to_bin(source, output, LimDepartamentales)
    assert dump_bin_as_json(output) == "1"


def test_output_directory_is_created(tmp_path):
    source = _write(tmp_path / "temp.json", SAMPLE)
    output = tmp_path / "nested" / "deeper" / "out.bin"
    convert_geojson_to_bin(source, output, LimDepartamentales)
    assert output.exists()


def test_missing_geometry_type_becomes_unknown(tmp_path):
    data = {"features": [{"properties": {"ruta": "R1"}, "geometry": {"coordinates": [1, 2]}}]}
    source = _write(tmp_path / "in.json", data)
    output = tmp_path / "out.bin"
    convert_geojson_to_bin(source, output, ParadaTransporte)
    assert read_bin(output) == [[["R1", None, None, None], ["Unknown", [1, 2]]]]


def test_no_features(tmp_path):
    source = _write(tmp_path / "in.json", {"type": "FeatureCollection"})
    with pytest.raises(ConversionError, match="No hay features"):
        convert_geojson_to_bin(source, tmp_path / "out.bin", Ruta)


def test_wrong_property_type(tmp_path):
    data = {"features": [{"properties": {"cod": "x"}, "geometry": {"type": "Point"}}]}
    source = _write(tmp_path / "in.json", data)
    with pytest.raises(ConversionError, match="Error de JSON"):
        convert_geojson_to_bin(source, tmp_path / "out.bin", LimDepartamentales)


def test_null_properties_rejected(tmp_path):
    data = {"features": [{"geometry": {"type": "Point"}}]}
    source = _write(tmp_path / "in.json", data)
    with pytest.raises(ConversionError, match="Error de JSON"):
        convert_geojson_to_bin(source, tmp_path / "out.bin", Ruta)


def test_invalid_feature_fails_conversion(tmp_path):
    data = {"features": [{"properties": {"kilometro": -3}, "geometry": {"type": "LineString"}}]}
    source = _write(tmp_path / "in.json", data)
    with pytest.raises(ConversionError, match="Kilómetros"):
        convert_geojson_to_bin(source, tmp_path / "out.bin", Ruta)


def test_missing_input_file(tmp_path):
    with pytest.raises(ConversionError, match="Error de IO"):
        convert_geojson_to_bin(tmp_path / "absent.json", tmp_path / "out.bin", Ruta)


def test_read_bin_truncated(tmp_path):
    path = tmp_path / "bad.bin"
    path.write_bytes(msgpack.packb(2) + msgpack.packb([[None], ["Point", []]]))
    with pytest.raises(ConversionError, match="feature 1"):
        read_bin(path)


def test_process_file_unknown_type(tmp_path):
    config = FileConfig(str(tmp_path / "in.json"), "Desconocido", str(tmp_path / "out.bin"))
    with pytest.raises(ConversionError, match="Tipo desconocido: Desconocido"):
        process_file(config)


def test_process_file_ruta(tmp_path):
    data = {
        "features": [
            {
                "properties": {"codigo_de": "101", "kilometro": 12},
                "geometry": {"type": "LineString", "coordinates": [[1.0, 2.0], [3.0, 4.0]]},
            }
        ]
    }
    source = _write(tmp_path / "in.json", data)
    output = tmp_path / "out.bin"
    process_file(FileConfig(str(source), "Ruta", str(output)))
    assert read_bin(output) == [
        [["101", None, None, None, 12.0], ["LineString", [[1.0, 2.0], [3.0, 4.0]]]]
    ]


def test_load_config(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[[files]]\ninput_path = "a.json"\ntype_name = "Ruta"\noutput_path = "a.bin"\n',
        encoding="utf-8",
    )
    assert load_config(path) == [FileConfig("a.json", "Ruta", "a.bin")]


def test_load_config_missing_field(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[[files]]\ninput_path = "a.json"\n', encoding="utf-8")
    with pytest.raises(ConversionError, match="type_name"):
        load_config(path)


def test_main_converts_configured_files(tmp_path):
    source = _write(tmp_path / "in.json", SAMPLE)
    output = tmp_path / "out" / "result.bin"
    config = tmp_path / "config.toml"
    config.write_text(
        "[[files]]\n"
        f'input_path = "{source.as_posix()}"\n'
        'type_name = "LimDepartamentales"\n'
        f'output_path = "{output.as_posix()}"\n',
        encoding="utf-8",
    )
    assert main([str(config)]) == 0
    assert len(read_bin(output)) == 1


def test_main_dump(tmp_path, capsys):
    source = _write(tmp_path / "in.json", SAMPLE)
    output = tmp_path / "out.bin"
    convert_geojson_to_bin(source, output, LimDepartamentales)
    assert main(["--dump", str(output)]) == 0
    assert capsys.readouterr().out.strip() == "1"