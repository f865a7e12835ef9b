import io
import zipfile

import pytest

from blocos import kmz
from blocos.models import Coordinate
from conftest import build_kmz, placemark_line, placemark_point


def test_parse_coordinates_swaps_to_lat_lng_and_skips_garbage():
    coords = kmz.parse_coordinates("-43.1,-22.9,0 junk -43.2,-22.8")
    assert coords == [Coordinate(-22.9, -43.1), Coordinate(-22.8, -43.2)]


def test_ingest_groups_by_name_and_keeps_longest_line():
    data = build_kmz(
        placemark_line("Bola Preta", [(-22.90, -43.17), (-22.91, -43.17)]),
        placemark_line("Bola Preta", [(-22.90, -43.17), (-22.95, -43.17)], "Desfile 09:00 13:00"),
        placemark_point("Bola Preta", -22.905, -43.176),
    )
    result = kmz.ingest(data)
    assert result.total_groups == 1
    assert result.usable_groups == 1
    route = result.routes["BOLA PRETA"]
    assert route.name == "Bola Preta"
    assert route.points[-1] == Coordinate(-22.95, -43.17)
    assert route.concentration_point == Coordinate(-22.905, -43.176)
    assert route.start_time == "09:00"
    assert route.end_time == "13:00"
    assert route.length_m > 5000


def test_ingest_drops_groups_without_a_two_point_line():
    data = build_kmz(
        placemark_line("Curto", [(-22.90, -43.17)]),
        placemark_point("So Ponto", -22.9, -43.1),
        placemark_line("Valido", [(-22.90, -43.17), (-22.91, -43.18)]),
    )
    result = kmz.ingest(data)
    assert result.total_groups == 3
    assert result.usable_groups == 1
    assert list(result.routes) == ["VALIDO"]


def test_multi_geometry_is_flattened():
    kml = (
        '<kml xmlns="http://www.opengis.net/kml/2.2"><Document><Placemark><name>Multi</name>'
        "<MultiGeometry>"
        "<LineString><coordinates>-43.1,-22.9 -43.1,-22.91</coordinates></LineString>"
        "<LineString><coordinates>-43.1,-22.92 -43.1,-22.93</coordinates></LineString>"
        "</MultiGeometry></Placemark></Document></kml>"
    )
    features = kmz.parse_features(kml)
    assert len(features) == 1
    assert features[0].kind == kmz.MULTI_LINE
    assert len(features[0].coordinates) == 4


def test_duplicate_normalized_keys_keep_longer_route():
    data = build_kmz(
        placemark_line("Boi Tolo", [(-22.90, -43.17), (-22.91, -43.17)]),
        placemark_line("BOI-TOLO", [(-22.90, -43.17), (-22.99, -43.17)]),
    )
    result = kmz.ingest(data)
    assert result.usable_groups == 2
    assert result.routes["BOI TOLO"].name == "BOI-TOLO"


def test_extract_kml_skips_macosx_entries():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("__MACOSX/._doc.kml", b"resource fork")
        archive.writestr("routes/doc.kml", b"<kml/>")
    assert kmz.extract_kml(buffer.getvalue()) == b"<kml/>"


def test_extract_kml_without_document_raises():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("readme.txt", b"nothing")
    with pytest.raises(kmz.GeometryError):
        kmz.extract_kml(buffer.getvalue())


def test_ingest_bad_archive_yields_empty_result():
    result = kmz.ingest(b"not a zip file")
    assert result.routes == {}
    assert result.total_groups == 0


def test_ingest_malformed_kml_yields_empty_result():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("doc.kml", b"<kml><Document>")
    assert kmz.ingest(buffer.getvalue()).routes == {}


def test_ingest_corrupt_deflate_stream_yields_empty_result():
    placemarks = [
        placemark_line(f"Bloco {index}", [(-22.90, -43.17 - index * 0.001), (-22.91, -43.18)])
        for index in range(40)
    ]
    kml = build_kmz(*placemarks)
    with zipfile.ZipFile(io.BytesIO(kml)) as source:
        document = source.read("doc.kml")
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("doc.kml", document)
    data = bytearray(buffer.getvalue())
    # local header is 30 bytes plus the file name; flip bytes inside the payload
    start = 30 + len("doc.kml") + 4
    for offset in range(start, start + 35):
        data[offset] ^= 0xFF

    with pytest.raises(kmz.GeometryError):
        kmz.extract_kml(bytes(data))
    result = kmz.ingest(bytes(data))
    assert result.routes == {}
    assert result.total_groups == 0


def test_ingest_ignores_single_coordinate_line_when_picking_longest():
    data = build_kmz(
        placemark_line("Parado", [(-22.90, -43.17)]),
        placemark_line("Parado", [(-22.90, -43.17), (-22.90, -43.17)]),
    )
    result = kmz.ingest(data)
    assert result.usable_groups == 1
    route = result.routes["PARADO"]
    assert len(route.points) == 2
    assert route.length_m == 0
