import io
import sys
import zipfile
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

KML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2"><Document>{placemarks}</Document></kml>"""


def placemark_line(name: str, coords, description: str = "") -> str:
    text = " ".join(f"{lng},{lat},0" for lat, lng in coords)
    return (
        f"<Placemark><name>{name}</name><description>{description}</description>"
        f"<LineString><coordinates>{text}</coordinates></LineString></Placemark>"
    )


def placemark_point(name: str, lat: float, lng: float) -> str:
    return (
        f"<Placemark><name>{name}</name>"
        f"<Point><coordinates>{lng},{lat},0</coordinates></Point></Placemark>"
    )


def build_kmz(*placemarks: str, kml_name: str = "doc.kml") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(kml_name, KML_TEMPLATE.format(placemarks="".join(placemarks)))
    return buffer.getvalue()


@pytest.fixture
def kmz_factory():
    return build_kmz
