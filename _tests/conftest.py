"""
Shared fixtures for postcode_grid tests.

District boxes are drawn in WGS84 around Birkenhead/Liverpool so the British
National Grid projection used for geometry stays accurate.

Run with: python -m pytest _tests -v
"""

import json
from pathlib import Path
from typing import Any, Dict, List

import geopandas as gpd
import pytest
from shapely.geometry import box, mapping

from postcode_grid.geometry_service import GeometryService
from postcode_grid.merchant_store import KeyValueStore, MerchantStore

# ============================================================================
# DISTRICT GEOMETRY (lon/lat boxes)
# ============================================================================

CENTER = (53.40, -3.02)  # (lat, lon)

# Large district containing any disk up to ~10 miles around CENTER
BIG_L1 = box(-3.30, 53.20, -2.70, 53.60)

# Two thin districts meeting just at CENTER's longitude (tiny overlap)
WEST = box(-3.10, 53.39, -3.019, 53.41)
EAST = box(-3.021, 53.39, -2.94, 53.41)

# Disjoint bands north and south of CENTER, both cut by a 2 mile disk
NORTH = box(-3.05, 53.415, -2.99, 53.45)
SOUTH = box(-3.05, 53.35, -2.99, 53.385)

# Well outside any test radius
FAR = box(-2.50, 53.10, -2.40, 53.15)

DISTRICTS = {
    "L1": BIG_L1,
    "WEST": WEST,
    "EAST": EAST,
    "NORTH": NORTH,
    "SOUTH": SOUTH,
    "FAR": FAR,
}

STORAGE_KEY = "deliveryConfigV2"


def merchant_records() -> List[Dict[str, Any]]:
    """Default merchant records used by store/controller tests."""
    return [
        {
            "id": "m1",
            "name": "Merchant One",
            "center": [CENTER[0], CENTER[1]],
            "radiusMiles": 2.0,
            "codes": [],
        },
        {
            "id": "m2",
            "name": "Merchant Two",
            "center": [CENTER[0], CENTER[1]],
            "radiusMiles": 2.0,
            "codes": [],
        },
    ]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def geometry_service():
    """Geometry service in British National Grid."""
    return GeometryService()


@pytest.fixture
def districts_gdf():
    """District catalog GeoDataFrame in WGS84."""
    return gpd.GeoDataFrame(
        {"code": list(DISTRICTS)},
        geometry=list(DISTRICTS.values()),
        crs="EPSG:4326",
    )


@pytest.fixture
def resource_dir(tmp_path):
    """Directory with one GeoJSON Feature file per test district."""
    root = tmp_path / "Districts"
    root.mkdir()
    for code, geom in DISTRICTS.items():
        feature = {"type": "Feature", "properties": {}, "geometry": mapping(geom)}
        (root / f"{code}.geojson").write_text(json.dumps(feature), encoding="utf-8")
    return root


@pytest.fixture
def resource_names():
    return [f"{code}.geojson" for code in DISTRICTS]


@pytest.fixture
def kv_store(tmp_path):
    """Key-value storage file in a temp directory."""
    return KeyValueStore(tmp_path / "storage" / "storage.json")


@pytest.fixture
def merchant_store(kv_store):
    """Store backed by an empty key-value file."""
    return MerchantStore(kv_store, STORAGE_KEY, merchant_records())


@pytest.fixture
def write_json():
    """Write a JSON document to a path and return the path."""

    def _write(path: Path, document: Any) -> Path:
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return _write
