"""
Unit tests for the District Catalog Loader.

Tests:
1. Code tagging rules (file name fallback, source code wins)
2. FeatureCollection / Feature / bare geometry normalization
3. Missing and unparseable resources are skipped silently
4. Output order = resource order, then contained-feature order
5. HTTP resource roots via requests

Run with: python -m pytest _tests/test_district_loader.py -v
"""

import pytest
import requests
from shapely.geometry import box, mapping

from postcode_grid import district_loader
from postcode_grid.district_loader import (
    DistrictLoader,
    code_from_resource_name,
    normalize_resource,
)

SQUARE = mapping(box(-3.0, 53.0, -2.9, 53.1))


class TestNormalizeResource:
    """Tests for per-resource code tagging."""

    def test_code_from_resource_name(self):
        assert code_from_resource_name("l1.geojson") == "L1"
        assert code_from_resource_name("CH41.GEOJSON") == "CH41"

    def test_feature_collection_fallback_and_own_code(self):
        """Features without a code get the file code; own codes win."""
        fc = {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"name": "a"}, "geometry": SQUARE},
                {"type": "Feature", "properties": {"code": "L1A"}, "geometry": SQUARE},
                {"type": "Feature", "properties": None, "geometry": SQUARE},
            ],
        }
        features = normalize_resource("L1.geojson", fc)
        assert [f["properties"]["code"] for f in features] == ["L1", "L1A", "L1"]
        assert features[0]["properties"]["name"] == "a"

    def test_empty_code_falls_back(self):
        feature = {"type": "Feature", "properties": {"code": ""}, "geometry": SQUARE}
        assert normalize_resource("L2.geojson", feature)[0]["properties"]["code"] == "L2"

    def test_bare_geometry_is_wrapped(self):
        features = normalize_resource("ch1.geojson", SQUARE)
        assert features == [
            {"type": "Feature", "properties": {"code": "CH1"}, "geometry": SQUARE}
        ]

    def test_untyped_document_is_ignored(self):
        assert normalize_resource("L3.geojson", {"foo": 1}) == []
        assert normalize_resource("L3.geojson", [1, 2]) == []

    def test_source_feature_not_mutated(self):
        feature = {"type": "Feature", "properties": {}, "geometry": SQUARE}
        normalize_resource("L4.geojson", feature)
        assert feature["properties"] == {}


class TestDistrictLoaderLocal:
    """Loading from a local directory."""

    def test_loads_all_resources(self, resource_dir, resource_names):
        loader = DistrictLoader(str(resource_dir), resource_names)
        assert loader.get_codes() == ["L1", "WEST", "EAST", "NORTH", "SOUTH", "FAR"]
        assert loader.get_districts_gdf().crs.to_epsg() == 4326

    def test_missing_and_broken_resources_skipped(self, tmp_path, write_json):
        root = tmp_path / "d"
        root.mkdir()
        write_json(root / "L1.geojson", {"type": "Feature", "properties": {}, "geometry": SQUARE})
        (root / "L2.geojson").write_text("not json", encoding="utf-8")
        write_json(root / "CH1.geojson", SQUARE)

        loader = DistrictLoader(
            str(root), ["L1.geojson", "L2.geojson", "L3.geojson", "CH1.geojson"]
        )

        assert loader.get_codes() == ["L1", "CH1"]
        info = loader.get_data_info()
        assert info["resources_requested"] == 4
        assert info["resources_loaded"] == 2
        assert info["resources_failed"] == ["L2.geojson", "L3.geojson"]

    def test_order_is_resource_then_feature(self, tmp_path, write_json):
        root = tmp_path / "d"
        root.mkdir()
        write_json(
            root / "B.geojson",
            {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "properties": {"code": "B2"}, "geometry": SQUARE},
                    {"type": "Feature", "properties": {"code": "B1"}, "geometry": SQUARE},
                ],
            },
        )
        write_json(root / "A.geojson", SQUARE)

        loader = DistrictLoader(str(root), ["B.geojson", "A.geojson"], max_workers=4)

        assert loader.get_codes() == ["B2", "B1", "A"]
        resources = [
            f["properties"]["resource"]
            for f in loader.get_districts_geojson()["features"]
        ]
        assert resources == ["B.geojson", "B.geojson", "A.geojson"]

    def test_duplicate_codes_are_kept(self, tmp_path, write_json):
        """Duplicates across resources are not an error; both stay in the catalog."""
        root = tmp_path / "d"
        root.mkdir()
        write_json(root / "L1.geojson", SQUARE)
        write_json(root / "X.geojson", {"type": "Feature", "properties": {"code": "L1"}, "geometry": SQUARE})

        loader = DistrictLoader(str(root), ["L1.geojson", "X.geojson"])
        assert loader.get_codes() == ["L1", "L1"]

    def test_feature_without_geometry_skipped(self, tmp_path, write_json):
        root = tmp_path / "d"
        root.mkdir()
        write_json(root / "L1.geojson", {"type": "Feature", "properties": {}, "geometry": None})

        loader = DistrictLoader(str(root), ["L1.geojson"])
        assert loader.get_codes() == []
        assert loader.get_districts_geojson() == {"type": "FeatureCollection", "features": []}

    def test_empty_catalog(self, tmp_path):
        loader = DistrictLoader(str(tmp_path / "missing"), ["L1.geojson"])
        assert len(loader.get_districts_gdf()) == 0
        assert loader.get_data_info()["district_count"] == 0


class _FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class TestDistrictLoaderRemote:
    """Loading from an http(s) base URL."""

    def test_http_root(self, monkeypatch):
        requested = []

        def fake_get(url, timeout):
            requested.append(url)
            if url.endswith("/L1.geojson"):
                return _FakeResponse(200, SQUARE)
            if url.endswith("/L2.geojson"):
                return _FakeResponse(404)
            raise requests.ConnectionError("refused")

        monkeypatch.setattr(district_loader.requests, "get", fake_get)

        loader = DistrictLoader(
            "https://tiles.example.com/districts/",
            ["L1.geojson", "L2.geojson", "L3.geojson"],
        )

        assert loader.is_remote
        assert loader.get_codes() == ["L1"]
        assert sorted(requested) == [
            "https://tiles.example.com/districts/L1.geojson",
            "https://tiles.example.com/districts/L2.geojson",
            "https://tiles.example.com/districts/L3.geojson",
        ]
