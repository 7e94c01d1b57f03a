"""
Tests for the Coverage Mask Computer.

Covers the geometric properties of the mask:
- no codes -> no mask
- mask grows monotonically with radius
- district containing the disk -> mask equals the disk
- adjacent districts -> one connected polygon
- failed clips are dropped like empty ones

Run with: python -m pytest _tests/test_coverage_mask.py -v
"""

import geopandas as gpd
import pytest
from shapely.errors import GEOSException
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from conftest import CENTER
from postcode_grid.coverage_mask import EMPTY_MASK, CoverageMask, CoverageMaskComputer
from postcode_grid.merchant_store import Merchant


def make_merchant(codes, radius=2.0, center=CENTER, merchant_id="m1"):
    return Merchant(
        id=merchant_id,
        name=merchant_id,
        center=center,
        radius_miles=radius,
        codes=tuple(codes),
    )


@pytest.fixture
def computer(districts_gdf, geometry_service):
    return CoverageMaskComputer(districts_gdf, geometry_service)


class TestCoverageMaskBasics:
    """Absent masks."""

    def test_no_codes_no_mask(self, computer):
        mask = computer.compute(make_merchant([]))
        assert mask is EMPTY_MASK
        assert mask.is_empty
        assert computer.mask_to_geojson(mask) is None

    def test_unknown_codes_no_mask(self, computer):
        assert computer.compute(make_merchant(["NOPE"])).is_empty

    def test_zero_radius_no_mask(self, computer):
        assert computer.compute(make_merchant(["L1"], radius=0)).is_empty

    def test_far_district_no_mask(self, computer):
        """Selected but outside the disk -> nothing deliverable."""
        assert computer.compute(make_merchant(["FAR"])).is_empty

    def test_failed_intersections_treated_as_empty(self, computer, monkeypatch):
        def broken(self, other, *args, **kwargs):
            raise GEOSException("TopologyException")

        monkeypatch.setattr(BaseGeometry, "intersection", broken)
        assert computer.compute(make_merchant(["L1", "WEST"])).is_empty


class TestCoverageMaskScenarios:
    """Worked scenarios around (53.40, -3.02)."""

    def test_containing_district_equals_disk(self, computer, geometry_service):
        """L1 contains the 2 mile disk -> mask is the disk."""
        mask = computer.compute(make_merchant(["L1"], radius=2.0))
        disk = geometry_service.buffer(CENTER, 2.0)

        assert mask.geometry is not None
        assert mask.geometry.symmetric_difference(disk).area < disk.area * 1e-6
        assert mask.area_m2 == pytest.approx(disk.area, rel=1e-6)

    def test_adjacent_districts_single_polygon(self, computer, geometry_service):
        """WEST + EAST both partially overlap the disk -> one connected polygon."""
        mask = computer.compute(make_merchant(["WEST", "EAST"]))
        disk = geometry_service.buffer(CENTER, 2.0)

        assert mask.geometry.geom_type == "Polygon"
        assert mask.area_m2 < disk.area

        west_only = computer.compute(make_merchant(["WEST"]))
        east_only = computer.compute(make_merchant(["EAST"]))
        expected = west_only.geometry.union(east_only.geometry)
        assert mask.geometry.symmetric_difference(expected).area < expected.area * 1e-6
        assert mask.area_m2 > max(west_only.area_m2, east_only.area_m2)

    def test_shared_edge_districts_single_polygon(self, geometry_service):
        """L1 and L2 meeting along the center's meridian -> one connected polygon."""
        shared_edge = gpd.GeoDataFrame(
            {"code": ["L1", "L2"]},
            geometry=[
                box(-3.10, 53.39, -3.02, 53.41),
                box(-3.02, 53.39, -2.94, 53.41),
            ],
            crs="EPSG:4326",
        )
        computer = CoverageMaskComputer(shared_edge, geometry_service)

        mask = computer.compute(make_merchant(["L1", "L2"]))
        west = computer.compute(make_merchant(["L1"]))
        east = computer.compute(make_merchant(["L2"]))

        assert mask.geometry.geom_type == "Polygon"
        assert mask.area_m2 == pytest.approx(west.area_m2 + east.area_m2, rel=1e-6)

    def test_disjoint_districts_multipolygon(self, computer):
        """Disjoint clips stay as one MultiPolygon mask (not an error)."""
        mask = computer.compute(make_merchant(["NORTH", "SOUTH"]))
        assert mask.geometry.geom_type == "MultiPolygon"
        geojson = computer.mask_to_geojson(mask)
        assert geojson["type"] == "Feature"
        assert geojson["geometry"]["type"] == "MultiPolygon"

    @pytest.mark.parametrize("r1,r2", [(0.5, 1.0), (1.0, 2.0), (2.0, 3.5)])
    def test_monotonic_in_radius(self, computer, r1, r2):
        small = computer.compute(make_merchant(["WEST", "EAST", "NORTH"], radius=r1))
        large = computer.compute(make_merchant(["WEST", "EAST", "NORTH"], radius=r2))
        assert small.geometry.difference(large.geometry).area < small.area_m2 * 1e-6
        assert small.area_m2 <= large.area_m2

    def test_code_order_irrelevant(self, computer):
        a = computer.compute(make_merchant(["WEST", "EAST"]))
        b = computer.compute(make_merchant(["EAST", "WEST"]))
        assert a.area_m2 == pytest.approx(b.area_m2)


class TestCoverageMaskOutput:
    """GeoJSON output and fallback presentation."""

    def test_feature_in_wgs84(self, computer):
        geojson = computer.mask_to_geojson(computer.compute(make_merchant(["L1"])))
        lon, lat = geojson["geometry"]["coordinates"][0][0]
        assert -3.1 < lon < -2.9
        assert 53.3 < lat < 53.5
        assert geojson["properties"]["area_m2"] > 0

    def test_collection_fallback(self, computer):
        """A mask with pieces but no unioned geometry is a FeatureCollection."""
        pieces = computer.compute(make_merchant(["NORTH", "SOUTH"])).pieces
        fallback = CoverageMask(geometry=None, pieces=pieces)

        assert fallback.is_collection
        geojson = computer.mask_to_geojson(fallback)
        assert geojson["type"] == "FeatureCollection"
        assert len(geojson["features"]) == 2

    def test_union_failure_falls_back_to_pieces(self, computer, monkeypatch):
        monkeypatch.setattr(computer.geometry_service, "union", lambda geoms: None)
        mask = computer.compute(make_merchant(["NORTH", "SOUTH"]))
        assert mask.is_collection
        assert len(mask.pieces) == 2

    def test_radius_buffer_geojson(self, computer):
        geojson = computer.radius_buffer_geojson(make_merchant([], radius=1.5))
        assert geojson["properties"]["radius_m"] == pytest.approx(2414.02, abs=0.01)
        assert computer.radius_buffer_geojson(make_merchant([], radius=0)) is None


class TestCoverageMaskCache:
    """compute_cached recomputes only when inputs change."""

    def test_cache_hit_and_invalidation(self, computer, monkeypatch):
        calls = []
        original = computer.compute

        def counting(merchant):
            calls.append(merchant.id)
            return original(merchant)

        monkeypatch.setattr(computer, "compute", counting)

        m = make_merchant(["WEST"])
        first = computer.compute_cached(m)
        assert computer.compute_cached(m) is first
        assert len(calls) == 1

        computer.compute_cached(make_merchant(["WEST"], radius=3.0))
        assert len(calls) == 2

        computer.clear_cache()
        computer.compute_cached(make_merchant(["WEST"], radius=3.0))
        assert len(calls) == 3
