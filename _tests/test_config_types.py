#!/usr/bin/env python3
"""
Configuration Type Tests

Tests that the typed config dataclasses:
1. Fill missing sections with defaults
2. Clamp and snap radius slider values
3. Hand out independent copies of the default merchants
"""

import pytest

from postcode_grid.config import CONFIG_DATA, DISTRICT_FILES
from postcode_grid.config_types import (
    CONFIG,
    PolygonStyleConfig,
    PostcodeGridConfig,
    RadiusConfig,
    StorageConfig,
    get_frontend_config,
)


# ============================================================================
# RADIUS
# ============================================================================


class TestRadiusConfig:
    """Tests for RadiusConfig.normalize()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (-3.0, 0.0),
            (0.0, 0.0),
            (0.2, 0.0),
            (0.3, 0.5),
            (7.7, 7.5),
            (14.9, 15.0),
            (99.0, 15.0),
        ],
    )
    def test_normalize(self, value, expected):
        assert RadiusConfig().normalize(value) == expected

    def test_custom_step(self):
        radius = RadiusConfig.from_dict({"min_miles": 1, "max_miles": 3, "step_miles": 0.25})
        assert radius.normalize(1.3) == 1.25
        assert radius.to_dict() == {"min": 1.0, "max": 3.0, "step": 0.25}


# ============================================================================
# MAIN CONFIG
# ============================================================================


class TestPostcodeGridConfig:
    """Tests for the top-level config."""

    def test_defaults_from_empty_dict(self):
        config = PostcodeGridConfig.defaults()
        assert config.storage.key == "deliveryConfigV2"
        assert config.geometry.metric_crs == "EPSG:27700"
        assert config.districts.files == ()
        assert config.default_merchants == ()

    def test_module_config_matches_data(self):
        assert CONFIG.districts.files == tuple(DISTRICT_FILES)
        assert [m["id"] for m in CONFIG.default_merchants] == [
            m["id"] for m in CONFIG_DATA["default_merchants"]
        ]

    def test_default_merchant_dicts_are_copies(self):
        first = CONFIG.default_merchant_dicts()
        first[0]["codes"].append("L1")
        first[0]["center"][0] = 0.0

        second = CONFIG.default_merchant_dicts()
        assert second[0]["codes"] == []
        assert second[0]["center"][0] != 0.0

    def test_frontend_dict(self):
        frontend = get_frontend_config()
        assert set(frontend) == {
            "map",
            "radius",
            "districtStyle",
            "maskStyle",
            "radiusStyle",
            "storageKey",
        }
        assert set(frontend["districtStyle"]) == {"selected", "unselected"}
        assert "fillOpacity" in frontend["maskStyle"]

    def test_style_to_leaflet_keys(self):
        style = PolygonStyleConfig.from_dict({"color": "#000", "fill_opacity": 0.3})
        assert style.to_dict() == {"color": "#000", "weight": 1, "fillOpacity": 0.3}

    def test_storage_path_expands_home(self):
        assert "~" not in str(StorageConfig().resolved_path)
