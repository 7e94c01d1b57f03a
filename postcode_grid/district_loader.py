#!/usr/bin/env python3
"""
Postcode Grid - District Catalog Loader

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Load the fixed list of postal-district GeoJSON resources and
normalize them into one flat catalog of features tagged with a district code.

Key Features:
1. Parallel fetch of every resource (local directory or http(s) base URL)
2. Missing/unreadable resources are skipped, never raised
3. FeatureCollection / Feature / bare geometry normalization
4. GeoJSON output for the map and a GeoDataFrame for geometry work

Navigation Guide:
- DistrictLoader: Main loader class
- normalize_resource: Per-resource tagging rules
- get_districts_geojson: District polygons for map display

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import json
import logging

import geopandas as gpd
import requests
from shapely.errors import GEOSException
from shapely.geometry import shape

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

CRS_WGS84 = "EPSG:4326"

RESOURCE_SUFFIX = ".geojson"

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def code_from_resource_name(name: str) -> str:
    """``"l1.geojson"`` -> ``"L1"``."""
    stem = name[: -len(RESOURCE_SUFFIX)] if name.lower().endswith(RESOURCE_SUFFIX) else name
    return stem.upper()


def _tag_feature(feature: Dict[str, Any], fallback_code: str) -> Dict[str, Any]:
    """Copy a feature, keeping its own truthy ``code`` or using the fallback."""
    props = dict(feature.get("properties") or {})
    props["code"] = props.get("code") or fallback_code
    return {**feature, "type": "Feature", "properties": props}


def normalize_resource(name: str, geojson: Any) -> List[Dict[str, Any]]:
    """
    Normalize one loaded resource into tagged GeoJSON features.

    Args:
        name: Resource file name (gives the fallback code)
        geojson: Parsed document - FeatureCollection, Feature or bare geometry

    Returns:
        List of features, each with ``properties.code`` set.
    """
    if not isinstance(geojson, dict) or not geojson.get("type"):
        return []

    fallback_code = code_from_resource_name(name)
    kind = geojson["type"]

    if kind == "FeatureCollection":
        return [
            _tag_feature(f, fallback_code)
            for f in geojson.get("features") or []
            if isinstance(f, dict)
        ]

    if kind == "Feature":
        return [_tag_feature(geojson, fallback_code)]

    # Bare geometry object
    return [
        {
            "type": "Feature",
            "properties": {"code": fallback_code},
            "geometry": geojson,
        }
    ]


# ═══════════════════════════════════════════════════════════════════════════
# 📂 DISTRICT LOADER
# ═══════════════════════════════════════════════════════════════════════════


class DistrictLoader:
    """
    Load district polygons from a fixed list of named resources.

    The catalog is static after load. A resource that cannot be fetched or
    parsed is left out; partial loads are not an error.
    """

    def __init__(
        self,
        resource_root: str,
        resource_names: Sequence[str],
        max_workers: int = 8,
        request_timeout_s: float = 10.0,
    ) -> None:
        """
        Initialize and load the catalog.

        Args:
            resource_root: Directory path or http(s):// base URL
            resource_names: File names, one per postal district
            max_workers: Parallel fetch threads
            request_timeout_s: Per-request timeout for URL roots
        """
        self.resource_root = str(resource_root)
        self.resource_names = list(resource_names)
        self.max_workers = max(1, int(max_workers))
        self.request_timeout_s = request_timeout_s

        self._features_data: List[Dict[str, Any]] = []
        self._districts_gdf: Optional[gpd.GeoDataFrame] = None
        self._failed_resources: List[str] = []
        self._data_loaded_at: Optional[datetime] = None

        self._load_data()

    @property
    def is_remote(self) -> bool:
        """True when resources are fetched over HTTP."""
        return self.resource_root.startswith(("http://", "https://"))

    # ═══════════════════════════════════════════════════════════════════════
    # 📥 FETCHING
    # ═══════════════════════════════════════════════════════════════════════

    def _fetch_resource(self, name: str) -> Optional[Any]:
        """
        Fetch and parse one resource.

        Returns:
            Parsed JSON, or None if missing/unreadable/unparseable.
        """
        try:
            if self.is_remote:
                url = self.resource_root.rstrip("/") + "/" + name
                response = requests.get(url, timeout=self.request_timeout_s)
                if not response.ok:
                    logger.warning(f"Skipping {name}: HTTP {response.status_code}")
                    return None
                return response.json()

            path = Path(self.resource_root) / name
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)

        except (OSError, ValueError, requests.RequestException) as e:
            logger.warning(f"Skipping {name}: {e}")
            return None

    def _load_data(self) -> None:
        """Fetch every resource in parallel and build the catalog."""
        logger.info(
            f"Loading {len(self.resource_names)} district resources from {self.resource_root}"
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            # map() keeps resource-list order
            results = list(pool.map(self._fetch_resource, self.resource_names))

        features: List[Dict[str, Any]] = []
        for name, geojson in zip(self.resource_names, results):
            if geojson is None:
                self._failed_resources.append(name)
                continue
            for feature in normalize_resource(name, geojson):
                feature["properties"]["resource"] = name
                features.append(feature)

        self._districts_gdf = self._features_to_gdf(features)
        self._data_loaded_at = datetime.now()

        duplicates = sorted(
            code for code, n in Counter(self._districts_gdf["code"]).items() if n > 1
        )
        if duplicates:
            logger.warning(f"Duplicate district codes across resources: {duplicates}")

        logger.info(
            f"✅ Loaded {len(self._districts_gdf)} district features "
            f"({len(self._failed_resources)} resources skipped)"
        )

    def _features_to_gdf(self, features: List[Dict[str, Any]]) -> gpd.GeoDataFrame:
        """
        Convert tagged features to a WGS84 GeoDataFrame.

        Features whose geometry is missing or unparseable are dropped from
        both the GeoDataFrame and the GeoJSON kept for the map.
        """
        geometries = []
        properties_list = []

        for feature in features:
            geometry = feature.get("geometry")
            if not geometry:
                continue
            try:
                geom = shape(geometry)
            except (GEOSException, ValueError, TypeError, KeyError, AttributeError) as e:
                logger.warning(
                    f"Skipping feature {feature['properties'].get('code')}: {e}"
                )
                continue

            props = {k: v for k, v in feature["properties"].items() if k != "geometry"}
            geometries.append(geom)
            properties_list.append(props)
            self._features_data.append(feature)

        if not geometries:
            return gpd.GeoDataFrame(
                {"code": [], "resource": []},
                geometry=gpd.GeoSeries([], crs=CRS_WGS84),
            )

        return gpd.GeoDataFrame(properties_list, geometry=geometries, crs=CRS_WGS84)

    # ═══════════════════════════════════════════════════════════════════════
    # 📤 ACCESSORS
    # ═══════════════════════════════════════════════════════════════════════

    def get_districts_gdf(self) -> gpd.GeoDataFrame:
        """Get districts as GeoDataFrame (in WGS84)."""
        return self._districts_gdf

    def get_districts_geojson(self) -> Dict[str, Any]:
        """Get districts as GeoJSON FeatureCollection in WGS84."""
        return {"type": "FeatureCollection", "features": self._features_data}

    def get_codes(self) -> List[str]:
        """District codes in catalog order (duplicates kept)."""
        return [str(c) for c in self._districts_gdf["code"]]

    def get_data_info(self) -> Dict[str, Any]:
        """
        Get information about the loaded catalog.

        Returns:
            Dict with resource counts, feature count and load timestamp.
        """
        return {
            "resource_root": self.resource_root,
            "resources_requested": len(self.resource_names),
            "resources_loaded": len(self.resource_names) - len(self._failed_resources),
            "resources_failed": list(self._failed_resources),
            "district_count": len(self._districts_gdf),
            "data_loaded_at": (
                self._data_loaded_at.isoformat() if self._data_loaded_at else None
            ),
        }
