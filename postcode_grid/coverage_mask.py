#!/usr/bin/env python3
"""
Postcode Grid - Coverage Mask Computer

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Derive a merchant's deliverable area from its selected
districts and radius.

Pipeline (per merchant):
1. Radius buffer around the center
2. Selection set = catalog features whose code is in the merchant's codes
3. Clip each selected district to the buffer (failed/empty clips dropped)
4. Union the clipped pieces; if nothing comes out of the union, present the
   clipped pieces as a collection instead

Navigation Guide:
- CoverageMask: Result of one computation
- CoverageMaskComputer.compute: Core pipeline
- CoverageMaskComputer.compute_cached: Recompute only when inputs change

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
import logging

import geopandas as gpd
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from postcode_grid.geometry_service import GeometryService, miles_to_meters
from postcode_grid.merchant_store import Merchant

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 📦 RESULT STRUCTURES
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CoverageMask:
    """
    Coverage mask in the metric CRS.

    ``geometry`` is the unioned mask (Polygon or MultiPolygon). When the
    union produced nothing, ``pieces`` still holds the clipped districts and
    the mask is presented as a collection of them.
    """

    geometry: Optional[BaseGeometry]
    pieces: Tuple[BaseGeometry, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.geometry is None and not self.pieces

    @property
    def is_collection(self) -> bool:
        """True when the mask falls back to un-unioned pieces."""
        return self.geometry is None and bool(self.pieces)

    @property
    def area_m2(self) -> float:
        if self.geometry is not None:
            return self.geometry.area
        return sum(p.area for p in self.pieces)


EMPTY_MASK = CoverageMask(geometry=None)


@dataclass
class CachedMask:
    """Cached mask for a single merchant, with the inputs it came from."""

    merchant_id: str
    codes: FrozenSet[str]
    center: Tuple[float, float]
    radius_miles: float
    mask: CoverageMask


# ═══════════════════════════════════════════════════════════════════════════
# 🧮 COVERAGE MASK COMPUTER
# ═══════════════════════════════════════════════════════════════════════════


class CoverageMaskComputer:
    """
    Compute coverage masks against a static district catalog.

    The catalog is projected to the metric CRS once; merchants never mutate
    here, they are only read.
    """

    def __init__(
        self,
        districts_gdf: gpd.GeoDataFrame,
        geometry_service: GeometryService,
    ) -> None:
        """
        Initialize with the district catalog.

        Args:
            districts_gdf: GeoDataFrame with a 'code' column (any CRS; WGS84
                           assumed if none is set)
            geometry_service: CRS-aware geometry operations
        """
        self.geometry_service = geometry_service

        if districts_gdf.crs is None:
            logger.warning("Districts GDF has no CRS, assuming EPSG:4326")
            districts_gdf = districts_gdf.set_crs("EPSG:4326")
        districts_metric = districts_gdf.to_crs(geometry_service.metric_crs)

        self._districts: List[Tuple[str, BaseGeometry]] = [
            (str(row["code"]), row.geometry)
            for _, row in districts_metric.iterrows()
            if row.geometry is not None and not row.geometry.is_empty
        ]

        # Cache: merchant_id -> CachedMask
        self._mask_cache: Dict[str, CachedMask] = {}

        logger.info(f"CoverageMaskComputer initialized with {len(self._districts)} districts")

    def selection(self, codes: Tuple[str, ...]) -> List[BaseGeometry]:
        """District geometries (metric CRS) whose code is selected, catalog order."""
        wanted = set(codes)
        return [geom for code, geom in self._districts if code in wanted]

    def compute(self, merchant: Merchant) -> CoverageMask:
        """
        Compute the coverage mask for one merchant.

        Args:
            merchant: Merchant whose center/radius/codes drive the mask

        Returns:
            CoverageMask; EMPTY_MASK when nothing is deliverable.
        """
        selected = self.selection(merchant.codes)
        if not selected:
            return EMPTY_MASK

        disk = self.geometry_service.buffer(merchant.center, merchant.radius_miles)
        if disk is None:
            return EMPTY_MASK

        clipped = [
            piece
            for piece in (self.geometry_service.intersect(geom, disk) for geom in selected)
            if piece is not None
        ]
        if not clipped:
            return EMPTY_MASK

        unioned = self.geometry_service.union(clipped)
        if unioned is None:
            logger.debug(f"Union gave no polygon for {merchant.id}, keeping {len(clipped)} pieces")

        return CoverageMask(geometry=unioned, pieces=tuple(clipped))

    def compute_cached(self, merchant: Merchant) -> CoverageMask:
        """
        Compute with caching - returns the cached mask if inputs are unchanged.
        """
        codes = frozenset(merchant.codes)
        cached = self._mask_cache.get(merchant.id)
        if (
            cached is not None
            and cached.codes == codes
            and cached.center == merchant.center
            and cached.radius_miles == merchant.radius_miles
        ):
            return cached.mask

        mask = self.compute(merchant)
        self._mask_cache[merchant.id] = CachedMask(
            merchant_id=merchant.id,
            codes=codes,
            center=merchant.center,
            radius_miles=merchant.radius_miles,
            mask=mask,
        )
        return mask

    def clear_cache(self) -> None:
        """Clear all cached masks."""
        self._mask_cache.clear()

    # ═══════════════════════════════════════════════════════════════════════
    # 🌍 GEOJSON OUTPUT
    # ═══════════════════════════════════════════════════════════════════════

    def mask_to_geojson(self, mask: CoverageMask) -> Optional[Dict[str, Any]]:
        """
        Convert a mask to WGS84 GeoJSON.

        Returns:
            Feature for a unioned mask, FeatureCollection of clipped pieces
            for the fallback, or None when the mask is absent.
        """
        to_wgs84 = self.geometry_service.geometry_to_wgs84

        if mask.geometry is not None:
            return {
                "type": "Feature",
                "geometry": mapping(to_wgs84(mask.geometry)),
                "properties": {"area_m2": round(mask.area_m2, 1)},
            }

        if mask.pieces:
            return {
                "type": "FeatureCollection",
                "features": [
                    {
                        "type": "Feature",
                        "geometry": mapping(to_wgs84(piece)),
                        "properties": {"area_m2": round(piece.area, 1)},
                    }
                    for piece in mask.pieces
                ],
            }

        return None

    def radius_buffer_geojson(self, merchant: Merchant) -> Optional[Dict[str, Any]]:
        """Radius disk for display as a WGS84 GeoJSON Feature, or None."""
        disk = self.geometry_service.buffer(merchant.center, merchant.radius_miles)
        if disk is None:
            return None
        return {
            "type": "Feature",
            "geometry": mapping(self.geometry_service.geometry_to_wgs84(disk)),
            "properties": {
                "radius_miles": merchant.radius_miles,
                "radius_m": round(miles_to_meters(merchant.radius_miles), 2),
            },
        }
