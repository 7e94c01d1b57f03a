#!/usr/bin/env python3
"""
Postcode Grid - Geometry Service

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Best-effort polygon operations for coverage masks using Shapely.

Key Features:
1. Radius buffer around a merchant center (radius given in miles)
2. District ∩ buffer intersection
3. Left-to-right union fold that skips failing steps
4. Coordinate transformation (WGS84 <-> metric CRS)

Every operation returns Optional[BaseGeometry]. ``None`` means "no polygon",
whether the inputs were disjoint or Shapely could not compute the result.

Navigation Guide:
- GeometryService: CRS-aware wrapper used by the mask computer
- buffer / intersect / union: module-level pure operations

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from typing import Iterable, List, Optional, Tuple
import logging

from pyproj import Transformer
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

CRS_WGS84 = "EPSG:4326"  # GPS coordinates (lon, lat)
CRS_BNG = "EPSG:27700"  # British National Grid (Easting, Northing in meters)

METERS_PER_MILE = 1609.344

# Segments per quarter circle
BUFFER_RESOLUTION = 16

# Shapely raises GEOSException for topology errors, ValueError for bad input
GEOMETRY_ERRORS = (GEOSException, ValueError)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 📐 PURE OPERATIONS
# ═══════════════════════════════════════════════════════════════════════════


def miles_to_meters(radius_miles: float) -> float:
    """Convert a radius in miles to meters."""
    return float(radius_miles) * METERS_PER_MILE


def _polygonal_part(geom: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Keep only the areal part of a geometry.

    Boundary touches make Shapely return lines or points inside a
    GeometryCollection; those carry no deliverable area.
    """
    if geom is None or geom.is_empty:
        return None

    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom

    polygons: List[Polygon] = []
    for part in getattr(geom, "geoms", []):
        if isinstance(part, Polygon) and not part.is_empty:
            polygons.append(part)
        elif isinstance(part, MultiPolygon):
            polygons.extend(p for p in part.geoms if not p.is_empty)

    if not polygons:
        return None
    if len(polygons) == 1:
        return polygons[0]
    return MultiPolygon(polygons)


def buffer(
    point: Point,
    radius_miles: float,
    resolution: int = BUFFER_RESOLUTION,
) -> Optional[BaseGeometry]:
    """
    Disk of ``radius_miles`` around ``point``.

    Args:
        point: Center in a metric CRS (meters)
        radius_miles: Radius in miles; zero is accepted
        resolution: Segments per quarter circle

    Returns:
        Disk polygon, or None for a zero radius or a failed buffer.
    """
    if radius_miles <= 0:
        return None

    try:
        disk = point.buffer(miles_to_meters(radius_miles), resolution=resolution)
    except GEOMETRY_ERRORS as e:
        logger.debug(f"Buffer failed at {point}: {e}")
        return None

    return _polygonal_part(disk)


def intersect(
    a: Optional[BaseGeometry],
    b: Optional[BaseGeometry],
) -> Optional[BaseGeometry]:
    """
    Polygonal intersection of two geometries.

    Returns:
        The intersection, or None if disjoint, empty, or not computable.
    """
    if a is None or b is None:
        return None

    try:
        result = a.intersection(b)
    except GEOMETRY_ERRORS as e:
        logger.debug(f"Intersection failed: {e}")
        return None

    return _polygonal_part(result)


def union(geoms: Iterable[Optional[BaseGeometry]]) -> Optional[BaseGeometry]:
    """
    Fold geometries pairwise from left to right.

    A step that raises is skipped and the accumulator keeps its last valid
    value, so the failing operand is dropped from the result.

    Returns:
        The union, or None for an empty input.
    """
    acc: Optional[BaseGeometry] = None

    for geom in geoms:
        if geom is None or geom.is_empty:
            continue
        if acc is None:
            acc = geom
            continue
        try:
            acc = acc.union(geom)
        except GEOMETRY_ERRORS as e:
            logger.debug(f"Union step skipped: {e}")

    return _polygonal_part(acc)


# ═══════════════════════════════════════════════════════════════════════════
# 🌍 CRS-AWARE SERVICE
# ═══════════════════════════════════════════════════════════════════════════


class GeometryService:
    """
    Geometry operations for map coordinates.

    All polygon work happens in a metric CRS (British National Grid by
    default) so radii are true distances; results are converted back to
    WGS84 for display on web maps.
    """

    def __init__(
        self,
        metric_crs: str = CRS_BNG,
        buffer_resolution: int = BUFFER_RESOLUTION,
    ) -> None:
        self.metric_crs = metric_crs
        self.buffer_resolution = buffer_resolution

        # Pre-compute transformers for coordinate conversion
        self._wgs84_to_metric = Transformer.from_crs(
            CRS_WGS84, metric_crs, always_xy=True
        )
        self._metric_to_wgs84 = Transformer.from_crs(
            metric_crs, CRS_WGS84, always_xy=True
        )

    def to_metric(self, lon: float, lat: float) -> Tuple[float, float]:
        """Transform WGS84 (lon, lat) to metric (x, y)."""
        return self._wgs84_to_metric.transform(lon, lat)

    def geometry_to_metric(self, geom: BaseGeometry) -> BaseGeometry:
        """Transform a geometry from WGS84 to the metric CRS."""
        return transform(self._wgs84_to_metric.transform, geom)

    def geometry_to_wgs84(self, geom: BaseGeometry) -> BaseGeometry:
        """Transform a geometry from the metric CRS to WGS84."""
        return transform(self._metric_to_wgs84.transform, geom)

    def center_point(self, center: Tuple[float, float]) -> Point:
        """Metric point for a [lat, lon] center."""
        lat, lon = center
        return Point(*self.to_metric(lon, lat))

    def buffer(
        self, center: Tuple[float, float], radius_miles: float
    ) -> Optional[BaseGeometry]:
        """Radius disk (metric CRS) around a [lat, lon] center."""
        return buffer(
            self.center_point(center), radius_miles, resolution=self.buffer_resolution
        )

    def intersect(
        self, a: Optional[BaseGeometry], b: Optional[BaseGeometry]
    ) -> Optional[BaseGeometry]:
        """See :func:`intersect`."""
        return intersect(a, b)

    def union(self, geoms: Iterable[Optional[BaseGeometry]]) -> Optional[BaseGeometry]:
        """See :func:`union`."""
        return union(geoms)
