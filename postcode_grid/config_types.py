#!/usr/bin/env python3
"""
Postcode Grid - Configuration Types

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized, typed configuration for the delivery grid builder
using frozen dataclasses for immutability and type safety.

This follows the Typed Configuration Architecture pattern:
- config.py defines CONFIG_DATA dictionary (user edits this)
- config_types.py defines frozen dataclasses (this file)
- CONFIG module-level instance for orchestrator access
- Business logic receives primitives only

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Tuple

# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ MAP CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MapConfig:
    """Configuration for map display settings."""

    center_lat: float = 53.405
    center_lon: float = -3.02
    zoom: int = 12
    tile_url: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    tile_attribution: str = "&copy; OpenStreetMap contributors"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MapConfig":
        """Create from dictionary."""
        center = d.get("center", [53.405, -3.02])
        return cls(
            center_lat=float(center[0]),
            center_lon=float(center[1]),
            zoom=d.get("zoom", 12),
            tile_url=d.get("tile_url", cls.tile_url),
            tile_attribution=d.get("tile_attribution", cls.tile_attribution),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "center": [self.center_lat, self.center_lon],
            "zoom": self.zoom,
            "tileUrl": self.tile_url,
            "tileAttribution": self.tile_attribution,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 📮 DISTRICT CATALOG CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DistrictCatalogConfig:
    """Where the district polygon files live and how they are fetched."""

    resource_root: str = "Districts"
    files: Tuple[str, ...] = ()
    max_workers: int = 8
    request_timeout_s: float = 10.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DistrictCatalogConfig":
        """Create from dictionary."""
        return cls(
            resource_root=str(d.get("resource_root", "Districts")),
            files=tuple(d.get("files", ())),
            max_workers=int(d.get("max_workers", 8)),
            request_timeout_s=float(d.get("request_timeout_s", 10.0)),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 💾 STORAGE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class StorageConfig:
    """Location and key of the persisted merchant blob."""

    path: str = "~/.postcode_grid/storage.json"
    key: str = "deliveryConfigV2"
    lock_timeout_s: float = 10.0

    @property
    def resolved_path(self) -> Path:
        """Storage path with ~ expanded."""
        return Path(self.path).expanduser()

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StorageConfig":
        """Create from dictionary."""
        return cls(
            path=d.get("path", "~/.postcode_grid/storage.json"),
            key=d.get("key", "deliveryConfigV2"),
            lock_timeout_s=float(d.get("lock_timeout_s", 10.0)),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🎚️ RADIUS SLIDER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RadiusConfig:
    """Bounds and step of the radius slider (miles)."""

    min_miles: float = 0.0
    max_miles: float = 15.0
    step_miles: float = 0.5

    def normalize(self, value: float) -> float:
        """Clamp to the slider range and snap to the nearest step."""
        clamped = min(max(float(value), self.min_miles), self.max_miles)
        steps = round((clamped - self.min_miles) / self.step_miles)
        return min(self.min_miles + steps * self.step_miles, self.max_miles)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RadiusConfig":
        """Create from dictionary."""
        return cls(
            min_miles=float(d.get("min_miles", 0.0)),
            max_miles=float(d.get("max_miles", 15.0)),
            step_miles=float(d.get("step_miles", 0.5)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "min": self.min_miles,
            "max": self.max_miles,
            "step": self.step_miles,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 GEOMETRY CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class GeometryConfig:
    """Configuration for geometry calculations."""

    metric_crs: str = "EPSG:27700"
    buffer_resolution: int = 16

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GeometryConfig":
        """Create from dictionary."""
        return cls(
            metric_crs=d.get("metric_crs", "EPSG:27700"),
            buffer_resolution=int(d.get("buffer_resolution", 16)),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🎨 POLYGON STYLE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PolygonStyleConfig:
    """Leaflet path style for a polygon layer."""

    color: str = "#555555"
    weight: int = 1
    fill_opacity: float = 0.12

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PolygonStyleConfig":
        """Create from dictionary."""
        return cls(
            color=d.get("color", "#555555"),
            weight=d.get("weight", 1),
            fill_opacity=d.get("fill_opacity", 0.12),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Leaflet style keys."""
        return {
            "color": self.color,
            "weight": self.weight,
            "fillOpacity": self.fill_opacity,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🌐 SERVER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ServerConfig:
    """Flask server binding and download naming."""

    host: str = "127.0.0.1"
    port: int = 5052
    export_filename: str = "delivery_config.json"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        """Create from dictionary."""
        return cls(
            host=d.get("host", "127.0.0.1"),
            port=int(d.get("port", 5052)),
            export_filename=d.get("export_filename", "delivery_config.json"),
        )


# ═══════════════════════════════════════════════════════════════════════════
# 📦 MAIN CONFIGURATION CLASS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PostcodeGridConfig:
    """
    Main configuration class for the delivery grid builder.

    Access via the module-level CONFIG instance.
    Orchestrators extract primitives; business logic receives primitives only.
    """

    map: MapConfig
    districts: DistrictCatalogConfig
    storage: StorageConfig
    radius: RadiusConfig
    geometry: GeometryConfig
    selected_district_style: PolygonStyleConfig
    unselected_district_style: PolygonStyleConfig
    mask_style: PolygonStyleConfig
    radius_style: PolygonStyleConfig
    default_merchants: Tuple[Dict[str, Any], ...]
    server: ServerConfig

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PostcodeGridConfig":
        """Create from dictionary."""
        district_style = d.get("district_style", {})
        return cls(
            map=MapConfig.from_dict(d.get("map", {})),
            districts=DistrictCatalogConfig.from_dict(d.get("districts", {})),
            storage=StorageConfig.from_dict(d.get("storage", {})),
            radius=RadiusConfig.from_dict(d.get("radius", {})),
            geometry=GeometryConfig.from_dict(d.get("geometry", {})),
            selected_district_style=PolygonStyleConfig.from_dict(
                district_style.get(
                    "selected", {"color": "#111111", "weight": 2, "fill_opacity": 0.45}
                )
            ),
            unselected_district_style=PolygonStyleConfig.from_dict(
                district_style.get("unselected", {})
            ),
            mask_style=PolygonStyleConfig.from_dict(
                d.get(
                    "mask_style",
                    {"color": "#2563eb", "weight": 2, "fill_opacity": 0.15},
                )
            ),
            radius_style=PolygonStyleConfig.from_dict(
                d.get(
                    "radius_style",
                    {"color": "#3388ff", "weight": 2, "fill_opacity": 0.05},
                )
            ),
            default_merchants=tuple(d.get("default_merchants", ())),
            server=ServerConfig.from_dict(d.get("server", {})),
        )

    @classmethod
    def defaults(cls) -> "PostcodeGridConfig":
        """Create with all default values."""
        return cls.from_dict({})

    def default_merchant_dicts(self) -> List[Dict[str, Any]]:
        """Fresh copies of the default merchant records."""
        return [
            {**m, "center": list(m["center"]), "codes": list(m.get("codes", []))}
            for m in self.default_merchants
        ]

    def to_frontend_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for frontend JSON API."""
        return {
            "map": self.map.to_dict(),
            "radius": self.radius.to_dict(),
            "districtStyle": {
                "selected": self.selected_district_style.to_dict(),
                "unselected": self.unselected_district_style.to_dict(),
            },
            "maskStyle": self.mask_style.to_dict(),
            "radiusStyle": self.radius_style.to_dict(),
            "storageKey": self.storage.key,
        }


# ═══════════════════════════════════════════════════════════════════════════
# 📌 MODULE-LEVEL CONFIG INSTANCE
# ═══════════════════════════════════════════════════════════════════════════

# Import configuration data from separate file (user-editable)
from postcode_grid.config import CONFIG_DATA

# Edit config.py to change settings (restart server after changes)
CONFIG: PostcodeGridConfig = PostcodeGridConfig.from_dict(CONFIG_DATA)


def get_frontend_config() -> Dict[str, Any]:
    """
    Get configuration for frontend JavaScript.

    Returns a dict suitable for JSON serialization and use in the frontend.
    """
    return CONFIG.to_frontend_dict()
