#!/usr/bin/env python3
"""
Postcode Grid - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Configuration dictionary for the delivery grid builder.
This is the user-facing configuration file - edit values here.

Pattern:
- config.py defines the CONFIG_DATA dictionary (edit this)
- config_types.py defines typed dataclasses and loads from CONFIG_DATA

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from typing import Any, Dict, List

# ═══════════════════════════════════════════════════════════════════════════
# 📮 DISTRICT RESOURCES
# ═══════════════════════════════════════════════════════════════════════════

DISTRICT_FILES: List[str] = [
    # Chester / Wirral
    "CH1.geojson", "CH2.geojson", "CH3.geojson", "CH4.geojson",
    "CH5.geojson", "CH6.geojson", "CH7.geojson", "CH8.geojson",
    "CH25.geojson", "CH26.geojson", "CH27.geojson", "CH28.geojson",
    "CH29.geojson", "CH30.geojson", "CH31.geojson", "CH32.geojson",
    "CH33.geojson", "CH34.geojson",
    "CH41.geojson", "CH42.geojson", "CH43.geojson", "CH44.geojson",
    "CH45.geojson", "CH46.geojson", "CH47.geojson", "CH48.geojson",
    "CH49.geojson",
    "CH60.geojson", "CH61.geojson", "CH62.geojson", "CH63.geojson",
    "CH64.geojson", "CH65.geojson", "CH66.geojson", "CH70.geojson",
    "CH88.geojson", "CH99.geojson",
    # Liverpool
    "L1.geojson", "L2.geojson", "L3.geojson", "L4.geojson", "L5.geojson",
    "L6.geojson", "L7.geojson", "L8.geojson", "L9.geojson",
    "L10.geojson", "L11.geojson", "L12.geojson", "L13.geojson",
    "L14.geojson", "L15.geojson", "L16.geojson", "L17.geojson",
    "L18.geojson", "L19.geojson",
    "L20.geojson", "L21.geojson", "L22.geojson", "L23.geojson",
    "L24.geojson", "L25.geojson", "L26.geojson", "L27.geojson",
    "L28.geojson", "L29.geojson",
    "L30.geojson", "L31.geojson", "L32.geojson", "L33.geojson",
    "L34.geojson", "L35.geojson", "L36.geojson", "L37.geojson",
    "L38.geojson", "L39.geojson", "L40.geojson",
    "L67.geojson", "L68.geojson", "L69.geojson", "L70.geojson",
    "L71.geojson", "L72.geojson", "L74.geojson", "L75.geojson",
    "L80.geojson",
]

# ═══════════════════════════════════════════════════════════════════════════
# 🏪 DEFAULT MERCHANTS (restored on first run and on "Reset to defaults")
# ═══════════════════════════════════════════════════════════════════════════

DEFAULT_MERCHANTS: List[Dict[str, Any]] = [
    {
        "id": "merchant_1",
        "name": "Liverpool City Centre",
        "center": [53.405, -2.98],
        "radiusMiles": 3.0,
        "codes": [],
    },
    {
        "id": "merchant_2",
        "name": "Birkenhead",
        "center": [53.392, -3.02],
        "radiusMiles": 2.5,
        "codes": [],
    },
    {
        "id": "merchant_3",
        "name": "Chester",
        "center": [53.19, -2.89],
        "radiusMiles": 4.0,
        "codes": [],
    },
]

# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ POSTCODE GRID CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG_DATA: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ MAP SETTINGS
    # ═══════════════════════════════════════════════════════════════════════
    "map": {
        "center": [53.405, -3.02],  # [lat, lon] - used when no merchant exists
        "zoom": 12,
        "tile_url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "tile_attribution": "&copy; OpenStreetMap contributors",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📮 DISTRICT CATALOG
    # ═══════════════════════════════════════════════════════════════════════
    "districts": {
        # Directory or http(s):// base URL holding the district files
        "resource_root": "Districts",
        "files": DISTRICT_FILES,
        "max_workers": 8,
        "request_timeout_s": 10.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 💾 PERSISTENCE (single key-value blob)
    # ═══════════════════════════════════════════════════════════════════════
    "storage": {
        "path": "~/.postcode_grid/storage.json",
        "key": "deliveryConfigV2",
        "lock_timeout_s": 10.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🎚️ RADIUS SLIDER
    # ═══════════════════════════════════════════════════════════════════════
    "radius": {
        "min_miles": 0.0,
        "max_miles": 15.0,
        "step_miles": 0.5,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🔧 GEOMETRY SETTINGS
    # ═══════════════════════════════════════════════════════════════════════
    "geometry": {
        "metric_crs": "EPSG:27700",  # British National Grid (meters)
        "buffer_resolution": 16,  # Segments per quarter circle
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🎨 STYLING
    # ═══════════════════════════════════════════════════════════════════════
    "district_style": {
        "selected": {"color": "#111111", "weight": 2, "fill_opacity": 0.45},
        "unselected": {"color": "#555555", "weight": 1, "fill_opacity": 0.12},
    },
    "mask_style": {"color": "#2563eb", "weight": 2, "fill_opacity": 0.15},
    "radius_style": {"color": "#3388ff", "weight": 2, "fill_opacity": 0.05},
    # ═══════════════════════════════════════════════════════════════════════
    # 🏪 MERCHANTS
    # ═══════════════════════════════════════════════════════════════════════
    "default_merchants": DEFAULT_MERCHANTS,
    # ═══════════════════════════════════════════════════════════════════════
    # 🌐 SERVER
    # ═══════════════════════════════════════════════════════════════════════
    "server": {
        "host": "127.0.0.1",
        "port": 5052,
        "export_filename": "delivery_config.json",
    },
}
