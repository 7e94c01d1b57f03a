"""
Postcode Grid Delivery Coverage

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Per-merchant delivery areas built from a radius around the
merchant and a hand-picked set of postcode district polygons.

Key Features:
- District catalog loaded in parallel from named GeoJSON resources
- Coverage mask = union of (selected district ∩ radius disk)
- Multiple merchants, one active, persisted as a single JSON blob
- Leaflet map served by a local Flask server
- Export of every merchant with its mask to delivery_config.json

Usage:
    python -m postcode_grid.server [resource_root]

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

from .coverage_mask import CoverageMask, CoverageMaskComputer
from .controller import InteractionController
from .district_loader import DistrictLoader
from .export_data import build_export_document
from .geometry_service import GeometryService
from .merchant_store import KeyValueStore, Merchant, MerchantStore, PersistedConfigError

__all__ = [
    "CoverageMask",
    "CoverageMaskComputer",
    "InteractionController",
    "DistrictLoader",
    "build_export_document",
    "GeometryService",
    "KeyValueStore",
    "Merchant",
    "MerchantStore",
    "PersistedConfigError",
]
