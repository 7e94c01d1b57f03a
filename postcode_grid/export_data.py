#!/usr/bin/env python3
"""
Delivery Config Exporter

Recomputes the coverage mask of every merchant (not only the active one)
and serializes merchants plus masks into one document.

Usage:
    from postcode_grid.export_data import build_export_document

    document = build_export_document(store.merchants, mask_computer)

Output Format:
    {
        "merchants": [
            {
                "id": "merchant_1",
                "name": "...",
                "center": [lat, lon],
                "radiusMiles": 3.0,
                "codes": ["L1", "L2"],
                "mask": {GeoJSON Feature/FeatureCollection} | null
            }
        ]
    }
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence
import json
import logging

from postcode_grid.coverage_mask import CoverageMaskComputer
from postcode_grid.merchant_store import Merchant

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

OUTPUT_FILENAME = "delivery_config.json"

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# 📤 EXPORT FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════


def build_export_document(
    merchants: Sequence[Merchant],
    mask_computer: CoverageMaskComputer,
) -> Dict[str, Any]:
    """
    Build the export document, one independently computed mask per merchant.

    Args:
        merchants: Merchants in store order
        mask_computer: Computer bound to the district catalog

    Returns:
        ``{"merchants": [...]}`` in store order.
    """
    out = []
    for merchant in merchants:
        mask = mask_computer.compute(merchant)
        out.append(
            {**merchant.to_dict(), "mask": mask_computer.mask_to_geojson(mask)}
        )

    logger.info(
        f"📄 Export built for {len(out)} merchants "
        f"({sum(1 for m in out if m['mask'] is not None)} with a mask)"
    )
    return {"merchants": out}


def serialize_export_document(document: Dict[str, Any]) -> str:
    """Pretty-printed JSON text of an export document."""
    return json.dumps(document, indent=2)


def write_export_file(
    document: Dict[str, Any],
    output_dir: Path,
    filename: str = OUTPUT_FILENAME,
    log: Optional[logging.Logger] = None,
) -> Path:
    """
    Write an export document to disk.

    Returns:
        Path to the created JSON file.
    """
    log = log or logger

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    output_path = output_dir / filename
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(serialize_export_document(document))

    log.info(f"📄 Exported delivery config: {output_path}")
    return output_path
