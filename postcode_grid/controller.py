#!/usr/bin/env python3
"""
Postcode Grid - Interaction Controller

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Turn map and panel events into Merchant Store mutations.
This is the only writer of the store.

Event table (move_mode starts OFF):
- district click, move OFF  -> toggle code on the bound merchant
- district click, move ON   -> relocate active center, codes untouched
- map click, move ON        -> relocate active center
- map click, move OFF       -> nothing
- radius change             -> active radius (clamped, snapped to step)
- merchant switch           -> active id only, then re-bind
- chip removal              -> toggle code off
- clear                     -> active codes = empty
- reset                     -> defaults, move OFF, re-bind

Click handlers carry the merchant id captured when they were bound. The
binding is renewed every time the active merchant changes and the map page
re-attaches its handlers from ``bindingMerchantId``.

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import threading

from postcode_grid.config_types import RadiusConfig
from postcode_grid.coverage_mask import CoverageMaskComputer
from postcode_grid.geometry_service import miles_to_meters
from postcode_grid.merchant_store import Merchant, MerchantStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClickBinding:
    """District click handlers bound for one merchant."""

    merchant_id: Optional[str]
    generation: int


class InteractionController:
    """
    Explicit application state: the merchant store, move mode and the
    current click binding. Event methods serialize on one lock so a
    threaded server still applies events one at a time.
    """

    def __init__(
        self,
        store: MerchantStore,
        mask_computer: CoverageMaskComputer,
        radius_config: Optional[RadiusConfig] = None,
    ) -> None:
        self.store = store
        self.mask_computer = mask_computer
        self.radius_config = radius_config or RadiusConfig()
        self.move_mode = False

        self._lock = threading.RLock()
        self._binding = ClickBinding(merchant_id=None, generation=0)
        self._rebind()

    # ═══════════════════════════════════════════════════════════════════════
    # 🔗 CLICK BINDING
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def binding(self) -> ClickBinding:
        return self._binding

    def _rebind(self) -> None:
        active = self.store.active
        self._binding = ClickBinding(
            merchant_id=active.id if active else None,
            generation=self._binding.generation + 1,
        )
        logger.debug(f"District handlers bound to {self._binding.merchant_id!r}")

    def _rebind_if_active_changed(self) -> None:
        if self._binding.merchant_id != self.store.active_id:
            self._rebind()

    # ═══════════════════════════════════════════════════════════════════════
    # 🗺️ MAP EVENTS
    # ═══════════════════════════════════════════════════════════════════════

    def district_click(
        self,
        code: str,
        merchant_id: Optional[str],
        lat: Optional[float] = None,
        lon: Optional[float] = None,
    ) -> None:
        """
        Handle a click on a district polygon.

        Args:
            code: District code of the clicked polygon
            merchant_id: Merchant id the handler was bound with
            lat, lon: Click coordinate (used in move mode)

        Raises:
            KeyError: ``merchant_id`` is unknown (move mode OFF).
            ValueError: Move mode is ON and no coordinate was given.
        """
        with self._lock:
            if self.move_mode:
                if lat is None or lon is None:
                    raise ValueError("District click in move mode needs lat/lon")
                self._set_center(lat, lon)
                return

            if merchant_id is None:
                merchant_id = self._binding.merchant_id
            merchant = self.store.toggle_code(merchant_id, str(code))
            logger.info(
                f"{'➕' if merchant.has_code(str(code)) else '➖'} {code} for {merchant_id}"
            )

    def map_click(self, lat: float, lon: float) -> bool:
        """
        Handle a click on the map background.

        Returns:
            True if the active center moved.
        """
        with self._lock:
            if not self.move_mode:
                return False
            self._set_center(lat, lon)
            return True

    def _set_center(self, lat: float, lon: float) -> None:
        merchant = self.store.patch(center=(float(lat), float(lon)))
        logger.info(f"📍 Center of {merchant.id} -> ({merchant.center[0]:.5f}, {merchant.center[1]:.5f})")

    # ═══════════════════════════════════════════════════════════════════════
    # 🎛️ PANEL EVENTS
    # ═══════════════════════════════════════════════════════════════════════

    def set_radius(self, value: Any) -> float:
        """
        Set the active radius from the slider.

        Returns:
            The stored radius in miles.

        Raises:
            ValueError: ``value`` is not a number.
        """
        try:
            radius = self.radius_config.normalize(float(value))
        except (TypeError, ValueError):
            raise ValueError(f"Invalid radius: {value!r}")

        with self._lock:
            self.store.patch(radius_miles=radius)
        return radius

    def set_move_mode(self, enabled: bool) -> None:
        with self._lock:
            self.move_mode = bool(enabled)

    def select_merchant(self, merchant_id: str) -> None:
        """Switch the active merchant. Raises KeyError for unknown ids."""
        with self._lock:
            self.store.set_active(merchant_id)
            self._rebind_if_active_changed()

    def remove_code(self, code: str, merchant_id: Optional[str] = None) -> None:
        """Chip removal: turn ``code`` off (no-op when not selected)."""
        with self._lock:
            target = merchant_id or self._binding.merchant_id
            merchant = self.store.get(target)
            if merchant is None:
                raise KeyError(target)
            if merchant.has_code(str(code)):
                self.store.toggle_code(target, str(code))

    def clear_active(self) -> None:
        with self._lock:
            self.store.patch(codes=())

    def reset(self) -> None:
        """Restore default merchants and leave move mode."""
        with self._lock:
            self.store.reset()
            self.move_mode = False
            self._rebind()

    # ═══════════════════════════════════════════════════════════════════════
    # 📸 STATE SNAPSHOT
    # ═══════════════════════════════════════════════════════════════════════

    def active_mask_geojson(self) -> Optional[Dict[str, Any]]:
        active = self.store.active
        if active is None:
            return None
        return self.mask_computer.mask_to_geojson(self.mask_computer.compute_cached(active))

    def snapshot(self) -> Dict[str, Any]:
        """State document for the map page."""
        with self._lock:
            active: Optional[Merchant] = self.store.active
            return {
                "merchants": self.store.to_list(),
                "activeId": active.id if active else None,
                "moveMode": self.move_mode,
                "bindingMerchantId": self._binding.merchant_id,
                "bindingGeneration": self._binding.generation,
                "mask": self.active_mask_geojson(),
                "radiusBuffer": (
                    self.mask_computer.radius_buffer_geojson(active) if active else None
                ),
                "radiusMeters": (
                    round(miles_to_meters(active.radius_miles), 2) if active else 0.0
                ),
            }
