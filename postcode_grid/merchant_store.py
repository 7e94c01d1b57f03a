#!/usr/bin/env python3
"""
Postcode Grid - Merchant Store

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Own the ordered merchant list and the active merchant id,
and persist the list as one JSON blob in a local key-value file.

Key Features:
1. Frozen Merchant records; every edit is a pure merge-patch reducer
2. patch() touches the active merchant only
3. Active id is corrected to the first merchant whenever it goes stale
4. Full list written under a fixed key on every change (filelock guarded)

Navigation Guide:
- Merchant: One merchant record
- apply_patch / toggle_code_in: Pure reducers over the merchant tuple
- KeyValueStore: JSON key-value file
- MerchantStore: Stateful owner used by the controller

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import json
import logging
import os

import filelock

logger = logging.getLogger(__name__)

# Fields patch() may touch (id is stable)
PATCHABLE_FIELDS = ("name", "center", "radius_miles", "codes")


class PersistedConfigError(Exception):
    """The stored merchant blob (or the file holding it) cannot be parsed."""


# ═══════════════════════════════════════════════════════════════════════════
# 🏪 MERCHANT RECORD
# ═══════════════════════════════════════════════════════════════════════════


def _unique_codes(codes: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    """Insertion-ordered codes without duplicates."""
    return tuple(dict.fromkeys(str(c) for c in (codes or ())))


@dataclass(frozen=True)
class Merchant:
    """A merchant and its delivery-area inputs."""

    id: str
    name: str
    center: Tuple[float, float]  # (lat, lon)
    radius_miles: float
    codes: Tuple[str, ...] = ()
    # Unrecognised keys from a stored blob, written back unchanged
    extra: Dict[str, Any] = field(default_factory=dict)

    def has_code(self, code: str) -> bool:
        return code in self.codes

    def with_code_toggled(self, code: str) -> "Merchant":
        """Copy with ``code`` added (at the end) or removed."""
        if code in self.codes:
            return replace(self, codes=tuple(c for c in self.codes if c != code))
        return replace(self, codes=self.codes + (code,))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Merchant":
        """Create from a stored/default record (no schema validation)."""
        known = {"id", "name", "center", "radiusMiles", "codes"}
        center = d.get("center") or (0.0, 0.0)
        return cls(
            id=str(d["id"]),
            name=d.get("name", str(d["id"])),
            center=(float(center[0]), float(center[1])),
            radius_miles=float(d.get("radiusMiles", 0.0)),
            codes=_unique_codes(d.get("codes")),
            extra={k: v for k, v in d.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted/exported JSON shape."""
        return {
            **self.extra,
            "id": self.id,
            "name": self.name,
            "center": [self.center[0], self.center[1]],
            "radiusMiles": self.radius_miles,
            "codes": list(self.codes),
        }


# ═══════════════════════════════════════════════════════════════════════════
# 🔁 PURE REDUCERS
# ═══════════════════════════════════════════════════════════════════════════


def _coerce_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate field names and normalize value types for a patch."""
    unknown = sorted(set(fields) - set(PATCHABLE_FIELDS))
    if unknown:
        raise ValueError(f"Cannot patch merchant fields: {unknown}")

    coerced = dict(fields)
    if "center" in coerced:
        lat, lon = coerced["center"]
        coerced["center"] = (float(lat), float(lon))
    if "radius_miles" in coerced:
        coerced["radius_miles"] = float(coerced["radius_miles"])
    if "codes" in coerced:
        coerced["codes"] = _unique_codes(coerced["codes"])
    return coerced


def apply_patch(
    merchants: Sequence[Merchant],
    merchant_id: str,
    fields: Dict[str, Any],
) -> Tuple[Merchant, ...]:
    """Merge ``fields`` into the merchant with ``merchant_id``; others untouched."""
    coerced = _coerce_fields(fields)
    return tuple(
        replace(m, **coerced) if m.id == merchant_id else m for m in merchants
    )


def toggle_code_in(
    merchants: Sequence[Merchant],
    merchant_id: str,
    code: str,
) -> Tuple[Merchant, ...]:
    """Toggle ``code`` on the merchant with ``merchant_id``; others untouched."""
    return tuple(
        m.with_code_toggled(code) if m.id == merchant_id else m for m in merchants
    )


# ═══════════════════════════════════════════════════════════════════════════
# 💾 KEY-VALUE FILE
# ═══════════════════════════════════════════════════════════════════════════


class KeyValueStore:
    """
    String values under string keys in one JSON file.

    Writes go to a temp file and are swapped in with os.replace() while a
    filelock is held, so a crash never leaves a half-written file.
    """

    def __init__(self, path: Path, lock_timeout_s: float = 10.0) -> None:
        self.path = Path(path)
        self._lock = filelock.FileLock(str(self.path) + ".lock", timeout=lock_timeout_s)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise PersistedConfigError(f"Storage file {self.path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise PersistedConfigError(f"Storage file {self.path} is not a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        """Stored value, or None if the key is absent."""
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        if not self.path.exists():
            return
        with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


# ═══════════════════════════════════════════════════════════════════════════
# 📦 MERCHANT STORE
# ═══════════════════════════════════════════════════════════════════════════


class MerchantStore:
    """
    Ordered merchant list with one active merchant.

    The list is replaced (never mutated in place) by the reducers above, so a
    reader holding ``merchants`` always sees a consistent snapshot.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        storage_key: str,
        default_merchants: Sequence[Dict[str, Any]],
    ) -> None:
        """
        Load merchants from storage, or from the defaults on first run.

        Args:
            kv_store: Local key-value file
            storage_key: Fixed key holding the merchant blob
            default_merchants: Records restored on first run and on reset

        Raises:
            PersistedConfigError: Stored blob exists but cannot be parsed.
        """
        self._kv = kv_store
        self._key = storage_key
        self._defaults: Tuple[Merchant, ...] = tuple(
            Merchant.from_dict(d) for d in default_merchants
        )

        blob = self._kv.get_item(self._key)
        if blob:
            self._merchants = self._parse_blob(blob)
            logger.info(f"📂 Loaded {len(self._merchants)} merchants from '{self._key}'")
        else:
            self._merchants = self._defaults
            logger.info(f"Using {len(self._merchants)} default merchants")

        self._active_id: Optional[str] = self._defaults[0].id if self._defaults else None
        self._ensure_active_valid()

    def _parse_blob(self, blob: str) -> Tuple[Merchant, ...]:
        try:
            records = json.loads(blob)
            return tuple(Merchant.from_dict(d) for d in records)
        except (ValueError, TypeError, KeyError, IndexError) as e:
            raise PersistedConfigError(
                f"Stored merchant config under '{self._key}' is invalid: {e}"
            )

    # ═══════════════════════════════════════════════════════════════════════
    # 📖 READ ACCESS
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def merchants(self) -> Tuple[Merchant, ...]:
        return self._merchants

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Merchant]:
        """The active merchant (first merchant if the id is stale)."""
        return self.get(self._active_id) or (self._merchants[0] if self._merchants else None)

    @property
    def defaults(self) -> Tuple[Merchant, ...]:
        return self._defaults

    def get(self, merchant_id: Optional[str]) -> Optional[Merchant]:
        for m in self._merchants:
            if m.id == merchant_id:
                return m
        return None

    # ═══════════════════════════════════════════════════════════════════════
    # ✏️ MUTATIONS
    # ═══════════════════════════════════════════════════════════════════════

    def _set_merchants(self, merchants: Tuple[Merchant, ...]) -> None:
        """
        Persist the list, then replace it and repair the active id.

        A failed write leaves the in-memory list untouched.
        """
        self._persist(merchants)
        self._merchants = merchants
        self._ensure_active_valid()

    def _persist(self, merchants: Tuple[Merchant, ...]) -> None:
        blob = json.dumps([m.to_dict() for m in merchants])
        self._kv.set_item(self._key, blob)

    def _ensure_active_valid(self) -> None:
        if self.get(self._active_id) is None and self._merchants:
            logger.debug(
                f"Active merchant {self._active_id!r} missing, using {self._merchants[0].id!r}"
            )
            self._active_id = self._merchants[0].id

    def patch(self, **fields: Any) -> Merchant:
        """
        Merge fields into the active merchant only.

        Raises:
            ValueError: A field name is not patchable.
            LookupError: There is no merchant at all.
        """
        active = self.active
        if active is None:
            raise LookupError("No merchants to patch")
        self._set_merchants(apply_patch(self._merchants, active.id, fields))
        return self.get(active.id)

    def toggle_code(self, merchant_id: str, code: str) -> Merchant:
        """
        Toggle a district code on an explicit merchant.

        Raises:
            KeyError: Unknown merchant id.
        """
        if self.get(merchant_id) is None:
            raise KeyError(merchant_id)
        self._set_merchants(toggle_code_in(self._merchants, merchant_id, code))
        return self.get(merchant_id)

    def set_active(self, merchant_id: str) -> None:
        """
        Switch the active merchant; merchant data is untouched.

        Raises:
            KeyError: Unknown merchant id.
        """
        if self.get(merchant_id) is None:
            raise KeyError(merchant_id)
        self._active_id = merchant_id

    def reset(self) -> None:
        """Drop the persisted blob and restore the default merchants."""
        self._kv.remove_item(self._key)
        self._merchants = self._defaults
        self._active_id = self._defaults[0].id if self._defaults else None
        self._ensure_active_valid()
        logger.info(f"🔄 Reset to {len(self._defaults)} default merchants")

    def to_list(self) -> List[Dict[str, Any]]:
        """Merchant records in store order."""
        return [m.to_dict() for m in self._merchants]
