"""
Attribute Store (Build-Felder)
===============================

Prozessweiter, veränderlicher Speicher der aktuell exponierten
Geräte-Identität. Konsumenten lesen nur; die Engine schreibt über die
explizite override()-Fähigkeit, einmal pro Prozess-Inkarnation.

Slots, die der Host nicht kennt (nicht im Store angelegt), oder die er
sperrt, lösen AttributeWriteFailed aus.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Mapping, Optional, Protocol

from propguard.errors import AttributeWriteFailed
from propguard.models.profile import AttributeKey, AttributeValue

logger = logging.getLogger("propguard.build")


class AttributeStore(Protocol):
    def get(self, key: AttributeKey) -> Optional[AttributeValue]: ...

    def override(self, key: AttributeKey, value: AttributeValue) -> None: ...


class BuildAttributeStore:
    """
    In-Process Attribute Store.

    Usage:
        store = BuildAttributeStore({"DEVICE": "oriole", "MODEL": "Pixel 6"})
        store.override(AttributeKey.MODEL, "Pixel 2")
        store.get(AttributeKey.MODEL)   # "Pixel 2"
        store.writes                    # 1
    """

    def __init__(
        self,
        values: Optional[Mapping[AttributeKey | str, AttributeValue]] = None,
        locked: Iterable[AttributeKey | str] = (),
    ):
        self._values: dict[AttributeKey, AttributeValue] = {
            AttributeKey(k): v for k, v in (values or {}).items()
        }
        self._locked = frozenset(AttributeKey(k) for k in locked)
        self._lock = threading.Lock()
        self._writes = 0

    @classmethod
    def from_device(cls, device: str, model: str, fingerprint: str, sdk: int) -> BuildAttributeStore:
        """Store mit allen Slots, vorbelegt mit den echten Gerätewerten."""
        return cls({
            AttributeKey.BRAND: "google",
            AttributeKey.MANUFACTURER: "Google",
            AttributeKey.DEVICE: device,
            AttributeKey.PRODUCT: device,
            AttributeKey.MODEL: model,
            AttributeKey.FINGERPRINT: fingerprint,
            AttributeKey.DEVICE_INITIAL_SDK_INT: sdk,
        })

    @property
    def writes(self) -> int:
        return self._writes

    def get(self, key: AttributeKey) -> Optional[AttributeValue]:
        with self._lock:
            return self._values.get(key)

    def override(self, key: AttributeKey, value: AttributeValue) -> None:
        with self._lock:
            if key not in self._values:
                raise AttributeWriteFailed(key.value, f"Slot {key.value} existiert nicht")
            if key in self._locked:
                raise AttributeWriteFailed(key.value, f"Slot {key.value} ist gesperrt")
            self._values[key] = value
            self._writes += 1

    def snapshot(self) -> dict[str, AttributeValue]:
        with self._lock:
            return {k.value: v for k, v in self._values.items()}
