"""
Property Store
===============

Read-only Zugriff der Engine auf System-Properties und Settings.

Implementierungen:
  - DictPropertyStore  — In-Process Map (eingebettet + Tests)
  - AdbPropertySource  — lädt einen Snapshot via `adb shell getprop`

Boolean-Parsing folgt SystemProperties.getBoolean:
  "1", "y", "yes", "on", "true"   → True
  "0", "n", "no", "off", "false"  → False
  alles andere                    → Default
"""

from __future__ import annotations

import logging
import re
import threading
from typing import Mapping, Optional, Protocol

from propguard.device.client import ADBClient, ADBError

logger = logging.getLogger("propguard.props")

_TRUE_VALUES = frozenset({"1", "y", "yes", "on", "true"})
_FALSE_VALUES = frozenset({"0", "n", "no", "off", "false"})

# Format einer getprop-Zeile: [ro.product.device]: [oriole]
_GETPROP_LINE = re.compile(r"^\[(?P<key>[^\]]+)\]:\s*\[(?P<value>.*)\]$")


def parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def parse_int(value: Optional[str], default: int) -> int:
    """Leere oder nicht numerische Werte → default (geloggt)."""
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError:
        logger.warning("Property nicht numerisch: %r → %d", value, default)
        return default


class PropertyStore(Protocol):
    def get(self, key: str, default: str = "") -> str: ...

    def get_bool(self, key: str, default: bool = False) -> bool: ...

    def put(self, key: str, value: str) -> None: ...


class DictPropertyStore:
    """Thread-sichere In-Process Property Map."""

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: dict[str, str] = dict(values or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: str = "") -> str:
        with self._lock:
            value = self._values.get(key)
        return default if value is None else value

    def get_bool(self, key: str, default: bool = False) -> bool:
        with self._lock:
            value = self._values.get(key)
        return parse_bool(value, default)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._values)


def parse_getprop_output(output: str) -> dict[str, str]:
    """Parst die Ausgabe von `getprop` (ohne Argumente) in ein dict."""
    props: dict[str, str] = {}
    for line in output.splitlines():
        match = _GETPROP_LINE.match(line.strip())
        if match:
            props[match.group("key")] = match.group("value")
    return props


class AdbPropertySource:
    """
    Lädt alle Properties eines per ADB verbundenen Geräts.

    Usage:
        source = AdbPropertySource(ADBClient())
        store = await source.load()
        store.get("ro.product.device")
    """

    def __init__(self, adb: ADBClient):
        self._adb = adb

    async def load(self, extra: Optional[Mapping[str, str]] = None) -> DictPropertyStore:
        """
        Snapshot aller Properties; `extra` überschreibt einzelne Keys
        (z.B. Resource-Strings, die getprop nicht kennt).

        Raises:
            ADBError: wenn getprop fehlschlägt
        """
        result = await self._adb.shell("getprop", check=True)
        props = parse_getprop_output(result.stdout)
        if not props:
            raise ADBError("getprop lieferte keine Properties")
        if extra:
            props.update(extra)
        logger.info("Property-Snapshot geladen: %d Keys", len(props))
        return DictPropertyStore(props)
