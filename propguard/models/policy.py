"""
Policy Models
==============

Laufzeit-Schalter, Regel-Entscheidungen und Monitor-Zustand.

  1. ConfigFlags       — frischer Snapshot des Property Stores pro Auswertung
  2. Rule / Decision   — Regel-Tabelle und Ergebnis der Rule Engine
  3. ApplyReport       — was der Applier tatsächlich geschrieben hat
  4. MonitorState      — Zustand des Foreground Task Monitors
  5. Restart           — Kommando des Monitors an den Supervisor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, Union

from pydantic import BaseModel, Field

from propguard.config import (
    PROP_CERTIFIED_FINGERPRINT,
    PROP_GPHOTOS_HOOKS,
    PROP_GPHOTOS_SPOOF,
    PROP_PRODUCT_DEVICE,
    PROP_PRODUCT_MODEL,
    PROP_SNAPCHAT_SPOOF,
    PROP_STOCK_FINGERPRINT,
    PROP_VENDING_SPOOF,
)
from propguard.models.identity import Classification
from propguard.models.profile import AttributeKey, AttributeProfile


# =============================================================================
# Enums
# =============================================================================

class SpoofPath(str, Enum):
    """Über welchen Pfad ein Profil angewendet wird."""
    RESTART_AWARE = "restart-aware"     # GMS: Foreground-Monitor + Restart
    DIRECT = "direct"                   # Einmalig beim Prozess-Start
    NONE = "none"                       # No-op


class MonitorStatus(str, Enum):
    """Lifecycle des Foreground Task Monitors."""
    UNMONITORED = "unmonitored"
    MONITORING = "monitoring"


# =============================================================================
# Config Flags
# =============================================================================

class PropertyReader(Protocol):
    def get(self, key: str, default: str = "") -> str: ...

    def get_bool(self, key: str, default: bool = False) -> bool: ...


class ConfigFlags(BaseModel):
    """
    Laufzeit-Schalter aus dem Property Store.

    Leere Strings bedeuten "Feature aus". Wird pro Auswertung neu gelesen,
    nie über eine Auswertung hinaus gecacht.
    """

    certified_fingerprint: str = ""
    stock_fingerprint: str = ""
    product_device: str = ""
    product_model: str = ""
    gphotos_spoof: bool = True
    gphotos_hooks: bool = False
    vending_spoof: bool = False
    snapchat_spoof: bool = False

    model_config = {"frozen": True}

    @classmethod
    def load(cls, store: PropertyReader) -> ConfigFlags:
        return cls(
            certified_fingerprint=store.get(PROP_CERTIFIED_FINGERPRINT).strip(),
            stock_fingerprint=store.get(PROP_STOCK_FINGERPRINT).strip(),
            product_device=store.get(PROP_PRODUCT_DEVICE).strip(),
            product_model=store.get(PROP_PRODUCT_MODEL).strip(),
            gphotos_spoof=store.get_bool(PROP_GPHOTOS_SPOOF, True),
            gphotos_hooks=store.get_bool(PROP_GPHOTOS_HOOKS, False),
            vending_spoof=store.get_bool(PROP_VENDING_SPOOF, False),
            snapchat_spoof=store.get_bool(PROP_SNAPCHAT_SPOOF, False),
        )


# =============================================================================
# Rules & Decisions
# =============================================================================

Predicate = Callable[[Classification, ConfigFlags], bool]
ProfileFactory = Callable[[ConfigFlags], AttributeProfile]


@dataclass(frozen=True)
class Rule:
    """
    Eine Zeile der Regel-Tabelle.

    profile ist entweder ein festes Profil oder eine Factory, die das Profil
    aus den Flags baut (Fingerprint-only Overrides).
    """
    name: str
    priority: int
    predicate: Predicate
    profile: Union[AttributeProfile, ProfileFactory]
    path: SpoofPath = SpoofPath.DIRECT

    def matches(self, classification: Classification, flags: ConfigFlags) -> bool:
        return self.predicate(classification, flags)

    def resolve(self, flags: ConfigFlags) -> AttributeProfile:
        if isinstance(self.profile, AttributeProfile):
            return self.profile
        return self.profile(flags)


@dataclass(frozen=True)
class Decision:
    """Ergebnis der Rule Engine: höchstens ein Profil + Pfad."""
    rule: Optional[str] = None
    profile: Optional[AttributeProfile] = None
    path: SpoofPath = SpoofPath.NONE

    @classmethod
    def noop(cls) -> Decision:
        return cls()

    @property
    def is_noop(self) -> bool:
        return self.profile is None


@dataclass
class ApplyReport:
    """Ergebnis eines Applier-Durchlaufs (best effort, nicht transaktional)."""
    profile: str = ""
    applied: list[AttributeKey] = field(default_factory=list)
    unchanged: list[AttributeKey] = field(default_factory=list)
    failed: list[AttributeKey] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


# =============================================================================
# Monitor
# =============================================================================

@dataclass
class MonitorState:
    """Zuletzt beobachteter Sensitive-Screen Zustand."""
    was_on_sensitive_screen: bool = False


@dataclass(frozen=True)
class Restart:
    """
    Kommando: aktuellen Prozess beenden, damit er neu startet.

    Wird vom Monitor erzeugt, ausgeführt vom Supervisor (ProcessControl).
    """
    reason: str
    was_on_sensitive_screen: bool
    is_on_sensitive_screen: bool


# =============================================================================
# Attestation
# =============================================================================

class AttestationVerdict(BaseModel):
    """Punkt-Entscheidung des Attestation Guards."""
    allowed: bool = Field(..., description="False = Aufruf muss scheitern")
    reason: str = Field(default="", description="Warum blockiert wurde")

    model_config = {"frozen": True}
