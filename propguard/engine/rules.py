"""
Rule Engine
============

Wählt für eine Klassifikation + ConfigFlags höchstens EIN Profil.

Präzedenz (höchste zuerst, first match wins, Auswertung stoppt dort):
  1. Managed-Services-Core   → legacy-baseline über den Restart-Aware Pfad
  2. Certified Fingerprint   → Play Store, nur FINGERPRINT
  3. Stock Fingerprint       → ARCore, nur FINGERPRINT
  4. Paket-Tabelle (exakter Paketname + Eignungs-Flag) → volles Profil
  5. sonst no-op

Spezifische, riskante Overrides (Account-/Verifikations-Flows) gewinnen
immer gegen generisches Marketing-Spoofing.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from propguard.config import (
    MODERN_PIXEL_MODEL_PATTERN,
    PACKAGE_ARCORE,
    PACKAGE_CINEMATIC_PHOTOS,
    PACKAGE_EMOJI_WALLPAPER,
    PACKAGE_FINSKY,
    PACKAGE_GASSIST,
    PACKAGE_GBOARD,
    PACKAGE_GCAM,
    PACKAGE_GMS,
    PACKAGE_GPHOTOS,
    PACKAGE_SETUPWIZARD,
    PACKAGE_SNAPCHAT,
    PACKAGE_SUBSCRIPTION_RED,
    PACKAGE_TURBO,
    PACKAGE_VELVET,
    PIXEL6_SERIES,
    PROFILE_COMPAT_XL,
    PROFILE_FLAGSHIP_CURRENT,
    PROFILE_FOLDABLE,
    PROFILE_LEGACY_BASELINE,
    PROFILE_MAINLINE,
)
from propguard.models.identity import Classification
from propguard.models.policy import ConfigFlags, Decision, Predicate, Rule, SpoofPath
from propguard.models.profile import AttributeKey, AttributeProfile, load_profiles

logger = logging.getLogger("propguard.rules")

PRIORITY_MANAGED_SERVICES = 100
PRIORITY_CERTIFIED_FINGERPRINT = 90
PRIORITY_STOCK_FINGERPRINT = 80
PRIORITY_PACKAGE_TABLE = 50

PROFILES: dict[str, AttributeProfile] = load_profiles()

# Pakete, die immer als Pixel 7 Pro erscheinen
FLAGSHIP_PACKAGES = (
    PACKAGE_SUBSCRIPTION_RED,
    PACKAGE_TURBO,
    PACKAGE_GBOARD,
    PACKAGE_SETUPWIZARD,
    PACKAGE_GMS,
    PACKAGE_EMOJI_WALLPAPER,
    PACKAGE_CINEMATIC_PHOTOS,
)

# Pakete, die als Pixel Fold erscheinen
FOLDABLE_PACKAGES = (
    PACKAGE_GASSIST,
    PACKAGE_VELVET,
)

_MODERN_PIXEL = re.compile(MODERN_PIXEL_MODEL_PATTERN)


# =============================================================================
# Predicates
# =============================================================================

def _for_package(package: str, eligible: Optional[Predicate] = None) -> Predicate:
    """Exakter Paket-Match (kein Substring) plus optionales Eignungs-Flag."""
    def predicate(c: Classification, flags: ConfigFlags) -> bool:
        if c.package_name != package:
            return False
        return eligible is None or eligible(c, flags)
    return predicate


def _is_pixel6_series(c: Classification, flags: ConfigFlags) -> bool:
    return flags.product_device in PIXEL6_SERIES


def _gphotos_xl_enabled(c: Classification, flags: ConfigFlags) -> bool:
    return flags.gphotos_spoof or flags.gphotos_hooks


def _is_legacy_model(c: Classification, flags: ConfigFlags) -> bool:
    return _MODERN_PIXEL.fullmatch(flags.product_model) is None


def _fingerprint_override(name: str, attr: str):
    def factory(flags: ConfigFlags) -> AttributeProfile:
        return AttributeProfile.single(name, AttributeKey.FINGERPRINT, getattr(flags, attr))
    return factory


# =============================================================================
# Default-Regeltabelle
# =============================================================================

def build_default_rules(profiles: Optional[dict[str, AttributeProfile]] = None) -> list[Rule]:
    profiles = profiles if profiles is not None else PROFILES
    rules = [
        Rule(
            name="managed-services-core",
            priority=PRIORITY_MANAGED_SERVICES,
            predicate=lambda c, f: c.is_managed_services_core,
            profile=profiles[PROFILE_LEGACY_BASELINE],
            path=SpoofPath.RESTART_AWARE,
        ),
        Rule(
            name="certified-fingerprint",
            priority=PRIORITY_CERTIFIED_FINGERPRINT,
            predicate=lambda c, f: bool(f.certified_fingerprint) and c.is_store_client,
            profile=_fingerprint_override("certified-fingerprint", "certified_fingerprint"),
        ),
        Rule(
            name="stock-fingerprint",
            priority=PRIORITY_STOCK_FINGERPRINT,
            predicate=lambda c, f: bool(f.stock_fingerprint) and c.package_name == PACKAGE_ARCORE,
            profile=_fingerprint_override("stock-fingerprint", "stock_fingerprint"),
        ),
        Rule(
            name=f"package:{PACKAGE_GCAM}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(PACKAGE_GCAM, _is_pixel6_series),
            profile=profiles[PROFILE_FLAGSHIP_CURRENT],
        ),
    ]
    rules += [
        Rule(
            name=f"package:{package}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(package),
            profile=profiles[PROFILE_FLAGSHIP_CURRENT],
        )
        for package in FLAGSHIP_PACKAGES
    ]
    rules += [
        Rule(
            name=f"package:{package}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(package),
            profile=profiles[PROFILE_FOLDABLE],
        )
        for package in FOLDABLE_PACKAGES
    ]
    rules += [
        Rule(
            name=f"package:{PACKAGE_GPHOTOS}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(PACKAGE_GPHOTOS, _gphotos_xl_enabled),
            profile=profiles[PROFILE_COMPAT_XL],
        ),
        Rule(
            name=f"package:{PACKAGE_GPHOTOS}:mainline",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(PACKAGE_GPHOTOS, _is_legacy_model),
            profile=profiles[PROFILE_MAINLINE],
        ),
        Rule(
            name=f"package:{PACKAGE_FINSKY}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(PACKAGE_FINSKY, lambda c, f: f.vending_spoof),
            profile=profiles[PROFILE_MAINLINE],
        ),
        Rule(
            name=f"package:{PACKAGE_SNAPCHAT}",
            priority=PRIORITY_PACKAGE_TABLE,
            predicate=_for_package(PACKAGE_SNAPCHAT, lambda c, f: f.snapchat_spoof),
            profile=profiles[PROFILE_COMPAT_XL],
        ),
    ]
    return rules


# =============================================================================
# Rule Engine
# =============================================================================

class RuleEngine:
    """
    Wertet Regeln in strikter Präzedenz aus.

    Usage:
        engine = RuleEngine()
        decision = engine.select(classify(identity), ConfigFlags.load(props))
        if decision.path is SpoofPath.RESTART_AWARE: ...
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        # sorted() ist stabil: gleiche Priorität behält Tabellen-Reihenfolge
        self._rules = sorted(
            rules if rules is not None else build_default_rules(),
            key=lambda r: r.priority,
            reverse=True,
        )

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules)

    def select(self, classification: Classification, flags: ConfigFlags) -> Decision:
        if classification.is_excluded:
            logger.debug("[%s] Paket ausgeschlossen → no-op", classification.process_name)
            return Decision.noop()

        if not classification.package_name:
            return Decision.noop()

        for rule in self._rules:
            if not rule.matches(classification, flags):
                continue
            profile = rule.resolve(flags)
            logger.debug(
                "[%s] Regel %s → Profil %s (%s) für %s",
                classification.process_name, rule.name, profile.name,
                rule.path.value, classification.package_name,
            )
            return Decision(rule=rule.name, profile=profile, path=rule.path)

        return Decision.noop()
