"""
Unit Tests: Rule Engine + Profil-Tabelle
=========================================

Prüfungen:
  - Präzedenz: Managed-Services-Core schlägt alles
  - Fingerprint-only Overrides (certified / stock)
  - Paket-Tabelle: exakter Match + Eignungs-Flags
  - Profil-Tabelle Validierung
"""

import pytest

from propguard.config import (
    PROFILE_COMPAT_XL,
    PROFILE_FLAGSHIP_CURRENT,
    PROFILE_FOLDABLE,
    PROFILE_LEGACY_BASELINE,
    PROFILE_MAINLINE,
    PROFILE_TABLE,
    validate_profile_table,
)
from propguard.engine.classifier import classify
from propguard.engine.rules import FLAGSHIP_PACKAGES, PROFILES, RuleEngine
from propguard.models.identity import ProcessIdentity
from propguard.models.policy import ConfigFlags, Decision, Rule, SpoofPath
from propguard.models.profile import AttributeKey, AttributeProfile

CERTIFIED_FP = "google/husky/husky:14/AP1A.240405.002/11480754:user/release-keys"
STOCK_FP = "google/oriole/oriole:14/AP2A.241005.015/12298734:user/release-keys"


@pytest.fixture(scope="module")
def engine() -> RuleEngine:
    return RuleEngine()


def _select(engine: RuleEngine, package: str, process: str = "", **flags) -> Decision:
    identity = ProcessIdentity(package_name=package, process_name=process or package)
    return engine.select(classify(identity), ConfigFlags(**flags))


# =============================================================================
# Test: Präzedenz
# =============================================================================

class TestPrecedence:

    def test_managed_services_core_uses_restart_aware_baseline(self, engine):
        decision = _select(engine, "com.google.android.gms", "com.google.android.gms.unstable")
        assert decision.path is SpoofPath.RESTART_AWARE
        assert decision.profile.name == PROFILE_LEGACY_BASELINE
        assert decision.rule == "managed-services-core"

    def test_core_wins_over_fingerprint_overrides(self, engine):
        """Auch mit gesetzten Fingerprint-Overrides läuft nur der Baseline-Pfad."""
        decision = _select(
            engine, "com.google.android.gms", "com.google.android.gms.persistent",
            certified_fingerprint=CERTIFIED_FP, stock_fingerprint=STOCK_FP,
        )
        assert decision.path is SpoofPath.RESTART_AWARE
        assert decision.profile.name == PROFILE_LEGACY_BASELINE

    def test_core_wins_over_package_table(self, engine):
        """Snapchat im instrumentation-Prozess: Core-Regel statt Paket-Tabelle."""
        decision = _select(
            engine, "com.snapchat.android", "com.snapchat.android:instrumentation",
            snapchat_spoof=True,
        )
        assert decision.profile.name == PROFILE_LEGACY_BASELINE

    def test_certified_fingerprint_wins_over_vending_table(self, engine):
        decision = _select(
            engine, "com.android.vending",
            certified_fingerprint=CERTIFIED_FP, vending_spoof=True,
        )
        assert decision.rule == "certified-fingerprint"
        assert decision.profile.values == {AttributeKey.FINGERPRINT: CERTIFIED_FP}

    def test_custom_rules_sorted_by_priority(self):
        low = Rule("low", 1, lambda c, f: True, PROFILES[PROFILE_MAINLINE])
        high = Rule("high", 10, lambda c, f: True, PROFILES[PROFILE_FOLDABLE])
        decision = RuleEngine([low, high]).select(
            classify(ProcessIdentity(package_name="a.b", process_name="a.b")), ConfigFlags(),
        )
        assert decision.rule == "high"


# =============================================================================
# Test: Fingerprint-only Overrides
# =============================================================================

class TestFingerprintOverrides:

    def test_certified_fingerprint_for_store_client(self, engine):
        decision = _select(engine, "com.android.vending", certified_fingerprint=CERTIFIED_FP)
        assert decision.path is SpoofPath.DIRECT
        assert len(decision.profile) == 1

    def test_certified_fingerprint_ignored_for_other_packages(self, engine):
        decision = _select(engine, "org.example.app", certified_fingerprint=CERTIFIED_FP)
        assert decision.is_noop

    def test_stock_fingerprint_for_arcore(self, engine):
        decision = _select(engine, "com.google.ar.core", stock_fingerprint=STOCK_FP)
        assert decision.rule == "stock-fingerprint"
        assert decision.profile.values == {AttributeKey.FINGERPRINT: STOCK_FP}

    def test_empty_fingerprint_means_disabled(self, engine):
        assert _select(engine, "com.google.ar.core", stock_fingerprint="").is_noop
        assert _select(engine, "com.android.vending", certified_fingerprint="").is_noop


# =============================================================================
# Test: Paket-Tabelle
# =============================================================================

class TestPackageTable:

    @pytest.mark.parametrize("package", FLAGSHIP_PACKAGES)
    def test_flagship_packages(self, engine, package):
        decision = _select(engine, package)
        assert decision.path is SpoofPath.DIRECT
        assert decision.profile.name == PROFILE_FLAGSHIP_CURRENT

    @pytest.mark.parametrize("package", [
        "com.google.android.apps.googleassistant",
        "com.google.android.googlequicksearchbox",
    ])
    def test_foldable_packages(self, engine, package):
        assert _select(engine, package).profile.name == PROFILE_FOLDABLE

    def test_exact_match_only(self, engine):
        """Substring eines Tabellen-Pakets darf nicht matchen."""
        assert _select(engine, "com.google.android.inputmethod.latin.dictionarypack").is_noop

    def test_gcam_only_on_pixel6_series(self, engine):
        assert _select(engine, "com.google.android.GoogleCamera", product_device="raven").profile.name == PROFILE_FLAGSHIP_CURRENT
        assert _select(engine, "com.google.android.GoogleCamera", product_device="redfin").is_noop

    def test_gphotos_default_is_pixel_xl(self, engine):
        assert _select(engine, "com.google.android.apps.photos").profile.name == PROFILE_COMPAT_XL

    def test_gphotos_mainline_on_legacy_model(self, engine):
        decision = _select(
            engine, "com.google.android.apps.photos",
            gphotos_spoof=False, product_model="Pixel 5",
        )
        assert decision.profile.name == PROFILE_MAINLINE

    def test_gphotos_noop_on_modern_pixel(self, engine):
        decision = _select(
            engine, "com.google.android.apps.photos",
            gphotos_spoof=False, product_model="Pixel 8 Pro",
        )
        assert decision.is_noop

    def test_vending_toggle(self, engine):
        assert _select(engine, "com.android.vending").is_noop
        assert _select(engine, "com.android.vending", vending_spoof=True).profile.name == PROFILE_MAINLINE

    def test_snapchat_toggle(self, engine):
        assert _select(engine, "com.snapchat.android").is_noop
        assert _select(engine, "com.snapchat.android", snapchat_spoof=True).profile.name == PROFILE_COMPAT_XL

    def test_excluded_package_is_noop(self, engine):
        assert _select(engine, "com.google.android.apps.miphone.aiai.AiaiApplication").is_noop

    def test_unknown_package_is_noop(self, engine):
        decision = _select(engine, "org.example.app")
        assert decision == Decision.noop()
        assert decision.path is SpoofPath.NONE


# =============================================================================
# Test: Profil-Tabelle
# =============================================================================

class TestProfileTable:

    def test_all_profiles_valid(self):
        assert set(validate_profile_table()) == set(PROFILE_TABLE)
        assert set(PROFILES) == set(PROFILE_TABLE)

    def test_baseline_profile_values(self):
        baseline = PROFILES[PROFILE_LEGACY_BASELINE]
        assert baseline.values[AttributeKey.DEVICE] == "walleye"
        assert baseline.values[AttributeKey.MODEL] == "Pixel 2"
        assert baseline.values[AttributeKey.FINGERPRINT].startswith("google/walleye/")
        assert baseline.values[AttributeKey.DEVICE_INITIAL_SDK_INT] == 26
        assert AttributeKey.BRAND not in baseline.values

    def test_invalid_entries_dropped(self):
        table = {
            "ok": dict(PROFILE_TABLE[PROFILE_MAINLINE]),
            "missing-model": {"DEVICE": "x", "PRODUCT": "x", "FINGERPRINT": "g/x/x:1/A/1:user/release-keys"},
            "fp-mismatch": {**PROFILE_TABLE[PROFILE_MAINLINE], "DEVICE": "husky"},
            "bad-sdk": {**PROFILE_TABLE[PROFILE_LEGACY_BASELINE], "DEVICE_INITIAL_SDK_INT": "26"},
        }
        assert list(validate_profile_table(table)) == ["ok"]

    def test_profile_rejects_non_int_sdk(self):
        with pytest.raises(ValueError):
            AttributeProfile(name="x", values={"DEVICE_INITIAL_SDK_INT": "26"})

    def test_profile_rejects_empty_value(self):
        with pytest.raises(ValueError):
            AttributeProfile(name="x", values={"MODEL": "  "})
