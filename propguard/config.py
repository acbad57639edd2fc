"""
PropGuard: Zentrale Konfiguration
==================================

Single Source of Truth für alle Paketnamen, Prozess-Marker, Property-Keys
und die statische Profil-Tabelle.
KEINE Laufzeit-Schalter hier, die kommen frisch aus dem Property Store.
"""

import logging
import os
from datetime import timezone
from pathlib import Path

# =============================================================================
# 0. Zeitzone für Log-Zeitstempel
# =============================================================================

LOCAL_TZ = timezone.utc

# =============================================================================
# 0b. Execution Mode: "local" (eingebettet) oder "adb" (Host-Diagnose)
# =============================================================================
# "local" = Engine läuft im Zielprozess, Stores sind In-Process Objekte
# "adb"   = Diagnose vom Laptop: Properties + Top-Activity via USB-ADB
EXECUTION_MODE: str = os.environ.get("PROPGUARD_MODE", "local")

# =============================================================================
# 1. Projekt-Pfade
# =============================================================================

PROJECT_ROOT = Path(__file__).resolve().parent.parent
LOG_FILE = Path(os.environ.get("PROPGUARD_LOG_FILE", PROJECT_ROOT / "propguard.log"))

# =============================================================================
# 2. Paketnamen
# =============================================================================

PACKAGE_GMS = "com.google.android.gms"
PACKAGE_GMS_RESTORE = "com.google.android.apps.restore"
PACKAGE_FINSKY = "com.android.vending"
PACKAGE_ARCORE = "com.google.ar.core"

PACKAGE_AIAI = "com.google.android.apps.miphone.aiai.AiaiApplication"
PACKAGE_GASSIST = "com.google.android.apps.googleassistant"
PACKAGE_GCAM = "com.google.android.GoogleCamera"
PACKAGE_GPHOTOS = "com.google.android.apps.photos"
PACKAGE_SUBSCRIPTION_RED = "com.google.android.apps.subscriptions.red"
PACKAGE_TURBO = "com.google.android.apps.turbo"
PACKAGE_VELVET = "com.google.android.googlequicksearchbox"
PACKAGE_GBOARD = "com.google.android.inputmethod.latin"
PACKAGE_SETUPWIZARD = "com.google.android.setupwizard"
PACKAGE_EMOJI_WALLPAPER = "com.google.android.apps.emojiwallpaper"
PACKAGE_CINEMATIC_PHOTOS = "com.google.android.wallpaper.effects"
PACKAGE_SNAPCHAT = "com.snapchat.android"

# Test-Harness Präfix (substring, case-insensitive)
ANDROIDX_TEST = "androidx.test"

# =============================================================================
# 3. Prozess-Marker (substring, case-insensitive)
# =============================================================================

PROCESS_GMS_UNSTABLE = "unstable"
PROCESS_GMS_PERSISTENT = "persistent"
PROCESS_GMS_PIXEL_MIGRATE = "pixelmigrate"
PROCESS_INSTRUMENTATION = "instrumentation"

# =============================================================================
# 4. Sensitive Screen + Attestation-Harness
# =============================================================================

# Account-Add Flow in GMS. Solange diese Activity oben liegt, wird NICHT gespooft.
GMS_ADD_ACCOUNT_ACTIVITY = (
    "com.google.android.gms/.auth.uiflows.minutemaid.MinuteMaidActivity"
)

# Klassen-/Modulname-Fragment der Attestation-Harness im Call-Stack
ATTESTATION_HARNESS_MARKER = "DroidGuard"

# =============================================================================
# 5. Property-Keys (Property Store, read-only für die Engine)
# =============================================================================

PROP_CERTIFIED_FINGERPRINT = "config_certifiedFingerprint"
PROP_STOCK_FINGERPRINT = "config_stockFingerprint"
PROP_PRODUCT_DEVICE = "ro.product.device"
PROP_PRODUCT_MODEL = "ro.product.model"
PROP_GPHOTOS_SPOOF = "persist.sys.pixelprops.gphotos"
PROP_GPHOTOS_HOOKS = "persist.sys.gphooks.enable"
PROP_VENDING_SPOOF = "persist.sys.vending.enable"
PROP_SNAPCHAT_SPOOF = "persist.sys.snap.enable"

# Settings.Secure Key: komma-separierte Liste von Apps
SETTING_HIDE_DEVELOPER_STATUS = "hide_developer_status"

# Settings.Global Keys, die vor gelisteten Apps versteckt werden
DEVELOPER_STATUS_SETTINGS = frozenset({
    "adb_enabled",
    "adb_wifi_enabled",
    "development_settings_enabled",
})

# Launcher-Pakete (config_launcherPackages), dürfen Task-Permissions umgehen
LAUNCHER_PACKAGES = frozenset({
    "com.google.android.apps.nexuslauncher",
    "com.android.launcher3",
})

# =============================================================================
# 6. Geräte-Eignung
# =============================================================================

# Codenames der Pixel 6 Serie (GCam Spoof nur auf diesen Geräten)
PIXEL6_SERIES = frozenset({"bluejay", "oriole", "raven"})

# Modelle, die selbst aktuell genug sind (kein Mainline-Spoof für Photos)
MODERN_PIXEL_MODEL_PATTERN = r"Pixel [6-9][a-zA-Z ]*"

# =============================================================================
# 7. Profil-Tabelle
#    Jeder Eintrag muss intern konsistent sein (device ↔ product ↔ fingerprint).
#    Keys entsprechen models.profile.AttributeKey.
# =============================================================================

PROFILE_LEGACY_BASELINE = "legacy-baseline"
PROFILE_FLAGSHIP_CURRENT = "flagship-current"
PROFILE_FOLDABLE = "foldable"
PROFILE_COMPAT_XL = "compat-xl"
PROFILE_MAINLINE = "mainline"

_config_logger = logging.getLogger("propguard.config")


def _google_spoof_props(device: str, model: str, fingerprint: str) -> dict[str, str]:
    return {
        "BRAND": "google",
        "MANUFACTURER": "Google",
        "DEVICE": device,
        "PRODUCT": device,
        "MODEL": model,
        "FINGERPRINT": fingerprint,
    }


PROFILE_TABLE: dict[str, dict[str, str | int]] = {
    # -----------------------------------------------------------------
    # Pixel 2 (walleye): Android 8.1, vor Hardware-Attestation-Pflicht.
    # Nur diese fünf Felder, BRAND/MANUFACTURER bleiben echt.
    # DEVICE_INITIAL_SDK_INT=26 (Android O ab Werk)
    # -----------------------------------------------------------------
    PROFILE_LEGACY_BASELINE: {
        "DEVICE": "walleye",
        "FINGERPRINT": "google/walleye/walleye:8.1.0/OPM1.171019.011/4448085:user/release-keys",
        "MODEL": "Pixel 2",
        "PRODUCT": "walleye",
        "DEVICE_INITIAL_SDK_INT": 26,
    },
    # Pixel 7 Pro (cheetah): Android 13
    PROFILE_FLAGSHIP_CURRENT: _google_spoof_props(
        "cheetah", "Pixel 7 Pro",
        "google/cheetah/cheetah:13/TQ3A.230705.001/10216780:user/release-keys",
    ),
    # Pixel Fold (felix): Android 13
    PROFILE_FOLDABLE: _google_spoof_props(
        "felix", "Pixel Fold",
        "google/felix/felix:13/TQ3C.230705.001.C2/10334521:user/release-keys",
    ),
    # Pixel XL (marlin): Android 10, unbegrenzter Photos-Speicher
    PROFILE_COMPAT_XL: _google_spoof_props(
        "marlin", "Pixel XL",
        "google/marlin/marlin:10/QP1A.191005.007.A3/5972272:user/release-keys",
    ),
    # Pixel 9 Pro XL (komodo): Android 15
    PROFILE_MAINLINE: _google_spoof_props(
        "komodo", "Pixel 9 Pro XL",
        "google/komodo/komodo:15/AP4A.241205.013/12621605:user/release-keys",
    ),
}

# Pflichtfelder für ein vollständiges Hardware-Profil
PROFILE_REQUIRED_KEYS = frozenset({"DEVICE", "MODEL", "FINGERPRINT", "PRODUCT"})


def validate_profile_table(
    table: dict[str, dict[str, str | int]] | None = None,
) -> dict[str, dict[str, str | int]]:
    """
    Validiert die Profil-Tabelle auf interne Konsistenz.

    Prüfungen pro Eintrag:
      1. Alle Pflichtfelder vorhanden und nicht leer
      2. FINGERPRINT enthält "/<DEVICE>/" (Gerät passt zum Fingerprint)
      3. DEVICE_INITIAL_SDK_INT ist, falls gesetzt, ein int

    Args:
        table: Tabelle zum Validieren (Default: PROFILE_TABLE)

    Returns:
        Die validen Einträge. Ungültige Einträge werden geloggt und übersprungen.
    """
    if table is None:
        table = PROFILE_TABLE

    valid: dict[str, dict[str, str | int]] = {}

    for name, entry in table.items():
        missing = PROFILE_REQUIRED_KEYS - {
            k for k, v in entry.items() if isinstance(v, str) and v.strip()
        }
        if missing:
            _config_logger.error(
                "PROFILE INVALID: %s — Fehlende Felder: %s", name, sorted(missing),
            )
            continue

        device = str(entry["DEVICE"])
        if f"/{device}/" not in str(entry["FINGERPRINT"]):
            _config_logger.error(
                "PROFILE INVALID: %s — FINGERPRINT passt nicht zu DEVICE '%s'",
                name, device,
            )
            continue

        sdk = entry.get("DEVICE_INITIAL_SDK_INT")
        if sdk is not None and (isinstance(sdk, bool) or not isinstance(sdk, int)):
            _config_logger.error(
                "PROFILE INVALID: %s — DEVICE_INITIAL_SDK_INT muss int sein, bekam %r",
                name, sdk,
            )
            continue

        valid[name] = entry

    _config_logger.debug(
        "Profil-Tabelle: %d/%d Einträge valide", len(valid), len(table),
    )
    return valid


# =============================================================================
# 8. Timing
# =============================================================================

class TIMING:
    """Wartezeiten für Restart und Host-Adapter."""
    RESTART_DELAY_SECONDS = 1.0         # Kurze Pause bevor der Prozess gekillt wird
    TASK_POLL_INTERVAL = 1.5            # ADB-Modus: Top-Activity Polling
    ADB_COMMAND_TIMEOUT = 30            # Timeout für einzelne ADB-Befehle


# =============================================================================
# 9. FastAPI Server (Diagnose)
# =============================================================================

API_HOST = "127.0.0.1"
API_PORT = 8000
API_TITLE = "PropGuard Diagnostics"
API_VERSION = "1.0.0"

# ADB-Modus: welcher Prozess auf dem Gerät simuliert wird (GET /api/policy/status)
TARGET_PACKAGE: str = os.environ.get("PROPGUARD_TARGET_PACKAGE", "com.google.android.gms")
TARGET_PROCESS: str = os.environ.get("PROPGUARD_TARGET_PROCESS", "com.google.android.gms.unstable")
ADB_SERIAL: str = os.environ.get("PROPGUARD_ADB_SERIAL", "")
