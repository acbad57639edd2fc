"""
Process Classifier
===================

Leitet aus Paket- und Prozessname die Policy-Kategorie ab.

Reine Funktion: keine Seiteneffekte, wirft nie. Unbekannte Namen ergeben
eine all-false Klassifikation.

Operator-Präzedenz für is_managed_services_core (bewusst 1:1 erhalten):

    (paket_match AND "unstable") OR "persistent" OR "pixelmigrate" OR "instrumentation"

Die drei letzten Prozess-Marker greifen also auch ohne Paket-Match.
Ausnahme: das ausgeschlossene Paket (PACKAGE_AIAI) bekommt nur is_excluded,
alle anderen Tags bleiben False.
"""

from __future__ import annotations

import logging

from propguard.config import (
    ANDROIDX_TEST,
    PACKAGE_AIAI,
    PACKAGE_FINSKY,
    PACKAGE_GMS,
    PACKAGE_GMS_RESTORE,
    PROCESS_GMS_PERSISTENT,
    PROCESS_GMS_PIXEL_MIGRATE,
    PROCESS_GMS_UNSTABLE,
    PROCESS_INSTRUMENTATION,
)
from propguard.models.identity import Classification, ProcessIdentity

logger = logging.getLogger("propguard.classifier")


def is_managed_services_package(package_name: str) -> bool:
    """GMS, GMS-Restore oder ein androidx.test Harness."""
    return (
        ANDROIDX_TEST in package_name.lower()
        or package_name == PACKAGE_GMS_RESTORE
        or package_name == PACKAGE_GMS
    )


def classify(identity: ProcessIdentity) -> Classification:
    if not identity.is_available:
        logger.debug("Identität nicht verfügbar (%r/%r) → no-op",
                     identity.package_name, identity.process_name)
        return Classification.empty()

    package = identity.package_name
    if package == PACKAGE_AIAI:
        logger.debug("[%s] Paket ausgeschlossen → keine weiteren Tags", identity.process_name)
        return Classification(
            package_name=package,
            process_name=identity.process_name,
            is_excluded=True,
        )

    process = identity.process_name.lower()

    is_gms = (
        is_managed_services_package(package) and PROCESS_GMS_UNSTABLE in process
        or PROCESS_GMS_PERSISTENT in process
        or PROCESS_GMS_PIXEL_MIGRATE in process
        or PROCESS_INSTRUMENTATION in process
    )

    return Classification(
        package_name=package,
        process_name=identity.process_name,
        is_managed_services_core=is_gms,
        is_store_client=package == PACKAGE_FINSKY,
    )
