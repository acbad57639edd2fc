"""
Attribute Override Applier
===========================

Schreibt ein Profil in den Attribute Store.

Jeder Key ist unabhängig (best effort, nicht transaktional):
  - Wert bereits gleich         → unchanged, kein Schreibzugriff
  - Schreiben schlägt fehl      → geloggt, failed, weiter mit dem nächsten Key
  - sonst                       → applied

Muss laufen, bevor irgendein anderer Code die Attribute liest. Dafür sorgt
der Aufrufer (frühester Init-Hook des Prozesses).
"""

from __future__ import annotations

import logging

from propguard.device.build import AttributeStore
from propguard.errors import AttributeWriteFailed
from propguard.models.policy import ApplyReport
from propguard.models.profile import AttributeProfile

logger = logging.getLogger("propguard.applier")


class AttributeApplier:

    def __init__(self, store: AttributeStore, process_name: str = ""):
        self._store = store
        self._process_name = process_name

    def apply(self, profile: AttributeProfile) -> ApplyReport:
        report = ApplyReport(profile=profile.name)

        for key, value in profile.items():
            try:
                if self._store.get(key) == value:
                    report.unchanged.append(key)
                    continue
                logger.debug("[%s] Setze %s auf %s", self._process_name, key.value, value)
                self._store.override(key, value)
                report.applied.append(key)
            except AttributeWriteFailed as e:
                logger.error("[%s] Setzen von %s fehlgeschlagen: %s",
                             self._process_name, key.value, e)
                report.failed.append(key)

        logger.info(
            "[%s] Profil %s: %d gesetzt, %d unverändert, %d fehlgeschlagen",
            self._process_name, profile.name,
            len(report.applied), len(report.unchanged), len(report.failed),
        )
        return report
