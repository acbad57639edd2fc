"""
Identity Models
================

Pydantic-Modelle für die Prozess-Identität und ihre Klassifikation.

Zwei Schichten:
  1. ProcessIdentity — Paket- und Prozessname, einmal pro Prozess erfasst
  2. Classification  — abgeleitete Tags, einmal berechnet, danach unveränderlich
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ProcessIdentity(BaseModel):
    """
    Paket- und Prozessname des laufenden Prozesses.

    Beide Felder dürfen leer sein (Host konnte sie nicht liefern).
    Dann ist die Identität nicht verfügbar und die Engine macht nichts.
    """

    package_name: str = Field(default="", description="z.B. com.google.android.gms")
    process_name: str = Field(default="", description="z.B. com.google.android.gms.unstable")

    model_config = {"frozen": True}

    @property
    def is_available(self) -> bool:
        return bool(self.package_name) and bool(self.process_name)


class Classification(BaseModel):
    """Policy-Kategorie des aktuellen Prozesses."""

    package_name: str = ""
    process_name: str = ""
    is_managed_services_core: bool = False
    is_store_client: bool = False
    is_excluded: bool = False

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> Classification:
        """All-false Klassifikation (unbekannter oder fehlender Prozess)."""
        return cls()

    @property
    def is_classified(self) -> bool:
        return self.is_managed_services_core or self.is_store_client
