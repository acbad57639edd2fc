"""
Fehler-Taxonomie der Policy-Engine.

Nur RestrictedAttestationCall darf den Host-Prozess erreichen; alle anderen
Fehler werden von der Engine geloggt und übersprungen.
"""


class PropGuardError(Exception):
    """Basis-Exception für alle PropGuard-Fehler."""


class AttributeWriteFailed(PropGuardError):
    """Attribut-Slot nicht gefunden oder Store lehnt den Schreibzugriff ab."""

    def __init__(self, key: str, message: str = ""):
        self.key = key
        super().__init__(message or f"Schreiben von {key} fehlgeschlagen")


class ForegroundQueryFailed(PropGuardError):
    """Top-of-Stack Abfrage beim Host fehlgeschlagen."""


class RestrictedAttestationCall(PropGuardError, NotImplementedError):
    """Key-Attestation für diesen Aufrufer gesperrt (unsupported operation)."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Key-Attestation blockiert: {reason}")
