"""
Attestation Guard
==================

Wird synchron an der einzigen Stelle aufgerufen, die eine Zertifikatskette
für Key-Attestation holt.

Blockiert wenn:
  a) Managed-Services-Core UND ein Frame im aktuellen Call-Stack stammt aus
     der Attestation-Harness (Name enthält ATTESTATION_HARNESS_MARKER), oder
  b) Store-Client.

Punkt-Entscheidung pro Aufruf, nie gecacht: der Call-Stack ist jedes Mal
ein anderer.
"""

from __future__ import annotations

import inspect
import logging
import traceback
from typing import Iterable, Iterator, Optional

from propguard.config import ATTESTATION_HARNESS_MARKER
from propguard.errors import RestrictedAttestationCall
from propguard.models.identity import Classification
from propguard.models.policy import AttestationVerdict

logger = logging.getLogger("propguard.guard")


def current_stack_units() -> Iterator[str]:
    """Modul + qualifizierter Name jedes Frames, innerster zuerst."""
    for frame, _ in traceback.walk_stack(inspect.currentframe()):
        code = frame.f_code
        qualname = getattr(code, "co_qualname", code.co_name)
        yield f"{frame.f_globals.get('__name__', '')}.{qualname}"


class AttestationGuard:

    def __init__(
        self,
        classification: Classification,
        marker: str = ATTESTATION_HARNESS_MARKER,
    ):
        self._classification = classification
        self._marker = marker

    def _caller_is_harness(self, stack: Optional[Iterable[str]]) -> bool:
        units = stack if stack is not None else current_stack_units()
        return any(self._marker in unit for unit in units)

    def check(self, stack: Optional[Iterable[str]] = None) -> AttestationVerdict:
        c = self._classification
        if c.is_managed_services_core and self._caller_is_harness(stack):
            return AttestationVerdict(allowed=False, reason="attestation-harness")
        if c.is_store_client:
            return AttestationVerdict(allowed=False, reason="store-client")
        return AttestationVerdict(allowed=True)

    def guard_attestation_call(self, stack: Optional[Iterable[str]] = None) -> None:
        """
        Raises:
            RestrictedAttestationCall: Aufrufer darf keine Attestation erhalten
        """
        verdict = self.check(stack)
        if verdict.allowed:
            return
        logger.debug(
            "[%s] Key-Attestation blockiert (%s) gms=%s store=%s",
            self._classification.process_name, verdict.reason,
            self._classification.is_managed_services_core,
            self._classification.is_store_client,
        )
        raise RestrictedAttestationCall(verdict.reason)
