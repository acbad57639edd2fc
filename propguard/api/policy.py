"""
Policy API (Diagnose)
======================

REST-Endpoints zum Inspizieren der Policy-Engine. Nichts hier schreibt in
einen echten Store: jede Auswertung läuft gegen frische In-Memory Stores.

Endpoints:
  GET  /api/policy/profiles     — Profil-Tabelle
  POST /api/policy/evaluate     — Dry-Run: Klassifikation + Regel + Profil
  POST /api/policy/attestation  — Guard-Entscheidung für einen Call-Stack
  GET  /api/policy/status       — Snapshot des angehängten ProcessContext
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from propguard.config import GMS_ADD_ACCOUNT_ACTIVITY
from propguard.device.build import BuildAttributeStore
from propguard.device.process import RecordingProcessControl
from propguard.device.props import DictPropertyStore
from propguard.device.tasks import SnapshotTaskService
from propguard.engine.context import ProcessContext
from propguard.engine.rules import PROFILES
from propguard.models.identity import ProcessIdentity

logger = logging.getLogger("propguard.api.policy")

router = APIRouter(prefix="/api/policy", tags=["Policy"])

# Vom Entrypoint gesetzt (ADB-Modus), sonst None
_context: Optional[ProcessContext] = None


def attach_context(context: Optional[ProcessContext]) -> None:
    global _context
    _context = context


# =============================================================================
# Request / Response Models
# =============================================================================

class EvaluateRequest(BaseModel):
    """Request-Body für den Dry-Run."""
    package_name: str = Field(
        default="", description="Paketname des simulierten Prozesses",
        json_schema_extra={"example": "com.google.android.gms"},
    )
    process_name: str = Field(
        default="", description="Prozessname des simulierten Prozesses",
        json_schema_extra={"example": "com.google.android.gms.unstable"},
    )
    properties: dict[str, str] = Field(
        default_factory=dict,
        description="Property Store Inhalt (z.B. persist.sys.vending.enable=1)",
    )
    on_sensitive_screen: bool = Field(
        default=False, description="Account-Add Screen liegt beim Start oben",
    )


class EvaluateResponse(BaseModel):
    classification: dict[str, Any]
    rule: Optional[str] = None
    profile: Optional[str] = None
    path: str
    deferred: bool = False
    monitor: str
    attributes: dict[str, Any] = Field(
        default_factory=dict, description="Geschriebene Attribute (leer = nichts angewendet)",
    )


class AttestationRequest(BaseModel):
    package_name: str = ""
    process_name: str = ""
    stack: list[str] = Field(default_factory=list, description="Frame-Namen, innerster zuerst")


class AttestationResponse(BaseModel):
    allowed: bool
    reason: str = ""


class _NullTaskStackSource:
    """Dry-Run: Listener werden angenommen, aber nie aufgerufen."""

    def register(self, listener) -> None:
        pass


# =============================================================================
# GET /api/policy/profiles
# =============================================================================

@router.get("/profiles")
async def list_profiles():
    return {
        name: {key.value: value for key, value in profile.items()}
        for name, profile in PROFILES.items()
    }


# =============================================================================
# POST /api/policy/evaluate
# =============================================================================

@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(req: EvaluateRequest) -> EvaluateResponse:
    """Dry-Run von start() für die übergebene Identität."""
    attributes = BuildAttributeStore.from_device("unknown", "unknown", "unknown/unknown/unknown", 0)
    before = attributes.snapshot()
    tasks = SnapshotTaskService(GMS_ADD_ACCOUNT_ACTIVITY if req.on_sensitive_screen else None)

    context = ProcessContext(
        ProcessIdentity(package_name=req.package_name, process_name=req.process_name),
        props=DictPropertyStore(req.properties),
        attributes=attributes,
        tasks=tasks,
        notifications=_NullTaskStackSource(),
        process_control=RecordingProcessControl(),
    )
    result = context.start()
    after = attributes.snapshot()

    return EvaluateResponse(
        classification=context.classification.model_dump(),
        rule=result.decision.rule,
        profile=result.decision.profile.name if result.decision.profile else None,
        path=result.decision.path.value,
        deferred=result.deferred,
        monitor=result.monitor_status.value,
        attributes={k: v for k, v in after.items() if before.get(k) != v},
    )


# =============================================================================
# POST /api/policy/attestation
# =============================================================================

@router.post("/attestation", response_model=AttestationResponse)
async def attestation(req: AttestationRequest) -> AttestationResponse:
    context = ProcessContext(
        ProcessIdentity(package_name=req.package_name, process_name=req.process_name),
        props=DictPropertyStore(),
        attributes=BuildAttributeStore(),
        notifications=_NullTaskStackSource(),
        process_control=RecordingProcessControl(),
    )
    verdict = context.check_attestation(req.stack)
    return AttestationResponse(allowed=verdict.allowed, reason=verdict.reason)


# =============================================================================
# GET /api/policy/status
# =============================================================================

@router.get("/status")
async def status():
    if _context is None:
        raise HTTPException(status_code=404, detail="Kein ProcessContext angehängt")
    return _context.snapshot()
