"""
Process Context
================

Expliziter Per-Prozess Kontext statt dateiweiter Statics.

Wird beim Prozess-Start einmal erzeugt und hält:
  - die Identität und ihre (einmal berechnete) Klassifikation
  - die Entscheidung der Rule Engine
  - ggf. den Foreground Task Monitor (Restart-Aware Pfad)
  - den Attestation Guard

Ablauf von start():
  1. Identität fehlt          → no-op
  2. ConfigFlags frisch lesen → RuleEngine.select()
  3. DIRECT                   → Profil sofort anwenden
  4. RESTART_AWARE            → Monitor.begin(); Profil nur wenn erlaubt;
                                Listener für den Rest der Prozess-Lebenszeit
                                registrieren, Restarts an den Supervisor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from propguard.device.build import AttributeStore
from propguard.device.process import OsProcessControl, ProcessControl
from propguard.device.props import PropertyStore
from propguard.device.tasks import SnapshotTaskService, TaskService, TaskStackDispatcher, TaskStackSource
from propguard.engine.applier import AttributeApplier
from propguard.engine.classifier import classify
from propguard.engine.guard import AttestationGuard
from propguard.engine.monitor import ForegroundTaskMonitor
from propguard.engine.rules import RuleEngine
from propguard.models.identity import Classification, ProcessIdentity
from propguard.models.policy import (
    ApplyReport,
    AttestationVerdict,
    ConfigFlags,
    Decision,
    MonitorStatus,
    SpoofPath,
)

logger = logging.getLogger("propguard.context")


@dataclass
class StartResult:
    """Was start() entschieden und angewendet hat."""
    decision: Decision
    report: Optional[ApplyReport] = None
    monitor_status: MonitorStatus = MonitorStatus.UNMONITORED
    deferred: bool = False


class ProcessContext:
    """
    Usage:
        ctx = ProcessContext(
            ProcessIdentity(package_name=pkg, process_name=proc),
            props=DictPropertyStore(...),
            attributes=BuildAttributeStore.from_device(...),
        )
        ctx.start()                      # frühester Init-Hook
        ctx.guard_attestation_call()     # an der Attestation-Stelle
    """

    def __init__(
        self,
        identity: ProcessIdentity,
        props: PropertyStore,
        attributes: AttributeStore,
        tasks: Optional[TaskService] = None,
        notifications: Optional[TaskStackSource] = None,
        process_control: Optional[ProcessControl] = None,
        engine: Optional[RuleEngine] = None,
    ):
        self._identity = identity
        self._props = props
        self._attributes = attributes
        self._tasks = tasks if tasks is not None else SnapshotTaskService()
        self._notifications = notifications if notifications is not None else TaskStackDispatcher()
        self._process_control = process_control if process_control is not None else OsProcessControl()
        self._engine = engine if engine is not None else RuleEngine()

        self._classification = classify(identity)
        self._guard = AttestationGuard(self._classification)
        self._monitor: Optional[ForegroundTaskMonitor] = None
        self._result: Optional[StartResult] = None

    @property
    def identity(self) -> ProcessIdentity:
        return self._identity

    @property
    def classification(self) -> Classification:
        return self._classification

    @property
    def monitor(self) -> Optional[ForegroundTaskMonitor]:
        return self._monitor

    @property
    def result(self) -> Optional[StartResult]:
        return self._result

    # =========================================================================
    # Start (einmal pro Prozess)
    # =========================================================================

    def start(self) -> StartResult:
        if self._result is not None:
            return self._result

        if not self._identity.is_available:
            logger.debug("Identität nicht verfügbar → no-op")
            self._result = StartResult(decision=Decision.noop())
            return self._result

        flags = ConfigFlags.load(self._props)
        decision = self._engine.select(self._classification, flags)

        if decision.path is SpoofPath.RESTART_AWARE:
            self._result = self._start_restart_aware(decision)
        elif decision.path is SpoofPath.DIRECT:
            assert decision.profile is not None
            report = self._applier().apply(decision.profile)
            self._result = StartResult(decision=decision, report=report)
        else:
            self._result = StartResult(decision=decision)
        return self._result

    def _applier(self) -> AttributeApplier:
        return AttributeApplier(self._attributes, self._identity.process_name)

    def _start_restart_aware(self, decision: Decision) -> StartResult:
        assert decision.profile is not None
        monitor = ForegroundTaskMonitor(self._tasks, process_name=self._identity.process_name)
        self._monitor = monitor

        report: Optional[ApplyReport] = None
        deferred = not monitor.begin()
        if deferred:
            logger.info("[%s] Überspringe Spoofing für GMS (AddAccountActivityOnTop)",
                        self._identity.process_name)
        else:
            logger.info("[%s] Spoofe Build für GMS (%s)",
                        self._identity.process_name, decision.profile.name)
            report = self._applier().apply(decision.profile)

        try:
            self._notifications.register(self._on_task_stack_changed)
        except Exception:
            logger.exception("[%s] Task-Stack Listener konnte nicht registriert werden",
                             self._identity.process_name)

        return StartResult(
            decision=decision,
            report=report,
            monitor_status=monitor.status,
            deferred=deferred,
        )

    def _on_task_stack_changed(self) -> None:
        if self._monitor is None:
            return
        command = self._monitor.on_task_stack_changed()
        if command is not None:
            self._process_control.restart(command)

    # =========================================================================
    # Attestation
    # =========================================================================

    def check_attestation(self, stack: Optional[Iterable[str]] = None) -> AttestationVerdict:
        return self._guard.check(stack)

    def guard_attestation_call(self, stack: Optional[Iterable[str]] = None) -> None:
        self._guard.guard_attestation_call(stack)

    # =========================================================================
    # Status
    # =========================================================================

    def snapshot(self) -> dict:
        result = self._result
        return {
            "identity": self._identity.model_dump(),
            "classification": self._classification.model_dump(),
            "started": result is not None,
            "rule": result.decision.rule if result else None,
            "profile": result.decision.profile.name if result and result.decision.profile else None,
            "path": result.decision.path.value if result else SpoofPath.NONE.value,
            "deferred": result.deferred if result else False,
            "monitor": self._monitor.status.value if self._monitor else MonitorStatus.UNMONITORED.value,
            "restarts": self._monitor.restarts if self._monitor else 0,
        }
