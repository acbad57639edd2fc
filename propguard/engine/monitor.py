"""
Foreground Task Monitor
========================

Zwei-Zustands-Maschine für den Restart-Aware Pfad (GMS).

  UNMONITORED ──begin()──▶ MONITORING

begin():
  Prüft, ob der Account-Add Screen oben liegt (was_on_sensitive_screen).
  Nicht oben → Spoofing darf sofort angewendet werden.
  Oben       → Spoofing wird zurückgehalten, sonst bricht der laufende
               Verifikations-Flow.

on_task_stack_changed():
  Neu abfragen. Anders als der zuletzt notierte Wert → Restart-Kommando,
  neuer Wert wird notiert. Gleich → nichts.
  Strikt flankengetriggert: [F, F, T, T, F] ab was=F ergibt zwei Restarts.

Die Maschine hat keine Seiteneffekte; den Prozess beendet der Supervisor.
Abfragefehler zählen als "nicht auf dem Sensitive Screen" und werden nie
an den Callback-Thread durchgereicht.
"""

from __future__ import annotations

import logging
from typing import Optional

from propguard.config import GMS_ADD_ACCOUNT_ACTIVITY
from propguard.device.tasks import TaskService, same_component
from propguard.errors import ForegroundQueryFailed
from propguard.models.policy import MonitorState, MonitorStatus, Restart

logger = logging.getLogger("propguard.monitor")


class ForegroundTaskMonitor:

    def __init__(
        self,
        tasks: TaskService,
        sensitive_component: str = GMS_ADD_ACCOUNT_ACTIVITY,
        process_name: str = "",
    ):
        self._tasks = tasks
        self._sensitive_component = sensitive_component
        self._process_name = process_name
        self._status = MonitorStatus.UNMONITORED
        self._state: Optional[MonitorState] = None
        self._restarts = 0

    @property
    def status(self) -> MonitorStatus:
        return self._status

    @property
    def state(self) -> Optional[MonitorState]:
        return self._state

    @property
    def restarts(self) -> int:
        return self._restarts

    def is_on_sensitive_screen(self) -> bool:
        try:
            top = self._tasks.top_activity()
        except ForegroundQueryFailed as e:
            logger.error("[%s] Top-Activity nicht abrufbar: %s", self._process_name, e)
            return False
        except Exception:
            logger.exception("[%s] Top-Activity Abfrage: Host-Fehler", self._process_name)
            return False
        return same_component(top, self._sensitive_component)

    def begin(self) -> bool:
        """
        UNMONITORED → MONITORING.

        Returns:
            True wenn das Baseline-Profil jetzt angewendet werden darf.
        """
        if self._status is MonitorStatus.MONITORING:
            assert self._state is not None
            return not self._state.was_on_sensitive_screen

        was = self.is_on_sensitive_screen()
        self._state = MonitorState(was_on_sensitive_screen=was)
        self._status = MonitorStatus.MONITORING

        if was:
            logger.info("[%s] Account-Add Screen aktiv → Spoofing zurückgestellt",
                        self._process_name)
        return not was

    def on_task_stack_changed(self) -> Optional[Restart]:
        if self._status is not MonitorStatus.MONITORING or self._state is None:
            return None

        was = self._state.was_on_sensitive_screen
        is_now = self.is_on_sensitive_screen()
        if is_now == was:
            return None

        self._state.was_on_sensitive_screen = is_now
        self._restarts += 1
        logger.info("[%s] AddAccountActivityOnTop is=%s was=%s → Restart",
                    self._process_name, is_now, was)
        return Restart(
            reason="sensitive-screen-changed",
            was_on_sensitive_screen=was,
            is_on_sensitive_screen=is_now,
        )
