"""
Process Control (Supervisor)
=============================

Führt die Restart-Kommandos des Foreground Task Monitors aus.

  - OsProcessControl         — killt den eigenen Prozess nach kurzer,
                               fester Pause (One-Shot Timer, kein Retry).
                               Der Host startet ihn bei Bedarf neu.
  - RecordingProcessControl  — sammelt Kommandos nur (Diagnose / Dry-Run)
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from typing import Callable, Optional, Protocol

from propguard.config import TIMING
from propguard.models.policy import Restart

logger = logging.getLogger("propguard.process")


class ProcessControl(Protocol):
    def restart(self, command: Restart) -> None: ...


class OsProcessControl:
    """Beendet den aktuellen Prozess (SIGKILL) nach `delay` Sekunden."""

    def __init__(
        self,
        delay: float = TIMING.RESTART_DELAY_SECONDS,
        kill: Optional[Callable[[], None]] = None,
    ):
        self._delay = delay
        self._kill = kill or self._kill_self
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def restart(self, command: Restart) -> None:
        with self._lock:
            if self._timer is not None:
                logger.debug("Restart bereits geplant, ignoriere: %s", command.reason)
                return
            logger.warning(
                "Restart in %.1fs: %s (was=%s is=%s)",
                self._delay, command.reason,
                command.was_on_sensitive_screen, command.is_on_sensitive_screen,
            )
            self._timer = threading.Timer(self._delay, self._kill)
            self._timer.daemon = True
            self._timer.start()

    @staticmethod
    def _kill_self() -> None:
        os.kill(os.getpid(), signal.SIGKILL)


class RecordingProcessControl:
    """Sammelt Restart-Kommandos statt den Prozess zu beenden."""

    def __init__(self) -> None:
        self.commands: list[Restart] = []

    def restart(self, command: Restart) -> None:
        logger.info("Restart (aufgezeichnet): %s", command.reason)
        self.commands.append(command)
