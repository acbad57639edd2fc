"""
Foreground Signal Source
=========================

Task-Stack Benachrichtigungen und Top-Activity Abfrage.

Bausteine:
  - SnapshotTaskService  — liefert die zuletzt bekannte Top-Activity
  - TaskStackDispatcher  — EIN dedizierter Callback-Thread, liefert
                           Notifications seriell an alle Listener
  - AdbTaskStackPoller   — Diagnose-Modus: pollt `dumpsys activity` und
                           feuert eine Notification bei jeder Änderung

Notifications tragen keinen Payload ("irgendwas hat sich geändert");
der Listener muss den Zustand selbst neu abfragen.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import re
import threading
from typing import Callable, Optional, Protocol

from propguard.config import TIMING
from propguard.device.client import ADBClient, ADBError
from propguard.errors import ForegroundQueryFailed

logger = logging.getLogger("propguard.tasks")

TaskStackListener = Callable[[], None]

# ActivityRecord{4c1a2b3 u0 com.google.android.gms/.auth.uiflows.minutemaid.MinuteMaidActivity t42}
_RESUMED_ACTIVITY = re.compile(
    r"(?:topResumedActivity|mResumedActivity|ResumedActivity)[:=]\s*"
    r"ActivityRecord\{[0-9a-f]+ u\d+ (?P<component>[\w.$]+/[\w.$]+)"
)


# =============================================================================
# Komponenten-Namen
# =============================================================================

def unflatten_component(flat: Optional[str]) -> Optional[tuple[str, str]]:
    """
    "pkg/.Cls" → ("pkg", "pkg.Cls"); "pkg/a.b.Cls" → ("pkg", "a.b.Cls").
    Ungültige Eingaben → None.
    """
    if not flat or "/" not in flat:
        return None
    package, _, cls = flat.partition("/")
    if not package or not cls:
        return None
    if cls.startswith("."):
        cls = package + cls
    return package, cls


def same_component(a: Optional[str], b: Optional[str]) -> bool:
    left, right = unflatten_component(a), unflatten_component(b)
    return left is not None and left == right


def parse_resumed_activity(dumpsys_output: str) -> Optional[str]:
    """Extrahiert die fokussierte Activity aus `dumpsys activity activities`."""
    for line in dumpsys_output.splitlines():
        match = _RESUMED_ACTIVITY.search(line)
        if match:
            return match.group("component")
    return None


# =============================================================================
# Top-Activity Abfrage
# =============================================================================

class TaskService(Protocol):
    def top_activity(self) -> Optional[str]:
        """Flattened Component der Top-Activity, None = kein Task fokussiert."""
        ...


class SnapshotTaskService:
    """
    Thread-sichere, zuletzt bekannte Top-Activity.

    mark_failed() simuliert einen Host-Fehler: der nächste top_activity()
    Aufruf wirft ForegroundQueryFailed, bis wieder set_top() kommt.
    """

    def __init__(self, top: Optional[str] = None):
        self._top = top
        self._error: Optional[str] = None
        self._lock = threading.Lock()

    def set_top(self, top: Optional[str]) -> None:
        with self._lock:
            self._top = top
            self._error = None

    def mark_failed(self, reason: str) -> None:
        with self._lock:
            self._error = reason

    def top_activity(self) -> Optional[str]:
        with self._lock:
            if self._error is not None:
                raise ForegroundQueryFailed(self._error)
            return self._top


# =============================================================================
# Dispatcher (dedizierter Callback-Thread)
# =============================================================================

class TaskStackSource(Protocol):
    def register(self, listener: TaskStackListener) -> None: ...


class TaskStackDispatcher:
    """
    Liefert Task-Stack Notifications seriell auf einem Daemon-Thread.

    Alle Listener laufen auf demselben Thread, nie parallel. Ein Fehler in
    einem Listener wird geloggt, der Thread läuft weiter.
    """

    _STOP = object()

    def __init__(self, name: str = "task-stack-listener"):
        self._listeners: list[TaskStackListener] = []
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._name = name
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def register(self, listener: TaskStackListener) -> None:
        with self._lock:
            self._listeners.append(listener)
        self.start()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        with self._lock:
            thread = self._thread
        if thread is None:
            return
        self._queue.put(self._STOP)
        thread.join(timeout)
        with self._lock:
            self._thread = None

    def notify(self) -> None:
        """Eine "Task-Stack hat sich geändert" Notification einreihen."""
        self._queue.put(None)

    def drain(self, timeout: float = 2.0) -> None:
        """Wartet, bis alle eingereihten Notifications zugestellt sind."""
        done = threading.Event()
        self._queue.put(done)
        done.wait(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            with self._lock:
                listeners = list(self._listeners)
            for listener in listeners:
                try:
                    listener()
                except Exception:
                    logger.exception("Task-Stack Listener fehlgeschlagen")


# =============================================================================
# ADB Poller (Diagnose-Modus)
# =============================================================================

class AdbTaskStackPoller:
    """
    Pollt die fokussierte Activity über ADB und feuert Notifications.

    Usage:
        tasks = SnapshotTaskService()
        dispatcher = TaskStackDispatcher()
        poller = AdbTaskStackPoller(ADBClient(), tasks, dispatcher)
        await poller.start()
    """

    def __init__(
        self,
        adb: ADBClient,
        tasks: SnapshotTaskService,
        dispatcher: TaskStackDispatcher,
        interval: float = TIMING.TASK_POLL_INTERVAL,
    ):
        self._adb = adb
        self._tasks = tasks
        self._dispatcher = dispatcher
        self._interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._last_top: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        await self.poll_once()
        self._task = asyncio.create_task(self._poll_loop())
        logger.info("Task-Stack Poller gestartet (Intervall %.1fs)", self._interval)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Task-Stack Poller gestoppt")

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            await self.poll_once()

    async def poll_once(self) -> bool:
        """Eine Abfrage; True wenn sich die Top-Activity geändert hat."""
        try:
            result = await self._adb.shell("dumpsys activity activities", timeout=10)
        except ADBError as e:
            logger.warning("Top-Activity Abfrage fehlgeschlagen: %s", e)
            self._tasks.mark_failed(str(e))
            return False

        if not result.success:
            self._tasks.mark_failed(f"dumpsys exit={result.returncode}")
            return False

        top = parse_resumed_activity(result.stdout)
        self._tasks.set_top(top)
        if top == self._last_top:
            return False

        logger.debug("Top-Activity: %s → %s", self._last_top, top)
        self._last_top = top
        self._dispatcher.notify()
        return True
