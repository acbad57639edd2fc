"""
Gemeinsame Fixtures und Fakes für die Engine-Tests.
"""

from __future__ import annotations

from typing import Optional

import pytest

from propguard.config import GMS_ADD_ACCOUNT_ACTIVITY
from propguard.device.build import BuildAttributeStore
from propguard.device.process import RecordingProcessControl
from propguard.device.props import DictPropertyStore
from propguard.errors import ForegroundQueryFailed

GMS_UNSTABLE = ("com.google.android.gms", "com.google.android.gms.unstable")
ORIOLE_FINGERPRINT = "google/oriole/oriole:14/AP2A.241005.015/12298734:user/release-keys"


# =============================================================================
# Fakes
# =============================================================================

class ManualTaskStackSource:
    """Sammelt Listener; fire() ruft sie synchron auf (ein "Callback-Thread")."""

    def __init__(self) -> None:
        self.listeners: list = []

    def register(self, listener) -> None:
        self.listeners.append(listener)

    def fire(self) -> None:
        for listener in list(self.listeners):
            listener()


class BrokenTaskStackSource:
    def register(self, listener) -> None:
        raise RuntimeError("registerTaskStackListener: DeadObjectException")


class ScriptedTaskService:
    """Liefert pro Abfrage den nächsten Sensitive-Screen Zustand."""

    def __init__(self, states: list[bool], component: str = GMS_ADD_ACCOUNT_ACTIVITY):
        self._states = list(states)
        self._component = component
        self.queries = 0

    def top_activity(self) -> Optional[str]:
        self.queries += 1
        on_screen = self._states.pop(0) if self._states else False
        return self._component if on_screen else "com.google.android.gms/.app.settings.GoogleSettingsActivity"


class FailingTaskService:
    def __init__(self, exc: Exception):
        self._exc = exc

    def top_activity(self) -> Optional[str]:
        raise self._exc


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def attributes() -> BuildAttributeStore:
    """Echtes Pixel 6 (oriole), alle Slots vorhanden."""
    return BuildAttributeStore.from_device("oriole", "Pixel 6", ORIOLE_FINGERPRINT, 31)


@pytest.fixture
def props() -> DictPropertyStore:
    return DictPropertyStore({"ro.product.device": "oriole", "ro.product.model": "Pixel 6"})


@pytest.fixture
def notifications() -> ManualTaskStackSource:
    return ManualTaskStackSource()


@pytest.fixture
def process_control() -> RecordingProcessControl:
    return RecordingProcessControl()


@pytest.fixture
def query_failure() -> FailingTaskService:
    return FailingTaskService(ForegroundQueryFailed("getFocusedRootTaskInfo: RemoteException"))
