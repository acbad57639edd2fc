"""
Permission Helpers
===================

Kleine Policy-Checks rund um GMS und die Developer-Settings.

  - should_bypass_task_permission() — GMS hat kein MANAGE_ACTIVITY_TASKS,
    muss aber die Top-Activity abfragen können (Foreground Monitor).
  - should_bypass_permission()      — GMS + Launcher-Pakete
  - is_system_launcher()
  - DeveloperStatusPolicy           — versteckt ADB-/Developer-Settings
    vor ausgewählten Apps
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from propguard.config import (
    DEVELOPER_STATUS_SETTINGS,
    LAUNCHER_PACKAGES,
    PACKAGE_GMS,
    SETTING_HIDE_DEVELOPER_STATUS,
)
from propguard.device.props import PropertyStore

logger = logging.getLogger("propguard.permissions")

# Paketname → UID; wirft bei unbekanntem Paket
UidResolver = Callable[[str], int]
# UID → Paketname (None wenn unbekannt)
NameResolver = Callable[[int], Optional[str]]


def should_bypass_task_permission(calling_uid: int, resolve_uid: UidResolver) -> bool:
    try:
        gms_uid = resolve_uid(PACKAGE_GMS)
    except Exception as e:
        logger.error("GMS UID nicht auflösbar: %s", e)
        return False
    logger.debug("Task-Permission: gmsUid=%d callingUid=%d", gms_uid, calling_uid)
    return gms_uid == calling_uid


def should_bypass_permission(
    calling_uid: int,
    resolve_uid: UidResolver,
    launcher_packages: Iterable[str] = LAUNCHER_PACKAGES,
) -> bool:
    for package in (PACKAGE_GMS, *sorted(launcher_packages)):
        try:
            if resolve_uid(package) == calling_uid:
                return True
        except Exception as e:
            logger.debug("UID für %s nicht auflösbar: %s", package, e)
            continue
    return False


def is_system_launcher(
    calling_uid: int,
    name_for_uid: NameResolver,
    launcher_packages: Iterable[str] = LAUNCHER_PACKAGES,
) -> bool:
    try:
        package = name_for_uid(calling_uid)
    except Exception:
        return False
    return package is not None and package in set(launcher_packages)


class DeveloperStatusPolicy:
    """
    Versteckt ADB-/Developer-Status vor gelisteten Apps.

    Die App-Liste liegt komma-separiert im Settings-Key
    SETTING_HIDE_DEVELOPER_STATUS und wird bei jedem Check frisch gelesen.
    """

    def __init__(self, store: PropertyStore):
        self._store = store

    def apps(self) -> set[str]:
        raw = self._store.get(SETTING_HIDE_DEVELOPER_STATUS)
        return {app.strip() for app in raw.split(",") if app.strip()}

    def should_hide(self, package_name: Optional[str], setting: str) -> bool:
        if not package_name:
            return False
        return setting in DEVELOPER_STATUS_SETTINGS and package_name in self.apps()

    def add_app(self, package_name: str) -> None:
        apps = self.apps()
        apps.add(package_name)
        self._write(apps)

    def remove_app(self, package_name: str) -> None:
        apps = self.apps()
        apps.discard(package_name)
        self._write(apps)

    def _write(self, apps: set[str]) -> None:
        self._store.put(SETTING_HIDE_DEVELOPER_STATUS, ",".join(sorted(apps)))
