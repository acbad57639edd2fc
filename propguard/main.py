"""
PropGuard Diagnose-Server (FastAPI Entrypoint)
===============================================

Startet die Diagnose-API mit:
  - Console + rotierendem File-Logger
  - Policy-Router (Dry-Run, Profile, Attestation)
  - ADB-Modus (PROPGUARD_MODE=adb): Property-Snapshot + Top-Activity Poller
    des verbundenen Geräts, ein ProcessContext für den Ziel-Prozess

Start:
    uvicorn propguard.main:app --host 127.0.0.1 --port 8000

Oder:
    python -m propguard.main
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from propguard.config import (
    ADB_SERIAL,
    API_HOST,
    API_PORT,
    API_TITLE,
    API_VERSION,
    EXECUTION_MODE,
    LOCAL_TZ,
    LOG_FILE,
    TARGET_PACKAGE,
    TARGET_PROCESS,
)

# =============================================================================
# Logging Setup: MUSS vor allen anderen Modul-Imports passieren
# =============================================================================


class _TzFormatter(logging.Formatter):
    """Log-Formatter mit expliziter Zeitzone (config.LOCAL_TZ)."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        ct = datetime.fromtimestamp(record.created, tz=LOCAL_TZ)
        if datefmt:
            return ct.strftime(datefmt)
        return ct.strftime("%Y-%m-%d %H:%M:%S")


_console_handler = logging.StreamHandler()
_console_handler.setFormatter(
    _TzFormatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
)
logging.root.addHandler(_console_handler)
logging.root.setLevel(logging.INFO)

# Persistenter File-Logger: 10 MB pro Datei, 3 alte Dateien, DEBUG-Level
_file_handler = RotatingFileHandler(
    str(LOG_FILE),
    maxBytes=10_000_000,
    backupCount=3,
    encoding="utf-8",
)
_file_handler.setFormatter(
    _TzFormatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)
_file_handler.setLevel(logging.DEBUG)
logging.root.addHandler(_file_handler)

logger = logging.getLogger("propguard.main")

from propguard.api.policy import attach_context, router as policy_router  # noqa: E402
from propguard.device import (  # noqa: E402
    ADBClient,
    AdbPropertySource,
    AdbTaskStackPoller,
    BuildAttributeStore,
    RecordingProcessControl,
    SnapshotTaskService,
    TaskStackDispatcher,
)
from propguard.device.client import ADBError  # noqa: E402
from propguard.device.props import parse_int  # noqa: E402
from propguard.engine.context import ProcessContext  # noqa: E402
from propguard.models.identity import ProcessIdentity  # noqa: E402
from propguard.models.profile import AttributeKey  # noqa: E402


# =============================================================================
# ADB-Modus
# =============================================================================

async def _attach_device_context() -> tuple[Optional[AdbTaskStackPoller], Optional[TaskStackDispatcher]]:
    """Baut einen ProcessContext gegen das verbundene Gerät (nur lesend)."""
    adb = ADBClient(serial=ADB_SERIAL or None)
    props = await AdbPropertySource(adb).load()

    attributes = BuildAttributeStore({
        AttributeKey.BRAND: props.get("ro.product.brand", "unknown"),
        AttributeKey.MANUFACTURER: props.get("ro.product.manufacturer", "unknown"),
        AttributeKey.DEVICE: props.get("ro.product.device", "unknown"),
        AttributeKey.PRODUCT: props.get("ro.product.name", "unknown"),
        AttributeKey.MODEL: props.get("ro.product.model", "unknown"),
        AttributeKey.FINGERPRINT: props.get("ro.build.fingerprint", "unknown"),
        AttributeKey.DEVICE_INITIAL_SDK_INT: parse_int(props.get("ro.product.first_api_level"), 0),
    })

    tasks = SnapshotTaskService()
    dispatcher = TaskStackDispatcher()
    poller = AdbTaskStackPoller(adb, tasks, dispatcher)
    await poller.start()

    context = ProcessContext(
        ProcessIdentity(package_name=TARGET_PACKAGE, process_name=TARGET_PROCESS),
        props=props,
        attributes=attributes,
        tasks=tasks,
        notifications=dispatcher,
        process_control=RecordingProcessControl(),
    )
    result = context.start()
    attach_context(context)
    logger.info(
        "Geräte-Context: %s/%s → %s (%s)",
        TARGET_PACKAGE, TARGET_PROCESS,
        result.decision.profile.name if result.decision.profile else "no-op",
        result.decision.path.value,
    )
    return poller, dispatcher


# =============================================================================
# Lifespan (Startup / Shutdown)
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logger.info("=" * 60)
    logger.info("  %s v%s (Modus: %s)", API_TITLE, API_VERSION, EXECUTION_MODE)
    logger.info("  API: http://%s:%d", API_HOST, API_PORT)
    logger.info("=" * 60)

    poller: Optional[AdbTaskStackPoller] = None
    dispatcher: Optional[TaskStackDispatcher] = None
    if EXECUTION_MODE == "adb":
        try:
            poller, dispatcher = await _attach_device_context()
        except ADBError as e:
            logger.warning("ADB-Modus nicht verfügbar: %s", e)

    yield

    if poller and poller.is_running:
        await poller.stop()
    if dispatcher:
        dispatcher.stop()
    attach_context(None)
    logger.info("Diagnose-Server gestoppt.")


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Diagnose der Identity-Override Policy-Engine.",
    lifespan=lifespan,
)

app.include_router(policy_router)


@app.get("/api/health", tags=["System"])
async def health_check():
    return {"status": "healthy", "mode": EXECUTION_MODE}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Fängt unbehandelte Exceptions und gibt ein sauberes JSON zurück."""
    logger.error("Unhandled exception on %s: %s", request.url, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "propguard.main:app",
        host=API_HOST,
        port=API_PORT,
        log_level="info",
    )
