"""
PropGuard — Async ADB Client
==============================

Schlanker, asynchroner Wrapper um das `adb` CLI-Tool für den Diagnose-Modus
(PROPGUARD_MODE=adb). Die eingebettete Engine braucht ihn nicht.

Features:
  - Vollständig async (asyncio.create_subprocess_exec)
  - Retry nur bei Verbindungsfehlern (exponential backoff)
  - Strukturierte Ergebnisse (ADBResult)
  - Timeout-Protection für jeden Befehl
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from propguard.config import TIMING
from propguard.errors import PropGuardError

logger = logging.getLogger("propguard.adb")


# =============================================================================
# Exceptions
# =============================================================================

class ADBError(PropGuardError):
    """Basis-Exception für ADB-Fehler."""

    def __init__(self, message: str, returncode: int = -1, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class ADBConnectionError(ADBError):
    """Gerät nicht verbunden oder ADB-Daemon nicht erreichbar."""


class ADBTimeoutError(ADBError):
    """Befehl hat das Timeout überschritten."""


# =============================================================================
# Result
# =============================================================================

@dataclass
class ADBResult:
    """Strukturiertes Ergebnis eines ADB-Befehls."""
    returncode: int
    stdout: str = ""
    stderr: str = ""
    command: str = ""
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout.strip()


_CONNECTION_ERRORS = (
    "error: device not found",
    "error: no devices",
    "error: device offline",
    "error: closed",
    "cannot connect to daemon",
    "connection refused",
    "protocol fault",
)


# =============================================================================
# ADB Client
# =============================================================================

class ADBClient:
    """
    Asynchroner ADB-Client mit Retry-Logik.

    Usage:
        adb = ADBClient(serial="1A2B3C")
        result = await adb.shell("getprop ro.product.device")
    """

    def __init__(
        self,
        serial: Optional[str] = None,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: int = TIMING.ADB_COMMAND_TIMEOUT,
    ):
        self._serial = serial
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._timeout = timeout

    async def _exec(self, args: list[str], timeout: Optional[int] = None) -> ADBResult:
        """
        Führt `adb [-s serial] <args>` aus.

        Raises:
            ADBTimeoutError:     nach Timeout (kein Retry)
            ADBConnectionError:  nach allen Retries gescheitert
            ADBError:            adb nicht gefunden
        """
        effective_timeout = timeout or self._timeout
        full_args = (["-s", self._serial] if self._serial else []) + args
        cmd_str = f"adb {' '.join(full_args)}"
        last_error: Optional[Exception] = None

        for attempt in range(1, self._max_retries + 1):
            try:
                logger.debug("ADB [%d/%d]: %s", attempt, self._max_retries, cmd_str)

                proc = await asyncio.create_subprocess_exec(
                    "adb", *full_args,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
                try:
                    stdout_raw, stderr_raw = await asyncio.wait_for(
                        proc.communicate(), timeout=effective_timeout,
                    )
                except asyncio.TimeoutError:
                    proc.kill()
                    await proc.wait()
                    raise ADBTimeoutError(f"Timeout ({effective_timeout}s) bei: {cmd_str}")

                stderr_str = stderr_raw.decode("utf-8", errors="replace")
                if self._is_connection_error(stderr_str):
                    raise ADBConnectionError(
                        f"ADB Verbindungsfehler: {stderr_str.strip()}",
                        returncode=proc.returncode or -1,
                        stderr=stderr_str,
                    )

                result = ADBResult(
                    returncode=proc.returncode or 0,
                    stdout=stdout_raw.decode("utf-8", errors="replace"),
                    stderr=stderr_str,
                    command=cmd_str,
                    attempts=attempt,
                )
                if not result.success:
                    logger.warning(
                        "ADB exit=%d: %s | stderr: %s",
                        result.returncode, cmd_str, stderr_str.strip()[:200],
                    )
                return result

            except ADBConnectionError as e:
                last_error = e
                if attempt < self._max_retries:
                    delay = self._retry_delay * (2 ** (attempt - 1))
                    logger.warning(
                        "ADB Verbindungsfehler (Versuch %d/%d), Retry in %.1fs: %s",
                        attempt, self._max_retries, delay, e,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

            except OSError as e:
                raise ADBError(f"ADB nicht gefunden: {e}") from e

        raise last_error or ADBError(f"ADB fehlgeschlagen nach {self._max_retries} Versuchen")

    @staticmethod
    def _is_connection_error(stderr: str) -> bool:
        stderr_lower = stderr.lower()
        return any(ind in stderr_lower for ind in _CONNECTION_ERRORS)

    async def shell(
        self,
        command: str,
        timeout: Optional[int] = None,
        check: bool = False,
    ) -> ADBResult:
        """
        Führt einen Shell-Befehl auf dem Gerät aus.

        Raises:
            ADBError: wenn check=True und exit != 0
        """
        result = await self._exec(["shell", command], timeout=timeout)
        if check and not result.success:
            raise ADBError(
                f"Shell-Befehl fehlgeschlagen (exit {result.returncode}): {command}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result
