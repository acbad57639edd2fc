"""
Unit Tests: Attestation Guard
==============================
"""

import pytest

from propguard.engine.classifier import classify
from propguard.engine.guard import AttestationGuard, current_stack_units
from propguard.errors import RestrictedAttestationCall
from propguard.models.identity import ProcessIdentity

HARNESS_STACK = [
    "android.security.keystore2.AndroidKeyStoreSpi.engineGetCertificateChain",
    "com.google.ccc.abuse.droidguard.DroidGuard.run",
    "com.google.android.gms.droidguard.DroidGuardChimeraService.b",
]
APP_STACK = [
    "android.security.keystore2.AndroidKeyStoreSpi.engineGetCertificateChain",
    "com.google.android.gms.auth.TokenRequest.execute",
]


def _guard(package: str, process: str) -> AttestationGuard:
    return AttestationGuard(classify(ProcessIdentity(package_name=package, process_name=process)))


class DroidGuard:
    """Simuliert die Harness im echten Call-Stack."""

    @staticmethod
    def fetch_chain(guard: AttestationGuard) -> None:
        guard.guard_attestation_call()


class TestManagedServicesCore:

    def test_harness_frame_blocks(self):
        guard = _guard("com.google.android.gms", "com.google.android.gms.unstable")
        with pytest.raises(RestrictedAttestationCall) as exc_info:
            guard.guard_attestation_call(HARNESS_STACK)
        assert exc_info.value.reason == "attestation-harness"

    def test_restriction_is_unsupported_operation(self):
        guard = _guard("com.google.android.gms", "com.google.android.gms.unstable")
        with pytest.raises(NotImplementedError):
            guard.guard_attestation_call(HARNESS_STACK)

    def test_other_callers_allowed(self):
        guard = _guard("com.google.android.gms", "com.google.android.gms.unstable")
        assert guard.check(APP_STACK).allowed
        guard.guard_attestation_call(APP_STACK)

    def test_live_stack_detects_harness(self):
        guard = _guard("com.google.android.gms", "com.google.android.gms.unstable")
        with pytest.raises(RestrictedAttestationCall):
            DroidGuard.fetch_chain(guard)

    def test_live_stack_without_harness(self):
        _guard("com.google.android.gms", "com.google.android.gms.unstable").guard_attestation_call()


class TestStoreClient:

    def test_store_client_always_blocked(self):
        verdict = _guard("com.android.vending", "com.android.vending").check(APP_STACK)
        assert not verdict.allowed
        assert verdict.reason == "store-client"

    def test_excluded_package_with_harness_allowed(self):
        """Ausgeschlossenes Paket im persistent-Prozess: Harness-Aufruf bleibt erlaubt."""
        package = "com.google.android.apps.miphone.aiai.AiaiApplication"
        guard = _guard(package, package + ":persistent")
        assert guard.check(HARNESS_STACK).allowed
        guard.guard_attestation_call(HARNESS_STACK)

    def test_harness_outside_core_allowed(self):
        """Harness-Frame in einem normalen App-Prozess → keine Sperre."""
        assert _guard("org.example.app", "org.example.app").check(HARNESS_STACK).allowed


class TestStackUnits:

    def test_contains_caller(self):
        units = list(current_stack_units())
        assert any("test_contains_caller" in unit for unit in units)
