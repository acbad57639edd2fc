"""
API Tests: Policy-Router (Diagnose)
====================================

Läuft über FastAPIs TestClient gegen eine minimale App mit nur dem
Policy-Router (kein Logging-Setup, kein ADB).
"""

import pytest
from conftest import ManualTaskStackSource
from fastapi import FastAPI
from fastapi.testclient import TestClient

from propguard.api.policy import attach_context, router
from propguard.device.build import BuildAttributeStore
from propguard.device.process import RecordingProcessControl
from propguard.device.props import DictPropertyStore
from propguard.device.tasks import SnapshotTaskService
from propguard.engine.context import ProcessContext
from propguard.models.identity import ProcessIdentity


@pytest.fixture
def client():
    app = FastAPI()
    app.include_router(router)
    yield TestClient(app)
    attach_context(None)


class TestProfiles:

    def test_lists_all_profiles(self, client):
        data = client.get("/api/policy/profiles").json()
        assert data["legacy-baseline"]["DEVICE"] == "walleye"
        assert data["legacy-baseline"]["DEVICE_INITIAL_SDK_INT"] == 26
        assert data["compat-xl"]["MODEL"] == "Pixel XL"


class TestEvaluate:

    def test_gms_unstable_applies_baseline(self, client):
        resp = client.post("/api/policy/evaluate", json={
            "package_name": "com.google.android.gms",
            "process_name": "com.google.android.gms.unstable",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["path"] == "restart-aware"
        assert data["profile"] == "legacy-baseline"
        assert data["monitor"] == "monitoring"
        assert data["attributes"]["MODEL"] == "Pixel 2"

    def test_gms_unstable_deferred_on_sensitive_screen(self, client):
        data = client.post("/api/policy/evaluate", json={
            "package_name": "com.google.android.gms",
            "process_name": "com.google.android.gms.unstable",
            "on_sensitive_screen": True,
        }).json()
        assert data["deferred"] is True
        assert data["attributes"] == {}

    def test_properties_enable_vending(self, client):
        data = client.post("/api/policy/evaluate", json={
            "package_name": "com.android.vending",
            "process_name": "com.android.vending",
            "properties": {"persist.sys.vending.enable": "1"},
        }).json()
        assert data["profile"] == "mainline"
        assert data["classification"]["is_store_client"] is True

    def test_empty_identity_is_noop(self, client):
        data = client.post("/api/policy/evaluate", json={}).json()
        assert data["path"] == "none"
        assert data["rule"] is None
        assert data["attributes"] == {}


class TestAttestation:

    def test_harness_blocked(self, client):
        data = client.post("/api/policy/attestation", json={
            "package_name": "com.google.android.gms",
            "process_name": "com.google.android.gms.unstable",
            "stack": ["com.google.ccc.abuse.droidguard.DroidGuard.run"],
        }).json()
        assert data == {"allowed": False, "reason": "attestation-harness"}

    def test_regular_app_allowed(self, client):
        data = client.post("/api/policy/attestation", json={
            "package_name": "org.example.app",
            "process_name": "org.example.app",
        }).json()
        assert data["allowed"] is True


class TestStatus:

    def test_404_without_context(self, client):
        assert client.get("/api/policy/status").status_code == 404

    def test_snapshot_of_attached_context(self, client):
        context = ProcessContext(
            ProcessIdentity(package_name="com.google.android.gms", process_name="com.google.android.gms.unstable"),
            props=DictPropertyStore(),
            attributes=BuildAttributeStore.from_device("oriole", "Pixel 6", "google/oriole/oriole:14/X/1:user/release-keys", 31),
            tasks=SnapshotTaskService(),
            notifications=ManualTaskStackSource(),
            process_control=RecordingProcessControl(),
        )
        context.start()
        attach_context(context)

        data = client.get("/api/policy/status").json()
        assert data["started"] is True
        assert data["rule"] == "managed-services-core"
        assert data["monitor"] == "monitoring"
