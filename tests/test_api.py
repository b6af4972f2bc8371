"""Tests for the HTTP display surface."""

import pytest
from fastapi.testclient import TestClient

from pureflow.api.app import create_app
from pureflow.detection.history import HistoricalAlertsService
from pureflow.detection.refresher import AlertRefresher
from pureflow.storage.postgres_client import PostgresOperationError

from conftest import FakeSource, make_alert, reading


class FakePostgres:
    def __init__(self, alive=True, alerts=None, fail=False):
        self.alive = alive
        self.alerts = alerts or []
        self.fail = fail

    async def ping(self):
        return self.alive

    async def query_alerts(self, limit=100, since=None, parameter=None):
        if self.fail:
            raise PostgresOperationError("connection refused")
        return list(self.alerts)


@pytest.fixture
def loaded_manager(manager):
    manager.process_batch([reading(0, raining=True, pH=9.4, temperature=31.0)])
    return manager


@pytest.fixture
def client(loaded_manager):
    return TestClient(create_app(loaded_manager))


def test_get_alerts(client):
    response = client.get("/api/alerts")

    assert response.status_code == 200
    data = response.json()
    assert data["counts"] == {"high": 2, "medium": 0, "low": 1, "total": 3}
    assert [a["severity"] for a in data["alerts"]] == ["high", "high", "low"]


def test_get_alerts_filters(client):
    by_severity = client.get("/api/alerts", params={"severity": "low"}).json()
    assert [a["parameter"] for a in by_severity["alerts"]] == ["rain"]

    combined = client.get("/api/alerts", params={"severity": "high, low"}).json()
    assert combined["counts"]["total"] == 3

    by_parameter = client.get("/api/alerts", params={"parameter": "PH"}).json()
    assert [a["parameter"] for a in by_parameter["alerts"]] == ["pH"]


def test_get_alerts_rejects_unknown_severity(client):
    assert client.get("/api/alerts", params={"severity": "severe"}).status_code == 422


def test_homepage(client):
    data = client.get("/api/alerts/homepage").json()
    assert data["total_active"] == 3
    assert len(data["alerts"]) == 3
    assert data["alerts"][2]["display_message"] == "Rain Detected"

    top = client.get("/api/alerts/homepage", params={"limit": 1}).json()
    assert len(top["alerts"]) == 1
    assert top["alerts"][0]["display_message"] in ("PH: 9.40", "TEMPERATURE: 31.00")

    assert client.get("/api/alerts/homepage", params={"limit": 0}).json()["alerts"] == []
    assert client.get("/api/alerts/homepage", params={"limit": 51}).status_code == 422


def test_statistics(client):
    data = client.get("/api/statistics").json()

    assert data["active_alerts"] == 3
    assert data["pending_sync"] == 3
    assert data["severity_breakdown"] == {"high": 2, "medium": 0, "low": 1}
    assert data["last_processed"] is not None


def test_history_unavailable(client):
    assert client.get("/api/alerts/history").status_code == 503


def test_history_sections(loaded_manager):
    postgres = FakePostgres(alerts=[make_alert()])
    app = create_app(loaded_manager, history=HistoricalAlertsService(postgres))

    response = TestClient(app).get("/api/alerts/history", params={"type": "error"})

    assert response.status_code == 200
    data = response.json()
    assert data["total_count"] == 1
    assert data["filtered_count"] == 1


def test_history_store_down(loaded_manager):
    history = HistoricalAlertsService(FakePostgres(fail=True))
    app = create_app(loaded_manager, history=history)

    assert TestClient(app).get("/api/alerts/history").status_code == 503


def test_refresh_unavailable(client):
    assert client.post("/api/refresh").status_code == 503


def test_refresh(manager, sink):
    refresher = AlertRefresher(manager, FakeSource([[reading(0, pH=9.4)]]))
    app = create_app(manager, refresher=refresher)

    response = TestClient(app).post("/api/refresh")

    assert response.status_code == 200
    data = response.json()
    assert data["reason"] == "api"
    assert data["new_alerts"] == 1
    assert data["synced"] == 1
    assert data["degraded"] is False
    assert len(sink.written) == 1


def test_health_degraded_while_alerts_pending(client):
    data = client.get("/api/health").json()

    assert data["status"] == "degraded"
    assert data["pending_sync"] == 3
    assert data["infrastructure"]["postgres"] == "unknown"


def test_health_reports_postgres(manager):
    healthy = TestClient(create_app(manager, postgres_client=FakePostgres()))
    data = healthy.get("/api/health").json()
    assert data["status"] == "healthy"
    assert data["infrastructure"]["postgres"] == "connected"

    down = TestClient(create_app(manager, postgres_client=FakePostgres(alive=False)))
    data = down.get("/api/health").json()
    assert data["status"] == "degraded"
    assert data["infrastructure"]["postgres"] == "disconnected"
