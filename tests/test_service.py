from __future__ import annotations

import pytest

from backend.soil import pipeline
from backend.soil.service import app

from .helpers import FakeMqttClient


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def test_health(client) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "OK"


def test_tick_with_measurement(client) -> None:
    resp = client.post("/tick", json={"moisture": 70.0, "ph": 6.7})
    assert resp.status_code == 200
    result = resp.get_json()["result"]
    assert result["is_anomaly"] is True
    assert result["direction"] == "high"
    assert result["alert"]["severity"] == "warning"
    assert result["statuses"]["ph"] == "optimal"

    snap = client.get("/snapshot").get_json()
    assert len(snap["history"]) == 1
    assert len(snap["alerts"]) == 1
    assert snap["metrics"]["threshold"] == 5.0


def test_tick_from_simulator(client) -> None:
    resp = client.post("/tick")
    assert resp.status_code == 200
    assert pipeline.get_engine().stats.total_readings == 1


def test_bad_measurement_returns_500(client) -> None:
    resp = client.post("/tick", json={"moisture": -5})
    assert resp.status_code == 500
    assert pipeline.get_engine().stats.total_readings == 0


def test_clear_alerts_and_reset(client) -> None:
    client.post("/tick", json={"moisture": 70.0})
    assert client.post("/alerts/clear").status_code == 200
    snap = client.get("/snapshot").get_json()
    assert snap["alerts"] == []
    assert snap["stats"]["anomalies_detected"] == 1

    client.post("/reset")
    snap = client.get("/snapshot").get_json()
    assert snap["history"] == []
    assert snap["stats"]["total_readings"] == 0
    assert snap["metrics"]["estimate"] == 45.0


def test_start_stop(client) -> None:
    assert client.post("/start").get_json()["state"] == "running"
    assert client.post("/stop").get_json()["state"] == "idle"


def test_alert_not_published_when_mqtt_disabled(client) -> None:
    result = pipeline.process_tick(70.0)
    assert result.alert is not None
    assert pipeline.publish_alert(result.alert) is False


def test_tick_rejects_non_object_body(client) -> None:
    resp = client.post("/tick", json=[70.0])
    assert resp.status_code == 400
    assert resp.get_json()["status"] == "error"
    assert pipeline.get_engine().stats.total_readings == 0


def test_tick_succeeds_when_publish_fails(client, monkeypatch) -> None:
    monkeypatch.setattr(pipeline, "_mqtt_client", FakeMqttClient(error=ValueError("payload rejected")))
    resp = client.post("/tick", json={"moisture": 70.0})
    assert resp.status_code == 200
    assert resp.get_json()["result"]["alert"]["severity"] == "warning"
