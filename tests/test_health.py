# tests/test_health.py
from http import HTTPStatus

from attendance_export.core.config import get_settings


def test_health_endpoint_ok(client):
    """
    /health responds with 200 OK and the expected JSON shape and types.
    """
    response = client.get("/health")

    assert response.status_code == HTTPStatus.OK
    data = response.json()

    assert data["status"] == "ok"
    assert isinstance(data["app_name"], str)
    assert isinstance(data["environment"], str)
    assert isinstance(data["graph_configured"], bool)
    assert "timestamp_utc" in data


def test_health_reports_graph_configuration(monkeypatch, client):
    monkeypatch.setenv("GRAPH_TENANT_ID", "tenant")
    monkeypatch.setenv("GRAPH_CLIENT_ID", "client")
    monkeypatch.setenv("GRAPH_CLIENT_SECRET", "secret")
    get_settings.cache_clear()

    response = client.get("/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json()["graph_configured"] is True
