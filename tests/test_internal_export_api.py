# tests/test_internal_export_api.py
from http import HTTPStatus

from attendance_export.api.routes import internal as internal_module
from attendance_export.core.config import ConfigurationError
from attendance_export.schemas.export import ExportSummary
from attendance_export.services.graph_client import GraphClientError

URL = "/internal/run-attendance-export"


def test_export_endpoint_returns_summary(monkeypatch, client):
    captured = {}

    async def fake_run_attendance_export(**kwargs):
        captured.update(kwargs)
        return ExportSummary(
            user=kwargs["user_principal"],
            start_date=kwargs["start_date"],
            end_date=kwargs["end_date"],
            candidates_discovered=12,
            candidates_by_channel={"Calendar": 10, "CallRecord": 2},
            records_exported=40,
            duplicates_removed=4,
            failures=2,
            attendance_file="output/attendance.csv",
            failures_file="output/failures.csv",
        )

    monkeypatch.setattr(internal_module, "run_attendance_export", fake_run_attendance_export)

    resp = client.post(
        URL,
        json={
            "user": "jane@contoso.com",
            "start_date": "2025-01-01",
            "end_date": "2025-01-31",
            "meeting_types": "Scheduled,OneOnOne",
            "debug": True,
        },
    )

    assert resp.status_code == HTTPStatus.OK
    data = resp.json()
    assert data["records_exported"] == 40
    assert data["failures"] == 2
    assert data["candidates_by_channel"] == {"Calendar": 10, "CallRecord": 2}
    assert captured["meeting_types"] == "Scheduled,OneOnOne"
    assert captured["debug"] is True


def test_export_endpoint_maps_configuration_error_to_400(monkeypatch, client):
    async def fake_run_attendance_export(**kwargs):
        raise ConfigurationError("No target user configured")

    monkeypatch.setattr(internal_module, "run_attendance_export", fake_run_attendance_export)

    resp = client.post(URL, json={})

    assert resp.status_code == HTTPStatus.BAD_REQUEST
    assert "target user" in resp.json()["detail"]


def test_export_endpoint_maps_graph_error_to_502(monkeypatch, client):
    async def fake_run_attendance_export(**kwargs):
        raise GraphClientError("Failed to obtain Graph token (status=401)", status_code=401)

    monkeypatch.setattr(internal_module, "run_attendance_export", fake_run_attendance_export)

    resp = client.post(URL, json={"user": "jane@contoso.com"})

    assert resp.status_code == HTTPStatus.BAD_GATEWAY
