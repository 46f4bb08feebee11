from __future__ import annotations

import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes import forms
from programs.form_pipeline.config import CompilerConfig
from providers.tally_client import TallyApiClient
from respira_form_service import RespiraFormService


def _tally_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/user":
        if request.headers["authorization"] == "Bearer bad-key":
            return httpx.Response(401, json={"message": "Invalid API key"})
        return httpx.Response(200, json={"id": "u1"})
    if path == "/workspaces":
        return httpx.Response(200, json={"items": [{"id": "ws_1"}]})
    if path == "/forms" and request.method == "POST":
        return httpx.Response(201, json={"id": "f_new"})
    if path == "/forms" and request.method == "GET":
        return httpx.Response(200, json={"items": [{"id": "f1"}]})
    if path == "/forms/locked":
        return httpx.Response(403, json={"message": "Forbidden"})
    if path == "/forms/f1" and request.method == "DELETE":
        return httpx.Response(204)
    return httpx.Response(404, json={"message": "Not found"})


class KeyedService(RespiraFormService):
    def with_api_key(self, api_key):
        return _mock_service(api_key)


def _mock_service(api_key: str = "good-key") -> RespiraFormService:
    client = TallyApiClient(api_key, base_url="https://tally.test", transport=httpx.MockTransport(_tally_handler))
    return KeyedService(client=client, config=CompilerConfig(use_oracle=False))


@pytest.fixture()
def client():
    app = create_app()
    app.dependency_overrides[forms.get_service] = lambda: _mock_service()
    return TestClient(app, raise_server_exceptions=False)


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["service"] == "respira-form-service"


def test_compile_returns_blocks(client):
    res = client.post("/v1/api/forms/compile", json={"prompt": "contact form with name, email and message"})
    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True
    assert body["requestId"] == body["form"]["requestId"]
    assert body["form"]["source"] in {"heuristic", "keyword"}
    assert body["form"]["blocks"][0]["type"] == "FORM_TITLE"


def test_validation_error_envelope(client):
    res = client.post("/v1/api/forms/compile", json={"prompt": ""})
    assert res.status_code == 422
    body = res.json()
    assert body["ok"] is False
    assert body["error"] == "validation_error"
    assert body["requestId"].startswith("val_")
    assert body["details"]


def test_create_form(client):
    res = client.post("/v1/api/forms", json={"prompt": "feedback form with email", "options": {"title": "Hi"}})
    assert res.status_code == 200
    assert res.json() == {"ok": True, "form": {"id": "f_new"}}


def test_list_and_delete_forms(client):
    assert client.get("/v1/api/forms").json() == {"ok": True, "forms": [{"id": "f1"}]}
    assert client.delete("/v1/api/forms/f1").json() == {"ok": True, "deleted": True}


def test_tally_errors_keep_provider_status(client):
    res = client.get("/v1/api/forms/locked")
    assert res.status_code == 403
    body = res.json()
    assert body["error"] == "tally_api_error"
    assert body["message"] == "Tally API Error: 403 - Forbidden"


def test_network_errors_map_to_bad_gateway():
    def down(request):
        raise httpx.ConnectError("refused", request=request)

    app = create_app()
    app.dependency_overrides[forms.get_service] = lambda: RespiraFormService(
        client=TallyApiClient("k", base_url="https://tally.test", transport=httpx.MockTransport(down)),
        config=CompilerConfig(use_oracle=False),
    )
    res = TestClient(app).get("/v1/api/workspaces")
    assert res.status_code == 502
    assert res.json()["message"] == "Network Error: Unable to connect to Tally API"


def test_missing_key_is_bad_request():
    app = create_app()
    res = TestClient(app).get("/v1/api/forms")
    assert res.status_code == 400
    assert res.json()["error"] == "not_configured"


def test_validate_key(client):
    assert client.post("/v1/api/validate-key").json() == {"ok": True, "isValid": True, "user": {"id": "u1"}}

    res = client.post("/v1/api/validate-key", json={"apiKey": "bad-key"})
    body = res.json()
    assert res.status_code == 200
    assert body["isValid"] is False
    assert "401" in body["error"]


def test_http_log_redacts_tally_key(monkeypatch, caplog):
    monkeypatch.setenv("RESPIRA_HTTP_LOG", "true")
    monkeypatch.setenv("RESPIRA_HTTP_LOG_HEADERS", "true")
    app = create_app()
    app.dependency_overrides[forms.get_service] = lambda: _mock_service()
    caplog.set_level(logging.INFO, logger="respira.api.http")

    res = TestClient(app).post(
        "/v1/api/validate-key",
        json={"apiKey": "body-secret"},
        headers={"X-Tally-Api-Key": "header-secret"},
    )

    assert res.status_code == 200
    lines = [r.getMessage() for r in caplog.records if r.name == "respira.api.http"]
    assert len(lines) == 1
    assert "header-secret" not in lines[0]
    assert "body-secret" not in lines[0]
    record = json.loads(lines[0])
    assert record["path"] == "/v1/api/validate-key"
    assert record["status"] == 200
    assert record["request"]["headers"]["x-tally-api-key"] == "***"
    assert record["request"]["body"] == {"apiKey": "***"}


def test_http_log_is_off_by_default(caplog):
    caplog.set_level(logging.INFO, logger="respira.api.http")
    TestClient(create_app()).get("/health")
    assert not [r for r in caplog.records if r.name == "respira.api.http"]
