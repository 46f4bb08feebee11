from __future__ import annotations

import json

import httpx
import pytest

from providers.tally_client import NETWORK_ERROR_MESSAGE, TallyApiClient, TallyApiError
from schemas.api_models import CreateFormRequest, TallyFormSettings, UpdateFormRequest


class Recorder:
    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request) if callable(handler) else handler


def _client(routes) -> tuple[TallyApiClient, Recorder]:
    rec = Recorder(routes)
    return TallyApiClient("tly-key", base_url="https://tally.test", transport=httpx.MockTransport(rec)), rec


def test_bearer_auth_and_list_unwrapping():
    client, rec = _client({("GET", "/forms"): httpx.Response(200, json={"items": [{"id": "f1"}], "page": 1})})
    assert client.list_forms() == [{"id": "f1"}]
    req = rec.requests[0]
    assert req.headers["authorization"] == "Bearer tly-key"
    assert req.headers["content-type"] == "application/json"


def test_list_endpoints_accept_bare_arrays():
    client, _ = _client({("GET", "/workspaces"): httpx.Response(200, json=[{"id": "ws1"}])})
    assert client.list_workspaces() == [{"id": "ws1"}]


def test_create_form_posts_api_body():
    created = {"id": "new", "name": "Survey"}
    client, rec = _client({("POST", "/forms"): httpx.Response(201, json=created)})
    request = CreateFormRequest(
        name="Survey",
        workspace_id="ws1",
        blocks=[{"uuid": "b1", "type": "FORM_TITLE"}],
        settings=TallyFormSettings(confirmation_message="Thanks"),
    )
    assert client.create_form(request) == created
    body = json.loads(rec.requests[0].content)
    assert body["workspaceId"] == "ws1"
    assert body["settings"]["confirmationMessage"] == "Thanks"
    assert body["settings"]["redirectOnCompletion"] is None


def test_update_form_patches_only_set_fields():
    client, rec = _client({("PATCH", "/forms/f1"): httpx.Response(200, json={"id": "f1", "status": "PUBLISHED"})})
    client.update_form("f1", UpdateFormRequest(status="PUBLISHED"))
    assert json.loads(rec.requests[0].content) == {"status": "PUBLISHED"}


def test_delete_returns_true_on_no_content():
    client, _ = _client(
        {
            ("DELETE", "/forms/f1"): httpx.Response(204),
            ("DELETE", "/forms/f1/submissions/s1"): httpx.Response(204),
        }
    )
    assert client.delete_form("f1") is True
    assert client.delete_submission("f1", "s1") is True


def test_submissions_and_user():
    client, _ = _client(
        {
            ("GET", "/forms/f1/submissions"): httpx.Response(200, json={"items": [{"id": "s1"}]}),
            ("GET", "/forms/f1/submissions/s1"): httpx.Response(200, json={"id": "s1"}),
            ("GET", "/user"): httpx.Response(200, json={"id": "u1"}),
        }
    )
    assert client.list_submissions("f1") == [{"id": "s1"}]
    assert client.get_submission("f1", "s1") == {"id": "s1"}


def test_error_status_is_wrapped_with_provider_message():
    client, _ = _client({("GET", "/forms/missing"): httpx.Response(404, json={"message": "Form not found"})})
    with pytest.raises(TallyApiError) as exc_info:
        client.get_form("missing")
    err = exc_info.value
    assert err.status_code == 404
    assert str(err) == "Tally API Error: 404 - Form not found"
    assert err.operation == "get form missing"


def test_error_without_json_body_uses_text():
    client, _ = _client({("GET", "/forms"): httpx.Response(500, text="upstream exploded")})
    with pytest.raises(TallyApiError, match="Tally API Error: 500 - upstream exploded"):
        client.list_forms()


def test_network_errors_are_wrapped():
    def boom(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = TallyApiClient("k", base_url="https://tally.test", transport=httpx.MockTransport(boom))
    with pytest.raises(TallyApiError) as exc_info:
        client.list_forms()
    assert str(exc_info.value) == NETWORK_ERROR_MESSAGE
    assert exc_info.value.status_code is None


def test_validate_api_key():
    ok, _ = _client({("GET", "/user"): httpx.Response(200, json={"id": "u1", "email": "a@b.c"})})
    assert ok.validate_api_key() == {"isValid": True, "user": {"id": "u1", "email": "a@b.c"}}

    bad, _ = _client({("GET", "/user"): httpx.Response(401, json={"message": "Invalid API key"})})
    result = bad.validate_api_key()
    assert result["isValid"] is False
    assert "401" in result["error"]


def test_create_workspace_and_context_manager():
    with TallyApiClient(
        "k",
        base_url="https://tally.test",
        transport=httpx.MockTransport(lambda r: httpx.Response(201, json=json.loads(r.content))),
    ) as client:
        assert client.create_workspace("Team", slug="team") == {"name": "Team", "slug": "team"}


def test_base_url_and_timeout_from_env(monkeypatch):
    monkeypatch.setenv("TALLY_API_BASE_URL", "https://proxy.example/")
    monkeypatch.setenv("TALLY_HTTP_TIMEOUT_SEC", "nope")
    client = TallyApiClient("k")
    assert client.base_url == "https://proxy.example"
    client.close()
