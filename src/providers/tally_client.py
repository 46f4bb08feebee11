"""
Tally REST client (https://api.tally.so).

Thin synchronous wrapper over `httpx.Client`. Every failure is raised as
`TallyApiError`; callers decide how to surface it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Union

import httpx

from schemas.api_models import CreateFormRequest, UpdateFormRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.tally.so"
DEFAULT_TIMEOUT_SEC = 30.0
NETWORK_ERROR_MESSAGE = "Network Error: Unable to connect to Tally API"


class TallyApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, operation: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.operation = operation


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            v = body.get(key)
            if isinstance(v, str) and v.strip():
                return v.strip()
    text = (response.text or "").strip()
    return text[:300] if text else (response.reason_phrase or "Unknown error")


def _items(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        items = data.get("items")
        return items if isinstance(items, list) else []
    return data if isinstance(data, list) else []


class TallyApiClient:
    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or os.getenv("TALLY_API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        if timeout is None:
            try:
                timeout = float(os.getenv("TALLY_HTTP_TIMEOUT_SEC") or DEFAULT_TIMEOUT_SEC)
            except ValueError:
                timeout = DEFAULT_TIMEOUT_SEC
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "TallyApiClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, path: str, *, operation: str, json: Any = None) -> Any:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.RequestError as e:
            logger.warning("tally %s failed: %s", operation, e)
            raise TallyApiError(NETWORK_ERROR_MESSAGE, operation=operation) from e

        if response.is_error:
            msg = f"Tally API Error: {response.status_code} - {_provider_message(response)}"
            logger.warning("tally %s failed: %s", operation, msg)
            raise TallyApiError(msg, status_code=response.status_code, operation=operation)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    # --- account ---------------------------------------------------------

    def validate_api_key(self) -> Dict[str, Any]:
        try:
            user = self.get_user()
        except TallyApiError as e:
            return {"isValid": False, "error": str(e)}
        return {"isValid": True, "user": user}

    def get_user(self) -> Dict[str, Any]:
        return self._request("GET", "/user", operation="get user") or {}

    # --- forms -----------------------------------------------------------

    def list_forms(self) -> List[Dict[str, Any]]:
        return _items(self._request("GET", "/forms", operation="list forms"))

    def get_form(self, form_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/forms/{form_id}", operation=f"get form {form_id}") or {}

    def create_form(self, request: Union[CreateFormRequest, Dict[str, Any]]) -> Dict[str, Any]:
        body = request.to_api() if isinstance(request, CreateFormRequest) else request
        return self._request("POST", "/forms", operation="create form", json=body) or {}

    def update_form(self, form_id: str, request: Union[UpdateFormRequest, Dict[str, Any]]) -> Dict[str, Any]:
        body = request.to_api() if isinstance(request, UpdateFormRequest) else request
        return self._request("PATCH", f"/forms/{form_id}", operation=f"update form {form_id}", json=body) or {}

    def delete_form(self, form_id: str) -> bool:
        self._request("DELETE", f"/forms/{form_id}", operation=f"delete form {form_id}")
        return True

    # --- submissions -----------------------------------------------------

    def list_submissions(self, form_id: str) -> List[Dict[str, Any]]:
        data = self._request("GET", f"/forms/{form_id}/submissions", operation=f"list submissions for form {form_id}")
        return _items(data)

    def get_submission(self, form_id: str, submission_id: str) -> Dict[str, Any]:
        path = f"/forms/{form_id}/submissions/{submission_id}"
        return self._request("GET", path, operation=f"get submission {submission_id}") or {}

    def delete_submission(self, form_id: str, submission_id: str) -> bool:
        path = f"/forms/{form_id}/submissions/{submission_id}"
        self._request("DELETE", path, operation=f"delete submission {submission_id}")
        return True

    # --- workspaces ------------------------------------------------------

    def list_workspaces(self) -> List[Dict[str, Any]]:
        return _items(self._request("GET", "/workspaces", operation="list workspaces"))

    def create_workspace(self, name: str, slug: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"name": name}
        if slug:
            body["slug"] = slug
        return self._request("POST", "/workspaces", operation="create workspace", json=body) or {}


__all__ = ["NETWORK_ERROR_MESSAGE", "TallyApiClient", "TallyApiError"]
