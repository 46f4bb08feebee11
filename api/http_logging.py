from __future__ import annotations

import json
import logging
import os
import time
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("respira.api.http")


# Compared lowercased: `apiKey` in a JSON body and `x-api-key` in headers both match.
_SENSITIVE_KEYS = {
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "openai_api_key",
    "groq_api_key",
    "tally_api_key",
    "x-tally-api-key",
}


def _env_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if not v:
        return default
    return v in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: ("***" if str(k).lower() in _SENSITIVE_KEYS else redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def _headers(raw: Optional[Iterable[Tuple[bytes, bytes]]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for k, v in raw or []:
        key = k.decode("latin-1").lower()
        out[key] = "***" if key in _SENSITIVE_KEYS else v.decode("latin-1", errors="replace")
    return out


def _body_for_log(content_type: str, body: bytes) -> Any:
    ct = (content_type or "").lower()
    if not body:
        return ""
    text = body.decode("utf-8", errors="replace")
    if "application/json" in ct:
        try:
            return redact(json.loads(text))
        except ValueError:
            return text
    if ct.startswith("text/"):
        return text
    return "<binary>"


class HttpLoggingMiddleware:
    """
    ASGI middleware: one redacted JSON log line per HTTP request.
    """

    def __init__(self, app: ASGIApp, *, log_headers: bool, max_body_bytes: int) -> None:
        self.app = app
        self.log_headers = log_headers
        self.max_body_bytes = max(0, max_body_bytes)

    def _capture(self, buf: bytearray, chunk: bytes) -> bool:
        """
        Append up to the byte cap; returns True once the cap cut something off.
        """
        remaining = self.max_body_bytes - len(buf)
        if remaining > 0:
            buf.extend(chunk[:remaining])
        return len(chunk) > max(remaining, 0)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        started_at = time.perf_counter()
        req_headers_raw: List[Tuple[bytes, bytes]] = list(scope.get("headers") or [])
        req_headers = _headers(req_headers_raw)
        request_id = req_headers.get("x-request-id") or uuid.uuid4().hex[:12]

        req_body = bytearray()
        res_body = bytearray()
        truncated = {"request": False, "response": False}
        res: Dict[str, Any] = {"status": None, "headers": {}}

        async def receive_wrapped() -> Message:
            message = await receive()
            chunk = message.get("body") or b""
            if message.get("type") == "http.request" and chunk and self.max_body_bytes:
                truncated["request"] = self._capture(req_body, chunk) or truncated["request"]
            return message

        async def send_wrapped(message: Message) -> None:
            if message.get("type") == "http.response.start":
                res["status"] = int(message.get("status") or 0)
                res["headers"] = _headers(message.get("headers"))
            elif message.get("type") == "http.response.body" and self.max_body_bytes:
                chunk = message.get("body") or b""
                if chunk:
                    truncated["response"] = self._capture(res_body, chunk) or truncated["response"]
            await send(message)

        err: Optional[BaseException] = None
        try:
            await self.app(scope, receive_wrapped, send_wrapped)
        except BaseException as e:  # noqa: BLE001 - log then re-raise
            err = e
            raise
        finally:
            record: Dict[str, Any] = {
                "id": request_id,
                "method": str(scope.get("method") or "").upper(),
                "path": str(scope.get("path") or ""),
                "status": res["status"],
                "dur_ms": int((time.perf_counter() - started_at) * 1000),
                "request": {
                    "body": _body_for_log(req_headers.get("content-type", ""), bytes(req_body)),
                    "body_truncated": truncated["request"],
                },
                "response": {
                    "body": _body_for_log(res["headers"].get("content-type", ""), bytes(res_body)),
                    "body_truncated": truncated["response"],
                },
            }
            if self.log_headers:
                record["request"]["headers"] = req_headers
                record["response"]["headers"] = res["headers"]
            if err is not None:
                record["error"] = {"type": type(err).__name__, "message": str(err)}
            logger.info(json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str))


def install_http_logging(app: Any) -> None:
    """
    Enable request/response logging via env vars.

    - `RESPIRA_HTTP_LOG=1` enables middleware
    - `RESPIRA_HTTP_LOG_HEADERS=1` logs request/response headers (redacted)
    - `RESPIRA_HTTP_LOG_BODY_MAX_BYTES=4096` caps body bytes captured per request/response
    """
    if not _env_bool("RESPIRA_HTTP_LOG", default=False):
        return
    log_headers = _env_bool("RESPIRA_HTTP_LOG_HEADERS", default=False)
    max_body_bytes = _env_int("RESPIRA_HTTP_LOG_BODY_MAX_BYTES", default=4096)
    app.add_middleware(HttpLoggingMiddleware, log_headers=log_headers, max_body_bytes=max_body_bytes)
