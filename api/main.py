from __future__ import annotations

import sys
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)


def _repo_root() -> Path:
    # `api/main.py` lives at `<repo>/api/main.py`
    return Path(__file__).resolve().parents[1]


def _ensure_src_on_path() -> None:
    src = _repo_root() / "src"
    if not src.is_dir():
        return
    s = str(src)
    if s not in sys.path:
        sys.path.insert(0, s)


_ensure_src_on_path()

from api.http_logging import install_http_logging  # noqa: E402
from api.routes import forms, health  # noqa: E402
from providers.tally_client import TallyApiError  # noqa: E402
from respira_form_service import NoWorkspaceError, ServiceNotConfiguredError  # noqa: E402


def _request_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def _error(status_code: int, error: str, message: str, request_id: str, **extra: object) -> JSONResponse:
    content = {"ok": False, "error": error, "message": message, "requestId": request_id, **extra}
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    # Load `.env` + `.env.local` when present (local dev convenience).
    load_dotenv(_repo_root() / ".env", override=False)
    load_dotenv(_repo_root() / ".env.local", override=False)

    app = FastAPI(title="respira-form-service")
    install_http_logging(app)

    router = APIRouter(prefix="/v1/api")
    router.include_router(forms.router)

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = _request_id("val")
        print(
            f"[api] 422 validation_error requestId={request_id} path={request.url.path} errors={exc.errors()}",
            flush=True,
        )
        return _error(
            HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Request body did not match expected schema.",
            request_id,
            details=exc.errors(),
        )

    @app.exception_handler(TallyApiError)
    async def _tally_error_handler(request: Request, exc: TallyApiError) -> JSONResponse:
        request_id = _request_id("tally")
        status = exc.status_code or HTTP_502_BAD_GATEWAY
        print(f"[api] {status} tally_api_error requestId={request_id} op={exc.operation!r} msg={exc.message}", flush=True)
        return _error(status, "tally_api_error", exc.message, request_id)

    @app.exception_handler(ServiceNotConfiguredError)
    async def _not_configured_handler(request: Request, exc: ServiceNotConfiguredError) -> JSONResponse:
        return _error(HTTP_400_BAD_REQUEST, "not_configured", str(exc), _request_id("cfg"))

    @app.exception_handler(NoWorkspaceError)
    async def _no_workspace_handler(request: Request, exc: NoWorkspaceError) -> JSONResponse:
        return _error(HTTP_400_BAD_REQUEST, "no_workspace", str(exc), _request_id("ws"))

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = _request_id("err")
        print(f"[api] 500 internal_error requestId={request_id} path={request.url.path} err={exc!r}", flush=True)
        return _error(HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error.", request_id)

    app.include_router(health.router)
    app.include_router(router)
    return app


app = create_app()
