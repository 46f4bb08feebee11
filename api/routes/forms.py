from __future__ import annotations

import functools
from typing import Any, Callable, Dict, Optional, TypeVar

import anyio
from fastapi import APIRouter, Body, Depends, Header

from api.models import CompileRequest, ContactFormRequest, CreateFormFromPromptRequest, ValidateKeyRequest
from respira_form_service import RespiraFormService
from schemas.api_models import UpdateFormRequest

router = APIRouter(tags=["forms"])

T = TypeVar("T")


def get_service(x_tally_api_key: Optional[str] = Header(default=None)) -> RespiraFormService:
    """
    Per-request facade. A `X-Tally-Api-Key` header overrides `TALLY_API_KEY`.
    """
    return RespiraFormService(api_key=(x_tally_api_key or "").strip() or None)


async def _run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    # Compiler and Tally client are sync; keep them off the event loop.
    return await anyio.to_thread.run_sync(functools.partial(fn, *args, **kwargs))


@router.post("/forms/compile")
async def compile_form(body: CompileRequest, service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    compiled = await _run(service.preview_form, body.prompt)
    return {"ok": True, "requestId": compiled.request_id, "form": compiled.to_api()}


@router.post("/forms")
async def create_form(
    body: CreateFormFromPromptRequest,
    service: RespiraFormService = Depends(get_service),
) -> Dict[str, Any]:
    created = await _run(service.create_form_from_prompt, body.prompt, body.options, body.status)
    return {"ok": True, "form": created}


@router.post("/forms/contact")
async def create_contact_form(
    body: Optional[ContactFormRequest] = Body(default=None),
    service: RespiraFormService = Depends(get_service),
) -> Dict[str, Any]:
    body = body or ContactFormRequest()
    created = await _run(
        service.create_contact_form,
        body.title,
        include_phone=body.include_phone,
        include_company=body.include_company,
    )
    return {"ok": True, "form": created}


@router.get("/forms")
async def list_forms(service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    return {"ok": True, "forms": await _run(service.list_forms)}


@router.get("/forms/{formId}")
async def get_form(formId: str, service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    return {"ok": True, "form": await _run(service.get_form, formId)}


@router.patch("/forms/{formId}")
async def update_form(
    formId: str,
    body: UpdateFormRequest,
    service: RespiraFormService = Depends(get_service),
) -> Dict[str, Any]:
    return {"ok": True, "form": await _run(service.update_form, formId, body)}


@router.delete("/forms/{formId}")
async def delete_form(formId: str, service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    return {"ok": True, "deleted": await _run(service.delete_form, formId)}


@router.get("/forms/{formId}/submissions")
async def list_submissions(formId: str, service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    return {"ok": True, "submissions": await _run(service.list_submissions, formId)}


@router.get("/workspaces")
async def list_workspaces(service: RespiraFormService = Depends(get_service)) -> Dict[str, Any]:
    return {"ok": True, "workspaces": await _run(service.list_workspaces)}


@router.post("/validate-key")
async def validate_key(
    body: Optional[ValidateKeyRequest] = Body(default=None),
    service: RespiraFormService = Depends(get_service),
) -> Dict[str, Any]:
    if body is not None and body.api_key:
        service = service.with_api_key(body.api_key)
    result = await _run(service.validate_api_key)
    return {"ok": True, **result}
