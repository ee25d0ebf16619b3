"""
HTTP transport for the MCP gateway.
"""

from __future__ import annotations

import hmac
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from image_mcp.config import Settings
from image_mcp.server.dispatcher import Dispatcher


logger = logging.getLogger(__name__)

router = APIRouter()


def _verify_bearer(settings: Settings, authorization: str | None) -> None:
    expected = str(settings.server.auth_token or "").strip()
    if not expected:
        logger.error("AUTH_TOKEN is not configured, rejecting HTTP request")
        raise HTTPException(status_code=500, detail="server misconfigured: AUTH_TOKEN is not set")

    header = str(authorization or "").strip()
    scheme, _, provided = header.partition(" ")
    provided = provided.strip()
    if scheme.lower() != "bearer" or not provided:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/")
async def root(request: Request) -> dict[str, str]:
    settings: Settings = request.app.state.settings
    return {"status": "ok", "service": settings.server_info.name}


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/mcp")
async def mcp_endpoint(request: Request) -> JSONResponse:
    settings: Settings = request.app.state.settings
    dispatcher: Dispatcher = request.app.state.dispatcher
    _verify_bearer(settings, request.headers.get("authorization"))

    raw_body = await request.body()
    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc

    if isinstance(payload, list):
        responses: list[dict[str, Any]] = []
        for envelope in payload:
            response = await dispatcher.handle(envelope)
            if response is not None:
                responses.append(response)
        return JSONResponse(content=responses)

    return JSONResponse(content=await dispatcher.handle(payload))
