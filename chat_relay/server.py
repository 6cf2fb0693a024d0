"""FastAPI application exposing the forwarding gateway."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import UploadFile
import httpx

from .config import load_config
from .exceptions import RelayError
from .gateway import FormField, ForwardingGateway

LOGGER = logging.getLogger(__name__)


async def _read_form_fields(request: Request) -> list[FormField]:
    """Collect multipart fields in arrival order, reading uploaded files into memory."""
    form = await request.form()
    fields: list[FormField] = []
    for name, value in form.multi_items():
        if isinstance(value, UploadFile):
            fields.append(
                FormField(
                    name=name,
                    value=await value.read(),
                    filename=value.filename or "",
                    content_type=value.content_type,
                )
            )
        else:
            fields.append(FormField(name=name, value=value))
    return fields


def _relay_failure(exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": "Failed to process request", "details": str(exc)},
        status_code=500,
    )


def create_app(
    gateway_config: dict[str, Any] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    ``gateway_config`` defaults to the ``[gateway]`` section of the loaded
    configuration; ``transport`` lets tests replace the backend.
    """
    if gateway_config is None:
        gateway_config = load_config()["gateway"]
    gateway = ForwardingGateway.from_config(gateway_config, transport=transport)

    app = FastAPI(title="chat-relay gateway")
    app.state.gateway = gateway

    @app.get("/health")
    async def health(request: Request) -> dict[str, bool]:
        """Report whether the backend endpoint and credential are configured."""
        current: ForwardingGateway = request.app.state.gateway
        return {
            "ok": True,
            "endpoint_configured": bool(current.endpoint_url),
            "credential_configured": bool(current.auth_key),
        }

    @app.post("/api/chat")
    async def relay_chat(request: Request) -> Response:
        """Relay the multipart submission and return the backend body verbatim."""
        current: ForwardingGateway = request.app.state.gateway
        try:
            fields = await _read_form_fields(request)
            body = await current.relay(fields)
        except RelayError as exc:
            LOGGER.error(
                "gateway.relay.failed",
                extra={
                    "event": "gateway.relay.failed",
                    "error_type": type(exc).__name__,
                    "status_code": exc.status_code,
                    "reason": str(exc),
                },
            )
            return _relay_failure(exc)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception(
                "gateway.relay.failed",
                extra={
                    "event": "gateway.relay.failed",
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                },
            )
            return _relay_failure(exc)
        return Response(content=body, status_code=200, media_type="application/json")

    return app
