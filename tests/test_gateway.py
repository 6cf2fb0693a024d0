"""Tests for the forwarding gateway relay and its HTTP surface."""

from __future__ import annotations

import json
import unittest

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.datastructures import UploadFile
import httpx

from chat_relay.exceptions import GatewayConfigError, RelayError
from chat_relay.gateway import FormField, ForwardingGateway
from chat_relay.server import create_app

BACKEND_URL = "http://backend/webhook"


def _build_backend(
    received: list[dict], status_code: int = 200, body: str = '{"output": "hi"}'
) -> FastAPI:
    """Fake conversational backend that records headers and multipart fields."""
    backend = FastAPI()

    @backend.post("/webhook")
    async def webhook(request: Request) -> Response:
        form = await request.form()
        fields: dict[str, object] = {}
        for name, value in form.multi_items():
            if isinstance(value, UploadFile):
                fields[name] = {
                    "filename": value.filename,
                    "content_type": value.content_type,
                    "data": await value.read(),
                }
            else:
                fields[name] = value
        received.append({"headers": dict(request.headers), "fields": fields})
        return Response(content=body, status_code=status_code, media_type="text/plain")

    return backend


class ForwardingGatewayTests(unittest.IsolatedAsyncioTestCase):
    """Validate relay behavior against a fake backend."""

    def _gateway(self, backend: FastAPI, **overrides: str) -> ForwardingGateway:
        return ForwardingGateway(
            endpoint_url=overrides.get("endpoint_url", BACKEND_URL),
            auth_key=overrides.get("auth_key", "secret"),
            transport=httpx.ASGITransport(app=backend),
        )

    async def test_missing_attachment_is_forwarded_as_empty_field(self) -> None:
        received: list[dict] = []
        gateway = self._gateway(_build_backend(received))

        body = await gateway.relay(
            [FormField("chatInput", "hello"), FormField("sessionId", "s-1")]
        )

        self.assertEqual(body, b'{"output": "hi"}')
        fields = received[0]["fields"]
        self.assertEqual(fields["chatInput"], "hello")
        self.assertEqual(fields["sessionId"], "s-1")
        self.assertIn("upload_image", fields)
        self.assertEqual(fields["upload_image"], "")

    async def test_credential_header_is_attached(self) -> None:
        received: list[dict] = []
        gateway = self._gateway(_build_backend(received), auth_key="s3cret")
        await gateway.relay([FormField("chatInput", "x")])
        self.assertEqual(received[0]["headers"]["key"], "s3cret")

    async def test_attachment_is_forwarded_unchanged(self) -> None:
        received: list[dict] = []
        gateway = self._gateway(_build_backend(received))
        await gateway.relay(
            [
                FormField("chatInput", ""),
                FormField("sessionId", "s-1"),
                FormField("upload_image", b"\xff\xd8jpeg", "me.jpg", "image/jpeg"),
            ]
        )
        upload = received[0]["fields"]["upload_image"]
        self.assertEqual(upload["filename"], "me.jpg")
        self.assertEqual(upload["content_type"], "image/jpeg")
        self.assertEqual(upload["data"], b"\xff\xd8jpeg")

    async def test_backend_error_status_raises_without_retry(self) -> None:
        received: list[dict] = []
        gateway = self._gateway(_build_backend(received, status_code=503, body="down"))
        with self.assertRaises(RelayError) as ctx:
            await gateway.relay([FormField("chatInput", "x")])
        self.assertEqual(ctx.exception.status_code, 503)
        self.assertEqual(len(received), 1)

    async def test_missing_endpoint_is_config_error(self) -> None:
        gateway = self._gateway(_build_backend([]), endpoint_url="")
        with self.assertRaises(GatewayConfigError):
            await gateway.relay([FormField("chatInput", "x")])

    async def test_missing_credential_fails_closed(self) -> None:
        received: list[dict] = []
        gateway = self._gateway(_build_backend(received), auth_key="")
        with self.assertRaises(GatewayConfigError):
            await gateway.relay([FormField("chatInput", "x")])
        self.assertEqual(received, [])

    async def test_transport_exception_is_relay_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        gateway = ForwardingGateway(
            BACKEND_URL, "secret", transport=httpx.MockTransport(refuse)
        )
        with self.assertRaises(RelayError):
            await gateway.relay([FormField("chatInput", "x")])

    def test_with_attachment_field_keeps_existing_field(self) -> None:
        fields = [FormField("upload_image", b"x", "a.png", "image/png")]
        self.assertEqual(ForwardingGateway.with_attachment_field(fields), fields)

    def test_from_config(self) -> None:
        gateway = ForwardingGateway.from_config(
            {"endpoint_url": BACKEND_URL, "auth_key": "k", "timeout": 5}
        )
        self.assertEqual(gateway.endpoint_url, BACKEND_URL)
        self.assertEqual(gateway.timeout, 5.0)


class GatewayServerTests(unittest.IsolatedAsyncioTestCase):
    """Drive the FastAPI app in-process through ASGI transports."""

    def _client(self, backend: FastAPI, **config: object) -> httpx.AsyncClient:
        gateway_config = {"endpoint_url": BACKEND_URL, "auth_key": "secret", "timeout": 5}
        gateway_config.update(config)
        app = create_app(gateway_config, transport=httpx.ASGITransport(app=backend))
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://gateway"
        )

    async def test_success_returns_raw_body_as_json_content_type(self) -> None:
        received: list[dict] = []
        async with self._client(_build_backend(received, body="not json at all")) as client:
            response = await client.post(
                "/api/chat",
                files=[("chatInput", (None, "hi")), ("sessionId", (None, "s-9"))],
            )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "application/json")
        self.assertEqual(response.text, "not json at all")
        self.assertEqual(received[0]["fields"]["upload_image"], "")
        self.assertEqual(received[0]["fields"]["sessionId"], "s-9")

    async def test_uploaded_file_is_relayed(self) -> None:
        received: list[dict] = []
        async with self._client(_build_backend(received)) as client:
            response = await client.post(
                "/api/chat",
                files=[
                    ("chatInput", (None, "look")),
                    ("sessionId", (None, "s")),
                    ("upload_image", ("p.png", b"\x89PNG", "image/png")),
                ],
            )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(received[0]["fields"]["upload_image"]["data"], b"\x89PNG")

    async def test_backend_failure_is_uniform_relay_error(self) -> None:
        async with self._client(_build_backend([], status_code=500, body="bad")) as client:
            response = await client.post(
                "/api/chat", files=[("chatInput", (None, "hi"))]
            )
        self.assertEqual(response.status_code, 500)
        payload = json.loads(response.text)
        self.assertEqual(payload["error"], "Failed to process request")
        self.assertIn("500", payload["details"])

    async def test_missing_endpoint_is_relay_failure_not_crash(self) -> None:
        async with self._client(_build_backend([]), endpoint_url="") as client:
            response = await client.post(
                "/api/chat", files=[("chatInput", (None, "hi"))]
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json()["details"], "CHAT_API_URL is not configured"
        )

    async def test_health_reports_configuration(self) -> None:
        async with self._client(_build_backend([]), auth_key="") as client:
            response = await client.get("/health")
        self.assertEqual(
            response.json(),
            {"ok": True, "endpoint_configured": True, "credential_configured": False},
        )


if __name__ == "__main__":
    unittest.main()
