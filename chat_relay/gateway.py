"""Stateless relay between client submissions and the conversational backend."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Iterable

import httpx

from .exceptions import GatewayConfigError, RelayError

LOGGER = logging.getLogger(__name__)

ATTACHMENT_FIELD = "upload_image"
CREDENTIAL_HEADER = "KEY"


@dataclass(frozen=True)
class FormField:
    """One multipart field as received from the client.

    ``filename`` is ``None`` for plain text fields.
    """

    name: str
    value: bytes | str
    filename: str | None = None
    content_type: str | None = None

    @property
    def is_file(self) -> bool:
        return self.filename is not None

    def describe(self) -> dict[str, Any]:
        if self.is_file:
            size = len(self.value)
            return {
                "name": self.name,
                "kind": "file",
                "filename": self.filename,
                "content_type": self.content_type,
                "size": size,
            }
        return {"name": self.name, "kind": "text", "length": len(self.value)}

    def as_httpx_file(self) -> tuple[str, tuple[str | None, bytes | str, str | None]]:
        return (self.name, (self.filename, self.value, self.content_type))


class ForwardingGateway:
    """Forward a multipart submission to the backend and hand back its raw body.

    Performs no retries and keeps no state between calls; each relay opens
    its own HTTP client.
    """

    def __init__(
        self,
        endpoint_url: str,
        auth_key: str,
        timeout: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.auth_key = auth_key
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        gateway_config: dict[str, Any],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ForwardingGateway:
        """Build a gateway from the ``[gateway]`` config section."""
        return cls(
            endpoint_url=str(gateway_config.get("endpoint_url", "")),
            auth_key=str(gateway_config.get("auth_key", "")),
            timeout=float(gateway_config.get("timeout", 120)),
            transport=transport,
        )

    @staticmethod
    def with_attachment_field(fields: Iterable[FormField]) -> list[FormField]:
        """Return ``fields`` with an empty attachment field appended when absent."""
        prepared = list(fields)
        if not any(item.name == ATTACHMENT_FIELD for item in prepared):
            prepared.append(FormField(ATTACHMENT_FIELD, ""))
            LOGGER.info(
                "gateway.attachment.placeholder",
                extra={"event": "gateway.attachment.placeholder"},
            )
        return prepared

    async def relay(self, fields: Iterable[FormField]) -> bytes:
        """Forward ``fields`` to the backend and return the response body.

        Raises:
            GatewayConfigError: when the endpoint or credential is missing.
            RelayError: on a transport failure or non-success status.
        """
        fields = list(fields)
        LOGGER.info(
            "gateway.request.outgoing",
            extra={
                "event": "gateway.request.outgoing",
                "endpoint_configured": bool(self.endpoint_url),
                "credential_configured": bool(self.auth_key),
                "fields": [item.describe() for item in fields],
            },
        )
        if not self.endpoint_url:
            raise GatewayConfigError("CHAT_API_URL is not configured")
        if not self.auth_key:
            raise GatewayConfigError("CHAT_AUTH_KEY is not configured")

        prepared = self.with_attachment_field(fields)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint_url,
                    headers={CREDENTIAL_HEADER: self.auth_key},
                    files=[item.as_httpx_file() for item in prepared],
                )
        except httpx.HTTPError as exc:
            raise RelayError(f"Backend request failed: {exc}") from exc

        LOGGER.info(
            "gateway.response.incoming",
            extra={
                "event": "gateway.response.incoming",
                "status_code": response.status_code,
                "body_length": len(response.content),
            },
        )
        if not response.is_success:
            LOGGER.error(
                "gateway.response.error",
                extra={
                    "event": "gateway.response.error",
                    "status_code": response.status_code,
                    "body": response.text,
                },
            )
            raise RelayError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )
        return response.content
