"""Async HTTP client that submits chat turns to the forwarding gateway."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .exceptions import RelayError
from .models import Submission

LOGGER = logging.getLogger(__name__)


class GatewayClient:
    """Post one ``Submission`` per call to the gateway and return the raw body.

    The body is returned untouched; interpreting it is the controller's job.
    """

    def __init__(
        self,
        gateway_url: str,
        timeout: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.gateway_url = gateway_url
        self.timeout = timeout
        if client is not None:
            self._client = client
        else:
            self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def submit(self, submission: Submission) -> str:
        """Send ``submission`` and return the response text.

        Raises:
            RelayError: on transport failure or a non-success HTTP status.
        """
        LOGGER.info(
            "client.request.start",
            extra={
                "event": "client.request.start",
                "session_id": submission.session_id,
                "has_attachment": submission.attachment is not None,
                "text_length": len(submission.text),
            },
        )
        try:
            response = await self._client.post(
                self.gateway_url, files=submission.form_fields()
            )
        except httpx.HTTPError as exc:
            raise RelayError(f"Gateway request failed: {exc}") from exc

        if not response.is_success:
            raise RelayError(
                f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
            )

        LOGGER.info(
            "client.request.complete",
            extra={
                "event": "client.request.complete",
                "status_code": response.status_code,
                "body_length": len(response.text),
            },
        )
        return response.text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> GatewayClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
