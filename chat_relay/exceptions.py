"""Domain exception hierarchy for the chat relay."""

from __future__ import annotations


class ChatRelayError(RuntimeError):
    """Base class for all domain-level chat errors."""


class AttachmentValidationError(ChatRelayError):
    """Raised when a staged image has the wrong type or is too large."""


class SessionNotInitializedError(ChatRelayError):
    """Raised when sending before a session identifier exists."""


class RelayError(ChatRelayError):
    """Raised when a submission cannot be delivered to or answered by the backend."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GatewayConfigError(RelayError):
    """Raised when the gateway has no backend endpoint or credential configured."""


class ConfigValidationError(ChatRelayError):
    """Raised when configuration cannot be validated safely."""
