"""Top-level package for chat-relay."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import ChatRelayApp
    from .client import GatewayClient
    from .config import ensure_config_dir, load_config
    from .controller import ConversationController
    from .exceptions import (
        AttachmentValidationError,
        ChatRelayError,
        ConfigValidationError,
        GatewayConfigError,
        RelayError,
        SessionNotInitializedError,
    )
    from .gateway import ForwardingGateway
    from .markup import render_markup
    from .normalize import normalize_response

__all__ = [
    "AttachmentValidationError",
    "ChatRelayApp",
    "ChatRelayError",
    "ConfigValidationError",
    "ConversationController",
    "ForwardingGateway",
    "GatewayClient",
    "GatewayConfigError",
    "RelayError",
    "SessionNotInitializedError",
    "ensure_config_dir",
    "load_config",
    "normalize_response",
    "render_markup",
]

_EXCEPTION_NAMES = {
    "AttachmentValidationError",
    "ChatRelayError",
    "ConfigValidationError",
    "GatewayConfigError",
    "RelayError",
    "SessionNotInitializedError",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep optional UI and server dependencies optional at import time."""
    if name == "ConversationController":
        from .controller import ConversationController

        return ConversationController
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name in _EXCEPTION_NAMES:
        from . import exceptions

        return getattr(exceptions, name)
    if name == "GatewayClient":
        from .client import GatewayClient

        return GatewayClient
    if name == "ForwardingGateway":
        from .gateway import ForwardingGateway

        return ForwardingGateway
    if name == "render_markup":
        from .markup import render_markup

        return render_markup
    if name == "normalize_response":
        from .normalize import normalize_response

        return normalize_response
    if name == "ChatRelayApp":
        from .app import ChatRelayApp

        return ChatRelayApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
