"""CLI entrypoint for chat-relay."""

from __future__ import annotations

import argparse
from importlib import metadata
from typing import Sequence

from dotenv import load_dotenv

from .config import ensure_config_dir, load_config
from .logging_utils import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat-relay", description="Chat client and forwarding gateway"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    subcommands = parser.add_subparsers(dest="command")

    serve = subcommands.add_parser("serve", help="Run the forwarding gateway")
    serve.add_argument("--host", default=None, help="Bind address (overrides config)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")

    subcommands.add_parser("chat", help="Run the terminal chat client (default)")
    return parser


def _serve(config: dict, host: str | None, port: int | None) -> None:
    import uvicorn

    from .server import create_app

    gateway_cfg = config["gateway"]
    configure_logging(config["logging"])
    uvicorn.run(
        create_app(gateway_cfg),
        host=host or str(gateway_cfg["host"]),
        port=port or int(gateway_cfg["port"]),
        log_config=None,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Load environment and configuration, then run the gateway or the chat client."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("chat-relay")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"chat-relay {version}")
        return

    load_dotenv()
    ensure_config_dir()
    config = load_config()

    if args.command == "serve":
        _serve(config, args.host, args.port)
        return

    from .app import ChatRelayApp

    ChatRelayApp(config=config).run()


if __name__ == "__main__":
    main()
