"""Tests for the CLI entrypoint."""

from __future__ import annotations

import io
import unittest
from unittest.mock import patch

from chat_relay.__main__ import _build_parser, main


class MainEntrypointTests(unittest.TestCase):
    """Validate argument parsing and dispatch."""

    def test_version_flag_prints_version(self) -> None:
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            main(["--version"])
        self.assertTrue(stdout.getvalue().startswith("chat-relay "))

    def test_serve_arguments_parse(self) -> None:
        args = _build_parser().parse_args(["serve", "--host", "0.0.0.0", "--port", "9000"])
        self.assertEqual(args.command, "serve")
        self.assertEqual(args.host, "0.0.0.0")
        self.assertEqual(args.port, 9000)

    def test_serve_dispatches_to_gateway(self) -> None:
        with (
            patch("chat_relay.__main__.load_dotenv"),
            patch("chat_relay.__main__.ensure_config_dir"),
            patch("chat_relay.__main__._serve") as serve,
        ):
            main(["serve", "--port", "8123"])
        serve.assert_called_once()
        self.assertEqual(serve.call_args.args[2], 8123)


if __name__ == "__main__":
    unittest.main()
