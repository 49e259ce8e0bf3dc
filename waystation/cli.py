"""Command-line entry point that serves the trip planner over HTTP."""

from __future__ import annotations

import argparse
import logging
import os
import socket
from collections.abc import Mapping, Sequence
from importlib.metadata import PackageNotFoundError, version
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIServer, make_server

from .limits import default_limits
from .server import Server
from .store import Store

logger = logging.getLogger(__name__)

DEFAULT_PORT = "9700"
DEFAULT_DATA_DIR = "./waystation-data"


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="waystation", allow_abbrev=False)
    parser.add_argument("-port", "--port", default="", help="HTTP port (overrides PORT env var)")
    parser.add_argument(
        "-data", "--data", default="", help="Data directory (overrides DATA_DIR env var)"
    )
    return parser


def resolve_settings(
    argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None
) -> tuple[str, str]:
    """Return (port, data directory) from flags, then environment, then defaults."""
    environ = os.environ if env is None else env
    args = _parser().parse_args(argv)
    port = args.port or environ.get("PORT", "") or DEFAULT_PORT
    data_dir = args.data or environ.get("DATA_DIR", "") or DEFAULT_DATA_DIR
    return port, data_dir


def _port_number(port: str) -> int:
    if port.isdigit():
        number = int(port)
        if number <= 65535:
            return number
        raise ValueError(f"invalid port {port!r}")
    try:
        return socket.getservbyname(port, "tcp")
    except OSError as exc:
        raise ValueError(f"unknown port {port!r}") from exc


def _version() -> str:
    try:
        return version("waystation")
    except PackageNotFoundError:
        return "dev"


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    port, data_dir = resolve_settings(argv)
    try:
        db = Store(data_dir)
    except (OSError, Exception) as exc:
        raise SystemExit(f"waystation: {exc}") from exc
    with db:
        app = Server(db, default_limits(), data_dir)
        print(f"\n  Waystation v{_version()} — Self-hosted travel and trip planner")
        print(f"  Dashboard:  http://localhost:{port}/ui")
        print(f"  API:        http://localhost:{port}/api")
        print(f"  Data:       {data_dir}\n")
        logger.info("waystation: listening on :%s", port)
        try:
            number = _port_number(port)
            httpd = make_server("", number, app, server_class=_ThreadingWSGIServer)
        except (ValueError, OSError) as exc:
            raise SystemExit(f"waystation: listen tcp :{port}: {exc}") from exc
        with httpd:
            try:
                httpd.serve_forever()
            except KeyboardInterrupt:
                pass


if __name__ == "__main__":
    main()