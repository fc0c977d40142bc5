from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING
from urllib.parse import parse_qsl, urlsplit

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator

logger: logging.Logger = logging.getLogger(__name__)

SAMPLE_XML = b"""<?xml version='1.0' encoding='us-ascii'?>
<slideshow author="Yours Truly" title="Sample Slide Show">
<slide type="all"><title>Wake up to WonderWidgets!</title></slide>
</slideshow>
"""


class EchoHandler(BaseHTTPRequestHandler):
    r"""Serve a small subset of the httpbin.org endpoints.

    - ``/status/<code>`` answers with that status code.
    - ``/forward`` redirects to ``/missing``, an HTML 404 page.
    - ``/xml`` answers with a sample XML document.
    - ``/delay?ms=<n>`` waits before answering.
    - any other path echoes the request as JSON.
    """

    def do_GET(self) -> None:
        self.handle_any()

    do_POST = do_PUT = do_PATCH = do_DELETE = do_OPTIONS = do_GET

    def do_HEAD(self) -> None:
        self.handle_any()

    def handle_any(self) -> None:
        parts = urlsplit(self.path)
        args = dict(parse_qsl(parts.query, keep_blank_values=True))
        length = int(self.headers.get("Content-Length") or 0)
        data = self.rfile.read(length) if length else b""

        if parts.path.startswith("/status/"):
            self.reply(int(parts.path.rpartition("/")[2]))
        elif parts.path == "/forward":
            self.reply(302, headers={"Location": "/missing"})
        elif parts.path == "/missing":
            self.reply(404, b"<html>not found</html>\n", "text/html")
        elif parts.path == "/xml":
            self.reply(200, SAMPLE_XML, "application/xml")
        else:
            if parts.path == "/delay":
                threading.Event().wait(int(args.get("ms", "0")) / 1000)
            echo = {
                "method": self.command,
                "url": self.path,
                "args": args,
                "headers": {key.lower(): value for key, value in self.headers.items()},
                "data": data.decode("utf-8", "replace"),
            }
            self.reply(200, json.dumps(echo).encode(), "application/json")

    def reply(
        self,
        status_code: int,
        body: bytes = b"",
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.send_response(status_code)
        if content_type is not None:
            self.send_header("Content-Type", content_type)
        for key, value in (headers or {}).items():
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.debug(format % args)


class EchoServer(ThreadingHTTPServer):
    daemon_threads = True

    def handle_error(self, request: object, client_address: object) -> None:
        # clients that timed out close the connection early
        logger.debug(f"Connection from {client_address} closed early")


@pytest.fixture(scope="session")
def server_url() -> Generator[str, None, None]:
    """Run a local HTTP server for the whole test session."""
    server = EchoServer(("127.0.0.1", 0), EchoHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
