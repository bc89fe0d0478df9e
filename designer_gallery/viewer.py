from __future__ import annotations

import logging
import os
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import urlparse

from . import viewer_assets
from .app import GalleryApp
from .config import load_config
from .viewer_http import (
    bearer_token,
    read_json_body,
    reject_cross_origin,
    send_bytes_response,
    send_json_response,
)
from .viewer_routes import portfolios as viewer_routes_portfolios
from .viewer_routes import session as viewer_routes_session

logger = logging.getLogger(__name__)

DEFAULT_VIEWER_HOST = "127.0.0.1"
DEFAULT_VIEWER_PORT = 38890


def build_gallery_handler(app: GalleryApp) -> type[BaseHTTPRequestHandler]:
    class GalleryHandler(BaseHTTPRequestHandler):
        def _send_json(self, payload: dict[str, Any] | list[Any], status: int = 200) -> None:
            send_json_response(self, payload, status=status)

        def _access_token(self) -> str | None:
            return bearer_token(self)

        def _send_not_found(self) -> None:
            self.send_response(404)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def _send_static_asset(self, asset_path: str) -> None:
            try:
                body, content_type = viewer_assets.get_static_asset_bytes(asset_path)
            except (OSError, ValueError):
                self._send_not_found()
                return
            send_bytes_response(self, body, content_type=content_type)

        def _send_unexpected(self, exc: Exception) -> None:
            logger.exception("unhandled %s %s", self.command, self.path, exc_info=exc)
            payload: dict[str, Any] = {"error": "Unexpected server error"}
            if os.environ.get("DESIGNER_GALLERY_VIEWER_DEBUG") == "1":
                payload["detail"] = str(exc)
            self._send_json(payload, status=500)

        def log_message(self, format: str, *args: object) -> None:  # noqa: A003
            if os.environ.get("DESIGNER_GALLERY_VIEWER_LOGS") == "1":
                super().log_message(format, *args)

        def do_GET(self) -> None:  # noqa: N802
            parsed = urlparse(self.path)
            if parsed.path in {"/", "/index.html"}:
                self._send_static_asset("index.html")
                return
            if parsed.path.startswith("/assets/"):
                self._send_static_asset(parsed.path[len("/assets/") :])
                return
            try:
                if viewer_routes_portfolios.handle_get(self, app, parsed.path):
                    return
                if viewer_routes_session.handle_get(self, app, parsed.path):
                    return
            except Exception as exc:
                self._send_unexpected(exc)
                return
            self._send_not_found()

        def do_POST(self) -> None:  # noqa: N802
            parsed = urlparse(self.path)
            if reject_cross_origin(self):
                return
            try:
                payload = read_json_body(self)
                if viewer_routes_portfolios.handle_post(self, app, parsed.path, payload):
                    return
                if viewer_routes_session.handle_post(self, app, parsed.path, payload):
                    return
            except Exception as exc:
                self._send_unexpected(exc)
                return
            self._send_not_found()

        def do_DELETE(self) -> None:  # noqa: N802
            parsed = urlparse(self.path)
            if reject_cross_origin(self):
                return
            try:
                payload = read_json_body(self)
                if viewer_routes_portfolios.handle_delete(self, app, parsed.path, payload):
                    return
                if viewer_routes_session.handle_delete(self, app, parsed.path):
                    return
            except Exception as exc:
                self._send_unexpected(exc)
                return
            self._send_not_found()

    return GalleryHandler


def _port_open(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.settimeout(0.2)
        try:
            return sock.connect_ex((host, port)) == 0
        except OSError:
            return False


def make_server(host: str, port: int, app: GalleryApp | None = None) -> ThreadingHTTPServer:
    if app is None:
        app = GalleryApp.from_config(load_config())
        app.start()
    server = ThreadingHTTPServer((host, port), build_gallery_handler(app))
    server.daemon_threads = True
    return server


def start_viewer(
    host: str = DEFAULT_VIEWER_HOST,
    port: int = DEFAULT_VIEWER_PORT,
    background: bool = False,
    app: GalleryApp | None = None,
) -> ThreadingHTTPServer | None:
    if _port_open(host, port):
        logger.info("viewer already listening on %s:%s", host, port)
        return None
    server = make_server(host, port, app)
    if background:
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        return server
    try:
        server.serve_forever()
    finally:
        server.server_close()
    return server
