from __future__ import annotations

import json
import os
from http.server import BaseHTTPRequestHandler
from typing import Any
from urllib.parse import urlparse

LOOPBACK_HOSTS = frozenset({"127.0.0.1", "localhost", "::1"})
MAX_BODY_BYTES = 64 * 1024
_SAME_SITE_FETCHES = frozenset({"", "same-origin", "same-site", "none"})


def _is_loopback_origin(value: str) -> bool:
    """True only for a bare ``http://<loopback>[:port]`` origin."""

    try:
        parsed = urlparse(value)
        host = parsed.hostname
        _ = parsed.port
    except ValueError:
        return False
    if parsed.scheme != "http" or host not in LOOPBACK_HOSTS or "@" in parsed.netloc:
        return False
    return not (parsed.path.strip("/") or parsed.params or parsed.query or parsed.fragment)


def _origin_of(url: str) -> str:
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}"


def reject_cross_origin(handler: BaseHTTPRequestHandler) -> bool:
    """Answer 403 to a write that did not come from the gallery page or a local client.

    Browsers send ``Origin`` on writes. Without it, ``Sec-Fetch-Site`` and
    ``Referer`` decide; a client sending none of the three (the CLI, curl) passes.
    """

    origin = handler.headers.get("Origin")
    if origin:
        allowed = _is_loopback_origin(origin)
    else:
        fetch_site = (handler.headers.get("Sec-Fetch-Site") or "").strip().lower()
        referer = handler.headers.get("Referer")
        allowed = fetch_site in _SAME_SITE_FETCHES and (
            not referer or _is_loopback_origin(_origin_of(referer))
        )
    if allowed:
        return False
    send_json_response(handler, {"error": "forbidden"}, status=403)
    return True


def bearer_token(handler: BaseHTTPRequestHandler) -> str | None:
    scheme, _, token = (handler.headers.get("Authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def send_bytes_response(
    handler: BaseHTTPRequestHandler,
    body: bytes,
    *,
    content_type: str,
    status: int = 200,
    no_store: bool = False,
) -> None:
    handler.send_response(status)
    handler.send_header("Content-Type", content_type)
    if no_store or os.environ.get("DESIGNER_GALLERY_VIEWER_NO_CACHE") == "1":
        handler.send_header("Cache-Control", "no-store")
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def send_json_response(
    handler: BaseHTTPRequestHandler,
    payload: dict[str, Any] | list[Any],
    status: int = 200,
) -> None:
    # API answers depend on the session, so browsers must not reuse them.
    send_bytes_response(
        handler,
        json.dumps(payload, ensure_ascii=False).encode("utf-8"),
        content_type="application/json; charset=utf-8",
        status=status,
        no_store=True,
    )


def read_json_body(handler: BaseHTTPRequestHandler) -> dict[str, Any] | None:
    """Parse a JSON object body; anything else (oversized, empty, a list) is None."""

    try:
        length = int(handler.headers.get("Content-Length") or 0)
    except ValueError:
        return None
    if not 0 < length <= MAX_BODY_BYTES:
        return None
    try:
        payload = json.loads(handler.rfile.read(length).decode("utf-8", errors="replace"))
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None
