from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from ..gateway import AuthError, GatewayError

if TYPE_CHECKING:
    from ..app import GalleryApp

logger = logging.getLogger(__name__)

PORTFOLIOS_PATH = "/portfolios"
LOGIN_REQUIRED = "Login required"


class _ViewerHandler(Protocol):
    def _send_json(self, payload: dict[str, Any] | list[Any], status: int = 200) -> None: ...

    def _access_token(self) -> str | None: ...


def _text_field(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _record_id(payload: dict[str, Any]) -> int | None:
    value = payload.get("id")
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        record_id = int(value)
    except (TypeError, ValueError):
        return None
    return record_id if record_id > 0 else None


def _authorized(handler: _ViewerHandler, app: GalleryApp) -> bool:
    if app.session.verify_token(handler._access_token()):
        return True
    handler._send_json({"error": LOGIN_REQUIRED}, status=401)
    return False


def _send_gateway_error(handler: _ViewerHandler, exc: GatewayError) -> None:
    handler._send_json({"error": exc.message}, status=401 if isinstance(exc, AuthError) else 500)


def handle_get(handler: _ViewerHandler, app: GalleryApp, path: str) -> bool:
    if path != PORTFOLIOS_PATH:
        return False
    try:
        records = app.gateway.list_records()
    except GatewayError as exc:
        logger.warning("list portfolios failed", exc_info=exc)
        _send_gateway_error(handler, exc)
        return True
    handler._send_json([record.to_dict() for record in records])
    return True


def handle_post(
    handler: _ViewerHandler, app: GalleryApp, path: str, payload: dict[str, Any] | None
) -> bool:
    if path != PORTFOLIOS_PATH:
        return False
    if not _authorized(handler, app):
        return True
    payload = payload or {}
    name = _text_field(payload, "name")
    url = _text_field(payload, "url")
    if not name or not url:
        handler._send_json({"error": "Name and URL are required."}, status=400)
        return True
    try:
        record = app.gateway.insert_record(name, url)
    except GatewayError as exc:
        logger.error("portfolio insert failed: %s", exc.message)
        _send_gateway_error(handler, exc)
        return True
    handler._send_json(record.to_dict())
    return True


def handle_delete(
    handler: _ViewerHandler, app: GalleryApp, path: str, payload: dict[str, Any] | None
) -> bool:
    if path != PORTFOLIOS_PATH:
        return False
    if not _authorized(handler, app):
        return True
    record_id = _record_id(payload or {})
    if record_id is None:
        handler._send_json({"error": "ID is required."}, status=400)
        return True
    try:
        app.gateway.delete_record(record_id)
    except GatewayError as exc:
        logger.error("portfolio delete failed: %s", exc.message)
        _send_gateway_error(handler, exc)
        return True
    handler._send_json({"success": True})
    return True
