from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..gateway import GatewayError
from ..session import INCORRECT_CREDENTIALS
from .portfolios import LOGIN_REQUIRED, _ViewerHandler

if TYPE_CHECKING:
    from ..app import GalleryApp

logger = logging.getLogger(__name__)

SESSION_PATH = "/session"


def handle_get(handler: _ViewerHandler, app: GalleryApp, path: str) -> bool:
    if path != SESSION_PATH:
        return False
    handler._send_json({"authenticated": app.session.verify_token(handler._access_token())})
    return True


def handle_post(
    handler: _ViewerHandler, app: GalleryApp, path: str, payload: dict[str, Any] | None
) -> bool:
    """Sign in through the Session Gate and hand the browser its access token."""

    if path != SESSION_PATH:
        return False
    payload = payload or {}
    email = payload.get("email")
    password = payload.get("password")
    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        handler._send_json({"error": INCORRECT_CREDENTIALS}, status=401)
        return True
    if not app.session.sign_in(email, password):
        message = app.visible_message("error") or INCORRECT_CREDENTIALS
        handler._send_json({"error": message}, status=401)
        return True
    try:
        session = app.gateway.get_session()
    except GatewayError as exc:
        logger.warning("session lookup after sign-in failed", exc_info=exc)
        session = None
    if session is None:
        handler._send_json({"error": "Login failed"}, status=500)
        return True
    handler._send_json({"authenticated": True, "access_token": session.access_token})
    return True


def handle_delete(handler: _ViewerHandler, app: GalleryApp, path: str) -> bool:
    if path != SESSION_PATH:
        return False
    if not app.session.verify_token(handler._access_token()):
        handler._send_json({"error": LOGIN_REQUIRED}, status=401)
        return True
    app.session.sign_out()
    handler._send_json({"success": True})
    return True
