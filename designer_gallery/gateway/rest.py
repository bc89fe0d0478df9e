from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import quote

from ..records import Record, Session
from . import http_client
from .base import (
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    AuthError,
    AuthListener,
    AuthListeners,
    GatewayError,
    SessionFile,
)

logger = logging.getLogger(__name__)

# Refresh a little before the token actually lapses.
REFRESH_MARGIN_S = 30.0


class RestGateway:
    """Supabase-compatible REST + auth client for the portfolios table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        table: str = "portfolios",
        session_path: Path | str,
        timeout_s: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = http_client.build_base_url(base_url)
        if not self.base_url:
            raise ValueError("backend_url is required for the rest backend")
        self.api_key = api_key
        self.table = table
        self.timeout_s = timeout_s
        self._clock = clock
        self._sessions = SessionFile(session_path)
        self._listeners = AuthListeners()

    def _headers(self, session: Session | None = None) -> dict[str, str]:
        token = session.access_token if session else self.api_key
        return {"apikey": self.api_key, "Authorization": f"Bearer {token}"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | list[Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[int, Any]:
        url = f"{self.base_url}{path}"
        try:
            return http_client.request_json(
                method, url, headers=headers, body=body, timeout_s=self.timeout_s
            )
        except (OSError, ValueError) as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc

    def _table_path(self, query: str = "") -> str:
        path = f"/rest/v1/{quote(self.table)}"
        return f"{path}?{query}" if query else path

    def list_records(self) -> list[Record]:
        status, payload = self._request(
            "GET",
            self._table_path("select=*&order=id.asc"),
            headers=self._headers(self.get_session()),
        )
        if status != 200:
            raise GatewayError(
                http_client.error_message(payload, f"list failed ({status})"), status=status
            )
        if not isinstance(payload, list):
            raise GatewayError("list returned a non-list payload", status=status)
        try:
            return [Record.from_row(row) for row in payload]
        except ValueError as exc:
            raise GatewayError(f"malformed record: {exc}", status=status) from exc

    def insert_record(self, name: str, url: str) -> Record:
        headers = self._headers(self.get_session())
        headers["Prefer"] = "return=representation"
        status, payload = self._request(
            "POST", self._table_path(), body=[{"name": name, "url": url}], headers=headers
        )
        if status not in {200, 201}:
            raise GatewayError(
                http_client.error_message(payload, f"insert failed ({status})"), status=status
            )
        row = payload[0] if isinstance(payload, list) and payload else payload
        if not isinstance(row, dict):
            raise GatewayError("insert returned no row", status=status)
        try:
            return Record.from_row(row)
        except ValueError as exc:
            raise GatewayError(f"malformed record: {exc}", status=status) from exc

    def delete_record(self, record_id: int) -> None:
        status, payload = self._request(
            "DELETE",
            self._table_path(f"id=eq.{int(record_id)}"),
            headers=self._headers(self.get_session()),
        )
        if status not in {200, 202, 204}:
            raise GatewayError(
                http_client.error_message(payload, f"delete failed ({status})"), status=status
            )

    def _session_from_token_payload(self, payload: Any, fallback_email: str | None) -> Session:
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise GatewayError("auth response missing access_token")
        expires_at = payload.get("expires_at")
        if expires_at is None:
            expires_at = self._clock() + float(payload.get("expires_in") or 3600)
        user = payload.get("user")
        email = user.get("email") if isinstance(user, dict) else None
        return Session.from_dict(
            {
                "access_token": payload["access_token"],
                "refresh_token": payload.get("refresh_token"),
                "expires_at": expires_at,
                "email": email or fallback_email,
            }
        )

    def sign_in(self, email: str, password: str) -> Session:
        status, payload = self._request(
            "POST",
            "/auth/v1/token?grant_type=password",
            body={"email": email, "password": password},
            headers=self._headers(),
        )
        if status in {400, 401, 403}:
            raise AuthError(
                http_client.error_message(payload, "Invalid login credentials"), status=status
            )
        if status != 200:
            raise GatewayError(
                http_client.error_message(payload, f"sign-in failed ({status})"), status=status
            )
        session = self._session_from_token_payload(payload, email)
        self._sessions.save(session)
        self._listeners.emit(SIGNED_IN, session)
        return session

    def sign_out(self) -> None:
        session = self._sessions.load()
        self._sessions.clear()
        self._listeners.emit(SIGNED_OUT, None)
        if session is None:
            return
        status, payload = self._request("POST", "/auth/v1/logout", headers=self._headers(session))
        if status not in {200, 204, 401}:
            raise GatewayError(
                http_client.error_message(payload, f"sign-out failed ({status})"), status=status
            )

    def _refresh(self, session: Session) -> Session | None:
        if not session.refresh_token:
            return None
        try:
            status, payload = self._request(
                "POST",
                "/auth/v1/token?grant_type=refresh_token",
                body={"refresh_token": session.refresh_token},
                headers=self._headers(),
            )
        except GatewayError as exc:
            logger.warning("session refresh failed", exc_info=exc)
            return None
        if status != 200:
            return None
        try:
            return self._session_from_token_payload(payload, session.email)
        except (GatewayError, ValueError) as exc:
            logger.warning("session refresh returned an unusable token", exc_info=exc)
            return None

    def get_session(self) -> Session | None:
        session = self._sessions.load()
        if session is None:
            return None
        if not session.expired(self._clock() + REFRESH_MARGIN_S):
            return session
        refreshed = self._refresh(session)
        if refreshed is None:
            self._sessions.clear()
            self._listeners.emit(SIGNED_OUT, None)
            return None
        self._sessions.save(refreshed)
        self._listeners.emit(TOKEN_REFRESHED, refreshed)
        return refreshed

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        return self._listeners.add(callback)
