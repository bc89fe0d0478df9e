from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from ..records import Record, Session

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

AuthListener = Callable[[str, Session | None], None]


class GatewayError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class AuthError(GatewayError):
    """Credentials were rejected by the auth service."""


class Gateway(Protocol):
    def list_records(self) -> list[Record]: ...

    def insert_record(self, name: str, url: str) -> Record: ...

    def delete_record(self, record_id: int) -> None: ...

    def sign_in(self, email: str, password: str) -> Session: ...

    def sign_out(self) -> None: ...

    def get_session(self) -> Session | None: ...

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]: ...


class AuthListeners:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[AuthListener] = []

    def add(self, callback: AuthListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def emit(self, event: str, session: Session | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, session)
            except Exception as exc:
                logger.warning("auth listener failed for %s", event, exc_info=exc)


class SessionFile:
    """Persists the gateway-owned session token between runs."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Session | None:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("session file read failed", exc_info=exc)
            return None
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("session file must hold an object")
            return Session.from_dict(data)
        except ValueError as exc:
            logger.warning("discarding unreadable session file %s", self.path, exc_info=exc)
            self.clear()
            return None

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(session.to_dict()) + "\n")
        try:
            self.path.chmod(0o600)
        except OSError:
            return

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
