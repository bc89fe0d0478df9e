from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from typing import Protocol

from .gateway import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, AuthError, Gateway, GatewayError
from .records import Session
from .state import Action, AppState, SessionChanged

logger = logging.getLogger(__name__)

INCORRECT_CREDENTIALS = "Incorrect email or password"


class _Dispatcher(Protocol):
    @property
    def state(self) -> AppState: ...

    def dispatch(self, action: Action) -> AppState: ...

    def notify(self, kind: str, text: str) -> None: ...


class SessionGate:
    """Tracks whether the viewer is signed in; mutations are gated on it.

    The flag only ever follows what the gateway reports, except for sign-out,
    which flips it to false before the gateway has answered.
    """

    def __init__(self, gateway: Gateway, app: _Dispatcher) -> None:
        self.gateway = gateway
        self.app = app
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def authenticated(self) -> bool:
        return self.app.state.authenticated

    def check_initial_session(self) -> bool:
        try:
            session = self.gateway.get_session()
        except GatewayError as exc:
            logger.warning("initial session check failed", exc_info=exc)
            session = None
        self.app.dispatch(SessionChanged(authenticated=session is not None))
        return session is not None

    def _handle_session_event(self, event: str, session: Session | None) -> None:
        if event in {SIGNED_IN, TOKEN_REFRESHED}:
            authenticated = session is not None
        elif event == SIGNED_OUT:
            authenticated = False
        else:
            logger.debug("ignoring session event %s", event)
            return
        if authenticated != self.app.state.authenticated:
            self.app.dispatch(SessionChanged(authenticated=authenticated))

    def on_session_change(
        self, callback: Callable[[str, Session | None], None]
    ) -> Callable[[], None]:
        return self.gateway.on_auth_state_change(callback)

    def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.on_session_change(self._handle_session_event)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def verify_token(self, access_token: str | None) -> bool:
        """True when ``access_token`` is the one the gateway currently holds.

        Requests arriving over HTTP carry their own token; holding a session on
        the server side is not enough to mutate.
        """
        try:
            session = self.gateway.get_session()
        except GatewayError as exc:
            logger.warning("session check failed", exc_info=exc)
            session = None
        if (session is not None) != self.app.state.authenticated:
            self.app.dispatch(SessionChanged(authenticated=session is not None))
        if session is None or not access_token:
            return False
        return secrets.compare_digest(access_token, session.access_token)

    def sign_in(self, email: str, password: str) -> bool:
        try:
            self.gateway.sign_in(email, password)
        except AuthError as exc:
            logger.info("sign-in rejected: %s", exc.message)
            self.app.notify("error", INCORRECT_CREDENTIALS)
            return False
        except GatewayError as exc:
            logger.warning("sign-in failed", exc_info=exc)
            self.app.notify("error", exc.message or "Login failed")
            return False
        if not self.app.state.authenticated or self.app.state.login_prompt_open:
            self.app.dispatch(SessionChanged(authenticated=True))
        self.app.notify("success", "Logged in")
        return True

    def sign_out(self) -> None:
        self.app.dispatch(SessionChanged(authenticated=False))
        self.app.notify("success", "Logged out")
        try:
            self.gateway.sign_out()
        except GatewayError as exc:
            logger.warning("remote sign-out failed", exc_info=exc)
