from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from .config import GalleryConfig
from .gateway import Gateway, build_gateway
from .mirror import MirrorCache
from .notifications import DEFAULT_TTL_S, NotificationKind
from .records import Record
from .session import SessionGate
from .state import (
    Action,
    AppState,
    Directive,
    FormEdited,
    FrameLoaded,
    LoginPromptToggled,
    Notified,
    NotificationsExpired,
    RecordsLoaded,
    ZoomIn,
    ZoomOut,
    presentation_directives,
    reduce,
)
from .synchronizer import ListSynchronizer

logger = logging.getLogger(__name__)

StateListener = Callable[[AppState, AppState, list[Directive]], None]


class GalleryApp:
    """Top-level component: owns the state and wires the gate and synchronizer."""

    def __init__(
        self,
        gateway: Gateway,
        *,
        cache: MirrorCache | None = None,
        notification_ttl_s: float = DEFAULT_TTL_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.gateway = gateway
        self.cache = cache or MirrorCache(None)
        self.notification_ttl_s = notification_ttl_s
        self._clock = clock
        self._lock = threading.Lock()
        self._state = AppState()
        self._listeners: list[StateListener] = []
        self.session = SessionGate(gateway, self)
        self.synchronizer = ListSynchronizer(gateway, self, self.session)
        self._started = False

    @classmethod
    def from_config(cls, config: GalleryConfig) -> GalleryApp:
        return cls(
            build_gateway(config),
            cache=MirrorCache(config.cache_path),
            notification_ttl_s=config.notification_ttl_s,
        )

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action) -> AppState:
        with self._lock:
            prev = self._state
            new = reduce(prev, action)
            self._state = new
            listeners = list(self._listeners)
            if new.records is not prev.records:
                self.cache.save(new.records)
        if new is prev:
            return new
        directives = presentation_directives(prev, new)
        for listener in listeners:
            try:
                listener(prev, new, directives)
            except Exception as exc:
                logger.warning("state listener failed", exc_info=exc)
        return new

    def notify(self, kind: NotificationKind, text: str) -> None:
        now = self._clock()
        self.dispatch(NotificationsExpired(now=now))
        self.dispatch(Notified(kind=kind, text=text, now=now, ttl_s=self.notification_ttl_s))

    def expire_notifications(self) -> AppState:
        return self.dispatch(NotificationsExpired(now=self._clock()))

    def visible_message(self, kind: NotificationKind) -> str | None:
        item = self._state.visible_notification(kind, self._clock())
        return item.text if item else None

    def start(self) -> None:
        """Show cached records, resolve the session, then fetch for real."""

        if self._started:
            return
        self._started = True
        cached = self.cache.load()
        if cached:
            self.dispatch(RecordsLoaded(records=cached))
        self.session.check_initial_session()
        self.session.start()
        self.synchronizer.fetch_all()

    def close(self) -> None:
        self.session.close()
        with self._lock:
            self._listeners.clear()
        self._started = False

    # Thin wrappers used by the CLI and by tests.

    def records(self) -> tuple[Record, ...]:
        return self._state.records

    def edit_form(self, field: str, value: str) -> AppState:
        return self.dispatch(FormEdited(field=field, value=value))

    def open_login(self) -> AppState:
        return self.dispatch(LoginPromptToggled(open=True))

    def zoom_in(self, record_id: int) -> float:
        return self.dispatch(ZoomIn(record_id=record_id)).zoom_for(record_id)

    def zoom_out(self, record_id: int) -> float:
        return self.dispatch(ZoomOut(record_id=record_id)).zoom_for(record_id)

    def mark_loaded(self, record_id: int) -> bool:
        return record_id in self.dispatch(FrameLoaded(record_id=record_id)).loaded

    def submit_add_form(self) -> Record | None:
        form = self._state.form
        return self.synchronizer.add(form.name, form.url)

    def submit_login_form(self) -> bool:
        form = self._state.form
        return self.session.sign_in(form.email, form.password)
