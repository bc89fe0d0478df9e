"""Application state and its transitions.

Every UI slot lives in one frozen ``AppState``. Changes go through
``reduce(state, action)`` with one of the named actions below, and
``presentation_directives(prev, new)`` turns a transition into instructions
for whatever renders the gallery.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from . import mirror, notifications
from .notifications import Notification, NotificationKind
from .records import Record

ZOOM_DEFAULT = 1.0
ZOOM_STEP = 0.1
ZOOM_MIN = 0.1

FormField = Literal["name", "url", "email", "password"]
FORM_FIELDS: tuple[str, ...] = ("name", "url", "email", "password")


@dataclass(frozen=True)
class FormState:
    name: str = ""
    url: str = ""
    email: str = ""
    password: str = ""


@dataclass(frozen=True)
class AppState:
    records: tuple[Record, ...] = ()
    authenticated: bool = False
    zoom: dict[int, float] = field(default_factory=dict)
    loaded: frozenset[int] = frozenset()
    form: FormState = FormState()
    login_prompt_open: bool = False
    notifications: tuple[Notification, ...] = ()
    next_seq: int = 1

    def zoom_for(self, record_id: int) -> float:
        return self.zoom.get(record_id, ZOOM_DEFAULT)

    def visible_notification(
        self, kind: NotificationKind, now: float | None = None
    ) -> Notification | None:
        return notifications.latest(self.notifications, kind, now)


@dataclass(frozen=True)
class RecordsLoaded:
    records: tuple[Record, ...]


@dataclass(frozen=True)
class RecordAdded:
    record: Record


@dataclass(frozen=True)
class RecordRemoved:
    record_id: int


@dataclass(frozen=True)
class SessionChanged:
    authenticated: bool


@dataclass(frozen=True)
class FormEdited:
    field: str
    value: str


@dataclass(frozen=True)
class FormCleared:
    pass


@dataclass(frozen=True)
class LoginPromptToggled:
    open: bool


@dataclass(frozen=True)
class ZoomIn:
    record_id: int


@dataclass(frozen=True)
class ZoomOut:
    record_id: int


@dataclass(frozen=True)
class FrameLoaded:
    record_id: int


@dataclass(frozen=True)
class Notified:
    kind: NotificationKind
    text: str
    now: float
    ttl_s: float = notifications.DEFAULT_TTL_S


@dataclass(frozen=True)
class NotificationsExpired:
    now: float


Action = (
    RecordsLoaded
    | RecordAdded
    | RecordRemoved
    | SessionChanged
    | FormEdited
    | FormCleared
    | LoginPromptToggled
    | ZoomIn
    | ZoomOut
    | FrameLoaded
    | Notified
    | NotificationsExpired
)


def _prune_view_state(state: AppState, records: tuple[Record, ...]) -> dict[str, Any]:
    ids = {record.id for record in records}
    return {
        "zoom": {rid: value for rid, value in state.zoom.items() if rid in ids},
        "loaded": frozenset(rid for rid in state.loaded if rid in ids),
    }


def _set_zoom(state: AppState, record_id: int, delta: float) -> AppState:
    if mirror.find_record(state.records, record_id) is None:
        return state
    value = round(state.zoom_for(record_id) + delta, 2)
    value = max(ZOOM_MIN, value)
    if value == state.zoom_for(record_id):
        return state
    return replace(state, zoom={**state.zoom, record_id: value})


def reduce(state: AppState, action: Action) -> AppState:
    if isinstance(action, RecordsLoaded):
        records = mirror.replace_all(action.records)
        return replace(state, records=records, **_prune_view_state(state, records))
    if isinstance(action, RecordAdded):
        return replace(
            state,
            records=mirror.append_record(state.records, action.record),
            form=replace(state.form, name="", url=""),
        )
    if isinstance(action, RecordRemoved):
        records = mirror.remove_record(state.records, action.record_id)
        if records is state.records:
            return state
        return replace(state, records=records, **_prune_view_state(state, records))
    if isinstance(action, SessionChanged):
        if action.authenticated:
            return replace(
                state,
                authenticated=True,
                login_prompt_open=False,
                form=replace(state.form, password=""),
            )
        return replace(state, authenticated=False, form=replace(state.form, password=""))
    if isinstance(action, FormEdited):
        if action.field not in FORM_FIELDS:
            raise ValueError(f"unknown form field: {action.field!r}")
        return replace(state, form=replace(state.form, **{action.field: action.value}))
    if isinstance(action, FormCleared):
        return replace(state, form=FormState())
    if isinstance(action, LoginPromptToggled):
        return replace(state, login_prompt_open=action.open)
    if isinstance(action, ZoomIn):
        return _set_zoom(state, action.record_id, ZOOM_STEP)
    if isinstance(action, ZoomOut):
        return _set_zoom(state, action.record_id, -ZOOM_STEP)
    if isinstance(action, FrameLoaded):
        if action.record_id in state.loaded:
            return state
        if mirror.find_record(state.records, action.record_id) is None:
            return state
        return replace(state, loaded=state.loaded | {action.record_id})
    if isinstance(action, Notified):
        queue = notifications.push(
            state.notifications,
            seq=state.next_seq,
            kind=action.kind,
            text=action.text,
            now=action.now,
            ttl_s=action.ttl_s,
        )
        return replace(state, notifications=queue, next_seq=state.next_seq + 1)
    if isinstance(action, NotificationsExpired):
        queue = notifications.expire(state.notifications, action.now)
        if queue is state.notifications:
            return state
        return replace(state, notifications=queue)
    raise TypeError(f"unknown action: {type(action).__name__}")


@dataclass(frozen=True)
class Directive:
    kind: str
    target: int | str | None = None
    value: Any = None


def presentation_directives(prev: AppState, new: AppState) -> list[Directive]:
    directives: list[Directive] = []

    prev_ids = [record.id for record in prev.records]
    new_ids = [record.id for record in new.records]
    prev_set = set(prev_ids)
    new_set = set(new_ids)
    for rid in prev_ids:
        if rid not in new_set:
            directives.append(Directive("stage_out", rid))
    for rid in new_ids:
        if rid not in prev_set:
            directives.append(Directive("stage_in", rid))

    for rid in new_ids:
        if rid in prev_set and new.zoom_for(rid) != prev.zoom_for(rid):
            directives.append(Directive("scale", rid, new.zoom_for(rid)))

    for kind in notifications.NOTIFICATION_KINDS:
        before = notifications.latest(prev.notifications, kind)
        after = notifications.latest(new.notifications, kind)
        if after is not None and (before is None or after.seq != before.seq):
            directives.append(Directive("show_toast", kind, after.text))
        elif after is None and before is not None:
            directives.append(Directive("hide_toast", kind))

    if new.authenticated != prev.authenticated:
        directives.append(Directive("show_admin" if new.authenticated else "hide_admin"))
    if prev.login_prompt_open and not new.login_prompt_open:
        directives.append(Directive("close_login"))
    return directives
