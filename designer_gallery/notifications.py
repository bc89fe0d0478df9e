"""Transient success/error messages.

Messages sit in a short ordered queue. Each one carries its own expiry, so an
old message timing out can never take a newer message down with it. The
visible message for a kind is the newest unexpired one of that kind.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

NotificationKind = Literal["success", "error"]

NOTIFICATION_KINDS: tuple[NotificationKind, ...] = ("success", "error")
DEFAULT_TTL_S = 3.0
MAX_QUEUED = 8


@dataclass(frozen=True)
class Notification:
    seq: int
    kind: NotificationKind
    text: str
    created_at: float
    expires_at: float

    def active(self, now: float) -> bool:
        return now < self.expires_at


def push(
    queue: tuple[Notification, ...],
    *,
    seq: int,
    kind: NotificationKind,
    text: str,
    now: float,
    ttl_s: float = DEFAULT_TTL_S,
) -> tuple[Notification, ...]:
    if kind not in NOTIFICATION_KINDS:
        raise ValueError(f"unknown notification kind: {kind!r}")
    item = Notification(seq=seq, kind=kind, text=text, created_at=now, expires_at=now + ttl_s)
    queued = (*queue, item)
    if len(queued) > MAX_QUEUED:
        queued = queued[-MAX_QUEUED:]
    return queued


def expire(queue: tuple[Notification, ...], now: float) -> tuple[Notification, ...]:
    kept = tuple(item for item in queue if item.active(now))
    return queue if len(kept) == len(queue) else kept


def latest(
    queue: tuple[Notification, ...], kind: NotificationKind, now: float | None = None
) -> Notification | None:
    for item in reversed(queue):
        if item.kind != kind:
            continue
        if now is not None and not item.active(now):
            continue
        return item
    return None
