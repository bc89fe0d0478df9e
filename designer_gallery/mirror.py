from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .records import Record

logger = logging.getLogger(__name__)

CACHE_KEY = "portfolios"


def replace_all(records: Iterable[Record]) -> tuple[Record, ...]:
    """Fresh mirror in ascending id order; later duplicates of an id are dropped."""

    seen: set[int] = set()
    result: list[Record] = []
    for record in sorted(records, key=lambda r: r.id):
        if record.id in seen:
            continue
        seen.add(record.id)
        result.append(record)
    return tuple(result)


def append_record(mirror: tuple[Record, ...], record: Record) -> tuple[Record, ...]:
    # An id already present is replaced in place so ids stay unique.
    if any(item.id == record.id for item in mirror):
        return tuple(record if item.id == record.id else item for item in mirror)
    return (*mirror, record)


def remove_record(mirror: tuple[Record, ...], record_id: int) -> tuple[Record, ...]:
    if not any(item.id == record_id for item in mirror):
        return mirror
    return tuple(item for item in mirror if item.id != record_id)


def find_record(mirror: tuple[Record, ...], record_id: int) -> Record | None:
    for item in mirror:
        if item.id == record_id:
            return item
    return None


class MirrorCache:
    """Best-effort copy of the mirror kept on disk between runs.

    The file is a JSON object and the mirror lives under a fixed key. It is
    only ever a fallback: whatever the gateway returns replaces it.
    """

    def __init__(self, path: Path | str | None) -> None:
        self.path = Path(path).expanduser() if path else None

    def _read_slots(self) -> dict[str, Any]:
        if self.path is None:
            return {}
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("mirror cache read failed", exc_info=exc)
            return {}
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("mirror cache must be an object")
        return data

    def load(self) -> tuple[Record, ...]:
        try:
            slots = self._read_slots()
            rows = slots.get(CACHE_KEY, [])
            if not isinstance(rows, list):
                raise ValueError("cached portfolios must be a list")
            records = [Record.from_row(row) for row in rows if isinstance(row, dict)]
            if len(records) != len(rows):
                raise ValueError("cached portfolios contain non-object rows")
            if len({record.id for record in records}) != len(records):
                raise ValueError("cached portfolios repeat an id")
        except ValueError as exc:
            logger.warning("discarding malformed mirror cache %s", self.path, exc_info=exc)
            self.clear()
            return ()
        # File order is kept here; RecordsLoaded re-sorts by id before display.
        return tuple(records)

    def save(self, mirror: tuple[Record, ...]) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps({CACHE_KEY: [record.to_dict() for record in mirror]}, ensure_ascii=False)
            )
        except OSError as exc:
            logger.warning("mirror cache write failed", exc_info=exc)

    def clear(self) -> None:
        if self.path is None:
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            logger.warning("mirror cache clear failed", exc_info=exc)
