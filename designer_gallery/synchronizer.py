from __future__ import annotations

import logging

from . import mirror
from .gateway import Gateway, GatewayError
from .records import Record
from .session import SessionGate, _Dispatcher
from .state import RecordAdded, RecordRemoved, RecordsLoaded

logger = logging.getLogger(__name__)

LOAD_FAILED = "Failed to load portfolios"
ADD_FAILED = "Failed to add portfolio"
DELETE_FAILED = "Failed to delete portfolio"
FIELDS_REQUIRED = "Name and URL are required."
LOGIN_REQUIRED = "Login required"


class ListSynchronizer:
    """Keeps the local mirror in step with the gateway.

    Nothing is applied locally until the gateway has answered. Each completed
    call dispatches only its own delta (replace, append one, remove one), so
    calls that finish out of order still leave a consistent mirror.
    """

    def __init__(self, gateway: Gateway, app: _Dispatcher, session: SessionGate) -> None:
        self.gateway = gateway
        self.app = app
        self.session = session

    def _with_detail(self, summary: str, exc: GatewayError) -> str:
        detail = (exc.message or "").strip()
        return f"{summary}: {detail}" if detail else summary

    def fetch_all(self) -> bool:
        try:
            records = self.gateway.list_records()
        except GatewayError as exc:
            logger.warning("fetching portfolios failed", exc_info=exc)
            self.app.notify("error", LOAD_FAILED)
            return False
        self.app.dispatch(RecordsLoaded(records=tuple(records)))
        return True

    def add(self, name: str, url: str) -> Record | None:
        name = name.strip()
        url = url.strip()
        if not name or not url:
            self.app.notify("error", FIELDS_REQUIRED)
            return None
        if not self.session.authenticated:
            self.app.notify("error", LOGIN_REQUIRED)
            return None
        try:
            record = self.gateway.insert_record(name, url)
        except GatewayError as exc:
            logger.warning("adding portfolio failed", exc_info=exc)
            self.app.notify("error", self._with_detail(ADD_FAILED, exc))
            return None
        self.app.dispatch(RecordAdded(record=record))
        self.app.notify("success", f"Added {record.name}")
        return record

    def remove(self, record_id: int) -> bool:
        if not self.session.authenticated:
            self.app.notify("error", LOGIN_REQUIRED)
            return False
        try:
            self.gateway.delete_record(record_id)
        except GatewayError as exc:
            logger.warning("deleting portfolio %s failed", record_id, exc_info=exc)
            self.app.notify("error", self._with_detail(DELETE_FAILED, exc))
            return False
        if mirror.find_record(self.app.state.records, record_id) is not None:
            self.app.dispatch(RecordRemoved(record_id=record_id))
            self.app.notify("success", "Portfolio removed")
        return True
