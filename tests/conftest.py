from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from designer_gallery.app import GalleryApp
from designer_gallery.gateway import (
    SIGNED_IN,
    SIGNED_OUT,
    AuthError,
    AuthListener,
    GatewayError,
    SqliteGateway,
)
from designer_gallery.gateway.base import AuthListeners
from designer_gallery.mirror import MirrorCache
from designer_gallery.records import Record, Session

ADMIN_EMAIL = "admin@gallery.test"
ADMIN_PASSWORD = "hunter2"


@pytest.fixture(autouse=True)
def _isolate_state_paths(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DESIGNER_GALLERY_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("DESIGNER_GALLERY_DB", str(tmp_path / "gallery.sqlite"))
    monkeypatch.setenv("DESIGNER_GALLERY_SESSION", str(tmp_path / "session.json"))
    monkeypatch.setenv("DESIGNER_GALLERY_CACHE", str(tmp_path / "cache.json"))
    monkeypatch.setenv("DESIGNER_GALLERY_VIEWER_PID", str(tmp_path / "viewer.pid"))
    for name in (
        "DESIGNER_GALLERY_BACKEND",
        "DESIGNER_GALLERY_BACKEND_URL",
        "DESIGNER_GALLERY_BACKEND_KEY",
        "DESIGNER_GALLERY_ADMIN_EMAIL",
        "DESIGNER_GALLERY_ADMIN_PASSWORD",
        "DESIGNER_GALLERY_VIEWER_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGateway:
    """In-memory gateway with switches for failure paths."""

    def __init__(self) -> None:
        self.rows: list[Record] = []
        self.next_id = 1
        self.session: Session | None = None
        self.fail_list = False
        self.fail_insert = False
        self.fail_delete = False
        self.fail_session = False
        self.fail_sign_out = False
        self.password = "right"
        self.calls: list[str] = []
        self.listeners = AuthListeners()

    def list_records(self) -> list[Record]:
        self.calls.append("list")
        if self.fail_list:
            raise GatewayError("network down")
        return sorted(self.rows, key=lambda r: r.id)

    def insert_record(self, name: str, url: str) -> Record:
        self.calls.append("insert")
        if self.fail_insert:
            raise GatewayError("insert rejected")
        record = Record(id=self.next_id, name=name, url=url)
        self.next_id += 1
        self.rows.append(record)
        return record

    def delete_record(self, record_id: int) -> None:
        self.calls.append("delete")
        if self.fail_delete:
            raise GatewayError("delete rejected")
        self.rows = [row for row in self.rows if row.id != record_id]

    def sign_in(self, email: str, password: str) -> Session:
        self.calls.append("sign_in")
        if password != self.password:
            raise AuthError("Invalid login credentials", status=400)
        self.session = Session("token", "refresh", expires_at=10**10, email=email)
        self.listeners.emit(SIGNED_IN, self.session)
        return self.session

    def sign_out(self) -> None:
        self.calls.append("sign_out")
        self.session = None
        self.listeners.emit(SIGNED_OUT, None)
        if self.fail_sign_out:
            raise GatewayError("logout failed")

    def get_session(self) -> Session | None:
        self.calls.append("get_session")
        if self.fail_session:
            raise GatewayError("auth unreachable")
        return self.session

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        return self.listeners.add(callback)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def gallery(fake_gateway: FakeGateway, clock: FakeClock, tmp_path: Path) -> Iterator[GalleryApp]:
    app = GalleryApp(fake_gateway, cache=MirrorCache(tmp_path / "mirror.json"), clock=clock)
    yield app
    app.close()


@pytest.fixture
def sqlite_gateway(tmp_path: Path) -> SqliteGateway:
    return SqliteGateway(
        tmp_path / "store.sqlite",
        session_path=tmp_path / "store-session.json",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
    )
