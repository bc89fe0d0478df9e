from __future__ import annotations

import datetime as dt
import secrets
import sqlite3
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..records import Record, Session
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

SESSION_LIFETIME_S = 3600.0


def connect(db_path: Path | str) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS portfolios (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            url TEXT NOT NULL,
            created_at TEXT NOT NULL
        );
        CREATE TABLE IF NOT EXISTS auth_sessions (
            access_token TEXT PRIMARY KEY,
            refresh_token TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL,
            expires_at REAL NOT NULL
        );
        """
    )


class SqliteGateway:
    """Local stand-in for the hosted backend: one SQLite file, one admin login."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        session_path: Path | str,
        admin_email: str | None = None,
        admin_password: str | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db_path = Path(db_path).expanduser()
        self.admin_email = admin_email
        self.admin_password = admin_password
        self._clock = clock
        self._sessions = SessionFile(session_path)
        self._listeners = AuthListeners()
        with self._connect() as conn:
            initialize_schema(conn)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = connect(self.db_path)
        except sqlite3.Error as exc:
            raise GatewayError(f"database unavailable: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise GatewayError(str(exc)) from exc
        finally:
            conn.close()

    def list_records(self) -> list[Record]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, name, url, created_at FROM portfolios ORDER BY id ASC"
            ).fetchall()
        try:
            return [Record.from_row(dict(row)) for row in rows]
        except ValueError as exc:
            raise GatewayError(f"malformed record: {exc}") from exc

    def _require_session(self) -> None:
        # Writes need a live admin session, like row-level security on the hosted table.
        if self.get_session() is None:
            raise AuthError("Login required", status=401)

    def insert_record(self, name: str, url: str) -> Record:
        self._require_session()
        if not name or not url:
            raise GatewayError("Name and URL are required.", status=400)
        created_at = dt.datetime.now(dt.UTC).isoformat()
        with self._connect() as conn:
            cur = conn.execute(
                "INSERT INTO portfolios(name, url, created_at) VALUES (?, ?, ?)",
                (name, url, created_at),
            )
            record_id = cur.lastrowid
        if record_id is None:
            raise GatewayError("insert returned no row")
        return Record(id=int(record_id), name=name, url=url, created_at=created_at)

    def delete_record(self, record_id: int) -> None:
        self._require_session()
        with self._connect() as conn:
            conn.execute("DELETE FROM portfolios WHERE id = ?", (int(record_id),))

    def _issue_session(self, conn: sqlite3.Connection, email: str) -> Session:
        session = Session(
            access_token=secrets.token_hex(24),
            refresh_token=secrets.token_hex(24),
            expires_at=self._clock() + SESSION_LIFETIME_S,
            email=email,
        )
        conn.execute(
            """
            INSERT INTO auth_sessions(access_token, refresh_token, email, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (session.access_token, session.refresh_token, email, session.expires_at),
        )
        return session

    def sign_in(self, email: str, password: str) -> Session:
        if not self.admin_email or not self.admin_password:
            raise GatewayError("no admin account configured")
        email_ok = secrets.compare_digest(email.strip().lower(), self.admin_email.strip().lower())
        password_ok = secrets.compare_digest(password, self.admin_password)
        if not (email_ok and password_ok):
            raise AuthError("Invalid login credentials", status=400)
        with self._connect() as conn:
            session = self._issue_session(conn, self.admin_email)
        self._sessions.save(session)
        self._listeners.emit(SIGNED_IN, session)
        return session

    def sign_out(self) -> None:
        session = self._sessions.load()
        self._sessions.clear()
        self._listeners.emit(SIGNED_OUT, None)
        if session is None:
            return
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM auth_sessions WHERE access_token = ?", (session.access_token,)
            )

    def get_session(self) -> Session | None:
        stored = self._sessions.load()
        if stored is None:
            return None
        now = self._clock()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT email, expires_at, refresh_token FROM auth_sessions WHERE access_token = ?",
                (stored.access_token,),
            ).fetchone()
            refreshed: Session | None = None
            if row is not None and float(row["expires_at"]) > now:
                return stored
            if row is not None and row["refresh_token"] == stored.refresh_token:
                conn.execute(
                    "DELETE FROM auth_sessions WHERE access_token = ?", (stored.access_token,)
                )
                refreshed = self._issue_session(conn, str(row["email"]))
        if refreshed is None:
            self._sessions.clear()
            self._listeners.emit(SIGNED_OUT, None)
            return None
        self._sessions.save(refreshed)
        self._listeners.emit(TOKEN_REFRESHED, refreshed)
        return refreshed

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        return self._listeners.add(callback)
