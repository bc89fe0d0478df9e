from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Record:
    id: int
    name: str
    url: str
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Record:
        """Build a record from a gateway row, rejecting anything malformed."""

        if not isinstance(row, Mapping):
            raise ValueError(f"record row must be an object, got {type(row).__name__}")
        raw_id = row.get("id")
        if isinstance(raw_id, bool) or raw_id is None:
            raise ValueError(f"invalid record id: {raw_id!r}")
        try:
            record_id = int(raw_id)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid record id: {raw_id!r}") from exc
        name = row.get("name")
        url = row.get("url")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("record name must be non-empty text")
        if not isinstance(url, str) or not url.strip():
            raise ValueError("record url must be non-empty text")
        created_at = row.get("created_at")
        return cls(
            id=record_id,
            name=name,
            url=url,
            created_at=str(created_at) if created_at is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "name": self.name, "url": self.url}
        if self.created_at is not None:
            payload["created_at"] = self.created_at
        return payload


@dataclass(frozen=True)
class Session:
    access_token: str
    refresh_token: str | None
    expires_at: float
    email: str | None = None

    def expired(self, now: float) -> bool:
        return now >= self.expires_at

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Session:
        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise ValueError("session missing access_token")
        refresh = data.get("refresh_token")
        try:
            expires_at = float(data.get("expires_at") or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError("session expires_at must be numeric") from exc
        email = data.get("email")
        return cls(
            access_token=token,
            refresh_token=refresh if isinstance(refresh, str) and refresh else None,
            expires_at=expires_at,
            email=email if isinstance(email, str) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "email": self.email,
        }
