from __future__ import annotations

from ..config import GalleryConfig
from .base import (
    SIGNED_IN,
    SIGNED_OUT,
    TOKEN_REFRESHED,
    AuthError,
    AuthListener,
    Gateway,
    GatewayError,
)
from .rest import RestGateway
from .sqlite import SqliteGateway

__all__ = [
    "SIGNED_IN",
    "SIGNED_OUT",
    "TOKEN_REFRESHED",
    "AuthError",
    "AuthListener",
    "Gateway",
    "GatewayError",
    "RestGateway",
    "SqliteGateway",
    "build_gateway",
]


def build_gateway(config: GalleryConfig) -> Gateway:
    if config.backend == "rest":
        return RestGateway(
            config.backend_url,
            config.backend_key,
            table=config.table,
            session_path=config.session_path,
            timeout_s=config.request_timeout_s,
        )
    return SqliteGateway(
        config.db_path,
        session_path=config.session_path,
        admin_email=config.admin_email,
        admin_password=config.admin_password,
    )
