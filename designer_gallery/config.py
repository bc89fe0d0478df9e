from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/designer-gallery/config.json").expanduser()
DEFAULT_STATE_DIR = Path("~/.designer-gallery")

CONFIG_ENV_OVERRIDES = {
    "backend": "DESIGNER_GALLERY_BACKEND",
    "backend_url": "DESIGNER_GALLERY_BACKEND_URL",
    "backend_key": "DESIGNER_GALLERY_BACKEND_KEY",
    "table": "DESIGNER_GALLERY_TABLE",
    "db_path": "DESIGNER_GALLERY_DB",
    "admin_email": "DESIGNER_GALLERY_ADMIN_EMAIL",
    "admin_password": "DESIGNER_GALLERY_ADMIN_PASSWORD",
    "session_path": "DESIGNER_GALLERY_SESSION",
    "cache_path": "DESIGNER_GALLERY_CACHE",
    "notification_ttl_s": "DESIGNER_GALLERY_NOTIFICATION_TTL_S",
    "request_timeout_s": "DESIGNER_GALLERY_REQUEST_TIMEOUT_S",
    "viewer_host": "DESIGNER_GALLERY_VIEWER_HOST",
    "viewer_port": "DESIGNER_GALLERY_VIEWER_PORT",
}

_INT_KEYS = {"viewer_port"}
_FLOAT_KEYS = {"notification_ttl_s", "request_timeout_s"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("DESIGNER_GALLERY_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def _strip_json_comments(text: str) -> str:
    """Drop `//` line comments that sit outside of string literals."""
    lines = []
    for line in text.splitlines():
        result = []
        in_string = False
        escape_next = False
        for i, char in enumerate(line):
            if escape_next:
                result.append(char)
                escape_next = False
                continue
            if char == "\\" and in_string:
                result.append(char)
                escape_next = True
                continue
            if char == '"':
                in_string = not in_string
            elif not in_string and char == "/" and line[i + 1 : i + 2] == "/":
                break
            result.append(char)
        lines.append("".join(result))
    return "\n".join(lines)


def _strip_trailing_commas(text: str) -> str:
    result: list[str] = []
    in_string = False
    escape_next = False
    i = 0
    while i < len(text):
        char = text[i]
        if escape_next:
            escape_next = False
        elif char == "\\" and in_string:
            escape_next = True
        elif char == '"':
            in_string = not in_string
        elif not in_string and char == ",":
            j = i + 1
            while j < len(text) and text[j].isspace():
                j += 1
            if j < len(text) and text[j] in {"]", "}"}:
                i += 1
                continue
        result.append(char)
        i += 1
    return "".join(result)


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(_strip_trailing_commas(_strip_json_comments(raw)))
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class GalleryConfig:
    # "rest" talks to a hosted Supabase-style project, "sqlite" keeps everything local.
    backend: str = "sqlite"
    backend_url: str = ""
    backend_key: str = ""
    table: str = "portfolios"
    db_path: str = str(DEFAULT_STATE_DIR / "gallery.sqlite")
    admin_email: str | None = None
    admin_password: str | None = None
    session_path: str = str(DEFAULT_STATE_DIR / "session.json")
    cache_path: str = str(DEFAULT_STATE_DIR / "portfolios-cache.json")
    notification_ttl_s: float = 3.0
    request_timeout_s: float = 10.0
    viewer_host: str = "127.0.0.1"
    viewer_port: int = 38890


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Non-positive value for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def load_config(path: Path | None = None) -> GalleryConfig:
    cfg = GalleryConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = read_config_file(config_path)
        except ValueError:
            data = {}
        cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: GalleryConfig, data: dict[str, Any]) -> GalleryConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key == "backend":
            backend = str(value).strip().lower()
            if backend not in {"rest", "sqlite"}:
                warnings.warn(f"Unknown backend: {value!r}", RuntimeWarning, stacklevel=2)
                continue
            cfg.backend = backend
            continue
        setattr(cfg, key, value)
    return cfg
