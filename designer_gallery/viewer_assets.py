from __future__ import annotations

import mimetypes
import os
from importlib import resources
from pathlib import PurePosixPath

_ASSET_CACHE: dict[str, bytes] = {}


def _no_cache_enabled() -> bool:
    return os.environ.get("DESIGNER_GALLERY_VIEWER_NO_CACHE") == "1"


def _read_static(name: str) -> bytes:
    return resources.files(__package__).joinpath("viewer_static").joinpath(name).read_bytes()


def get_static_asset_bytes(asset_path: str) -> tuple[bytes, str]:
    """Return bytes + content-type for a packaged viewer_static asset."""

    clean = asset_path.strip().lstrip("/")
    path = PurePosixPath(clean)
    if not clean or path.is_absolute() or ".." in path.parts:
        raise ValueError("invalid asset path")

    key = str(path)
    cached: bytes | None = None
    if not _no_cache_enabled():
        cached = _ASSET_CACHE.get(key)
    if cached is None:
        cached = _read_static(key)
        if not _no_cache_enabled():
            _ASSET_CACHE[key] = cached

    content_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    if content_type.startswith("text/") or content_type.endswith("javascript"):
        content_type = f"{content_type}; charset=utf-8"
    return cached, content_type
