import json
from pathlib import Path

import pytest

from designer_gallery.config import (
    GalleryConfig,
    get_config_path,
    get_env_overrides,
    load_config,
    read_config_file,
    write_config_file,
)
from designer_gallery.gateway import RestGateway, SqliteGateway, build_gateway


def test_read_config_file_rejects_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.raises(ValueError, match="invalid config json"):
        read_config_file(config_path)


def test_read_config_file_accepts_comments_and_trailing_commas(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        """
        {
          // hosted project
          "backend": "rest",
          "backend_url": "https://demo.supabase.co",
        }
        """
    )

    data = read_config_file(config_path)

    assert data["backend"] == "rest"
    assert data["backend_url"] == "https://demo.supabase.co"


def test_read_config_file_preserves_comment_like_text_inside_strings(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text('{"backend_url": "https://demo.supabase.co/a,b", "table": "p//x",}')

    data = read_config_file(config_path)

    assert data["backend_url"] == "https://demo.supabase.co/a,b"
    assert data["table"] == "p//x"


def test_write_then_load_round_trip(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.json"
    write_config_file({"viewer_port": 9000, "notification_ttl_s": 5}, config_path)

    cfg = load_config(config_path)

    assert cfg.viewer_port == 9000
    assert cfg.notification_ttl_s == 5.0


def test_env_overrides_win(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"viewer_port": 9000, "table": "from_file"}))
    monkeypatch.setenv("DESIGNER_GALLERY_VIEWER_PORT", "9100")
    monkeypatch.setenv("DESIGNER_GALLERY_TABLE", "from_env")

    cfg = load_config(config_path)

    assert cfg.viewer_port == 9100
    assert cfg.table == "from_env"
    assert get_env_overrides()["table"] == "from_env"


def test_invalid_values_warn_and_keep_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"viewer_port": "abc", "notification_ttl_s": -1, "backend": "mongo"})
    )

    with pytest.warns(RuntimeWarning):
        cfg = load_config(config_path)

    defaults = GalleryConfig()
    assert cfg.viewer_port == defaults.viewer_port
    assert cfg.notification_ttl_s == defaults.notification_ttl_s
    assert cfg.backend == defaults.backend


def test_config_path_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DESIGNER_GALLERY_CONFIG", str(tmp_path / "custom.json"))
    assert get_config_path() == tmp_path / "custom.json"


def test_build_gateway_selects_backend(tmp_path: Path) -> None:
    cfg = load_config()
    assert isinstance(build_gateway(cfg), SqliteGateway)

    cfg.backend = "rest"
    cfg.backend_url = "https://demo.supabase.co"
    cfg.backend_key = "anon"
    gateway = build_gateway(cfg)
    assert isinstance(gateway, RestGateway)
    assert gateway.base_url == "https://demo.supabase.co"
