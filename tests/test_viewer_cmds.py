from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Any

from designer_gallery.commands import viewer_cmds


def test_serve_background_ignores_stale_pid_file(monkeypatch: Any) -> None:
    # PID file points at a live process but nothing listens on the port.
    calls: dict[str, Any] = {"popen": 0, "cleared": 0, "cmd": None}

    monkeypatch.setattr(viewer_cmds, "_read_pid", lambda *_: 123)
    monkeypatch.setattr(viewer_cmds, "_pid_running", lambda *_: True)
    monkeypatch.setattr(viewer_cmds, "_port_open", lambda *_: False)
    monkeypatch.setattr(
        viewer_cmds, "_clear_pid", lambda *_: calls.__setitem__("cleared", calls["cleared"] + 1)
    )

    def fake_popen(cmd: list[str], **kwargs: Any) -> Any:
        calls["popen"] += 1
        calls["cmd"] = cmd
        return SimpleNamespace(pid=999)

    monkeypatch.setattr(viewer_cmds.subprocess, "Popen", fake_popen)
    monkeypatch.setattr(viewer_cmds, "_write_pid", lambda *_: None)

    viewer_cmds.serve(host="127.0.0.1", port=38891, background=True, stop=False)

    assert calls["cleared"] == 1
    assert calls["popen"] == 1
    assert calls["cmd"][1:4] == ["-m", "designer_gallery.cli", "serve"]
    assert calls["cmd"][-1] == "38891"


def test_serve_background_skips_when_already_running(monkeypatch: Any) -> None:
    monkeypatch.setattr(viewer_cmds, "_read_pid", lambda *_: 123)
    monkeypatch.setattr(viewer_cmds, "_pid_running", lambda *_: True)
    monkeypatch.setattr(viewer_cmds, "_port_open", lambda *_: True)

    def fail_popen(*args: Any, **kwargs: Any) -> Any:
        raise AssertionError("should not spawn a second server")

    monkeypatch.setattr(viewer_cmds.subprocess, "Popen", fail_popen)

    viewer_cmds.serve(host="127.0.0.1", port=38891, background=True, stop=False)


def test_stop_removes_stale_pid_file(tmp_path: Path, monkeypatch: Any) -> None:
    pid_path = tmp_path / "viewer.pid"
    pid_path.write_text("4242\n")
    monkeypatch.setenv("DESIGNER_GALLERY_VIEWER_PID", str(pid_path))
    monkeypatch.setattr(viewer_cmds, "_pid_running", lambda *_: False)

    viewer_cmds.serve(host="127.0.0.1", port=38891, background=False, stop=True)

    assert not pid_path.exists()


def test_read_pid_tolerates_garbage(tmp_path: Path) -> None:
    pid_path = tmp_path / "viewer.pid"
    assert viewer_cmds._read_pid(pid_path) is None
    pid_path.write_text("not-a-pid")
    assert viewer_cmds._read_pid(pid_path) is None
    pid_path.write_text("77\n")
    assert viewer_cmds._read_pid(pid_path) == 77
