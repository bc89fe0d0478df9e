from __future__ import annotations

import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import typer
from rich import print

from designer_gallery.viewer import _port_open, start_viewer


def _viewer_pid_path() -> Path:
    pid_path = os.environ.get("DESIGNER_GALLERY_VIEWER_PID", "~/.designer-gallery/viewer.pid")
    return Path(os.path.expanduser(pid_path))


def _read_pid(pid_path: Path) -> int | None:
    try:
        raw = pid_path.read_text().strip()
    except FileNotFoundError:
        return None
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _pid_running(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _write_pid(pid_path: Path, pid: int) -> None:
    pid_path.parent.mkdir(parents=True, exist_ok=True)
    pid_path.write_text(f"{pid}\n")


def _clear_pid(pid_path: Path) -> None:
    try:
        pid_path.unlink()
    except FileNotFoundError:
        return


def _stop(pid_path: Path, host: str, port: int) -> None:
    pid = _read_pid(pid_path)
    if pid is None:
        if _port_open(host, port):
            print("[yellow]Gallery server is running but no PID file was found[/yellow]")
        else:
            print("[yellow]No background gallery server found[/yellow]")
        return
    if not _pid_running(pid):
        _clear_pid(pid_path)
        print("[yellow]Removed stale gallery server PID file[/yellow]")
        return
    os.kill(pid, signal.SIGTERM)
    deadline = time.monotonic() + 2.0
    while time.monotonic() < deadline:
        if not _pid_running(pid):
            break
        time.sleep(0.05)
    _clear_pid(pid_path)
    print(f"[green]Stopped gallery server (pid {pid})[/green]")


def serve(*, host: str, port: int, background: bool, stop: bool) -> None:
    """Run the gallery server (foreground or background)."""

    pid_path = _viewer_pid_path()
    if stop:
        _stop(pid_path, host, port)
        return

    if background:
        pid = _read_pid(pid_path)
        if pid is not None:
            if _pid_running(pid) and _port_open(host, port):
                print(f"[yellow]Gallery server already running (pid {pid})[/yellow]")
                return
            _clear_pid(pid_path)
        if _port_open(host, port):
            print(f"[yellow]Gallery server already running at http://{host}:{port}[/yellow]")
            return
        cmd = [
            sys.executable,
            "-m",
            "designer_gallery.cli",
            "serve",
            "--host",
            host,
            "--port",
            str(port),
        ]
        proc = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            env=os.environ.copy(),
        )
        _write_pid(pid_path, proc.pid)
        print(
            f"[green]Gallery server started in background (pid {proc.pid}) "
            f"at http://{host}:{port}[/green]"
        )
        return

    if _port_open(host, port):
        print(f"[yellow]Gallery server already running at http://{host}:{port}[/yellow]")
        return
    print(f"[green]Gallery server running at http://{host}:{port}[/green]")
    try:
        start_viewer(host=host, port=port, background=False)
    except ValueError as exc:
        print(f"[red]Invalid backend configuration: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        return
