from __future__ import annotations

import typer

from . import __version__
from .commands.common import open_app, read_config_or_exit, require_login
from .commands.gallery_cmds import (
    add_cmd,
    list_cmd,
    login_cmd,
    logout_cmd,
    remove_cmd,
    status_cmd,
)
from .commands.viewer_cmds import serve as _serve
from .config import load_config

app = typer.Typer(help="designer-gallery: a shared gallery of designer portfolios")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Browse and curate designer portfolios."""


@app.command("list")
def list_portfolios() -> None:
    """List portfolios (cached copy first, then the backend)."""

    gallery = open_app()
    try:
        list_cmd(gallery)
    finally:
        gallery.close()


@app.command()
def add(
    name: str = typer.Argument(..., help="Designer name"),
    url: str = typer.Argument(..., help="Portfolio URL"),
) -> None:
    """Add a portfolio (requires login)."""

    gallery = open_app()
    require_login(gallery)
    try:
        add_cmd(gallery, name=name, url=url)
    finally:
        gallery.close()


@app.command()
def remove(record_id: int = typer.Argument(..., help="Portfolio id")) -> None:
    """Remove a portfolio by id (requires login)."""

    gallery = open_app()
    require_login(gallery)
    try:
        remove_cmd(gallery, record_id=record_id)
    finally:
        gallery.close()


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Admin email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password"),
) -> None:
    """Sign in to the backend."""

    gallery = open_app()
    try:
        login_cmd(gallery, email=email, password=password)
    finally:
        gallery.close()


@app.command()
def logout() -> None:
    """Sign out of the backend."""

    gallery = open_app()
    try:
        logout_cmd(gallery)
    finally:
        gallery.close()


@app.command()
def status() -> None:
    """Show backend, session and gallery size."""

    config = read_config_or_exit()
    gallery = open_app()
    try:
        status_cmd(gallery, backend=config.backend)
    finally:
        gallery.close()


@app.command()
def serve(
    host: str = typer.Option(None, help="Host to bind the gallery server"),
    port: int = typer.Option(None, help="Port to bind the gallery server"),
    background: bool = typer.Option(False, help="Run the server in background"),
    stop: bool = typer.Option(False, help="Stop the background server"),
) -> None:
    """Serve the gallery page and the /portfolios API."""

    config = load_config()
    _serve(
        host=host or config.viewer_host,
        port=port or config.viewer_port,
        background=background,
        stop=stop,
    )


if __name__ == "__main__":
    app()
