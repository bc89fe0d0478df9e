from __future__ import annotations

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from designer_gallery.app import GalleryApp


def list_cmd(app: GalleryApp) -> None:
    """Print the mirrored portfolios as a table."""

    records = app.records()
    if not records:
        print("No portfolios yet")
        return
    table = Table(title="Portfolios")
    table.add_column("ID", justify="right")
    table.add_column("Designer")
    table.add_column("URL")
    for record in records:
        table.add_row(str(record.id), escape(record.name), escape(record.url))
    Console().print(table)


def add_cmd(app: GalleryApp, *, name: str, url: str) -> None:
    app.edit_form("name", name)
    app.edit_form("url", url)
    record = app.submit_add_form()
    if record is None:
        raise typer.Exit(code=1)
    print(f"[dim]id {record.id} -> {escape(record.url)}[/dim]")


def remove_cmd(app: GalleryApp, *, record_id: int) -> None:
    known = any(record.id == record_id for record in app.records())
    if not app.synchronizer.remove(record_id):
        raise typer.Exit(code=1)
    if not known:
        print(f"[yellow]No portfolio {record_id} in the gallery; nothing changed locally[/yellow]")


def login_cmd(app: GalleryApp, *, email: str, password: str) -> None:
    app.open_login()
    app.edit_form("email", email)
    app.edit_form("password", password)
    if not app.submit_login_form():
        raise typer.Exit(code=1)


def logout_cmd(app: GalleryApp) -> None:
    if not app.session.authenticated:
        print("[yellow]Not logged in[/yellow]")
        return
    app.session.sign_out()


def status_cmd(app: GalleryApp, *, backend: str) -> None:
    state = app.state
    auth = "[green]logged in[/green]" if state.authenticated else "[yellow]logged out[/yellow]"
    print(f"Backend: {backend}")
    print(f"Session: {auth}")
    print(f"Portfolios: {len(state.records)}")
