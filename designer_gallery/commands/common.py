from __future__ import annotations

from collections.abc import Callable

import typer
from rich import print
from rich.markup import escape

from designer_gallery.app import GalleryApp
from designer_gallery.config import GalleryConfig, load_config, read_config_file
from designer_gallery.state import AppState, Directive

TOAST_STYLES = {"success": "green", "error": "red"}


def read_config_or_exit() -> GalleryConfig:
    try:
        read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    return load_config()


def print_toasts(prev: AppState, new: AppState, directives: list[Directive]) -> None:
    for directive in directives:
        if directive.kind != "show_toast":
            continue
        style = TOAST_STYLES.get(str(directive.target), "white")
        print(f"[{style}]{escape(str(directive.value))}[/{style}]")


def open_app(
    factory: Callable[[GalleryConfig], GalleryApp] = GalleryApp.from_config,
) -> GalleryApp:
    config = read_config_or_exit()
    try:
        app = factory(config)
    except ValueError as exc:
        print(f"[red]Invalid backend configuration: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    app.subscribe(print_toasts)
    app.start()
    return app


def require_login(app: GalleryApp) -> None:
    if app.session.authenticated:
        return
    app.close()
    print("[red]Login required. Run `designer-gallery login` first.[/red]")
    raise typer.Exit(code=1)
