"""Command-line interface for Determinant.

Usage example:
    determinant chat --server https://matrix.example.org --user alice
    determinant rooms
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from determinant.config import DeterminantConfig, load_config
from determinant.context import ClientContext
from determinant.errors import AuthError
from determinant.render import picker_label
from determinant.session import Session
from determinant.state import SessionState

console = Console()
error_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print a consistently styled error message to stderr."""
    error_console.print(f"[bold red]Error:[/bold red] {message}")


app = typer.Typer(
    name="determinant",
    help="A vim-like terminal Matrix client.",
    add_completion=False,
)

ServerOption = Annotated[str | None, typer.Option("--server", help="Homeserver base URL.")]
UserOption = Annotated[str | None, typer.Option("--user", help="User name or full user id.")]
PasswordOption = Annotated[
    str | None, typer.Option("--password", envvar="DETERMINANT_PASSWORD", help="Password (prompted if omitted).")
]
ConfigOption = Annotated[Path | None, typer.Option("--config", help="Path to config.json.")]
LogFileOption = Annotated[Path | None, typer.Option("--log-file", help="Write logs to this file.")]
DebugOption = Annotated[bool, typer.Option("--debug", help="Log at DEBUG level.")]


def configure_logging(cfg: DeterminantConfig, log_file: Path | None, debug: bool) -> Path:
    """Send log records to a file; the terminal belongs to the UI."""
    path = (log_file or cfg.logging.path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, cfg.logging.level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        filename=str(path),
    )
    return path


def resolve_settings(config_path: Path | None, server: str | None, user: str | None) -> DeterminantConfig:
    """Load the config file and apply command-line overrides.

    Exits with code 1 on an invalid config or a missing server/user.
    """
    try:
        cfg = load_config(config_path)
    except ValueError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from None

    if server:
        cfg.server.address = server.rstrip("/")
    if user:
        cfg.server.user = user
    if not cfg.server.address:
        print_error("No server configured. Pass --server or set server.address in the config file.")
        raise typer.Exit(code=1)
    if not cfg.server.user:
        print_error("No user configured. Pass --user or set server.user in the config file.")
        raise typer.Exit(code=1)
    return cfg


def connect(cfg: DeterminantConfig, password: str | None) -> ClientContext:
    """Log in and run the first sync. Login failure is fatal."""
    if password is None:
        password = typer.prompt(f"Password for {cfg.server.user}", hide_input=True)

    state = SessionState(address=cfg.server.address, user_id=cfg.server.user)
    session = Session(state, timeout=cfg.server.timeout)
    try:
        session.login(cfg.server.user, password)
    except AuthError as exc:
        session.close()
        print_error(str(exc))
        raise typer.Exit(code=1) from None

    context = ClientContext(session=session)
    context.sync_now()
    return context


@app.command(help="Open the chat TUI.")
def chat(
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    config: ConfigOption = None,
    log_file: LogFileOption = None,
    debug: DebugOption = False,
) -> None:
    """Log in, sync once and hand the terminal to the TUI."""
    from determinant.tui import require_textual

    require_textual()
    cfg = resolve_settings(config, server, user)
    configure_logging(cfg, log_file, debug)

    context = connect(cfg, password)

    from determinant.tui.app import DeterminantApp

    try:
        DeterminantApp(context, tick_interval=cfg.ui.tick_interval).run()
    finally:
        context.session.close()


@app.command(help="Sync once and list joined rooms and invites.")
def rooms(
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    config: ConfigOption = None,
    log_file: LogFileOption = None,
    debug: DebugOption = False,
) -> None:
    cfg = resolve_settings(config, server, user)
    configure_logging(cfg, log_file, debug)

    context = connect(cfg, password)
    context.session.close()
    if context.notice:
        print_error(context.notice)
        raise typer.Exit(code=1)

    store = context.store
    if not store.rooms:
        typer.echo("No joined rooms.")
    else:
        table = Table(title=f"Rooms for {context.state.user_id}")
        table.add_column("Room")
        table.add_column("ID", style="dim")
        table.add_column("Members", justify="right")
        table.add_column("Messages", justify="right")
        table.add_column("Unread", justify="right")
        for room_id, room in store.rooms.items():
            table.add_row(
                picker_label(store, context.state, room_id),
                room_id,
                str(len(room.members)),
                str(len(room.messages)),
                str(room.unread),
            )
        console.print(table)

    if store.invites:
        typer.echo("Invites:")
        for room_id in store.invites:
            typer.echo(f"  {room_id}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
