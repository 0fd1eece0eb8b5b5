"""CLI: cocoro settings show|set-url|set-user"""

import click
from rich.console import Console

console = Console()


def _get_settings():
    from cocoro_ai.cli.main import _get_settings
    return _get_settings()


@click.group()
def settings():
    """Local settings store."""


@settings.command("show")
def show_settings():
    """Print the stored endpoint, user id and last known configuration."""
    s = _get_settings()
    console.print(f"websocket_url: {s.websocket_url}")
    console.print(f"user_id:       {s.user_id}")
    console.print_json(data=s.config.to_wire())


@settings.command("set-url")
@click.argument("url")
def set_url(url: str):
    """Store the runtime's WebSocket endpoint."""
    s = _get_settings()
    s.websocket_url = url
    path = s.save()
    console.print(f"[green]Saved[/green] websocket_url to {path}")


@settings.command("set-user")
@click.argument("user_id")
def set_user(user_id: str):
    """Store the user id sent with chat turns."""
    s = _get_settings()
    s.user_id = user_id
    path = s.save()
    console.print(f"[green]Saved[/green] user_id to {path}")
