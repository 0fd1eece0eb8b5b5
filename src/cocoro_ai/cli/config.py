"""CLI: cocoro config get|push|set"""

import json

import click
from rich.console import Console

from cocoro_ai.models.events import CompanionEvent

console = Console()


def _get_client():
    from cocoro_ai.cli.main import _get_client
    return _get_client()


def _connect(client):
    from cocoro_ai.cli.main import _connect
    return _connect(client)


def _run(coro):
    from cocoro_ai.cli.main import _run
    return _run(coro)


def _print_response(event: CompanionEvent, json_output: bool) -> None:
    settings = event.data.get("settings")
    if json_output:
        click.echo(json.dumps({
            "status": event.data.get("status"),
            "message": event.data.get("message"),
            "settings": settings.to_wire() if settings is not None else None,
        }, ensure_ascii=False, indent=2))
        return
    status = event.data.get("status", "")
    color = "green" if status.lower() == "ok" else "red"
    console.print(f"[{color}]{status}[/{color}] {event.data.get('message', '')}")
    if settings is not None:
        console.print_json(data=settings.to_wire())


@click.group()
def config():
    """Runtime configuration."""


@config.command("get")
@click.option("--save", is_flag=True, help="Write the received settings to the local store.")
@click.option("--timeout", default=10.0, show_default=True)
@click.option("--json-output", "--json", is_flag=True)
def get_config(save: bool, timeout: float, json_output: bool):
    """Fetch the runtime's current configuration."""

    async def _get():
        client = _get_client()
        await _connect(client)
        try:
            event = await client.fetch_config(timeout=timeout)
        finally:
            await client.aclose()
        _print_response(event, json_output)
        if save and event.data.get("settings") is not None:
            path = client.settings.save()
            if not json_output:
                console.print(f"[dim]Saved to {path}[/dim]")

    _run(_get())


@config.command("push")
@click.option("--timeout", default=10.0, show_default=True)
def push_config(timeout: float):
    """Send the locally stored configuration to the runtime."""

    async def _push():
        client = _get_client()
        await _connect(client)
        try:
            event = await client.push_config(timeout=timeout)
        finally:
            await client.aclose()
        _print_response(event, json_output=False)

    _run(_push())


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config(key: str, value: str):
    """Change one setting (legacy key/value form)."""

    async def _set():
        client = _get_client()
        await _connect(client)
        try:
            await client.change_config_field(key, value)
        finally:
            await client.aclose()
        console.print(f"[green]Sent[/green] {key}={value}")

    _run(_set())
