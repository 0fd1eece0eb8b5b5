"""CLI: cocoro control, cocoro status"""

import asyncio

import click
from rich.console import Console

from cocoro_ai.models.events import ClientEvent

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


@click.command("control")
@click.argument("command")
@click.option("-r", "--reason", default="", help="Reason passed along with the command.")
def control_cmd(command: str, reason: str):
    """Send a control command (e.g. shutdown)."""

    async def _control():
        client = _get_client()
        await _connect(client)
        try:
            await client.send_control(command, reason)
        finally:
            await client.aclose()
        console.print(f"[green]Sent[/green] {command}")

    _run(_control())


@click.command("status")
@click.option("-n", "--count", default=0, help="Stop after N updates (0 = until disconnected).")
@click.option("--timeout", default=None, type=float, help="Give up after this many seconds.")
def status_cmd(count: int, timeout):
    """Watch status updates pushed by the runtime."""

    async def _watch(client):
        seen = 0
        async for event in client.subscribe(ClientEvent.STATUS_UPDATE):
            console.print(f"CPU {event.data['cpu']:>3}%  {event.data['label']}")
            seen += 1
            if count and seen >= count:
                return

    async def _status():
        client = _get_client()
        await _connect(client)
        try:
            await asyncio.wait_for(_watch(client), timeout=timeout)
        finally:
            await client.aclose()

    _run(_status())
