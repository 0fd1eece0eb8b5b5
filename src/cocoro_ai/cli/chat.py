"""CLI: cocoro chat, cocoro send"""

import asyncio
import json

import click
from rich.console import Console
from rich.markup import escape

from cocoro_ai.models.events import ClientEvent, CompanionEvent

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


def _print_event(event: CompanionEvent) -> None:
    if event.type == ClientEvent.CHAT_REPLY:
        console.print(f"[green]Cocoro:[/green] {escape(event.data['text'])}")
    elif event.type == ClientEvent.DISCONNECTED:
        console.print("[dim]disconnected[/dim]")


@click.command("chat")
def chat_cmd():
    """Interactive chat. /new starts a new session, /quit exits."""

    async def _chat():
        client = _get_client()
        client.add_event_handler(_print_event)
        await _connect(client)
        console.print(f"[dim]Session: {client.session_id}[/dim]")
        console.print("[cyan]Type your message (Ctrl+C to exit)[/cyan]\n")
        try:
            while client.connected:
                msg = await asyncio.to_thread(click.prompt, "You", prompt_suffix=": ")
                if msg.lower() in ("/quit", "/exit"):
                    break
                if msg.lower() == "/new":
                    console.print(f"[dim]Session: {client.new_session()}[/dim]")
                    continue
                await client.send_chat(msg)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            await client.aclose()

    _run(_chat())


@click.command("send")
@click.argument("message")
@click.option("--timeout", default=60.0, show_default=True, help="Seconds to wait for the reply.")
@click.option("--json-output", "--json", is_flag=True)
def send_cmd(message: str, timeout: float, json_output: bool):
    """Send a one-shot message and print the reply."""

    async def _send():
        client = _get_client()
        await _connect(client)
        try:
            reply = await client.ask(message, timeout=timeout)
        finally:
            await client.aclose()
        if json_output:
            click.echo(json.dumps({"sessionId": client.session_id, "response": reply}, ensure_ascii=False))
        else:
            console.print(f"[green]Cocoro:[/green] {escape(reply)}")

    _run(_send())
