"""
Cocoro AI CLI — `cocoro` command.

Commands:
  cocoro chat               Interactive REPL chat
  cocoro send <message>     One-shot message, prints the reply
  cocoro config <cmd>       Fetch / push / change runtime configuration
  cocoro control <command>  Send a control command
  cocoro status             Watch status updates
  cocoro settings <cmd>     Local endpoint and user id
"""

import asyncio
import logging
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.markup import escape
except ImportError:
    raise SystemExit("CLI requires extras: pip install cocoro-ai[cli]")

from cocoro_ai import __version__
from cocoro_ai.client import AsyncCocoroAI
from cocoro_ai.errors import CocoroAIError, TransportError
from cocoro_ai.models.events import ClientEvent, CompanionEvent
from cocoro_ai.settings import AppSettings

console = Console()


def _get_client() -> AsyncCocoroAI:
    ctx = click.get_current_context()
    obj = ctx.find_root().obj
    return AsyncCocoroAI(url=obj["url"], user_id=obj["user_id"], settings=obj["settings"])


def _get_settings() -> AppSettings:
    return click.get_current_context().find_root().obj["settings"]


def _print_error(event: CompanionEvent) -> None:
    if event.type == ClientEvent.ERROR:
        console.print(f"[red]{escape(event.data.get('message', ''))}[/red]")


async def _connect(client: AsyncCocoroAI) -> None:
    client.add_event_handler(_print_error)
    if not await client.connect():
        raise TransportError(f"Could not connect to {client.url}")


def _run(coro):
    try:
        return asyncio.run(coro)
    except asyncio.TimeoutError:
        console.print("[red]Timed out waiting for the runtime.[/red]")
        raise SystemExit(1)
    except CocoroAIError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option(__version__)
@click.option("--url", default=None, help="WebSocket endpoint (overrides stored settings).")
@click.option("--user-id", default=None, help="User id sent with chat turns.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def main(ctx: click.Context, url: Optional[str], user_id: Optional[str], verbose: bool):
    """Cocoro AI CLI — talk to a running Cocoro AI runtime."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    settings = AppSettings.load()
    ctx.obj = {
        "settings": settings,
        "url": url or settings.websocket_url,
        "user_id": user_id or settings.user_id,
    }


# Register subcommands from separate modules
from cocoro_ai.cli.chat import chat_cmd, send_cmd
from cocoro_ai.cli.config import config
from cocoro_ai.cli.control import control_cmd, status_cmd
from cocoro_ai.cli.settings import settings

main.add_command(chat_cmd)
main.add_command(send_cmd)
main.add_command(config)
main.add_command(control_cmd)
main.add_command(status_cmd)
main.add_command(settings)


if __name__ == "__main__":
    main()
