"""
interfaces/console.py — Console Event Monitor

Connects a GatewayClient built from Settings and renders the events it
receives with Rich until the socket closes or the user hits Ctrl+C.

Usage:
    python -m cordlink
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from cordlink.config.settings import Settings
from cordlink.exceptions import ConnectionFailureError, MissingCredentialError
from cordlink.gateway.client import GatewayClient


def build_client(settings: Settings, status: Optional[str] = None) -> GatewayClient:
    """Create a GatewayClient from Settings. `status` overrides gateway.status."""
    gw = settings.gateway
    return GatewayClient(
        settings.token_value,
        gw.intents,
        status=status or gw.status,
        properties=gw.properties,
        api_base=gw.api_base,
        gateway_version=gw.gateway_version,
        http_timeout=settings.http.timeout_seconds,
        max_message_size=gw.max_message_size,
    )


class EventPrinter:
    """Registers one handler per rendered event type on a client."""

    def __init__(self, console: Console):
        self.console = console

    def attach(self, client: GatewayClient) -> None:
        client.on("READY", self.on_ready)
        client.on("GUILD_CREATE", self.on_guild_create)
        client.on("MESSAGE_CREATE", self.on_message_create)

    def on_ready(self, data: dict[str, Any]) -> None:
        user = data.get("user") or {}
        self.console.print(
            f"[green]✓ Ready[/] as [bold]{user.get('username', '?')}[/] "
            f"[dim](session {data.get('session_id', '?')})[/]"
        )

    def on_guild_create(self, data: dict[str, Any]) -> None:
        self.console.print(f"[cyan]guild[/] {data.get('name', data.get('id', '?'))}")

    def on_message_create(self, data: dict[str, Any]) -> None:
        author = (data.get("author") or {}).get("username", "?")
        self.console.print(
            f"[dim]#{data.get('channel_id', '?')}[/] [bold]{author}[/]: "
            f"{data.get('content', '')}"
        )


async def run_console(settings: Settings, log, status: Optional[str] = None) -> int:
    """Run the monitor. Returns a process exit code."""
    console = Console()
    console.print(Panel(
        Text("cordlink — gateway monitor", style="bold cyan"),
        subtitle=settings.gateway.api_base,
        box=box.ROUNDED,
        border_style="bright_cyan",
    ))

    async with build_client(settings, status) as client:
        EventPrinter(console).attach(client)
        try:
            await client.login()
        except MissingCredentialError as e:
            console.print(f"[red]❌ {e}[/]")
            return 1
        except ConnectionFailureError as e:
            console.print(f"[red]❌ {e}[/]")
            log.error("console.connect_failed", error=str(e))
            return 1

        try:
            await client.wait_closed()
        except asyncio.CancelledError:
            log.info("console.interrupted")
            raise
        finally:
            console.print("[dim]connection closed[/]")
    return 0
