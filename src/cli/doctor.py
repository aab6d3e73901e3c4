"""`blogdesk doctor`: config summary plus a live health and API check."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.content_client import ContentClient
from core.config import AppSettings
from core.domain.outcome import Failure, RequestDescriptor, Success

app = typer.Typer(no_args_is_help=True, help="Check configuration and reachability of the content service.")

_console = Console()


async def _check_health(client: ContentClient) -> tuple[bool, str]:
    """Single probe at the service root, no retries."""

    descriptor = RequestDescriptor(
        method="GET",
        path="/health",
        timeout_ms=int(client.settings.health_timeout_seconds * 1000),
        authenticated=False,
        use_service_root=True,
    )
    outcome = await client.dispatcher.send(descriptor)
    if isinstance(outcome, Success):
        return True, f"HTTP {outcome.status}"
    return False, outcome.display_message()


async def _check_api(client: ContentClient) -> tuple[bool, str]:
    """`GET /blogs` through the full retry chain."""

    outcome = await client.api.blogs.get_blogs()
    if isinstance(outcome, Failure):
        return False, f"{outcome.kind.value}: {outcome.display_message()}"
    count = len(outcome.body) if isinstance(outcome.body, list) else 0
    return True, f"HTTP {outcome.status}, {count} blogs"


async def _diagnose(settings: AppSettings) -> list[tuple[str, bool, str]]:
    rows: list[tuple[str, bool, str]] = []
    async with ContentClient(settings) as client:
        ok_health, detail_health = await _check_health(client)
        rows.append(("Service health", ok_health, detail_health))
        if client.session.is_authenticated:
            ok_api, detail_api = await _check_api(client)
            rows.append(("Authenticated API", ok_api, detail_api))
    return rows


@app.command()
def run() -> None:
    """Show the effective configuration and probe the service."""

    settings = AppSettings()
    client_session_file = settings.resolved_session_file()

    table = Table(title="blogdesk Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API base URL", "OK", settings.api_base_url)
    table.add_row("Service root", "OK", settings.resolved_service_root())
    table.add_row("Session file", "OK" if client_session_file.exists() else "NONE", str(client_session_file))

    for check, ok, detail in asyncio.run(_diagnose(settings)):
        table.add_row(check, "OK" if ok else "FAIL", detail)

    _console.print(table)

    if not client_session_file.exists():
        _console.print("\n[yellow]Note:[/yellow] Not logged in. Run `blogdesk login` to check authenticated calls.")
