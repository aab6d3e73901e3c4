"""blogdesk command line (Typer).

Thin presentation layer: every command opens a `ContentClient`, runs one
operation and renders the `Outcome`. Failures exit with code 1.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from adapters.content_client import ContentClient
from adapters.json_exporter import export_blogs_json
from adapters.token_storage import JsonFileStorage
from cli import doctor
from cli.ui_components import (
    build_authors_table,
    build_blogs_table,
    describe_count,
    print_failure,
)
from core.config import AppSettings, write_user_env_vars
from core.domain.models import AuthorDraft, BlogDraft, BlogUpdate, ImageUpload
from core.domain.outcome import Failure, Outcome
from core.logging_config import configure_logging
from core.services.auth import login_failure_message
from core.services.content_api import parse_authors
from core.services.session_store import SessionStore

app = typer.Typer(no_args_is_help=True, help="Blog admin client for the content service.")
blogs_app = typer.Typer(no_args_is_help=True, help="List and manage blog posts.")
authors_app = typer.Typer(no_args_is_help=True, help="List and create authors.")
config_app = typer.Typer(no_args_is_help=True, help="Persistent configuration.")

app.add_typer(blogs_app, name="blogs")
app.add_typer(authors_app, name="authors")
app.add_typer(config_app, name="config")
app.add_typer(doctor.app, name="doctor")

_console = Console()

T = TypeVar("T")


def _run(action: Callable[[ContentClient], Awaitable[T]]) -> T:
    settings = AppSettings()

    async def runner() -> T:
        async with ContentClient(settings) as client:
            client.session.subscribe(_on_session_invalidated)
            return await action(client)

    return asyncio.run(runner())


def _on_session_invalidated() -> None:
    _console.print("[yellow]Session expired. Run `blogdesk login` to sign in again.[/yellow]")


def _exit_on_failure(outcome: Outcome, prefix: str) -> None:
    if isinstance(outcome, Failure):
        print_failure(_console, outcome, prefix=prefix)
        raise typer.Exit(code=1)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and retries."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Admin account email."),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Admin password."),
) -> None:
    """Log in and persist the session token."""

    outcome = _run(lambda client: client.auth.login(email, password))
    if isinstance(outcome, Failure):
        _console.print(f"[red]{login_failure_message(outcome)}[/red]", highlight=False)
        raise typer.Exit(code=1)
    _console.print(f"[green]Login successful![/green] Signed in as {email.strip()}")


@app.command()
def logout() -> None:
    """Log out on the server and drop the local session."""

    outcome = _run(lambda client: client.auth.logout())
    if isinstance(outcome, Failure):
        print_failure(_console, outcome, prefix="Server logout failed")
    _console.print("[green]Logged out.[/green]")


@app.command()
def whoami() -> None:
    """Show the account of the persisted session."""

    settings = AppSettings()
    session = SessionStore(JsonFileStorage(settings.resolved_session_file()))
    identity = session.init().identity
    if identity is None:
        _console.print("Not logged in.")
        raise typer.Exit(code=1)
    _console.print(identity.email)


@blogs_app.command("list")
def list_blogs(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by title, content or author."),
    recent: Optional[int] = typer.Option(None, "--recent", help="Only the N most recent posts."),
    json_path: Optional[Path] = typer.Option(None, "--json", help="Also export the full snapshot as JSON."),
) -> None:
    """Fetch all posts and show them, optionally filtered."""

    async def action(client: ContentClient):
        outcome = await client.feed.refresh()
        return outcome, client.feed

    outcome, feed = _run(action)
    _exit_on_failure(outcome, "Failed to fetch blogs")

    visible = feed.search(search)
    if recent is not None:
        visible = tuple(blog for blog in feed.cache.recent(recent) if blog in visible)
    _console.print(build_blogs_table(visible))
    _console.print(describe_count(feed.cache.stats()), style="dim")

    if json_path is not None:
        out = export_blogs_json(blogs=feed.cache.items, output_path=json_path)
        _console.print(f"[green]Saved snapshot to:[/green] {out}")


@blogs_app.command("create")
def create_blog(
    title: str = typer.Option(..., help="Post title."),
    content: str = typer.Option(..., help="Post body."),
    author: str = typer.Option(..., help="Author id (see `authors list`)."),
    image: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Cover image (max 5MB)."),
) -> None:
    """Create a post (multipart upload)."""

    try:
        draft = BlogDraft(
            title=title,
            content=content,
            author=author,
            image=ImageUpload.from_path(image) if image else None,
        )
    except ValidationError as exc:
        raise typer.BadParameter(exc.errors()[0]["msg"]) from exc

    outcome = _run(lambda client: client.feed.create(draft))
    _exit_on_failure(outcome, "Failed to create blog")
    _console.print("[green]Blog created successfully![/green]")


@blogs_app.command("update")
def update_blog(
    blog_id: str = typer.Argument(..., help="Post id."),
    title: Optional[str] = typer.Option(None, help="New title."),
    content: Optional[str] = typer.Option(None, help="New body."),
) -> None:
    """Update the title and/or content of a post."""

    try:
        update = BlogUpdate(title=title, content=content)
    except ValidationError as exc:
        raise typer.BadParameter(exc.errors()[0]["msg"]) from exc

    outcome = _run(lambda client: client.feed.update(blog_id, update))
    _exit_on_failure(outcome, "Failed to update blog")
    _console.print("[green]Blog updated successfully[/green]")


@blogs_app.command("delete")
def delete_blog(
    blog_id: str = typer.Argument(..., help="Post id."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete a post."""

    if not yes:
        typer.confirm(f'Are you sure you want to delete "{blog_id}"?', abort=True)
    outcome = _run(lambda client: client.feed.delete(blog_id))
    _exit_on_failure(outcome, "Failed to delete blog")
    _console.print("[green]Blog deleted successfully[/green]")


@authors_app.command("list")
def list_authors() -> None:
    """List authors."""

    outcome = _run(lambda client: client.api.authors.get_authors())
    _exit_on_failure(outcome, "Failed to fetch authors")
    _console.print(build_authors_table(parse_authors(outcome.body)))  # type: ignore[union-attr]


@authors_app.command("create")
def create_author(
    name: str = typer.Option(..., help="Display name."),
    email: Optional[str] = typer.Option(None, help="Contact email."),
) -> None:
    """Create an author."""

    try:
        draft = AuthorDraft(name=name, email=email)
    except ValidationError as exc:
        raise typer.BadParameter(exc.errors()[0]["msg"]) from exc

    outcome = _run(lambda client: client.api.authors.create_author(draft))
    _exit_on_failure(outcome, "Failed to create author")
    _console.print("[green]Author created.[/green]")


@config_app.command("set-url")
def set_url(url: str = typer.Argument(..., help="API base URL, e.g. https://host/api")) -> None:
    """Store the API base URL in the user config .env."""

    env_path = write_user_env_vars({"BLOGDESK_API_BASE_URL": url.rstrip("/")})
    _console.print(f"[green]Saved API URL to:[/green] {env_path}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
