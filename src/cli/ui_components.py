"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.table import Table

from core.domain.models import Author, BlogEntity
from core.domain.outcome import Failure, FailureKind
from core.services.collection_cache import CollectionStats


def truncate_text(text: str, max_length: int = 100) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def build_blogs_table(blogs: Iterable[BlogEntity], *, title: str = "Blogs") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Author", style="green")
    table.add_column("Created", style="magenta", no_wrap=True)
    table.add_column("Content", style="dim")
    for blog in blogs:
        created = blog.created_at.strftime("%b %d, %Y") if blog.created_at else ""
        table.add_row(
            str(blog.id),
            blog.title,
            blog.author_name or "Unknown",
            created,
            truncate_text(blog.content),
        )
    return table


def build_authors_table(authors: Iterable[Author]) -> Table:
    table = Table(title="Authors")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Email", style="magenta")
    for author in authors:
        table.add_row(str(author.id), author.name, author.email or "")
    return table


def describe_count(stats: CollectionStats) -> str:
    noun = "blog" if stats.visible == 1 else "blogs"
    line = f"{stats.visible} {noun} found"
    if stats.search_term:
        line += f' for "{stats.search_term}"'
    return line


def print_failure(console: Console, failure: Failure, *, prefix: str | None = None) -> None:
    message = failure.display_message()
    if prefix:
        message = f"{prefix}: {message}"
    style = "yellow" if failure.kind is FailureKind.TRANSIENT else "red"
    console.print(f"[{style}]{message}[/{style}]", highlight=False)
