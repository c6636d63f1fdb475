"""Command-line access to page history and annotations.

Usage:
    delvewiki history <slug> [--all]
    delvewiki show <slug> <version>
    delvewiki revert <slug> <version>
    delvewiki commit <slug> <file> [--prompt TEXT]
    delvewiki comments <slug>
    delvewiki highlight <slug> <html-file>

Every command takes ``--project`` (default: ``STORAGE__DEFAULT_PROJECT``).
The storage backend is chosen by ``STORAGE__BACKEND``.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from delvewiki.config import get_settings
from delvewiki.wiki import Wiki

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delvewiki.history.models import PageVersion
    from delvewiki.pages.keys import PageKey

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


def _build_parser() -> argparse.ArgumentParser:
    """Build argparse parser for delvewiki subcommands."""
    parser = argparse.ArgumentParser(
        prog="delvewiki",
        description="Inspect and manage wiki page versions and comments.",
    )
    parser.add_argument(
        "--project", default=None, help="Project name (default from settings)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to console"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # history
    history_p = sub.add_parser("history", help="List versions of a page")
    history_p.add_argument("slug", help="Page slug")
    history_p.add_argument(
        "--all", action="store_true", help="Include superseded and undone versions"
    )

    # show
    show_p = sub.add_parser("show", help="Print the content of one version")
    show_p.add_argument("slug", help="Page slug")
    show_p.add_argument("version", type=int, help="Version number")

    # revert
    revert_p = sub.add_parser("revert", help="Restore an earlier version")
    revert_p.add_argument("slug", help="Page slug")
    revert_p.add_argument("version", type=int, help="Version number")

    # commit
    commit_p = sub.add_parser("commit", help="Store a file as a new version")
    commit_p.add_argument("slug", help="Page slug")
    commit_p.add_argument("file", help="Content file ('-' for stdin)")
    commit_p.add_argument("--prompt", default=None, help="Edit instruction")

    # comments
    comments_p = sub.add_parser("comments", help="List comment threads")
    comments_p.add_argument("slug", help="Page slug")

    # highlight
    highlight_p = sub.add_parser(
        "highlight", help="Inject inline comment highlights into rendered HTML"
    )
    highlight_p.add_argument("slug", help="Page slug")
    highlight_p.add_argument("html_file", help="Rendered HTML file ('-' for stdin)")

    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _preview(text: str | None) -> str:
    if not text:
        return ""
    flat = " ".join(text.split())
    if len(flat) > _PREVIEW_CHARS:
        flat = flat[: _PREVIEW_CHARS - 1] + "…"
    return escape(flat)


def _status(version: PageVersion, current: int | None) -> str:
    """Badge for a version relative to the pointer."""
    if version.version == current:
        return "[green]Current[/]"
    if version.is_superseded:
        return "[dim]Superseded[/]"
    if current is not None and version.version > current:
        return "[yellow]Reverted[/]"
    return ""


async def _cmd_history(
    wiki: Wiki,
    key: PageKey,
    *,
    show_all: bool = False,
    console: Console | None = None,
) -> None:
    """List a page's versions as a Rich table, newest first."""
    con = console or globals()["console"]
    if show_all:
        entries = await wiki.versions.full_history(key)
    else:
        entries = await wiki.versions.visible_history(key)

    if not entries:
        con.print(f"[yellow]No versions for[/] {key}")
        return

    current = await wiki.versions.current_version(key)
    pointer = current.version if current is not None else None

    table = Table(title=f"History of {key}")
    table.add_column("Version", justify="right", style="cyan")
    table.add_column("Created")
    table.add_column("By")
    table.add_column("Prompt")
    table.add_column("Status")

    for entry in entries:
        by = entry.created_by
        if entry.reverted_from is not None:
            by = f"{by} (from v{entry.reverted_from})"
        table.add_row(
            str(entry.version),
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            by,
            _preview(entry.edit_prompt),
            _status(entry, pointer),
        )

    con.print(table)


async def _require_version(
    wiki: Wiki, key: PageKey, number: int, con: Console
) -> PageVersion:
    """Look up a version or exit with error."""
    try:
        version = await wiki.versions.get_version(key, number)
    except ValueError as exc:
        con.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    if version is None:
        con.print(f"[red]Error:[/] {key} has no version {number}")
        sys.exit(1)
    return version


async def _cmd_show(
    wiki: Wiki,
    key: PageKey,
    number: int,
    *,
    console: Console | None = None,
) -> None:
    """Print one version's content."""
    con = console or globals()["console"]
    version = await _require_version(wiki, key, number, con)
    con.print(
        f"[bold]{key}[/] v{version.version} "
        f"[dim]({version.created_by}, {version.timestamp.isoformat()})[/]"
    )
    con.out(version.content, highlight=False)


async def _cmd_revert(
    wiki: Wiki,
    key: PageKey,
    number: int,
    *,
    console: Console | None = None,
) -> None:
    """Move the page's pointer to an existing version."""
    con = console or globals()["console"]
    try:
        restored = await wiki.versions.revert(key, number)
    except ValueError as exc:
        con.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    if restored is None:
        con.print(f"[red]Error:[/] {key} has no version {number}")
        sys.exit(1)
    con.print(f"[green]Reverted[/] {key} to v{restored.version}")


async def _cmd_commit(
    wiki: Wiki,
    key: PageKey,
    content: str,
    *,
    prompt: str | None = None,
    console: Console | None = None,
) -> None:
    """Store ``content`` as the page's next version."""
    con = console or globals()["console"]
    version = await wiki.versions.commit(key, content, edit_prompt=prompt)
    con.print(f"[green]Committed[/] {key} v{version.version}")


async def _cmd_comments(
    wiki: Wiki,
    key: PageKey,
    *,
    console: Console | None = None,
) -> None:
    """List page-level and inline comment threads."""
    con = console or globals()["console"]
    page_threads = await wiki.annotations.page_comments(key)
    inline_threads = await wiki.annotations.inline_comments(key)

    if not page_threads and not inline_threads:
        con.print(f"[yellow]No comments on[/] {key}")
        return

    table = Table(title=f"Comments on {key}")
    table.add_column("ID", style="dim")
    table.add_column("Anchor")
    table.add_column("Messages", justify="right")
    table.add_column("First message")
    table.add_column("Resolved")

    for thread in page_threads:
        table.add_row(
            thread.id,
            "[dim](page)[/]",
            str(len(thread.messages)),
            _preview(thread.messages[0].content if thread.messages else None),
            "[green]Yes[/]" if thread.resolved else "No",
        )
    for comment in inline_threads:
        table.add_row(
            comment.id,
            _preview(comment.anchor.text),
            str(len(comment.messages)),
            _preview(comment.messages[0].content if comment.messages else None),
            "[green]Yes[/]" if comment.resolved else "No",
        )

    con.print(table)


async def _cmd_highlight(
    wiki: Wiki,
    key: PageKey,
    html: str,
    *,
    console: Console | None = None,
    errors: Console | None = None,
) -> None:
    """Write the highlighted HTML to stdout and report orphans on stderr."""
    con = console or globals()["console"]
    err = errors or err_console
    result = await wiki.annotations.render(key, html)
    con.out(result.html, highlight=False)
    for comment_id in result.orphaned_ids:
        err.print(f"[yellow]Orphaned:[/] {comment_id}")


def main(argv: Sequence[str] | None = None) -> None:
    """Run the ``delvewiki`` command."""
    from delvewiki import setup_logging

    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)

    settings = get_settings()
    use_database = settings.storage.backend == "database"
    if use_database and not settings.database.url:
        err_console.print("[red]Error:[/] DATABASE__URL not set")
        sys.exit(1)

    async def _run() -> None:
        if use_database:
            from delvewiki.db.engine import init_db

            await init_db()

        wiki = Wiki()
        try:
            key = wiki.key(args.slug, args.project)
        except ValueError as exc:
            err_console.print(f"[red]Error:[/] {exc}")
            sys.exit(1)
        logger.debug("Running %s for %s", args.command, key)
        try:
            match args.command:
                case "history":
                    await _cmd_history(wiki, key, show_all=args.all)
                case "show":
                    await _cmd_show(wiki, key, args.version)
                case "revert":
                    await _cmd_revert(wiki, key, args.version)
                case "commit":
                    content = _read_input(args.file)
                    await _cmd_commit(wiki, key, content, prompt=args.prompt)
                case "comments":
                    await _cmd_comments(wiki, key)
                case "highlight":
                    html = _read_input(args.html_file)
                    await _cmd_highlight(wiki, key, html)
        finally:
            if use_database:
                from delvewiki.db.engine import close_db

                await close_db()

    asyncio.run(_run())
