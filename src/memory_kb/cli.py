#!/usr/bin/env python3
"""
mem: CLI for the memory knowledge base

Usage:
    mem add "Entry Name" --type Person   # Create an entry
    mem show "Entry Name"                # Read an entry with its links
    mem search "query" --tag travel      # Search entries
    mem timeline --start 2001 --end 2004 # Events in a date range
    mem broken-links                     # Links to entries that don't exist
    mem reindex                          # Rebuild the search index
"""

from __future__ import annotations

import difflib
import json
from pathlib import Path
from typing import Any

import click
from click.exceptions import ClickException, UsageError
from pydantic import ValidationError

from . import __version__
from ._logging import configure_logging
from .config import ConfigurationError
from .errors import KBError
from .models import Entry, EntryType, EntryTypes, SearchFilter, SortOrder
from .parser.text import slugify

SORT_CHOICES = {"score": SortOrder.SCORE, "recent": SortOrder.RECENT, "name": SortOrder.NAME}


# ─────────────────────────────────────────────────────────────────────────────
# Output Formatting
# ─────────────────────────────────────────────────────────────────────────────


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}

    def cell(row: dict, col: str) -> str:
        val = str(row.get(col, ""))
        limit = max_widths.get(col, 50)
        if len(val) > limit:
            val = val[: limit - 3] + "..."
        return val

    widths = {col: max([len(col)] + [len(cell(row, col)) for row in rows]) for col in columns}

    lines = [
        "  ".join(col.upper().ljust(widths[col]) for col in columns),
        "  ".join("-" * widths[col] for col in columns),
    ]
    for row in rows:
        lines.append("  ".join(cell(row, col).ljust(widths[col]) for col in columns).rstrip())
    return "\n".join(lines)


def output(data: Any, as_json: bool = False) -> None:
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _entry_row(entry: Entry) -> dict:
    return {
        "name": entry.name,
        "type": entry.type.value,
        "tags": ", ".join(entry.tags),
        "start": entry.start,
        "description": entry.description,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


class KBGroup(click.Group):
    """Click group that reports knowledge base errors as one-line messages.

    Also suggests the closest command name for typos.
    """

    def resolve_command(self, ctx, args):
        """Override to suggest similar commands for typos."""
        try:
            return super().resolve_command(ctx, args)
        except UsageError as e:
            cmd_name = args[0] if args else ""
            if cmd_name and "No such command" in str(e):
                matches = difflib.get_close_matches(cmd_name, self.list_commands(ctx), n=1, cutoff=0.6)
                if matches:
                    raise UsageError(f"No such command '{cmd_name}'. Did you mean '{matches[0]}'?") from e
            raise

    def invoke(self, ctx: click.Context) -> Any:
        """Override invoke to turn knowledge base errors into Click errors."""
        try:
            return super().invoke(ctx)
        except ValidationError as e:
            messages = [err["msg"] for err in e.errors()]
            raise ClickException("; ".join(messages)) from e
        except (KBError, ConfigurationError, ValueError) as e:
            raise ClickException(str(e)) from e


def _kb(ctx: click.Context):
    """Open the knowledge base on first use and cache it on the context."""
    from .core import KnowledgeBase

    if "kb" not in ctx.obj:
        ctx.obj["kb"] = KnowledgeBase.open(ctx.obj.get("home"))
    return ctx.obj["kb"]


@click.group(cls=KBGroup)
@click.version_option(version=__version__, prog_name="mem")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="MEMORY_KB_HOME",
    help="Knowledge base directory (default: ~/.memory)",
)
@click.pass_context
def cli(ctx: click.Context, home: Path | None) -> None:
    """mem: a personal knowledge base of linked entries.

    Entries link to each other by name in square brackets, e.g. [Ada Lovelace].

    \b
    Quick start:
      mem add "Ada Lovelace" --type Person --tag math
      mem search lovelace
      mem show "Ada Lovelace"
    """
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["home"] = home


# ─────────────────────────────────────────────────────────────────────────────
# Entry Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("name")
@click.option(
    "--type",
    "entry_type",
    type=click.Choice([t.value for t in EntryType], case_sensitive=False),
    default=EntryType.NOTE.value,
    help="Entry type",
)
@click.option("--description", "-d", default="", help="Entry text; link with [Other Entry]")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.option("--start", default="", help="Start date: YYYY, YYYY-MM or YYYY-MM-DD")
@click.option("--end", default="", help="End date: YYYY, YYYY-MM or YYYY-MM-DD")
@click.option("--address", default="", help="Address (places)")
@click.option("--custom", "custom", multiple=True, help="Custom field as key=value (repeatable)")
@click.pass_context
def add(
    ctx: click.Context,
    name: str,
    entry_type: str,
    description: str,
    tags: tuple[str, ...],
    start: str,
    end: str,
    address: str,
    custom: tuple[str, ...],
) -> None:
    """Create a new entry."""
    fields: dict[str, str] = {}
    for item in custom:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {item!r}", param_hint="--custom")
        fields[key.strip()] = value.strip()

    entry = Entry(
        name=name,
        type=EntryType(entry_type.capitalize()),
        description=description,
        tags=list(tags),
        start=start,
        end=end,
        address=address,
        custom=fields,
    )
    saved = _kb(ctx).add_entry(entry)
    click.echo(f"Added {saved.name} ({saved.slug})")


@cli.command()
@click.argument("name")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, name: str, as_json: bool) -> None:
    """Show an entry with its links and backlinks."""
    kb = _kb(ctx)
    slug = slugify(name)
    entry = kb.get_entry(slug)
    description = kb.render(entry)
    links = kb.links(slug)
    backlinks = kb.reverse_links(slug)

    if as_json:
        data = entry.model_dump(mode="json")
        data.update(slug=slug, description=description, links=links, backlinks=backlinks)
        output(data, as_json=True)
        return

    lines = [f"{entry.name} ({entry.type.value})"]
    if entry.tags:
        lines.append(f"Tags: {', '.join(entry.tags)}")
    if entry.start or entry.end:
        lines.append(f"When: {entry.start}{' - ' + entry.end if entry.end else ''}")
    if entry.address:
        lines.append(f"Address: {entry.address}")
    for key, value in sorted(entry.custom.items()):
        lines.append(f"{key}: {value}")
    lines.append("")
    lines.append(description)
    if links:
        lines.append("")
        lines.append(f"Links to: {', '.join(links)}")
    if backlinks:
        lines.append(f"Linked from: {', '.join(backlinks)}")
    output("\n".join(lines))


@cli.command()
@click.argument("name")
@click.pass_context
def delete(ctx: click.Context, name: str) -> None:
    """Delete an entry."""
    slug = slugify(name)
    _kb(ctx).delete_entry(slug)
    click.echo(f"Deleted {slug}")


@cli.command()
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
def rename(ctx: click.Context, old_name: str, new_name: str) -> None:
    """Rename an entry."""
    renamed = _kb(ctx).rename_entry(old_name, new_name)
    click.echo(f"Renamed to {renamed.name} ({renamed.slug})")


# ─────────────────────────────────────────────────────────────────────────────
# Search Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("keywords", required=False, default="")
@click.option(
    "--type",
    "types",
    multiple=True,
    type=click.Choice([t.value for t in EntryType], case_sensitive=False),
    help="Restrict to entry type (repeatable)",
)
@click.option("--tag", "-t", "only_tags", multiple=True, help="Entries must have this tag (repeatable)")
@click.option("--any-tag", "any_tags", multiple=True, help="Entries must have at least one of these tags")
@click.option("--sort", type=click.Choice(list(SORT_CHOICES)), default="score", help="Result order")
@click.option("--page", "page_no", default=1, type=click.IntRange(min=1), help="Page number")
@click.option("--page-size", "-n", default=None, type=click.IntRange(min=1), help="Entries per page")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search(
    ctx: click.Context,
    keywords: str,
    types: tuple[str, ...],
    only_tags: tuple[str, ...],
    any_tags: tuple[str, ...],
    sort: str,
    page_no: int,
    page_size: int | None,
    as_json: bool,
) -> None:
    """Search entries by keyword, type and tags."""
    criteria = SearchFilter(
        types=EntryTypes.of(*(EntryType(t.capitalize()) for t in types)),
        any_tags=list(any_tags),
        only_tags=list(only_tags),
        keywords=keywords,
    )
    results = _kb(ctx).search(criteria, SORT_CHOICES[sort], page_no, page_size)

    if as_json:
        output(
            {
                "total": results.total,
                "page": results.page_no,
                "pages": results.page_count,
                "entries": [e.model_dump(mode="json") for e in results.entries],
            },
            as_json=True,
        )
        return

    if not results.entries:
        click.echo("No entries found.")
        return
    rows = [_entry_row(e) for e in results.entries]
    click.echo(format_table(rows, ["name", "type", "tags", "description"], {"description": 60}))
    click.echo(f"\nPage {results.page_no} of {results.page_count} ({results.total} entries)")


@cli.command()
@click.option("--start", default="", help="Earliest start: YYYY, YYYY-MM or YYYY-MM-DD")
@click.option("--end", default="", help="Latest end: YYYY, YYYY-MM or YYYY-MM-DD")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def timeline(ctx: click.Context, start: str, end: str, as_json: bool) -> None:
    """List dated entries in order of start date."""
    entries = _kb(ctx).timeline(start, end)
    if as_json:
        output([e.model_dump(mode="json") for e in entries], as_json=True)
        return
    if not entries:
        click.echo("No entries found.")
        return
    rows = [{"start": e.start, "end": e.end, "name": e.name, "type": e.type.value} for e in entries]
    click.echo(format_table(rows, ["start", "end", "name", "type"]))


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tags(ctx: click.Context, as_json: bool) -> None:
    """List tags and the entries carrying them."""
    all_tags = _kb(ctx).tags()
    if as_json:
        output(all_tags, as_json=True)
        return
    if not all_tags:
        click.echo("No tags.")
        return
    for tag, names in all_tags.items():
        click.echo(f"{tag} ({len(names)}): {', '.join(names)}")


# ─────────────────────────────────────────────────────────────────────────────
# Link Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("name")
@click.pass_context
def links(ctx: click.Context, name: str) -> None:
    """List the entries NAME links to."""
    for slug in _kb(ctx).links(slugify(name)):
        click.echo(slug)


@cli.command()
@click.argument("name")
@click.pass_context
def backlinks(ctx: click.Context, name: str) -> None:
    """List the entries linking to NAME."""
    for slug in _kb(ctx).reverse_links(slugify(name)):
        click.echo(slug)


@cli.command("broken-links")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def broken_links(ctx: click.Context, as_json: bool) -> None:
    """Report links to entries that don't exist."""
    report = _kb(ctx).broken_links()
    if as_json:
        output(report, as_json=True)
        return
    if not report:
        click.echo("No broken links.")
        return
    for name in sorted(report):
        click.echo(f"{name}: {', '.join(report[name])}")


# ─────────────────────────────────────────────────────────────────────────────
# Maintenance Commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def reindex(ctx: click.Context) -> None:
    """Rebuild the search index from the entry files."""
    report = _kb(ctx).rebuild()
    click.echo(f"Indexed {report.indexed} out of {report.total} entries.")
    for slug in report.failed:
        click.echo(f"  could not read: {slug}", err=True)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
