#!/usr/bin/env python3
"""
tkb: CLI for the topickb topic store

Usage:
    tkb add "Title" --content="..."     # Create a topic
    tkb get <id>                        # Read a topic
    tkb update <id> --name="New title"  # Edit (appends a version)
    tkb tree <id>                       # Show a subtree
    tkb path <from> <to>                # Shortest path between topics
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar

import click
from click.exceptions import ClickException, UsageError
from pydantic import BaseModel, ValidationError

from . import __version__ as TOPICKB_VERSION

if TYPE_CHECKING:
    from .core import KnowledgeBase
    from .models import TopicTree

T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run async function synchronously."""
    return asyncio.run(coro)


# ─────────────────────────────────────────────────────────────────────────────
# Output helpers
# ─────────────────────────────────────────────────────────────────────────────


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}

    def _cell(row: dict, col: str) -> str:
        val = "" if row.get(col) is None else str(row.get(col))
        limit = max_widths.get(col, 50)
        if len(val) > limit:
            val = val[: limit - 3] + "..."
        return val

    widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            widths[col] = max(widths[col], len(_cell(row, col)))

    lines = [
        "  ".join(col.upper().ljust(widths[col]) for col in columns),
        "  ".join("-" * widths[col] for col in columns),
    ]
    for row in rows:
        lines.append("  ".join(_cell(row, col).ljust(widths[col]) for col in columns))

    return "\n".join(lines)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def _dump(value: BaseModel | list[BaseModel]) -> Any:
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


def format_tree(tree: TopicTree, max_depth: int) -> str:
    """Render a topic tree with box-drawing connectors."""
    lines = [f"{tree.name} ({tree.id})"]

    def _walk(node: TopicTree, prefix: str, depth: int) -> None:
        if depth >= max_depth:
            if node.children:
                lines.append(f"{prefix}└── ... {len(node.children)} more")
            return
        for index, child in enumerate(node.children):
            last = index == len(node.children) - 1
            connector = "└── " if last else "├── "
            lines.append(f"{prefix}{connector}{child.name} ({child.id})")
            _walk(child, prefix + ("    " if last else "│   "), depth + 1)

    _walk(tree, "", 0)
    return "\n".join(lines)


def _topic_rows(topics) -> list[dict]:
    return [
        {"id": t.id, "name": t.name, "version": t.version, "parent": t.parent_topic_id or "-"}
        for t in topics
    ]


def _echo_topics(topics, as_json: bool, empty_message: str) -> None:
    if as_json:
        output(_dump(topics), as_json=True)
    elif not topics:
        click.echo(empty_message)
    else:
        click.echo(format_table(_topic_rows(topics), ["id", "name", "version", "parent"]))


# ─────────────────────────────────────────────────────────────────────────────
# Error handling
# ─────────────────────────────────────────────────────────────────────────────


def _handle_error(ctx: click.Context, error: Exception, exit_code: int = 1) -> NoReturn:
    """Report an error (JSON if --json-errors) and exit."""
    from .config import ConfigurationError
    from .errors import ErrorCode, TopicKBError
    from .store import StoreError

    json_errors = ctx.obj.get("json_errors", False) if ctx.obj else False

    if not isinstance(error, TopicKBError):
        if isinstance(error, StoreError):
            code = ErrorCode.STORE_ERROR
        elif isinstance(error, ConfigurationError):
            code = ErrorCode.CONFIGURATION_ERROR
        elif isinstance(error, (ValidationError, ValueError)):
            code = ErrorCode.VALIDATION_ERROR
        else:
            code = ErrorCode.INTERNAL_ERROR
        error = TopicKBError(code, str(error))

    if json_errors:
        click.echo(error.to_json(), err=True)
    else:
        click.echo(f"Error: {error.message}", err=True)
        suggestion = error.details.get("suggestion")
        if suggestion:
            click.echo(f"Hint: {suggestion}", err=True)

    sys.exit(exit_code)


def _run(ctx: click.Context, coro: Coroutine[Any, Any, T]) -> T:
    """Run a core coroutine, routing store and validation failures to _handle_error."""
    from .config import ConfigurationError
    from .store import StoreError

    try:
        return run_async(coro)
    except (StoreError, ConfigurationError, ValidationError, ValueError) as e:
        _handle_error(ctx, e)


def _get_kb(ctx: click.Context) -> KnowledgeBase:
    from .config import ConfigurationError, get_store_root
    from .core import KnowledgeBase

    kb = ctx.obj.get("kb")
    if kb is None:
        try:
            kb = KnowledgeBase.open(get_store_root())
        except ConfigurationError as e:
            _handle_error(ctx, e)
        ctx.obj["kb"] = kb
    return kb


class JsonErrorGroup(click.Group):
    """Click group that formats usage errors as JSON when --json-errors is set."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except ClickException as e:
            if ctx.params.get("json_errors"):
                from .errors import format_error_json

                code = "USAGE_ERROR" if isinstance(e, UsageError) else "CLI_ERROR"
                click.echo(format_error_json(code, e.format_message()), err=True)
                raise SystemExit(1)
            raise


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group(cls=JsonErrorGroup)
@click.version_option(version=TOPICKB_VERSION, prog_name="tkb")
@click.option(
    "--json-errors",
    "json_errors",
    is_flag=True,
    help="Output errors as JSON (for programmatic use)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="TOPICKB_QUIET",
    help="Suppress warnings, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, json_errors: bool, quiet: bool):
    """tkb: versioned, hierarchical topics.

    The store location comes from TOPICKB_STORE_ROOT, a .topickb.yaml with
    store_path in the current directory or a parent, or ~/.topickb/store.

    \b
    Examples:
      tkb add "Databases" --content="Storage engines"
      tkb add "Indexes" --parent=<id>
      tkb tree <id>
      tkb path <from-id> <to-id>
    """
    from ._logging import configure_logging, set_quiet_mode

    configure_logging()
    if quiet:
        set_quiet_mode(True)

    ctx.ensure_object(dict)
    ctx.obj["json_errors"] = json_errors
    ctx.obj["quiet"] = quiet


# ─────────────────────────────────────────────────────────────────────────────
# Topic commands
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("name")
@click.option("--content", "-c", default="", help="Topic body")
@click.option("--parent", "parent_id", help="Id of the parent topic")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def add(ctx: click.Context, name: str, content: str, parent_id: str | None, as_json: bool):
    """Create a topic (starts at version 1)."""
    from .errors import TopicKBError

    kb = _get_kb(ctx)
    if parent_id and _run(ctx, kb.topics.get_topic(parent_id)) is None:
        _handle_error(ctx, TopicKBError.topic_not_found(parent_id))

    topic = _run(
        ctx,
        kb.topics.create_topic({"name": name, "content": content, "parent_topic_id": parent_id}),
    )
    if as_json:
        output(_dump(topic), as_json=True)
    else:
        click.echo(f"Created: {topic.id}")


@cli.command()
@click.argument("topic_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def get(ctx: click.Context, topic_id: str, as_json: bool):
    """Show a topic."""
    from .errors import TopicKBError

    topic = _run(ctx, _get_kb(ctx).topics.get_topic(topic_id))
    if topic is None:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    if as_json:
        output(_dump(topic), as_json=True)
        return

    click.echo(f"# {topic.name}")
    click.echo(f"id: {topic.id}")
    click.echo(f"version: {topic.version}")
    click.echo(f"parent: {topic.parent_topic_id or '-'}")
    click.echo(f"updated: {topic.updated_at.isoformat()}")
    if topic.content:
        click.echo("")
        click.echo(topic.content)


@cli.command()
@click.argument("topic_id")
@click.option("--name", help="New name")
@click.option("--content", "-c", help="New body")
@click.option("--parent", "parent_id", help="Move under this topic")
@click.option("--detach", is_flag=True, help="Make the topic a root")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def update(
    ctx: click.Context,
    topic_id: str,
    name: str | None,
    content: str | None,
    parent_id: str | None,
    detach: bool,
    as_json: bool,
):
    """Edit a topic. Fields not given are kept; a new version is recorded."""
    from .errors import TopicKBError

    if parent_id and detach:
        _handle_error(ctx, TopicKBError.validation_error("--parent and --detach are mutually exclusive"))

    updates: dict[str, Any] = {}
    if name is not None:
        updates["name"] = name
    if content is not None:
        updates["content"] = content
    if parent_id is not None:
        updates["parent_topic_id"] = parent_id
    if detach:
        updates["parent_topic_id"] = None
    if not updates:
        _handle_error(ctx, TopicKBError.validation_error("Nothing to update: give --name, --content, --parent or --detach"))

    kb = _get_kb(ctx)
    if parent_id and _run(ctx, kb.topics.get_topic(parent_id)) is None:
        _handle_error(ctx, TopicKBError.topic_not_found(parent_id))

    topic = _run(ctx, kb.topics.update_topic(topic_id, updates))
    if topic is None:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    if as_json:
        output(_dump(topic), as_json=True)
    else:
        click.echo(f"Updated: {topic.id} (version {topic.version})")


@cli.command()
@click.argument("topic_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def delete(ctx: click.Context, topic_id: str, as_json: bool):
    """Delete a topic, its history and its resources."""
    from .errors import TopicKBError

    deleted = _run(ctx, _get_kb(ctx).delete_topic(topic_id))
    if not deleted:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    if as_json:
        output({"deleted": topic_id}, as_json=True)
    else:
        click.echo(f"Deleted: {topic_id}")


@cli.command("list")
@click.option("--parent", "parent_id", help="Only children of this topic")
@click.option("--search", "search", help="Case-insensitive match on name or content")
@click.option("--page", default=1, type=click.IntRange(min=1), help="Page number (1-based)")
@click.option("--limit", "-n", default=None, type=click.IntRange(min=1), help="Page size")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_topics(
    ctx: click.Context,
    parent_id: str | None,
    search: str | None,
    page: int,
    limit: int | None,
    as_json: bool,
):
    """List topics.

    \b
    Examples:
      tkb list
      tkb list --parent=<id>
      tkb list --search=index --limit=10 --page=2
    """
    from .config import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
    from .models import TopicFilters

    limit = min(limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
    filters = TopicFilters(parent_topic_id=parent_id, search=search, page=page, limit=limit)
    topics = _run(ctx, _get_kb(ctx).list_topics(filters))
    _echo_topics(topics, as_json, "No topics found.")


@cli.command()
@click.argument("parent_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def children(ctx: click.Context, parent_id: str, as_json: bool):
    """List the direct children of a topic."""
    topics = _run(ctx, _get_kb(ctx).topics.get_children(parent_id))
    _echo_topics(topics, as_json, "No children.")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def roots(ctx: click.Context, as_json: bool):
    """List topics without a parent."""
    topics = _run(ctx, _get_kb(ctx).topics.get_root_topics())
    _echo_topics(topics, as_json, "No topics found.")


@cli.command()
@click.argument("term")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search(ctx: click.Context, term: str, as_json: bool):
    """Find topics whose name or content contains TERM (case-insensitive)."""
    topics = _run(ctx, _get_kb(ctx).topics.search_topics(term))
    _echo_topics(topics, as_json, f"No topics match '{term}'.")


@cli.command()
@click.argument("topic_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def versions(ctx: click.Context, topic_id: str, as_json: bool):
    """Show the version history of a topic."""
    from .errors import TopicKBError

    chain = _run(ctx, _get_kb(ctx).topics.get_versions(topic_id))
    if not chain:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    if as_json:
        output(_dump(chain), as_json=True)
        return

    rows = [
        {"version": v.version, "name": v.name, "updated": v.updated_at.isoformat(timespec="seconds")}
        for v in chain
    ]
    click.echo(format_table(rows, ["version", "name", "updated"]))


@cli.command()
@click.argument("topic_id")
@click.argument("number", type=click.IntRange(min=1))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def version(ctx: click.Context, topic_id: str, number: int, as_json: bool):
    """Show one historical version of a topic."""
    from .errors import TopicKBError

    snapshot = _run(ctx, _get_kb(ctx).topics.get_version(topic_id, number))
    if snapshot is None:
        _handle_error(ctx, TopicKBError.version_not_found(topic_id, number))

    if as_json:
        output(_dump(snapshot), as_json=True)
        return

    click.echo(f"# {snapshot.name} (version {snapshot.version})")
    if snapshot.content:
        click.echo("")
        click.echo(snapshot.content)


@cli.command()
@click.argument("topic_id")
@click.option("--depth", "-d", default=None, type=click.IntRange(min=0), help="Levels to display")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tree(ctx: click.Context, topic_id: str, depth: int | None, as_json: bool):
    """Display a topic and its descendants."""
    from .config import DEFAULT_TREE_DEPTH
    from .errors import TopicKBError

    result = _run(ctx, _get_kb(ctx).get_topic_tree(topic_id))
    if result is None:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    if as_json:
        output(_dump(result), as_json=True)
    else:
        click.echo(format_tree(result, DEFAULT_TREE_DEPTH if depth is None else depth))


@cli.command()
@click.argument("from_id")
@click.argument("to_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def path(ctx: click.Context, from_id: str, to_id: str, as_json: bool):
    """Shortest path between two topics through parent/child links."""
    kb = _get_kb(ctx)
    result = _run(ctx, kb.find_shortest_path(from_id, to_id))

    if as_json:
        output(_dump(result), as_json=True)
    elif not result.exists:
        click.echo(f"No path between {from_id} and {to_id}.")
    else:
        names = []
        for topic_id in result.path:
            topic = _run(ctx, kb.topics.get_topic(topic_id))
            names.append(topic.name if topic else topic_id)
        click.echo(" -> ".join(names))
        click.echo(f"distance: {result.distance}")

    if not result.exists:
        sys.exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Resource commands
# ─────────────────────────────────────────────────────────────────────────────


RESOURCE_TYPES = ["video", "article", "pdf", "link"]


def _echo_resources(resources, as_json: bool, empty_message: str) -> None:
    if as_json:
        output(_dump(resources), as_json=True)
    elif not resources:
        click.echo(empty_message)
    else:
        rows = [
            {"id": r.id, "type": r.type.value, "topic": r.topic_id, "url": r.url}
            for r in resources
        ]
        click.echo(format_table(rows, ["id", "type", "topic", "url"], {"url": 60}))


@cli.group()
def resource():
    """Manage resources attached to topics."""


@resource.command("add")
@click.argument("topic_id")
@click.argument("url")
@click.option("--type", "resource_type", type=click.Choice(RESOURCE_TYPES), default="link")
@click.option("--description", default="", help="Short description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resource_add(
    ctx: click.Context,
    topic_id: str,
    url: str,
    resource_type: str,
    description: str,
    as_json: bool,
):
    """Attach a resource to a topic."""
    from .errors import TopicKBError

    kb = _get_kb(ctx)
    if _run(ctx, kb.topics.get_topic(topic_id)) is None:
        _handle_error(ctx, TopicKBError.topic_not_found(topic_id))

    created = _run(
        ctx,
        kb.resources.create_resource(
            {"topic_id": topic_id, "url": url, "type": resource_type, "description": description}
        ),
    )
    if as_json:
        output(_dump(created), as_json=True)
    else:
        click.echo(f"Created: {created.id}")


@resource.command("get")
@click.argument("resource_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resource_get(ctx: click.Context, resource_id: str, as_json: bool):
    """Show a resource."""
    from .errors import TopicKBError

    found = _run(ctx, _get_kb(ctx).resources.get_resource(resource_id))
    if found is None:
        _handle_error(ctx, TopicKBError.resource_not_found(resource_id))

    if as_json:
        output(_dump(found), as_json=True)
    else:
        click.echo(f"{found.type.value}: {found.url}")
        click.echo(f"topic: {found.topic_id}")
        if found.description:
            click.echo(found.description)


@resource.command("list")
@click.option("--topic", "topic_id", help="Only resources of this topic")
@click.option("--type", "resource_type", type=click.Choice(RESOURCE_TYPES), help="Only this type")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resource_list(ctx: click.Context, topic_id: str | None, resource_type: str | None, as_json: bool):
    """List resources."""
    repo = _get_kb(ctx).resources
    if topic_id:
        found = _run(ctx, repo.get_resources_by_topic(topic_id))
        if resource_type:
            found = [r for r in found if r.type.value == resource_type]
    elif resource_type:
        found = _run(ctx, repo.get_resources_by_type(resource_type))
    else:
        found = _run(ctx, repo.list_resources())
    _echo_resources(found, as_json, "No resources found.")


@resource.command("search")
@click.argument("term")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resource_search(ctx: click.Context, term: str, as_json: bool):
    """Find resources whose description or url contains TERM."""
    found = _run(ctx, _get_kb(ctx).resources.search_resources(term))
    _echo_resources(found, as_json, f"No resources match '{term}'.")


@resource.command("delete")
@click.argument("resource_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def resource_delete(ctx: click.Context, resource_id: str, as_json: bool):
    """Delete a resource."""
    from .errors import TopicKBError

    if not _run(ctx, _get_kb(ctx).resources.delete_resource(resource_id)):
        _handle_error(ctx, TopicKBError.resource_not_found(resource_id))

    if as_json:
        output({"deleted": resource_id}, as_json=True)
    else:
        click.echo(f"Deleted: {resource_id}")


def main():
    cli()


if __name__ == "__main__":
    main()
