"""Command-line entry point for the Gerrit monitor."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import orjson
import typer

from gerrit_monitor.config import AppSettings, load_settings
from gerrit_monitor.description import Description
from gerrit_monitor.fetchers import accounts
from gerrit_monitor.fetchers.changes import flatten_query_results
from gerrit_monitor.gerrit_client import GerritClient, GerritError, is_framed, parse_reply
from gerrit_monitor.models import Account, Category
from gerrit_monitor.monitor import AttentionMonitor
from gerrit_monitor.search import SearchResult

if TYPE_CHECKING:
    from gerrit_monitor.search import CategoryMap

app = typer.Typer(add_completion=False, help="Show the Gerrit CLs that need your attention.")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable verbose logging output.")] = False,
) -> None:
    """Configure logging before executing a sub-command."""
    _configure_logging(verbose)


@app.command()
def status(
    host: Annotated[
        list[str] | None,
        typer.Option("--host", help="Query this host instead of the configured ones."),
    ] = None,
    detailed: Annotated[
        bool,
        typer.Option("--detailed", help="Request commit messages and detailed accounts."),
    ] = False,
    show_all: Annotated[
        bool,
        typer.Option("--all", help="Also list CLs that need no attention."),
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the category map as JSON.")] = False,
) -> None:
    """Fetch open CLs from Gerrit and group them by the attention they need."""
    try:
        settings = _patched_settings(load_settings(), hosts=host, detailed=detailed)
        monitor = AttentionMonitor(settings)
    except ValueError as exc:
        _handle_settings_error(exc)
    results = asyncio.run(monitor.run())
    _print_category_map(results.category_map(), show_all=show_all, as_json=as_json)
    if monitor.failed_hosts:
        typer.secho(
            f"Failed to query {len(monitor.failed_hosts)} host(s): {', '.join(monitor.failed_hosts)}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)


@app.command()
def classify(
    path: Annotated[Path, typer.Argument(help="Saved reply of a /changes/ query.")],
    host: Annotated[str, typer.Option("--host", help="Gerrit host the reply came from.")],
    account_id: Annotated[int, typer.Option("--account-id", help="Account to categorize for.")],
    show_all: Annotated[
        bool,
        typer.Option("--all", help="Also list CLs that need no attention."),
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the category map as JSON.")] = False,
) -> None:
    """Categorize CLs from a saved Gerrit reply without contacting the server."""
    try:
        text = path.read_text(encoding="utf-8")
        payload = parse_reply(text) if is_framed(text) else orjson.loads(text)
        changes = flatten_query_results(payload)
    except (OSError, orjson.JSONDecodeError, GerritError) as exc:
        typer.secho(f"Failed to read changes: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    result = SearchResult.wrap(host.rstrip("/"), Account(id=account_id), changes)
    _print_category_map(result.category_map(), show_all=show_all, as_json=as_json)


@app.command()
def describe(
    path: Annotated[Path, typer.Argument(help="File holding a commit message.")],
) -> None:
    """Split a commit message into its body and trailing attributes."""
    try:
        description = Description(path.read_text(encoding="utf-8"))
    except OSError as exc:
        typer.secho(f"Failed to read description: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(description.message)
    if description.attributes:
        typer.echo("")
        typer.echo("Attributes:")
        for key, value in description.attributes:
            typer.echo(f"  {key}: {value.strip()}")


@app.command()
def doctor() -> None:
    """Validate configuration and verify the account on every Gerrit host."""
    try:
        settings = load_settings()
        hosts = settings.require_hosts()
    except ValueError as exc:
        _handle_settings_error(exc)
    typer.echo(f"Loaded configuration for {len(hosts)} host(s)")
    failures = asyncio.run(_doctor(settings, hosts))
    if failures:
        raise typer.Exit(code=1)


async def _doctor(settings: AppSettings, hosts: list[str]) -> int:
    failures = 0
    for host in hosts:
        try:
            async with GerritClient(settings, host) as client:
                account = await accounts.fetch_account(client)
        except Exception as exc:  # pragma: no cover - direct user feedback
            typer.echo(f"{host}: failed ({exc})")
            failures += 1
            continue
        typer.echo(f"{host}: authenticated as {account.name or 'unknown'} ({account.id})")
    return failures


def _print_category_map(categories: CategoryMap, *, show_all: bool, as_json: bool) -> None:
    ordered = [category for category in Category if category in categories]
    if not show_all:
        ordered = [category for category in ordered if category is not Category.NONE]
    if as_json:
        payload: dict[str, list[dict[str, Any]]] = {
            category.value: [
                {
                    "url": changelist.url,
                    "project": changelist.project,
                    "number": changelist.number,
                    "subject": changelist.subject,
                    "size": changelist.get_size_category().value,
                }
                for changelist in categories[category]
            ]
            for category in ordered
        }
        typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())
        return
    if not ordered:
        typer.echo("Nothing needs your attention.")
        return
    for category in ordered:
        changelists = categories[category]
        typer.echo(f"{category.value} ({len(changelists)})")
        for changelist in changelists:
            typer.echo(f"  {changelist.url} [{changelist.get_size_category().value}] {changelist.subject or ''}".rstrip())


def _patched_settings(settings: AppSettings, *, hosts: list[str] | None, detailed: bool) -> AppSettings:
    updates: dict[str, object] = {}
    if hosts:
        updates["hosts"] = hosts
    if detailed:
        updates["detailed"] = True
    if updates:
        # Re-validate so command-line hosts are normalized like configured ones.
        settings = AppSettings.model_validate({**settings.model_dump(), **updates})
    return settings


def _handle_settings_error(exc: ValueError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
