"""Command-line interface for assetkit."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_FILENAME, ConfigError, load_config
from .context import WebContext
from .errors import AssetkitError, ResourceNotFoundError
from .log import setup_logging
from .manager import AssetsManager
from .models import Scope, SyncAction, SyncResult

app = typer.Typer(help="Web asset conventions, WebJar extraction and incremental public directory sync")
console = Console()

_INIT_TEMPLATE = """# assetkit configuration

[project]
root = "."
target = "{target}"

[settings]
modules_lib = "lib"

[scopes.main]
# WebJar archives or exploded directories; globs are allowed.
classpath = [
{classpath}]
include = ["*"]
exclude = []

[scopes.test]
classpath = []
include = []
"""


def _load_manager(config: Path | None) -> AssetsManager:
    config_obj = load_config(config)
    context = WebContext("assetkit", max_workers=config_obj.settings.max_workers)
    return AssetsManager(config_obj, context=context)


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Check write access to the target directory.")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{message}[/red]")
        if "does not exist" in message:
            console.print("[yellow]Use 'assetkit init --config <path>' to create a configuration file.[/yellow]")
        elif "Expected to find" in message:
            console.print(
                "[yellow]Make sure you pointed to the directory containing the config file, or to the file itself.[/yellow]"
            )
        raise typer.Exit(code=1)
    if isinstance(exc, ResourceNotFoundError):
        console.print(f"[red]{exc}[/red]")
        console.print("[yellow]Run 'assetkit webjars' to see what is available on the classpath.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, AssetkitError):
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    raise exc


def _format_sync_results(results: Iterable[SyncResult], *, show_skipped: bool) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Target")
    table.add_column("Action", no_wrap=True, min_width=7)
    table.add_column("Source", overflow="fold")

    action_styles = {
        SyncAction.COPIED: "green",
        SyncAction.UPDATED: "cyan",
        SyncAction.SKIPPED: "white",
        SyncAction.REMOVED: "yellow",
    }

    for result in results:
        if result.action is SyncAction.SKIPPED and not show_skipped:
            continue
        style = action_styles[result.action]
        table.add_row(
            result.target.as_posix(),
            f"[{style}]{result.action.value}[/{style}]",
            result.source or "",
        )

    console.print(table)


def _format_web_jars(discovered: Iterable[str], selected: Iterable[str]) -> None:
    chosen = set(selected)
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("WebJar")
    table.add_column("Selected")

    for module in discovered:
        table.add_row(module, "[green]yes[/green]" if module in chosen else "[yellow]no[/yellow]")

    console.print(table)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every file that is copied or skipped"),
) -> None:
    """Configure logging before running a command."""

    setup_logging(verbose)


@app.command()
def init(
    config: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILENAME),
        "--config",
        "-c",
        help="Path to write the configuration file",
        dir_okay=False,
        writable=True,
    ),
    target: str = typer.Option("target", "--target", help="Build output directory to include in the template"),
    classpath: list[str] = typer.Option(None, "--classpath", help="WebJar archive or directory (repeatable)"),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config if present"),
) -> None:
    """Create a starter assetkit configuration file."""

    if config.exists() and not force:
        console.print(f"[red]Configuration '{config}' already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)

    entries = "".join(f'  "{entry}",\n' for entry in (classpath or ["lib/*.jar"]))
    config.parent.mkdir(parents=True, exist_ok=True)
    config.write_text(_INIT_TEMPLATE.format(target=target, classpath=entries))
    console.print(f"[green]Created '{config}'.[/green]")


@app.command()
def webjars(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to assetkit.toml"),
    scope: Scope = typer.Option(Scope.MAIN, "--scope", "-s", help="Asset scope"),
    include: list[str] = typer.Option(None, "--include", "-i", help="Include WebJars matching the pattern"),
    exclude: list[str] = typer.Option(None, "--exclude", "-e", help="Exclude WebJars matching the pattern"),
) -> None:
    """List the WebJars discovered on the classpath and whether they are selected."""

    try:
        with _load_manager(config) as manager:
            discovered = manager.discover_web_jars(scope)
            selected = manager.selected_web_jars(scope, includes=include or None, excludes=exclude or None)
            _format_web_jars(discovered, selected)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def extract(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to assetkit.toml"),
    scope: Scope = typer.Option(Scope.MAIN, "--scope", "-s", help="Asset scope"),
    include: list[str] = typer.Option(None, "--include", "-i", help="Include WebJars matching the pattern"),
    exclude: list[str] = typer.Option(None, "--exclude", "-e", help="Exclude WebJars matching the pattern"),
    target: Path | None = typer.Option(None, "--target", "-t", help="Override the extraction directory"),
) -> None:
    """Extract WebJars into the web modules directory."""

    try:
        with _load_manager(config) as manager:
            files = manager.web_jars(scope, includes=include or None, excludes=exclude or None, target=target)
            destination = target or manager.layout.webjars_directory(scope)
            console.print(f"[green]{len(files)} file(s) in '{destination}'.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command("node-modules")
def node_modules(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to assetkit.toml"),
    scope: Scope = typer.Option(Scope.MAIN, "--scope", "-s", help="Asset scope"),
    target: Path | None = typer.Option(None, "--target", "-t", help="Override the extraction directory"),
) -> None:
    """Extract WebJars that ship a package.json as node modules."""

    try:
        with _load_manager(config) as manager:
            files = manager.node_modules(scope, target=target)
            destination = target or manager.layout.node_webjars_directory(scope)
            console.print(f"[green]{len(files)} file(s) in '{destination}'.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def assets(
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to assetkit.toml"),
    scope: Scope = typer.Option(Scope.MAIN, "--scope", "-s", help="Asset scope"),
    show_skipped: bool = typer.Option(False, "--show-skipped", help="Also list files that were already up to date"),
) -> None:
    """Synchronize sources, resources and WebJars into the public directory."""

    try:
        with _load_manager(config) as manager:
            results = manager.assets(scope)
            _format_sync_results(results, show_skipped=show_skipped)
            console.print(f"[green]Public assets ready in '{manager.layout.public(scope)}'.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command("copy-resource")
def copy_resource(
    name: str = typer.Argument(..., help="Resource path on the classpath"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to assetkit.toml"),
    scope: Scope = typer.Option(Scope.MAIN, "--scope", "-s", help="Asset scope"),
    to: Path | None = typer.Option(None, "--to", help="Directory to copy the resource into"),
) -> None:
    """Copy a single classpath resource, skipping the copy when it is up to date."""

    try:
        with _load_manager(config) as manager:
            destination = manager.copy_resource(name, to, scope)
            console.print(f"[green]Copied to '{destination}'.[/green]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
