"""remote-modules command line."""

from __future__ import annotations

import contextlib
from pathlib import Path

import click
from rich.markup import escape
from rich.table import Table

from .console import console
from .console import error_console
from .errors import ConfigurationError
from .errors import ModuleLoadError
from .logging_setup import init_json_logging
from .module_resolution.cache_store import LocalCacheStore
from .module_resolution.fetcher import FetchOutcome
from .module_resolution.identifier import ModuleIdentifier
from .module_resolution.paths import DESCRIPTOR_NAME
from .paths import create_module_fetcher
from .paths import create_module_resolver
from .settings import RepositoryConfig
from .settings import load_config

_OUTCOME_STYLES = {
    FetchOutcome.CACHED: "dim",
    FetchOutcome.FETCHED: "green",
    FetchOutcome.NOT_FOUND: "yellow",
    FetchOutcome.TRANSPORT_ERROR: "red",
}


def _format_size(size_bytes: int) -> str:
    """Format bytes as human-readable size."""
    size_float = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB"]:
        if size_float < 1024:
            return f"{size_float:.1f} {unit}"
        size_float /= 1024
    return f"{size_float:.1f} TB"


def _parse_identifier(value: str) -> ModuleIdentifier:
    try:
        return ModuleIdentifier.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="MODULE") from e


def _load_config(ctx: click.Context) -> RepositoryConfig:
    """Load configuration once per invocation; exit 2 on configuration errors."""
    options = ctx.find_root().obj
    if options.get("config") is None:
        try:
            options["config"] = load_config(options["settings_file"], **options["overrides"])
        except ConfigurationError as e:
            error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
            ctx.exit(2)
    return options["config"]


@click.group(invoke_without_command=True)
@click.version_option(package_name="remote-modules")
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="settings.yaml with a remote_modules: section",
)
@click.option("--cache-root", type=click.Path(file_okay=False, path_type=Path), help="Module cache directory")
@click.option("--repository-url", help="Repository root URL")
@click.option("--repository-version", help="Repository version tag (e.g. trunk)")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path), help="Write JSONL logs to this file")
@click.option("--verbose", "-v", is_flag=True, help="Debug-level logging")
@click.pass_context
def cli(
    ctx: click.Context,
    settings_file: Path | None,
    cache_root: Path | None,
    repository_url: str | None,
    repository_version: str | None,
    log_file: Path | None,
    verbose: bool,
):
    """Resolve modules locally, fetching them from the remote repository on a miss."""
    if log_file or verbose:
        init_json_logging(log_file, "DEBUG" if verbose else None)

    ctx.obj = {
        "settings_file": settings_file,
        "overrides": {"cache_root": cache_root, "root_url": repository_url, "version": repository_version},
        "config": None,
    }

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("module")
@click.pass_context
def resolve(ctx: click.Context, module: str):
    """Resolve MODULE (name[:slot]), fetching it if it is not cached."""
    identifier = _parse_identifier(module)
    config = _load_config(ctx)
    resolver = create_module_resolver(config)

    try:
        descriptor = resolver.resolve(identifier)
    except ModuleLoadError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)
    finally:
        resolver.fetcher.close()

    if descriptor is None:
        error_console.print(f"[yellow]Module not found:[/yellow] {escape(str(identifier))}")
        ctx.exit(1)

    console.print(f"[bold]{escape(str(identifier))}[/bold]")
    if descriptor.descriptor_path is not None:
        console.print(f"[dim]Descriptor: {escape(str(descriptor.descriptor_path))}[/dim]")

    if not descriptor.resource_paths:
        console.print("[dim]No resources declared.[/dim]")
        return

    missing = set(descriptor.missing_resources)
    table = Table(title="Resources")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Resource", style="cyan")
    table.add_column("Status")
    for index, resource in enumerate(descriptor.resource_paths, start=1):
        status = "[yellow]missing[/yellow]" if resource in missing else "[green]present[/green]"
        table.add_row(str(index), escape(resource), status)
    console.print(table)


@cli.command()
@click.argument("module")
@click.pass_context
def fetch(ctx: click.Context, module: str):
    """Fetch MODULE (name[:slot]) into the cache and report each artifact."""
    identifier = _parse_identifier(module)
    config = _load_config(ctx)
    fetcher = create_module_fetcher(config)

    try:
        report = fetcher.fetch(identifier)
    except ModuleLoadError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)
    finally:
        fetcher.close()

    table = Table(title=f"Fetch {escape(str(identifier))}")
    table.add_column("Artifact", style="cyan")
    table.add_column("Outcome")
    for artifact in report.artifacts:
        style = _OUTCOME_STYLES[artifact.outcome]
        table.add_row(escape(artifact.name), f"[{style}]{artifact.outcome.value}[/{style}]")
    console.print(table)

    if not report.found:
        error_console.print(f"[yellow]Module not found in repository:[/yellow] {escape(str(identifier))}")
        ctx.exit(1)

    console.print(f"\n[bold]Fetched:[/bold] {len(report.fetched)}  [bold]Skipped:[/bold] {len(report.skipped)}")


@cli.group(invoke_without_command=True)
@click.pass_context
def cache(ctx: click.Context):
    """Inspect the local module cache."""
    if ctx.invoked_subcommand is None:
        click.echo("\n" + ctx.get_help())
        ctx.exit()


@cache.command(name="path")
@click.pass_context
def cache_path(ctx: click.Context):
    """Show the cache directory path."""
    cache_root = _load_config(ctx).cache_root
    console.print(f"[cyan]{escape(str(cache_root))}[/cyan]")

    if cache_root.exists():
        console.print("[dim]Status: exists[/dim]")
    else:
        console.print("[dim]Status: not created yet[/dim]")


@cache.command(name="list")
@click.pass_context
def cache_list(ctx: click.Context):
    """List cached modules with file counts and sizes."""
    store = LocalCacheStore(_load_config(ctx).cache_root)
    module_dirs = store.iter_modules(DESCRIPTOR_NAME)

    if not module_dirs:
        console.print("[dim]No cached modules found.[/dim]")
        console.print(f"[dim]Path: {escape(str(store.cache_root))}[/dim]")
        return

    table = Table(title="Cached Modules")
    table.add_column("Module", style="cyan")
    table.add_column("Slot", style="green")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")

    total_size = 0
    for module_dir in module_dirs:
        parts = module_dir.relative_to(store.cache_root).parts
        files = [f for f in module_dir.rglob("*") if f.is_file()]
        size = 0
        for f in files:
            with contextlib.suppress(OSError):
                size += f.stat().st_size
        total_size += size
        table.add_row(escape(".".join(parts[:-1])), escape(parts[-1]), str(len(files)), _format_size(size))

    console.print(table)
    console.print(f"\n[bold]Total:[/bold] {len(module_dirs)} modules, {_format_size(total_size)}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
