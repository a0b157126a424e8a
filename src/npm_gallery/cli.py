"""CLI entry point for NPM Gallery.

This module provides a command-line front end over the ServiceContainer,
mainly for trying sources and debugging configuration.

Commands:
    detect: Show project types found in the given folders
    search: Search packages on the current source
    info: Show package details
    versions: List published versions
    install-command: Print the install command for a package
    snippet: Print a manifest snippet (Maven, NuGet)
    sources: Show configured sources and which are registered

Example:
    npm-gallery search react --size 5
    npm-gallery --project-type maven snippet com.google.guava:guava --format gradle
    npm-gallery --source npms-io info lodash
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from npm_gallery import __version__
from npm_gallery.config import load_config
from npm_gallery.constants import DEFAULT_SEARCH_SIZE
from npm_gallery.core import ServiceContainer
from npm_gallery.exceptions import GalleryError
from npm_gallery.logging import setup_logging
from npm_gallery.models import (
    CopyOptions,
    InstallOptions,
    PackageInfo,
    ProjectType,
    SearchOptions,
    SourceType,
)
from npm_gallery.sources.detector import ProjectDetector
from npm_gallery.sources.source_config import DEFAULT_SOURCE_CONFIG

T = TypeVar("T")

PROJECT_TYPE_CHOICE = click.Choice([t.value for t in ProjectType])
SOURCE_TYPE_CHOICE = click.Choice([s.value for s in SourceType])


def _success(msg: str) -> str:
    """Format success message with green checkmark."""
    return click.style("✓", fg="green") + " " + msg


def _error(msg: str) -> str:
    """Format error message with red X."""
    return click.style("✗", fg="red") + " " + msg


def _info(msg: str) -> str:
    """Format info message with blue arrow."""
    return click.style("→", fg="blue") + " " + msg


def _run(ctx: click.Context, action: Callable[[ServiceContainer], Awaitable[T]]) -> T:
    """Build a container, apply global overrides, run `action` and close.

    Exits with status 1 on any GalleryError.
    """
    opts: dict[str, Any] = ctx.obj
    verbose = opts["verbose"]

    async def run() -> T:
        container = ServiceContainer(opts["workspace"], load_config(opts["config"]))
        try:
            await container.initialize()
            if opts["project_type"]:
                container.set_project_type(ProjectType(opts["project_type"]))
            if opts["source"]:
                container.set_selected_source(SourceType(opts["source"]))
            return await action(container)
        finally:
            await container.close()

    try:
        return asyncio.run(run())
    except GalleryError as e:
        if verbose:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        click.echo(_error(str(e)), err=True)
        sys.exit(1)


def _format_package(package: PackageInfo) -> str:
    line = click.style(package.name, bold=True)
    if package.version:
        line += f" {package.version}"
    if package.exact_match:
        line += click.style(" (exact match)", fg="green")
    if package.description:
        line += f"\n    {package.description}"
    return line


@click.group()
@click.version_option(version=__version__, prog_name="npm-gallery")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to .npmgallery.yaml (searched upwards from cwd by default)",
)
@click.option(
    "--workspace",
    "-w",
    "workspace",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Workspace root to detect (repeatable, default: cwd)",
)
@click.option("--project-type", type=PROJECT_TYPE_CHOICE, default=None, help="Force the ecosystem")
@click.option("--source", type=SOURCE_TYPE_CHOICE, default=None, help="Force a single source")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_path: Path | None,
    workspace: tuple[Path, ...],
    project_type: str | None,
    source: str | None,
) -> None:
    """NPM Gallery - package metadata from npm, Maven Central and NuGet."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, include_timestamp=verbose)
    ctx.ensure_object(dict)
    ctx.obj.update(
        verbose=verbose,
        config=config_path,
        workspace=list(workspace) or [Path.cwd()],
        project_type=project_type,
        source=source,
    )


@cli.command()
@click.argument(
    "paths", nargs=-1, type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.pass_context
def detect(ctx: click.Context, paths: tuple[Path, ...]) -> None:
    """Detect project types in PATHS (default: the workspace roots)."""
    roots = list(paths) or ctx.obj["workspace"]
    detected = asyncio.run(ProjectDetector(roots).detect_projects())

    if not detected.projects:
        click.echo(_info("No projects detected"))
        return

    for project in detected.projects:
        click.echo(_success(f"{project.type.display_name}: {project.config_file}"))
    click.echo()
    click.echo(f"Primary: {click.style(detected.primary.value, bold=True)}")


@cli.command()
@click.argument("query")
@click.option(
    "--size", "-n", default=DEFAULT_SEARCH_SIZE, show_default=True, type=click.IntRange(min=1)
)
@click.option("--sort", "sort_by", default="relevance", show_default=True)
@click.option("--from", "from_", default=0, show_default=True, type=click.IntRange(min=0))
@click.option("--exact", is_flag=True, help="Surface an exact name match first")
@click.pass_context
def search(
    ctx: click.Context, query: str, size: int, sort_by: str, from_: int, exact: bool
) -> None:
    """Search packages matching QUERY."""
    options = SearchOptions(
        query=query,
        size=size,
        sort_by=sort_by,
        from_=from_,
        exact_name=query if exact else None,
    )
    result = _run(ctx, lambda c: c.search.search(options))

    for package in result.packages:
        click.echo(_format_package(package))
    click.echo()
    click.echo(click.style(f"{len(result.packages)} of {result.total} packages", fg="cyan"))


@cli.command()
@click.argument("name")
@click.option("--version", "version", default=None, help="Specific version")
@click.pass_context
def info(ctx: click.Context, name: str, version: str | None) -> None:
    """Show details for package NAME."""
    details = _run(ctx, lambda c: c.packages.get_package_details(name, version))

    click.echo(_format_package(details))
    if details.license:
        click.echo(f"  License:   {details.license}")
    if details.homepage:
        click.echo(f"  Homepage:  {details.homepage}")
    if details.downloads is not None:
        click.echo(f"  Downloads: {details.downloads:,}")
    if details.dependencies:
        click.echo(f"  Dependencies: {len(details.dependencies)}")
    if details.security is not None and details.security.summary.total:
        summary = details.security.summary
        click.echo(
            click.style(
                f"  Vulnerabilities: {summary.total} "
                f"(critical {summary.critical}, high {summary.high})",
                fg="red",
            )
        )


@cli.command()
@click.argument("name")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def versions(ctx: click.Context, name: str, limit: int) -> None:
    """List published versions of NAME, newest first."""
    items = _run(ctx, lambda c: c.packages.get_versions(name))

    for item in items[:limit]:
        line = item.version
        if item.tag:
            line += click.style(f" [{item.tag}]", fg="green")
        if item.published_at:
            line += f"  {item.published_at}"
        if item.deprecated:
            line += click.style("  deprecated", fg="yellow")
        click.echo(line)


@cli.command("install-command")
@click.argument("name")
@click.option("--dev", is_flag=True, help="Install as a dev dependency")
@click.option("--exact", is_flag=True, help="Pin the exact version")
@click.option("--version", "version", default=None)
@click.option("--manager", type=click.Choice(["npm", "yarn", "pnpm"]), default=None)
@click.pass_context
def install_command(
    ctx: click.Context,
    name: str,
    dev: bool,
    exact: bool,
    version: str | None,
    manager: str | None,
) -> None:
    """Print the command that installs NAME."""
    options = InstallOptions(
        version=version,
        type="devDependencies" if dev else "dependencies",
        exact=exact,
        package_manager=manager,
    )

    async def action(container: ServiceContainer) -> Any:
        return container.install.get_install_command(name, options)

    result = _run(ctx, action)
    if not result.success:
        click.echo(_error(result.message), err=True)
        sys.exit(1)
    click.echo(result.command)


@cli.command()
@click.argument("name")
@click.option("--format", "format_", default=None, help="Snippet format (e.g. gradle, cpm)")
@click.option("--version", "version", default=None)
@click.option(
    "--scope",
    type=click.Choice(["compile", "test", "provided", "runtime", "system"]),
    default=None,
)
@click.pass_context
def snippet(
    ctx: click.Context,
    name: str,
    format_: str | None,
    version: str | None,
    scope: str | None,
) -> None:
    """Print a manifest snippet declaring NAME."""
    options = CopyOptions(version=version, scope=scope, format=format_)

    async def action(container: ServiceContainer) -> Any:
        return container.install.get_copy_snippet(name, options)

    result = _run(ctx, action)
    if not result.success:
        click.echo(_error(result.message), err=True)
        sys.exit(1)
    click.echo(result.command)


@cli.command()
@click.pass_context
def sources(ctx: click.Context) -> None:
    """Show configured sources per project type."""

    async def action(container: ServiceContainer) -> ProjectType:
        current = container.get_current_project_type()
        for project_type in DEFAULT_SOURCE_CONFIG:
            configured = container.config_manager.get_all_sources(project_type)
            marker = "*" if project_type is current else " "
            click.echo(click.style(f"{marker} {project_type.display_name}", bold=True))
            for source_type in configured:
                if container.registry.has_adapter(source_type):
                    click.echo("    " + _success(source_type.value))
                else:
                    click.echo("    " + _error(f"{source_type.value} (not available)"))
        return current

    current = _run(ctx, action)
    click.echo()
    click.echo(_info(f"Current project type: {current.value}"))


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
