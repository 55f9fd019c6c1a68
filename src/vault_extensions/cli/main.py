"""Main CLI entry point for vault-extensions."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, get_args

import typer

from vault_extensions.cli.commands import extensions
from vault_extensions.config import ConflictPolicy, get_settings, update_global_settings
from vault_extensions.core.logging.logger import configure_logging
from vault_extensions.ui.console import console

app = typer.Typer(
    help="Browse, install and update vault extensions from the extension catalog.",
    add_completion=False,
)

app.command("list")(extensions.list_command)
app.command("search")(extensions.search_command)
app.command("featured")(extensions.featured_command)
app.command("categories")(extensions.categories_command)
app.command("install")(extensions.install_command)
app.command("remove")(extensions.remove_command)
app.command("update")(extensions.update_command)
app.command("outdated")(extensions.outdated_command)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option("--config", help="Path to a vault-extensions.yaml configuration file."),
    ] = None,
    catalog_url: Annotated[
        str | None,
        typer.Option("--catalog-url", help="Override the catalog endpoint for this invocation."),
    ] = None,
    content_root: Annotated[
        Path | None,
        typer.Option("--content-root", help="Vault directory extensions are installed into."),
    ] = None,
    conflicts: Annotated[
        str | None,
        typer.Option(
            "--conflicts",
            help="How to handle files that already exist: prompt, override, rename or cancel.",
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit", is_eager=True),
    ] = False,
) -> None:
    """vault-extensions - manage extensions installed into a vault."""
    if version:
        from vault_extensions import __version__

        console.print(f"vault-extensions v{__version__}")
        raise typer.Exit()

    if conflicts is not None and conflicts not in get_args(ConflictPolicy):
        typer.echo(f"Unknown conflict policy: {conflicts}", err=True)
        raise typer.Exit(1)

    try:
        settings = get_settings(config)
    except FileNotFoundError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1) from exc

    extension_updates: dict[str, object] = {}
    if catalog_url:
        extension_updates["catalog_url"] = catalog_url
    if conflicts:
        extension_updates["conflict_policy"] = conflicts

    updates: dict[str, object] = {}
    if extension_updates:
        updates["extensions"] = settings.extensions.model_copy(update=extension_updates)
    if content_root is not None:
        updates["content_root"] = str(content_root)
    if updates:
        settings = settings.model_copy(update=updates)
        update_global_settings(settings)

    configure_logging(settings.logger)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def run() -> None:
    app()
