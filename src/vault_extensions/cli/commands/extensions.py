"""CLI commands for browsing and managing extensions."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, AsyncIterator

import httpx
import typer
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from vault_extensions.config import Settings, get_settings
from vault_extensions.core.exceptions import CatalogUnavailableError
from vault_extensions.extensions.catalog import ExtensionCatalog
from vault_extensions.extensions.conflicts import ConflictResolver, resolver_for_policy
from vault_extensions.extensions.content_store import LocalContentStore
from vault_extensions.extensions.downloader import HttpDownloader
from vault_extensions.extensions.manager import ExtensionManager
from vault_extensions.extensions.tracking import TrackingStore
from vault_extensions.extensions.types import (
    EXTENSION_KINDS,
    BrowseFilter,
    InstallationOutcome,
    MarketplaceExtension,
)
from vault_extensions.extensions.versions import is_newer_version
from vault_extensions.ui.conflict_prompt import ConsoleConflictResolver
from vault_extensions.ui.console import console
from vault_extensions.ui.notifier import ConsoleNotifier


@dataclass
class _Services:
    catalog: ExtensionCatalog
    manager: ExtensionManager


def _create_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.extensions.request_timeout_seconds,
        follow_redirects=True,
    )


def _conflict_resolver(settings: Settings) -> ConflictResolver:
    if settings.extensions.conflict_policy == "prompt":
        return ConsoleConflictResolver()
    return resolver_for_policy(settings.extensions.conflict_policy)


@asynccontextmanager
async def _services(settings: Settings) -> AsyncIterator[_Services]:
    notifier = ConsoleNotifier()
    async with _create_http_client(settings) as client:
        downloader = HttpDownloader(
            client=client, timeout=settings.extensions.request_timeout_seconds
        )
        content_store = LocalContentStore(settings.content_root_path)
        manager = ExtensionManager(
            content_store,
            TrackingStore(content_store, settings.extensions.tracking_file),
            downloader,
            _conflict_resolver(settings),
            notifier=notifier,
            max_dependency_depth=settings.extensions.max_dependency_depth,
            restore_files_on_failed_update=settings.extensions.restore_files_on_failed_update,
        )
        catalog = ExtensionCatalog(
            settings.extensions.catalog_url,
            downloader=downloader,
            ttl_seconds=settings.extensions.cache_ttl_seconds,
            notifier=notifier,
        )
        await manager.initialize()
        try:
            yield _Services(catalog=catalog, manager=manager)
        finally:
            await manager.cleanup()


def _print_section_header(title: str, color: str = "blue") -> None:
    width = console.size.width
    left = f"[{color}]▎[/{color}][dim {color}]▶[/dim {color}] [{color}]{title}[/{color}]"
    left_text = Text.from_markup(left)
    separator_count = max(1, width - left_text.cell_len - 1)

    combined = Text()
    combined.append_text(left_text)
    combined.append(" ")
    combined.append("─" * separator_count, style="dim")

    console.print()
    console.print(combined)
    console.print()


def _print_hint(message: str) -> None:
    console.print(f"[dim]▎• {message}[/dim]")


def _fail(message: str) -> typer.Exit:
    typer.echo(message, err=True)
    return typer.Exit(1)


def _print_extensions(
    extensions: list[MarketplaceExtension], installed: dict[str, str]
) -> None:
    if not extensions:
        console.print("[yellow]No extensions found.[/yellow]")
        return

    table = Table(show_header=True, box=None)
    table.add_column("ID", style="cyan", header_style="bold bright_white")
    table.add_column("Kind", style="white", header_style="bold bright_white")
    table.add_column("Version", style="white", header_style="bold bright_white")
    table.add_column("Installed", style="green", header_style="bold bright_white")
    table.add_column("Description", style="dim", header_style="bold bright_white")

    for extension in extensions:
        installed_version = installed.get(extension.unique_id)
        if installed_version is None:
            status = ""
        elif is_newer_version(extension.semantic_version, installed_version):
            status = f"[yellow]{escape(installed_version)} (update)[/yellow]"
        else:
            status = escape(installed_version)
        table.add_row(
            escape(extension.unique_id),
            escape(extension.kind),
            escape(extension.semantic_version),
            status,
            escape(extension.brief_summary),
        )

    console.print(table)


def _installed_versions(manager: ExtensionManager) -> dict[str, str]:
    return {
        extension_id: record.installed_version
        for extension_id, record in manager.get_installed_extensions().items()
    }


def _print_installed(outcome: InstallationOutcome) -> None:
    if not outcome.operation_succeeded:
        raise _fail(outcome.error_details or f"Failed to install {outcome.affected_extension_id}")
    console.print(f"[green]Installed extension: {escape(outcome.affected_extension_id)}[/green]")
    for path in outcome.modified_file_paths:
        console.print(f"[dim]▎• {escape(path)}[/dim]")


def list_command() -> None:
    """List installed extensions."""
    settings = get_settings()

    async def _run() -> None:
        async with _services(settings) as services:
            records = services.manager.get_installed_extensions()
            _print_section_header("Installed Extensions", color="blue")
            if not records:
                console.print("[yellow]No extensions installed.[/yellow]")
                _print_hint("Install with: vault-extensions install <id>")
                return

            table = Table(show_header=True, box=None)
            table.add_column("ID", style="cyan", header_style="bold bright_white")
            table.add_column("Version", style="white", header_style="bold bright_white")
            table.add_column("Installed", style="green", header_style="bold bright_white")
            table.add_column("Files", justify="right", style="dim", header_style="bold bright_white")
            table.add_column("Depends on", style="dim", header_style="bold bright_white")
            for record in records.values():
                table.add_row(
                    escape(record.extension_id),
                    escape(record.installed_version),
                    escape(record.installation_timestamp),
                    str(len(record.installed_file_paths)),
                    escape(", ".join(record.linked_dependencies)),
                )
            console.print(table)

    asyncio.run(_run())


def search_command(
    query: Annotated[
        str | None,
        typer.Argument(help="Text matched against titles, descriptions, tags and categories.", show_default=False),
    ] = None,
    kind: Annotated[
        str | None,
        typer.Option("--kind", "-k", help=f"Only show one kind ({', '.join(EXTENSION_KINDS)})."),
    ] = None,
    category: Annotated[
        list[str] | None,
        typer.Option("--category", "-c", help="Only show extensions in these categories."),
    ] = None,
    installed_only: Annotated[
        bool,
        typer.Option("--installed", help="Only show installed extensions."),
    ] = False,
) -> None:
    """Search the extension catalog."""
    if kind is not None and kind not in EXTENSION_KINDS:
        raise _fail(f"Unknown extension kind: {kind}")

    settings = get_settings()
    criteria = BrowseFilter(
        text_query=query,
        filter_by_kind=kind,  # type: ignore[arg-type]
        filter_by_categories=tuple(category or ()),
        show_only_installed=installed_only,
    )

    async def _run() -> None:
        async with _services(settings) as services:
            installed = _installed_versions(services.manager)
            try:
                results = await services.catalog.search_extensions(
                    criteria, installed_ids=installed.keys()
                )
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            _print_section_header("Catalog Extensions", color="blue")
            _print_extensions(results, installed)

    asyncio.run(_run())


def featured_command() -> None:
    """Show featured extensions."""
    settings = get_settings()

    async def _run() -> None:
        async with _services(settings) as services:
            try:
                featured = await services.catalog.get_featured()
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            _print_section_header("Featured Extensions", color="blue")
            _print_extensions(featured, _installed_versions(services.manager))

    asyncio.run(_run())


def categories_command() -> None:
    """List catalog categories."""
    settings = get_settings()

    async def _run() -> None:
        async with _services(settings) as services:
            try:
                categories = await services.catalog.get_categories()
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            _print_section_header("Categories", color="blue")
            if not categories:
                console.print("[yellow]No categories in catalog.[/yellow]")
                return
            for name in categories:
                console.print(f"[cyan]{escape(name)}[/cyan]")

    asyncio.run(_run())


def install_command(
    extension_id: Annotated[str, typer.Argument(help="Catalog id of the extension.")],
) -> None:
    """Install an extension from the catalog."""
    settings = get_settings()

    async def _run() -> InstallationOutcome:
        async with _services(settings) as services:
            try:
                extension = await services.catalog.get_extension(extension_id)
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            if extension is None:
                raise _fail(f"Extension not found in catalog: {extension_id}")
            return await services.manager.install(extension)

    _print_installed(asyncio.run(_run()))


def remove_command(
    extension_id: Annotated[str, typer.Argument(help="Id of an installed extension.")],
) -> None:
    """Uninstall an extension and delete its files."""
    settings = get_settings()

    async def _run() -> InstallationOutcome:
        async with _services(settings) as services:
            return await services.manager.uninstall(extension_id)

    outcome = asyncio.run(_run())
    if not outcome.operation_succeeded:
        raise _fail(outcome.error_details or f"Failed to remove {extension_id}")
    console.print(f"[green]Removed extension: {escape(extension_id)}[/green]")
    console.print(f"[dim]▎• removed files:[/dim] {len(outcome.modified_file_paths)}")


def update_command(
    selector: Annotated[
        str,
        typer.Argument(help="Id of an installed extension, or 'all'.", show_default=False),
    ],
) -> None:
    """Update installed extensions to the catalog version."""
    settings = get_settings()

    async def _run() -> list[InstallationOutcome]:
        async with _services(settings) as services:
            manager = services.manager
            try:
                manifest = await services.catalog.fetch_catalog()
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            by_id = {ext.unique_id: ext for ext in manifest.available_extensions}

            if selector == "all":
                targets = [
                    update.extension_id
                    for update in await manager.check_for_updates(manifest.available_extensions)
                ]
                if not targets:
                    console.print("[green]All extensions are up to date.[/green]")
                    return []
            else:
                if not manager.is_installed(selector):
                    raise _fail("Extension is not installed. Use install instead.")
                extension = by_id.get(selector)
                if extension is None:
                    raise _fail(f"Extension not found in catalog: {selector}")
                current = manager.get_installed_version(selector) or "0.0.0"
                if not is_newer_version(extension.semantic_version, current):
                    console.print(f"[green]{escape(selector)} is up to date (v{escape(current)}).[/green]")
                    return []
                targets = [selector]

            outcomes = []
            for extension_id in targets:
                outcomes.append(await manager.update(extension_id, by_id[extension_id]))
            return outcomes

    outcomes = asyncio.run(_run())
    failed = False
    for outcome in outcomes:
        if outcome.operation_succeeded:
            console.print(f"[green]Updated extension: {escape(outcome.affected_extension_id)}[/green]")
        else:
            failed = True
            typer.echo(f"{outcome.affected_extension_id}: {outcome.error_details}", err=True)
    if failed:
        raise typer.Exit(1)


def outdated_command() -> None:
    """List installed extensions with a newer catalog version."""
    settings = get_settings()

    async def _run() -> None:
        async with _services(settings) as services:
            try:
                manifest = await services.catalog.fetch_catalog()
            except CatalogUnavailableError as exc:
                raise _fail(exc.message) from exc
            updates = await services.manager.check_for_updates(manifest.available_extensions)

            _print_section_header("Extension Updates", color="blue")
            if not updates:
                console.print("[green]All extensions are up to date.[/green]")
                return

            table = Table(show_header=True, box=None)
            table.add_column("ID", style="cyan", header_style="bold bright_white")
            table.add_column("Installed", style="white", header_style="bold bright_white")
            table.add_column("Available", style="green", header_style="bold bright_white")
            for update in updates:
                table.add_row(
                    escape(update.extension_id),
                    escape(update.currently_installed_version),
                    escape(update.available_newer_version),
                )
            console.print(table)
            _print_hint("Apply with: vault-extensions update <id|all>")

    asyncio.run(_run())
