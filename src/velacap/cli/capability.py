"""Capability Commands

CLI commands for discovering capabilities in a cluster.

Provides commands to:
- List component and trait capabilities
- Show one capability with its parameter schema
- Sync capability templates to the local cache
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from velacap.capabilities.specs import Capability, CapabilityType
from velacap.config import get_settings
from velacap.exceptions import CapabilityError
from velacap.resolution.batch import CapabilityFetcher, FetchResult
from velacap.sync import (
    LocalDefinitionStore,
    format_warning,
    sync_definition_to_local,
    sync_definitions_to_local,
)

console = Console()


def _get_fetcher() -> CapabilityFetcher:
    return CapabilityFetcher.from_settings(get_settings())


def _fail(message: str) -> None:
    console.print(f"[red]{escape(message)}[/red]")
    sys.exit(1)


@click.command(name="list")
@click.option("-n", "--namespace", help="Namespace to read definitions from")
@click.option(
    "--type",
    "capability_type",
    type=click.Choice(["component", "trait", "all"]),
    default="all",
    help="Filter by capability type",
)
@click.option("-l", "--selector", help="Label selector to filter definitions")
@click.option("--json", "output_json", is_flag=True, default=False, help="Output as JSON")
def list_cmd(
    namespace: Optional[str],
    capability_type: str,
    selector: Optional[str],
    output_json: bool,
):
    """List capabilities defined in the cluster.

    Examples:
        velacap list                        # Components and traits in vela-system
        velacap list --type trait           # Traits only
        velacap list -l tier=platform       # Filter by label
        velacap list --json                 # Output as JSON
    """
    namespace = namespace or get_settings().default_namespace
    try:
        fetcher = _get_fetcher()
        if capability_type == "all":
            result = fetcher.fetch_all(namespace, selector)
        else:
            result = fetcher.fetch(namespace, CapabilityType(capability_type), selector)
    except CapabilityError as e:
        _fail(f"Error listing capabilities: {e.message}")
        return

    if output_json:
        payload = {
            "capabilities": [capability.to_dict() for capability in result.capabilities],
            "errors": [str(error) for error in result.errors],
        }
        click.echo(json.dumps(payload, indent=2))
        return

    _render_capability_table(result)
    for error in result.errors:
        console.print(f"[yellow]{escape(format_warning(error))}[/yellow]")


@click.command(name="show")
@click.argument("name")
@click.option("-n", "--namespace", help="Namespace to read definitions from")
@click.option(
    "-o",
    "--output",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    help="Output format",
)
def show_cmd(name: str, namespace: Optional[str], output: str):
    """Show one capability and its parameters.

    Examples:
        velacap show webservice
        velacap show scaler -o json
    """
    namespace = namespace or get_settings().default_namespace
    try:
        capability = _get_fetcher().resolve_named(namespace, name)
    except CapabilityError as e:
        _fail(e.message)
        return

    data = capability.to_dict()
    if output == "json":
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)


@click.command(name="sync")
@click.argument("name", required=False)
@click.option("-n", "--namespace", help="Namespace to read definitions from")
@click.option(
    "--dir",
    "directory",
    type=click.Path(file_okay=False, path_type=Path),
    help="Local capability directory (default: VELACAP_DEFINITIONS_DIR)",
)
def sync_cmd(name: Optional[str], namespace: Optional[str], directory: Optional[Path]):
    """Sync capability templates to the local cache.

    Examples:
        velacap sync                        # Sync every component and trait
        velacap sync webservice             # Sync one capability
        velacap sync --dir ./capabilities
    """
    settings = get_settings()
    namespace = namespace or settings.default_namespace
    store = LocalDefinitionStore(directory or settings.definitions_dir)

    try:
        fetcher = _get_fetcher()
        if name:
            capability = sync_definition_to_local(fetcher, store, name, namespace)
            console.print(
                f"[green]✓ Synced {capability.type} {escape(capability.name)} to {store.root}[/green]"
            )
            return
        result = sync_definitions_to_local(fetcher, store, namespace)
    except CapabilityError as e:
        _fail(e.message)
        return

    for warning in result.warnings:
        console.print(f"[yellow]{escape(warning)}[/yellow]")
    console.print(f"[green]✓ Synced {len(result.capabilities)} capabilities to {store.root}[/green]")


def _render_capability_table(result: FetchResult) -> None:
    if not result.capabilities:
        console.print("No capabilities found")
        return

    table = Table(title="Capabilities")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Applies To")
    table.add_column("Description")

    for capability in result.capabilities:
        table.add_row(
            capability.name,
            str(capability.type),
            _applies_to(capability),
            capability.description,
        )

    console.print(table)


def _applies_to(capability: Capability) -> str:
    if capability.type != CapabilityType.TRAIT:
        return "-"
    return ", ".join(capability.applies_to) or "*"
