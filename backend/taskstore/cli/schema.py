"""CLI schema command implementation.

This module implements the `taskstore schema` command group for inspecting
the entity schemas and relationships a store would be built from.
"""

import asyncio
import sys

from rich.console import Console
from rich.table import Table
import rich_click as click

from ..core import (
    BUNDLED_SCHEMA_DIR,
    FileSchemaLoader,
    SchemaBundle,
    SchemaLoadError,
    SchemaValidationError,
)

# Create console for rich formatting
console = Console()

schema_dir_option = click.option(
    "--schema-dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True),
    default=str(BUNDLED_SCHEMA_DIR),
    show_default=False,
    help="Directory containing YAML schema definitions (defaults to bundled)",
)


def _load_bundle(schema_dir: str) -> SchemaBundle:
    try:
        return asyncio.run(FileSchemaLoader(schema_dir).load_schemas())
    except (SchemaLoadError, SchemaValidationError) as e:
        console.print(f"❌ [bold red]Cannot load schemas:[/bold red] {e}")
        sys.exit(2)


@click.group(name="schema")
def schema_command() -> None:
    """📋 **Schema operations** - Inspect entity schema definitions.

    Commands for listing entity kinds and showing their fields, rules and
    relationships as loaded from YAML.
    """
    pass


@schema_command.command(name="list")
@schema_dir_option
def list_command(schema_dir: str) -> None:
    """📚 **List entity kinds** with their field and relationship counts."""
    bundle = _load_bundle(schema_dir)

    table = Table(title="Entity schemas")
    table.add_column("Entity", style="bold cyan")
    table.add_column("Fields", justify="right")
    table.add_column("Relationships")

    for name in sorted(bundle.schemas):
        schema = bundle.schemas[name]
        relationships = [r.name for r in bundle.relationships if r.source_entity == name]
        table.add_row(
            name,
            str(len(schema.fields)),
            ", ".join(relationships) or "-",
        )

    console.print(table)


@schema_command.command(name="show")
@click.argument("entity")
@schema_dir_option
def show_command(entity: str, schema_dir: str) -> None:
    """🔎 **Show one entity schema** with every field rule.

    \b
    Examples:
        taskstore schema show task
        taskstore schema show user --schema-dir ./schemas
    """
    bundle = _load_bundle(schema_dir)
    schema = bundle.schemas.get(entity)
    if schema is None:
        console.print(
            f"❌ [bold red]Unknown entity:[/bold red] {entity} "
            f"(known: {', '.join(sorted(bundle.schemas))})"
        )
        sys.exit(1)

    if schema.description:
        console.print(f"[dim]{schema.description}[/dim]")

    table = Table(title=f"{entity} fields")
    table.add_column("Field", style="bold cyan")
    table.add_column("Kind")
    table.add_column("Required")
    table.add_column("Default")
    table.add_column("Unique")
    table.add_column("Rules")

    for spec in schema.fields:
        table.add_row(
            spec.name,
            spec.kind.value,
            "no" if spec.nullable or spec.has_default else "yes",
            "-" if spec.default is None else str(spec.default),
            "yes" if spec.unique else "",
            "; ".join(rule.describe() for rule in spec.effective_rules()) or "-",
        )

    console.print(table)

    relationships = [
        r
        for r in bundle.relationships
        if entity in (r.source_entity, r.target_entity)
    ]
    if relationships:
        rel_table = Table(title=f"{entity} relationships")
        rel_table.add_column("Name", style="bold green")
        rel_table.add_column("Kind")
        rel_table.add_column("Source")
        rel_table.add_column("Target")
        rel_table.add_column("Key")
        rel_table.add_column("On delete")
        for r in relationships:
            rel_table.add_row(
                r.name,
                r.kind.value,
                r.source_entity,
                r.target_entity,
                r.foreign_key or r.join_table or "-",
                r.on_delete.value,
            )
        console.print(rel_table)


__all__ = ["schema_command", "list_command", "show_command"]
