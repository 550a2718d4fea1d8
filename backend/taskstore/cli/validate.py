"""CLI validation command implementation.

This module implements the `taskstore validate` command. It loads a YAML
document of records into a fresh in-memory store, in document order, and
reports every record the store rejected along with the reason.

Record files map entity names to lists of field mappings::

    user:
      - username: alice
        email: alice@example.com
    task:
      - title: Write report
        user_id: 1
"""

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
import json
from pathlib import Path
import sys
from typing import Any, NoReturn

from rich.console import Console
from rich.table import Table
import rich_click as click
import yaml

from ..core import BUNDLED_SCHEMA_DIR
from ..storage import (
    DanglingReferenceError,
    DuplicateValueError,
    InMemoryStorage,
    RecordValidationError,
    StorageError,
)

# Create console for rich formatting - auto-detects if we're in interactive environment
console = Console()


@dataclass
class RecordFailure:
    """One rejected record, or one problem within it."""

    entity: str
    index: int
    type: str
    message: str
    field: str | None = None
    rule: str | None = None


@dataclass
class LoadReport:
    file: str
    accepted: int = 0
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.failures

    @property
    def failure_count(self) -> int:
        return len(self.failures)


def _should_use_rich_formatting(force_colors: bool = False) -> bool:
    """Determine if we should use rich formatting based on environment."""
    return force_colors or console.is_terminal


def _json_default(value: Any) -> str:
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def _exit_with_error(
    format: str, error_type: str, message: str, file: str
) -> NoReturn:
    if format == "json":
        error_output = {
            "status": "error",
            "error_type": error_type,
            "message": message,
            "file": file,
        }
        click.echo(json.dumps(error_output, indent=2))
    else:
        click.echo(f"❌ {message}")
    sys.exit(2)


async def _load_records(
    document: dict[str, Any], schema_dir: str, file: str
) -> LoadReport:
    """Create every record of ``document`` in a fresh store."""
    store = InMemoryStorage()
    await store.load_schemas(schema_dir)
    report = LoadReport(file=file)
    failures = report.failures

    for entity, records in document.items():
        if entity not in store.tables:
            failures.append(
                RecordFailure(
                    entity=str(entity),
                    index=0,
                    type="unknown_entity",
                    message=f"Unknown entity kind '{entity}'",
                )
            )
            continue

        if not isinstance(records, list):
            failures.append(
                RecordFailure(
                    entity=entity,
                    index=0,
                    type="invalid_record",
                    message=f"Records of '{entity}' must be a list",
                )
            )
            continue

        for index, fields in enumerate(records, 1):
            if not isinstance(fields, dict):
                failures.append(
                    RecordFailure(
                        entity=entity,
                        index=index,
                        type="invalid_record",
                        message="Record must be a mapping of field names to values",
                    )
                )
                continue

            try:
                await store.create(entity, fields)
            except RecordValidationError as e:
                failures.extend(
                    RecordFailure(
                        entity=entity,
                        index=index,
                        type=error.type,
                        message=error.message,
                        field=error.field,
                        rule=error.rule,
                    )
                    for error in e.errors
                )
            except DuplicateValueError as e:
                failures.append(
                    RecordFailure(
                        entity=entity,
                        index=index,
                        type="duplicate_value",
                        message=str(e),
                        field=e.field,
                    )
                )
            except DanglingReferenceError as e:
                failures.append(
                    RecordFailure(
                        entity=entity,
                        index=index,
                        type="dangling_reference",
                        message=str(e),
                        field=e.field,
                    )
                )
            else:
                report.accepted += 1

    return report


def _output_table_format(report: LoadReport, force_colors: bool = False) -> None:
    """Output load report in table format."""
    if report.is_valid:
        if _should_use_rich_formatting(force_colors):
            console.print("✅ [bold green]All records accepted[/bold green]")
            console.print(f"[bold]File:[/bold] [cyan]{report.file}[/cyan]")
            console.print(f"[bold]Records:[/bold] {report.accepted}")
        else:
            click.echo("✅ All records accepted")
            click.echo(f"File: {report.file}")
            click.echo(f"Records: {report.accepted}")
        return

    if _should_use_rich_formatting(force_colors):
        console.print("❌ [bold red]Validation failed[/bold red]")
        console.print(f"[bold]File:[/bold] [cyan]{report.file}[/cyan]")

        table = Table(show_lines=False)
        table.add_column("Entity", style="bold yellow")
        table.add_column("#", justify="right")
        table.add_column("Field", style="bold blue")
        table.add_column("Error", style="red")
        table.add_column("Message")
        for failure in report.failures:
            table.add_row(
                failure.entity,
                str(failure.index),
                failure.field or "-",
                failure.type,
                failure.message,
            )
        console.print(table)
        console.print(
            f"[red]Errors found: {report.failure_count}[/red], "
            f"accepted: {report.accepted}"
        )
    else:
        # Plain text for non-interactive (CI)
        click.echo("❌ Validation failed")
        click.echo(f"File: {report.file}")
        click.echo(f"Errors found: {report.failure_count}")
        click.echo()
        for failure in report.failures:
            location = f"{failure.entity}[{failure.index}]"
            if failure.field:
                location += f".{failure.field}"
            click.echo(f"❌ {failure.type} in {location}: {failure.message}")


def _output_json_format(report: LoadReport) -> None:
    """Output load report in JSON format."""
    output: dict[str, Any] = {
        "status": "valid" if report.is_valid else "invalid",
        "file": report.file,
        "accepted": report.accepted,
        "error_count": report.failure_count,
        "errors": [asdict(failure) for failure in report.failures],
    }
    click.echo(json.dumps(output, indent=2, default=_json_default))


@click.command(name="validate")
@click.argument("file", type=click.Path())
@click.option(
    "--format",
    "-f",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format",
)
@click.option(
    "--schema-dir",
    type=click.Path(),
    default=str(BUNDLED_SCHEMA_DIR),
    help="Directory containing YAML schema definitions (defaults to bundled)",
)
@click.option(
    "--force-colors",
    is_flag=True,
    help="Force rich formatting even when output is not a terminal",
)
def validate_command(
    file: str, format: str, schema_dir: str, force_colors: bool
) -> None:
    """🔍 **Validate a YAML file of records** against the entity schemas.

    Records are created in document order in an empty in-memory store, so
    foreign keys refer to ids assigned earlier in the same file (1, 2, ...).

    \b
    Examples:
        taskstore validate records.yaml
        taskstore validate records.yaml --format json

    **Exit Codes:**
    - `0`: Every record accepted ✅
    - `1`: One or more records rejected ❌
    - `2`: File or schemas not found or not readable 📁
    """
    file_path = Path(file)

    if not file_path.exists():
        _exit_with_error(format, "file_not_found", f"File not found: {file}", file)

    try:
        document = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        _exit_with_error(format, "file_read_error", f"Cannot read file: {e}", file)
    except yaml.YAMLError as e:
        _exit_with_error(format, "yaml_error", f"Invalid YAML: {e}", file)

    if document is None:
        document = {}
    if not isinstance(document, dict):
        _exit_with_error(
            format,
            "invalid_document",
            "Record file must map entity names to lists of records",
            file,
        )

    try:
        report = asyncio.run(_load_records(document, schema_dir, str(file_path)))
    except StorageError as e:
        _exit_with_error(format, "schema_load_error", f"Cannot load schemas: {e}", file)

    if format == "json":
        _output_json_format(report)
    else:
        _output_table_format(report, force_colors)

    sys.exit(0 if report.is_valid else 1)


__all__ = ["validate_command"]
