"""Tests for the taskstore command-line interface.

Covers the schema inspection commands and the `taskstore validate` command:
output formats, exit codes and error scenarios.
"""

from datetime import UTC, datetime, timedelta
import json
from pathlib import Path
import tempfile

from click.testing import CliRunner
import pytest

from taskstore.cli import main
from taskstore.cli.validate import validate_command

FUTURE = (datetime.now(UTC) + timedelta(days=30)).date().isoformat()
PAST = (datetime.now(UTC) - timedelta(days=30)).date().isoformat()


# Global fixtures for all test classes
@pytest.fixture
def runner():
    """Create CLI runner for tests."""
    return CliRunner()


@pytest.fixture
def temp_dir():
    """Create temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def valid_records():
    return f"""
user:
  - username: alice
    email: Alice@Example.com
    password: "Secret#123"
    first_name: Alice
    last_name: Smith
project:
  - name: Website relaunch
    owner_id: 1
task:
  - title: Write report
    due_date: {FUTURE}
    user_id: 1
    project_id: 1
tag:
  - name: urgent
"""


@pytest.fixture
def invalid_records():
    return f"""
user:
  - username: alice
    email: alice@example.com
    password: "Secret#123"
    first_name: Alice
    last_name: Smith
  - username: alice
    email: ALICE@example.com
    password: "Secret#123"
    first_name: Alice
    last_name: Smith
task:
  - title: Write report
    due_date: {PAST}
    user_id: 1
    project_id: 1
"""


class TestSchemaCommands:
    def test_schema_list(self, runner):
        result = runner.invoke(main, ["schema", "list"])

        assert result.exit_code == 0
        for entity in ["user", "task", "project", "tag"]:
            assert entity in result.output

    def test_schema_show(self, runner):
        result = runner.invoke(main, ["schema", "show", "task"])

        assert result.exit_code == 0
        assert "due_date" in result.output
        assert "task_tags" in result.output

    def test_schema_show_unknown_entity(self, runner):
        result = runner.invoke(main, ["schema", "show", "comment"])

        assert result.exit_code == 1
        assert "Unknown entity" in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestValidateCommand:
    """Exit codes and output formats of `taskstore validate`."""

    def test_valid_file(self, runner, temp_dir, valid_records):
        records = temp_dir / "records.yaml"
        records.write_text(valid_records)

        result = runner.invoke(validate_command, [str(records)])

        assert result.exit_code == 0
        assert "All records accepted" in result.output
        assert "Records: 4" in result.output

    def test_invalid_file_table(self, runner, temp_dir, invalid_records):
        records = temp_dir / "records.yaml"
        records.write_text(invalid_records)

        result = runner.invoke(validate_command, [str(records)])

        assert result.exit_code == 1
        assert "duplicate_value" in result.output
        assert "Due date must be in the future" in result.output

    def test_invalid_file_json(self, runner, temp_dir, invalid_records):
        records = temp_dir / "records.yaml"
        records.write_text(invalid_records)

        result = runner.invoke(main, ["validate", str(records), "--format", "json"])

        assert result.exit_code == 1
        output = json.loads(result.stdout)
        assert output["status"] == "invalid"
        assert output["accepted"] == 1
        types = [(e["entity"], e["index"], e["type"]) for e in output["errors"]]
        assert ("user", 2, "duplicate_value") in types
        assert ("task", 1, "validation_failed") in types
        task_error = next(e for e in output["errors"] if e["entity"] == "task")
        assert task_error["rule"] == "is_future_date"

    def test_dangling_reference(self, runner, temp_dir):
        records = temp_dir / "records.yaml"
        records.write_text("project:\n  - name: Orphan\n    owner_id: 5\n")

        result = runner.invoke(main, ["validate", str(records), "-f", "json"])

        assert result.exit_code == 1
        (error,) = json.loads(result.stdout)["errors"]
        assert error["type"] == "dangling_reference"
        assert error["field"] == "owner_id"

    def test_unknown_entity(self, runner, temp_dir):
        records = temp_dir / "records.yaml"
        records.write_text("comment:\n  - body: hi\n")

        result = runner.invoke(main, ["validate", str(records), "-f", "json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["errors"][0]["type"] == "unknown_entity"

    def test_missing_file(self, runner, temp_dir):
        result = runner.invoke(
            main, ["validate", str(temp_dir / "nope.yaml"), "--format", "json"]
        )

        assert result.exit_code == 2
        assert json.loads(result.stdout)["error_type"] == "file_not_found"

    def test_malformed_yaml(self, runner, temp_dir):
        records = temp_dir / "records.yaml"
        records.write_text("user: [unclosed\n")

        result = runner.invoke(validate_command, [str(records)])

        assert result.exit_code == 2
        assert "Invalid YAML" in result.output

    def test_document_must_be_a_mapping(self, runner, temp_dir):
        records = temp_dir / "records.yaml"
        records.write_text("- just\n- a list\n")

        result = runner.invoke(validate_command, [str(records)])

        assert result.exit_code == 2

    def test_missing_schema_dir(self, runner, temp_dir, valid_records):
        records = temp_dir / "records.yaml"
        records.write_text(valid_records)

        result = runner.invoke(
            validate_command,
            [str(records), "--schema-dir", str(temp_dir / "schemas")],
        )

        assert result.exit_code == 2
        assert "Cannot load schemas" in result.output

    def test_unregistrable_relationship(self, runner, temp_dir):
        schemas = temp_dir / "schemas"
        schemas.mkdir()
        (schemas / "label.yaml").write_text("entity_name: label\nfields:\n  name: {}\n")
        (schemas / "note.yaml").write_text(
            "entity_name: note\n"
            "fields:\n"
            "  body: {}\n"
            "relationships:\n"
            "  note_labels:\n"
            "    kind: many_to_many\n"
            "    target: label\n"
            "    join_table: note_labels\n"
            "    on_delete: set_null\n"
        )
        records = temp_dir / "records.yaml"
        records.write_text("note:\n  - body: hello\n")

        result = runner.invoke(
            main,
            ["validate", str(records), "--schema-dir", str(schemas), "-f", "json"],
        )

        assert result.exit_code == 2
        output = json.loads(result.stdout)
        assert output["error_type"] == "schema_load_error"
        assert "set_null" in output["message"]

    def test_through_main_group(self, runner, temp_dir, valid_records):
        records = temp_dir / "records.yaml"
        records.write_text(valid_records)

        result = runner.invoke(main, ["validate", str(records), "--format", "json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["accepted"] == 4
