"""Unit tests for schema loading functionality.

Tests cover the bundled schema files, YAML parsing of fields, rules and
relationships, consistency checks and error handling.
"""

from datetime import UTC, datetime
from pathlib import Path
import tempfile

import pytest
import yaml

from taskstore.core import (
    BUNDLED_SCHEMA_DIR,
    ComparisonRule,
    DeletePolicy,
    FieldKind,
    FileSchemaLoader,
    LengthRule,
    PatternRule,
    PredicateRule,
    RelationshipKind,
    SchemaLoadError,
    SchemaValidationError,
)


def _write(schema_dir: Path, name: str, data: dict) -> None:
    with (schema_dir / f"{name}.yaml").open("w") as f:
        yaml.dump(data, f)


@pytest.fixture
def temp_schema_dir():
    """Create temporary directory with an author/book schema pair."""
    with tempfile.TemporaryDirectory() as temp_dir:
        schema_dir = Path(temp_dir)

        _write(
            schema_dir,
            "author",
            {
                "entity_name": "author",
                "description": "Someone who writes books",
                "fields": {
                    "name": {"kind": "string", "min_length": 2, "unique": True},
                    "born": {"kind": "date", "nullable": True},
                },
            },
        )
        _write(
            schema_dir,
            "book",
            {
                "entity_name": "book",
                "fields": {
                    "title": {
                        "kind": "string",
                        "normalize": ["strip"],
                        "pattern": "[A-Z].*",
                        "pattern_message": "Must start with a capital letter",
                    },
                    "author_id": {"kind": "int", "indexed": True},
                },
                "relationships": {
                    "book_author": {
                        "kind": "one_to_many",
                        "target": "author",
                        "foreign_key": "author_id",
                        "on_delete": "restrict",
                    }
                },
            },
        )

        yield schema_dir


@pytest.mark.asyncio
class TestFileSchemaLoader:
    """Test FileSchemaLoader implementation."""

    async def test_load_schemas_success(self, temp_schema_dir):
        loader = FileSchemaLoader(temp_schema_dir)

        bundle = await loader.load_schemas()

        assert bundle.schema_count == 2
        assert set(bundle.schemas) == {"author", "book"}
        assert bundle.source == str(temp_schema_dir)
        assert loader.get_entity_schema("book") is bundle.schemas["book"]

    async def test_field_parsing(self, temp_schema_dir):
        bundle = await FileSchemaLoader(temp_schema_dir).load_schemas()

        name = bundle.schemas["author"].get_field("name")
        born = bundle.schemas["author"].get_field("born")
        title = bundle.schemas["book"].get_field("title")

        assert name.unique
        assert isinstance(name.rules[0], LengthRule)
        assert name.rules[0].min == 2
        assert born.kind == FieldKind.DATE
        assert born.nullable
        assert title.normalizers == ("strip",)
        assert isinstance(title.rules[0], PatternRule)
        assert title.rules[0].message == "Must start with a capital letter"

    async def test_relationship_parsing(self, temp_schema_dir):
        bundle = await FileSchemaLoader(temp_schema_dir).load_schemas()

        (relationship,) = bundle.relationships
        assert relationship.name == "book_author"
        assert relationship.kind == RelationshipKind.ONE_TO_MANY
        assert relationship.source_entity == "book"
        assert relationship.target_entity == "author"
        assert relationship.on_delete == DeletePolicy.RESTRICT

    async def test_load_schemas_nonexistent_directory(self):
        loader = FileSchemaLoader("/nonexistent/schemas")

        with pytest.raises(SchemaLoadError, match="does not exist"):
            await loader.load_schemas()

    async def test_files_without_entity_name_are_ignored(self, temp_schema_dir):
        _write(temp_schema_dir, "notes", {"comment": "not a schema"})

        bundle = await FileSchemaLoader(temp_schema_dir).load_schemas()

        assert bundle.schema_count == 2

    async def test_malformed_yaml(self, temp_schema_dir):
        (temp_schema_dir / "broken.yaml").write_text("entity_name: [unclosed\n")

        with pytest.raises(SchemaLoadError, match="broken.yaml"):
            await FileSchemaLoader(temp_schema_dir).load_schemas()

    async def test_unknown_predicate(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "genre",
            {
                "entity_name": "genre",
                "fields": {"name": {"rules": [{"predicate": "shouty"}]}},
            },
        )

        with pytest.raises(SchemaLoadError, match="Unknown predicate"):
            await FileSchemaLoader(temp_schema_dir).load_schemas()

    async def test_predicate_on_int_field(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "item",
            {
                "entity_name": "item",
                "fields": {
                    "qty": {"kind": "int", "rules": [{"predicate": "email"}]}
                },
            },
        )

        with pytest.raises(SchemaLoadError, match="cannot use predicate 'email'"):
            await FileSchemaLoader(temp_schema_dir).load_schemas()

    async def test_length_bounds_on_int_field(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "item",
            {"entity_name": "item", "fields": {"qty": {"kind": "int", "min_length": 1}}},
        )

        with pytest.raises(SchemaValidationError) as exc_info:
            await FileSchemaLoader(temp_schema_dir).load_schemas()

        assert "cannot use rule 'length'" in exc_info.value.errors[0]

    async def test_quoted_date_reference_is_rejected(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "event",
            {
                "entity_name": "event",
                "fields": {
                    "starts_at": {
                        "kind": "date",
                        "rules": [{"compare": "lt", "reference": "2030-01-01"}],
                    }
                },
            },
        )

        with pytest.raises(SchemaValidationError) as exc_info:
            await FileSchemaLoader(temp_schema_dir).load_schemas()

        assert "cannot be compared with '2030-01-01'" in exc_info.value.errors[0]

    async def test_timestamp_reference_is_made_aware(self, temp_schema_dir):
        (temp_schema_dir / "event.yaml").write_text(
            "entity_name: event\n"
            "fields:\n"
            "  starts_at:\n"
            "    kind: date\n"
            "    rules:\n"
            "      - compare: lt\n"
            "        reference: 2030-01-01 00:00:00\n"
        )

        bundle = await FileSchemaLoader(temp_schema_dir).load_schemas()

        (rule,) = bundle.schemas["event"].get_field("starts_at").rules
        assert rule.reference == datetime(2030, 1, 1, tzinfo=UTC)

    async def test_unknown_normalizer(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "genre",
            {"entity_name": "genre", "fields": {"name": {"normalize": ["title"]}}},
        )

        with pytest.raises(SchemaLoadError, match="unknown normalizer"):
            await FileSchemaLoader(temp_schema_dir).load_schemas()

    async def test_duplicate_entity(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "writer",
            {"entity_name": "author", "fields": {"name": {}}},
        )

        with pytest.raises(SchemaLoadError, match="declared more than once"):
            await FileSchemaLoader(temp_schema_dir).load_schemas()

    async def test_validation_consistency_failure(self, temp_schema_dir):
        _write(
            temp_schema_dir,
            "review",
            {
                "entity_name": "review",
                "fields": {"book_id": {"kind": "int"}},
                "relationships": {
                    "review_book": {
                        "target": "book",
                        "foreign_key": "book_id",
                        "on_delete": "set_null",
                    },
                    "review_reader": {"target": "reader", "foreign_key": "reader_id"},
                    "review_tags": {"kind": "many_to_many", "target": "author"},
                },
            },
        )

        with pytest.raises(SchemaValidationError) as exc_info:
            await FileSchemaLoader(temp_schema_dir).load_schemas()

        errors = exc_info.value.errors
        assert len(errors) == 3
        assert any("is not nullable" in e for e in errors)
        assert any("unknown entity 'reader'" in e for e in errors)
        assert any("has no join_table" in e for e in errors)

    async def test_reload_schemas(self, temp_schema_dir):
        loader = FileSchemaLoader(temp_schema_dir)
        await loader.load_schemas()
        _write(
            temp_schema_dir,
            "genre",
            {"entity_name": "genre", "fields": {"name": {}}},
        )

        bundle = await loader.reload_schemas()

        assert "genre" in bundle.schemas

    async def test_empty_schema_directory(self, tmp_path):
        bundle = await FileSchemaLoader(tmp_path).load_schemas()

        assert bundle.schema_count == 0
        assert bundle.relationships == []


@pytest.mark.asyncio
async def test_real_schema_files():
    """The bundled schemas declare the four task-management entities."""
    loader = FileSchemaLoader()

    bundle = await loader.load_schemas()

    assert loader.schema_dir == BUNDLED_SCHEMA_DIR
    assert set(bundle.schemas) == {"user", "task", "project", "tag"}
    assert {r.name for r in bundle.relationships} == {
        "project_owner",
        "task_project",
        "task_tags",
        "task_user",
    }

    due_date = bundle.schemas["task"].get_field("due_date")
    (rule,) = due_date.rules
    assert isinstance(rule, ComparisonRule)
    assert rule.name == "is_future_date"

    email = bundle.schemas["user"].get_field("email")
    assert email.unique
    assert all(isinstance(r, PredicateRule) for r in email.rules)
