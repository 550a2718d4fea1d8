"""Unit tests for entity schema data structures."""

from datetime import date

import pytest

from taskstore.core import (
    ComparisonRule,
    DeletePolicy,
    EntitySchema,
    EnumRule,
    FieldKind,
    FieldSpec,
    LengthRule,
    Relationship,
    RelationshipKind,
    SchemaValidationError,
)


class TestFieldSpec:
    """Test FieldSpec data structure."""

    def test_field_spec_defaults(self):
        spec = FieldSpec(name="title")

        assert spec.kind == FieldKind.STRING
        assert spec.nullable is False
        assert spec.has_default is False
        assert spec.is_indexed is False
        assert spec.rules == ()

    def test_unique_fields_are_indexed(self):
        assert FieldSpec(name="email", unique=True).is_indexed
        assert FieldSpec(name="status", indexed=True).is_indexed

    def test_callable_default_is_resolved(self):
        spec = FieldSpec(name="color", default=lambda: "#3498db")

        assert spec.resolve_default() == "#3498db"

    def test_enum_rule_runs_first(self):
        length = LengthRule(max=20)
        spec = FieldSpec(
            name="status",
            kind=FieldKind.ENUM,
            allowed_values=("pending", "completed"),
            rules=(length,),
        )

        rules = spec.effective_rules()

        assert isinstance(rules[0], EnumRule)
        assert rules[0].values == ("pending", "completed")
        assert rules[1] is length


class TestEntitySchema:
    """Test EntitySchema creation and invariants."""

    def test_from_fields(self):
        schema = EntitySchema.from_fields(
            "tag",
            [
                FieldSpec(name="name", unique=True),
                FieldSpec(name="color", default="#3498db"),
            ],
            description="A label",
        )

        assert schema.entity_name == "tag"
        assert schema.field_names == ["name", "color"]
        assert schema.primary_key_field == "id"
        assert [spec.name for spec in schema.unique_fields] == ["name"]
        assert schema.get_field("color").default == "#3498db"
        assert schema.get_field("missing") is None

    def test_duplicate_field_names(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            EntitySchema.from_fields(
                "tag", [FieldSpec(name="name"), FieldSpec(name="name")]
            )

        assert "duplicate field name 'name'" in exc_info.value.errors[0]

    def test_field_cannot_reuse_primary_key(self):
        with pytest.raises(SchemaValidationError, match="Invalid schema"):
            EntitySchema.from_fields("tag", [FieldSpec(name="id", kind=FieldKind.INT)])

    def test_empty_entity_name(self):
        with pytest.raises(SchemaValidationError):
            EntitySchema.from_fields("", [FieldSpec(name="name")])

    def test_enum_without_values(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            EntitySchema.from_fields(
                "task", [FieldSpec(name="status", kind=FieldKind.ENUM)]
            )

        assert "has no allowed values" in exc_info.value.errors[0]

    def test_length_rule_needs_a_text_field(self):
        with pytest.raises(SchemaValidationError) as exc_info:
            EntitySchema.from_fields(
                "item",
                [FieldSpec(name="qty", kind=FieldKind.INT, rules=(LengthRule(min=1),))],
            )

        assert exc_info.value.errors == [
            "Entity 'item' field 'qty' of kind int cannot use rule 'length'"
        ]

    @pytest.mark.parametrize(
        "kind,reference",
        [
            (FieldKind.INT, "now"),
            (FieldKind.INT, True),
            (FieldKind.DATE, "2030-01-01"),
            (FieldKind.DATE, 5),
            (FieldKind.STRING, "m"),
        ],
    )
    def test_comparison_reference_must_match_kind(self, kind, reference):
        rule = ComparisonRule(operator="lt", reference=reference)

        with pytest.raises(SchemaValidationError) as exc_info:
            EntitySchema.from_fields(
                "event", [FieldSpec(name="value", kind=kind, rules=(rule,))]
            )

        assert "cannot be compared with" in exc_info.value.errors[0]

    def test_compatible_comparisons(self):
        schema = EntitySchema.from_fields(
            "event",
            [
                FieldSpec(
                    name="seats",
                    kind=FieldKind.INT,
                    rules=(ComparisonRule(operator="le", reference=500),),
                ),
                FieldSpec(
                    name="starts_at",
                    kind=FieldKind.DATE,
                    rules=(
                        ComparisonRule(operator="gt"),
                        ComparisonRule(operator="lt", reference=date(2030, 1, 1)),
                    ),
                ),
            ],
        )

        assert schema.field_names == ["seats", "starts_at"]


class TestRelationship:
    def test_kinds(self):
        owner = Relationship(
            name="project_owner",
            kind=RelationshipKind.ONE_TO_MANY,
            source_entity="project",
            target_entity="user",
            foreign_key="owner_id",
            on_delete=DeletePolicy.SET_NULL,
        )
        tags = Relationship(
            name="task_tags",
            kind=RelationshipKind.MANY_TO_MANY,
            source_entity="task",
            target_entity="tag",
            join_table="task_tags",
        )

        assert owner.is_one_to_many and not owner.is_many_to_many
        assert tags.is_many_to_many and not tags.is_one_to_many
        assert tags.on_delete == DeletePolicy.CASCADE
