"""Unit tests for migration planning (backfill and pruning)."""

import pytest

from entitystore.core.exceptions import InvalidDefaultsError, MissingDefaultsError
from entitystore.domain.entities import FieldDefinition, FieldType
from entitystore.domain.services.backfill import (
    DecisionKind,
    MigrationPlan,
    apply_plan,
    classify_field_changes,
    plan_migration,
    resolve_default,
)


def _string(required=False, order=0):
    return FieldDefinition(label="Name", type=FieldType.STRING, required=required, order=order)


def _number(required=False, order=0):
    return FieldDefinition(label="Rack Unit", type=FieldType.NUMBER, required=required, order=order)


def _enum(required=False, order=0):
    return FieldDefinition(
        label="Status",
        type=FieldType.ENUM,
        required=required,
        order=order,
        enum_options=["active", "retired"],
    )


class TestClassifyFieldChanges:
    def test_newly_required_and_deleted(self):
        existing = {"name": _string(required=True), "rack_unit": _number(), "notes": _string()}
        new = {
            "name": _string(required=True),
            "rack_unit": _number(required=True, order=1),
            "status": _enum(required=True, order=2),
        }

        changes = classify_field_changes(existing, new)

        assert changes.newly_required == ["rack_unit", "status"]
        assert changes.deleted_keys == ["notes"]

    def test_already_required_is_not_newly_required(self):
        existing = {"name": _string(required=True)}
        changes = classify_field_changes(existing, {"name": _string(required=True)})

        assert changes.newly_required == []
        assert changes.deleted_keys == []

    def test_new_optional_field_is_ignored(self):
        changes = classify_field_changes({}, {"notes": _string()})
        assert changes.newly_required == []


class TestResolveDefault:
    def test_missing(self):
        assert resolve_default(_string(True), None).kind == DecisionKind.MISSING
        assert resolve_default(_string(True), "  ").kind == DecisionKind.MISSING
        assert resolve_default(_enum(True), "").kind == DecisionKind.MISSING
        assert resolve_default(_number(True), None).kind == DecisionKind.MISSING

    def test_blank_string_for_non_text_types_is_invalid(self):
        assert resolve_default(_number(True), "").kind == DecisionKind.INVALID
        boolean = FieldDefinition(label="Managed", type=FieldType.BOOLEAN, required=True)
        assert resolve_default(boolean, "").kind == DecisionKind.INVALID

    def test_enum_default(self):
        decision = resolve_default(_enum(True), "active")
        assert decision.kind == DecisionKind.ENUM_DEFAULT
        assert decision.value == "active"
        assert resolve_default(_enum(True), "broken").kind == DecisionKind.INVALID

    def test_string_is_trimmed(self):
        decision = resolve_default(_string(True), "  core  ")
        assert decision.kind == DecisionKind.SANITIZED
        assert decision.value == "core"
        assert resolve_default(_string(True), 5).kind == DecisionKind.INVALID

    def test_number(self):
        assert resolve_default(_number(True), 1).value == 1
        assert resolve_default(_number(True), "1.5").value == 1.5
        assert resolve_default(_number(True), 0).value == 0
        assert resolve_default(_number(True), "one").kind == DecisionKind.INVALID
        assert resolve_default(_number(True), False).kind == DecisionKind.INVALID

    def test_boolean(self):
        definition = FieldDefinition(label="Managed", type=FieldType.BOOLEAN, required=True)
        assert resolve_default(definition, False).value is False
        assert resolve_default(definition, "true").value is True
        assert resolve_default(definition, "maybe").kind == DecisionKind.INVALID

    def test_date(self):
        definition = FieldDefinition(label="Installed", type=FieldType.DATE, required=True)
        decision = resolve_default(definition, "2024-05-01")
        assert decision.kind == DecisionKind.SANITIZED
        assert decision.value == "2024-05-01T00:00:00Z"
        assert resolve_default(definition, "soon").kind == DecisionKind.INVALID


class TestPlanMigration:
    def test_plan_with_all_defaults(self):
        existing = {"rack_unit": _number(), "notes": _string(order=1)}
        new = {"rack_unit": _number(required=True)}

        plan = plan_migration(existing, new, {"rack_unit": 1})

        assert plan.backfill == {"rack_unit": 1}
        assert plan.deleted_keys == ["notes"]
        assert not plan.is_noop

    def test_missing_reported_before_invalid(self):
        new = {
            "rack_unit": _number(required=True),
            "status": _enum(required=True, order=1),
        }
        with pytest.raises(MissingDefaultsError) as exc_info:
            plan_migration({}, new, {"rack_unit": "abc"})
        assert exc_info.value.keys == ["status"]

    def test_invalid_defaults(self):
        new = {
            "rack_unit": _number(required=True),
            "status": _enum(required=True, order=1),
        }
        with pytest.raises(InvalidDefaultsError) as exc_info:
            plan_migration({}, new, {"rack_unit": "abc", "status": "broken"})
        assert exc_info.value.keys == ["rack_unit", "status"]

    def test_noop_plan(self):
        fields = {"name": _string(required=True)}
        assert plan_migration(fields, fields).is_noop


class TestApplyPlan:
    def test_backfills_absent_and_null_only(self):
        plan = MigrationPlan(backfill={"rack_unit": 1})

        assert apply_plan({}, plan) == {"rack_unit": 1}
        assert apply_plan({"rack_unit": None}, plan) == {"rack_unit": 1}
        assert apply_plan({"rack_unit": 0}, plan) == {"rack_unit": 0}
        assert apply_plan({"rack_unit": ""}, plan) == {"rack_unit": ""}

    def test_prunes_deleted_and_forbidden_keys(self):
        plan = MigrationPlan(deleted_keys=["notes"])
        values = {"name": "a", "notes": "old", "__proto__": {}}

        assert apply_plan(values, plan) == {"name": "a"}

    def test_does_not_mutate_input(self):
        values = {"notes": "old"}
        apply_plan(values, MigrationPlan(deleted_keys=["notes"]))
        assert values == {"notes": "old"}

    def test_idempotent(self):
        plan = MigrationPlan(backfill={"rack_unit": 1}, deleted_keys=["notes"])
        once = apply_plan({"notes": "x"}, plan)
        assert apply_plan(once, plan) == once
