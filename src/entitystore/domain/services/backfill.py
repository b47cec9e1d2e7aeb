"""Migration planning for entity schema updates.

When an entity's field map is replaced, existing records must be
reconciled: fields that became required are backfilled from caller
supplied defaults and values of deleted fields are pruned. Planning is
pure and runs to completion before any write, so either every newly
required field has a usable default or the update is rejected.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from entitystore.core.exceptions import InvalidDefaultsError, MissingDefaultsError
from entitystore.domain.entities.field_definition import (
    FORBIDDEN_KEYS,
    FieldDefinition,
    FieldMap,
    FieldType,
    fields_in_order,
)
from entitystore.domain.services.values_validator import (
    coerce_instant,
    coerce_number,
    format_instant,
    is_blank,
)


class DecisionKind(str, Enum):
    ENUM_DEFAULT = "enum_default"
    SANITIZED = "sanitized"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass(frozen=True)
class BackfillDecision:
    kind: DecisionKind
    value: Any = None

    @property
    def usable(self) -> bool:
        return self.kind in (DecisionKind.ENUM_DEFAULT, DecisionKind.SANITIZED)


@dataclass
class FieldChanges:
    """Field deltas between two versions of an entity schema."""

    newly_required: list[str] = field(default_factory=list)
    deleted_keys: list[str] = field(default_factory=list)


@dataclass
class MigrationPlan:
    """Record rewrite plan produced once all defaults are resolved."""

    backfill: dict[str, Any] = field(default_factory=dict)
    deleted_keys: list[str] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.backfill and not self.deleted_keys


def classify_field_changes(existing: FieldMap, new: FieldMap) -> FieldChanges:
    """Find fields that became required and fields that were removed.

    A field is newly required when it is required in the new map and was
    either absent or optional in the existing map.
    """
    newly_required = [
        key
        for key, definition in fields_in_order(new)
        if definition.required and (key not in existing or not existing[key].required)
    ]
    deleted_keys = [key for key in existing if key not in new]
    return FieldChanges(newly_required=newly_required, deleted_keys=deleted_keys)


def _sanitize_boolean(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw.strip().lower() == "true"
    return None


def resolve_default(definition: FieldDefinition, raw: Any) -> BackfillDecision:
    """Resolve the backfill decision for one newly required field.

    Absent and None values are ``missing``, as are blank strings for string
    and enum fields. Values that do not coerce to the field type (or are
    outside the enum options) are ``invalid``.
    """
    if raw is None:
        return BackfillDecision(DecisionKind.MISSING)
    if definition.type in (FieldType.STRING, FieldType.ENUM) and is_blank(raw):
        return BackfillDecision(DecisionKind.MISSING)

    if definition.type == FieldType.ENUM:
        options = definition.enum_options or []
        if options and isinstance(raw, str) and raw in options:
            return BackfillDecision(DecisionKind.ENUM_DEFAULT, raw)
        return BackfillDecision(DecisionKind.INVALID)

    if definition.type == FieldType.STRING:
        if isinstance(raw, str):
            return BackfillDecision(DecisionKind.SANITIZED, raw.strip())
        return BackfillDecision(DecisionKind.INVALID)

    if definition.type == FieldType.NUMBER:
        number = coerce_number(raw)
        if number is None:
            return BackfillDecision(DecisionKind.INVALID)
        return BackfillDecision(DecisionKind.SANITIZED, number)

    if definition.type == FieldType.BOOLEAN:
        flag = _sanitize_boolean(raw)
        if flag is None:
            return BackfillDecision(DecisionKind.INVALID)
        return BackfillDecision(DecisionKind.SANITIZED, flag)

    if definition.type == FieldType.DATE:
        instant = coerce_instant(raw)
        if instant is None:
            return BackfillDecision(DecisionKind.INVALID)
        return BackfillDecision(DecisionKind.SANITIZED, format_instant(instant))

    return BackfillDecision(DecisionKind.INVALID)


def plan_migration(
    existing: FieldMap,
    new: FieldMap,
    raw_defaults: dict[str, Any] | None = None,
) -> MigrationPlan:
    """Build the record rewrite plan for an entity update.

    Raises:
        MissingDefaultsError: If any newly required field lacks a default.
        InvalidDefaultsError: If any supplied default fails coercion.
    """
    raw_defaults = raw_defaults or {}
    changes = classify_field_changes(existing, new)

    decisions = {
        key: resolve_default(new[key], raw_defaults.get(key))
        for key in changes.newly_required
    }

    missing = [key for key, d in decisions.items() if d.kind == DecisionKind.MISSING]
    if missing:
        raise MissingDefaultsError(missing)

    invalid = [key for key, d in decisions.items() if d.kind == DecisionKind.INVALID]
    if invalid:
        raise InvalidDefaultsError(invalid)

    return MigrationPlan(
        backfill={key: d.value for key, d in decisions.items()},
        deleted_keys=changes.deleted_keys,
    )


def apply_plan(field_values: dict[str, Any], plan: MigrationPlan) -> dict[str, Any]:
    """Return the rewritten field values of one record.

    Deleted and forbidden keys are removed. Backfill only fills values that
    are absent or None; an existing empty string is left untouched.
    """
    deleted = set(plan.deleted_keys)
    rewritten = {
        key: value
        for key, value in field_values.items()
        if key not in deleted and key not in FORBIDDEN_KEYS
    }
    for key, default in plan.backfill.items():
        if rewritten.get(key) is None:
            rewritten[key] = default
    return rewritten
