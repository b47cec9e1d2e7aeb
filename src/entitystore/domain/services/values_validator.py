"""Dynamic field-values validation built from an entity's field map.

Entities are user-defined, so there is no static type per entity. Each
field map is compiled into a pydantic model whose fields are the entity's
field keys, each with a type-specific rule that validates and normalizes
the value. Compiled validators are cached by a fingerprint of the field
map, so an edited entity always gets a fresh validator.
"""

import hashlib
import json
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Annotated, Any, Callable

from pydantic import BeforeValidator, ConfigDict, Field, ValidationError, create_model
from pydantic_core import PydanticCustomError

from entitystore.core.config import get_settings
from entitystore.domain.entities.field_definition import (
    FieldDefinition,
    FieldMap,
    FieldType,
    field_map_from_dict,
    field_map_to_dict,
    fields_in_order,
)

Rule = Callable[[Any], Any]


@dataclass
class FieldError:
    """A single field value validation failure."""

    field_key: str
    message: str


@dataclass
class FieldValuesResult:
    """Outcome of validating a field-values object.

    ``values`` holds the normalized, JSON-ready values when validation passed.
    """

    values: dict[str, Any] = field(default_factory=dict)
    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def field_errors(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.field_key, []).append(error.message)
        return grouped


# --- Coercion helpers (shared with backfill default resolution) ---


def is_blank(value: Any) -> bool:
    """None and whitespace-only strings carry no value."""
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_number(value: Any) -> int | float | None:
    """Coerce a value to a finite number, or return None if impossible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def coerce_instant(value: Any) -> datetime | None:
    """Coerce a value to a timezone-aware UTC datetime, or return None.

    Accepts datetimes (naive ones are treated as UTC), dates, ISO-8601
    strings and numbers interpreted as epoch milliseconds.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return coerce_instant(parsed)
    return None


def format_instant(instant: datetime) -> str:
    """Render an instant in its canonical stored form (ISO-8601, UTC, 'Z')."""
    return instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# --- Per-type rules ---


def _required_error(definition: FieldDefinition) -> PydanticCustomError:
    return PydanticCustomError(
        "required", "{label} is required", {"label": definition.label}
    )


def _string_rule(definition: FieldDefinition) -> Rule:
    def rule(value: Any) -> Any:
        if value is None:
            if definition.required:
                raise _required_error(definition)
            return None
        if not isinstance(value, str):
            raise PydanticCustomError(
                "string_type", "{label} must be a string", {"label": definition.label}
            )
        if definition.required and not value.strip():
            raise _required_error(definition)
        return value

    return rule


def _number_rule(definition: FieldDefinition) -> Rule:
    def rule(value: Any) -> Any:
        if is_blank(value):
            if definition.required:
                raise _required_error(definition)
            return None
        number = coerce_number(value)
        if number is None:
            raise PydanticCustomError(
                "number_invalid",
                "{label} must be a valid number",
                {"label": definition.label},
            )
        return number

    return rule


def _boolean_rule(definition: FieldDefinition) -> Rule:
    def rule(value: Any) -> Any:
        if value is None:
            if definition.required:
                raise _required_error(definition)
            return None
        if not isinstance(value, bool):
            raise PydanticCustomError(
                "boolean_type", "{label} must be a boolean", {"label": definition.label}
            )
        return value

    return rule


def _date_rule(definition: FieldDefinition) -> Rule:
    def rule(value: Any) -> Any:
        if is_blank(value):
            if definition.required:
                raise _required_error(definition)
            return None
        instant = coerce_instant(value)
        if instant is None:
            raise PydanticCustomError(
                "date_invalid", "{label} must be a valid date", {"label": definition.label}
            )
        return format_instant(instant)

    return rule


def _enum_rule(definition: FieldDefinition) -> Rule:
    options = list(definition.enum_options or [])

    def rule(value: Any) -> Any:
        if is_blank(value):
            if definition.required:
                raise _required_error(definition)
            return value
        if not isinstance(value, str) or value not in options:
            raise PydanticCustomError(
                "enum_invalid",
                "{label} must be one of: {options}",
                {"label": definition.label, "options": ", ".join(options)},
            )
        return value

    return rule


_RULES: dict[FieldType, Callable[[FieldDefinition], Rule]] = {
    FieldType.STRING: _string_rule,
    FieldType.NUMBER: _number_rule,
    FieldType.BOOLEAN: _boolean_rule,
    FieldType.DATE: _date_rule,
    FieldType.ENUM: _enum_rule,
}


def build_rule(definition: FieldDefinition) -> Rule:
    """Build the validation/normalization rule for one field definition."""
    return _RULES[definition.type](definition)


def validate_single_value(definition: FieldDefinition, value: Any) -> tuple[Any, str | None]:
    """Validate one value against one field definition.

    Returns:
        Tuple of (normalized value, error message or None).
    """
    try:
        return build_rule(definition)(value), None
    except PydanticCustomError as e:
        return None, e.message()


class FieldValuesValidator:
    """Validator for field-values objects of one entity schema version."""

    def __init__(self, fields: FieldMap, fingerprint: str) -> None:
        self.fields = fields
        self.fingerprint = fingerprint

        # Internal names are longer than any valid field key, so they never
        # clash with a key or a BaseModel attribute
        self.keys_by_name: dict[str, str] = {}
        definitions: dict[str, Any] = {}
        for index, (key, definition) in enumerate(fields_in_order(fields)):
            name = f"v{fingerprint}_{index}"
            self.keys_by_name[name] = key
            definitions[name] = (
                Annotated[Any, BeforeValidator(build_rule(definition))],
                Field(default=None, alias=key, validate_default=True),
            )

        self.model = create_model(
            f"FieldValues_{fingerprint[:12]}",
            __config__=ConfigDict(extra="allow", populate_by_name=False),
            **definitions,
        )

    def validate(self, values: Any) -> FieldValuesResult:
        """Validate and normalize a candidate field-values object.

        Unknown keys are passed through unchanged. Missing optional keys are
        left out of the normalized values.
        """
        if not isinstance(values, dict):
            return FieldValuesResult(
                errors=[FieldError("fieldValues", "Field values must be an object")]
            )

        try:
            instance = self.model.model_validate(values)
        except ValidationError as e:
            return FieldValuesResult(errors=[self._field_error(error) for error in e.errors()])

        return FieldValuesResult(values=instance.model_dump(by_alias=True, exclude_unset=True))

    def _field_error(self, error: Any) -> FieldError:
        # Defaults are validated under the internal name, input values under the alias
        loc = error.get("loc") or ("fieldValues",)
        name = str(loc[0])
        return FieldError(self.keys_by_name.get(name, name), error["msg"])


def _canonical_json(fields: FieldMap) -> str:
    return json.dumps(field_map_to_dict(fields), sort_keys=True, separators=(",", ":"))


def schema_fingerprint(fields: FieldMap) -> str:
    """Hash of the canonical JSON of a field map (the cache key)."""
    return hashlib.sha256(_canonical_json(fields).encode("utf-8")).hexdigest()


def _compile(fingerprint: str, canonical: str) -> FieldValuesValidator:
    return FieldValuesValidator(field_map_from_dict(json.loads(canonical)), fingerprint)


_compiled: Callable[[str, str], FieldValuesValidator] | None = None


def _compiler() -> Callable[[str, str], FieldValuesValidator]:
    global _compiled
    if _compiled is None:
        _compiled = lru_cache(maxsize=get_settings().validator_cache_size)(_compile)
    return _compiled


def build_values_validator(fields: FieldMap) -> FieldValuesValidator:
    """Build (or fetch from cache) the validator for a field map.

    The field map is snapshotted through its canonical JSON, so later
    mutation of the caller's map never affects the cached validator.
    """
    canonical = _canonical_json(fields)
    fingerprint = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return _compiler()(fingerprint, canonical)


def clear_validator_cache() -> None:
    """Drop all compiled validators."""
    global _compiled
    _compiled = None


def strip_unknown_and_empty(values: dict[str, Any], fields: FieldMap) -> dict[str, Any]:
    """Prepare validated values for storage.

    Drops keys that are not defined fields and empty values of non-required
    fields, so meaningless placeholders are never persisted.
    """
    cleaned: dict[str, Any] = {}
    for key, value in values.items():
        definition = fields.get(key)
        if definition is None:
            continue
        if not definition.required and is_blank(value):
            continue
        cleaned[key] = value
    return cleaned
