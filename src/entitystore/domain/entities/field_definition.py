"""Field definition value type.

A field definition is the typed schema for one named slot in a record:
its type, label, display order, required/sortable flags and, for enum
fields, the ordered set of allowed options.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FieldType(str, Enum):
    """Supported field types for entity schemas."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ENUM = "enum"


# Object keys never accepted as field keys or kept inside JSON documents
FORBIDDEN_KEYS = frozenset({"__proto__", "constructor", "prototype"})

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class FieldDefinition:
    """Definition of a single field in an entity schema.

    Attributes:
        label: Human-readable label.
        type: Field type.
        required: Whether records must carry a non-empty value.
        sortable: Whether collaborators may sort by this field.
        order: Display/processing order (non-negative).
        enum_options: Allowed values; present and non-empty only for enum fields.
    """

    label: str
    type: FieldType
    required: bool = False
    sortable: bool = True
    order: int = 0
    enum_options: list[str] | None = field(default=None)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FieldDefinition":
        """Build a definition from its persisted JSON shape.

        Raises:
            ValueError: If the type is not a known field type.
        """
        options = data.get("enumOptions", data.get("enum_options"))
        return cls(
            label=data.get("label", ""),
            type=FieldType(str(data.get("type", "")).lower()),
            required=bool(data.get("required", False)),
            sortable=bool(data.get("sortable", True)),
            order=data.get("order", 0),
            enum_options=list(options) if options is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        data: dict[str, Any] = {
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "sortable": self.sortable,
            "order": self.order,
        }
        if self.type == FieldType.ENUM and self.enum_options is not None:
            data["enumOptions"] = list(self.enum_options)
        return data


FieldMap = dict[str, FieldDefinition]


def validate_shape(definition: FieldDefinition) -> bool:
    """Check the enum/enum_options invariant.

    enum_options must be present and non-empty exactly when the type is enum.
    """
    has_options = bool(definition.enum_options)
    if definition.type == FieldType.ENUM:
        return has_options
    return not has_options


def field_key_from_label(label: str) -> str:
    """Derive a snake_case field key from a label.

    Example:
        >>> field_key_from_label("  Rack Unit (U) ")
        'rack_unit_u'
    """
    cleaned = _NON_SLUG_CHARS.sub("", label.strip().lower())
    return _WHITESPACE.sub("_", cleaned.strip())


def fields_in_order(fields: FieldMap) -> list[tuple[str, FieldDefinition]]:
    """Return field items sorted by (order, key)."""
    return sorted(fields.items(), key=lambda item: (item[1].order, item[0]))


def field_map_from_dict(data: dict[str, Any]) -> FieldMap:
    """Deserialize a persisted field map."""
    return {key: FieldDefinition.from_dict(value) for key, value in data.items()}


def field_map_to_dict(fields: FieldMap) -> dict[str, Any]:
    """Serialize a field map to its persisted JSON shape."""
    return {key: definition.to_dict() for key, definition in fields.items()}
