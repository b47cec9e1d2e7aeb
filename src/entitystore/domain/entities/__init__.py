"""Domain entities for EntityStore.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from entitystore.domain.entities.entity import Entity
from entitystore.domain.entities.field_definition import (
    FORBIDDEN_KEYS,
    FieldDefinition,
    FieldMap,
    FieldType,
    field_key_from_label,
    field_map_from_dict,
    field_map_to_dict,
    fields_in_order,
    validate_shape,
)
from entitystore.domain.entities.record import Record

__all__ = [
    "Entity",
    "FORBIDDEN_KEYS",
    "FieldDefinition",
    "FieldMap",
    "FieldType",
    "Record",
    "field_key_from_label",
    "field_map_from_dict",
    "field_map_to_dict",
    "fields_in_order",
    "validate_shape",
]
