"""Entity validation service for names and field definitions.

Validates entity names, descriptions and field maps before they are
persisted. Supports field types: string, number, boolean, date, enum.
"""

import re
from dataclasses import dataclass
from typing import Any

from entitystore.domain.entities.field_definition import (
    FORBIDDEN_KEYS,
    FieldDefinition,
    FieldMap,
    FieldType,
    field_map_from_dict,
    validate_shape,
)

# Pattern for valid field keys
FIELD_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class EntityValidationError:
    """A single entity validation error."""

    field: str
    message: str
    code: str


def errors_to_field_map(errors: list[EntityValidationError]) -> dict[str, list[str]]:
    """Group validation errors by path for form binding."""
    grouped: dict[str, list[str]] = {}
    for error in errors:
        grouped.setdefault(error.field, []).append(error.message)
    return grouped


class EntityValidator:
    """Validator for entity create and update requests."""

    MAX_NAME_LENGTH = 255
    MAX_DESCRIPTION_LENGTH = 2000
    MAX_FIELD_KEY_LENGTH = 64
    MAX_LABEL_LENGTH = 255

    @classmethod
    def validate_name(
        cls, name: Any, max_length: int | None = None
    ) -> list[EntityValidationError]:
        """Validate an entity name.

        Args:
            name: The entity name to validate.
            max_length: Maximum length; defaults to MAX_NAME_LENGTH.

        Returns:
            List of validation errors (empty if valid).
        """
        if not isinstance(name, str) or not name.strip():
            return [
                EntityValidationError(
                    field="name",
                    message="Entity name is required",
                    code="name_required",
                )
            ]

        max_length = max_length or cls.MAX_NAME_LENGTH
        if len(name) > max_length:
            return [
                EntityValidationError(
                    field="name",
                    message=f"Entity name must be at most {max_length} characters",
                    code="name_too_long",
                )
            ]

        return []

    @classmethod
    def validate_description(
        cls, description: Any, max_length: int | None = None
    ) -> list[EntityValidationError]:
        max_length = max_length or cls.MAX_DESCRIPTION_LENGTH
        if description is None:
            return []
        if not isinstance(description, str):
            return [
                EntityValidationError(
                    field="description",
                    message="Description must be a string",
                    code="description_invalid",
                )
            ]
        if len(description) > max_length:
            return [
                EntityValidationError(
                    field="description",
                    message=f"Description must be at most {max_length} characters",
                    code="description_too_long",
                )
            ]
        return []

    @classmethod
    def validate_field_key(cls, key: Any) -> list[EntityValidationError]:
        """Validate a field key.

        Args:
            key: The field key to validate.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        path = f"fields.{key}"

        if not isinstance(key, str) or not key:
            return [
                EntityValidationError(
                    field="fields",
                    message="Field key is required",
                    code="field_key_required",
                )
            ]

        if len(key) > cls.MAX_FIELD_KEY_LENGTH:
            errors.append(
                EntityValidationError(
                    field=path,
                    message=f"Field key must be at most {cls.MAX_FIELD_KEY_LENGTH} characters",
                    code="field_key_too_long",
                )
            )

        if key in FORBIDDEN_KEYS:
            errors.append(
                EntityValidationError(
                    field=path,
                    message=f"Field key '{key}' is reserved and cannot be used",
                    code="field_key_reserved",
                )
            )
        elif not FIELD_KEY_PATTERN.match(key):
            errors.append(
                EntityValidationError(
                    field=path,
                    message="Field key must start with a letter or underscore and contain only alphanumeric characters and underscores",
                    code="field_key_invalid_format",
                )
            )

        return errors

    @classmethod
    def validate_enum_options(cls, options: Any, path: str) -> list[EntityValidationError]:
        """Validate the option list of an enum field."""
        if not isinstance(options, list) or not options:
            return [
                EntityValidationError(
                    field=f"{path}.enumOptions",
                    message="Enum options are required for enum type fields",
                    code="enum_options_required",
                )
            ]

        errors = []
        seen: set[str] = set()
        for option in options:
            if not isinstance(option, str) or not option.strip():
                errors.append(
                    EntityValidationError(
                        field=f"{path}.enumOptions",
                        message="Enum options must be non-empty strings",
                        code="enum_option_invalid",
                    )
                )
                continue
            if option in seen:
                errors.append(
                    EntityValidationError(
                        field=f"{path}.enumOptions",
                        message=f"Duplicate enum option '{option}'",
                        code="enum_option_duplicate",
                    )
                )
            seen.add(option)
        return errors

    @classmethod
    def validate_field(cls, key: str, definition: Any) -> list[EntityValidationError]:
        """Validate a single field definition.

        Args:
            key: The field key.
            definition: The raw field definition dict.

        Returns:
            List of validation errors (empty if valid).
        """
        path = f"fields.{key}"
        errors = cls.validate_field_key(key)

        if isinstance(definition, FieldDefinition):
            definition = definition.to_dict()

        if not isinstance(definition, dict):
            errors.append(
                EntityValidationError(
                    field=path,
                    message="Field definition must be an object",
                    code="field_definition_invalid",
                )
            )
            return errors

        label = definition.get("label")
        if not isinstance(label, str) or not label.strip():
            errors.append(
                EntityValidationError(
                    field=f"{path}.label",
                    message="Field label is required",
                    code="field_label_required",
                )
            )
        elif len(label) > cls.MAX_LABEL_LENGTH:
            errors.append(
                EntityValidationError(
                    field=f"{path}.label",
                    message=f"Field label must be at most {cls.MAX_LABEL_LENGTH} characters",
                    code="field_label_too_long",
                )
            )

        field_type = definition.get("type")
        valid_types = [t.value for t in FieldType]
        if not isinstance(field_type, str) or field_type.lower() not in valid_types:
            errors.append(
                EntityValidationError(
                    field=f"{path}.type",
                    message=f"Invalid field type '{field_type}'. Valid types: {', '.join(valid_types)}",
                    code="field_type_invalid",
                )
            )
            field_type = None
        else:
            field_type = field_type.lower()

        for flag in ("required", "sortable"):
            if flag in definition and not isinstance(definition[flag], bool):
                errors.append(
                    EntityValidationError(
                        field=f"{path}.{flag}",
                        message=f"'{flag}' must be a boolean",
                        code=f"field_{flag}_invalid",
                    )
                )

        order = definition.get("order", 0)
        if isinstance(order, bool) or not isinstance(order, int) or order < 0:
            errors.append(
                EntityValidationError(
                    field=f"{path}.order",
                    message="Order must be a non-negative integer",
                    code="field_order_invalid",
                )
            )

        if field_type is not None:
            errors.extend(cls.validate_options_shape(FieldType(field_type), definition, path))

        return errors

    @classmethod
    def validate_options_shape(
        cls, field_type: FieldType, definition: dict[str, Any], path: str
    ) -> list[EntityValidationError]:
        """Check enum options against the field type, then the options themselves."""
        options = definition.get("enumOptions", definition.get("enum_options"))
        if isinstance(options, list):
            candidate = options
        else:
            candidate = [options] if options else None
        shape = FieldDefinition(label="", type=field_type, enum_options=candidate)

        if field_type == FieldType.ENUM:
            if not validate_shape(shape):
                return [
                    EntityValidationError(
                        field=f"{path}.enumOptions",
                        message="Enum options are required for enum type fields",
                        code="enum_options_required",
                    )
                ]
            return cls.validate_enum_options(options, path)

        if not validate_shape(shape):
            return [
                EntityValidationError(
                    field=f"{path}.enumOptions",
                    message="Enum options are only allowed for enum type fields",
                    code="enum_options_not_allowed",
                )
            ]
        return []

    @classmethod
    def validate_fields(cls, fields: Any) -> list[EntityValidationError]:
        """Validate a field map.

        The field count limit is checked separately by the service.
        """
        if not isinstance(fields, dict) or not fields:
            return [
                EntityValidationError(
                    field="fields",
                    message="An entity must define at least one field",
                    code="fields_empty",
                )
            ]

        errors = []
        for key, definition in fields.items():
            errors.extend(cls.validate_field(key, definition))
        return errors

    @classmethod
    def validate(
        cls,
        name: Any,
        fields: Any,
        description: Any = None,
        max_name_length: int | None = None,
        max_description_length: int | None = None,
    ) -> list[EntityValidationError]:
        """Validate a complete entity definition.

        Args:
            name: The entity name.
            fields: Mapping of field key to field definition.
            description: Optional description.
            max_name_length: Overrides MAX_NAME_LENGTH.
            max_description_length: Overrides MAX_DESCRIPTION_LENGTH.

        Returns:
            List of validation errors (empty if valid).
        """
        errors = []
        errors.extend(cls.validate_name(name, max_name_length))
        errors.extend(cls.validate_description(description, max_description_length))
        errors.extend(cls.validate_fields(fields))
        return errors

    @staticmethod
    def parse_fields(fields: dict[str, Any]) -> FieldMap:
        """Convert a validated raw field map into field definitions."""
        raw = {
            key: value.to_dict() if isinstance(value, FieldDefinition) else value
            for key, value in fields.items()
        }
        return field_map_from_dict(raw)
