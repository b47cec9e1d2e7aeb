"""Identifier helpers shared by the services."""

import re
import uuid

from entitystore.core.exceptions import ValidationFailedError

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def new_id() -> str:
    """Generate a new record or entity ID (UUID4 string)."""
    return str(uuid.uuid4())


def is_valid_uuid(value: object) -> bool:
    """Check that a value is a canonical 36-character UUID string."""
    return isinstance(value, str) and len(value) == 36 and UUID_PATTERN.match(value) is not None


def invalid_ids(values: list[object], limit: int = 3) -> str | None:
    """Describe malformed IDs in a list, or return None if all are well-formed.

    Only the first ``limit`` offending values are listed.
    """
    bad = [str(v) for v in values if not is_valid_uuid(v)]
    if not bad:
        return None
    shown = ", ".join(bad[:limit])
    return f"{shown}..." if len(bad) > limit else shown


def ensure_valid_id(value: object, field: str) -> str:
    """Return ``value`` if it is a well-formed ID.

    Raises:
        ValidationFailedError: If the ID is malformed; keyed by ``field``.
    """
    if not is_valid_uuid(value):
        message = f"Invalid {field.replace('_', ' ')} format"
        raise ValidationFailedError(message, {field: [message]})
    return value  # type: ignore[return-value]
