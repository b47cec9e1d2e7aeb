"""Sanitization of free-form record metadata."""

import json
from typing import Any

from entitystore.core.exceptions import MetadataInvalidError
from entitystore.domain.entities.field_definition import FORBIDDEN_KEYS


def strip_forbidden_keys(value: Any, max_depth: int, depth: int = 0) -> Any:
    """Recursively drop forbidden object keys from a JSON value.

    Raises:
        MetadataInvalidError: If nesting exceeds ``max_depth``.
    """
    if depth > max_depth:
        raise MetadataInvalidError("Metadata nesting too deep")

    if isinstance(value, dict):
        return {
            key: strip_forbidden_keys(item, max_depth, depth + 1)
            for key, item in value.items()
            if key not in FORBIDDEN_KEYS
        }
    if isinstance(value, list):
        return [strip_forbidden_keys(item, max_depth, depth + 1) for item in value]
    return value


def sanitize_metadata(
    metadata: Any, max_size: int, max_depth: int
) -> dict[str, Any] | None:
    """Validate and sanitize record metadata.

    Args:
        metadata: The candidate metadata value.
        max_size: Maximum serialized size in bytes.
        max_depth: Maximum nesting depth.

    Returns:
        The sanitized metadata object, or None when no metadata was given.

    Raises:
        MetadataInvalidError: If metadata is not a JSON object, is nested too
            deeply, is not serializable, or exceeds the size limit.
    """
    if metadata is None:
        return None

    if not isinstance(metadata, dict):
        raise MetadataInvalidError("Metadata must be a JSON object")

    sanitized = strip_forbidden_keys(metadata, max_depth)

    try:
        serialized = json.dumps(sanitized, allow_nan=False)
    except (TypeError, ValueError):
        raise MetadataInvalidError("Invalid metadata") from None

    if len(serialized.encode("utf-8")) > max_size:
        raise MetadataInvalidError(
            f"Metadata exceeds maximum size ({max_size // 1024}KB)"
        )

    return sanitized
