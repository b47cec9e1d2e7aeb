"""Unit tests for record metadata sanitization."""

import pytest

from entitystore.core.exceptions import MetadataInvalidError
from entitystore.domain.services.metadata_sanitizer import sanitize_metadata

MAX_SIZE = 16 * 1024
MAX_DEPTH = 10


def _sanitize(value):
    return sanitize_metadata(value, max_size=MAX_SIZE, max_depth=MAX_DEPTH)


def test_none_passes_through():
    assert _sanitize(None) is None


def test_plain_object_is_kept():
    metadata = {"source": "import", "tags": ["a", "b"], "nested": {"count": 2}}
    assert _sanitize(metadata) == metadata


@pytest.mark.parametrize("value", [["a"], "text", 3, True])
def test_non_object_rejected(value):
    with pytest.raises(MetadataInvalidError) as exc_info:
        _sanitize(value)
    assert exc_info.value.reason == "Metadata must be a JSON object"


def test_forbidden_keys_are_stripped_recursively():
    metadata = {
        "__proto__": {"admin": True},
        "nested": {"constructor": 1, "ok": 2},
        "items": [{"prototype": 3, "id": 4}],
    }

    assert _sanitize(metadata) == {"nested": {"ok": 2}, "items": [{"id": 4}]}


def test_nesting_too_deep():
    metadata: dict = {}
    current = metadata
    for _ in range(MAX_DEPTH + 1):
        current["child"] = {}
        current = current["child"]

    with pytest.raises(MetadataInvalidError) as exc_info:
        _sanitize(metadata)
    assert exc_info.value.reason == "Metadata nesting too deep"


def test_too_large():
    with pytest.raises(MetadataInvalidError) as exc_info:
        _sanitize({"blob": "x" * MAX_SIZE})
    assert "maximum size" in exc_info.value.reason


def test_not_serializable():
    with pytest.raises(MetadataInvalidError) as exc_info:
        _sanitize({"value": object()})
    assert exc_info.value.reason == "Invalid metadata"


def test_nan_rejected():
    with pytest.raises(MetadataInvalidError):
        _sanitize({"value": float("nan")})
