"""Record domain type."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from entitystore.domain.entities.entity import utcnow


@dataclass
class Record:
    """An instance of an entity.

    Attributes:
        id: Unique identifier (UUID string).
        entity_id: Owning entity ID.
        field_values: Mapping of field key to value, validated at write time.
        metadata: Free-form JSON object, unrelated to the entity's fields.
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last updated.
    """

    id: str
    entity_id: str
    field_values: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
