"""Entity domain type.

An entity is a user-defined record type: a unique name plus an ordered
mapping of field key to field definition. The field map is replaced
wholesale on edit; existing records are reconciled by the migration step.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from entitystore.domain.entities.field_definition import FieldMap, fields_in_order


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Entity:
    """Entity representing a dynamic record type.

    Attributes:
        id: Unique identifier (UUID string).
        name: Unique entity name.
        fields: Mapping of field key to field definition (at least one).
        description: Optional free-text description.
        version: Optimistic concurrency token, bumped on every update.
        created_at: Timestamp when the entity was created.
        updated_at: Timestamp when the entity was last updated.
    """

    id: str
    name: str
    fields: FieldMap
    description: str | None = None
    version: int = 1
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Entity ID is required")
        if not self.name:
            raise ValueError("Entity name is required")
        if not isinstance(self.fields, dict):
            raise ValueError("Fields must be a dictionary")

    @property
    def field_keys(self) -> list[str]:
        """Field keys in display order."""
        return [key for key, _ in fields_in_order(self.fields)]
