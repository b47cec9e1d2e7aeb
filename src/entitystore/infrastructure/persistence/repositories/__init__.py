"""Repositories for database access."""

from entitystore.infrastructure.persistence.repositories.entity_repository import (
    EntityRepository,
)
from entitystore.infrastructure.persistence.repositories.record_repository import (
    RecordRepository,
)

__all__ = ["EntityRepository", "RecordRepository"]
