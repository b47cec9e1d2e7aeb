"""SQLAlchemy models for the EntityStore tables.

All models inherit from the Base class defined in database.py.
"""

from entitystore.infrastructure.persistence.models.entity import EntityModel
from entitystore.infrastructure.persistence.models.record import RecordModel

__all__ = [
    "EntityModel",
    "RecordModel",
]
