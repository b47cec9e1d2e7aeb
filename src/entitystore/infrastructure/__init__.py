"""Infrastructure layer - External dependencies and implementations.

This layer contains the relational storage adapter (SQLAlchemy async) that
the domain services run their transactions against.
"""

from entitystore.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    get_db_manager,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
]
