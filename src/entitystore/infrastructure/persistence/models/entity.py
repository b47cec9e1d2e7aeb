"""SQLAlchemy model for the entities table.

Entities store user-defined record types: a unique name and a JSON field
map keyed by field key.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entitystore.infrastructure.persistence.database import Base
from entitystore.infrastructure.persistence.models.types import JSONDocument


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityModel(Base):
    """SQLAlchemy model for the entities table.

    Attributes:
        id: Primary key (UUID string).
        name: Unique entity name.
        description: Optional description.
        fields: JSON map of field key to field definition.
        version: Optimistic concurrency counter, checked on every update.
        created_at: Timestamp when the entity was created.
        updated_at: Timestamp when the entity was last updated.
    """

    __tablename__ = "entities"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Entity ID (UUID)",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Entity name (unique)",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    fields: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        comment="Field definitions keyed by field key",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    records: Mapped[list["RecordModel"]] = relationship(  # noqa: F821
        "RecordModel",
        back_populates="entity",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Entity(id={self.id}, name={self.name})>"
