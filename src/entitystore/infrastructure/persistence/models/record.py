"""SQLAlchemy model for the records table.

Records hold validated field values for their entity as a JSON document,
plus an optional free-form metadata document.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from entitystore.infrastructure.persistence.database import Base
from entitystore.infrastructure.persistence.models.entity import _utcnow
from entitystore.infrastructure.persistence.models.types import JSONDocument


class RecordModel(Base):
    """SQLAlchemy model for the records table.

    Attributes:
        id: Primary key (UUID string).
        entity_id: Owning entity; rows are removed when the entity is deleted.
        field_values: JSON map of field key to value.
        record_metadata: Free-form JSON object (column ``metadata``).
        created_at: Timestamp when the record was created.
        updated_at: Timestamp when the record was last updated.
    """

    __tablename__ = "records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Record ID (UUID)",
    )
    entity_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("entities.id", ondelete="CASCADE"),
        nullable=False,
    )
    field_values: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    record_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONDocument,
        nullable=True,
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

    entity: Mapped["EntityModel"] = relationship(  # noqa: F821
        "EntityModel",
        back_populates="records",
    )

    __table_args__ = (
        Index("ix_records_entity_id_created_at", "entity_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Record(id={self.id}, entity_id={self.entity_id})>"
