"""Repository for record operations.

Records are always read and written through their owning entity's ID;
field values are stored as a single JSON document per row.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.infrastructure.persistence.models import RecordModel


class RecordRepository:
    """Repository for record database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, record: RecordModel) -> RecordModel:
        """Insert a single record.

        Args:
            record: The record model to insert.

        Returns:
            The inserted record model.
        """
        self.session.add(record)
        await self.session.flush()
        return record

    async def create_many(self, records: list[RecordModel]) -> list[RecordModel]:
        """Insert several records in one flush."""
        self.session.add_all(records)
        await self.session.flush()
        return records

    async def get_by_id(self, record_id: str) -> RecordModel | None:
        """Get a record by ID.

        Args:
            record_id: The record ID.

        Returns:
            The record model if found, None otherwise.
        """
        result = await self.session.execute(
            select(RecordModel)
            .where(RecordModel.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, record_ids: list[str]) -> list[RecordModel]:
        """Get every existing record among the given IDs."""
        if not record_ids:
            return []
        result = await self.session.execute(
            select(RecordModel)
            .where(RecordModel.id.in_(record_ids))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_by_entity(
        self, entity_id: str, offset: int = 0, limit: int = 50
    ) -> list[RecordModel]:
        """List an entity's records, oldest first.

        Args:
            entity_id: The owning entity ID.
            offset: Number of records to skip.
            limit: Maximum number of records to return.

        Returns:
            Records ordered by (created_at, id).
        """
        result = await self.session.execute(
            select(RecordModel)
            .where(RecordModel.entity_id == entity_id)
            .order_by(RecordModel.created_at, RecordModel.id)
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def count_by_entity(self, entity_id: str) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(RecordModel).where(
                RecordModel.entity_id == entity_id
            )
        )
        return result.scalar_one()

    async def count_missing_keys(self, entity_id: str, field_keys: list[str]) -> int:
        """Count an entity's records lacking any of the keys or holding null for one.

        Extracting a key as text yields NULL both when it is absent and when it
        holds JSON null, on SQLite and PostgreSQL alike.
        """
        if not field_keys:
            return 0
        missing = [RecordModel.field_values[key].as_string().is_(None) for key in field_keys]
        result = await self.session.execute(
            select(func.count())
            .select_from(RecordModel)
            .where(RecordModel.entity_id == entity_id, or_(*missing))
        )
        return result.scalar_one()

    async def get_field_values_by_entity(
        self, entity_id: str
    ) -> list[tuple[str, dict[str, Any]]]:
        """Load (id, field_values) pairs of an entity's records.

        Rows are returned in a stable order (created_at, id) so that
        migrations rewrite records deterministically.
        """
        result = await self.session.execute(
            select(RecordModel.id, RecordModel.field_values)
            .where(RecordModel.entity_id == entity_id)
            .order_by(RecordModel.created_at, RecordModel.id)
        )
        return [(row.id, row.field_values or {}) for row in result]

    async def update_field_values(
        self, changes: list[tuple[str, dict[str, Any]]], updated_at: datetime
    ) -> int:
        """Rewrite the field values of several records by primary key.

        Args:
            changes: Pairs of (record ID, new field values).
            updated_at: Timestamp written to every changed row.

        Returns:
            Number of rows submitted for update.
        """
        if not changes:
            return 0
        await self.session.execute(
            update(RecordModel),
            [
                {"id": record_id, "field_values": values, "updated_at": updated_at}
                for record_id, values in changes
            ],
        )
        return len(changes)

    async def delete_by_id(self, record_id: str) -> str | None:
        """Delete a record.

        Returns:
            The deleted record ID, or None if no row matched.
        """
        result = await self.session.execute(
            delete(RecordModel).where(RecordModel.id == record_id).returning(RecordModel.id)
        )
        return result.scalar_one_or_none()

    async def delete_by_ids(self, record_ids: list[str]) -> list[str]:
        """Delete several records in one statement.

        Returns:
            IDs of the rows actually deleted; unknown IDs are absent.
        """
        if not record_ids:
            return []
        result = await self.session.execute(
            delete(RecordModel)
            .where(RecordModel.id.in_(record_ids))
            .returning(RecordModel.id)
        )
        return list(result.scalars().all())
