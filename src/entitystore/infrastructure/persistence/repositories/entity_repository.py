"""Repository for entity operations.

Provides CRUD operations for the entities table.
"""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.infrastructure.persistence.models import EntityModel


class EntityRepository:
    """Repository for entity database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

    async def create(self, entity: EntityModel) -> EntityModel:
        """Create a new entity.

        Args:
            entity: The entity model to create.

        Returns:
            The created entity model.
        """
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def update(self, entity: EntityModel) -> EntityModel:
        """Flush pending changes of a loaded entity.

        The version column is checked by the flush; a concurrent update
        raises StaleDataError.
        """
        await self.session.flush()
        return entity

    async def get_by_id(self, entity_id: str) -> EntityModel | None:
        """Get an entity by ID.

        Args:
            entity_id: The entity ID.

        Returns:
            The entity model if found, None otherwise.
        """
        result = await self.session.execute(
            select(EntityModel)
            .where(EntityModel.id == entity_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def name_exists(self, name: str, exclude_id: str | None = None) -> bool:
        """Check if an entity with the given name exists.

        Args:
            name: The entity name to check.
            exclude_id: Entity ID to ignore (the entity being renamed).

        Returns:
            True if the name exists, False otherwise.
        """
        query = select(EntityModel.id).where(EntityModel.name == name)
        if exclude_id is not None:
            query = query.where(EntityModel.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_all(self) -> list[EntityModel]:
        """List all entities ordered by name."""
        result = await self.session.execute(select(EntityModel).order_by(EntityModel.name))
        return list(result.scalars().all())

    async def get_fields_by_ids(self, entity_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Fetch the field maps of several entities in one query.

        Returns:
            Mapping of entity ID to its raw field map; unknown IDs are absent.
        """
        if not entity_ids:
            return {}
        result = await self.session.execute(
            select(EntityModel.id, EntityModel.fields).where(EntityModel.id.in_(entity_ids))
        )
        return {row.id: row.fields for row in result}

    async def delete_by_id(self, entity_id: str) -> str | None:
        """Delete an entity; storage cascades the delete to its records.

        Returns:
            The deleted entity ID, or None if no row matched.
        """
        result = await self.session.execute(
            delete(EntityModel).where(EntityModel.id == entity_id).returning(EntityModel.id)
        )
        return result.scalar_one_or_none()
