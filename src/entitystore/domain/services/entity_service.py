"""Entity service for business logic.

Handles entity creation, schema updates (including the reconciliation of
existing records) and deletion.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.core.config import Settings, get_settings
from entitystore.core.exceptions import (
    ConflictError,
    DuplicateNameError,
    EntityNotFoundError,
    FieldCountExceededError,
    ValidationFailedError,
)
from entitystore.core.identifiers import ensure_valid_id, new_id
from entitystore.core.logging import get_logger
from entitystore.domain.entities import (
    Entity,
    FieldMap,
    field_map_from_dict,
    field_map_to_dict,
)
from entitystore.domain.entities.entity import utcnow
from entitystore.domain.services.backfill import MigrationPlan, apply_plan, plan_migration
from entitystore.domain.services.entity_validator import (
    EntityValidator,
    errors_to_field_map,
)
from entitystore.infrastructure.persistence.models import EntityModel
from entitystore.infrastructure.persistence.repositories import (
    EntityRepository,
    RecordRepository,
)
from entitystore.infrastructure.persistence.transaction import transaction

logger = get_logger(__name__)

STALE_VERSION_MESSAGE = (
    "The entity was modified by another operation. Please reload and try again."
)


def to_entity(model: EntityModel) -> Entity:
    """Convert a persisted entity row to the domain type."""
    return Entity(
        id=model.id,
        name=model.name,
        description=model.description,
        fields=field_map_from_dict(model.fields or {}),
        version=model.version,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _clean_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip() or None


class EntityService:
    """Service for entity business logic."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            settings: Optional settings; defaults to the cached application settings.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.repository = EntityRepository(session)
        self.record_repository = RecordRepository(session)

    def validate_definition(
        self, name: Any, fields: Any, description: Any = None
    ) -> FieldMap:
        """Validate a candidate entity definition and parse its field map.

        Raises:
            FieldCountExceededError: If there are more fields than allowed.
            ValidationFailedError: If the name, description or fields are invalid.
        """
        maximum = self.settings.max_fields_per_entity
        if isinstance(fields, dict) and len(fields) > maximum:
            raise FieldCountExceededError(len(fields), maximum)

        errors = EntityValidator.validate(
            name,
            fields,
            description,
            max_name_length=self.settings.max_entity_name_length,
            max_description_length=self.settings.max_description_length,
        )
        if errors:
            raise ValidationFailedError(field_errors=errors_to_field_map(errors))

        return EntityValidator.parse_fields(fields)

    async def create_entity(
        self, name: str, fields: dict[str, Any], description: str | None = None
    ) -> Entity:
        """Create a new entity.

        Args:
            name: Entity name, unique across entities.
            fields: Mapping of field key to field definition.
            description: Optional description.

        Returns:
            The created entity.

        Raises:
            ValidationFailedError: If the definition is invalid.
            FieldCountExceededError: If there are too many fields.
            DuplicateNameError: If the name is already taken.
        """
        field_map = self.validate_definition(name, fields, description)
        name = name.strip()

        async with transaction(self.session, "create_entity", on_unique=DuplicateNameError):
            if await self.repository.name_exists(name):
                raise DuplicateNameError()

            model = EntityModel(
                id=new_id(),
                name=name,
                description=_clean_description(description),
                fields=field_map_to_dict(field_map),
            )
            await self.repository.create(model)

        logger.info(
            "Entity created",
            entity_id=model.id,
            entity_name=name,
            field_count=len(field_map),
        )
        return to_entity(model)

    async def update_entity(
        self,
        entity_id: str,
        name: str,
        fields: dict[str, Any],
        description: str | None = None,
        default_values: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> Entity:
        """Replace an entity's definition and reconcile its records.

        Newly required fields are backfilled from ``default_values`` on every
        record where the value is absent or null, and values of removed fields
        are pruned. The entity row and all record rewrites commit together.

        Args:
            entity_id: The entity to update.
            name: New entity name.
            fields: New field map (replaces the old one wholesale).
            description: New description.
            default_values: Backfill defaults keyed by field key.
            expected_version: Version the caller last read, if known.

        Returns:
            The updated entity.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            ValidationFailedError: If the definition is invalid.
            FieldCountExceededError: If there are too many fields.
            DuplicateNameError: If the new name is already taken.
            MissingDefaultsError: If a newly required field has no default.
            InvalidDefaultsError: If a supplied default does not fit its field.
            ConflictError: If the entity changed since ``expected_version``.
        """
        ensure_valid_id(entity_id, "entity_id")
        new_fields = self.validate_definition(name, fields, description)
        name = name.strip()

        async with transaction(self.session, "update_entity", on_unique=DuplicateNameError):
            model = await self.repository.get_by_id(entity_id)
            if model is None:
                raise EntityNotFoundError()

            if expected_version is not None and model.version != expected_version:
                raise ConflictError(STALE_VERSION_MESSAGE)

            existing_fields = field_map_from_dict(model.fields or {})
            plan = plan_migration(existing_fields, new_fields, default_values)

            if name != model.name and await self.repository.name_exists(
                name, exclude_id=entity_id
            ):
                raise DuplicateNameError()

            now = utcnow()
            model.name = name
            model.description = _clean_description(description)
            model.fields = field_map_to_dict(new_fields)
            model.updated_at = now
            await self.repository.update(model)

            rewritten = 0
            if not plan.is_noop:
                rewritten = await self._migrate_records(entity_id, plan)

        logger.info(
            "Entity updated",
            entity_id=entity_id,
            version=model.version,
            backfilled=sorted(plan.backfill),
            pruned=plan.deleted_keys,
            record_count=rewritten,
        )
        return to_entity(model)

    async def _migrate_records(self, entity_id: str, plan: MigrationPlan) -> int:
        """Apply a migration plan to every record of an entity.

        Only records whose values actually change are written.

        Returns:
            Number of records rewritten.
        """
        rows = await self.record_repository.get_field_values_by_entity(entity_id)
        changes = []
        for record_id, values in rows:
            rewritten = apply_plan(values, plan)
            if rewritten != values:
                changes.append((record_id, rewritten))

        count = await self.record_repository.update_field_values(changes, utcnow())
        logger.debug(
            "Entity records migrated",
            entity_id=entity_id,
            scanned=len(rows),
            record_count=count,
        )
        return count

    async def delete_entity(self, entity_id: str) -> str:
        """Delete an entity and, through the storage cascade, its records.

        Returns:
            The deleted entity ID.

        Raises:
            EntityNotFoundError: If the entity does not exist.
        """
        ensure_valid_id(entity_id, "entity_id")

        async with transaction(self.session, "delete_entity"):
            deleted_id = await self.repository.delete_by_id(entity_id)
            if deleted_id is None:
                raise EntityNotFoundError()

        logger.info("Entity deleted", entity_id=entity_id)
        return deleted_id

    async def get_entity(self, entity_id: str) -> Entity:
        """Get an entity by ID.

        Raises:
            EntityNotFoundError: If the entity does not exist.
        """
        ensure_valid_id(entity_id, "entity_id")
        async with transaction(self.session, "get_entity"):
            model = await self.repository.get_by_id(entity_id)
            if model is None:
                raise EntityNotFoundError()
        return to_entity(model)

    async def list_entities(self) -> list[Entity]:
        """List all entities ordered by name."""
        async with transaction(self.session, "list_entities"):
            models = await self.repository.list_all()
        return [to_entity(model) for model in models]
