"""Record service for business logic.

Validates field values against the owning entity's current schema and
persists records. Validation always completes before any write.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.core.config import Settings, get_settings
from entitystore.core.exceptions import (
    EntityNotFoundError,
    NotFoundError,
    ValidationFailedError,
)
from entitystore.core.identifiers import ensure_valid_id, new_id
from entitystore.core.logging import get_logger
from entitystore.domain.entities import FieldMap, Record, field_map_from_dict
from entitystore.domain.entities.entity import utcnow
from entitystore.domain.services.metadata_sanitizer import sanitize_metadata
from entitystore.domain.services.values_validator import (
    build_values_validator,
    strip_unknown_and_empty,
)
from entitystore.infrastructure.persistence.models import RecordModel
from entitystore.infrastructure.persistence.repositories import (
    EntityRepository,
    RecordRepository,
)
from entitystore.infrastructure.persistence.transaction import transaction

logger = get_logger(__name__)

RECORD_NOT_FOUND_MESSAGE = "Record not found"


def to_record(model: RecordModel) -> Record:
    """Convert a persisted record row to the domain type."""
    return Record(
        id=model.id,
        entity_id=model.entity_id,
        field_values=dict(model.field_values or {}),
        metadata=model.record_metadata,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def prepare_field_values(fields: FieldMap, field_values: Any) -> dict[str, Any]:
    """Validate, normalize and clean a field-values object for storage.

    Raises:
        ValidationFailedError: With per-field messages if any value is invalid.
    """
    result = build_values_validator(fields).validate(field_values)
    if not result.ok:
        raise ValidationFailedError(field_errors=result.field_errors())
    return strip_unknown_and_empty(result.values, fields)


class RecordService:
    """Service for record business logic."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            settings: Optional settings; defaults to the cached application settings.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.entity_repository = EntityRepository(session)
        self.repository = RecordRepository(session)

    def _sanitize_metadata(self, metadata: Any) -> dict[str, Any] | None:
        return sanitize_metadata(
            metadata,
            max_size=self.settings.max_metadata_size,
            max_depth=self.settings.max_metadata_depth,
        )

    async def _get_entity_fields(self, entity_id: str) -> FieldMap:
        entity = await self.entity_repository.get_by_id(entity_id)
        if entity is None:
            raise EntityNotFoundError()
        return field_map_from_dict(entity.fields or {})

    async def create_record(
        self,
        entity_id: str,
        field_values: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> Record:
        """Create a record for an entity.

        Args:
            entity_id: The owning entity ID.
            field_values: Mapping of field key to value.
            metadata: Optional free-form JSON object.

        Returns:
            The created record with normalized values.

        Raises:
            ValidationFailedError: If the ID is malformed or values are invalid.
            EntityNotFoundError: If the entity does not exist.
            MetadataInvalidError: If the metadata is rejected.
        """
        ensure_valid_id(entity_id, "entity_id")

        async with transaction(self.session, "create_record"):
            fields = await self._get_entity_fields(entity_id)
            values = prepare_field_values(fields, field_values)
            clean_metadata = self._sanitize_metadata(metadata)

            model = RecordModel(
                id=new_id(),
                entity_id=entity_id,
                field_values=values,
                record_metadata=clean_metadata,
            )
            await self.repository.create(model)

        logger.info("Record created", record_id=model.id, entity_id=entity_id)
        return to_record(model)

    async def update_record(
        self,
        record_id: str,
        field_values: dict[str, Any],
        metadata: dict[str, Any] | None = None,
    ) -> Record:
        """Replace a record's values and metadata.

        ``field_values`` is the full values object; it is validated against
        the owning entity's current schema.

        Raises:
            NotFoundError: If the record does not exist.
            ValidationFailedError: If the ID is malformed or values are invalid.
            MetadataInvalidError: If the metadata is rejected.
        """
        ensure_valid_id(record_id, "record_id")

        async with transaction(self.session, "update_record"):
            model = await self.repository.get_by_id(record_id)
            if model is None:
                raise NotFoundError(RECORD_NOT_FOUND_MESSAGE)

            fields = await self._get_entity_fields(model.entity_id)
            values = prepare_field_values(fields, field_values)
            clean_metadata = self._sanitize_metadata(metadata)

            model.field_values = values
            model.record_metadata = clean_metadata
            model.updated_at = utcnow()
            await self.session.flush()

        logger.info("Record updated", record_id=record_id, entity_id=model.entity_id)
        return to_record(model)

    async def delete_record(self, record_id: str) -> str:
        """Delete a record.

        Returns:
            The deleted record ID.

        Raises:
            NotFoundError: If the record does not exist.
        """
        ensure_valid_id(record_id, "record_id")

        async with transaction(self.session, "delete_record"):
            deleted_id = await self.repository.delete_by_id(record_id)
            if deleted_id is None:
                raise NotFoundError(RECORD_NOT_FOUND_MESSAGE)

        logger.info("Record deleted", record_id=record_id)
        return deleted_id

    async def get_record(self, record_id: str) -> Record:
        """Get a record by ID.

        Raises:
            NotFoundError: If the record does not exist.
        """
        ensure_valid_id(record_id, "record_id")
        async with transaction(self.session, "get_record"):
            model = await self.repository.get_by_id(record_id)
            if model is None:
                raise NotFoundError(RECORD_NOT_FOUND_MESSAGE)
        return to_record(model)

    async def list_records(
        self, entity_id: str, offset: int = 0, limit: int = 50
    ) -> tuple[list[Record], int]:
        """List an entity's records, oldest first.

        Returns:
            Tuple of (records on this page, total record count of the entity).

        Raises:
            ValidationFailedError: If the ID or paging arguments are invalid.
            EntityNotFoundError: If the entity does not exist.
        """
        ensure_valid_id(entity_id, "entity_id")
        if offset < 0:
            raise ValidationFailedError(
                "Offset must not be negative", {"offset": ["Offset must not be negative"]}
            )
        if limit < 1:
            raise ValidationFailedError(
                "Limit must be at least 1", {"limit": ["Limit must be at least 1"]}
            )

        async with transaction(self.session, "list_records"):
            if await self.entity_repository.get_by_id(entity_id) is None:
                raise EntityNotFoundError()
            models = await self.repository.list_by_entity(entity_id, offset, limit)
            total = await self.repository.count_by_entity(entity_id)

        return [to_record(model) for model in models], total

    async def get_backfill_affected_record_count(
        self, entity_id: str, field_keys: list[str]
    ) -> int:
        """Count records that a backfill of the given fields would touch.

        A record is affected when its values lack any of the keys or hold
        null for it. Keys are trimmed and de-duplicated; no keys counts 0.
        """
        keys = list(dict.fromkeys(key.strip() for key in field_keys if key and key.strip()))
        if not keys:
            return 0

        ensure_valid_id(entity_id, "entity_id")

        async with transaction(self.session, "get_backfill_affected_record_count"):
            count = await self.repository.count_missing_keys(entity_id, keys)

        logger.debug(
            "Backfill preview computed",
            entity_id=entity_id,
            field_keys=keys,
            record_count=count,
        )
        return count
