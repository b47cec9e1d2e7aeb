"""Batch operations on records.

Batch creates validate every item before inserting anything and report
all failures together. Batch field updates and deletes check their
preconditions before issuing any write and run in a single transaction.
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.core.config import Settings, get_settings
from entitystore.core.exceptions import (
    BatchItemFailure,
    BatchSizeExceededError,
    EntityNotFoundError,
    MetadataInvalidError,
    NotFoundError,
    PartialBatchFailureError,
    RecordEntityMismatchError,
    ValidationFailedError,
)
from entitystore.core.identifiers import ensure_valid_id, invalid_ids, new_id
from entitystore.core.logging import get_logger
from entitystore.domain.entities import field_map_from_dict
from entitystore.domain.entities.entity import utcnow
from entitystore.domain.services.metadata_sanitizer import sanitize_metadata
from entitystore.domain.services.record_service import prepare_field_values
from entitystore.domain.services.values_validator import is_blank, validate_single_value
from entitystore.infrastructure.persistence.models import RecordModel
from entitystore.infrastructure.persistence.repositories import (
    EntityRepository,
    RecordRepository,
)
from entitystore.infrastructure.persistence.transaction import transaction

logger = get_logger(__name__)


@dataclass
class BatchRecordInput:
    """One record to create in a batch."""

    entity_id: str
    field_values: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None


@dataclass
class BatchCreateResult:
    ids: list[str]
    count: int


@dataclass
class BatchUpdateResult:
    count: int
    ids: list[str]


@dataclass
class BatchDeleteResult:
    count: int
    ids: list[str]


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


class BatchService:
    """Service for batch record operations."""

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

    def check_batch_size(self, size: int) -> None:
        """Check a batch size against the configured bounds.

        Raises:
            BatchSizeExceededError: If the size is out of bounds.
        """
        minimum = self.settings.min_batch_size
        maximum = self.settings.max_batch_size
        if size < minimum or size > maximum:
            raise BatchSizeExceededError(
                f"Batch size must be between {minimum} and {maximum}, got {size}"
            )

    @staticmethod
    def _check_ids(values: list[Any], field_name: str, label: str) -> None:
        bad = invalid_ids(values)
        if bad is not None:
            message = f"Invalid {label}: {bad}"
            raise ValidationFailedError(message, {field_name: [message]})

    async def create_records_batch(self, items: list[BatchRecordInput]) -> BatchCreateResult:
        """Create many records, all or nothing.

        Args:
            items: Records to create; they may target different entities.

        Returns:
            IDs of the created records in input order, and their count.

        Raises:
            BatchSizeExceededError: If the batch is empty or too large.
            ValidationFailedError: If any entity ID is malformed.
            EntityNotFoundError: If any referenced entity does not exist.
            PartialBatchFailureError: If any item fails validation; nothing is written.
        """
        self.check_batch_size(len(items))
        self._check_ids([item.entity_id for item in items], "entity_id", "entity IDs")

        entity_ids = _unique([item.entity_id for item in items])

        async with transaction(self.session, "create_records_batch"):
            raw_fields = await self.entity_repository.get_fields_by_ids(entity_ids)
            missing = [entity_id for entity_id in entity_ids if entity_id not in raw_fields]
            if missing:
                raise EntityNotFoundError(f"Entity not found: {', '.join(missing)}")

            field_maps = {
                entity_id: field_map_from_dict(fields or {})
                for entity_id, fields in raw_fields.items()
            }

            models: list[RecordModel] = []
            failures: list[BatchItemFailure] = []
            for index, item in enumerate(items):
                try:
                    values = prepare_field_values(field_maps[item.entity_id], item.field_values)
                    metadata = sanitize_metadata(
                        item.metadata,
                        max_size=self.settings.max_metadata_size,
                        max_depth=self.settings.max_metadata_depth,
                    )
                except ValidationFailedError as e:
                    failures.append(BatchItemFailure(index, e.message, e.field_errors))
                    continue
                except MetadataInvalidError as e:
                    failures.append(BatchItemFailure(index, e.message))
                    continue

                models.append(
                    RecordModel(
                        id=new_id(),
                        entity_id=item.entity_id,
                        field_values=values,
                        record_metadata=metadata,
                    )
                )

            if failures:
                logger.info(
                    "Batch create rejected",
                    item_count=len(items),
                    failed_count=len(failures),
                )
                raise PartialBatchFailureError(failures)

            await self.repository.create_many(models)

        ids = [model.id for model in models]
        logger.info(
            "Batch records created",
            entity_ids=entity_ids,
            record_count=len(ids),
        )
        return BatchCreateResult(ids=ids, count=len(ids))

    async def update_records_field_batch(
        self,
        record_ids: list[str],
        entity_id: str,
        field_key: str,
        value: Any = None,
        clear: bool = False,
    ) -> BatchUpdateResult:
        """Set (or clear) one field on many records of one entity.

        Args:
            record_ids: Records to update.
            entity_id: The entity every record must belong to.
            field_key: The field to set.
            value: New value, validated by the field's rule.
            clear: Remove the field instead of setting it (optional fields only).

        Returns:
            Number and IDs of the updated records.

        Raises:
            BatchSizeExceededError: If the batch is empty or too large.
            ValidationFailedError: If an ID is malformed, the field is unknown,
                a required field is cleared or the value is invalid.
            EntityNotFoundError: If the entity does not exist.
            NotFoundError: If none of the records exist.
            RecordEntityMismatchError: If any record belongs to another entity.
        """
        self.check_batch_size(len(record_ids))
        self._check_ids(record_ids, "record_ids", "record IDs")
        ensure_valid_id(entity_id, "entity_id")
        record_ids = _unique(record_ids)

        async with transaction(self.session, "update_records_field_batch"):
            entity = await self.entity_repository.get_by_id(entity_id)
            if entity is None:
                raise EntityNotFoundError()

            definition = field_map_from_dict(entity.fields or {}).get(field_key)
            if definition is None:
                message = f"Field '{field_key}' does not exist on this entity"
                raise ValidationFailedError(message, {field_key: [message]})

            if clear:
                if definition.required:
                    message = f"{definition.label} is required and cannot be cleared"
                    raise ValidationFailedError(message, {field_key: [message]})
                normalized = None
            else:
                normalized, error = validate_single_value(definition, value)
                if error is not None:
                    raise ValidationFailedError(error, {field_key: [error]})
                # Empty values of optional fields are not stored
                clear = is_blank(normalized)

            records = await self.repository.get_by_ids(record_ids)
            if not records:
                raise NotFoundError("No records found")

            if any(record.entity_id != entity_id for record in records):
                raise RecordEntityMismatchError()

            now = utcnow()
            for record in records:
                values = dict(record.field_values or {})
                if clear:
                    values.pop(field_key, None)
                else:
                    values[field_key] = normalized
                record.field_values = values
                record.updated_at = now
            await self.session.flush()

        found = {record.id for record in records}
        ids = [record_id for record_id in record_ids if record_id in found]
        logger.info(
            "Batch field updated",
            entity_id=entity_id,
            field_key=field_key,
            cleared=clear,
            record_count=len(ids),
        )
        return BatchUpdateResult(count=len(ids), ids=ids)

    async def delete_records_batch(self, record_ids: list[str]) -> BatchDeleteResult:
        """Delete many records in one statement.

        Unknown IDs are ignored and absent from the result.

        Raises:
            BatchSizeExceededError: If the batch is empty or too large.
            ValidationFailedError: If any ID is malformed.
        """
        self.check_batch_size(len(record_ids))
        self._check_ids(record_ids, "record_ids", "record IDs")

        async with transaction(self.session, "delete_records_batch"):
            deleted = await self.repository.delete_by_ids(_unique(record_ids))

        logger.info("Batch records deleted", record_count=len(deleted))
        return BatchDeleteResult(count=len(deleted), ids=deleted)
