"""Error taxonomy for the entity and record engine.

Every error carries a short human-readable message. Field-level errors also
carry a mapping of field key to messages so callers can bind them to forms.
Storage errors are classified into retryable and non-retryable kinds; raw
driver details never reach the message.
"""

from dataclasses import dataclass
from typing import Any


class EntityStoreError(Exception):
    """Base class for all engine errors."""

    code = "unexpected"
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for collaborators (forms, tables, handlers)."""
        return {"error": self.message, "code": self.code}


class ValidationFailedError(EntityStoreError):
    """Raised when input fails validation before any write."""

    code = "validation_failed"

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: dict[str, list[str]] | None = None,
    ) -> None:
        self.field_errors = field_errors or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.field_errors:
            data["field_errors"] = self.field_errors
        return data


class NotFoundError(EntityStoreError):
    code = "not_found"


class EntityNotFoundError(NotFoundError):
    code = "entity_not_found"

    def __init__(self, message: str = "Entity not found") -> None:
        super().__init__(message)


class DuplicateNameError(EntityStoreError):
    code = "duplicate_name"

    def __init__(self, message: str = "An entity with this name already exists") -> None:
        super().__init__(message)


class FieldCountExceededError(EntityStoreError):
    code = "field_count_exceeded"

    def __init__(self, count: int, maximum: int) -> None:
        self.count = count
        self.maximum = maximum
        super().__init__(f"An entity can have at most {maximum} fields, got {count}")


class MissingDefaultsError(EntityStoreError):
    """Raised when newly required fields have no usable backfill default."""

    code = "missing_defaults"

    def __init__(self, keys: list[str]) -> None:
        self.keys = list(keys)
        super().__init__(
            f"Default values are required for newly required fields: {', '.join(self.keys)}"
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["keys"] = self.keys
        return data


class InvalidDefaultsError(EntityStoreError):
    """Raised when supplied backfill defaults fail coercion or enum membership."""

    code = "invalid_defaults"

    def __init__(self, keys: list[str]) -> None:
        self.keys = list(keys)
        super().__init__(f"Invalid default values for fields: {', '.join(self.keys)}")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["keys"] = self.keys
        return data


class MetadataInvalidError(EntityStoreError):
    code = "metadata_invalid"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class BatchSizeExceededError(EntityStoreError):
    code = "batch_size_exceeded"


@dataclass
class BatchItemFailure:
    """A single failed item in a batch create."""

    index: int
    error: str
    field_errors: dict[str, list[str]] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"index": self.index, "error": self.error}
        if self.field_errors:
            data["field_errors"] = self.field_errors
        return data


class PartialBatchFailureError(EntityStoreError):
    """Raised when one or more batch items fail validation; nothing is written."""

    code = "partial_batch_failure"

    def __init__(self, failures: list[BatchItemFailure]) -> None:
        self.failures = failures
        super().__init__(f"{len(failures)} record(s) failed validation")

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["failed_records"] = [failure.to_dict() for failure in self.failures]
        return data


class RecordEntityMismatchError(EntityStoreError):
    code = "record_entity_mismatch"

    def __init__(
        self, message: str = "Selected records do not match the selected entity"
    ) -> None:
        super().__init__(message)


class ConnectionFailureError(EntityStoreError):
    code = "connection_failure"
    retryable = True

    def __init__(
        self, message: str = "Database connection failed. Please try again later."
    ) -> None:
        super().__init__(message)


class ConflictError(EntityStoreError):
    """Serialization failure, deadlock, lock timeout or stale version."""

    code = "conflict"
    retryable = True

    def __init__(
        self, message: str = "The operation conflicted with another change. Please try again."
    ) -> None:
        super().__init__(message)


class ReferentialViolationError(EntityStoreError):
    code = "referential_violation"

    def __init__(
        self, message: str = "Related data was changed or removed. Please refresh and try again."
    ) -> None:
        super().__init__(message)


class ConstraintViolationError(EntityStoreError):
    code = "constraint_violation"

    def __init__(self, message: str = "The change violates a storage constraint.") -> None:
        super().__init__(message)


class UnexpectedError(EntityStoreError):
    code = "unexpected"

    def __init__(
        self, message: str = "An unexpected error occurred. Please try again."
    ) -> None:
        super().__init__(message)
