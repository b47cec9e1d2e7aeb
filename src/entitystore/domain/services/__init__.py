"""Domain services for EntityStore.

Validators and planners here are pure; the entity, record and batch
services orchestrate them against the persistence layer.
"""

from entitystore.domain.services.backfill import (
    BackfillDecision,
    DecisionKind,
    FieldChanges,
    MigrationPlan,
    apply_plan,
    classify_field_changes,
    plan_migration,
    resolve_default,
)
from entitystore.domain.services.batch_service import (
    BatchCreateResult,
    BatchDeleteResult,
    BatchRecordInput,
    BatchService,
    BatchUpdateResult,
)
from entitystore.domain.services.entity_service import EntityService
from entitystore.domain.services.entity_validator import (
    EntityValidationError,
    EntityValidator,
)
from entitystore.domain.services.metadata_sanitizer import sanitize_metadata
from entitystore.domain.services.record_service import RecordService
from entitystore.domain.services.values_validator import (
    FieldError,
    FieldValuesResult,
    FieldValuesValidator,
    build_values_validator,
    clear_validator_cache,
    schema_fingerprint,
    strip_unknown_and_empty,
)

__all__ = [
    "BackfillDecision",
    "BatchCreateResult",
    "BatchDeleteResult",
    "BatchRecordInput",
    "BatchService",
    "BatchUpdateResult",
    "DecisionKind",
    "EntityService",
    "EntityValidationError",
    "EntityValidator",
    "FieldChanges",
    "FieldError",
    "FieldValuesResult",
    "FieldValuesValidator",
    "MigrationPlan",
    "RecordService",
    "apply_plan",
    "build_values_validator",
    "classify_field_changes",
    "clear_validator_cache",
    "plan_migration",
    "resolve_default",
    "sanitize_metadata",
    "schema_fingerprint",
    "strip_unknown_and_empty",
]
