"""Transaction scope for service operations."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.core.exceptions import ConstraintViolationError, EntityStoreError
from entitystore.core.logging import get_logger, operation_context
from entitystore.infrastructure.persistence.errors import (
    STORAGE_ERRORS,
    classify_database_error,
)

logger = get_logger(__name__)


@asynccontextmanager
async def transaction(
    session: AsyncSession,
    operation: str,
    on_unique: Callable[[], EntityStoreError] = ConstraintViolationError,
) -> AsyncGenerator[AsyncSession, None]:
    """Run a block as one all-or-nothing unit of work.

    Commits when the block completes. Any exception rolls back. Storage
    errors are re-raised as classified engine errors; everything else is
    re-raised unchanged.

    Example:
        async with transaction(session, "delete_record"):
            await repository.delete_by_id(record_id)
    """
    with operation_context(operation):
        try:
            yield session
            await session.commit()
        except EntityStoreError as e:
            await session.rollback()
            logger.debug("Transaction rolled back", error_code=e.code)
            raise
        except STORAGE_ERRORS as e:
            await session.rollback()
            raise classify_database_error(e, operation, on_unique) from e
        except Exception:
            await session.rollback()
            logger.exception("Transaction rolled back after unexpected error")
            raise
