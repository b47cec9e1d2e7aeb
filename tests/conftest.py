"""Pytest configuration for all tests."""

from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from entitystore.domain.services.values_validator import clear_validator_cache
from entitystore.infrastructure.persistence import models  # noqa: F401
from entitystore.infrastructure.persistence.database import (
    Base,
    enable_sqlite_foreign_keys,
)


@pytest.fixture(autouse=True)
def _fresh_validator_cache() -> None:
    """Start every test with an empty validator cache."""
    clear_validator_cache()


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with all tables.

    Foreign keys are enforced so entity deletes cascade to records.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def device_fields() -> dict[str, Any]:
    """Field map of a network device entity."""
    return {
        "hostname": {"label": "Hostname", "type": "string", "required": True, "order": 0},
        "status": {
            "label": "Status",
            "type": "enum",
            "required": True,
            "order": 1,
            "enumOptions": ["active", "retired"],
        },
        "rack_unit": {"label": "Rack Unit", "type": "number", "required": False, "order": 2},
        "managed": {"label": "Managed", "type": "boolean", "required": False, "order": 3},
        "installed_on": {"label": "Installed On", "type": "date", "required": False, "order": 4},
    }
