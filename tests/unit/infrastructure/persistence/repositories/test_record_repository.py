"""Unit tests for RecordRepository."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from entitystore.infrastructure.persistence.models import RecordModel
from entitystore.infrastructure.persistence.repositories.record_repository import (
    RecordRepository,
)


@pytest.fixture
def mock_session():
    """Create a mock database session."""
    session = AsyncMock(spec=AsyncSession)
    return session


@pytest.fixture
def repository(mock_session):
    """Create a RecordRepository instance with a mock session."""
    return RecordRepository(mock_session)


@pytest.mark.asyncio
async def test_create_many(repository, mock_session):
    """Test inserting several records in one flush."""
    records = [
        RecordModel(id=f"id-{i}", entity_id="entity", field_values={"n": i})
        for i in range(3)
    ]

    result = await repository.create_many(records)

    mock_session.add_all.assert_called_once_with(records)
    mock_session.flush.assert_called_once()
    assert result == records


@pytest.mark.asyncio
async def test_update_field_values_without_changes(repository, mock_session):
    """Test that an empty change set issues no statement."""
    count = await repository.update_field_values([], datetime.now(timezone.utc))

    assert count == 0
    mock_session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_update_field_values(repository, mock_session):
    """Test rewriting values by primary key in one executemany."""
    now = datetime.now(timezone.utc)

    count = await repository.update_field_values(
        [("a", {"n": 1}), ("b", {"n": 2})], now
    )

    assert count == 2
    mock_session.execute.assert_called_once()
    params = mock_session.execute.call_args.args[1]
    assert params == [
        {"id": "a", "field_values": {"n": 1}, "updated_at": now},
        {"id": "b", "field_values": {"n": 2}, "updated_at": now},
    ]


@pytest.mark.asyncio
async def test_count_missing_keys(repository, mock_session):
    """Test counting records with absent or null keys in one statement."""
    mock_result = MagicMock()
    mock_result.scalar_one.return_value = 4
    mock_session.execute.return_value = mock_result

    assert await repository.count_missing_keys("entity", ["rack_unit", "notes"]) == 4
    mock_session.execute.assert_called_once()


@pytest.mark.asyncio
async def test_count_missing_keys_without_keys(repository, mock_session):
    assert await repository.count_missing_keys("entity", []) == 0
    mock_session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_delete_by_ids(repository, mock_session):
    """Test deleting records returns the deleted IDs."""
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = ["a"]
    mock_session.execute.return_value = mock_result

    assert await repository.delete_by_ids(["a", "b"]) == ["a"]


@pytest.mark.asyncio
async def test_delete_by_ids_empty(repository, mock_session):
    assert await repository.delete_by_ids([]) == []
    mock_session.execute.assert_not_called()
