"""Integration tests for RecordService against an in-memory database."""

import pytest
import pytest_asyncio

from entitystore.core.exceptions import (
    EntityNotFoundError,
    MetadataInvalidError,
    NotFoundError,
    ValidationFailedError,
)
from entitystore.domain.services import EntityService, RecordService

MISSING_ID = "3f2b8c1e-9d4a-4b6e-8f1a-2c3d4e5f6a7b"


@pytest_asyncio.fixture
async def entity(db_session, device_fields):
    return await EntityService(db_session).create_entity("Switch", device_fields)


@pytest.fixture
def records(db_session):
    return RecordService(db_session)


@pytest.mark.asyncio
async def test_create_record_normalizes_values(records, entity):
    record = await records.create_record(
        entity.id,
        {
            "hostname": "sw-01",
            "status": "active",
            "rack_unit": "12",
            "managed": True,
            "installed_on": "2024-03-01T10:30:00+02:00",
            "notes": "",
            "unknown": "dropped",
        },
        metadata={"source": "import", "__proto__": {"x": 1}},
    )

    assert record.entity_id == entity.id
    assert record.field_values == {
        "hostname": "sw-01",
        "status": "active",
        "rack_unit": 12,
        "managed": True,
        "installed_on": "2024-03-01T08:30:00Z",
    }
    assert record.metadata == {"source": "import"}

    fetched = await records.get_record(record.id)
    assert fetched.field_values == record.field_values
    assert fetched.metadata == {"source": "import"}


@pytest.mark.asyncio
async def test_create_record_drops_empty_optional_values(records, entity):
    record = await records.create_record(
        entity.id,
        {"hostname": "sw-01", "status": "active", "rack_unit": "", "managed": None},
    )
    assert record.field_values == {"hostname": "sw-01", "status": "active"}


@pytest.mark.asyncio
async def test_create_record_field_errors(records, entity):
    with pytest.raises(ValidationFailedError) as exc_info:
        await records.create_record(entity.id, {"hostname": "", "status": "broken"})

    assert exc_info.value.field_errors == {
        "hostname": ["Hostname is required"],
        "status": ["Status must be one of: active, retired"],
    }
    assert (await records.list_records(entity.id))[1] == 0


@pytest.mark.asyncio
async def test_create_record_missing_required_key(records, entity):
    with pytest.raises(ValidationFailedError) as exc_info:
        await records.create_record(entity.id, {"status": "active"})

    assert exc_info.value.field_errors == {"hostname": ["Hostname is required"]}


@pytest.mark.asyncio
async def test_create_record_unknown_entity(records):
    with pytest.raises(EntityNotFoundError):
        await records.create_record(MISSING_ID, {"hostname": "sw-01"})


@pytest.mark.asyncio
async def test_create_record_invalid_metadata(records, entity):
    with pytest.raises(MetadataInvalidError):
        await records.create_record(
            entity.id, {"hostname": "sw-01", "status": "active"}, metadata=["a"]
        )
    assert (await records.list_records(entity.id))[1] == 0


@pytest.mark.asyncio
async def test_update_record_replaces_values_and_metadata(records, entity):
    record = await records.create_record(
        entity.id,
        {"hostname": "sw-01", "status": "active", "rack_unit": 4},
        metadata={"source": "import"},
    )

    updated = await records.update_record(
        record.id, {"hostname": "sw-01b", "status": "retired"}
    )

    assert updated.field_values == {"hostname": "sw-01b", "status": "retired"}
    assert updated.metadata is None


@pytest.mark.asyncio
async def test_update_record_rejects_invalid_enum(records, entity):
    record = await records.create_record(entity.id, {"hostname": "sw-01", "status": "active"})

    with pytest.raises(ValidationFailedError):
        await records.update_record(record.id, {"hostname": "sw-01", "status": "lost"})

    assert (await records.get_record(record.id)).field_values["status"] == "active"


@pytest.mark.asyncio
async def test_update_missing_record(records):
    with pytest.raises(NotFoundError):
        await records.update_record(MISSING_ID, {"hostname": "sw-01"})


@pytest.mark.asyncio
async def test_delete_record(records, entity):
    record = await records.create_record(entity.id, {"hostname": "sw-01", "status": "active"})

    assert await records.delete_record(record.id) == record.id
    with pytest.raises(NotFoundError):
        await records.delete_record(record.id)


@pytest.mark.asyncio
async def test_list_records_pages(records, entity):
    created = [
        await records.create_record(entity.id, {"hostname": f"sw-{i}", "status": "active"})
        for i in range(5)
    ]

    page, total = await records.list_records(entity.id, offset=0, limit=2)
    rest, _ = await records.list_records(entity.id, offset=2, limit=10)

    assert total == 5
    assert len(page) == 2
    assert len(rest) == 3
    assert {r.id for r in page + rest} == {r.id for r in created}


@pytest.mark.asyncio
async def test_list_records_bad_paging(records, entity):
    with pytest.raises(ValidationFailedError):
        await records.list_records(entity.id, limit=0)
    with pytest.raises(ValidationFailedError):
        await records.list_records(entity.id, offset=-1)


@pytest.mark.asyncio
async def test_malformed_record_id(records):
    with pytest.raises(ValidationFailedError) as exc_info:
        await records.get_record("42")
    assert "record_id" in exc_info.value.field_errors
