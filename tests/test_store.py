# tests/test_store.py
import asyncio
import re
from decimal import Decimal

import pydantic
import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.database import InMemoryProductStore
from catalog.errors import ConflictError, NotFoundError, StorageError, ValidationError
from catalog.models import MAX_STOCK
from catalog.sql import SqlProductStore

from conftest import make_product


async def test_list_all_empty(store):
    assert await store.list_all() == []


async def test_insert_and_get_by_id(store):
    await store.insert(make_product("000001", stock=100, name="Test Product"))

    product = await store.get_by_id("000001")
    assert product is not None
    assert product.name == "Test Product"
    assert product.description == "Test Product for testing"
    assert product.price == Decimal("10.00")
    assert product.stock_available == 100


async def test_get_by_id_missing_returns_none(store):
    assert await store.get_by_id("404404") is None


async def test_list_all_returns_every_record(store):
    await store.insert(make_product("000001"))
    await store.insert(make_product("000002"))
    ids = {p.id for p in await store.list_all()}
    assert ids == {"000001", "000002"}


async def test_returned_products_are_detached(store):
    await store.insert(make_product("000001", stock=5))
    product = await store.get_by_id("000001")
    product.stock_available = 999
    assert (await store.get_by_id("000001")).stock_available == 5


async def test_insert_duplicate_raises_conflict(store):
    await store.insert(make_product("000001"))
    with pytest.raises(ConflictError):
        await store.insert(make_product("000001", name="Other"))
    assert (await store.get_by_id("000001")).name == "Widget"


async def test_exists(store):
    await store.insert(make_product("000001"))
    assert await store.exists("000001") is True
    assert await store.exists("000002") is False


async def test_update_replaces_all_mutable_fields(store):
    await store.insert(make_product("000001", stock=3))
    replacement = make_product("000001", stock=42, name="Renamed", price="99.95")
    replacement.description = None

    await store.update(replacement)

    product = await store.get_by_id("000001")
    assert product.id == "000001"
    assert product.name == "Renamed"
    assert product.description is None
    assert product.price == Decimal("99.95")
    assert product.stock_available == 42


async def test_update_missing_raises_and_does_not_create(store):
    with pytest.raises(NotFoundError):
        await store.update(make_product("000001"))
    assert await store.exists("000001") is False


async def test_delete_removes_record(store):
    await store.insert(make_product("000001"))
    await store.delete("000001")
    assert await store.get_by_id("000001") is None


async def test_delete_missing_is_noop(store):
    await store.insert(make_product("000001"))
    await store.delete("NOPE01")
    assert len(await store.list_all()) == 1


# ---------------------------
# Id generation
# ---------------------------
async def test_generate_first_id(store):
    assert await store.generate_unique_id() == "000001"


async def test_generate_uses_greatest_id(store):
    await store.insert(make_product("000010", stock=1))
    await store.insert(make_product("000005", stock=1))
    assert await store.generate_unique_id() == "000011"


async def test_generated_ids_increase_across_padding_boundary(store):
    seen = []
    for _ in range(12):
        new_id = await store.generate_unique_id()
        await store.insert(make_product(new_id))
        seen.append(new_id)
    assert seen[8:10] == ["000009", "000010"]
    assert [int(i) for i in seen] == list(range(1, 13))


async def test_generate_falls_back_when_top_id_not_numeric(store):
    await store.insert(make_product("000003"))
    await store.insert(make_product("ABCDEF"))
    new_id = await store.generate_unique_id()
    assert re.match(r"^[0-9A-F]{6}$", new_id)
    assert new_id not in ("000001", "ABCDEF")


# ---------------------------
# Stock adjustment
# ---------------------------
async def test_decrement_stock_reduces_by_quantity(store):
    await store.insert(make_product("P1", stock=5))
    assert await store.decrement_stock("P1", 3) is True
    assert (await store.get_by_id("P1")).stock_available == 2


async def test_decrement_stock_to_zero(store):
    await store.insert(make_product("P1", stock=5))
    assert await store.decrement_stock("P1", 5) is True
    assert (await store.get_by_id("P1")).stock_available == 0


async def test_decrement_stock_insufficient_leaves_record_unchanged(store):
    await store.insert(make_product("P1", stock=5))
    assert await store.decrement_stock("P1", 10) is False
    assert (await store.get_by_id("P1")).stock_available == 5


async def test_decrement_stock_unknown_id(store):
    assert await store.decrement_stock("missing", 1) is False
    assert await store.list_all() == []


async def test_add_stock_increases_by_quantity(store):
    await store.insert(make_product("P1", stock=5))
    assert await store.add_stock("P1", 10) is True
    assert (await store.get_by_id("P1")).stock_available == 15


async def test_add_stock_unknown_id(store):
    assert await store.add_stock("missing", 10) is False
    assert await store.exists("missing") is False


@pytest.mark.parametrize("quantity", [0, -3])
async def test_stock_operations_reject_non_positive_quantity(store, quantity):
    await store.insert(make_product("P1", stock=5))
    with pytest.raises(ValidationError):
        await store.decrement_stock("P1", quantity)
    with pytest.raises(ValidationError):
        await store.add_stock("P1", quantity)
    assert (await store.get_by_id("P1")).stock_available == 5


async def test_guarded_write_rejects_stock_going_negative(store):
    # the row changed after decrement_stock read it
    await store.insert(make_product("P1", stock=1))
    assert await store._apply_stock_delta("P1", -2) is None
    assert await store._apply_stock_delta("gone", 1) is None
    assert (await store.get_by_id("P1")).stock_available == 1


async def test_sql_failures_propagate_as_storage_error(tmp_path):
    store = SqlProductStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'broken.db'}")
    await store.create_schema()
    await store.insert(make_product("P1", stock=5))
    async with store.engine.begin() as conn:
        await conn.execute(text("DROP TABLE products"))

    with pytest.raises(StorageError):
        await store.list_all()
    with pytest.raises(StorageError):
        await store.decrement_stock("P1", 1)
    await store.close()


async def test_sql_in_memory_url_shares_one_database():
    store = SqlProductStore.from_url("sqlite+aiosqlite:///:memory:")
    await store.create_schema()
    await store.insert(make_product("000001"))
    assert await store.exists("000001")
    await store.close()


# ---------------------------
# Stock bounds
# ---------------------------
async def test_guarded_write_returns_committed_stock(store):
    await store.insert(make_product("P1", stock=5))
    assert await store._apply_stock_delta("P1", -2) == 3
    assert await store.decrement_stock_level("P1", 3) == 0
    assert await store.add_stock_level("P1", 4) == 4
    assert await store.decrement_stock_level("missing", 1) is None


async def test_add_stock_cannot_pass_max(store):
    await store.insert(make_product("P1", stock=MAX_STOCK - 1))
    assert await store.add_stock("P1", 2) is False
    assert (await store.get_by_id("P1")).stock_available == MAX_STOCK - 1
    assert await store.add_stock("P1", 1) is True
    assert (await store.get_by_id("P1")).stock_available == MAX_STOCK
    assert (await store.list_all())[0].stock_available == MAX_STOCK


async def test_quantity_above_max_rejected(store):
    await store.insert(make_product("P1", stock=5))
    with pytest.raises(ValidationError):
        await store.add_stock("P1", MAX_STOCK + 1)
    with pytest.raises(ValidationError):
        await store.decrement_stock("P1", 2**63)
    assert (await store.get_by_id("P1")).stock_available == 5


def test_product_rejects_out_of_range_stock():
    with pytest.raises(pydantic.ValidationError):
        make_product("P1", stock=MAX_STOCK + 1)
    with pytest.raises(pydantic.ValidationError):
        make_product("P1", stock=-1)


# ---------------------------
# Transaction failures
# ---------------------------
async def _sql_store(tmp_path):
    store = SqlProductStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'tx.db'}")
    await store.create_schema()
    await store.insert(make_product("P1", stock=5))
    return store


async def test_sql_failed_stock_write_rolls_back_and_propagates(tmp_path):
    store = await _sql_store(tmp_path)
    async with store.engine.begin() as conn:
        await conn.execute(text(
            "CREATE TRIGGER freeze_stock AFTER UPDATE OF stock_available ON products "
            "BEGIN SELECT RAISE(ABORT, 'stock frozen'); END"
        ))

    with pytest.raises(StorageError):
        await store.decrement_stock("P1", 2)
    with pytest.raises(StorageError):
        await store.add_stock("P1", 2)
    assert (await store.get_by_id("P1")).stock_available == 5
    await store.close()


async def test_sql_cancelled_stock_write_rolls_back(tmp_path, monkeypatch):
    store = await _sql_store(tmp_path)
    written = asyncio.Event()
    real_execute = AsyncSession.execute

    async def stalled_execute(self, statement, *args, **kwargs):
        result = await real_execute(self, statement, *args, **kwargs)
        if statement.is_dml:
            written.set()
            await asyncio.Event().wait()
        return result

    monkeypatch.setattr(AsyncSession, "execute", stalled_execute)
    task = asyncio.create_task(store.decrement_stock("P1", 2))
    await written.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    monkeypatch.undo()

    assert (await store.get_by_id("P1")).stock_available == 5
    assert await store.decrement_stock("P1", 2) is True
    assert (await store.get_by_id("P1")).stock_available == 3
    await store.close()


async def test_memory_cancelled_stock_write_leaves_record_intact():
    store = InMemoryProductStore()
    await store.insert(make_product("P1", stock=5))
    lock = store._get_lock("product:P1")
    await lock.acquire()

    task = asyncio.create_task(store.decrement_stock("P1", 2))
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    lock.release()

    assert (await store.get_by_id("P1")).stock_available == 5
    assert await store.decrement_stock("P1", 2) is True


async def test_memory_update_of_missing_product_leaves_no_lock():
    store = InMemoryProductStore()
    for i in range(3):
        with pytest.raises(NotFoundError):
            await store.update(make_product(f"00000{i}"))
    assert await store._apply_stock_delta("gone", 1) is None
    assert store._locks == {}
