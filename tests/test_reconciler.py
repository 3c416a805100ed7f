from unittest.mock import AsyncMock

import pytest
from factories import make_record

from py_load_eic.errors import ReconciliationError
from py_load_eic.reconciler import BatchReconciler, chunked
from py_load_eic.store.memory import MemoryStore

pytestmark = pytest.mark.unit


def test_chunked_sizes():
    records = [make_record(str(i)) for i in range(1200)]
    assert [len(c) for c in chunked(records, 500)] == [500, 500, 200]


def test_chunked_empty():
    assert list(chunked([], 500)) == []


def test_reconciler_rejects_bad_batch_size(memory_store):
    with pytest.raises(ValueError):
        BatchReconciler(memory_store, batch_size=0)


@pytest.mark.asyncio
async def test_reconcile_batches_in_order():
    """Tests that 1,200 records produce upserts of 500, 500 and 200."""
    store = AsyncMock(spec=MemoryStore)
    records = [make_record(f"10X{i:05d}") for i in range(1200)]

    written = await BatchReconciler(store, batch_size=500).reconcile(records)

    assert written == 1200
    sizes = [len(call.args[0]) for call in store.upsert_records.await_args_list]
    assert sizes == [500, 500, 200]
    # Chunks are applied in source order.
    first_chunk = store.upsert_records.await_args_list[0].args[0]
    assert first_chunk[0].eic_code == "10X00000"
    last_chunk = store.upsert_records.await_args_list[-1].args[0]
    assert last_chunk[-1].eic_code == "10X01199"


@pytest.mark.asyncio
async def test_reconcile_empty_input_writes_nothing():
    store = AsyncMock(spec=MemoryStore)
    assert await BatchReconciler(store).reconcile([]) == 0
    store.upsert_records.assert_not_awaited()


@pytest.mark.asyncio
async def test_reconcile_failure_stops_and_keeps_applied_chunks():
    """
    Tests that a failing chunk aborts the run, leaving earlier chunks applied
    and never starting later ones.
    """
    store = MemoryStore()
    real_upsert = store.upsert_records
    calls = 0

    async def flaky_upsert(chunk):
        nonlocal calls
        calls += 1
        if calls == 2:
            raise RuntimeError("disk full")
        return await real_upsert(chunk)

    store.upsert_records = flaky_upsert
    records = [make_record(f"10X{i:05d}") for i in range(1200)]

    with pytest.raises(ReconciliationError, match="chunk 2/3") as exc_info:
        await BatchReconciler(store, batch_size=500).reconcile(records)

    assert exc_info.value.chunk_index == 2
    assert calls == 2
    assert len(store.records) == 500
