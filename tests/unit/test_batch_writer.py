"""
Unit tests for the batch writer
"""

import asyncio

import pytest

from core.exceptions import InvalidPathError
from etl.loaders.batch_writer import BatchWriter, estimate_size
from schemas.enums import OperationKind


class TestBatchWriter:
    """Test bounded batching"""

    @pytest.mark.asyncio
    async def test_auto_commit_at_operation_ceiling(self, memory_store):
        writer = BatchWriter(memory_store, max_operations=250)

        for i in range(251):
            await writer.set("congressoNacional/camaraDeputados/discursos", f"d{i}", {"n": i})

        assert len(memory_store.batches) == 1
        assert len(memory_store.batches[0]) == 250
        assert writer.pending == 1

        await writer.commit()

        assert [len(b) for b in memory_store.batches] == [250, 1]
        assert writer.pending == 0
        assert writer.stats.committed_operations == 251

    @pytest.mark.asyncio
    async def test_no_batch_exceeds_ceiling(self, memory_store):
        writer = BatchWriter(memory_store, max_operations=7)

        for i in range(30):
            await writer.set("col", str(i), {"i": i})
        await writer.commit()

        assert all(len(b) <= 7 for b in memory_store.batches)
        assert sum(len(b) for b in memory_store.batches) == 30

    @pytest.mark.asyncio
    async def test_oversized_document_is_dropped(self, memory_store):
        writer = BatchWriter(memory_store, max_document_bytes=1024)

        ok = await writer.set("col", "small", {"text": "x" * 10})
        dropped = await writer.set("col", "big", {"text": "x" * 5000})
        await writer.commit()

        assert ok is True
        assert dropped is False
        assert writer.warnings == 1
        committed_ids = [op.path.document_id for op in memory_store.batches[0]]
        assert committed_ids == ["small"]

    @pytest.mark.asyncio
    async def test_failed_commit_loses_only_that_batch(self, memory_store):
        memory_store.fail_commits = 1
        writer = BatchWriter(memory_store, max_operations=10)

        await writer.set("col", "a", {"v": 1})
        result = await writer.commit()

        assert result.failures == 1
        assert result.error is not None
        assert writer.stats.lost_operations == 1
        assert writer.pending == 0

        await writer.set("col", "b", {"v": 2})
        result = await writer.commit()

        assert result.successes == 1
        assert list(memory_store.documents) == ["col/b"]

    @pytest.mark.asyncio
    async def test_commit_timeout_resets_batch(self, memory_store):
        memory_store.commit_delay = 0.5
        writer = BatchWriter(memory_store, commit_timeout=0.01)

        await writer.set("col", "a", {"v": 1})
        result = await writer.commit()

        assert result.failures == 1
        assert "Timeout" in result.error
        assert writer.stats.failed_batches == 1
        assert writer.pending == 0

    @pytest.mark.asyncio
    async def test_invalid_path_propagates(self, memory_store):
        writer = BatchWriter(memory_store)

        with pytest.raises(InvalidPathError):
            await writer.set("congressoNacional/camaraDeputados", "x", {})
        with pytest.raises(InvalidPathError):
            await writer.set("", "x", {})

        assert writer.pending == 0

    @pytest.mark.asyncio
    async def test_update_and_delete_operations(self, memory_store):
        writer = BatchWriter(memory_store)

        await writer.set("col", "a", {"x": 1, "y": 1})
        await writer.commit()
        await writer.update("col", "a", {"y": 2})
        await writer.delete("col", "gone")
        await writer.commit()

        kinds = [op.kind for op in memory_store.batches[1]]
        assert kinds == [OperationKind.UPDATE, OperationKind.DELETE]
        assert memory_store.documents["col/a"] == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_empty_commit_is_a_no_op(self, memory_store):
        result = await BatchWriter(memory_store).commit()

        assert result.total == 0
        assert memory_store.batches == []

    @pytest.mark.asyncio
    async def test_concurrent_writers_share_one_queue(self, memory_store):
        writer = BatchWriter(memory_store, max_operations=5)

        await asyncio.gather(*(writer.set("col", str(i), {"i": i}) for i in range(23)))
        await writer.commit()

        assert all(len(b) <= 5 for b in memory_store.batches)
        assert len(memory_store.documents) == 23


def test_estimate_size_counts_utf8_bytes():
    assert estimate_size({"a": "é"}) == len('{"a": "é"}'.encode("utf-8"))
