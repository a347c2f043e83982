"""
Batched writes into a document store with per-commit and per-document ceilings.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.exceptions import BatchCommitError, OversizedDocumentError
from etl.loaders.stores import DocumentStore
from schemas.enums import OperationKind
from schemas.etl import BatchOperation, BatchResult, DocumentPath

logger = logging.getLogger(__name__)

MAX_OPERATIONS = 250
MAX_DOCUMENT_BYTES = int(1024 * 1024 * 0.95)
COMMIT_TIMEOUT = 30.0


def estimate_size(data: Any) -> int:
    """UTF-8 length of the JSON serialization"""
    return len(json.dumps(data, ensure_ascii=False, default=str).encode("utf-8"))


@dataclass
class BatchWriterStats:
    """Running totals across every commit of one writer"""

    queued: int = 0
    committed_batches: int = 0
    committed_operations: int = 0
    failed_batches: int = 0
    lost_operations: int = 0
    dropped_documents: int = 0


class BatchWriter:
    """
    Queue writes and commit them in bounded batches.

    Ensures:
    - No batch holds more than ``max_operations`` operations
    - Documents above ``max_document_bytes`` are dropped with a warning
    - A failed or timed-out commit loses that batch only; later writes go
      into a fresh batch
    """

    def __init__(
        self,
        store: DocumentStore,
        max_operations: int = MAX_OPERATIONS,
        max_document_bytes: int = MAX_DOCUMENT_BYTES,
        commit_timeout: float = COMMIT_TIMEOUT,
    ):
        if max_operations < 1:
            raise ValueError("max_operations must be at least 1")
        self.store = store
        self.max_operations = max_operations
        self.max_document_bytes = max_document_bytes
        self.commit_timeout = commit_timeout
        self.stats = BatchWriterStats()
        self.results: List[BatchResult] = []
        self._pending: List[BatchOperation] = []
        self._lock = asyncio.Lock()

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def warnings(self) -> int:
        return self.stats.dropped_documents

    async def set(
        self,
        collection_path: str,
        document_id: Any,
        data: Dict[str, Any],
        merge: bool = False,
    ) -> bool:
        """Create or replace a document. Returns False when the document was dropped."""
        return await self._enqueue(OperationKind.SET, collection_path, document_id, data, merge)

    async def update(self, collection_path: str, document_id: Any, data: Dict[str, Any]) -> bool:
        """Update fields of an existing document"""
        return await self._enqueue(OperationKind.UPDATE, collection_path, document_id, data)

    async def delete(self, collection_path: str, document_id: Any) -> bool:
        return await self._enqueue(OperationKind.DELETE, collection_path, document_id, None)

    async def _enqueue(
        self,
        kind: OperationKind,
        collection_path: str,
        document_id: Any,
        data: Optional[Dict[str, Any]],
        merge: bool = False,
    ) -> bool:
        # InvalidPathError propagates: a bad path is a caller bug
        path = DocumentPath.parse(collection_path, document_id)
        size = estimate_size(data) if data is not None else 0

        if size > self.max_document_bytes:
            error = OversizedDocumentError(
                f"Document {path} ({kind.value}) exceeds the size limit, skipping",
                context={
                    "path": str(path),
                    "size_bytes": size,
                    "limit_bytes": self.max_document_bytes,
                }
            )
            logger.warning(
                f"{error.message} ({size / (1024 * 1024):.2f}MB > "
                f"{self.max_document_bytes / (1024 * 1024):.2f}MB)",
                extra={"error_context": error.to_dict()}
            )
            self.stats.dropped_documents += 1
            return False

        async with self._lock:
            if len(self._pending) >= self.max_operations:
                await self._commit_locked()

            self._pending.append(
                BatchOperation(kind=kind, path=path, data=data, merge=merge, size_bytes=size)
            )
            self.stats.queued += 1
            logger.debug(f"Queued {kind.value.upper()} {path} ({size / 1024:.2f}KB)")

            if len(self._pending) >= self.max_operations:
                logger.info(f"Reached {self.max_operations} operations, committing batch")
                await self._commit_locked()

        return True

    async def commit(self) -> BatchResult:
        """Commit every pending operation as one batch"""
        async with self._lock:
            return await self._commit_locked()

    async def _commit_locked(self) -> BatchResult:
        operations = self._pending
        if not operations:
            logger.debug("No pending operations to commit")
            return BatchResult()

        self._pending = []
        total = len(operations)
        started = time.monotonic()
        logger.info(f"Committing batch with {total} operations")

        try:
            await asyncio.wait_for(self.store.commit(operations), timeout=self.commit_timeout)

        except asyncio.TimeoutError as e:
            error = BatchCommitError(
                f"Timeout of {self.commit_timeout}s committing {total} operations",
                context={"operations": total},
                original_exception=e
            )
            return self._record_failure(error, total, started)

        except Exception as e:
            error = e if isinstance(e, BatchCommitError) else BatchCommitError(
                f"Failed to commit {total} operations",
                context={"operations": total},
                original_exception=e
            )
            return self._record_failure(error, total, started)

        duration = time.monotonic() - started
        self.stats.committed_batches += 1
        self.stats.committed_operations += total
        logger.info(f"Batch with {total} operations committed in {duration:.2f}s")

        result = BatchResult(total=total, successes=total, duration_seconds=duration)
        self.results.append(result)
        return result

    def _record_failure(self, error: BatchCommitError, total: int, started: float) -> BatchResult:
        logger.error(
            f"Batch commit failed, {total} operations lost: {error.message}",
            extra={"error_context": error.to_dict()}
        )
        self.stats.failed_batches += 1
        self.stats.lost_operations += total

        result = BatchResult(
            total=total,
            failures=total,
            duration_seconds=time.monotonic() - started,
            error=str(error),
        )
        self.results.append(result)
        return result
