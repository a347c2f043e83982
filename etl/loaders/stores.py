"""
Document-store back-ends that commit a batch of operations.

- FirestoreRestStore: Firestore ``documents:commit`` over HTTPS (production)
  or plain HTTP (emulator). One commit is atomic for its operation set.
- FilesystemStore: one JSON file per document under a local directory tree.
"""

import asyncio
import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from core.exceptions import BatchCommitError
from schemas.enums import OperationKind
from schemas.etl import BatchOperation

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Anything able to apply a list of operations as one batch"""

    async def commit(self, operations: Sequence[BatchOperation]) -> None:
        ...


# ============================================================================
# Firestore REST
# ============================================================================

_SIMPLE_FIELD = re.compile(r"^[A-Za-z_][A-Za-z_0-9]*$")


def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a Python value as a Firestore REST ``Value``"""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return {"timestampValue": value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")}
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    return {"stringValue": str(value)}


def encode_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    return {str(k): encode_value(v) for k, v in data.items()}


def field_path(key: str) -> str:
    """Quote a top-level field name for an update mask"""
    if _SIMPLE_FIELD.match(key):
        return key
    escaped = key.replace("\\", "\\\\").replace("`", "\\`")
    return f"`{escaped}`"


class FirestoreRestStore:
    """
    Commit batches through the Firestore REST API.

    Point ``base_url`` at the emulator (``http://127.0.0.1:8000``) for the
    emulated destination; the emulator accepts the ``owner`` token.
    """

    def __init__(
        self,
        project_id: str,
        database: str = "(default)",
        base_url: str = "https://firestore.googleapis.com",
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.project_id = project_id
        self.database = database
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def documents_root(self) -> str:
        return f"projects/{self.project_id}/databases/{self.database}/documents"

    @property
    def commit_url(self) -> str:
        return f"{self.base_url}/v1/{self.documents_root}:commit"

    def document_name(self, operation: BatchOperation) -> str:
        return f"{self.documents_root}/{operation.path}"

    def build_write(self, operation: BatchOperation) -> Dict[str, Any]:
        name = self.document_name(operation)

        if operation.kind == OperationKind.DELETE:
            return {"delete": name}

        write: Dict[str, Any] = {
            "update": {"name": name, "fields": encode_fields(operation.data or {})}
        }
        if operation.kind == OperationKind.UPDATE or operation.merge:
            write["updateMask"] = {
                "fieldPaths": [field_path(str(k)) for k in (operation.data or {})]
            }
        if operation.kind == OperationKind.UPDATE:
            write["currentDocument"] = {"exists": True}
        return write

    async def commit(self, operations: Sequence[BatchOperation]) -> None:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        body = {"writes": [self.build_write(op) for op in operations]}

        try:
            response = await self._client.post(self.commit_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise BatchCommitError(
                f"Transport error committing {len(operations)} operations",
                context={"operations": len(operations), "url": self.commit_url},
                original_exception=e
            )

        if response.status_code >= 300:
            raise BatchCommitError(
                f"Commit rejected with status {response.status_code}",
                context={
                    "operations": len(operations),
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                }
            )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


# ============================================================================
# Local filesystem
# ============================================================================

class FilesystemStore:
    """
    Write each document as ``<base_dir>/<collection>/<doc>/.../<id>.json``.

    Output is sorted and indented so re-running on unchanged data produces
    byte-identical files.
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def file_for(self, operation: BatchOperation) -> Path:
        *parents, doc_id = operation.path.segments
        return self.base_dir.joinpath(*parents, f"{doc_id}.json")

    @staticmethod
    def serialize(data: Dict[str, Any]) -> str:
        return json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True, default=str)

    async def commit(self, operations: Sequence[BatchOperation]) -> None:
        # blocking file I/O stays off the event loop
        await asyncio.to_thread(self._write, operations)
        logger.debug(f"Wrote {len(operations)} documents under {self.base_dir}")

    def _write(self, operations: Sequence[BatchOperation]) -> None:
        for operation in operations:
            target = self.file_for(operation)

            if operation.kind == OperationKind.DELETE:
                target.unlink(missing_ok=True)
                continue

            data = dict(operation.data or {})
            if operation.kind == OperationKind.UPDATE and not target.exists():
                raise BatchCommitError(
                    f"Cannot update missing document {operation.path}",
                    context={"path": str(target)}
                )
            if (operation.kind == OperationKind.UPDATE or operation.merge) and target.exists():
                existing = json.loads(target.read_text(encoding="utf-8"))
                existing.update(data)
                data = existing

            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.serialize(data), encoding="utf-8")

    def read(self, collection_path: str, document_id: str) -> Optional[Dict[str, Any]]:
        target = self.base_dir.joinpath(*collection_path.strip("/").split("/"), f"{document_id}.json")
        if not target.exists():
            return None
        return json.loads(target.read_text(encoding="utf-8"))

    def list_files(self) -> List[Path]:
        return sorted(self.base_dir.rglob("*.json"))

    async def close(self) -> None:
        return None
