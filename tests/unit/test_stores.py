"""
Unit tests for the document-store back-ends
"""

import json
import threading
from datetime import datetime, timezone

import httpx
import pytest

from core.config import Settings
from core.exceptions import BatchCommitError
from etl.loaders.factory import create_store
from etl.loaders.stores import (
    FilesystemStore,
    FirestoreRestStore,
    encode_fields,
    encode_value,
    field_path,
)
from schemas.enums import Destination, OperationKind
from schemas.etl import BatchOperation, DocumentPath


def operation(kind, collection, doc_id, data=None, merge=False):
    return BatchOperation(kind=kind, path=DocumentPath.parse(collection, doc_id), data=data, merge=merge)


class TestFirestoreEncoding:
    """Test Firestore REST value encoding"""

    @pytest.mark.parametrize("value, expected", [
        (None, {"nullValue": None}),
        (True, {"booleanValue": True}),
        (57, {"integerValue": "57"}),
        (1.5, {"doubleValue": 1.5}),
        ("PT", {"stringValue": "PT"}),
        (
            datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
            {"timestampValue": "2024-03-01T12:00:00Z"},
        ),
    ])
    def test_scalars(self, value, expected):
        assert encode_value(value) == expected

    def test_nested_structures(self):
        encoded = encode_fields({"autorias": [{"id": 1}], "uf": "SP"})

        assert encoded == {
            "autorias": {"arrayValue": {"values": [
                {"mapValue": {"fields": {"id": {"integerValue": "1"}}}},
            ]}},
            "uf": {"stringValue": "SP"},
        }

    def test_field_path_quoting(self):
        assert field_path("totalDiscursos") == "totalDiscursos"
        assert field_path("2024") == "`2024`"
        assert field_path("a.b") == "`a.b`"


class TestFirestoreRestStore:
    """Test the documents:commit request"""

    @pytest.mark.asyncio
    async def test_commit_posts_all_writes(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers.get("Authorization")
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"writeResults": []})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        store = FirestoreRestStore("legis", base_url="http://127.0.0.1:8000", access_token="owner", client=client)

        await store.commit([
            operation(OperationKind.SET, "col", "a", {"x": 1}),
            operation(OperationKind.SET, "col", "b", {"y": 2}, merge=True),
            operation(OperationKind.UPDATE, "col", "c", {"z": 3}),
            operation(OperationKind.DELETE, "col", "d"),
        ])
        await client.aclose()

        root = "projects/legis/databases/(default)/documents"
        assert captured["url"] == f"http://127.0.0.1:8000/v1/{root}:commit"
        assert captured["auth"] == "Bearer owner"

        writes = captured["body"]["writes"]
        assert writes[0] == {"update": {"name": f"{root}/col/a", "fields": {"x": {"integerValue": "1"}}}}
        assert writes[1]["updateMask"] == {"fieldPaths": ["y"]}
        assert "currentDocument" not in writes[1]
        assert writes[2]["currentDocument"] == {"exists": True}
        assert writes[3] == {"delete": f"{root}/col/d"}

    @pytest.mark.asyncio
    async def test_rejected_commit_raises(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(403, text="denied")))
        store = FirestoreRestStore("legis", client=client)

        with pytest.raises(BatchCommitError) as exc_info:
            await store.commit([operation(OperationKind.SET, "col", "a", {"x": 1})])
        await client.aclose()

        assert exc_info.value.context["status_code"] == 403


class TestFilesystemStore:
    """Test the local JSON export"""

    @pytest.mark.asyncio
    async def test_writes_one_file_per_document(self, tmp_path):
        store = FilesystemStore(str(tmp_path))

        await store.commit([
            operation(OperationKind.SET, "congressoNacional/camaraDeputados/discursos", "204554", {"total": 2}),
            operation(OperationKind.SET, "congressoNacional/camaraDeputados/discursos/204554/dados", "d1", {"id": "d1"}),
        ])

        assert (tmp_path / "congressoNacional/camaraDeputados/discursos/204554.json").exists()
        assert store.read("congressoNacional/camaraDeputados/discursos/204554/dados", "d1") == {"id": "d1"}
        assert len(store.list_files()) == 2

    @pytest.mark.asyncio
    async def test_merge_update_and_delete(self, tmp_path):
        store = FilesystemStore(str(tmp_path))
        await store.commit([operation(OperationKind.SET, "col", "a", {"x": 1, "y": 1})])

        await store.commit([
            operation(OperationKind.SET, "col", "a", {"y": 2}, merge=True),
            operation(OperationKind.SET, "col", "b", {"k": "v"}),
        ])
        assert store.read("col", "a") == {"x": 1, "y": 2}

        await store.commit([
            operation(OperationKind.UPDATE, "col", "a", {"x": 5}),
            operation(OperationKind.DELETE, "col", "b"),
        ])
        assert store.read("col", "a") == {"x": 5, "y": 2}
        assert store.read("col", "b") is None

    @pytest.mark.asyncio
    async def test_update_of_missing_document_fails(self, tmp_path):
        store = FilesystemStore(str(tmp_path))

        with pytest.raises(BatchCommitError):
            await store.commit([operation(OperationKind.UPDATE, "col", "missing", {"x": 1})])

    @pytest.mark.asyncio
    async def test_output_is_deterministic(self, tmp_path):
        store = FilesystemStore(str(tmp_path))
        op = operation(OperationKind.SET, "col", "a", {"b": 1, "a": "ç"})

        await store.commit([op])
        first = (tmp_path / "col" / "a.json").read_bytes()
        await store.commit([op])

        assert (tmp_path / "col" / "a.json").read_bytes() == first
        assert first.decode("utf-8").index('"a"') < first.decode("utf-8").index('"b"')

    @pytest.mark.asyncio
    async def test_commit_writes_in_a_worker_thread(self, tmp_path):
        store = FilesystemStore(str(tmp_path))
        write = store._write
        threads = []

        def recording(operations):
            threads.append(threading.get_ident())
            write(operations)

        store._write = recording
        await store.commit([operation(OperationKind.SET, "col", "a", {"x": 1})])

        assert threads and threads[0] != threading.get_ident()
        assert store.read("col", "a") == {"x": 1}


class TestCreateStore:
    """Test destination to back-end mapping"""

    def test_local_filesystem(self, tmp_path):
        settings = Settings(_env_file=None, LOCAL_EXPORT_DIR=str(tmp_path))

        store = create_store(Destination.LOCAL_FILESYSTEM, settings)

        assert isinstance(store, FilesystemStore)
        assert store.base_dir == tmp_path

    @pytest.mark.asyncio
    async def test_emulated_store_uses_emulator_host(self):
        settings = Settings(_env_file=None, FIRESTORE_EMULATOR_HOST="localhost:8080", FIRESTORE_PROJECT_ID="p")

        store = create_store(Destination.EMULATED_STORE, settings)

        assert isinstance(store, FirestoreRestStore)
        assert store.commit_url.startswith("http://localhost:8080/v1/projects/p/")
        assert store.access_token == "owner"
        await store.close()

    @pytest.mark.asyncio
    async def test_primary_store(self):
        settings = Settings(_env_file=None, FIRESTORE_ACCESS_TOKEN="t0k")

        store = create_store(Destination.PRIMARY_STORE, settings)

        assert store.commit_url.startswith("https://firestore.googleapis.com/v1/")
        assert store.access_token == "t0k"
        await store.close()
