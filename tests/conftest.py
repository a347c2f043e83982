"""
Pytest configuration and fixtures
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
import pytest

from core.config import Settings
from etl.extractors.api_client import LegislativeApiClient
from schemas.enums import OperationKind
from schemas.etl import BatchOperation, RunOptions


class InMemoryStore:
    """
    Document store double.

    Records every committed batch; ``fail_commits`` makes the next N commits
    raise and ``commit_delay`` makes every commit sleep first.
    """

    def __init__(self, fail_commits: int = 0, commit_delay: float = 0.0):
        self.batches: List[List[BatchOperation]] = []
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.fail_commits = fail_commits
        self.commit_delay = commit_delay
        self.closed = False

    async def commit(self, operations: Sequence[BatchOperation]) -> None:
        if self.commit_delay:
            await asyncio.sleep(self.commit_delay)
        if self.fail_commits > 0:
            self.fail_commits -= 1
            raise RuntimeError("store unavailable")

        self.batches.append(list(operations))
        for op in operations:
            key = str(op.path)
            if op.kind == OperationKind.DELETE:
                self.documents.pop(key, None)
            elif op.merge or op.kind == OperationKind.UPDATE:
                self.documents[key] = {**self.documents.get(key, {}), **op.data}
            else:
                self.documents[key] = dict(op.data)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fast_settings(tmp_path):
    """Settings with every pause and retry delay set to zero"""
    return Settings(
        _env_file=None,
        SENADO_API_BASE_URL="https://senado.test/dadosabertos",
        SENADO_RETRY_DELAY=0,
        SENADO_REQUEST_PAUSE=0,
        CAMARA_API_BASE_URL="https://camara.test/api/v2",
        CAMARA_RETRY_DELAY=0,
        CAMARA_REQUEST_PAUSE=0,
        CHUNK_PAUSE=0,
        FIRESTORE_EMULATOR_HOST=None,
        LOCAL_EXPORT_DIR=str(tmp_path / "export"),
    )


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def make_options():
    """RunOptions factory with test defaults"""
    def _make(**overrides) -> RunOptions:
        values = {"legislatura": 57, "concorrencia": 2}
        values.update(overrides)
        return RunOptions(**values)
    return _make


@pytest.fixture
def assert_phase_counts():
    """Check that no phase reports more settled units than it announced"""
    def _check(result) -> None:
        for name in ("extraction", "transformation", "load"):
            phase = getattr(result.stats, name)
            assert phase.successes + phase.failures <= phase.total, (
                f"{name}: total={phase.total} successes={phase.successes} failures={phase.failures}"
            )
    return _check


@pytest.fixture
def make_client(fast_settings):
    """
    Build a LegislativeApiClient backed by httpx.MockTransport.

    Every request is recorded in ``client.seen`` as (path, params).
    """
    def _make(handler: Callable[[httpx.Request], httpx.Response], family: str = "camara",
              settings: Optional[Settings] = None) -> LegislativeApiClient:
        seen = []

        def recording(request: httpx.Request) -> httpx.Response:
            seen.append((request.url.path, dict(request.url.params)))
            return handler(request)

        client = LegislativeApiClient(
            (settings or fast_settings).api_policy(family),
            transport=httpx.MockTransport(recording),
        )
        client.seen = seen
        return client

    return _make

